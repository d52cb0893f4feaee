"""
Section Service
Read, filter, create, update and delete content section aggregates.
"""

import logging
from typing import Any, Dict, Optional, Union
from uuid import UUID

from sqlalchemy import bindparam, select

from ..db.models import Section as SectionRow
from ..db.models import SectionParagraph, SectionService as ServiceRow, SectionServiceItem
from ..db.session import Database
from ..errors import NotFoundError
from ..models import FilterSpec, Paragraph, ResultPage, Section, SectionFilter, Service, ServiceItem
from ..query.engine import FilterEngine
from .aggregates import AggregateUpdater, MutationPlan, NodeSpec, Snapshot

logger = logging.getLogger(__name__)

ITEM_SPEC = NodeSpec(
    name="service_items",
    table=SectionServiceItem.__table__,
    fields=("order_idx", "price", "content", "content_as_list"),
    parent_key="service_id",
    order_by=("order_idx",),
)

SERVICE_SPEC = NodeSpec(
    name="services",
    table=ServiceRow.__table__,
    fields=("title", "price", "description"),
    parent_key="section_id",
    children=(("items", ITEM_SPEC),),
    order_by=("created_at",),
)

PARAGRAPH_SPEC = NodeSpec(
    name="paragraphs",
    table=SectionParagraph.__table__,
    fields=("order_idx", "content"),
    parent_key="section_id",
    order_by=("order_idx",),
)

SECTION_SPEC = NodeSpec(
    name="sections",
    table=SectionRow.__table__,
    fields=("name", "title", "image", "bg_image"),
    children=(("paragraphs", PARAGRAPH_SPEC), ("services", SERVICE_SPEC)),
    version_field="version",
)


def section_from_snapshot(snapshot: Snapshot) -> Section:
    """Build a Section model from a loaded snapshot."""
    services = []
    for service in snapshot.children.get("services", {}).values():
        items = [ServiceItem(**item.values) for item in service.children.get("items", {}).values()]
        services.append(Service(**service.values, items=items))

    paragraphs = [Paragraph(**p.values) for p in snapshot.children.get("paragraphs", {}).values()]
    return Section(**snapshot.values, paragraphs=paragraphs, services=services)


class SectionService:
    """
    Service for content sections.

    Updates go through change detection: only changed rows are written and
    rows missing from the payload are kept.
    """

    def __init__(self, database: Database, engine: Optional[FilterEngine] = None):
        """
        Initialize section service.

        Args:
            database: Unit of work provider
            engine: Filter engine (created on the same database if omitted)
        """
        self.database = database
        self.engine = engine or FilterEngine(database)
        self.updater = AggregateUpdater(database, SECTION_SPEC)

    def get_section(self, section_id: UUID) -> Section:
        """
        Get a section with its paragraphs, services and items.

        Raises:
            NotFoundError: If the section does not exist
        """
        return section_from_snapshot(self.updater.load(section_id))

    def get_section_by_name(self, name: str) -> Section:
        table = SECTION_SPEC.table
        stmt = select(table.c.id).where(table.c.name == bindparam("name", name))
        with self.database.read("sections", "get_by_name") as conn:
            section_id = conn.execute(stmt).scalar_one_or_none()

        if section_id is None:
            raise NotFoundError("sections", name)
        return self.get_section(section_id)

    def filter_sections(
        self, spec: Union[SectionFilter, FilterSpec, Dict[str, Any], None] = None
    ) -> ResultPage:
        """Filter sections; items are summaries with child counts."""
        return self.engine.filter("sections", spec)

    def create_section(self, section: Section) -> Section:
        """
        Insert a new section with all of its children.

        Raises:
            UniqueConstraintError: If the name is already taken
        """
        plan = self.updater.create(section)
        return self.get_section(plan.root_id)

    def update_section(self, section: Section) -> MutationPlan:
        """
        Apply an edited section.

        Args:
            section: Proposed state; the root must carry its id

        Returns:
            Executed MutationPlan (skipped identities listed in ``skipped``)

        Raises:
            NotFoundError: If the section does not exist
            ConcurrentModificationError: If section.version is stale
        """
        return self.updater.update(section)

    def delete_section(self, section_id: UUID) -> None:
        """Delete a section; children are removed by cascade."""
        self.updater.delete(section_id)

    def delete_paragraph(self, paragraph_id: UUID) -> None:
        self.updater.delete_node(PARAGRAPH_SPEC.name, paragraph_id)

    def delete_service(self, service_id: UUID) -> None:
        self.updater.delete_node(SERVICE_SPEC.name, service_id)

    def delete_service_item(self, item_id: UUID) -> None:
        self.updater.delete_node(ITEM_SPEC.name, item_id)
