"""
Tests for the section aggregate and change-detection updates.
"""

import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from catalogdb.db.models import SectionParagraph, SectionServiceItem
from catalogdb.errors import ConcurrentModificationError, NotFoundError, UniqueConstraintError
from catalogdb.models import Paragraph, Section, Service, ServiceItem
from catalogdb.services.aggregates import AggregateUpdater, MutationKind
from catalogdb.services.sections import SECTION_SPEC, SectionService


@pytest.fixture
def sections(database):
    return SectionService(database)


def new_section(name="nosotros"):
    return Section(
        name=name,
        title="Quiénes somos",
        paragraphs=[
            Paragraph(order_idx=0, content="Primero"),
            Paragraph(order_idx=1, content="Segundo"),
        ],
        services=[
            Service(
                title="Banquetes",
                price=15000,
                items=[
                    ServiceItem(order_idx=0, price=100, content="Entrada"),
                    ServiceItem(order_idx=1, price=200, content="Plato fuerte"),
                ],
            ),
            Service(title="Meseros"),
        ],
    )


def count_rows(engine, table):
    with engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(table.__table__)).scalar_one()


class TestCreateAndGet:
    def test_create_returns_full_tree(self, sections):
        section = sections.create_section(new_section())

        assert section.id is not None
        assert section.version == 1
        assert [p.content for p in section.paragraphs] == ["Primero", "Segundo"]
        assert [s.title for s in section.services] == ["Banquetes", "Meseros"]
        assert [i.content for i in section.services[0].items] == ["Entrada", "Plato fuerte"]
        assert section.services[1].items == []

    def test_get_by_name(self, sections):
        created = sections.create_section(new_section())
        assert sections.get_section_by_name("nosotros").id == created.id

    def test_get_missing(self, sections):
        with pytest.raises(NotFoundError):
            sections.get_section(uuid.uuid4())
        with pytest.raises(NotFoundError):
            sections.get_section_by_name("missing")

    def test_duplicate_name(self, sections):
        sections.create_section(new_section())
        with pytest.raises(UniqueConstraintError) as excinfo:
            sections.create_section(new_section())
        assert excinfo.value.message == "A sections with the same name already exists"


class TestUpdate:
    def test_unchanged_payload_writes_nothing(self, sections):
        section = sections.create_section(new_section())

        plan = sections.update_section(section)

        assert plan.is_empty()
        assert sections.get_section(section.id) == section

    def test_only_changed_rows_are_updated(self, sections):
        section = sections.create_section(new_section())
        section.paragraphs[1].content = "Segundo editado"
        section.services[0].items[0].price = 150

        plan = sections.update_section(section)

        children = [m for m in plan.updates() if m.node != "sections"]
        assert [(m.node, m.values) for m in children] == [
            ("paragraphs", {"content": "Segundo editado"}),
            ("service_items", {"price": 150}),
        ]
        assert plan.inserts() == []

        reloaded = sections.get_section(section.id)
        assert reloaded.paragraphs[1].content == "Segundo editado"
        assert reloaded.services[0].items[0].price == 150

    def test_new_children_are_inserted(self, sections):
        section = sections.create_section(new_section())
        section.paragraphs.append(Paragraph(order_idx=2, content="Tercero"))
        section.services.append(
            Service(title="Música", items=[ServiceItem(price=500, content="DJ")])
        )

        plan = sections.update_section(section)

        assert len(plan.inserts("paragraphs")) == 1
        assert len(plan.inserts("services")) == 1
        assert len(plan.inserts("service_items")) == 1
        reloaded = sections.get_section(section.id)
        assert [p.content for p in reloaded.paragraphs] == ["Primero", "Segundo", "Tercero"]
        assert reloaded.services[2].title == "Música"
        assert reloaded.services[2].items[0].content == "DJ"

    def test_missing_children_are_kept(self, sections):
        section = sections.create_section(new_section())
        section.paragraphs = []
        section.services = []

        assert sections.update_section(section).is_empty()
        assert len(sections.get_section(section.id).paragraphs) == 2

    def test_orphan_identity_is_skipped(self, sections):
        first = sections.create_section(new_section("uno"))
        second = sections.create_section(new_section("dos"))
        stolen = second.paragraphs[0].model_copy(update={"content": "Robado"})
        first.paragraphs.append(stolen)

        plan = sections.update_section(first)

        assert plan.is_empty()
        assert plan.skipped == [("paragraphs", stolen.id)]
        assert sections.get_section(second.id).paragraphs[0].content == "Primero"

    def test_root_fields(self, sections):
        section = sections.create_section(new_section())
        section.title = "Nosotros"

        plan = sections.update_section(section)

        assert [m.values for m in plan.updates("sections")] == [{"title": "Nosotros", "version": 2}]
        assert sections.get_section(section.id).title == "Nosotros"

    def test_missing_root(self, sections):
        section = new_section()
        section.id = uuid.uuid4()
        with pytest.raises(NotFoundError):
            sections.update_section(section)


class TestVersioning:
    def test_version_bumped_on_change(self, sections):
        section = sections.create_section(new_section())
        section.paragraphs[0].content = "Cambio"

        plan = sections.update_section(section)

        root = plan.updates("sections")[0]
        assert root.values == {"version": 2}
        assert root.expected_version == 1
        assert sections.get_section(section.id).version == 2

    def test_stale_version_rejected(self, sections):
        section = sections.create_section(new_section())
        stale = section.model_copy(deep=True)

        section.title = "Primera edición"
        sections.update_section(section)

        stale.title = "Segunda edición"
        with pytest.raises(ConcurrentModificationError):
            sections.update_section(stale)
        assert sections.get_section(section.id).title == "Primera edición"

    def test_without_version_no_guard(self, sections):
        section = sections.create_section(new_section())
        section.version = None
        section.title = "Sin versión"

        plan = sections.update_section(section)

        assert plan.updates("sections")[0].values == {"title": "Sin versión"}
        assert sections.get_section(section.id).version == 1


class TestAtomicity:
    def test_failed_create_rolls_back(self, engine, database):
        fixed = uuid.uuid4()
        ids = iter([uuid.uuid4(), fixed, fixed])
        updater = AggregateUpdater(database, SECTION_SPEC, id_factory=lambda: next(ids))
        section = Section(
            name="fallida",
            paragraphs=[Paragraph(order_idx=0, content="a"), Paragraph(order_idx=1, content="b")],
        )

        with pytest.raises(UniqueConstraintError):
            updater.create(section)

        assert count_rows(engine, SectionParagraph) == 0
        with pytest.raises(NotFoundError):
            SectionService(database).get_section_by_name("fallida")

    def test_failed_update_rolls_back(self, engine, database, sections):
        section = sections.create_section(new_section())
        existing = section.paragraphs[0].id
        updater = AggregateUpdater(database, SECTION_SPEC, id_factory=lambda: existing)

        section.title = "No debe quedar"
        section.paragraphs.append(Paragraph(order_idx=5, content="duplicada"))

        with pytest.raises(UniqueConstraintError):
            updater.update(section)

        reloaded = sections.get_section(section.id)
        assert reloaded.title == "Quiénes somos"
        assert reloaded.version == 1
        assert len(reloaded.paragraphs) == 2


class TestPlanning:
    def test_sibling_insert_order_kept(self, database):
        clock = datetime(2024, 1, 1, tzinfo=timezone.utc)
        updater = AggregateUpdater(database, SECTION_SPEC, clock=lambda: clock)

        plan = updater.plan_create(new_section())
        services = plan.inserts("services")

        assert services[0].values["created_at"] < services[1].values["created_at"]
        assert plan.mutations[0].kind is MutationKind.INSERT
        assert plan.mutations[0].node == "sections"
        assert plan.mutations[0].values["version"] == 1

    def test_children_of_new_nodes_are_new(self, database):
        updater = AggregateUpdater(database, SECTION_SPEC)
        section = new_section()
        section.services[0].items[0].id = uuid.uuid4()

        plan = updater.plan_create(section)

        assert len(plan.inserts("service_items")) == 2
        assert plan.skipped == []


class TestDelete:
    def test_delete_cascades(self, engine, sections):
        section = sections.create_section(new_section())

        sections.delete_section(section.id)

        assert count_rows(engine, SectionParagraph) == 0
        assert count_rows(engine, SectionServiceItem) == 0
        with pytest.raises(NotFoundError):
            sections.get_section(section.id)

    def test_delete_missing(self, sections):
        with pytest.raises(NotFoundError):
            sections.delete_section(uuid.uuid4())

    def test_delete_children(self, sections):
        section = sections.create_section(new_section())

        sections.delete_paragraph(section.paragraphs[0].id)
        sections.delete_service_item(section.services[0].items[1].id)
        sections.delete_service(section.services[1].id)

        reloaded = sections.get_section(section.id)
        assert [p.content for p in reloaded.paragraphs] == ["Segundo"]
        assert [s.title for s in reloaded.services] == ["Banquetes"]
        assert [i.content for i in reloaded.services[0].items] == ["Entrada"]

        with pytest.raises(NotFoundError):
            sections.delete_paragraph(section.paragraphs[0].id)


class TestFilterSections:
    def test_summary_counts(self, sections):
        sections.create_section(new_section("a"))
        sections.create_section(Section(name="b"))

        page = sections.filter_sections({"min_paragraphs": 1})

        assert page.total == 1
        summary = page.items[0]
        assert summary.name == "a"
        assert summary.paragraph_count == 2
        assert summary.service_count == 2
        assert summary.item_count == 2
        assert summary.min_price == 15000
        assert summary.max_price == 15000

    def test_is_set_filter(self, sections):
        sections.create_section(Section(name="con", image="a.jpg"))
        sections.create_section(Section(name="sin"))
        sections.create_section(Section(name="vacia", image=""))

        with_image = sections.filter_sections({"has_image": True})
        without_image = sections.filter_sections({"has_image": False})

        assert [s.name for s in with_image.items] == ["con"]
        assert [s.name for s in without_image.items] == ["sin", "vacia"]
