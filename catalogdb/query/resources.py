"""
Resource Descriptors
Per-resource tables of filter templates, search columns and sort options.

Adding a filterable resource means adding one descriptor here; the engine
itself is shared.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

from sqlalchemy import and_, bindparam, exists, false, func, or_, select, true
from sqlalchemy.sql import FromClause
from sqlalchemy.sql.elements import ColumnElement

from ..db.models import (
    Category,
    EventKind,
    Image,
    Product,
    Quote,
    Section,
    SectionParagraph,
    SectionService,
    SectionServiceItem,
    Wizard,
    WizardStep,
    catalog_products,
    wizard_step_categories,
)
from ..errors import UnknownResourceError
from ..models import (
    CatalogProduct,
    CatalogProductFilter,
    CategoryFilter,
    CategorySummary,
    FilterSpec,
    ImageAsset,
    ImageFilter,
    ProductFilter,
    Quote as QuoteModel,
    QuoteFilter,
    SectionFilter,
    SectionSummary,
    Wizard as WizardModel,
    WizardFilter,
    WizardStep as WizardStepModel,
    WizardStepFilter,
)
from ..models import Product as ProductModel
from .filters import FilterField, FilterOperator as Op
from .materialize import (
    Materializer,
    decode_json_list,
    default_values,
    fallback_long_description,
    force_unavailable_when_out_of_stock,
)
from .ordering import OrderResolver, SortOption
from .search import SearchTarget


@dataclass(frozen=True)
class ResourceDescriptor:
    """
    Everything the engine needs to filter one resource.

    Attributes:
        name: Resource name used in logs and errors
        source: Table, join or subquery rows are read from
        columns: Columns selected for each item
        id_column: Identity column (lookups and final tiebreak)
        name_column: Column for the name-ascending default order
        filters: Predicate templates in compile order
        search: Searchable columns (None disables search)
        sorts: Allowed sort tokens
        materializer: Row to model mapping
        spec_type: Filter spec class accepted by the resource
        default_limit: Page size when none is requested (settings default if None)
        max_limit: Largest allowed page size (settings maximum if None)
        default_sort: Sort token used when none is requested
    """

    name: str
    source: FromClause
    columns: Tuple[ColumnElement, ...]
    id_column: ColumnElement
    name_column: ColumnElement
    filters: Tuple[FilterField, ...]
    search: Optional[SearchTarget]
    sorts: Dict[str, SortOption]
    materializer: Materializer
    spec_type: Type[FilterSpec] = FilterSpec
    default_limit: Optional[int] = None
    max_limit: Optional[int] = None
    default_sort: Optional[str] = None

    @property
    def order_resolver(self) -> OrderResolver:
        return OrderResolver(self.sorts, self.name_column, self.id_column, self.default_sort)

    def coerce_spec(self, spec: Any) -> FilterSpec:
        """Accept a dict or any FilterSpec and return this resource's spec type."""
        if spec is None:
            return self.spec_type()
        if isinstance(spec, self.spec_type):
            return spec
        if isinstance(spec, FilterSpec):
            spec = spec.model_dump(exclude_unset=True)
        return self.spec_type.model_validate(spec)


def _columns(table, exclude: Sequence[str] = ("search_vector",)) -> List[ColumnElement]:
    return [c for c in table.c if c.name not in exclude]


def _sort(*clauses: ColumnElement, rank_tiebreak: bool = True) -> SortOption:
    return SortOption(tuple(clauses), rank_tiebreak=rank_tiebreak)


def _name_sorts(name: ColumnElement) -> Dict[str, SortOption]:
    # An explicit name sort replaces relevance entirely
    return {
        "name": _sort(name.asc(), rank_tiebreak=False),
        "name_asc": _sort(name.asc(), rank_tiebreak=False),
        "name_desc": _sort(name.desc(), rank_tiebreak=False),
    }


# Catalog products (read-only view)

cp = catalog_products


def _catalog_available(value: bool, name: str):
    # Mirrors the read-time correction: no stock means unavailable
    if value:
        return and_(cp.c.available == true(), cp.c.quantity > 0), {}
    return or_(cp.c.available == false(), cp.c.quantity <= 0), {}


CATALOG_PRODUCTS = ResourceDescriptor(
    name="catalog_products",
    source=cp,
    columns=tuple(_columns(cp)),
    id_column=cp.c.id,
    name_column=cp.c.name,
    filters=(
        FilterField("only_ids", cp.c.id, Op.IN, exclusive=True),
        FilterField("categories", cp.c.category_id, Op.IN),
        FilterField("available", None, Op.CUSTOM, builder=_catalog_available),
        FilterField("min_quantity", cp.c.quantity, Op.GTE),
        FilterField("max_quantity", cp.c.quantity, Op.LTE),
        FilterField("exclude_ids", cp.c.id, Op.NOT_IN, always=True),
    ),
    search=SearchTarget(
        vector=cp.c.search_vector,
        exact=(cp.c.name, cp.c.description),
        fuzzy=(cp.c.name, cp.c.description, cp.c.category_name),
    ),
    sorts={
        **_name_sorts(cp.c.name),
        "quantity_asc": _sort(cp.c.quantity.asc()),
        "quantity_desc": _sort(cp.c.quantity.desc()),
        "category": _sort(cp.c.category_name.asc(), cp.c.name.asc()),
        "available_first": _sort(cp.c.available.desc(), cp.c.name.asc()),
        "available_last": _sort(cp.c.available.asc(), cp.c.name.asc()),
        "newest": _sort(cp.c.created_at.desc()),
        "oldest": _sort(cp.c.created_at.asc()),
    },
    materializer=Materializer(
        CatalogProduct,
        [
            force_unavailable_when_out_of_stock,
            fallback_long_description,
            decode_json_list("images"),
            default_values(category_name="", image_url="", slug="", description=""),
        ],
    ),
    spec_type=CatalogProductFilter,
    default_limit=16,
    max_limit=100,
)


# Products (dashboard)

p = Product.__table__
ctg = Category.__table__


def _product_available(value: bool, name: str):
    if value:
        return and_(p.c.available == true(), p.c.quantity > 0), {}
    return or_(p.c.available == false(), p.c.quantity <= 0), {}


PRODUCTS = ResourceDescriptor(
    name="products",
    source=p.outerjoin(ctg, p.c.category_id == ctg.c.id),
    columns=(*_columns(p), ctg.c.name.label("category_name")),
    id_column=p.c.id,
    name_column=p.c.name,
    filters=(
        FilterField("ids", p.c.id, Op.IN),
        FilterField("category_id", p.c.category_id, Op.EQ),
        FilterField("available", None, Op.CUSTOM, builder=_product_available),
        FilterField("min_price", p.c.price, Op.GTE),
        FilterField("max_price", p.c.price, Op.LTE),
        FilterField("min_quantity", p.c.quantity, Op.GTE),
        FilterField("max_quantity", p.c.quantity, Op.LTE),
        FilterField("with_qr_code", p.c.qr_code, Op.IS_SET),
    ),
    search=SearchTarget(
        vector=p.c.search_vector,
        exact=(p.c.name, p.c.description),
        fuzzy=(p.c.name, p.c.description, ctg.c.name),
    ),
    sorts={
        **_name_sorts(p.c.name),
        "price_asc": _sort(p.c.price.asc()),
        "price_desc": _sort(p.c.price.desc()),
        "newest": _sort(p.c.created_at.desc()),
        "oldest": _sort(p.c.created_at.asc()),
        "category": _sort(ctg.c.name.asc(), p.c.name.asc()),
    },
    materializer=Materializer(
        ProductModel, [force_unavailable_when_out_of_stock, fallback_long_description]
    ),
    spec_type=ProductFilter,
)


# Categories with product counts

_product_count = (
    select(func.count(p.c.id)).where(p.c.category_id == ctg.c.id).correlate(ctg).scalar_subquery()
)
category_summary = select(
    ctg.c.id,
    ctg.c.name,
    ctg.c.slug,
    ctg.c.description,
    ctg.c.long_description,
    ctg.c.search_vector,
    _product_count.label("product_count"),
).subquery("category_summary")
cs = category_summary

CATEGORIES = ResourceDescriptor(
    name="categories",
    source=cs,
    columns=tuple(_columns(cs)),
    id_column=cs.c.id,
    name_column=cs.c.name,
    filters=(
        FilterField("min_products", cs.c.product_count, Op.GTE),
        FilterField("max_products", cs.c.product_count, Op.LTE),
    ),
    search=SearchTarget(
        vector=cs.c.search_vector,
        exact=(cs.c.name, cs.c.description),
        fuzzy=(cs.c.name, cs.c.description),
    ),
    sorts={
        **_name_sorts(cs.c.name),
        "product_count_asc": _sort(cs.c.product_count.asc(), cs.c.name.asc()),
        "product_count_desc": _sort(cs.c.product_count.desc(), cs.c.name.asc()),
    },
    materializer=Materializer(CategorySummary, [default_values(product_count=0)]),
    spec_type=CategoryFilter,
)


# Sections with child counts

s = Section.__table__
sp = SectionParagraph.__table__
ss = SectionService.__table__
ssi = SectionServiceItem.__table__


def _count_children(table, fk, parent) -> ColumnElement:
    stmt = select(func.count(table.c.id)).where(fk == parent.c.id)
    return stmt.correlate(parent).scalar_subquery()


def _service_price(aggregate) -> ColumnElement:
    stmt = select(aggregate(ss.c.price)).where(ss.c.section_id == s.c.id)
    return stmt.correlate(s).scalar_subquery()


section_summary = select(
    *_columns(s),
    s.c.search_vector,
    _count_children(sp, sp.c.section_id, s).label("paragraph_count"),
    _count_children(ss, ss.c.section_id, s).label("service_count"),
    select(func.count(ssi.c.id))
    .select_from(ssi.join(ss, ssi.c.service_id == ss.c.id))
    .where(ss.c.section_id == s.c.id)
    .correlate(s)
    .scalar_subquery()
    .label("item_count"),
    _service_price(func.min).label("min_price"),
    _service_price(func.max).label("max_price"),
).subquery("section_summary")
sx = section_summary

SECTIONS = ResourceDescriptor(
    name="sections",
    source=sx,
    columns=tuple(_columns(sx)),
    id_column=sx.c.id,
    name_column=sx.c.name,
    filters=(
        FilterField("ids", sx.c.id, Op.IN),
        FilterField("has_image", sx.c.image, Op.IS_SET),
        FilterField("has_bg_image", sx.c.bg_image, Op.IS_SET),
        FilterField("min_paragraphs", sx.c.paragraph_count, Op.GTE),
        FilterField("max_paragraphs", sx.c.paragraph_count, Op.LTE),
        FilterField("min_services", sx.c.service_count, Op.GTE),
        FilterField("max_services", sx.c.service_count, Op.LTE),
        FilterField("min_price", sx.c.min_price, Op.GTE),
        FilterField("max_price", sx.c.max_price, Op.LTE),
        FilterField("created_after", sx.c.created_at, Op.GTE),
        FilterField("created_before", sx.c.created_at, Op.LTE),
        FilterField("updated_after", sx.c.updated_at, Op.GTE),
        FilterField("updated_before", sx.c.updated_at, Op.LTE),
    ),
    search=SearchTarget(
        vector=sx.c.search_vector,
        exact=(sx.c.name, sx.c.title),
        fuzzy=(sx.c.name, sx.c.title),
    ),
    sorts={
        **_name_sorts(sx.c.name),
        "title_asc": _sort(sx.c.title.asc()),
        "title_desc": _sort(sx.c.title.desc()),
        "created_asc": _sort(sx.c.created_at.asc()),
        "created_desc": _sort(sx.c.created_at.desc()),
        "updated_asc": _sort(sx.c.updated_at.asc()),
        "updated_desc": _sort(sx.c.updated_at.desc()),
        "paragraphs_desc": _sort(sx.c.paragraph_count.desc()),
        "services_desc": _sort(sx.c.service_count.desc()),
    },
    materializer=Materializer(
        SectionSummary, [default_values(paragraph_count=0, service_count=0, item_count=0)]
    ),
    spec_type=SectionFilter,
)


# Wizards and wizard steps

w = Wizard.__table__
ek = EventKind.__table__
ws = WizardStep.__table__
wsc = wizard_step_categories

WIZARDS = ResourceDescriptor(
    name="wizards",
    source=w.outerjoin(ek, w.c.event_kind_id == ek.c.id),
    columns=(*_columns(w), ek.c.name.label("event_kind")),
    id_column=w.c.id,
    name_column=w.c.name,
    filters=(
        FilterField("event_kind", ek.c.name, Op.EQ),
        FilterField("enabled", w.c.enabled, Op.EQ),
    ),
    search=SearchTarget(vector=w.c.search_vector, exact=(w.c.name,), fuzzy=(w.c.name, ek.c.name)),
    sorts={
        **_name_sorts(w.c.name),
        "event_kind": _sort(ek.c.name.asc(), w.c.name.asc()),
        "newest": _sort(w.c.created_at.desc()),
        "oldest": _sort(w.c.created_at.asc()),
    },
    materializer=Materializer(WizardModel),
    spec_type=WizardFilter,
)


def _step_categories(value, name: str):
    category_ids = list(value)
    param = bindparam(name, category_ids, expanding=True, type_=wsc.c.category_id.type)
    condition = exists().where(wsc.c.step_id == ws.c.id, wsc.c.category_id.in_(param))
    return condition, {name: category_ids}


WIZARD_STEPS = ResourceDescriptor(
    name="wizard_steps",
    source=ws,
    columns=tuple(_columns(ws)),
    id_column=ws.c.id,
    name_column=ws.c.name,
    filters=(
        FilterField("wizard_id", ws.c.wizard_id, Op.EQ),
        FilterField("required", ws.c.required, Op.EQ),
        FilterField("categories", None, Op.CUSTOM, builder=_step_categories),
    ),
    # No stored vector: full-text mode matches substrings
    search=SearchTarget(exact=(ws.c.name, ws.c.description), fuzzy=(ws.c.name, ws.c.description)),
    sorts={
        "step_order": _sort(ws.c.step_order.asc()),
        "step_order_desc": _sort(ws.c.step_order.desc()),
        "name": _sort(ws.c.name.asc()),
    },
    materializer=Materializer(WizardStepModel),
    spec_type=WizardStepFilter,
    default_sort="step_order",
)


# Quotes

q = Quote.__table__

QUOTES = ResourceDescriptor(
    name="quotes",
    source=q,
    columns=tuple(_columns(q)),
    id_column=q.c.id,
    name_column=q.c.customer_name,
    filters=(
        FilterField("customer_name", q.c.customer_name, Op.CONTAINS),
        FilterField("phone", q.c.customer_phone, Op.CONTAINS),
        FilterField("created_from", q.c.created_at, Op.GTE),
        FilterField("created_to", q.c.created_at, Op.LTE),
        FilterField("event_start_from", q.c.event_start, Op.GTE),
        FilterField("event_start_to", q.c.event_start, Op.LTE),
        FilterField("status", q.c.status, Op.EQ),
        FilterField("request_type", q.c.request_type, Op.EQ),
        FilterField("comments", q.c.comments, Op.CONTAINS),
    ),
    search=SearchTarget(
        exact=(q.c.customer_name, q.c.customer_email),
        fuzzy=(q.c.customer_name, q.c.customer_email, q.c.comments),
    ),
    sorts={
        "created_asc": _sort(q.c.created_at.asc()),
        "created_desc": _sort(q.c.created_at.desc()),
        "event_start_asc": _sort(q.c.event_start.asc()),
        "event_start_desc": _sort(q.c.event_start.desc()),
        "event_kind_asc": _sort(q.c.event_kind.asc()),
        "event_kind_desc": _sort(q.c.event_kind.desc()),
        "request_type_asc": _sort(q.c.request_type.asc()),
        "request_type_desc": _sort(q.c.request_type.desc()),
        "status_asc": _sort(q.c.status.asc()),
        "status_desc": _sort(q.c.status.desc()),
    },
    materializer=Materializer(QuoteModel),
    spec_type=QuoteFilter,
    default_sort="created_desc",
)


# Images

img = Image.__table__

IMAGES = ResourceDescriptor(
    name="images",
    source=img,
    columns=tuple(_columns(img)),
    id_column=img.c.id,
    name_column=img.c.name,
    filters=(
        FilterField("exact_date", img.c.created_at, Op.ON_DAY),
        FilterField("date_after", img.c.created_at, Op.GTE),
        FilterField("date_before", img.c.created_at, Op.LTE),
        FilterField("min_size", img.c.size, Op.GTE),
        FilterField("max_size", img.c.size, Op.LTE),
    ),
    search=SearchTarget(
        vector=img.c.search_vector,
        exact=(img.c.name, img.c.filename),
        fuzzy=(img.c.name, img.c.filename),
    ),
    sorts={
        **_name_sorts(img.c.name),
        "created_asc": _sort(img.c.created_at.asc()),
        "created_desc": _sort(img.c.created_at.desc()),
        "size_asc": _sort(img.c.size.asc()),
        "size_desc": _sort(img.c.size.desc()),
    },
    materializer=Materializer(ImageAsset),
    spec_type=ImageFilter,
)


RESOURCES: Dict[str, ResourceDescriptor] = {
    d.name: d
    for d in (
        CATALOG_PRODUCTS,
        PRODUCTS,
        CATEGORIES,
        SECTIONS,
        WIZARDS,
        WIZARD_STEPS,
        QUOTES,
        IMAGES,
    )
}


def get_resource(name: str) -> ResourceDescriptor:
    """
    Look up a resource descriptor by name.

    Raises:
        UnknownResourceError: If no descriptor is registered under the name
    """
    try:
        return RESOURCES[name]
    except KeyError:
        raise UnknownResourceError(name) from None
