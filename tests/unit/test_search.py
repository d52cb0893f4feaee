"""
Tests for search strategies.
"""

from sqlalchemy import Column, Integer, MetaData, String, Table
from sqlalchemy.dialects import postgresql

from catalogdb.db.models import SearchVector
from catalogdb.models import SearchMode
from catalogdb.query.search import (
    ExactSearch,
    FullTextSearch,
    FuzzySearch,
    SearchTarget,
    escape_like,
    get_strategy,
)

metadata = MetaData()
items = Table(
    "items",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String),
    Column("description", String),
    Column("search_vector", SearchVector),
)

TARGET = SearchTarget(
    vector=items.c.search_vector,
    exact=(items.c.name,),
    fuzzy=(items.c.name, items.c.description),
)


def compile_pg(expression):
    return str(expression.compile(dialect=postgresql.dialect()))


def test_escape_like():
    assert escape_like("50%_off") == "50\\%\\_off"
    assert escape_like("a\\b") == "a\\\\b"
    assert escape_like("silla") == "silla"


def test_get_strategy():
    assert isinstance(get_strategy(SearchMode.EXACT), ExactSearch)
    assert isinstance(get_strategy("fuzzy"), FuzzySearch)
    assert isinstance(get_strategy(""), FullTextSearch)
    assert get_strategy("fulltext", "english").language == "english"


def test_full_text_clause():
    clause = FullTextSearch("spanish").build(TARGET, "  mesa redonda ")
    sql = compile_pg(clause.condition)

    assert "@@ plainto_tsquery" in sql
    assert "ts_rank" in compile_pg(clause.rank)
    assert clause.bindings == {"search_language": "spanish", "search_query": "mesa redonda"}


def test_full_text_without_vector_falls_back_to_substring():
    target = SearchTarget(exact=(items.c.name,), fuzzy=(items.c.name,))
    clause = FullTextSearch().build(target, "mesa")

    assert clause.rank is None
    assert clause.bindings == {"fuzzy_search": "%mesa%"}
    assert "ILIKE" in compile_pg(clause.condition)


def test_exact_has_no_rank():
    clause = ExactSearch().build(TARGET, "Silla")

    assert clause.rank is None
    assert clause.bindings == {"exact_search": "Silla"}


def test_fuzzy_escapes_wildcards():
    clause = FuzzySearch().build(TARGET, "100%")

    assert clause.bindings == {"fuzzy_search": "%100\\%%"}
    sql = compile_pg(clause.condition)
    assert sql.count("ILIKE") == 2
    assert "ESCAPE" in sql


def test_no_columns_means_no_condition():
    clause = ExactSearch().build(SearchTarget(), "x")
    assert clause.condition is None
