"""
Tests for query construction: builder checks, pagination, count form,
filter ordering and Cypher rendering.
"""
import re
from datetime import datetime, timezone

import pytest

from phenolab.exceptions import QueryError
from phenolab.models.criteria import SearchCriteria
from phenolab.query import (
    ComparisonFilter,
    QueryBuilder,
    RegexFilter,
    TypeHierarchyFilter,
    date_range_filters,
)
from phenolab.query.search import page_window, resolve_page_size
from phenolab.repositories.event_repository import EventRepository
from phenolab.vocabulary import OEEV_CONCERNS, OEEV_EVENT, RDF_TYPE


def typed_builder() -> QueryBuilder:
    builder = QueryBuilder.new_query()
    builder.select_variable("uri")
    builder.group_by("uri")
    builder.add_triple_pattern("?uri", RDF_TYPE, "?rdfType")
    return builder


@pytest.fixture
def events(graph, documents, relational, allocator, settings):
    return EventRepository(graph, documents, relational, allocator, settings)


class TestBuilderChecks:
    def test_requires_a_pattern(self):
        builder = QueryBuilder.new_query()
        builder.select_variable("uri")
        with pytest.raises(QueryError):
            builder.build()

    def test_selected_variables_must_be_bound(self):
        builder = typed_builder()
        builder.select_variable("label")
        builder.group_by("label")
        with pytest.raises(QueryError, match="label"):
            builder.build()

    def test_filter_variables_must_be_bound(self):
        builder = typed_builder()
        builder.add_filter(RegexFilter("label", "x"))
        with pytest.raises(QueryError):
            builder.build()

    def test_group_by_must_cover_select(self):
        builder = typed_builder()
        builder.select_variable("rdfType")
        with pytest.raises(QueryError, match="GROUP BY"):
            builder.build()

    def test_duplicate_patterns_are_kept_once(self):
        builder = typed_builder()
        builder.add_triple_pattern("?uri", RDF_TYPE, "?rdfType")
        assert len(builder.build().patterns) == 1

    def test_invalid_variable_name(self):
        with pytest.raises(QueryError):
            QueryBuilder.new_query().select_variable("not a name")

    def test_invalid_regex_is_a_query_error(self):
        with pytest.raises(QueryError):
            RegexFilter("uri", "plot[")


class TestPagination:
    def test_limit_and_offset(self):
        query = typed_builder().set_page(2).set_page_size(10).build()
        assert query.limit == 10
        assert query.offset == 20

    def test_first_page_has_no_offset(self):
        query = typed_builder().set_page(0).set_page_size(10).build()
        assert query.offset is None

    def test_zero_page_size_is_unbounded(self):
        query = typed_builder().set_page(3).set_page_size(0).build()
        assert query.limit is None
        assert query.offset is None

    def test_negative_values_rejected(self):
        with pytest.raises(QueryError):
            typed_builder().set_page(-1)
        with pytest.raises(QueryError):
            typed_builder().set_page_size(-5)

    def test_resolve_page_size(self):
        assert resolve_page_size(None, 20, 5000) == 20
        assert resolve_page_size(0, 20, 5000) == 5000
        assert resolve_page_size(10000, 20, 5000) == 5000
        assert resolve_page_size(7, 20, 5000) == 7

    def test_page_window(self):
        assert page_window(3, 10, 20, 5000) == (10, 30)
        assert page_window(None, None, 20, 5000) == (20, 0)
        with pytest.raises(QueryError):
            page_window(-1, 10, 20, 5000)


class TestCountQuery:
    def test_count_form_drops_paging_and_projection(self):
        builder = typed_builder().set_page(4).set_page_size(5)
        count = builder.as_count_query()

        assert count.is_count
        assert count.count_variable == "uri"
        assert count.select == ()
        assert count.limit is None and count.offset is None

        cypher, _ = count.to_cypher()
        assert "count(DISTINCT v_uri) AS count" in cypher
        assert "SKIP" not in cypher and "LIMIT" not in cypher

    def test_count_variable_must_be_bound(self):
        with pytest.raises(QueryError):
            typed_builder().as_count_query("label")

    def test_count_keeps_filters(self):
        builder = typed_builder()
        builder.add_filter(TypeHierarchyFilter("rdfType", OEEV_EVENT))
        assert builder.as_count_query().filters == builder.build().filters


class TestFilters:
    def test_full_match_pattern(self):
        assert RegexFilter("uri", "plot").full_match_pattern() == "(?i).*(?:plot).*"
        assert RegexFilter("uri", "^plot$").full_match_pattern() == "(?i).*(?:^plot$).*"
        assert RegexFilter("uri", "^plot", case_insensitive=False).full_match_pattern() == ".*(?:^plot).*"

    def test_alternation_stays_grouped(self):
        pattern = RegexFilter("uri", "plot-7|plot-42").full_match_pattern()
        assert re.fullmatch(pattern, "http://phenome.example.org/plots/plot-42")
        assert re.fullmatch(pattern, "http://phenome.example.org/plots/plot-7")
        assert not re.fullmatch(pattern, "http://phenome.example.org/plots/plot-8")

    def test_anchors_keep_their_meaning(self):
        pattern = RegexFilter("uri", "^plot").full_match_pattern()
        assert re.fullmatch(pattern, "plot-42")
        assert not re.fullmatch(pattern, "my-plot-42")

    def test_date_range_is_two_inclusive_comparisons(self):
        start, end = date_range_filters("dateTimeStamp", "2019-03-01", "2019-03-10")
        assert start.operator == ">="
        assert start.bound == datetime(2019, 3, 1, tzinfo=timezone.utc)
        assert end.operator == "<="
        # A date-only end covers the whole day
        assert end.bound.date() == datetime(2019, 3, 10).date()
        assert (end.bound.hour, end.bound.minute) == (23, 59)

    def test_absent_bounds_produce_no_clause(self):
        assert date_range_filters("t", None, None) == []
        assert len(date_range_filters("t", "2019-03-01", None)) == 1

    def test_inverted_range_rejected(self):
        with pytest.raises(QueryError):
            date_range_filters("t", "2019-03-10", "2019-03-01")

    def test_unparseable_bound_rejected(self):
        with pytest.raises(QueryError):
            date_range_filters("t", "first of march", None)


class TestSearchMapping:
    def test_no_criteria_scopes_to_root_type_only(self, events):
        query = events.prepare_search_query(SearchCriteria()).build()
        assert len(query.filters) == 1
        assert isinstance(query.filters[0], TypeHierarchyFilter)
        assert query.filters[0].root_type == OEEV_EVENT
        # No concerned-item pattern unless asked for
        assert all(p.predicate != OEEV_CONCERNS for p in query.patterns)

    def test_filters_in_fixed_order(self, events):
        criteria = SearchCriteria(
            uri="events",
            related_item_uri="plot",
            start="2019-03-01",
            end="2019-03-10",
        )
        query = events.prepare_search_query(criteria).build()
        assert [type(f) for f in query.filters] == [
            RegexFilter,
            TypeHierarchyFilter,
            RegexFilter,
            ComparisonFilter,
            ComparisonFilter,
        ]

    def test_select_is_grouped(self, events):
        query = events.prepare_search_query(SearchCriteria()).build()
        assert query.select == ("uri", "rdfType", "dateTimeStamp")
        # One row per entity: everything but the uri is aggregated
        assert query.group_by == ("uri",)
        assert query.aggregates == (("rdfType", "min"), ("dateTimeStamp", "min"))

    def test_cypher_rendering(self, events):
        builder = events.prepare_search_query(SearchCriteria(rdf_type=OEEV_EVENT + "Move"))
        builder.set_page(1).set_page_size(10)
        cypher, params = builder.build().to_cypher()

        assert cypher.startswith("MATCH (v_uri)-[:REL {predicate: $p0}]->(v_rdfType)")
        assert "REL*0.." in cypher
        assert "RETURN DISTINCT" in cypher
        assert "min(coalesce(v_rdfType.uri, v_rdfType.value)) AS rdfType" in cypher
        assert "ORDER BY uri, rdfType, dateTimeStamp" in cypher
        assert OEEV_EVENT + "Move" in params.values()
        assert 10 in params.values()
