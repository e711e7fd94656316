"""
Search-parameter mapping helpers.

Each helper adds the projection, patterns and (only when the matching input
is set) the filter clauses for one search concern. Repositories call them in
a fixed order: identifier, type, related items, dates, pagination.
"""
from typing import Optional, Tuple

from phenolab.exceptions import QueryError
from phenolab.query.builder import QueryBuilder
from phenolab.query.filters import (
    EqualsFilter,
    LanguageFilter,
    RegexFilter,
    TypeHierarchyFilter,
    date_range_filters,
)
from phenolab.utils.datetime_utils import DateLike
from phenolab.vocabulary import (
    RDF_TYPE,
    RDFS_LABEL,
    TIME_HAS_TIME,
    TIME_IN_XSD_DATETIMESTAMP,
)

URI = "uri"
RDF_TYPE_VAR = "rdfType"
LABEL = "label"
TIME = "time"
DATETIMESTAMP = "dateTimeStamp"


def select_uri(
    builder: QueryBuilder,
    uri_pattern: Optional[str] = None,
    exact_uri: Optional[str] = None,
) -> str:
    """
    Project ?uri, the one grouping key of a search, filtered by a regex or
    an exact URI when given. Every other projection is aggregated, so each
    entity is one row and pages never repeat it.
    """
    uri = builder.select_variable(URI)
    builder.group_by(uri)
    if uri_pattern is not None:
        builder.add_filter(RegexFilter(uri, uri_pattern))
    if exact_uri is not None:
        builder.add_filter(EqualsFilter(uri, exact_uri))
    return uri


def select_type(
    builder: QueryBuilder,
    subject: str,
    rdf_type: Optional[str],
    root_type: str,
) -> str:
    """
    Project ?rdfType and require it to be rdf_type or a subtype.

    Without rdf_type the search is still scoped to root_type. An entity with
    several matching types reports the smallest type URI.
    """
    var = builder.select_aggregate(RDF_TYPE_VAR, 'min')
    builder.add_triple_pattern(f"?{subject}", RDF_TYPE, f"?{var}")
    builder.add_filter(TypeHierarchyFilter(var, rdf_type or root_type))
    return var


def select_label(
    builder: QueryBuilder,
    subject: str,
    label_pattern: Optional[str] = None,
    language: Optional[str] = None,
) -> str:
    """Project ?label (rdfs:label), filtered by pattern and language tag."""
    var = builder.select_aggregate(LABEL, 'min')
    builder.add_triple_pattern(f"?{subject}", RDFS_LABEL, f"?{var}")
    if label_pattern is not None:
        builder.add_filter(RegexFilter(var, label_pattern))
    if language is not None:
        builder.add_filter(LanguageFilter(var, language))
    return var


def select_instant(
    builder: QueryBuilder,
    subject: str,
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
) -> str:
    """Project the ?dateTimeStamp of subject's time instant, range-filtered."""
    var = builder.select_aggregate(DATETIMESTAMP, 'min')
    builder.add_triple_pattern(f"?{subject}", TIME_HAS_TIME, f"?{TIME}")
    builder.add_triple_pattern(f"?{TIME}", TIME_IN_XSD_DATETIMESTAMP, f"?{var}")
    builder.add_filters(date_range_filters(var, start, end))
    return var


def resolve_page_size(page_size: Optional[int], default: int, maximum: int) -> int:
    """None -> default, 0 -> maximum (unbounded fetch), capped at maximum."""
    if page_size is None:
        return default
    if page_size < 0:
        raise QueryError(f"Page size must be a non-negative integer, got {page_size}")
    if page_size == 0:
        return maximum
    return min(page_size, maximum)


def paginate(
    builder: QueryBuilder,
    page: Optional[int],
    page_size: Optional[int],
    default: int,
    maximum: int,
) -> QueryBuilder:
    """LIMIT = page_size, OFFSET = page * page_size."""
    builder.set_page(page or 0)
    builder.set_page_size(resolve_page_size(page_size, default, maximum))
    return builder


def page_window(
    page: Optional[int],
    page_size: Optional[int],
    default: int,
    maximum: int,
) -> Tuple[int, int]:
    """(limit, offset) for stores queried without a QueryBuilder."""
    page = page or 0
    if page < 0:
        raise QueryError(f"Page must be a non-negative integer, got {page}")
    limit = resolve_page_size(page_size, default, maximum)
    return limit, page * limit
