"""
Composable graph query construction.

FilterClause values are appended to a QueryBuilder in a fixed order; the
builder produces an immutable Query and its count form. Query objects render
to Cypher for the Neo4j graph store.
"""
from .terms import Var, IRI, Literal, Triple, TriplePattern, as_term
from .filters import (
    FilterClause,
    RegexFilter,
    TypeHierarchyFilter,
    ComparisonFilter,
    EqualsFilter,
    LanguageFilter,
    date_range_filters,
)
from .builder import Query, QueryBuilder
from .concerned_items import add_concerned_item_filters

__all__ = [
    'Var',
    'IRI',
    'Literal',
    'Triple',
    'TriplePattern',
    'as_term',
    'FilterClause',
    'RegexFilter',
    'TypeHierarchyFilter',
    'ComparisonFilter',
    'EqualsFilter',
    'LanguageFilter',
    'date_range_filters',
    'Query',
    'QueryBuilder',
    'add_concerned_item_filters',
]
