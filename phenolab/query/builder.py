"""
QueryBuilder - accumulates projection, graph patterns, filters, grouping
and pagination, and produces an executable Query plus its count form.

Example:
    builder = QueryBuilder.new_query()
    builder.select_variable("uri")
    builder.group_by("uri")
    builder.add_triple_pattern("?uri", RDF_TYPE, "?rdfType")
    builder.add_filter(TypeHierarchyFilter("rdfType", OEEV_EVENT))
    builder.set_page(0).set_page_size(20)

    rows_query = builder.build()
    count_query = builder.as_count_query()
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from phenolab.exceptions import QueryError
from phenolab.query.filters import FilterClause
from phenolab.query.terms import TriplePattern, Var, as_term

logger = logging.getLogger(__name__)

AGGREGATES = ('min', 'max')


@dataclass(frozen=True)
class Query:
    """
    Immutable, backend-neutral query.

    count_variable set means this is the count form: one row with a
    'count' column holding the number of distinct bindings of it.
    """
    select: Tuple[str, ...]
    patterns: Tuple[TriplePattern, ...]
    filters: Tuple[FilterClause, ...] = ()
    group_by: Tuple[str, ...] = ()
    distinct: bool = True
    limit: Optional[int] = None
    offset: Optional[int] = None
    count_variable: Optional[str] = None
    aggregates: Tuple[Tuple[str, str], ...] = ()  # (variable, function)

    @property
    def is_count(self) -> bool:
        return self.count_variable is not None

    def aggregate_of(self, name: str) -> Optional[str]:
        return dict(self.aggregates).get(name)

    def to_cypher(self) -> Tuple[str, dict]:
        from phenolab.query.cypher import render
        return render(self)

    def __str__(self) -> str:
        return self.to_cypher()[0]


class QueryBuilder:
    """Mutable accumulator for one Query. Not shared across requests."""

    def __init__(self, distinct: bool = True):
        self._distinct = distinct
        self._select: List[str] = []
        self._patterns: List[TriplePattern] = []
        self._filters: List[FilterClause] = []
        self._group_by: List[str] = []
        self._aggregates: Dict[str, str] = {}
        self._page: int = 0
        self._page_size: Optional[int] = None

    @classmethod
    def new_query(cls, distinct: bool = True) -> 'QueryBuilder':
        return cls(distinct=distinct)

    # ===== Accumulation =====

    def select_variable(self, name: str) -> str:
        """Project variable name (with or without '?'). Returns the bare name."""
        name = Var(name.lstrip('?')).name
        if name not in self._select:
            self._select.append(name)
        return name

    def select_aggregate(self, name: str, function: str = 'min') -> str:
        """
        Project an aggregate of variable name, grouped by the plain selected
        variables. Returns the bare name.
        """
        if function not in AGGREGATES:
            raise QueryError(f"Unsupported aggregate: {function}")
        name = self.select_variable(name)
        self._aggregates[name] = function
        return name

    def add_triple_pattern(self, subject, predicate: str, obj) -> 'QueryBuilder':
        pattern = TriplePattern(as_term(subject), predicate, as_term(obj))
        if pattern not in self._patterns:
            self._patterns.append(pattern)
        return self

    def add_filter(self, clause: FilterClause) -> 'QueryBuilder':
        self._filters.append(clause)
        return self

    def add_filters(self, clauses) -> 'QueryBuilder':
        for clause in clauses:
            self.add_filter(clause)
        return self

    def group_by(self, name: str) -> 'QueryBuilder':
        name = Var(name.lstrip('?')).name
        if name not in self._group_by:
            self._group_by.append(name)
        return self

    def set_page(self, page: int) -> 'QueryBuilder':
        if page is None or page < 0:
            raise QueryError(f"Page must be a non-negative integer, got {page}")
        self._page = page
        return self

    def set_page_size(self, page_size: Optional[int]) -> 'QueryBuilder':
        """0 or None means unbounded. Callers map 0 to their maximum first."""
        if page_size is not None and page_size < 0:
            raise QueryError(f"Page size must be a non-negative integer, got {page_size}")
        self._page_size = page_size
        return self

    # ===== Output =====

    @property
    def bound_variables(self) -> set:
        bound = set()
        for pattern in self._patterns:
            bound |= pattern.variables
        return bound

    def _check(self) -> None:
        if not self._patterns:
            raise QueryError("A query needs at least one triple pattern")

        bound = self.bound_variables
        unbound = [v for v in self._select if v not in bound]
        for clause in self._filters:
            unbound.extend(v for v in clause.variables if v not in bound)
        if unbound:
            raise QueryError(f"Variables not bound by any pattern: {sorted(set(unbound))}")

        plain = {v for v in self._select if v not in self._aggregates}
        if self._group_by and not plain <= set(self._group_by):
            missing = sorted(plain - set(self._group_by))
            raise QueryError(f"Selected variables missing from GROUP BY: {missing}")

    def build(self) -> Query:
        self._check()
        if not self._select:
            raise QueryError("A query needs at least one selected variable")

        limit = self._page_size or None
        offset = self._page * self._page_size if limit else None

        query = Query(
            select=tuple(self._select),
            patterns=tuple(self._patterns),
            filters=tuple(self._filters),
            group_by=tuple(self._group_by),
            distinct=self._distinct,
            limit=limit,
            offset=offset or None,
            aggregates=tuple(self._aggregates.items()),
        )
        logger.debug(f"Built query: {query}")
        return query

    def as_count_query(self, variable: Optional[str] = None) -> Query:
        """
        Same patterns and filters; projection, grouping, limit and offset are
        replaced by a single count of distinct bindings of variable
        (default: the first selected variable).
        """
        self._check()
        variable = (variable or '').lstrip('?') or (self._select[0] if self._select else None)
        if not variable:
            raise QueryError("Count query needs a variable to count")
        if variable not in self.bound_variables:
            raise QueryError(f"Count variable {variable!r} is not bound by any pattern")

        query = Query(
            select=(),
            patterns=tuple(self._patterns),
            filters=tuple(self._filters),
            count_variable=variable,
        )
        logger.debug(f"Built count query: {query}")
        return query
