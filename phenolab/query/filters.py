"""
Filter clauses - atomic predicates appended to a QueryBuilder.

All clauses of a query are conjunctive. Callers skip a clause entirely when
its search input is absent rather than emitting an always-true predicate.
"""
import re
from dataclasses import dataclass
from datetime import datetime
from typing import FrozenSet, List, Optional

from phenolab.exceptions import QueryError
from phenolab.utils.datetime_utils import DateLike, to_datetime
from phenolab.vocabulary import RDFS_SUBCLASS_OF


class FilterClause:
    """Base class. Subclasses render themselves against a CypherContext."""

    @property
    def variables(self) -> FrozenSet[str]:
        raise NotImplementedError

    def to_cypher(self, ctx) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class RegexFilter(FilterClause):
    """Value of variable matches pattern anywhere (search semantics)."""
    variable: str
    pattern: str
    case_insensitive: bool = True

    def __post_init__(self):
        try:
            re.compile(self.full_match_pattern())
        except re.error as e:
            raise QueryError(f"Invalid pattern {self.pattern!r}: {e}") from e

    @property
    def variables(self) -> FrozenSet[str]:
        return frozenset({self.variable})

    def full_match_pattern(self) -> str:
        """
        Cypher =~ matches the whole string: the pattern is wrapped as
        .*(?:pattern).* so alternations stay grouped and anchors inside it
        keep their meaning.
        """
        prefix = '(?i)' if self.case_insensitive else ''
        return f"{prefix}.*(?:{self.pattern}).*"

    def to_cypher(self, ctx) -> str:
        return f"toString({ctx.value(self.variable)}) =~ {ctx.param(self.full_match_pattern())}"


@dataclass(frozen=True)
class TypeHierarchyFilter(FilterClause):
    """Type bound to variable is root_type or one of its (transitive) subtypes."""
    variable: str
    root_type: str
    subclass_predicate: str = RDFS_SUBCLASS_OF

    @property
    def variables(self) -> FrozenSet[str]:
        return frozenset({self.variable})

    def to_cypher(self, ctx) -> str:
        return (
            f"EXISTS {{ MATCH ({ctx.node(self.variable)})-[sub:REL*0..]->"
            f"(:Resource {{uri: {ctx.param(self.root_type)}}}) "
            f"WHERE all(r IN sub WHERE r.predicate = {ctx.param(self.subclass_predicate)}) }}"
        )


COMPARISON_OPERATORS = ('<', '<=', '>', '>=', '=')


@dataclass(frozen=True)
class ComparisonFilter(FilterClause):
    """Timestamp bound to variable compared with a bound: value <op> bound."""
    variable: str
    operator: str
    bound: datetime

    def __post_init__(self):
        if self.operator not in COMPARISON_OPERATORS:
            raise QueryError(f"Unsupported comparison operator: {self.operator}")

    @property
    def variables(self) -> FrozenSet[str]:
        return frozenset({self.variable})

    def to_cypher(self, ctx) -> str:
        return (f"datetime({ctx.value(self.variable)}) {self.operator} "
                f"datetime({ctx.param(self.bound.isoformat())})")


@dataclass(frozen=True)
class EqualsFilter(FilterClause):
    """Value of variable equals value exactly."""
    variable: str
    value: str

    @property
    def variables(self) -> FrozenSet[str]:
        return frozenset({self.variable})

    def to_cypher(self, ctx) -> str:
        return f"{ctx.value(self.variable)} = {ctx.param(self.value)}"


@dataclass(frozen=True)
class LanguageFilter(FilterClause):
    """Literal bound to variable carries a language tag matching language."""
    variable: str
    language: str

    @property
    def variables(self) -> FrozenSet[str]:
        return frozenset({self.variable})

    def to_cypher(self, ctx) -> str:
        return (f"toLower(coalesce({ctx.node(self.variable)}.language, '')) "
                f"STARTS WITH toLower({ctx.param(self.language)})")


def date_range_filters(
    variable: str,
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
) -> List[ComparisonFilter]:
    """
    Inclusive date range as two comparisons (start <= value, end >= value).

    A date-only end bound covers the whole day. Absent bounds produce
    no clause.
    """
    try:
        start_dt = to_datetime(start)
        end_dt = to_datetime(end, end_of_day=True)
    except ValueError as e:
        raise QueryError(f"Invalid date range bound: {e}") from e

    if start_dt and end_dt and start_dt > end_dt:
        raise QueryError(f"Date range start {start_dt} is after end {end_dt}")

    clauses = []
    if start_dt is not None:
        clauses.append(ComparisonFilter(variable, '>=', start_dt))
    if end_dt is not None:
        clauses.append(ComparisonFilter(variable, '<=', end_dt))
    return clauses
