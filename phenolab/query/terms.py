"""
Graph terms: variables, resource IRIs, literals, triples and triple patterns
"""
import re
from dataclasses import dataclass
from typing import FrozenSet, Optional, Union

from phenolab.exceptions import QueryError

VARIABLE_NAME = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


@dataclass(frozen=True)
class Var:
    """Query variable (written '?name' in patterns)"""
    name: str

    def __post_init__(self):
        if not VARIABLE_NAME.match(self.name or ''):
            raise QueryError(f"Invalid variable name: {self.name!r}")


@dataclass(frozen=True)
class IRI:
    """Resource identifier"""
    value: str


@dataclass(frozen=True)
class Literal:
    """Literal value with optional datatype or language tag"""
    value: str
    datatype: Optional[str] = None
    language: Optional[str] = None


Term = Union[Var, IRI, Literal]


def as_term(value) -> Term:
    """'?name' -> Var, other strings -> IRI, terms pass through."""
    if isinstance(value, (Var, IRI, Literal)):
        return value
    if isinstance(value, str):
        if value.startswith('?'):
            return Var(value[1:])
        return IRI(value)
    raise QueryError(f"Cannot use {value!r} as a graph term")


@dataclass(frozen=True)
class Triple:
    """Concrete statement to insert or delete"""
    subject: str
    predicate: str
    object: Union[IRI, Literal]


@dataclass(frozen=True)
class TriplePattern:
    """Pattern matched against stored triples. Predicates are always bound."""
    subject: Term
    predicate: str
    object: Term

    def __post_init__(self):
        if isinstance(self.subject, Literal):
            raise QueryError("A literal cannot be the subject of a pattern")

    @property
    def variables(self) -> FrozenSet[str]:
        return frozenset(
            t.name for t in (self.subject, self.object) if isinstance(t, Var)
        )
