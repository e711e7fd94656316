"""
Entity base model and graph relation primitives
"""
from dataclasses import dataclass, field
from typing import List, Optional, Set

from phenolab.query.terms import IRI, Literal, Triple


@dataclass(frozen=True)
class RelationLink:
    """
    Directed typed edge (subject, predicate, object) between two resources.

    Links under one (subject, predicate) form a set: several objects may
    share the same subject and predicate.
    """
    subject: str
    predicate: str
    object: str

    def as_triple(self) -> Triple:
        return Triple(self.subject, self.predicate, IRI(self.object))


@dataclass(frozen=True)
class AttachedProperty:
    """
    Typed key/value attached to an entity.

    value_type is set when the value is itself a resource (the rdf:type of
    that resource, checked against the predicate's range). Literal values
    leave it unset.
    """
    predicate: str
    value: str
    value_type: Optional[str] = None

    @property
    def is_reference(self) -> bool:
        return self.value_type is not None

    def as_triple(self, subject: str) -> Triple:
        obj = IRI(self.value) if self.is_reference else Literal(self.value)
        return Triple(subject, self.predicate, obj)


@dataclass
class Entity:
    """
    Base domain entity - storage-agnostic representation

    Identified by a URI and typed by a class of the schema type hierarchy.
    Instances returned by repositories are fresh per request; only the
    write path persists changes.
    """
    uri: Optional[str] = None
    rdf_type: Optional[str] = None
    properties: List[AttachedProperty] = field(default_factory=list)


@dataclass
class ConcernedItem:
    """A resource an event or an image is about (plot, plant, pot...)"""
    uri: str
    rdf_type: Optional[str] = None
    labels: List[str] = field(default_factory=list)


def concerned_uris(items: List[ConcernedItem]) -> Set[str]:
    """Set of URIs of a concerned-item list"""
    return {item.uri for item in items}
