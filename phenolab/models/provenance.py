"""
Provenance domain model (document store)
"""
from dataclasses import dataclass, field
from typing import Optional

from phenolab.models.entity import Entity
from phenolab.vocabulary import OESO_PROVENANCE


@dataclass
class Provenance(Entity):
    """
    How a dataset was produced. metadata is free-form JSON
    (acquisition software, parameters, operators...).
    """
    rdf_type: Optional[str] = OESO_PROVENANCE
    label: Optional[str] = None
    comment: Optional[str] = None
    metadata: dict = field(default_factory=dict)

    def to_document(self) -> dict:
        return {
            'uri': self.uri,
            'rdfType': self.rdf_type,
            'label': self.label,
            'comment': self.comment,
            'metadata': self.metadata,
        }

    @classmethod
    def from_document(cls, doc: dict) -> 'Provenance':
        return cls(
            uri=doc.get('uri'),
            rdf_type=doc.get('rdfType', OESO_PROVENANCE),
            label=doc.get('label'),
            comment=doc.get('comment'),
            metadata=doc.get('metadata') or {},
        )
