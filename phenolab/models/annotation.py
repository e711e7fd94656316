"""
Annotation domain model
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from phenolab.models.entity import Entity
from phenolab.utils.datetime_utils import parse_stored_datetime, to_iso
from phenolab.vocabulary import OA_ANNOTATION


@dataclass
class Annotation(Entity):
    """
    Free-text note attached to one or more target resources.

    Stored in the document store (collection 'annotations').
    """
    rdf_type: Optional[str] = OA_ANNOTATION
    motivated_by: Optional[str] = None
    creator: Optional[str] = None
    body_values: List[str] = field(default_factory=list)
    targets: List[str] = field(default_factory=list)
    created: Optional[datetime] = None

    def to_document(self) -> dict:
        return {
            'uri': self.uri,
            'rdfType': self.rdf_type,
            'motivatedBy': self.motivated_by,
            'creator': self.creator,
            'bodyValues': list(self.body_values),
            'targets': list(self.targets),
            'created': to_iso(self.created),
        }

    @classmethod
    def from_document(cls, doc: dict) -> 'Annotation':
        return cls(
            uri=doc.get('uri'),
            rdf_type=doc.get('rdfType', OA_ANNOTATION),
            motivated_by=doc.get('motivatedBy'),
            creator=doc.get('creator'),
            body_values=doc.get('bodyValues', []),
            targets=doc.get('targets', []),
            created=parse_stored_datetime(doc.get('created')),
        )
