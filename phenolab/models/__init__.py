"""
Domain Models - Storage-agnostic data structures

These models represent the entities independent of the storage layer.
Repositories read and write them; no store-specific types leak out.

Architecture:
- Domain models are pure Python objects (dataclasses)
- Storage details (Neo4j, PostgreSQL) are abstracted via repositories
"""

from .entity import Entity, RelationLink, AttachedProperty, ConcernedItem
from .annotation import Annotation
from .event import Event
from .experiment import Experiment
from .image import ImageMetadata, ShootingConfiguration, FileInformation
from .provenance import Provenance
from .germplasm import Germplasm
from .user import User
from .criteria import SearchCriteria
from .validation import ValidationError, ReasonCode
from .write import (
    WritePhase,
    WriteStep,
    EntityWriteState,
    EntityWriteResult,
    CompensationOutcome,
)

__all__ = [
    # Core entities
    'Entity',
    'Event',
    'Experiment',
    'ImageMetadata',
    'Provenance',
    'Germplasm',
    'Annotation',

    # Parts and relationships
    'RelationLink',
    'AttachedProperty',
    'ConcernedItem',
    'ShootingConfiguration',
    'FileInformation',

    # Request-scoped values
    'User',
    'SearchCriteria',
    'ValidationError',
    'ReasonCode',
    'WritePhase',
    'WriteStep',
    'EntityWriteState',
    'EntityWriteResult',
    'CompensationOutcome',
]
