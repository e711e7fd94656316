"""
Repository Pattern - Storage abstraction layer

Repositories hide storage details (Neo4j, PostgreSQL) from callers.
Consumers work with domain models, not storage-specific types.

Storage split:
- EventRepository: Neo4j (type, instant, links, properties) + PostgreSQL
  documents (annotations) + registry record
- ExperimentRepository: Neo4j only
- GermplasmRepository: Neo4j only, read-only
- ImageMetadataRepository: PostgreSQL documents + Neo4j type/links
- ProvenanceRepository: PostgreSQL documents
"""
from .base import EntityReader, EntityWriter
from .annotation_repository import AnnotationRepository
from .event_repository import EventRepository
from .experiment_repository import ExperimentRepository
from .germplasm_repository import GermplasmRepository
from .image_repository import ImageMetadataRepository
from .provenance_repository import ProvenanceRepository

__all__ = [
    'EntityReader',
    'EntityWriter',
    'AnnotationRepository',
    'EventRepository',
    'ExperimentRepository',
    'GermplasmRepository',
    'ImageMetadataRepository',
    'ProvenanceRepository',
]
