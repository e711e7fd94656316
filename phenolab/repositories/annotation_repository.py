"""
Annotation Repository - document store collection 'annotations'

Annotations are sub-resources of other entities (events today); they are
written by the owner's write plan and read back by target.
"""
import logging
from typing import List, Optional

from phenolab.models.annotation import Annotation
from phenolab.services.document_store import DocumentStore

logger = logging.getLogger(__name__)

COLLECTION = "annotations"


class AnnotationRepository:
    """Annotation documents keyed by URI, searchable by target"""

    def __init__(self, documents: DocumentStore):
        self.documents = documents

    async def insert(self, annotation: Annotation) -> str:
        return await self.documents.insert_one(COLLECTION, annotation.to_document())

    async def delete(self, uri: str) -> bool:
        return await self.documents.delete_one(COLLECTION, uri)

    async def get_by_id(self, uri: str) -> Optional[Annotation]:
        doc = await self.documents.find_by_uri(COLLECTION, uri)
        return Annotation.from_document(doc) if doc else None

    async def find_by_target(self, target_uri: str, limit: Optional[int] = None) -> List[Annotation]:
        """Annotations whose targets include target_uri"""
        docs = await self.documents.find(COLLECTION, {'targets': [target_uri]}, limit=limit)
        return [Annotation.from_document(doc) for doc in docs]
