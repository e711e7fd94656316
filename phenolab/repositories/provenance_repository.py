"""
Provenance Repository - document store collection 'provenances'

A provenance describes how data was produced; its free-form metadata is
searched by JSON containment.
"""
import logging
from typing import List, Optional, Tuple

from phenolab.config.settings import Settings, get_settings
from phenolab.models.criteria import SearchCriteria
from phenolab.models.provenance import Provenance
from phenolab.models.write import WriteStep
from phenolab.query.search import page_window
from phenolab.repositories.base import EntityWriter
from phenolab.services.document_store import DocumentStore
from phenolab.services.graph_store import GraphStore
from phenolab.services.relational_store import RelationalStore
from phenolab.services.validation import ValidationPipeline, required_field
from phenolab.services.write_coordinator import WriteCoordinator
from phenolab.utils.id_generator import IdentifierAllocator

logger = logging.getLogger(__name__)

COLLECTION = "provenances"


class ProvenanceRepository(EntityWriter):
    """Repository for Provenance domain model"""

    entity_type = 'provenance'

    def __init__(
        self,
        graph: GraphStore,
        documents: DocumentStore,
        relational: RelationalStore,
        allocator: IdentifierAllocator,
        settings: Optional[Settings] = None,
    ):
        self.documents = documents
        self.relational = relational
        self.settings = settings or get_settings()

        validation = ValidationPipeline([required_field('label', "provenance label")])
        super().__init__(validation, WriteCoordinator(graph, allocator))

    @staticmethod
    def _conditions(criteria: SearchCriteria) -> dict:
        regex = {}
        if criteria.uri:
            regex['uri'] = criteria.uri
        if criteria.label:
            regex['label'] = criteria.label
        if criteria.comment:
            regex['comment'] = criteria.comment
        return {
            'filter_doc': {'metadata': criteria.json_filter} if criteria.json_filter else None,
            'regex': regex or None,
        }

    async def search(self, criteria: SearchCriteria) -> Tuple[List[Provenance], int]:
        limit, offset = page_window(criteria.page, criteria.page_size,
                                    self.settings.default_page_size, self.settings.max_page_size)
        conditions = self._conditions(criteria)
        docs = await self.documents.find(COLLECTION, limit=limit, offset=offset, **conditions)
        total = await self.documents.count(COLLECTION, **conditions)
        return [Provenance.from_document(doc) for doc in docs], total

    async def count(self, criteria: SearchCriteria) -> int:
        return await self.documents.count(COLLECTION, **self._conditions(criteria))

    async def get_by_id(self, uri: str) -> Optional[Provenance]:
        doc = await self.documents.find_by_uri(COLLECTION, uri)
        return Provenance.from_document(doc) if doc else None

    async def plan_writes(self, provenance: Provenance, uri: str, graph: GraphStore) -> List[WriteStep]:
        doc = provenance.to_document()
        doc['uri'] = uri
        return [
            self.document_step(self.documents, COLLECTION, doc, "insert provenance"),
            self.register_step(self.relational, uri, provenance.label),
        ]
