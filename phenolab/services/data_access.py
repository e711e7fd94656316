"""
Data Access - composition root for the three stores and the repositories

    access = await DataAccess.connect()
    events, total = await access.events.search(SearchCriteria(rdf_type=...))
    ...
    await access.close()

The Neo4j driver and the PostgreSQL pool are process-level handles; each
store call acquires its own session or connection.
"""
import logging
from typing import Iterable, Optional

import asyncpg

from phenolab.config.database import create_graph_store, create_postgres_pool
from phenolab.config.settings import Settings, get_settings
from phenolab.models.user import User
from phenolab.repositories import (
    EventRepository,
    ExperimentRepository,
    GermplasmRepository,
    ImageMetadataRepository,
    ProvenanceRepository,
)
from phenolab.services.document_store import DocumentStore
from phenolab.services.graph_store import GraphStore
from phenolab.services.relation_reconciler import ReconcileOutcome, RelationReconciler
from phenolab.services.relational_store import RelationalStore
from phenolab.services.validation import require_admin
from phenolab.utils.id_generator import IdentifierAllocator

logger = logging.getLogger(__name__)


class DataAccess:
    """Stores, identity allocation and repositories wired together"""

    def __init__(
        self,
        graph: GraphStore,
        documents: DocumentStore,
        relational: RelationalStore,
        settings: Optional[Settings] = None,
        db_pool: Optional[asyncpg.Pool] = None,
    ):
        self.settings = settings or get_settings()
        self.graph = graph
        self.documents = documents
        self.relational = relational
        self.db_pool = db_pool

        self.allocator = IdentifierAllocator(
            self.uri_taken,
            self.settings.base_uri,
            max_attempts=self.settings.id_max_attempts,
        )
        self.reconciler = RelationReconciler(graph)

        self.events = EventRepository(graph, documents, relational, self.allocator, self.settings)
        self.experiments = ExperimentRepository(graph, self.settings)
        self.germplasms = GermplasmRepository(graph, self.settings)
        self.images = ImageMetadataRepository(graph, documents, relational, self.allocator, self.settings)
        self.provenances = ProvenanceRepository(graph, documents, relational, self.allocator, self.settings)

    @classmethod
    async def connect(cls, settings: Optional[Settings] = None) -> 'DataAccess':
        settings = settings or get_settings()
        graph = await create_graph_store(settings)
        try:
            db_pool = await create_postgres_pool(settings)
        except Exception:
            await graph.close()
            raise
        logger.info("✅ Data access ready")
        return cls(
            graph,
            DocumentStore(db_pool, settings.documents_schema),
            RelationalStore(db_pool),
            settings,
            db_pool,
        )

    async def close(self):
        await self.graph.close()
        if self.db_pool is not None:
            await self.db_pool.close()
            self.db_pool = None
            logger.info("🔌 Closed PostgreSQL pool")

    async def uri_taken(self, uri: str) -> bool:
        """Identity service: known to the graph or to the registry"""
        if await self.graph.exists_uri(uri):
            return True
        return await self.relational.get_record(uri) is not None

    async def reconcile_relations(
        self,
        subject: str,
        predicate: str,
        desired: Iterable[str],
        user: Optional[User],
        inverse: bool = False,
    ) -> ReconcileOutcome:
        """Generic relation-set update for administrators"""
        require_admin(user)
        return await self.reconciler.reconcile(subject, predicate, desired, inverse=inverse)
