"""
Shared read and write plumbing for graph-backed repositories

EntityReader runs a search as two queries built from the same QueryBuilder
(the rows and their count form), maps rows to entities and hydrates each
entity with fan-out reads. Subclasses decide the patterns and filters
(prepare_search_query), the row mapping (from_row) and the fan-out (hydrate).
"""
import asyncio
import logging
from typing import Generic, Iterable, List, Optional, Sequence, Tuple, TypeVar

from phenolab.config.settings import Settings, get_settings
from phenolab.exceptions import AggregateValidationError, AggregateWriteError
from phenolab.models.criteria import SearchCriteria
from phenolab.models.entity import AttachedProperty
from phenolab.models.user import User
from phenolab.models.write import DOCUMENTS, GRAPH, RELATIONAL, WritePhase, WriteStep
from phenolab.query.builder import QueryBuilder
from phenolab.query.search import URI, paginate, resolve_page_size
from phenolab.services.document_store import DocumentStore
from phenolab.services.graph_store import GraphStore
from phenolab.services.relation_reconciler import RelationReconciler
from phenolab.services.relational_store import RelationalStore
from phenolab.services.validation import ValidationPipeline
from phenolab.services.write_coordinator import WriteCoordinator

logger = logging.getLogger(__name__)

T = TypeVar('T')


class EntityReader(Generic[T]):
    """Search / count / lookup over the graph store"""

    def __init__(self, graph: GraphStore, settings: Optional[Settings] = None):
        self.graph = graph
        self.settings = settings or get_settings()

    # ===== Subclass hooks =====

    def prepare_search_query(
        self,
        criteria: SearchCriteria,
        exact_uri: Optional[str] = None,
    ) -> QueryBuilder:
        """Patterns and filters of a search, without pagination"""
        raise NotImplementedError

    def from_row(self, row: dict) -> T:
        raise NotImplementedError

    async def hydrate(self, entity: T, detailed: bool = False) -> T:
        """Fan-out reads for one entity. Default: nothing to resolve."""
        return entity

    # ===== Reads =====

    @property
    def max_page_size(self) -> int:
        return self.settings.max_page_size

    def page_size(self, criteria: SearchCriteria) -> int:
        return resolve_page_size(criteria.page_size, self.settings.default_page_size,
                                 self.settings.max_page_size)

    async def find(self, criteria: SearchCriteria) -> Tuple[List[T], int]:
        """One page of entities plus the total number of matches"""
        builder = self.prepare_search_query(criteria)
        paginate(builder, criteria.page, criteria.page_size,
                 self.settings.default_page_size, self.settings.max_page_size)

        rows, total = await asyncio.gather(
            self.graph.query(builder.build()),
            self.graph.count(builder.as_count_query(URI)),
        )

        entities = [self.from_row(row) for row in rows]
        await asyncio.gather(*(self.hydrate(entity) for entity in entities))
        return entities, total

    async def count(self, criteria: SearchCriteria) -> int:
        builder = self.prepare_search_query(criteria)
        return await self.graph.count(builder.as_count_query(URI))

    async def find_by_id(self, uri: str) -> Optional[T]:
        """Exact lookup with the detailed fan-out; None when absent"""
        builder = self.prepare_search_query(SearchCriteria(), exact_uri=uri)
        rows = await self.graph.query(builder.build())
        if not rows:
            return None
        return await self.hydrate(self.from_row(rows[0]), detailed=True)

    async def attached_properties(self, uri: str, exclude: Iterable[str]) -> List[AttachedProperty]:
        """Generic properties of uri, minus the caller's structural predicates"""
        rows = await self.graph.properties_of(uri, exclude=exclude, limit=self.max_page_size)
        return [
            AttachedProperty(
                predicate=row['predicate'],
                value=row['value'],
                value_type=row['value_type'] if row['is_resource'] else None,
            )
            for row in rows
        ]


class EntityWriter:
    """
    Validate-then-write for a batch.

    Per-entity mode writes every valid entity and reports the invalid ones.
    Atomic mode writes nothing when any entity is invalid.
    """

    entity_type: str = None

    def __init__(self, validation: ValidationPipeline, coordinator: WriteCoordinator):
        self.validation = validation
        self.coordinator = coordinator

    async def validate(self, entities: Sequence, user: Optional[User]):
        """All validation errors of the batch (empty list = valid)"""
        return await self.validation.validate(entities, user)

    async def create(
        self,
        entities: Sequence,
        user: Optional[User],
        atomic: bool = False,
    ) -> Tuple[List[str], Optional[AggregateWriteError]]:
        """
        Create entities with fresh URIs.

        Returns the created URIs and, if anything was rejected or failed,
        an AggregateWriteError describing every rejected or failed entity.

        Raises:
            AuthorizationError: caller may not write
            AggregateValidationError: atomic batch with invalid entities
        """
        report = await self.validation.validate_each(entities, user)
        invalid = [error for errors in report for error in errors]

        if atomic and invalid:
            raise AggregateValidationError(invalid)

        valid = [entity for entity, errors in zip(entities, report) if not errors]
        created, write_error = await self.coordinator.create(
            valid, self.entity_type, self.plan_writes, atomic=atomic
        )

        if invalid or write_error:
            return created, AggregateWriteError(
                validation_errors=invalid,
                write_errors=write_error.write_errors if write_error else None,
            )
        return created, None

    async def plan_writes(self, entity, uri: str, graph: GraphStore):
        raise NotImplementedError

    def relation_step(
        self,
        graph: GraphStore,
        uri: str,
        predicate: str,
        targets: Iterable[str],
        name: str,
        inverse: bool = False,
    ) -> WriteStep:
        """
        RELATIONS step reconciling (uri, predicate) to targets.

        A partial reconcile is reverted before the step fails, so a failed
        step leaves nothing behind; the compensation reverts a completed one.
        """
        reconciler = RelationReconciler(graph)
        applied = []

        async def link():
            outcome = await reconciler.reconcile(uri, predicate, targets, inverse=inverse)
            if not outcome.complete:
                try:
                    await reconciler.revert(outcome)
                except Exception as e:
                    logger.error(f"❌ Could not revert {predicate} links of {uri}: {e}")
                outcome.raise_for_error(name)
            applied.append(outcome)

        async def unlink():
            for outcome in applied:
                await reconciler.revert(outcome)

        return WriteStep(name, WritePhase.RELATIONS, GRAPH, link, unlink)

    def register_step(self, relational: RelationalStore, uri: str, label: Optional[str] = None) -> WriteStep:
        """PRIMARY step adding the registry record of uri"""
        async def register():
            await relational.insert_record(uri, self.entity_type, label)

        async def unregister():
            await relational.delete_record(uri)

        return WriteStep(f"register {self.entity_type}", WritePhase.PRIMARY, RELATIONAL,
                         register, unregister)

    @staticmethod
    def triples_step(graph: GraphStore, name: str, phase: WritePhase, triples: List) -> WriteStep:
        """Graph step inserting triples, undone by deleting them"""
        async def insert():
            await graph.insert_triples(triples)

        async def delete():
            await graph.delete_triples(triples)

        return WriteStep(name, phase, GRAPH, insert, delete)

    @staticmethod
    def document_step(documents: DocumentStore, collection: str, doc: dict, name: str) -> WriteStep:
        """PRIMARY step inserting doc, undone by deleting it"""
        async def insert():
            await documents.insert_one(collection, doc)

        async def delete():
            await documents.delete_one(collection, doc['uri'])

        return WriteStep(name, WritePhase.PRIMARY, DOCUMENTS, insert, delete)
