"""
Event Repository - graph primary storage with document sub-resources

Storage strategy:
- Neo4j: type, time instant, concerned-item links, attached properties
- PostgreSQL documents: annotations targeting the event
- PostgreSQL core.entity_records: registry row

Architecture:
- search()/count(): one QueryBuilder, rows + count form
- get_by_id(): exact lookup, fan-out includes annotations
- create(): validate, then WriteCoordinator runs plan_writes per event
"""
import asyncio
import dataclasses
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from phenolab.config.settings import Settings
from phenolab.models.criteria import SearchCriteria
from phenolab.models.entity import ConcernedItem
from phenolab.models.event import Event
from phenolab.models.write import DOCUMENTS, WritePhase, WriteStep
from phenolab.query.builder import QueryBuilder
from phenolab.query.concerned_items import add_concerned_item_filters
from phenolab.query.search import select_instant, select_type, select_uri
from phenolab.query.terms import IRI, Literal, Triple
from phenolab.repositories.annotation_repository import AnnotationRepository
from phenolab.repositories.base import EntityReader, EntityWriter
from phenolab.services.document_store import DocumentStore
from phenolab.services.graph_store import GraphStore
from phenolab.services.relational_store import RelationalStore
from phenolab.services.schema_service import SchemaService
from phenolab.services.validation import (
    ValidationPipeline,
    annotation_valid,
    attached_properties_compatible,
    identity_exists,
    nested,
    required_field,
    resource_exists,
    type_exists,
)
from phenolab.services.write_coordinator import WriteCoordinator
from phenolab.utils.datetime_utils import parse_stored_datetime, to_iso
from phenolab.utils.id_generator import IdentifierAllocator
from phenolab.vocabulary import (
    EVENT_STRUCTURAL_PREDICATES,
    OEEV_CONCERNS,
    OEEV_EVENT,
    RDF_TYPE,
    TIME_HAS_TIME,
    TIME_IN_XSD_DATETIMESTAMP,
    TIME_INSTANT,
    XSD_DATETIMESTAMP,
)

logger = logging.getLogger(__name__)


class EventRepository(EntityReader[Event], EntityWriter):
    """
    Repository for Event domain model
    """

    entity_type = 'event'

    def __init__(
        self,
        graph: GraphStore,
        documents: DocumentStore,
        relational: RelationalStore,
        allocator: IdentifierAllocator,
        settings: Optional[Settings] = None,
    ):
        EntityReader.__init__(self, graph, settings)
        self.relational = relational
        self.allocator = allocator
        self.annotations = AnnotationRepository(documents)
        self.schema = SchemaService(graph)

        validation = ValidationPipeline([
            identity_exists(self.schema, "event"),
            type_exists(self.schema, OEEV_EVENT, "event"),
            required_field('date_time', "event date"),
            nested('concerned_items', [resource_exists(self.schema, "concerned item")]),
            nested('annotations', [annotation_valid(self.schema)]),
            attached_properties_compatible(self.schema),
        ])
        EntityWriter.__init__(self, validation, WriteCoordinator(graph, allocator))

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    def prepare_search_query(
        self,
        criteria: SearchCriteria,
        exact_uri: Optional[str] = None,
    ) -> QueryBuilder:
        builder = QueryBuilder.new_query()
        uri = select_uri(builder, criteria.uri, exact_uri)
        select_type(builder, uri, criteria.rdf_type, OEEV_EVENT)
        add_concerned_item_filters(builder, uri, OEEV_CONCERNS,
                                   criteria.related_item_uri, criteria.related_item_label)
        select_instant(builder, uri, criteria.start, criteria.end)
        return builder

    def from_row(self, row: dict) -> Event:
        return Event(
            uri=row['uri'],
            rdf_type=row['rdfType'],
            date_time=parse_stored_datetime(row['dateTimeStamp']),
        )

    async def hydrate(self, event: Event, detailed: bool = False) -> Event:
        """
        Properties and concerned items always; annotations only for a
        single-event lookup.
        """
        reads = [
            self.attached_properties(event.uri, EVENT_STRUCTURAL_PREDICATES),
            self.concerned_items(event.uri),
        ]
        if detailed:
            reads.append(self.annotations.find_by_target(event.uri, limit=self.max_page_size))

        results = await asyncio.gather(*reads)
        event.properties, event.concerned_items = results[0], results[1]
        if detailed:
            event.annotations = results[2]
        return event

    async def concerned_items(self, uri: str) -> List[ConcernedItem]:
        rows = await self.graph.related_resources(uri, OEEV_CONCERNS, limit=self.max_page_size)
        return [
            ConcernedItem(
                uri=row['uri'],
                rdf_type=min(row['types']) if row['types'] else None,
                labels=sorted(row['labels']),
            )
            for row in rows
        ]

    async def search(self, criteria: SearchCriteria) -> Tuple[List[Event], int]:
        return await self.find(criteria)

    async def get_by_id(self, uri: str) -> Optional[Event]:
        return await self.find_by_id(uri)

    # =========================================================================
    # WRITE OPERATIONS
    # =========================================================================

    async def plan_writes(self, event: Event, uri: str, graph: GraphStore) -> List[WriteStep]:
        """
        Steps for one event, each paired with its inverse.

        PRIMARY:    type + instant triples, registry record
        RELATIONS:  concerned-item links (reconciled)
        PROPERTIES: attached property triples, annotation documents
        """
        instant = await self.allocator.allocate('instant')
        primary = [
            Triple(uri, RDF_TYPE, IRI(event.rdf_type)),
            Triple(uri, TIME_HAS_TIME, IRI(instant)),
            Triple(instant, RDF_TYPE, IRI(TIME_INSTANT)),
            Triple(instant, TIME_IN_XSD_DATETIMESTAMP,
                   Literal(to_iso(event.date_time), datatype=XSD_DATETIMESTAMP)),
        ]

        steps = [
            self.triples_step(graph, "insert event triples", WritePhase.PRIMARY, primary),
            self.register_step(self.relational, uri),
        ]

        if event.concerned_items:
            steps.append(self.relation_step(graph, uri, OEEV_CONCERNS, event.concerned_item_uris,
                                            "link concerned items"))

        if event.properties:
            properties = [prop.as_triple(uri) for prop in event.properties]
            steps.append(self.triples_step(graph, "insert event properties", WritePhase.PROPERTIES,
                                           properties))

        for annotation in event.annotations:
            steps.append(self._annotation_step(uri, annotation))

        return steps

    def _annotation_step(self, uri: str, annotation) -> WriteStep:
        inserted = []

        async def insert():
            stored = dataclasses.replace(
                annotation,
                uri=await self.allocator.allocate('annotation'),
                targets=[uri],
                created=annotation.created or datetime.now(timezone.utc),
            )
            inserted.append(await self.annotations.insert(stored))

        async def delete():
            for annotation_uri in inserted:
                await self.annotations.delete(annotation_uri)

        return WriteStep("insert annotation", WritePhase.PROPERTIES, DOCUMENTS, insert, delete)
