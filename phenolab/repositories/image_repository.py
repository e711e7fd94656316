"""
Image Metadata Repository - document store primary storage

Storage strategy:
- PostgreSQL documents (collection 'images'): full metadata, searched here
- Neo4j: image type and concerned-item links, so images resolve as
  resources and show up next to the items they concern
- PostgreSQL core.entity_records: registry row

Concerned items and the sensor must already exist; the sensor must be typed
as a sensing device.
"""
import dataclasses
import logging
import time
from typing import List, Optional, Tuple

from phenolab.config.settings import Settings, get_settings
from phenolab.models.criteria import SearchCriteria
from phenolab.models.image import ImageMetadata
from phenolab.models.write import WritePhase, WriteStep
from phenolab.query.search import page_window
from phenolab.query.terms import IRI, Triple
from phenolab.repositories.base import EntityWriter
from phenolab.services.document_store import DocumentStore
from phenolab.services.graph_store import GraphStore
from phenolab.services.relational_store import RelationalStore
from phenolab.services.schema_service import SchemaService
from phenolab.services.validation import (
    ValidationPipeline,
    identity_exists,
    instance_of,
    nested,
    required_field,
    resource_exists,
    type_exists,
)
from phenolab.services.write_coordinator import WriteCoordinator
from phenolab.utils.id_generator import IdentifierAllocator
from phenolab.vocabulary import OEEV_CONCERNS, OESO_IMAGE, OESO_SENSOR, RDF_TYPE

logger = logging.getLogger(__name__)

COLLECTION = "images"
SHOOTING_DATE = ('configuration', 'date')


class ImageMetadataRepository(EntityWriter):
    """Repository for ImageMetadata domain model"""

    entity_type = 'image'

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
        self.schema = SchemaService(graph)

        validation = ValidationPipeline([
            identity_exists(self.schema, "image"),
            type_exists(self.schema, OESO_IMAGE, "image"),
            required_field('configuration.date', "shooting date"),
            nested('concerned_items', [resource_exists(self.schema, "concerned item")]),
            instance_of(self.schema, 'configuration.sensor', OESO_SENSOR, "sensor", required=True),
            required_field('file_information.server_file_path', "image file path"),
        ])
        super().__init__(validation, WriteCoordinator(graph, allocator))

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    @staticmethod
    def _conditions(criteria: SearchCriteria) -> dict:
        filter_doc = {}
        if criteria.rdf_type:
            filter_doc['rdfType'] = criteria.rdf_type
        if criteria.related_item_uri:
            filter_doc['concernedItems'] = [{'uri': criteria.related_item_uri}]
        if criteria.sensor:
            filter_doc['configuration'] = {'sensor': criteria.sensor}

        return {
            'filter_doc': filter_doc or None,
            'regex': {'uri': criteria.uri} if criteria.uri else None,
            'date_range': ((SHOOTING_DATE, criteria.start, criteria.end)
                           if criteria.has_date_range else None),
        }

    async def search(self, criteria: SearchCriteria) -> Tuple[List[ImageMetadata], int]:
        limit, offset = page_window(criteria.page, criteria.page_size,
                                    self.settings.default_page_size, self.settings.max_page_size)
        conditions = self._conditions(criteria)
        docs = await self.documents.find(COLLECTION, limit=limit, offset=offset, **conditions)
        total = await self.documents.count(COLLECTION, **conditions)
        return [ImageMetadata.from_document(doc) for doc in docs], total

    async def count(self, criteria: SearchCriteria) -> int:
        return await self.documents.count(COLLECTION, **self._conditions(criteria))

    async def get_by_id(self, uri: str) -> Optional[ImageMetadata]:
        doc = await self.documents.find_by_uri(COLLECTION, uri)
        return ImageMetadata.from_document(doc) if doc else None

    # =========================================================================
    # WRITE OPERATIONS
    # =========================================================================

    async def plan_writes(self, image: ImageMetadata, uri: str, graph: GraphStore) -> List[WriteStep]:
        """
        PRIMARY:   metadata document, image type triple, registry record
        RELATIONS: concerned-item links
        """
        configuration = dataclasses.replace(
            image.configuration,
            timestamp=image.configuration.timestamp or int(time.time() * 1000),
        )
        doc = dataclasses.replace(image, uri=uri, configuration=configuration).to_document()

        steps = [
            self.document_step(self.documents, COLLECTION, doc, "insert image metadata"),
            self.triples_step(graph, "insert image type", WritePhase.PRIMARY,
                              [Triple(uri, RDF_TYPE, IRI(image.rdf_type))]),
            self.register_step(self.relational, uri),
        ]
        if image.concerned_items:
            steps.append(self.relation_step(graph, uri, OEEV_CONCERNS, image.concerned_item_uris,
                                            "link concerned items"))
        return steps
