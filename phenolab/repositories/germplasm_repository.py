"""
Germplasm Repository - read-only Neo4j search of plant material
"""
import dataclasses
import logging
from typing import List, Optional, Tuple

from phenolab.models.criteria import SearchCriteria
from phenolab.models.germplasm import Germplasm
from phenolab.query.builder import QueryBuilder
from phenolab.query.search import select_label, select_type, select_uri
from phenolab.repositories.base import EntityReader
from phenolab.vocabulary import OESO_FROM_SPECIES, OESO_GERMPLASM

logger = logging.getLogger(__name__)


class GermplasmRepository(EntityReader[Germplasm]):
    """Accessions, lots and varieties by uri, type and label"""

    def prepare_search_query(
        self,
        criteria: SearchCriteria,
        exact_uri: Optional[str] = None,
    ) -> QueryBuilder:
        builder = QueryBuilder.new_query()
        uri = select_uri(builder, criteria.uri, exact_uri)
        select_type(builder, uri, criteria.rdf_type, OESO_GERMPLASM)
        select_label(builder, uri, criteria.label, criteria.language)
        return builder

    def from_row(self, row: dict) -> Germplasm:
        return Germplasm(uri=row['uri'], rdf_type=row['rdfType'], label=row['label'])

    async def hydrate(self, germplasm: Germplasm, detailed: bool = False) -> Germplasm:
        species = await self.graph.objects(germplasm.uri, OESO_FROM_SPECIES)
        germplasm.species = min(species) if species else None
        return germplasm

    async def search(self, criteria: SearchCriteria) -> Tuple[List[Germplasm], int]:
        germplasms, total = await self.find(criteria)
        if criteria.language:
            # Labels were filtered on this tag
            germplasms = [dataclasses.replace(g, language=criteria.language) for g in germplasms]
        return germplasms, total

    async def get_by_id(self, uri: str) -> Optional[Germplasm]:
        return await self.find_by_id(uri)
