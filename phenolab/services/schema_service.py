"""
Schema Service - type hierarchy and property signatures from the graph

Classes form a DAG through rdfs:subClassOf; a type matches itself and every
subtype. Properties declare rdfs:domain / rdfs:range in the same graph.
"""
import asyncio
import logging
from typing import Optional, Set, Tuple

from phenolab.services.graph_store import GraphStore
from phenolab.vocabulary import RDF_TYPE, RDFS_DOMAIN, RDFS_RANGE

logger = logging.getLogger(__name__)


class SchemaService:
    """Identity and schema lookups used by validation and allocation"""

    def __init__(self, graph: GraphStore):
        self.graph = graph

    async def exists_uri(self, uri: str) -> bool:
        return await self.graph.exists_uri(uri)

    async def type_exists(self, type_uri: str) -> bool:
        return await self.graph.exists_uri(type_uri)

    async def is_subtype_of(self, candidate: str, root: str) -> bool:
        return await self.graph.is_subtype_of(candidate, root)

    async def types_of(self, uri: str) -> Set[str]:
        return await self.graph.objects(uri, RDF_TYPE)

    async def is_instance_of(self, uri: str, root: str) -> bool:
        """Some rdf:type of uri is root or a subtype of it"""
        for type_uri in await self.types_of(uri):
            if await self.is_subtype_of(type_uri, root):
                return True
        return False

    async def property_domain_range(
        self, predicate: str
    ) -> Optional[Tuple[Optional[str], Optional[str]]]:
        """
        (domain, range) declared for predicate, None if the predicate is
        unknown. A missing declaration leaves that side unconstrained.
        """
        if not await self.graph.exists_uri(predicate):
            return None

        domains, ranges = await asyncio.gather(
            self.graph.objects(predicate, RDFS_DOMAIN),
            self.graph.objects(predicate, RDFS_RANGE),
        )
        if len(domains) > 1 or len(ranges) > 1:
            logger.warning(f"Property {predicate} declares several domains/ranges, using the first")
        return (
            min(domains) if domains else None,
            min(ranges) if ranges else None,
        )
