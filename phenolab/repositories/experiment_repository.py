"""
Experiment Repository - Neo4j storage

Experiments link to what they measure and to the sensors taking part:
- (experiment)-[oeso:measures]->(variable)
- (sensor)-[oeso:participatesIn]->(experiment)   reconciled by object

Both sets are replaced through the RelationReconciler, so unchanged links
keep their edge metadata.
"""
import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from phenolab.config.settings import Settings
from phenolab.exceptions import AggregateValidationError, NotFoundError
from phenolab.models.criteria import SearchCriteria
from phenolab.models.experiment import Experiment
from phenolab.models.user import User
from phenolab.models.validation import ReasonCode, ValidationError
from phenolab.query.builder import QueryBuilder
from phenolab.query.search import select_label, select_type, select_uri
from phenolab.repositories.base import EntityReader
from phenolab.services.graph_store import GraphStore
from phenolab.services.relation_reconciler import ReconcileOutcome, RelationReconciler
from phenolab.services.schema_service import SchemaService
from phenolab.services.validation import require_admin
from phenolab.utils.datetime_utils import parse_stored_datetime
from phenolab.vocabulary import (
    OESO_END_DATE,
    OESO_EXPERIMENT,
    OESO_MEASURES,
    OESO_PARTICIPATES_IN,
    OESO_SENSOR,
    OESO_START_DATE,
    OESO_VARIABLE,
)

logger = logging.getLogger(__name__)


class ExperimentRepository(EntityReader[Experiment]):
    """Repository for Experiment domain model"""

    def __init__(self, graph: GraphStore, settings: Optional[Settings] = None):
        super().__init__(graph, settings)
        self.schema = SchemaService(graph)
        self.reconciler = RelationReconciler(graph)

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
        select_type(builder, uri, criteria.rdf_type, OESO_EXPERIMENT)
        select_label(builder, uri, criteria.label)
        return builder

    def from_row(self, row: dict) -> Experiment:
        return Experiment(uri=row['uri'], rdf_type=row['rdfType'], label=row['label'])

    async def hydrate(self, experiment: Experiment, detailed: bool = False) -> Experiment:
        variables, sensors, start, end = await asyncio.gather(
            self.get_variables(experiment.uri),
            self.get_sensors(experiment.uri),
            self.graph.literal_values(experiment.uri, OESO_START_DATE),
            self.graph.literal_values(experiment.uri, OESO_END_DATE),
        )
        experiment.variables = variables
        experiment.sensors = sensors
        experiment.start_date = parse_stored_datetime(start[0]) if start else None
        experiment.end_date = parse_stored_datetime(end[0]) if end else None
        return experiment

    async def _linked(self, uri: str, predicate: str, inverse: bool = False) -> Dict[str, Optional[str]]:
        rows = await self.graph.related_resources(uri, predicate, inverse=inverse,
                                                  limit=self.max_page_size)
        return {row['uri']: (min(row['labels']) if row['labels'] else None) for row in rows}

    async def get_variables(self, uri: str) -> Dict[str, Optional[str]]:
        """Measured variables: URI -> label"""
        return await self._linked(uri, OESO_MEASURES)

    async def get_sensors(self, uri: str) -> Dict[str, Optional[str]]:
        """Participating sensors: URI -> label"""
        return await self._linked(uri, OESO_PARTICIPATES_IN, inverse=True)

    async def search(self, criteria: SearchCriteria) -> Tuple[List[Experiment], int]:
        return await self.find(criteria)

    async def get_by_id(self, uri: str) -> Optional[Experiment]:
        return await self.find_by_id(uri)

    # =========================================================================
    # RELATION UPDATES
    # =========================================================================

    async def _check_links(self, uri: str, targets: Iterable[str], root: str, what: str) -> None:
        if not await self.schema.is_instance_of(uri, OESO_EXPERIMENT):
            raise NotFoundError(uri, "experiment")

        errors = []
        for target in sorted(set(targets)):
            if not await self.schema.exists_uri(target):
                errors.append(ValidationError(target, ReasonCode.UNKNOWN_URI, f"Unknown {what}: {target}"))
            elif not await self.schema.is_instance_of(target, root):
                errors.append(ValidationError(target, ReasonCode.WRONG_TYPE, f"{target} is not a {what}"))
        if errors:
            raise AggregateValidationError(errors)

    async def update_linked_variables(
        self, uri: str, variables: Iterable[str], user: Optional[User]
    ) -> ReconcileOutcome:
        """Make the experiment measure exactly these variables"""
        require_admin(user)
        variables = set(variables)
        await self._check_links(uri, variables, OESO_VARIABLE, "variable")
        return await self.reconciler.reconcile(uri, OESO_MEASURES, variables)

    async def update_linked_sensors(
        self, uri: str, sensors: Iterable[str], user: Optional[User]
    ) -> ReconcileOutcome:
        """Make exactly these sensors participate in the experiment"""
        require_admin(user)
        sensors = set(sensors)
        await self._check_links(uri, sensors, OESO_SENSOR, "sensor")
        return await self.reconciler.reconcile(uri, OESO_PARTICIPATES_IN, sensors, inverse=True)
