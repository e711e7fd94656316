"""
Write Coordinator - dependent writes across stores without a shared transaction

Per entity, steps run strictly in phase order (identifier, primary record,
relations, properties) because later stores need the subject to resolve.
If a step fails, every completed step of that entity is undone in reverse
order. Undo failures are recorded and do not stop the remaining undos.

Batch policy:
- default: per-entity isolation - one failing entity does not affect the others
- atomic: graph writes of the whole batch share one Neo4j transaction; on any
  failure it is rolled back and the document/relational steps of every entity
  in the batch are compensated
"""
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

from phenolab.exceptions import AggregateWriteError, PartialWriteError, PhenolabError
from phenolab.models.write import (
    GRAPH,
    PHASE_DONE_STATE,
    CompensationOutcome,
    EntityWriteResult,
    EntityWriteState,
    WritePhase,
    WriteStep,
)
from phenolab.services.graph_store import GraphStore
from phenolab.utils.id_generator import IdentifierAllocator

logger = logging.getLogger(__name__)

# planner(entity, assigned_uri, graph) -> steps; graph is the store or the
# transaction view the steps must write through
Planner = Callable[[Any, str, GraphStore], Awaitable[List[WriteStep]]]


class _BatchAborted(PhenolabError):
    """Raised inside the atomic-batch transaction to force a rollback"""

    def __init__(self, result: EntityWriteResult):
        self.result = result
        super().__init__(f"entity #{result.index} failed at {result.failed_step}")


class WriteCoordinator:
    """Sequences WriteSteps and compensates partial failures"""

    def __init__(self, graph: GraphStore, allocator: IdentifierAllocator):
        self.graph = graph
        self.allocator = allocator

    async def create(
        self,
        entities: Sequence[Any],
        entity_type: str,
        planner: Planner,
        atomic: bool = False,
    ) -> Tuple[List[str], Optional[AggregateWriteError]]:
        """
        Write every entity. Returns (created uris, None) on full success,
        otherwise the uris that stayed created and an AggregateWriteError
        naming each failed entity with its compensation outcome.
        """
        results = await self.run(entities, entity_type, planner, atomic=atomic)

        created = [r.uri for r in results if r.committed]
        failures = [
            PartialWriteError(r.uri, r.failed_step or "not attempted", r.error, r.compensation)
            for r in results if not r.committed
        ]
        return created, (AggregateWriteError(write_errors=failures) if failures else None)

    async def run(
        self,
        entities: Sequence[Any],
        entity_type: str,
        planner: Planner,
        atomic: bool = False,
    ) -> List[EntityWriteResult]:
        if atomic:
            return await self._run_atomic(entities, entity_type, planner)

        results = []
        for index, entity in enumerate(entities):
            result, completed = await self._write_entity(index, entity, entity_type, planner, self.graph)
            if result.error is not None:
                await self._compensate(result, completed)
            else:
                result.state = EntityWriteState.COMMITTED
                logger.info(f"✨ Created {entity_type} {result.uri}")
            results.append(result)
        return results

    async def _run_atomic(
        self,
        entities: Sequence[Any],
        entity_type: str,
        planner: Planner,
    ) -> List[EntityWriteResult]:
        written: List[Tuple[EntityWriteResult, List[WriteStep]]] = []
        try:
            async with self.graph.transaction() as tx:
                for index, entity in enumerate(entities):
                    result, completed = await self._write_entity(index, entity, entity_type, planner, tx)
                    written.append((result, completed))
                    if result.error is not None:
                        raise _BatchAborted(result)
        except Exception as e:
            cause = e.result.error if isinstance(e, _BatchAborted) else e
            logger.warning(f"↩️ Atomic {entity_type} batch aborted: {cause}")

            results = []
            for result, completed in written:
                if result.error is None:
                    result.failed_step = "atomic batch rollback"
                    result.error = cause
                # Graph steps were undone by the rollback
                await self._compensate(result, completed, skip_store=GRAPH)
                result.compensation.rolled_back = True
                results.append(result)
            for index in range(len(written), len(entities)):
                results.append(EntityWriteResult(index=index, error=cause))
            return results

        for result, _ in written:
            result.state = EntityWriteState.COMMITTED
        logger.info(f"✨ Created {len(written)} {entity_type}(s) atomically")
        return [result for result, _ in written]

    async def _write_entity(
        self,
        index: int,
        entity: Any,
        entity_type: str,
        planner: Planner,
        graph: GraphStore,
    ) -> Tuple[EntityWriteResult, List[WriteStep]]:
        """Run one entity's steps. Never raises; failures land in the result."""
        result = EntityWriteResult(index=index)
        completed: List[WriteStep] = []
        current = "allocate identifier"
        try:
            result.uri = await self.allocator.allocate(entity_type)
            result.state = EntityWriteState.IDENTIFIER_ASSIGNED

            current = "plan writes"
            steps = await planner(entity, result.uri, graph)

            for phase in WritePhase:
                for step in steps:
                    if step.phase != phase:
                        continue
                    current = step.name
                    await step.action()
                    completed.append(step)
                    result.completed_steps.append(step.name)
                result.state = PHASE_DONE_STATE[phase]
        except Exception as e:
            logger.error(f"❌ {entity_type} #{index} ({result.uri}) failed at '{current}': {e}")
            result.state = EntityWriteState.FAILED
            result.failed_step = current
            result.error = e
        return result, completed

    async def _compensate(
        self,
        result: EntityWriteResult,
        completed: List[WriteStep],
        skip_store: Optional[str] = None,
    ) -> CompensationOutcome:
        """Undo completed steps in reverse order, best effort"""
        result.state = EntityWriteState.COMPENSATING
        outcome = CompensationOutcome()

        for step in reversed(completed):
            if step.store == skip_store:
                continue
            try:
                await step.compensation()
                outcome.undone.append(step.name)
            except Exception as e:
                logger.warning(f"⚠️ Compensation of '{step.name}' for {result.uri} failed: {e}")
                outcome.failed.append((step.name, e))

        result.compensation = outcome
        result.state = (EntityWriteState.COMPENSATED if outcome.complete
                        else EntityWriteState.FATAL)
        if outcome.undone:
            logger.info(f"↩️ Compensated {result.uri}: undid {', '.join(outcome.undone)}")
        return outcome
