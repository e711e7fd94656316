"""
Tests for WriteCoordinator: phase ordering, compensation, batch policies.
"""
from unittest.mock import AsyncMock

import pytest

from phenolab.exceptions import IdentifierExhaustedError, QueryError
from phenolab.models.write import (
    DOCUMENTS,
    GRAPH,
    RELATIONAL,
    EntityWriteState,
    WritePhase,
    WriteStep,
)
from phenolab.services.write_coordinator import WriteCoordinator
from phenolab.tests.fakes import BASE_URI, FakeGraphStore
from phenolab.utils.id_generator import IdentifierAllocator


class Recorder:
    """Builds steps whose actions and undos append to one shared log"""

    def __init__(self):
        self.log = []

    def step(self, name, phase, store=GRAPH, fail=False, undo_fails=False):
        async def action():
            self.log.append(f"do {name}")
            if fail:
                raise QueryError(f"{name} rejected")

        async def compensation():
            self.log.append(f"undo {name}")
            if undo_fails:
                raise QueryError(f"cannot undo {name}")

        return WriteStep(name, phase, store, action, compensation)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def coordinator(sequential_ids):
    allocator = IdentifierAllocator(AsyncMock(return_value=False), BASE_URI, generate=sequential_ids)
    return WriteCoordinator(FakeGraphStore(), allocator)


def planner_for(*step_lists):
    """Planner returning the i-th step list for the i-th entity"""
    async def plan(entity, uri, graph):
        return step_lists[entity]
    return plan


class TestSingleEntity:
    @pytest.mark.asyncio
    async def test_steps_run_in_phase_order(self, coordinator, recorder):
        steps = [
            recorder.step("properties", WritePhase.PROPERTIES),
            recorder.step("links", WritePhase.RELATIONS),
            recorder.step("record", WritePhase.PRIMARY, RELATIONAL),
            recorder.step("document", WritePhase.PRIMARY, DOCUMENTS),
        ]
        [result] = await coordinator.run([0], 'event', planner_for(steps))

        assert result.state == EntityWriteState.COMMITTED
        assert result.uri == f"{BASE_URI}/id/events/ev_000000000001"
        assert recorder.log == ["do record", "do document", "do links", "do properties"]
        assert result.completed_steps == ["record", "document", "links", "properties"]

    @pytest.mark.asyncio
    async def test_failure_undoes_completed_steps_in_reverse(self, coordinator, recorder):
        steps = [
            recorder.step("primary", WritePhase.PRIMARY),
            recorder.step("record", WritePhase.PRIMARY, RELATIONAL),
            recorder.step("links", WritePhase.RELATIONS, fail=True),
            recorder.step("properties", WritePhase.PROPERTIES),
        ]
        [result] = await coordinator.run([0], 'event', planner_for(steps))

        assert result.state == EntityWriteState.COMPENSATED
        assert result.failed_step == "links"
        assert isinstance(result.error, QueryError)
        assert recorder.log == ["do primary", "do record", "do links", "undo record", "undo primary"]
        assert result.compensation.undone == ["record", "primary"]
        assert result.compensation.complete

    @pytest.mark.asyncio
    async def test_undo_failures_do_not_stop_compensation(self, coordinator, recorder):
        steps = [
            recorder.step("primary", WritePhase.PRIMARY),
            recorder.step("record", WritePhase.PRIMARY, RELATIONAL, undo_fails=True),
            recorder.step("links", WritePhase.RELATIONS, fail=True),
        ]
        [result] = await coordinator.run([0], 'event', planner_for(steps))

        assert result.state == EntityWriteState.FATAL
        assert result.compensation.undone == ["primary"]
        assert [name for name, _ in result.compensation.failed] == ["record"]
        assert "undo primary" in recorder.log

    @pytest.mark.asyncio
    async def test_identifier_exhaustion(self, recorder):
        allocator = IdentifierAllocator(AsyncMock(return_value=True), BASE_URI, max_attempts=2)
        coordinator = WriteCoordinator(FakeGraphStore(), allocator)
        steps = [recorder.step("primary", WritePhase.PRIMARY)]

        [result] = await coordinator.run([0], 'event', planner_for(steps))

        assert result.failed_step == "allocate identifier"
        assert isinstance(result.error, IdentifierExhaustedError)
        assert result.uri is None
        assert recorder.log == []
        assert result.compensation.undone == []

    @pytest.mark.asyncio
    async def test_planning_failure(self, coordinator):
        async def broken(entity, uri, graph):
            raise QueryError("no plan")

        [result] = await coordinator.run([0], 'event', broken)

        assert result.failed_step == "plan writes"
        assert result.state == EntityWriteState.COMPENSATED


class TestBatch:
    @pytest.mark.asyncio
    async def test_entities_are_isolated(self, coordinator, recorder):
        plan = planner_for(
            [recorder.step("a", WritePhase.PRIMARY)],
            [recorder.step("b", WritePhase.PRIMARY, fail=True)],
            [recorder.step("c", WritePhase.PRIMARY)],
        )
        created, error = await coordinator.create([0, 1, 2], 'event', plan)

        assert len(created) == 2
        assert len(error.write_errors) == 1
        assert error.write_errors[0].failed_step == "b"
        assert recorder.log == ["do a", "do b", "do c"]

    @pytest.mark.asyncio
    async def test_success_reports_no_error(self, coordinator, recorder):
        plan = planner_for([recorder.step("a", WritePhase.PRIMARY)])
        created, error = await coordinator.create([0], 'event', plan)

        assert error is None
        assert created == [f"{BASE_URI}/id/events/ev_000000000001"]

    @pytest.mark.asyncio
    async def test_atomic_rollback_compensates_other_stores_only(self, coordinator, recorder):
        plan = planner_for(
            [
                recorder.step("graph a", WritePhase.PRIMARY, GRAPH),
                recorder.step("doc a", WritePhase.PRIMARY, DOCUMENTS),
            ],
            [
                recorder.step("graph b", WritePhase.PRIMARY, GRAPH),
                recorder.step("doc b", WritePhase.PROPERTIES, DOCUMENTS, fail=True),
            ],
            [recorder.step("graph c", WritePhase.PRIMARY, GRAPH)],
        )
        results = await coordinator.run([0, 1, 2], 'event', plan, atomic=True)

        assert coordinator.graph.rollbacks == 1
        assert recorder.log == ["do graph a", "do doc a", "do graph b", "do doc b", "undo doc a"]
        assert [r.committed for r in results] == [False, False, False]
        assert results[0].failed_step == "atomic batch rollback"
        assert results[0].compensation.rolled_back
        assert results[1].failed_step == "doc b"
        # Never attempted
        assert results[2].uri is None
        assert results[2].state == EntityWriteState.PENDING
        assert isinstance(results[2].error, QueryError)

    @pytest.mark.asyncio
    async def test_atomic_success_commits_everything(self, coordinator, recorder):
        plan = planner_for(
            [recorder.step("a", WritePhase.PRIMARY)],
            [recorder.step("b", WritePhase.PRIMARY)],
        )
        results = await coordinator.run([0, 1], 'event', plan, atomic=True)

        assert all(r.committed for r in results)
        assert coordinator.graph.rollbacks == 0
