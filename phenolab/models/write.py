"""
Write-path models: steps, per-entity state machine, outcomes

WriteSteps are built per request, each paired with its compensating
action at construction time, and discarded once the coordinator is done.
They are never persisted.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Tuple


class WritePhase(Enum):
    """Ordered phases of a composite write. Steps run phase by phase."""
    PRIMARY = 1
    RELATIONS = 2
    PROPERTIES = 3  # attached properties and sub-resources


class EntityWriteState(Enum):
    """
    Per-entity state machine.

    Pending -> IdentifierAssigned -> PrimaryWritten -> RelationsWritten
    -> PropertiesWritten -> Committed, or Failed -> Compensating ->
    Compensated | Fatal.
    """
    PENDING = "pending"
    IDENTIFIER_ASSIGNED = "identifier_assigned"
    PRIMARY_WRITTEN = "primary_written"
    RELATIONS_WRITTEN = "relations_written"
    PROPERTIES_WRITTEN = "properties_written"
    COMMITTED = "committed"
    FAILED = "failed"
    COMPENSATING = "compensating"
    COMPENSATED = "compensated"
    FATAL = "fatal"


PHASE_DONE_STATE = {
    WritePhase.PRIMARY: EntityWriteState.PRIMARY_WRITTEN,
    WritePhase.RELATIONS: EntityWriteState.RELATIONS_WRITTEN,
    WritePhase.PROPERTIES: EntityWriteState.PROPERTIES_WRITTEN,
}


@dataclass
class WriteStep:
    """
    One atomic action against one backend, with its inverse.

    store names the backend ("graph", "documents", "relational"). In atomic
    batch mode graph steps run inside one transaction and are undone by its
    rollback instead of by their compensation.
    """
    name: str
    phase: WritePhase
    store: str
    action: Callable[[], Awaitable[Any]]
    compensation: Callable[[], Awaitable[Any]]


@dataclass
class CompensationOutcome:
    """Result of undoing completed steps, in reverse order"""
    undone: List[str] = field(default_factory=list)
    failed: List[Tuple[str, BaseException]] = field(default_factory=list)
    rolled_back: bool = False  # graph transaction rolled back (atomic mode)

    @property
    def complete(self) -> bool:
        return not self.failed


@dataclass
class EntityWriteResult:
    """What happened to one entity of a batch"""
    index: int
    uri: Optional[str] = None
    state: EntityWriteState = EntityWriteState.PENDING
    completed_steps: List[str] = field(default_factory=list)
    failed_step: Optional[str] = None
    error: Optional[BaseException] = None
    compensation: Optional[CompensationOutcome] = None

    @property
    def committed(self) -> bool:
        return self.state == EntityWriteState.COMMITTED


# WriteStep.store values
GRAPH = "graph"
DOCUMENTS = "documents"
RELATIONAL = "relational"
