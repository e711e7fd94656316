"""
Relation Reconciler - synchronize a stored relation set with a desired set

    current = stored objects of (subject, predicate)
    to_remove = current - desired     -> one batched delete (skipped if empty)
    to_add    = desired - current     -> one batched insert (skipped if empty)

Unchanged links are never touched, so metadata on those edges survives.
A failure after the delete phase is reported with the exact sets completed
instead of being raised, so the caller decides whether to compensate.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

from phenolab.exceptions import PartialWriteError
from phenolab.models.entity import RelationLink
from phenolab.query.terms import Triple
from phenolab.services.graph_store import GraphStore

logger = logging.getLogger(__name__)


@dataclass
class ReconcileOutcome:
    """
    What reconcile() did.

    removed/added are what actually reached the store; pending_* are the
    parts of the diff that were not applied because of error.
    inverse means the fixed node is the object: (other, predicate, subject).
    """
    subject: str
    predicate: str
    inverse: bool = False
    removed: Set[str] = field(default_factory=set)
    added: Set[str] = field(default_factory=set)
    unchanged: Set[str] = field(default_factory=set)
    pending_remove: Set[str] = field(default_factory=set)
    pending_add: Set[str] = field(default_factory=set)
    error: Optional[BaseException] = None

    @property
    def complete(self) -> bool:
        return self.error is None

    @property
    def changed(self) -> bool:
        return bool(self.removed or self.added)

    def raise_for_error(self, step: str = "reconcile") -> None:
        if self.error is not None:
            raise PartialWriteError(self.subject, f"{step} {self.predicate}", self.error)


class RelationReconciler:
    """Diff-based relation updates against the graph store"""

    def __init__(self, graph: GraphStore):
        self.graph = graph

    async def current(self, subject: str, predicate: str, inverse: bool = False) -> Set[str]:
        if inverse:
            return await self.graph.subjects(predicate, subject)
        return await self.graph.objects(subject, predicate)

    @staticmethod
    def links(subject: str, predicate: str, others: Iterable[str], inverse: bool = False) -> List[Triple]:
        if inverse:
            links = [RelationLink(other, predicate, subject) for other in sorted(others)]
        else:
            links = [RelationLink(subject, predicate, other) for other in sorted(others)]
        return [link.as_triple() for link in links]

    async def reconcile(
        self,
        subject: str,
        predicate: str,
        desired: Iterable[str],
        inverse: bool = False,
    ) -> ReconcileOutcome:
        """
        Make the stored set of (subject, predicate) equal desired.

        Read errors propagate (nothing was written). Write errors are
        returned in the outcome.
        """
        desired = set(desired)
        current = await self.current(subject, predicate, inverse)

        to_remove = current - desired
        to_add = desired - current
        outcome = ReconcileOutcome(
            subject=subject,
            predicate=predicate,
            inverse=inverse,
            unchanged=current & desired,
        )

        if to_remove:
            try:
                await self.graph.delete_triples(self.links(subject, predicate, to_remove, inverse))
            except Exception as e:
                logger.error(f"❌ Removing {len(to_remove)} {predicate} link(s) of {subject} failed: {e}")
                outcome.pending_remove = to_remove
                outcome.pending_add = to_add
                outcome.error = e
                return outcome
            outcome.removed = to_remove

        if to_add:
            try:
                await self.graph.insert_triples(self.links(subject, predicate, to_add, inverse))
            except Exception as e:
                logger.error(f"❌ Adding {len(to_add)} {predicate} link(s) of {subject} failed "
                             f"after removing {len(outcome.removed)}: {e}")
                outcome.pending_add = to_add
                outcome.error = e
                return outcome
            outcome.added = to_add

        if outcome.changed:
            logger.info(f"🔗 Reconciled {predicate} of {subject}: "
                        f"-{len(outcome.removed)} +{len(outcome.added)} ={len(outcome.unchanged)}")
        return outcome

    async def revert(self, outcome: ReconcileOutcome) -> None:
        """Undo what outcome applied: drop added links, restore removed ones."""
        if outcome.added:
            await self.graph.delete_triples(
                self.links(outcome.subject, outcome.predicate, outcome.added, outcome.inverse)
            )
        if outcome.removed:
            await self.graph.insert_triples(
                self.links(outcome.subject, outcome.predicate, outcome.removed, outcome.inverse)
            )
