"""
Error taxonomy for the data-access layer.

Read paths raise immediately. Write and validate paths accumulate
failures and report them once per request (AuthorizationError excepted,
which always fails fast).
"""
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from phenolab.models.validation import ValidationError
    from phenolab.models.write import CompensationOutcome


class PhenolabError(Exception):
    """Base class for every error raised by phenolab."""
    pass


class QueryError(PhenolabError):
    """Malformed filter or query rejected by a backend. Never retried."""
    pass


class NotFoundError(PhenolabError):
    """A required reference does not resolve."""

    def __init__(self, uri: str, what: str = "resource"):
        self.uri = uri
        self.what = what
        super().__init__(f"Unknown {what}: {uri}")


class AuthorizationError(PhenolabError):
    """Caller lacks the role required for the operation."""
    pass


class BackendUnavailableError(PhenolabError):
    """Connection-level failure talking to a store. Not retried here."""

    def __init__(self, backend: str, message: str):
        self.backend = backend
        super().__init__(f"{backend} unavailable: {message}")


class IdentifierExhaustedError(PhenolabError):
    """No free identifier found within the allowed number of draws."""
    pass


class AggregateValidationError(PhenolabError):
    """
    Wraps every ValidationError found in a batch.

    Only raised with a non-empty list - an empty result is success.
    """

    def __init__(self, errors: List['ValidationError']):
        if not errors:
            raise ValueError("AggregateValidationError requires at least one error")
        self.errors = list(errors)
        super().__init__(f"{len(self.errors)} validation error(s): "
                         + "; ".join(e.message for e in self.errors[:5]))


class PartialWriteError(PhenolabError):
    """
    One write step failed after others succeeded.

    Always carries the compensation outcome so the caller knows what,
    if anything, remains persisted.
    """

    def __init__(
        self,
        entity_uri: Optional[str],
        failed_step: str,
        cause: BaseException,
        compensation: Optional['CompensationOutcome'] = None,
    ):
        self.entity_uri = entity_uri
        self.failed_step = failed_step
        self.cause = cause
        self.compensation = compensation
        super().__init__(f"Write of {entity_uri or '<unassigned>'} failed at "
                         f"step '{failed_step}': {cause}")

    @property
    def fully_compensated(self) -> bool:
        return self.compensation is None or self.compensation.complete


class AggregateWriteError(PhenolabError):
    """
    Batch create report: every entity that was rejected or failed.

    validation_errors are entities never written, write_errors are entities
    whose writes failed (each with its compensation outcome).
    """

    def __init__(
        self,
        validation_errors: Optional[List['ValidationError']] = None,
        write_errors: Optional[List[PartialWriteError]] = None,
    ):
        self.validation_errors = list(validation_errors or [])
        self.write_errors = list(write_errors or [])
        super().__init__(f"{len(self.validation_errors)} invalid, "
                         f"{len(self.write_errors)} failed write(s)")

    def __bool__(self) -> bool:
        return bool(self.validation_errors or self.write_errors)
