"""
Domain error taxonomy for the delivery lifecycle engine.

Every error carries a single human readable message plus a context dict of
identifiers that is attached to log events and never shown to API callers.
"""

from typing import Any, Optional


class SandtrackError(Exception):
    """Base exception for all engine errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationFailedError(SandtrackError):
    """Caller supplied input is missing or malformed."""


class PreconditionFailedError(SandtrackError):
    """The current state of the records does not permit the operation."""


class EntityNotFoundError(PreconditionFailedError):
    """A referenced record does not exist."""

    def __init__(self, entity: str, entity_id: Any, **context: Any):
        super().__init__(
            f"{entity} {entity_id} not found",
            entity=entity,
            entity_id=str(entity_id),
            **context,
        )
        self.entity = entity
        self.entity_id = entity_id


class StateTransitionError(PreconditionFailedError):
    """A status change that the transition table does not allow."""

    def __init__(
        self,
        message: str,
        current: Optional[str] = None,
        target: Optional[str] = None,
        **context: Any,
    ):
        super().__init__(message, current=current, target=target, **context)
        self.current = current
        self.target = target


class ConflictError(SandtrackError):
    """A concurrent writer got there first or a uniqueness rule was hit."""


class StoreUnavailableError(SandtrackError):
    """The entity store failed for reasons unrelated to the request."""
