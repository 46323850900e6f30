"""Core type definitions for the form engine and the submission workflow.

This module defines the enumerations shared across the package:
- SubmissionStatus: Lifecycle statuses of a submission (stored as concept URIs)
- TaskStatus: Bookkeeping statuses of the task that triggered processing
- Grouping: How a constraint aggregates over the values found on its path
- ValidationOutcome: Three-valued verdict of a single constraint check
- ErrorType: Structured error categories raised or reported by the engine
- FieldErrorCode: Per-field failure codes derived from the constraint type
- EventType: Audit event types emitted by the runtime

Enum values are the URIs used in the stored data where such a URI exists,
so a value read from the store converts directly with ``SubmissionStatus(uri)``.
"""

from enum import Enum
from typing import Optional


class SubmissionStatus(str, Enum):
    """Submission lifecycle statuses.

    ``CONCEPT`` is editable, ``SUBMITABLE`` is waiting for validation and
    ``SENT`` is terminal. See ``formgate.state_machine`` for the transitions.
    """
    CONCEPT = "http://lblod.data.gift/concepts/79a52da4-f491-4e2f-9374-89a13cde8ecd"
    SUBMITABLE = "http://lblod.data.gift/concepts/f6330856-e261-430f-b949-8e510d20d0ff"
    SENT = "http://lblod.data.gift/concepts/9bd8d86d-bb10-4456-a84e-91e9507c374c"

    @property
    def label(self) -> str:
        return self.name.lower()


class TaskStatus(str, Enum):
    """Statuses written on the task that triggered a validation run."""
    BUSY = "http://redpencil.data.gift/id/concept/JobStatus/busy"
    SUCCESS = "http://redpencil.data.gift/id/concept/JobStatus/success"
    FAILED = "http://redpencil.data.gift/id/concept/JobStatus/failed"
    SUCCESSFUL_CONCEPT = "http://lblod.data.gift/automatische-melding-statuses/successful-concept"
    SUCCESSFUL_SENT = "http://lblod.data.gift/automatische-melding-statuses/successful-sent"


class Grouping(str, Enum):
    """Set-level semantics of a constraint.

    - BAG: the validator receives the whole ordered value list once
    - MATCH_SOME: the validator runs per value, valid if any value passes
    - MATCH_EVERY: the validator runs per value, valid if all values pass
      (an empty value list is valid)
    """
    BAG = "http://lblod.data.gift/vocabularies/forms/Bag"
    MATCH_SOME = "http://lblod.data.gift/vocabularies/forms/MatchSome"
    MATCH_EVERY = "http://lblod.data.gift/vocabularies/forms/MatchEvery"

    @classmethod
    def from_uri(cls, uri: Optional[str]) -> Optional["Grouping"]:
        """Return the grouping for a URI, or None when it is unknown."""
        if uri is None:
            return None
        try:
            return cls(str(uri))
        except ValueError:
            return None


class ValidationOutcome(str, Enum):
    """Verdict of a single constraint check.

    ``UNVALIDATED`` means no validator is registered for the constraint
    type. It counts as valid so unknown constraints never block a form.
    """
    UNVALIDATED = "unvalidated"
    PASS = "pass"
    FAIL = "fail"


class ErrorType(str, Enum):
    """Error categories.

    Each error type carries retry semantics (see ``formgate.errors``).
    """
    NO_MATCHING_FORM = "no_matching_form"
    MISSING_VALIDATOR = "missing_validator"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    STORE_UNAVAILABLE = "store_unavailable"
    IO_FAILURE = "io_failure"
    MALFORMED_PATH = "malformed_path"
    INVALID = "invalid"


class FieldErrorCode(str, Enum):
    """Per-field failure codes used in FieldError objects."""
    REQUIRED = "required"
    INVALID_VALUE = "invalid_value"
    INVALID_FORMAT = "invalid_format"
    CUSTOM = "custom"


class EventType(str, Enum):
    """Audit event types emitted while processing submissions."""
    STATUS_CHANGED = "submission.status_changed"
    VALIDATION_PASSED = "validation.passed"
    VALIDATION_FAILED = "validation.failed"
    FORM_DATA_PERSISTED = "form_data.persisted"
    REMOTE_DATA_SCHEDULED = "remote_data.scheduled"


__all__ = [
    "SubmissionStatus",
    "TaskStatus",
    "Grouping",
    "ValidationOutcome",
    "ErrorType",
    "FieldErrorCode",
    "EventType",
]
