"""Structured errors for form resolution and submission processing.

Two families live here:

- Exceptions raised to callers (``FormGateError`` and subclasses). Each one
  knows its ``ErrorType`` and whether the caller may retry the operation.
- Serialisable records (``FieldError`` and ``ErrorDetail``) that describe a
  failure to a client, e.g. an HTTP layer answering a failed submit.

Resolution-level problems (unknown constraint type, empty or malformed
path) are absorbed inside the engine and surface as invalid or empty
results. Collaborator failures (store, files) are never absorbed.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from formgate.types import ErrorType, FieldErrorCode, SubmissionStatus


@dataclass(frozen=True)
class FieldError:
    """Per-field validation failure.

    Attributes:
        path: Readable form of the field's property path (e.g. "<http://ex/name>")
        code: Failure code derived from the constraint type
        message: Human-readable message, the constraint's result message when declared
        field: URI of the form field
        constraint: URI of the failing constraint

    Examples:
        >>> err = FieldError(
        ...     path="<http://purl.org/dc/terms/title>",
        ...     code=FieldErrorCode.REQUIRED,
        ...     message="Title is required",
        ... )
        >>> err.to_dict()["code"]
        'required'
    """
    path: str
    code: FieldErrorCode
    message: str
    field: Optional[str] = None
    constraint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "path": self.path,
            "code": self.code.value if isinstance(self.code, FieldErrorCode) else self.code,
            "message": self.message,
        }
        if self.field is not None:
            result["field"] = self.field
        if self.constraint is not None:
            result["constraint"] = self.constraint
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldError":
        """Create FieldError from dict."""
        code = data["code"]
        if isinstance(code, str):
            code = FieldErrorCode(code)
        return cls(
            path=data["path"],
            code=code,
            message=data["message"],
            field=data.get("field"),
            constraint=data.get("constraint"),
        )


@dataclass(frozen=True)
class ErrorDetail:
    """Client-facing description of a failure.

    Attributes:
        type: Category of error
        retryable: Whether the caller can retry this exact operation
        message: Optional human-readable summary
        fields: Optional per-field validation failures
        status: Optional submission status at the time of the error
    """
    type: ErrorType
    retryable: bool
    message: Optional[str] = None
    fields: Optional[List[FieldError]] = None
    status: Optional[SubmissionStatus] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "type": self.type.value if isinstance(self.type, ErrorType) else self.type,
            "retryable": self.retryable,
        }
        if self.message is not None:
            result["message"] = self.message
        if self.fields is not None:
            result["fields"] = [f.to_dict() for f in self.fields]
        if self.status is not None:
            result["status"] = self.status.value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ErrorDetail":
        """Create ErrorDetail from dict."""
        fields = None
        if data.get("fields") is not None:
            fields = [FieldError.from_dict(f) for f in data["fields"]]
        status = data.get("status")
        return cls(
            type=ErrorType(data["type"]),
            retryable=data["retryable"],
            message=data.get("message"),
            fields=fields,
            status=SubmissionStatus(status) if status is not None else None,
        )


class FormGateError(Exception):
    """Base class for errors raised by the package."""

    error_type: ErrorType = ErrorType.INVALID
    retryable: bool = False

    def to_detail(self) -> ErrorDetail:
        return ErrorDetail(type=self.error_type, retryable=self.retryable, message=str(self))


class InvalidStatusTransitionError(FormGateError):
    """Raised when a submission cannot move to the requested status.

    Covers processing an already sent submission and a status that changed
    underneath a running process. Reported as a conflict; nothing is written.

    Attributes:
        current_status: Status of the submission when the transition was attempted
        target_status: The status that was requested, if any
    """

    error_type = ErrorType.CONFLICT
    retryable = False

    def __init__(
        self,
        current_status: Optional[SubmissionStatus],
        target_status: Optional[SubmissionStatus],
        message: str,
    ):
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(message)

    def to_detail(self) -> ErrorDetail:
        return ErrorDetail(
            type=self.error_type,
            retryable=self.retryable,
            message=str(self),
            status=self.current_status,
        )


class MalformedPathError(FormGateError):
    """A property path node in the form schema cannot be interpreted."""

    error_type = ErrorType.MALFORMED_PATH


class SubmissionNotFoundError(FormGateError):
    """No submission matches the given task or document."""

    error_type = ErrorType.NOT_FOUND


class StoreUnavailableError(FormGateError):
    """The backing graph store failed."""

    error_type = ErrorType.STORE_UNAVAILABLE
    retryable = True


class IOFailureError(FormGateError):
    """Reading or writing a document failed."""

    error_type = ErrorType.IO_FAILURE
    retryable = True


__all__ = [
    "FieldError",
    "ErrorDetail",
    "FormGateError",
    "InvalidStatusTransitionError",
    "MalformedPathError",
    "SubmissionNotFoundError",
    "StoreUnavailableError",
    "IOFailureError",
]
