"""SubmissionRuntime orchestrator.

Coordinates the form engine, the status state machine, the persistent
store and the document storage to process submissions:

- ``process_submission``: resolve and validate the form data of a
  submission, persist it, and move the submission to its next status
- ``submit``: the user flow; declare intent to submit, then process, and
  return the submission to concept if a collaborator fails
- ``handle_task``: the automatic flow; process the submission generated by
  a task and record the outcome on the task

Usage:
    >>> from formgate.files import InMemoryFileContent
    >>> from formgate.store import GraphStore
    >>> runtime = SubmissionRuntime(store=GraphStore(), files=InMemoryFileContent())
    >>> result = runtime.submit_document("5f0c...")                 # doctest: +SKIP
    >>> result.status                                               # doctest: +SKIP
    <SubmissionStatus.SENT: '...'>
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from formgate.config import FormGateConfig
from formgate.errors import FieldError, InvalidStatusTransitionError, SubmissionNotFoundError
from formgate.events import EventEmitter, SubmissionEvent
from formgate.files import FileContent
from formgate.forms import FormBuilder
from formgate.registry import ConstraintRegistry
from formgate.remote_data import RemoteDataScheduler
from formgate.state_machine import SubmissionStateMachine
from formgate.store import TripleStore
from formgate.submissions import Submission, SubmissionRepository
from formgate.tasks import StoreTaskStatus, TaskStatusSink
from formgate.types import EventType, SubmissionStatus, TaskStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of processing a submission.

    Attributes:
        status: Status the submission was left in
        artifact: URI of the persisted form data document
        valid: Whether every active field was valid
        errors: Per-field failures when invalid
    """
    status: SubmissionStatus
    artifact: Optional[str]
    valid: bool
    errors: List[FieldError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "ok": True,
            "status": self.status.value,
            "artifact": self.artifact,
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
        }


class SubmissionRuntime:
    """Processes submissions against the persistent store.

    Concurrent calls for the same submission are not coordinated here; the
    stored status is re-verified before each write, and a change made by
    another process surfaces as InvalidStatusTransitionError.

    Attributes:
        store: The persistent store
        files: Document storage
        config: Partition names and document locations
        registry: Validators for resolution runs; a fresh default registry per run when None
        task_status: Sink for task status updates
        emitter: Receives audit events
    """

    def __init__(
        self,
        store: TripleStore,
        files: FileContent,
        config: Optional[FormGateConfig] = None,
        registry: Optional[ConstraintRegistry] = None,
        task_status: Optional[TaskStatusSink] = None,
        emitter: Optional[EventEmitter] = None,
    ):
        self.store = store
        self.files = files
        self.config = config or FormGateConfig()
        self.registry = registry
        self.repository = SubmissionRepository(store, self.config)
        self.remote_data = RemoteDataScheduler(store, self.config)
        self.task_status = task_status if task_status is not None else StoreTaskStatus(store, self.config)
        self.emitter = emitter or EventEmitter()

    def _current_status(self, submission: Submission) -> SubmissionStatus:
        status = self.repository.get_status(submission)
        if status is None:
            raise SubmissionNotFoundError(f"Submission {submission.uri} has no known status")
        return status

    def _verify_status(self, submission: Submission, expected: SubmissionStatus) -> None:
        current = self.repository.get_status(submission)
        if current != expected:
            raise InvalidStatusTransitionError(
                current_status=current,
                target_status=None,
                message=f"Status of submission {submission.uri} changed while processing",
            )

    def _return_to_concept(self, submission: Submission) -> None:
        """Undo the intent to submit after a failed run; only a submitable submission is reset."""
        try:
            self.repository.set_status(
                submission, SubmissionStatus.CONCEPT, expected=SubmissionStatus.SUBMITABLE
            )
        except InvalidStatusTransitionError as exc:
            logger.warning("Submission %s was not returned to concept: %s", submission.uri, exc)

    def _emit(
        self,
        event_type: EventType,
        submission: Submission,
        status: SubmissionStatus,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.emitter.emit(
            SubmissionEvent(
                event_id=f"evt_{uuid.uuid4().hex[:16]}",
                type=event_type,
                submission=submission.uri,
                ts=datetime.now(timezone.utc),
                status=status,
                payload=payload,
            )
        )

    def process_submission(self, submission: Submission) -> ProcessResult:
        """Resolve, validate and persist a submission's form data.

        A submitable submission becomes sent when valid and returns to
        concept otherwise; a concept submission keeps its status.

        Raises:
            InvalidStatusTransitionError: If the submission was already sent
                (nothing is read or written) or its status changed meanwhile
            SubmissionNotFoundError: If the submission has no status
            StoreUnavailableError, IOFailureError: On collaborator failure
        """
        status = self._current_status(submission)
        machine = SubmissionStateMachine(submission=submission.uri, status=status)
        if machine.is_terminal():
            raise InvalidStatusTransitionError(
                current_status=status,
                target_status=None,
                message=f"Submission {submission.uri} already submitted",
            )

        builder = FormBuilder(
            submitted_resource=submission.submitted_resource,
            form_ttl=self.files.read(self.config.form_ttl),
            meta_ttl=self.files.read(self.config.meta_ttl),
            source_ttl=self.repository.load_source(submission, self.files),
            config=self.config,
            registry=self.registry,
        ).build()
        statements = builder.data()
        report = builder.report()
        logger.info(
            "Form for submitted resource %s is valid: %s", submission.submitted_resource, report.is_valid
        )
        self._emit(
            EventType.VALIDATION_PASSED if report.is_valid else EventType.VALIDATION_FAILED,
            submission,
            status,
            {"errors": [e.to_dict() for e in report.errors]},
        )
        target = machine.status_after_validation(report.is_valid)

        self._verify_status(submission, status)
        artifact = self.repository.persist_form_data(submission, statements, self.files)
        self._emit(EventType.FORM_DATA_PERSISTED, submission, status, {"artifact": artifact})

        scheduled = self.remote_data.schedule(statements)
        if scheduled:
            self._emit(
                EventType.REMOTE_DATA_SCHEDULED,
                submission,
                status,
                {"remoteDataObjects": [remote.uri for remote in scheduled]},
            )

        # The status write is the last write of a run.
        if target != status:
            self.repository.set_status(
                submission, target, expected=status, sent=target == SubmissionStatus.SENT
            )
            machine.transition_to(target, reason="valid" if report.is_valid else "invalid")
            logger.info("Submission %s is now %s", submission.uri, target.label)
            for event in machine.get_events():
                self.emitter.emit(event)

        return ProcessResult(
            status=target,
            artifact=artifact,
            valid=report.is_valid,
            errors=list(report.errors),
        )

    def submit(self, submission: Submission) -> ProcessResult:
        """Submit a submission on behalf of a user.

        Raises:
            InvalidStatusTransitionError: If the submission was already sent
            StoreUnavailableError, IOFailureError: On collaborator failure; the
                submission is returned to concept before re-raising
        """
        status = self._current_status(submission)
        if status == SubmissionStatus.SENT:
            raise InvalidStatusTransitionError(
                current_status=status,
                target_status=SubmissionStatus.SUBMITABLE,
                message=f"Submission {submission.uri} already submitted",
            )
        if status == SubmissionStatus.CONCEPT:
            machine = SubmissionStateMachine(submission=submission.uri, status=status)
            machine.transition_to(SubmissionStatus.SUBMITABLE, reason="submit")
            self.repository.set_status(submission, SubmissionStatus.SUBMITABLE, expected=status)
            for event in machine.get_events():
                self.emitter.emit(event)

        try:
            return self.process_submission(submission)
        except InvalidStatusTransitionError:
            raise
        except Exception:
            logger.exception("Something went wrong while submitting submission %s", submission.uri)
            self._return_to_concept(submission)
            raise

    def submit_document(self, document_uuid: str) -> ProcessResult:
        """Submit the submission of a submission document, looked up by uuid."""
        submission = self.repository.get_by_document(document_uuid)
        if submission is None:
            raise SubmissionNotFoundError(f"Submission {document_uuid} not found")
        return self.submit(submission)

    def handle_task(self, task: str) -> ProcessResult:
        """Process the submission generated by an automatic submission task.

        Raises:
            SubmissionNotFoundError: If the task generated no submission
            FormGateError: Any processing failure, after marking the task failed
                and returning a submitable submission to concept
        """
        self.task_status.update(task, TaskStatus.BUSY)
        submission = None
        try:
            submission = self.repository.get_by_task(task)
            if submission is None:
                raise SubmissionNotFoundError(f"No submission found for task {task}")
            result = self.process_submission(submission)
        except Exception as exc:
            logger.exception("Something went wrong while processing task %s", task)
            self.task_status.update(task, TaskStatus.FAILED)
            if submission is not None and not isinstance(exc, InvalidStatusTransitionError):
                self._return_to_concept(submission)
            raise

        outcome = (
            TaskStatus.SUCCESSFUL_SENT
            if result.status == SubmissionStatus.SENT
            else TaskStatus.SUCCESSFUL_CONCEPT
        )
        self.task_status.update(task, outcome, result=result.artifact)
        return result


def process_submission(
    submission: Submission,
    store: TripleStore,
    files: FileContent,
    config: Optional[FormGateConfig] = None,
) -> ProcessResult:
    """Process one submission with a default runtime."""
    return SubmissionRuntime(store=store, files=files, config=config).process_submission(submission)


__all__ = [
    "ProcessResult",
    "SubmissionRuntime",
    "process_submission",
]
