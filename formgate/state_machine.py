"""Submission status state machine.

Statuses and their legal transitions:

- ``Concept -> Submitable``: a user or automated flow declares intent to submit
- ``Submitable -> Sent``: processing succeeded and every active field is valid
- ``Submitable -> Concept``: processing found the form invalid
- ``Sent`` is terminal

The machine is a pure in-memory object: the runtime reads the stored status,
asks the machine for the next one, and persists the outcome itself.

Usage:
    >>> from formgate.state_machine import SubmissionStateMachine
    >>> from formgate.types import SubmissionStatus
    >>> sm = SubmissionStateMachine(submission="http://data.example.org/submissions/1")
    >>> sm.status
    <SubmissionStatus.CONCEPT: 'http://lblod.data.gift/concepts/79a52da4-f491-4e2f-9374-89a13cde8ecd'>
    >>> sm.transition_to(SubmissionStatus.SUBMITABLE)
    >>> sm.status_after_validation(is_valid=True)
    <SubmissionStatus.SENT: 'http://lblod.data.gift/concepts/9bd8d86d-bb10-4456-a84e-91e9507c374c'>
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set
import uuid

from formgate.errors import InvalidStatusTransitionError
from formgate.events import SubmissionEvent
from formgate.types import EventType, SubmissionStatus


# Maps each status to the set of statuses it can transition to
VALID_TRANSITIONS: Dict[SubmissionStatus, Set[SubmissionStatus]] = {
    SubmissionStatus.CONCEPT: {SubmissionStatus.SUBMITABLE},
    SubmissionStatus.SUBMITABLE: {SubmissionStatus.SENT, SubmissionStatus.CONCEPT},
    # Terminal
    SubmissionStatus.SENT: set(),
}


@dataclass
class SubmissionStateMachine:
    """Status state machine of one submission.

    Attributes:
        submission: URI of the submission
        status: Current status

    Examples:
        >>> sm = SubmissionStateMachine(submission="sub", status=SubmissionStatus.SUBMITABLE)
        >>> sm.can_transition_to(SubmissionStatus.SENT)
        True
        >>> sm.can_transition_to(SubmissionStatus.SUBMITABLE)
        False
    """

    submission: str
    status: SubmissionStatus = SubmissionStatus.CONCEPT
    _events: List[SubmissionEvent] = field(default_factory=list, init=False, repr=False)

    def can_transition_to(self, target_status: SubmissionStatus) -> bool:
        return target_status in VALID_TRANSITIONS.get(self.status, set())

    def transition_to(self, target_status: SubmissionStatus, reason: Optional[str] = None) -> None:
        """Move to ``target_status`` and record a status change event.

        Raises:
            InvalidStatusTransitionError: If the transition is not allowed
        """
        if not self.can_transition_to(target_status):
            valid_targets = VALID_TRANSITIONS[self.status]
            raise InvalidStatusTransitionError(
                current_status=self.status,
                target_status=target_status,
                message=(
                    f"Invalid status transition: cannot transition from "
                    f"'{self.status.label}' to '{target_status.label}'. "
                    f"Valid transitions from '{self.status.label}' are: "
                    f"{', '.join(sorted(s.label for s in valid_targets))}"
                    if valid_targets
                    else f"Invalid status transition: '{self.status.label}' is a terminal status, "
                    f"no transitions are allowed."
                ),
            )

        old_status = self.status
        self.status = target_status
        self._emit_event(old_status, target_status, reason)

    def status_after_validation(self, is_valid: bool) -> SubmissionStatus:
        """Status a processing run should leave the submission in.

        A submitable submission is sent when valid and returned to concept
        otherwise; a concept submission keeps its status.

        Raises:
            InvalidStatusTransitionError: If the submission was already sent
        """
        if self.is_terminal():
            raise InvalidStatusTransitionError(
                current_status=self.status,
                target_status=None,
                message=f"Submission {self.submission} has already been sent",
            )
        if self.status == SubmissionStatus.SUBMITABLE:
            return SubmissionStatus.SENT if is_valid else SubmissionStatus.CONCEPT
        return self.status

    def is_terminal(self) -> bool:
        return len(VALID_TRANSITIONS[self.status]) == 0

    def _emit_event(
        self,
        old_status: SubmissionStatus,
        new_status: SubmissionStatus,
        reason: Optional[str],
    ) -> None:
        payload: Dict[str, Any] = {"from": old_status.label, "to": new_status.label}
        if reason:
            payload["reason"] = reason
        self._events.append(
            SubmissionEvent(
                event_id=f"evt_{uuid.uuid4().hex[:16]}",
                type=EventType.STATUS_CHANGED,
                submission=self.submission,
                ts=datetime.now(timezone.utc),
                status=new_status,
                payload=payload,
            )
        )

    def get_events(self) -> List[SubmissionEvent]:
        """Status change events in chronological order."""
        return list(self._events)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the state machine to a dictionary."""
        return {"submission": self.submission, "status": self.status.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SubmissionStateMachine":
        """Deserialize a state machine from a dictionary."""
        return cls(submission=data["submission"], status=SubmissionStatus(data["status"]))


__all__ = [
    "SubmissionStateMachine",
    "VALID_TRANSITIONS",
]
