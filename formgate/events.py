"""Audit events for submission processing.

The runtime emits a typed ``SubmissionEvent`` for every status change,
every validation verdict, every persisted artifact and every batch of
remote data objects scheduled for download. Events are immutable and can
be appended to a JSONL stream.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import json
import logging

from .types import EventType, SubmissionStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionEvent:
    """A single event in the life of a submission.

    Attributes:
        event_id: Unique event identifier (e.g., "evt_01H8...")
        type: Event type
        submission: URI of the submission
        ts: UTC timestamp
        status: Submission status after this event
        payload: Optional event-specific data

    Examples:
        >>> from datetime import datetime, timezone
        >>> event = SubmissionEvent(
        ...     event_id="evt_001",
        ...     type=EventType.VALIDATION_PASSED,
        ...     submission="http://data.example.org/submissions/1",
        ...     ts=datetime.now(timezone.utc),
        ...     status=SubmissionStatus.SUBMITABLE,
        ... )
    """
    event_id: str
    type: EventType
    submission: str
    ts: datetime
    status: SubmissionStatus
    payload: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if isinstance(self.status, str):
            object.__setattr__(self, "status", SubmissionStatus(self.status))
        if isinstance(self.type, str):
            object.__setattr__(self, "type", EventType(self.type))

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary; the timestamp is ISO 8601."""
        result: Dict[str, Any] = {
            "eventId": self.event_id,
            "type": self.type.value,
            "submission": self.submission,
            "ts": self.ts.isoformat(),
            "status": self.status.value,
        }
        if self.payload is not None:
            result["payload"] = self.payload
        return result

    def to_jsonl(self) -> str:
        """Single-line JSON for an append-only event stream."""
        return json.dumps(self.to_dict(), separators=(',', ':'))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SubmissionEvent":
        """Create SubmissionEvent from dictionary."""
        ts = datetime.fromisoformat(data["ts"].replace('Z', '+00:00'))
        return cls(
            event_id=data["eventId"],
            type=EventType(data["type"]),
            submission=data["submission"],
            ts=ts,
            status=SubmissionStatus(data["status"]),
            payload=data.get("payload"),
        )


EventListener = Callable[[SubmissionEvent], None]
"""Listener callback, called synchronously on emit."""


class EventEmitter:
    """Dispatches events to typed and wildcard listeners.

    Listeners are called in registration order: typed listeners first, then
    wildcard listeners. A failing listener is logged and does not prevent
    the others from running.
    """

    def __init__(self):
        self._listeners: Dict[EventType, List[EventListener]] = {}
        self._any_listeners: List[EventListener] = []

    def on(self, event_type: EventType, listener: EventListener) -> None:
        self._listeners.setdefault(event_type, []).append(listener)

    def on_any(self, listener: EventListener) -> None:
        self._any_listeners.append(listener)

    def off(self, event_type: EventType, listener: EventListener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def off_any(self, listener: EventListener) -> None:
        if listener in self._any_listeners:
            self._any_listeners.remove(listener)

    def emit(self, event: SubmissionEvent) -> None:
        """Dispatch an event to all registered listeners."""
        for listener in self._listeners.get(event.type, []) + self._any_listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Listener %r failed on event %s", listener, event.event_id)

    def clear(self) -> None:
        self._listeners.clear()
        self._any_listeners.clear()

    def listener_count(self, event_type: Optional[EventType] = None) -> int:
        """Count listeners for one type, or all listeners including wildcards."""
        if event_type is not None:
            return len(self._listeners.get(event_type, []))
        return len(self._any_listeners) + sum(len(l) for l in self._listeners.values())


__all__ = [
    "SubmissionEvent",
    "EventListener",
    "EventEmitter",
]
