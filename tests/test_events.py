"""Unit tests for audit events and the event emitter.

Tests cover:
- Event creation and coercion of string values
- Serialization to dict and JSONL, and back
- Typed and wildcard listeners
- Isolation of failing listeners
- The events of a processing run as a JSONL stream
"""

import json
from datetime import datetime, timezone

from formgate.events import EventEmitter, SubmissionEvent
from formgate.types import EventType, SubmissionStatus

SUB = "http://data.example.org/submissions/1"


def make_event(event_type=EventType.VALIDATION_PASSED, payload=None):
    return SubmissionEvent(
        event_id="evt_001",
        type=event_type,
        submission=SUB,
        ts=datetime(2024, 2, 29, 10, 0, tzinfo=timezone.utc),
        status=SubmissionStatus.SUBMITABLE,
        payload=payload,
    )


class TestSubmissionEvent:
    """Test event values."""

    def test_string_values_are_coerced(self):
        """Type and status given as strings become enums."""
        event = SubmissionEvent(
            event_id="evt_002",
            type="submission.status_changed",
            submission=SUB,
            ts=datetime.now(timezone.utc),
            status=SubmissionStatus.SENT.value,
        )
        assert event.type is EventType.STATUS_CHANGED
        assert event.status is SubmissionStatus.SENT

    def test_to_dict(self):
        """Should serialize with camelCase keys and an ISO timestamp."""
        data = make_event(payload={"artifact": "share://submissions/1.ttl"}).to_dict()
        assert data == {
            "eventId": "evt_001",
            "type": "validation.passed",
            "submission": SUB,
            "ts": "2024-02-29T10:00:00+00:00",
            "status": SubmissionStatus.SUBMITABLE.value,
            "payload": {"artifact": "share://submissions/1.ttl"},
        }

    def test_to_dict_without_payload(self):
        """An event without payload has no payload key."""
        assert "payload" not in make_event().to_dict()

    def test_to_jsonl(self):
        """Should produce a single compact JSON line."""
        line = make_event().to_jsonl()
        assert "\n" not in line
        assert json.loads(line)["eventId"] == "evt_001"

    def test_from_dict(self):
        """Should restore an event, including a Z timestamp."""
        data = make_event(payload={"errors": []}).to_dict()
        data["ts"] = "2024-02-29T10:00:00Z"
        assert SubmissionEvent.from_dict(data) == make_event(payload={"errors": []})


class TestEventEmitter:
    """Test dispatching events to listeners."""

    def test_typed_listener(self):
        """Typed listeners only receive their event type."""
        emitter = EventEmitter()
        received = []
        emitter.on(EventType.VALIDATION_FAILED, received.append)
        emitter.emit(make_event(EventType.VALIDATION_PASSED))
        emitter.emit(make_event(EventType.VALIDATION_FAILED))
        assert [e.type for e in received] == [EventType.VALIDATION_FAILED]

    def test_typed_before_wildcard(self):
        """Typed listeners run before wildcard listeners."""
        emitter = EventEmitter()
        order = []
        emitter.on_any(lambda e: order.append("any"))
        emitter.on(EventType.VALIDATION_PASSED, lambda e: order.append("typed"))
        emitter.emit(make_event())
        assert order == ["typed", "any"]

    def test_failing_listener_is_isolated(self, caplog):
        """A failing listener is logged and the others still run."""
        emitter = EventEmitter()
        received = []

        def broken(event):
            raise RuntimeError("listener failed")

        emitter.on(EventType.VALIDATION_PASSED, broken)
        emitter.on_any(received.append)
        emitter.emit(make_event())
        assert len(received) == 1
        assert "evt_001" in caplog.text

    def test_off(self):
        """Removed listeners are no longer called."""
        emitter = EventEmitter()
        received = []
        emitter.on(EventType.VALIDATION_PASSED, received.append)
        emitter.on_any(received.append)
        emitter.off(EventType.VALIDATION_PASSED, received.append)
        emitter.off_any(received.append)
        emitter.emit(make_event())
        assert received == []

    def test_processing_stream_round_trip(self, make_runtime):
        """The events of a full run can be written as JSONL and read back unchanged."""
        env = make_runtime()
        received = []
        env.runtime.emitter.on_any(received.append)
        env.runtime.process_submission(env.submission)

        stream = "\n".join(event.to_jsonl() for event in received)
        restored = [SubmissionEvent.from_dict(json.loads(line)) for line in stream.splitlines()]
        assert restored == received
        assert {event.type for event in restored} == {
            EventType.VALIDATION_PASSED,
            EventType.FORM_DATA_PERSISTED,
            EventType.REMOTE_DATA_SCHEDULED,
            EventType.STATUS_CHANGED,
        }
        assert restored[-1].status == SubmissionStatus.SENT

    def test_listener_count(self):
        """Should count typed, wildcard and all listeners."""
        emitter = EventEmitter()
        emitter.on(EventType.VALIDATION_PASSED, print)
        emitter.on(EventType.STATUS_CHANGED, print)
        emitter.on_any(print)
        assert emitter.listener_count(EventType.VALIDATION_PASSED) == 1
        assert emitter.listener_count() == 3
        emitter.clear()
        assert emitter.listener_count() == 0
