"""Integration tests for SubmissionRuntime.

These tests drive complete flows against an in-memory persistent store:
- Processing a submitable submission (valid: sent, invalid: back to concept)
- Rejecting already sent submissions without touching the store
- Detecting a status changed by someone else while processing
- Persisting the form data artifact and its metadata
- Scheduling remote data objects
- The user submit flow with its rollback, which never resets a sent submission
- The automatic task flow with its task bookkeeping and rollback
"""

import pytest
from rdflib import Literal, URIRef

from formgate.errors import (
    InvalidStatusTransitionError,
    IOFailureError,
    StoreUnavailableError,
    SubmissionNotFoundError,
)
from formgate.events import EventEmitter
from formgate.namespaces import (
    ADMS,
    DCTERMS,
    MELDING,
    NFO,
    NMO,
    PROV,
    RDF,
    READY_TO_BE_CACHED,
    TASK,
)
from formgate.runtime import ProcessResult, process_submission
from formgate.store import GraphStore
from formgate.submissions import SubmissionRepository
from formgate.types import EventType, FieldErrorCode, SubmissionStatus, TaskStatus

DOCUMENT = URIRef("http://data.example.org/documents/1")
SUBMISSION = URIRef("http://data.example.org/submissions/1")
ATTACHMENT = URIRef("http://data.example.org/attachments/1")


def snapshot(store):
    return [tuple(st) for st in store.match()]


def invalid_source(prefixes):
    return prefixes + "<http://data.example.org/documents/1> a ex:Notice ."


def fail_scheduling(statements):
    raise StoreUnavailableError("public graph unavailable")


class TestProcessSubmission:
    """Test processing a submission through the runtime."""

    def test_valid_submission_is_sent(self, make_runtime):
        """A valid submitable submission becomes sent."""
        env = make_runtime()
        result = env.runtime.process_submission(env.submission)
        assert result.status == SubmissionStatus.SENT
        assert result.valid is True
        assert result.errors == []
        assert env.runtime.repository.get_status(env.submission) == SubmissionStatus.SENT
        assert env.store.match(SUBMISSION, NMO.sentDate, None, env.config.submission_graph)

    def test_invalid_submission_returns_to_concept(self, make_runtime, prefixes):
        """An invalid submitable submission goes back to concept and is not sent."""
        env = make_runtime(source=invalid_source(prefixes))
        result = env.runtime.process_submission(env.submission)
        assert result.status == SubmissionStatus.CONCEPT
        assert result.valid is False
        assert [e.code for e in result.errors] == [FieldErrorCode.REQUIRED]
        assert env.runtime.repository.get_status(env.submission) == SubmissionStatus.CONCEPT
        assert not env.store.match(SUBMISSION, NMO.sentDate, None)

    def test_concept_keeps_status(self, make_runtime):
        """Processing a concept submission persists data but keeps the status."""
        env = make_runtime(status=SubmissionStatus.CONCEPT)
        result = env.runtime.process_submission(env.submission)
        assert result.status == SubmissionStatus.CONCEPT
        assert result.valid is True
        assert result.artifact is not None
        assert env.runtime.repository.get_status(env.submission) == SubmissionStatus.CONCEPT

    def test_sent_submission_is_a_conflict(self, make_runtime):
        """Processing a sent submission fails and leaves the store untouched."""
        env = make_runtime(status=SubmissionStatus.SENT)
        before = snapshot(env.store)
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            env.runtime.process_submission(env.submission)
        assert exc_info.value.current_status == SubmissionStatus.SENT
        assert exc_info.value.to_detail().type.value == "conflict"
        assert snapshot(env.store) == before
        assert env.files.uris() == [env.config.form_ttl, env.config.meta_ttl, "share://harvest/1.ttl"]

    def test_status_changed_while_processing(self, make_runtime):
        """A status changed by another process is a conflict and nothing is persisted."""
        emitter = EventEmitter()
        env = make_runtime(emitter=emitter)
        repository = SubmissionRepository(env.store, env.config)

        def send_elsewhere(event):
            repository.set_status(env.submission, SubmissionStatus.SENT)

        emitter.on(EventType.VALIDATION_PASSED, send_elsewhere)
        with pytest.raises(InvalidStatusTransitionError):
            env.runtime.process_submission(env.submission)
        assert not env.store.match(DOCUMENT, DCTERMS.source, None)

    def test_scheduling_failure_leaves_status(self, make_runtime, monkeypatch):
        """The status is written last; a failure before it leaves the submission unsent."""
        env = make_runtime()
        monkeypatch.setattr(env.runtime.remote_data, "schedule", fail_scheduling)
        with pytest.raises(StoreUnavailableError):
            env.runtime.process_submission(env.submission)
        assert env.runtime.repository.get_status(env.submission) == SubmissionStatus.SUBMITABLE
        assert not env.store.match(SUBMISSION, NMO.sentDate, None)

    def test_unknown_status(self, make_runtime):
        """A submission without status cannot be processed."""
        env = make_runtime()
        env.store.delete(SUBMISSION, ADMS.status, None, env.config.submission_graph)
        with pytest.raises(SubmissionNotFoundError):
            env.runtime.process_submission(env.submission)

    def test_result_to_dict(self, make_runtime):
        """Should serialize the result."""
        env = make_runtime()
        data = env.runtime.process_submission(env.submission).to_dict()
        assert data["ok"] is True
        assert data["status"] == SubmissionStatus.SENT.value
        assert data["artifact"].startswith("share://submissions/")

    def test_module_level_helper(self, make_runtime):
        """process_submission works with a default runtime."""
        env = make_runtime()
        result = process_submission(env.submission, env.store, env.files, env.config)
        assert isinstance(result, ProcessResult)
        assert result.status == SubmissionStatus.SENT


class TestFormDataPersistence:
    """Test what processing writes."""

    def test_artifact_document(self, make_runtime):
        """The resolved form data is written as a Turtle document."""
        env = make_runtime()
        result = env.runtime.process_submission(env.submission)
        graph = GraphStore()
        graph.load(env.files.read(result.artifact), "http://example.org/artifact")
        titles = graph.match(DOCUMENT, DCTERMS.title, None, "http://example.org/artifact")
        assert [str(st.object) for st in titles] == ["Budget 2024"]

    def test_artifact_metadata(self, make_runtime):
        """The artifact is described in the file graph and linked from the document."""
        env = make_runtime()
        result = env.runtime.process_submission(env.submission)
        artifact = URIRef(result.artifact)
        file_graph = env.config.file_graph
        assert env.store.match(artifact, RDF.type, MELDING.SubmittedFormData, file_graph)
        assert env.store.match(artifact, RDF.type, NFO.FileDataObject, file_graph)
        assert env.store.match(artifact, DCTERMS["format"], Literal("text/turtle"), file_graph)
        links = env.store.match(DOCUMENT, DCTERMS.source, None, env.config.submission_graph)
        assert [st.object for st in links] == [artifact]

    def test_form_data_statements(self, make_runtime):
        """Statements covered by the form are stored; others are not."""
        env = make_runtime()
        env.runtime.process_submission(env.submission)
        graph = env.config.submission_graph
        assert env.store.match(DOCUMENT, DCTERMS.title, Literal("Budget 2024"), graph)
        assert not env.store.match(DOCUMENT, URIRef("http://data.example.org/ns/internalNote"), None)

    def test_reprocessing_replaces_source_link(self, make_runtime):
        """Processing again links only the newest artifact."""
        env = make_runtime(status=SubmissionStatus.CONCEPT)
        env.runtime.process_submission(env.submission)
        second = env.runtime.process_submission(env.submission)
        links = env.store.match(DOCUMENT, DCTERMS.source, None, env.config.submission_graph)
        assert [str(st.object) for st in links] == [second.artifact]


class TestRemoteData:
    """Test scheduling of remote data objects found in the form data."""

    def test_urls_are_scheduled(self, make_runtime):
        """Every nie:url subject is registered as ready to be cached."""
        env = make_runtime()
        env.runtime.process_submission(env.submission)
        public = env.config.public_graph
        assert env.store.match(ATTACHMENT, RDF.type, NFO.RemoteDataObject, public)
        assert env.store.match(ATTACHMENT, ADMS.status, URIRef(READY_TO_BE_CACHED), public)

    def test_existing_registration_is_replaced(self, make_runtime):
        """A previous registration is cleared before registering again."""
        env = make_runtime()
        public = env.config.public_graph
        env.store.load(
            "<http://data.example.org/attachments/1> <http://purl.org/dc/terms/title> \"stale\" .",
            public,
        )
        env.runtime.process_submission(env.submission)
        assert not env.store.match(ATTACHMENT, DCTERMS.title, None, public)
        assert len(env.store.match(ATTACHMENT, RDF.type, NFO.RemoteDataObject, public)) == 1

    def test_automatic_submission_files_are_kept(self, make_runtime):
        """Files created by the automatic submission flow are not rescheduled."""
        env = make_runtime()
        env.store.load(
            """
            @prefix nie: <http://www.semanticdesktop.org/ontologies/2007/01/19/nie#> .
            @prefix prov: <http://www.w3.org/ns/prov#> .
            @prefix task: <http://redpencil.data.gift/vocabularies/tasks/> .
            <http://data.example.org/harvests/1> nie:hasPart <http://data.example.org/attachments/1> .
            <http://data.example.org/jobs/1> a <http://vocab.deri.ie/cogs#Job> ;
                prov:generatedBy <http://data.example.org/harvests/1> ;
                task:operation <http://lblod.data.gift/id/jobs/concept/JobOperation/automaticSubmissionFlow> .
            """,
            env.config.submission_graph,
        )
        env.runtime.process_submission(env.submission)
        assert not env.store.match(ATTACHMENT, RDF.type, NFO.RemoteDataObject, env.config.public_graph)


class TestEvents:
    """Test audit events emitted while processing."""

    def test_event_sequence(self, make_runtime):
        """A successful run emits verdict, persistence, status change and scheduling events."""
        env = make_runtime()
        events = []
        env.runtime.emitter.on_any(events.append)
        env.runtime.process_submission(env.submission)
        assert [e.type for e in events] == [
            EventType.VALIDATION_PASSED,
            EventType.FORM_DATA_PERSISTED,
            EventType.REMOTE_DATA_SCHEDULED,
            EventType.STATUS_CHANGED,
        ]
        assert events[3].payload == {"from": "submitable", "to": "sent", "reason": "valid"}
        assert all(e.submission == str(SUBMISSION) for e in events)

    def test_invalid_run(self, make_runtime, prefixes):
        """An invalid run reports the failure and the return to concept."""
        env = make_runtime(source=invalid_source(prefixes))
        events = []
        env.runtime.emitter.on_any(events.append)
        env.runtime.process_submission(env.submission)
        assert events[0].type == EventType.VALIDATION_FAILED
        assert events[0].payload["errors"][0]["code"] == "required"
        status_changes = [e for e in events if e.type == EventType.STATUS_CHANGED]
        assert [e.status for e in status_changes] == [SubmissionStatus.CONCEPT]


class TestSubmit:
    """Test the user submit flow."""

    def test_concept_is_submitted(self, make_runtime):
        """A valid concept submission passes through submitable to sent."""
        env = make_runtime(status=SubmissionStatus.CONCEPT)
        events = []
        env.runtime.emitter.on(EventType.STATUS_CHANGED, events.append)
        result = env.runtime.submit(env.submission)
        assert result.status == SubmissionStatus.SENT
        assert [e.status for e in events] == [SubmissionStatus.SUBMITABLE, SubmissionStatus.SENT]

    def test_submit_by_document_uuid(self, make_runtime):
        """Submissions can be looked up by the uuid of their document."""
        env = make_runtime(status=SubmissionStatus.CONCEPT)
        result = env.runtime.submit_document("doc-1")
        assert result.status == SubmissionStatus.SENT

    def test_unknown_document(self, make_runtime):
        """An unknown document uuid is not found."""
        env = make_runtime()
        with pytest.raises(SubmissionNotFoundError):
            env.runtime.submit_document("missing")

    def test_invalid_concept_stays_concept(self, make_runtime, prefixes):
        """An invalid concept submission ends up in concept again."""
        env = make_runtime(status=SubmissionStatus.CONCEPT, source=invalid_source(prefixes))
        result = env.runtime.submit(env.submission)
        assert result.status == SubmissionStatus.CONCEPT
        assert env.runtime.repository.get_status(env.submission) == SubmissionStatus.CONCEPT

    def test_sent_is_a_conflict(self, make_runtime):
        """A sent submission cannot be submitted again."""
        env = make_runtime(status=SubmissionStatus.SENT)
        before = snapshot(env.store)
        with pytest.raises(InvalidStatusTransitionError):
            env.runtime.submit(env.submission)
        assert snapshot(env.store) == before

    def test_failure_resets_to_concept(self, make_runtime):
        """A collaborator failure returns the submission to concept and is re-raised."""
        env = make_runtime(status=SubmissionStatus.CONCEPT, source=None)
        with pytest.raises(IOFailureError):
            env.runtime.submit(env.submission)
        assert env.runtime.repository.get_status(env.submission) == SubmissionStatus.CONCEPT
        assert not env.store.match(DOCUMENT, DCTERMS.source, None)

    def test_failure_after_validation(self, make_runtime, monkeypatch):
        """A failure after a valid verdict returns the submission to concept without a sent date."""
        env = make_runtime(status=SubmissionStatus.CONCEPT)
        monkeypatch.setattr(env.runtime.remote_data, "schedule", fail_scheduling)
        with pytest.raises(StoreUnavailableError):
            env.runtime.submit(env.submission)
        assert env.runtime.repository.get_status(env.submission) == SubmissionStatus.CONCEPT
        assert not env.store.match(SUBMISSION, NMO.sentDate, None)

    def test_rollback_never_leaves_sent(self, make_runtime, monkeypatch):
        """A submission sent by someone else during a failing run stays sent."""
        env = make_runtime(status=SubmissionStatus.CONCEPT)
        repository = SubmissionRepository(env.store, env.config)

        def send_then_fail(statements):
            repository.set_status(env.submission, SubmissionStatus.SENT, sent=True)
            raise StoreUnavailableError("public graph unavailable")

        monkeypatch.setattr(env.runtime.remote_data, "schedule", send_then_fail)
        with pytest.raises(StoreUnavailableError):
            env.runtime.submit(env.submission)
        assert env.runtime.repository.get_status(env.submission) == SubmissionStatus.SENT


class TestHandleTask:
    """Test the automatic submission task flow."""

    def _task_status(self, env):
        graph = env.config.submission_graph
        statuses = env.store.match(URIRef(env.task), ADMS.status, None, graph)
        return [TaskStatus(str(st.object)) for st in statuses]

    def test_successful_sent(self, make_runtime):
        """A valid submission marks the task successful-sent with the artifact as result."""
        env = make_runtime()
        result = env.runtime.handle_task(env.task)
        assert self._task_status(env) == [TaskStatus.SUCCESSFUL_SENT]
        containers = env.store.match(URIRef(env.task), TASK.resultsContainer, None)
        assert len(containers) == 1
        files = env.store.match(containers[0].object, TASK.hasFile, None)
        assert [str(st.object) for st in files] == [result.artifact]

    def test_successful_concept(self, make_runtime, prefixes):
        """An invalid submission marks the task successful-concept."""
        env = make_runtime(source=invalid_source(prefixes))
        env.runtime.handle_task(env.task)
        assert self._task_status(env) == [TaskStatus.SUCCESSFUL_CONCEPT]

    def test_failure_marks_task_failed(self, make_runtime):
        """A processing failure marks the task failed, returns the submission to concept and is re-raised."""
        env = make_runtime(source=None)
        with pytest.raises(IOFailureError):
            env.runtime.handle_task(env.task)
        assert self._task_status(env) == [TaskStatus.FAILED]
        assert env.runtime.repository.get_status(env.submission) == SubmissionStatus.CONCEPT

    def test_failure_after_validation(self, make_runtime, monkeypatch):
        """A failure after a valid verdict leaves the submission in concept, not sent."""
        env = make_runtime()
        monkeypatch.setattr(env.runtime.remote_data, "schedule", fail_scheduling)
        with pytest.raises(StoreUnavailableError):
            env.runtime.handle_task(env.task)
        assert self._task_status(env) == [TaskStatus.FAILED]
        assert env.runtime.repository.get_status(env.submission) == SubmissionStatus.CONCEPT
        assert not env.store.match(SUBMISSION, NMO.sentDate, None)

    def test_task_without_submission(self, make_runtime):
        """A task that generated no submission fails."""
        env = make_runtime()
        env.store.delete(URIRef(env.task), PROV.generated, None, env.config.submission_graph)
        with pytest.raises(SubmissionNotFoundError):
            env.runtime.handle_task(env.task)
        assert self._task_status(env) == [TaskStatus.FAILED]

    def test_sent_submission_fails_task(self, make_runtime):
        """Processing an already sent submission is a conflict for the task too."""
        env = make_runtime(status=SubmissionStatus.SENT)
        with pytest.raises(InvalidStatusTransitionError):
            env.runtime.handle_task(env.task)
        assert self._task_status(env) == [TaskStatus.FAILED]
        assert env.runtime.repository.get_status(env.submission) == SubmissionStatus.SENT
