"""Submission records in the persistent store.

A submission (``?submission``) points at the document it submits with
``dct:subject`` and carries its status as ``adms:status``. Harvested data of
an automatic submission is reached through the remote file it has as part
(``nie:hasPart``): a local download has it as data source, and the
harvested Turtle has that download as data source. A document edited by a
user (an ``ext:SubmissionDocument`` with a ``mu:uuid``) has its additions
and removals as typed ``dct:hasPart`` files. Once processed, the document
links the persisted form data with ``dct:source``.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from rdflib import Literal, URIRef
from rdflib.term import Node

from formgate.config import FormGateConfig
from formgate.documents import merge_form_data
from formgate.errors import InvalidStatusTransitionError, SubmissionNotFoundError
from formgate.files import SHARE_SCHEME, FileContent
from formgate.namespaces import (
    ADDITIONS_FILE_TYPE,
    ADMS,
    DBPEDIA,
    DCTERMS,
    EXT,
    FOAF,
    MELDING,
    MU,
    NFO,
    NIE,
    NMO,
    PROV,
    RDF,
    REMOVALS_FILE_TYPE,
    XSD,
)
from formgate.store import (
    Statement,
    TripleStore,
    first_object,
    first_subject,
    objects,
    serialize_statements,
)
from formgate.types import SubmissionStatus

logger = logging.getLogger(__name__)


def _now() -> Literal:
    return Literal(datetime.now(timezone.utc).isoformat(), datatype=XSD.dateTime)


@dataclass(frozen=True)
class Submission:
    """A submission to process.

    Attributes:
        uri: The submission resource
        submitted_resource: The submitted document (subject of validation)
        ttl_file: Harvested data document, if any
        task: Task that triggered processing, if any
    """
    uri: str
    submitted_resource: str
    ttl_file: Optional[str] = None
    task: Optional[str] = None


class SubmissionRepository:
    """Reads and writes submissions in the persistent store.

    Attributes:
        store: The persistent store
        config: Partition names and file locations
    """

    def __init__(self, store: TripleStore, config: Optional[FormGateConfig] = None) -> None:
        self.store = store
        self.config = config or FormGateConfig()

    @property
    def graph(self) -> str:
        return self.config.submission_graph

    def get_by_task(self, task: str) -> Optional[Submission]:
        """The submission generated by an automatic submission task."""
        task_node = URIRef(task)
        if not self.store.match(task_node, RDF.type, MELDING.AutomaticSubmissionTask, self.graph):
            return None
        for submission in objects(self.store, task_node, PROV.generated, self.graph):
            resource = first_object(self.store, submission, DCTERMS.subject, self.graph)
            if resource is None:
                continue
            return Submission(
                uri=str(submission),
                submitted_resource=str(resource),
                ttl_file=self._harvested_file(submission),
                task=task,
            )
        return None

    def get_by_document(self, document_uuid: str) -> Optional[Submission]:
        """The submission of the submission document with the given ``mu:uuid``."""
        document = first_subject(self.store, MU.uuid, Literal(document_uuid), self.graph)
        if document is None:
            return None
        submission = first_subject(self.store, DCTERMS.subject, document, self.graph)
        if submission is None:
            return None
        return Submission(
            uri=str(submission),
            submitted_resource=str(document),
            ttl_file=self._harvested_file(submission),
        )

    def _harvested_file(self, submission: Node) -> Optional[str]:
        file_graph = self.config.file_graph
        for remote_file in objects(self.store, submission, NIE.hasPart, self.graph):
            download = first_subject(self.store, NIE.dataSource, remote_file, file_graph)
            if download is None:
                continue
            ttl_file = first_subject(self.store, NIE.dataSource, download, file_graph)
            if ttl_file is not None:
                return str(ttl_file)
        return None

    def get_status(self, submission: Submission) -> Optional[SubmissionStatus]:
        value = first_object(self.store, URIRef(submission.uri), ADMS.status, self.graph)
        if value is None:
            return None
        try:
            return SubmissionStatus(str(value))
        except ValueError:
            logger.warning("Submission <%s> has unknown status <%s>", submission.uri, value)
            return None

    def set_status(
        self,
        submission: Submission,
        status: SubmissionStatus,
        expected: Optional[SubmissionStatus] = None,
        sent: bool = False,
    ) -> None:
        """Replace the stored status.

        With ``sent`` the ``nmo:sentDate`` is stamped in the same write.

        Raises:
            InvalidStatusTransitionError: If ``expected`` is given and the stored
                status is no longer that status
        """
        if expected is not None:
            current = self.get_status(submission)
            if current != expected:
                raise InvalidStatusTransitionError(
                    current_status=current,
                    target_status=status,
                    message=(
                        f"Status of submission {submission.uri} changed while processing: "
                        f"expected {expected.label}, found {current.label if current else 'none'}"
                    ),
                )
        node = URIRef(submission.uri)
        self.store.delete(node, ADMS.status, None, self.graph)
        self.store.delete(node, DCTERMS.modified, None, self.graph)
        now = _now()
        statements = [
            Statement(node, ADMS.status, URIRef(status.value)),
            Statement(node, DCTERMS.modified, now),
        ]
        if sent:
            statements.append(Statement(node, NMO.sentDate, now))
        self.store.insert(statements, self.graph)

    def _part(self, document: Node, file_type: str) -> Optional[str]:
        for part in objects(self.store, document, DCTERMS.hasPart, self.graph):
            if first_object(self.store, part, DCTERMS.type, self.config.file_graph) == URIRef(file_type):
                return str(part)
        return None

    def form_parts(self, submission: Submission) -> Tuple[Optional[str], Optional[str]]:
        """URIs of the additions and removals documents of the submitted document."""
        document = URIRef(submission.submitted_resource)
        return self._part(document, ADDITIONS_FILE_TYPE), self._part(document, REMOVALS_FILE_TYPE)

    def _write_ttl_file(
        self, content: str, files: FileContent, extra: Iterable[Tuple[Node, Node]] = ()
    ) -> str:
        file_id = str(uuid.uuid4())
        filename = f"{file_id}.ttl"
        uri = f"{SHARE_SCHEME}{self.config.artifact_folder}/{filename}"
        size = files.write(uri, content)

        node = URIRef(uri)
        now = _now()
        statements = [
            Statement(node, RDF.type, NFO.FileDataObject),
            Statement(node, MU.uuid, Literal(file_id)),
            Statement(node, NFO.fileName, Literal(filename)),
            Statement(node, DCTERMS.creator, URIRef(self.config.creator)),
            Statement(node, DCTERMS.created, now),
            Statement(node, DCTERMS.modified, now),
            Statement(node, DCTERMS["format"], Literal("text/turtle")),
            Statement(node, NFO.fileSize, Literal(size)),
            Statement(node, DBPEDIA.fileExtension, Literal("ttl")),
        ]
        statements.extend(Statement(node, predicate, obj) for predicate, obj in extra)
        self.store.insert(statements, self.config.file_graph)
        return uri

    def _rewrite_ttl_file(self, uri: str, content: str, files: FileContent) -> None:
        size = files.write(uri, content)
        node = URIRef(uri)
        file_graph = self.config.file_graph
        self.store.delete(node, DCTERMS.modified, None, file_graph)
        self.store.delete(node, NFO.fileSize, None, file_graph)
        self.store.insert(
            [Statement(node, DCTERMS.modified, _now()), Statement(node, NFO.fileSize, Literal(size))],
            file_graph,
        )

    def _save_part(self, document: Node, content: str, file_type: str, files: FileContent) -> str:
        existing = self._part(document, file_type)
        if existing is not None:
            self._rewrite_ttl_file(existing, content, files)
            return existing
        uri = self._write_ttl_file(content, files, [(DCTERMS.type, URIRef(file_type))])
        self.store.insert([Statement(document, DCTERMS.hasPart, URIRef(uri))], self.graph)
        return uri

    def _require_document(self, document_uuid: str) -> Submission:
        submission = self.get_by_document(document_uuid)
        if submission is None:
            raise SubmissionNotFoundError(f"No submission document found for uuid {document_uuid}")
        return submission

    def create_form(
        self,
        submission_uri: str,
        document: str,
        files: FileContent,
        additions: Optional[str] = None,
        removals: Optional[str] = None,
    ) -> str:
        """Register ``document`` as the submission document of a submission.

        The document gets a fresh ``mu:uuid`` and the given edits are saved
        as its first parts.

        Returns:
            The uuid of the submission document
        """
        document_uuid = str(uuid.uuid4())
        node = URIRef(document)
        self.store.insert(
            [
                Statement(node, RDF.type, EXT.SubmissionDocument),
                Statement(node, RDF.type, FOAF.Document),
                Statement(node, MU.uuid, Literal(document_uuid)),
                Statement(URIRef(submission_uri), DCTERMS.subject, node),
            ],
            self.graph,
        )
        self.update_form(document_uuid, files, additions=additions, removals=removals)
        return document_uuid

    def update_form(
        self,
        document_uuid: str,
        files: FileContent,
        additions: Optional[str] = None,
        removals: Optional[str] = None,
    ) -> Tuple[Optional[str], Optional[str]]:
        """Save the user's additions and removals of a concept submission document.

        Each given part is written to its existing file, or to a new file
        typed as additions or removals. A part that is not given is left as is.

        Returns:
            URIs of the additions and removals files

        Raises:
            SubmissionNotFoundError: If no submission document has the uuid
            InvalidStatusTransitionError: If the submission is not a concept
        """
        submission = self._require_document(document_uuid)
        status = self.get_status(submission)
        if status != SubmissionStatus.CONCEPT:
            raise InvalidStatusTransitionError(
                current_status=status,
                target_status=None,
                message=(
                    f"Submission document {document_uuid} cannot be updated "
                    "because the submission is no longer a concept"
                ),
            )
        document = URIRef(submission.submitted_resource)
        if additions is not None:
            self._save_part(document, additions, ADDITIONS_FILE_TYPE, files)
        if removals is not None:
            self._save_part(document, removals, REMOVALS_FILE_TYPE, files)
        return self.form_parts(submission)

    def cleanup_form(self, document_uuid: str) -> List[str]:
        """Unlink the part files of a submission document and drop their descriptions.

        The documents themselves are left in storage.
        """
        document = first_subject(self.store, MU.uuid, Literal(document_uuid), self.graph)
        if document is None:
            return []
        removed = []
        for part in objects(self.store, document, DCTERMS.hasPart, self.graph):
            self.store.delete(document, DCTERMS.hasPart, part, self.graph)
            self.store.delete(part, None, None, self.config.file_graph)
            removed.append(str(part))
        logger.info("Removed %d part file(s) of submission document %s", len(removed), document_uuid)
        return removed

    def submitted_form_data(self, submission: Submission, files: FileContent) -> Optional[str]:
        """Turtle of the form data persisted when the submission was last processed."""
        resource = URIRef(submission.submitted_resource)
        for source in objects(self.store, resource, DCTERMS.source, self.graph):
            if self.store.match(source, RDF.type, MELDING.SubmittedFormData, self.config.file_graph):
                return files.read(str(source))
        return None

    def form_data(self, submission: Submission, files: FileContent) -> Optional[str]:
        """The form data of a submission as a user sees it.

        A sent submission shows its persisted form data; any other shows the
        harvested data merged with the user's edits.
        """
        status = self.get_status(submission)
        logger.info("Status of submission %s is %s", submission.uri, status.label if status else "unknown")
        if status == SubmissionStatus.SENT:
            return self.submitted_form_data(submission, files)
        return self.load_source(submission, files)

    def get_form(self, document_uuid: str, files: FileContent) -> Optional[str]:
        """``form_data`` of the submission document with the given uuid."""
        return self.form_data(self._require_document(document_uuid), files)

    def load_source(self, submission: Submission, files: FileContent) -> Optional[str]:
        """Turtle of the data to validate: harvested data merged with user edits."""
        source = files.read(submission.ttl_file) if submission.ttl_file else None
        additions_uri, removals_uri = self.form_parts(submission)
        if additions_uri is None and removals_uri is None:
            return source
        logger.info("Merging additions and removals for <%s>", submission.submitted_resource)
        return merge_form_data(
            source,
            files.read(additions_uri) if additions_uri else None,
            files.read(removals_uri) if removals_uri else None,
        )

    def persist_form_data(
        self, submission: Submission, statements: List[Statement], files: FileContent
    ) -> str:
        """Write the resolved form data as a Turtle artifact and into the store.

        Returns:
            URI of the artifact
        """
        artifact = self._write_ttl_file(
            serialize_statements(statements), files, [(RDF.type, MELDING.SubmittedFormData)]
        )
        node = URIRef(artifact)

        resource = URIRef(submission.submitted_resource)
        self.store.delete(resource, DCTERMS.source, None, self.graph)
        self.store.insert([Statement(resource, DCTERMS.source, node)], self.graph)
        if statements:
            self.store.insert(statements, self.graph)
        else:
            logger.info(
                "No form data could be filled in for submission <%s> with submitted resource <%s>",
                submission.uri, submission.submitted_resource,
            )
        return artifact


__all__ = [
    "Submission",
    "SubmissionRepository",
]
