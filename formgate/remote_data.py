"""Remote data objects referenced by submitted form data.

Every ``nie:url`` statement in the resolved form data names a remote file
to download. Existing registrations for such a URI are cleared and the URI
is registered again as ready to be cached, since the address may have been
edited since the last download. URIs created by the automatic submission
flow are left alone: their registration holds provenance and credentials
that would be lost.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from rdflib import Literal, URIRef

from formgate.config import FormGateConfig
from formgate.namespaces import (
    ADMS,
    AUTOMATIC_SUBMISSION_FLOW,
    COGS,
    DCTERMS,
    MU,
    NFO,
    NIE,
    PROV,
    RDF,
    READY_TO_BE_CACHED,
    TASK,
    XSD,
)
from formgate.store import Statement, TripleStore, subjects

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteDataObject:
    """A remote file to be downloaded.

    Attributes:
        uri: The remote data object resource
        address: The URL to download
        id: ``mu:uuid`` of the registration
    """
    uri: str
    address: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def statements(self, creator: str) -> List[Statement]:
        node = URIRef(self.uri)
        now = Literal(datetime.now(timezone.utc).isoformat(), datatype=XSD.dateTime)
        return [
            Statement(node, RDF.type, NFO.RemoteDataObject),
            Statement(node, RDF.type, NFO.FileDataObject),
            Statement(node, MU.uuid, Literal(self.id)),
            Statement(node, NIE.url, URIRef(self.address)),
            Statement(node, ADMS.status, URIRef(READY_TO_BE_CACHED)),
            Statement(node, DCTERMS.creator, URIRef(creator)),
            Statement(node, DCTERMS.created, now),
            Statement(node, DCTERMS.modified, now),
        ]


class RemoteDataScheduler:
    """Registers remote data objects found in resolved form data."""

    def __init__(self, store: TripleStore, config: Optional[FormGateConfig] = None) -> None:
        self.store = store
        self.config = config or FormGateConfig()

    @staticmethod
    def candidates(statements: Iterable[Statement]) -> List[RemoteDataObject]:
        """One candidate per subject of a ``nie:url`` statement."""
        found: Dict[str, RemoteDataObject] = {}
        for statement in statements:
            if statement.predicate != NIE.url:
                continue
            uri = str(statement.subject)
            if uri not in found:
                found[uri] = RemoteDataObject(uri=uri, address=str(statement.object))
        return list(found.values())

    def was_created_by_automatic_submission(self, uri: str) -> bool:
        operation = URIRef(AUTOMATIC_SUBMISSION_FLOW)
        for owner in subjects(self.store, NIE.hasPart, URIRef(uri)):
            for job in subjects(self.store, URIRef("http://www.w3.org/ns/prov#generatedBy"), owner):
                if self.store.match(job, RDF.type, COGS.Job) and self.store.match(
                    job, TASK.operation, operation
                ):
                    return True
        return False

    def schedule(self, statements: Iterable[Statement]) -> List[RemoteDataObject]:
        """Clear and re-register the candidates; returns the ones scheduled."""
        to_schedule = [
            candidate
            for candidate in self.candidates(statements)
            if not self.was_created_by_automatic_submission(candidate.uri)
        ]
        logger.info("Rescheduling %d URLs for download", len(to_schedule))
        graph = self.config.public_graph
        for remote in to_schedule:
            node = URIRef(remote.uri)
            self.store.delete(node, None, None, graph)
            self.store.delete(None, None, node, graph)
        if to_schedule:
            self.store.insert(
                [st for remote in to_schedule for st in remote.statements(self.config.creator)],
                graph,
            )
        return to_schedule


__all__ = [
    "RemoteDataObject",
    "RemoteDataScheduler",
]
