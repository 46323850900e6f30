"""Task status bookkeeping.

The task that triggered a validation run records its progress: busy while
running, then successful-sent, successful-concept or failed.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from rdflib import Literal, URIRef
from typing_extensions import Protocol, runtime_checkable

from formgate.config import FormGateConfig
from formgate.namespaces import ADMS, ASJ, DCTERMS, MU, NFO, RDF, TASK, XSD
from formgate.store import Statement, TripleStore
from formgate.types import TaskStatus

logger = logging.getLogger(__name__)


@runtime_checkable
class TaskStatusSink(Protocol):
    """Receives task status updates."""

    def update(
        self,
        task: str,
        status: TaskStatus,
        error: Optional[str] = None,
        result: Optional[str] = None,
    ) -> None:
        ...


class StoreTaskStatus:
    """Writes task statuses into the persistent store.

    The previous ``adms:status`` and ``dct:modified`` of the task are
    replaced. An error URI is linked on failure; a result file is wrapped
    in a new data container linked as the task's results container.
    """

    def __init__(self, store: TripleStore, config: Optional[FormGateConfig] = None) -> None:
        self.store = store
        self.config = config or FormGateConfig()

    def update(
        self,
        task: str,
        status: TaskStatus,
        error: Optional[str] = None,
        result: Optional[str] = None,
    ) -> None:
        graph = self.config.submission_graph
        node = URIRef(task)
        now = Literal(datetime.now(timezone.utc).isoformat(), datatype=XSD.dateTime)

        self.store.delete(node, ADMS.status, None, graph)
        self.store.delete(node, DCTERMS.modified, None, graph)
        statements = [
            Statement(node, ADMS.status, URIRef(status.value)),
            Statement(node, DCTERMS.modified, now),
        ]
        if error and status == TaskStatus.FAILED:
            statements.append(Statement(node, TASK.error, URIRef(error)))
        if result:
            container_id = str(uuid.uuid4())
            container = ASJ[container_id]
            statements.extend([
                Statement(container, RDF.type, NFO.DataContainer),
                Statement(container, MU.uuid, Literal(container_id)),
                Statement(container, TASK.hasFile, URIRef(result)),
                Statement(node, TASK.resultsContainer, container),
            ])
        self.store.insert(statements, graph)
        logger.info("Task <%s> is now %s", task, status.name.lower())


__all__ = [
    "TaskStatusSink",
    "StoreTaskStatus",
]
