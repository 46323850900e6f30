"""Graph store adapter.

The engine talks to statements through the small ``TripleStore`` protocol:
pattern ``match``, ``insert`` and ``delete`` against a named partition.
``GraphStore`` implements it on top of an ``rdflib.Dataset``, where every
partition is a named graph. The same class backs the in-memory copy used by
a resolution run and, given a persistent rdflib store, the shared store the
runtime persists into.

Usage:
    >>> from rdflib import Literal, URIRef
    >>> store = GraphStore()
    >>> g = "http://example.org/graph"
    >>> s, p = URIRef("http://example.org/a"), URIRef("http://example.org/p")
    >>> store.insert([Statement(s, p, Literal("x"))], g)
    >>> [st.object for st in store.match(s, p, None, g)]
    [rdflib.term.Literal('x')]
"""

import logging
from typing import Iterable, List, NamedTuple, Optional, Union

from rdflib import Dataset, Graph, URIRef
from rdflib.term import Node
from typing_extensions import Protocol, runtime_checkable

from formgate.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

GraphRef = Union[str, URIRef]


class Statement(NamedTuple):
    """A single fact in a graph partition."""
    subject: Node
    predicate: Node
    object: Node
    graph: Optional[URIRef] = None

    def triple(self):
        return (self.subject, self.predicate, self.object)

    def to_nt(self) -> str:
        return f"{self.subject.n3()} {self.predicate.n3()} {self.object.n3()} ."


@runtime_checkable
class TripleStore(Protocol):
    """Statement storage as consumed by the engine and the runtime."""

    def match(
        self,
        subject: Optional[Node] = None,
        predicate: Optional[Node] = None,
        object: Optional[Node] = None,
        graph: Optional[GraphRef] = None,
    ) -> List[Statement]:
        ...

    def insert(self, statements: Iterable[Statement], graph: GraphRef) -> None:
        ...

    def delete(
        self,
        subject: Optional[Node] = None,
        predicate: Optional[Node] = None,
        object: Optional[Node] = None,
        graph: Optional[GraphRef] = None,
    ) -> None:
        ...


def _sort_key(statement: Statement):
    return (
        statement.subject.n3(),
        statement.predicate.n3(),
        statement.object.n3(),
        str(statement.graph or ""),
    )


class GraphStore:
    """``TripleStore`` backed by an rdflib ``Dataset``.

    ``match`` returns statements in a stable order (sorted on the N-Triples
    form of subject, predicate and object), so resolving the same path twice
    over the same snapshot yields the same sequence.

    Attributes:
        dataset: The underlying rdflib dataset
    """

    def __init__(self, dataset: Optional[Dataset] = None) -> None:
        self.dataset = dataset if dataset is not None else Dataset()

    def _context(self, graph: GraphRef) -> Graph:
        return self.dataset.graph(URIRef(str(graph)))

    def match(
        self,
        subject: Optional[Node] = None,
        predicate: Optional[Node] = None,
        object: Optional[Node] = None,
        graph: Optional[GraphRef] = None,
    ) -> List[Statement]:
        """Return all statements matching the pattern; None is a wildcard.

        Raises:
            StoreUnavailableError: If the backing store fails
        """
        pattern = (subject, predicate, object)
        try:
            if graph is None:
                found = []
                for s, p, o, ctx in self.dataset.quads((subject, predicate, object, None)):
                    identifier = getattr(ctx, "identifier", ctx)
                    found.append(Statement(s, p, o, identifier))
            else:
                identifier = URIRef(str(graph))
                found = [
                    Statement(s, p, o, identifier)
                    for s, p, o in self._context(graph).triples(pattern)
                ]
        except Exception as exc:
            raise StoreUnavailableError(f"Graph store match failed: {exc}") from exc
        return sorted(found, key=_sort_key)

    def insert(self, statements: Iterable[Statement], graph: GraphRef) -> None:
        """Insert statements into the given partition.

        Raises:
            StoreUnavailableError: If the backing store fails
        """
        try:
            context = self._context(graph)
            for statement in statements:
                context.add(statement.triple())
        except Exception as exc:
            raise StoreUnavailableError(f"Graph store insert failed: {exc}") from exc

    def delete(
        self,
        subject: Optional[Node] = None,
        predicate: Optional[Node] = None,
        object: Optional[Node] = None,
        graph: Optional[GraphRef] = None,
    ) -> None:
        """Delete all statements matching the pattern.

        Raises:
            StoreUnavailableError: If the backing store fails
        """
        try:
            if graph is None:
                self.dataset.remove((subject, predicate, object, None))
            else:
                self._context(graph).remove((subject, predicate, object))
        except Exception as exc:
            raise StoreUnavailableError(f"Graph store delete failed: {exc}") from exc

    def load(self, content: Optional[str], graph: GraphRef, format: str = "turtle") -> None:
        """Parse a document into a partition. Empty content is ignored."""
        if not content:
            logger.debug("Nothing to load into <%s>", graph)
            return
        self._context(graph).parse(data=content, format=format)

    def serialize(self, graph: GraphRef, format: str = "turtle") -> str:
        """Serialize one partition."""
        return self._context(graph).serialize(format=format)

    def __len__(self) -> int:
        return len(self.match())


def serialize_statements(statements: Iterable[Statement], format: str = "turtle") -> str:
    """Serialize loose statements as a single document, dropping partitions."""
    graph = Graph()
    for statement in statements:
        graph.add(statement.triple())
    return graph.serialize(format=format)


def objects(
    store: TripleStore, subject: Node, predicate: Node, graph: Optional[GraphRef] = None
) -> List[Node]:
    return [st.object for st in store.match(subject, predicate, None, graph)]


def first_object(
    store: TripleStore, subject: Node, predicate: Node, graph: Optional[GraphRef] = None
) -> Optional[Node]:
    matches = store.match(subject, predicate, None, graph)
    return matches[0].object if matches else None


def subjects(
    store: TripleStore, predicate: Node, object: Node, graph: Optional[GraphRef] = None
) -> List[Node]:
    return [st.subject for st in store.match(None, predicate, object, graph)]


def first_subject(
    store: TripleStore, predicate: Node, object: Node, graph: Optional[GraphRef] = None
) -> Optional[Node]:
    matches = store.match(None, predicate, object, graph)
    return matches[0].subject if matches else None


__all__ = [
    "Statement",
    "TripleStore",
    "GraphStore",
    "serialize_statements",
    "objects",
    "first_object",
    "subjects",
    "first_subject",
]
