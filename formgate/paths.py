"""Property path resolution.

A property path is an ordered sequence of steps, each walking a predicate
forward (subject to object) or inverse (object to subject). Paths are read
from the form schema in their SHACL shape:

- ``sh:path ex:p`` is a simple path of one forward step
- ``sh:path [ sh:inversePath ex:p ]`` is a single inverse step
- ``sh:path ( ex:p [ sh:inversePath ex:q ] )`` is a complex path

Resolution returns every statement walked, across all steps, together with
the terminal values. The statements are replayed later when the resolved
form data is persisted.

Usage:
    >>> from rdflib import URIRef
    >>> from formgate.store import GraphStore, Statement
    >>> ex = "http://example.org/"
    >>> a, b, c = URIRef(ex + "a"), URIRef(ex + "b"), URIRef(ex + "c")
    >>> p, q = URIRef(ex + "p"), URIRef(ex + "q")
    >>> store = GraphStore()
    >>> store.insert([Statement(a, p, b), Statement(b, q, c)], ex + "g")
    >>> result = resolve_path(store, a, PropertyPath.of(forward(p), forward(q)), ex + "g")
    >>> list(result.values) == [c]
    True
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from rdflib import BNode, URIRef
from rdflib.term import Node

from formgate.errors import MalformedPathError
from formgate.namespaces import RDF, SH
from formgate.store import GraphRef, Statement, TripleStore, first_object

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Step:
    """One step of a property path.

    Attributes:
        predicate: Predicate to walk
        inverse: Walk from object to subject instead of subject to object
    """
    predicate: URIRef
    inverse: bool = False

    def __str__(self) -> str:
        prefix = "^" if self.inverse else ""
        return f"{prefix}{self.predicate.n3()}"


def forward(predicate: URIRef) -> Step:
    return Step(URIRef(predicate))


def inverse(predicate: URIRef) -> Step:
    return Step(URIRef(predicate), inverse=True)


@dataclass(frozen=True)
class PropertyPath:
    """Ordered sequence of steps.

    A single forward step is a simple path, resolved with one pattern match.
    Anything else is walked step by step.
    """
    steps: Tuple[Step, ...]

    @classmethod
    def of(cls, *steps: Step) -> "PropertyPath":
        return cls(tuple(steps))

    @property
    def is_simple(self) -> bool:
        return len(self.steps) == 1 and not self.steps[0].inverse

    def __len__(self) -> int:
        return len(self.steps)

    def __str__(self) -> str:
        return "/".join(str(step) for step in self.steps)


@dataclass(frozen=True)
class PathResult:
    """Statements walked and terminal values reached by a path."""
    statements: Tuple[Statement, ...] = ()
    values: Tuple[Node, ...] = ()


EMPTY_RESULT = PathResult()


def _list_items(store: TripleStore, head: Node, graph: GraphRef) -> List[Node]:
    items: List[Node] = []
    seen = set()
    node: Optional[Node] = head
    while node is not None and node != RDF.nil:
        if node in seen:
            raise MalformedPathError(f"Path list {head.n3()} is cyclic")
        seen.add(node)
        item = first_object(store, node, RDF.first, graph)
        if item is None:
            raise MalformedPathError(f"Path list node {node.n3()} has no rdf:first")
        items.append(item)
        node = first_object(store, node, RDF.rest, graph)
    return items


def _step_for(store: TripleStore, element: Node, graph: GraphRef) -> Step:
    if isinstance(element, URIRef):
        return forward(element)
    if isinstance(element, BNode):
        predicate = first_object(store, element, SH.inversePath, graph)
        if isinstance(predicate, URIRef):
            return inverse(predicate)
    raise MalformedPathError(f"Path element {element.n3()} is neither a predicate nor an inverse path")


def parse_path(store: TripleStore, node: Optional[Node], graph: GraphRef) -> PropertyPath:
    """Read the property path rooted at ``node`` from the form schema.

    Raises:
        MalformedPathError: If the node does not describe a path
    """
    if node is None:
        raise MalformedPathError("No path declared")
    if node == RDF.nil:
        raise MalformedPathError("Path list is empty")
    if isinstance(node, URIRef):
        return PropertyPath.of(forward(node))
    if not isinstance(node, BNode):
        raise MalformedPathError(f"Path {node.n3()} is a literal")

    if first_object(store, node, RDF.first, graph) is not None:
        elements = _list_items(store, node, graph)
        return PropertyPath(tuple(_step_for(store, element, graph) for element in elements))
    return PropertyPath.of(_step_for(store, node, graph))


def resolve_path(
    store: TripleStore, start: Node, path: PropertyPath, graph: GraphRef
) -> PathResult:
    """Walk ``path`` from ``start`` inside one partition.

    The walk stops with no values as soon as a step reaches no nodes; the
    statements matched up to that point are still returned.
    """
    if path.is_simple:
        statements = store.match(start, path.steps[0].predicate, None, graph)
        return PathResult(tuple(statements), tuple(st.object for st in statements))

    walked: List[Statement] = []
    frontier: Tuple[Node, ...] = (start,)
    for step in path.steps:
        reached: List[Node] = []
        for node in frontier:
            if step.inverse:
                matched = store.match(None, step.predicate, node, graph)
                reached.extend(st.subject for st in matched)
            else:
                matched = store.match(node, step.predicate, None, graph)
                reached.extend(st.object for st in matched)
            walked.extend(matched)
        frontier = tuple(reached)
        if not frontier:
            return PathResult(tuple(walked), ())
    return PathResult(tuple(walked), frontier)


def triples_for_path(path_node: Optional[Node], context) -> PathResult:
    """Resolve a path declared in the form schema against the context's subject.

    A malformed path is logged and yields an empty result, so one broken
    field never aborts the resolution of a whole form.
    """
    try:
        path = parse_path(context.store, path_node, context.form_graph)
    except MalformedPathError as exc:
        logger.warning("Skipping malformed path %s: %s", path_node, exc)
        return EMPTY_RESULT
    if context.source_node is None:
        return EMPTY_RESULT
    return resolve_path(context.store, context.source_node, path, context.source_graph)


__all__ = [
    "Step",
    "forward",
    "inverse",
    "PropertyPath",
    "PathResult",
    "EMPTY_RESULT",
    "parse_path",
    "resolve_path",
    "triples_for_path",
]
