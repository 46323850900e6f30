"""Field-group resolution.

A form owns field groups (``form:hasFieldGroup``); a group owns fields
(``form:hasField``). Fields and groups may own conditional field groups
(``form:hasConditionalFieldGroup``), each wrapping field groups behind a set
of conditions (``form:conditions``). A conditional group is active only when
every condition checks valid against the current data.

``resolve_fields`` expands the tree layer by layer: the fields of the
current layer are collected, their conditional groups are evaluated, and
the groups of the active ones become the next layer. Each layer only looks
one level deeper, so the expansion ends once a layer activates nothing;
an acyclic form schema guarantees that.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from rdflib.term import Node

from formgate.constraints import check
from formgate.errors import MalformedPathError
from formgate.namespaces import FORM, SH
from formgate.paths import parse_path
from formgate.store import GraphRef, TripleStore, first_object, objects
from formgate.types import Grouping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Field:
    """A form field as declared in the form schema.

    Attributes:
        node: The field resource
        path: The node of its ``sh:path`` declaration
        validations: Constraint nodes listed with ``form:validations``
        grouping: Optional grouping declared on the field itself
    """
    node: Node
    path: Optional[Node] = None
    validations: Tuple[Node, ...] = ()
    grouping: Optional[Grouping] = None

    @classmethod
    def load(cls, store: TripleStore, node: Node, form_graph: GraphRef) -> "Field":
        return cls(
            node=node,
            path=first_object(store, node, SH.path, form_graph),
            validations=tuple(objects(store, node, FORM.validations, form_graph)),
            grouping=Grouping.from_uri(first_object(store, node, FORM.grouping, form_graph)),
        )

    def path_label(self, context) -> str:
        """Readable form of the field's path, for error reports."""
        try:
            return str(parse_path(context.store, self.path, context.form_graph))
        except MalformedPathError:
            return str(self.path) if self.path is not None else ""


def fields_for_group(group: Node, context) -> Tuple[Field, ...]:
    store = context.store
    return tuple(
        Field.load(store, node, context.form_graph)
        for node in objects(store, group, FORM.hasField, context.form_graph)
    )


def conditions_hold(conditional_group: Node, context) -> bool:
    """True if every condition of a conditional group checks valid."""
    conditions = objects(context.store, conditional_group, FORM.conditions, context.form_graph)
    return all(check(condition, context).valid for condition in conditions)


def resolve_fields(form: Node, context) -> List[Field]:
    """Return the active fields of a form in discovery order.

    Args:
        form: The form root node
        context: ResolutionContext holding form, meta and source partitions

    Returns:
        Fields of the top-level groups followed, layer by layer, by the
        fields of every active conditional group
    """
    store, form_graph = context.store, context.form_graph
    frontier: Tuple[Node, ...] = tuple(objects(store, form, FORM.hasFieldGroup, form_graph))
    logger.debug("Getting fields for %d field groups", len(frontier))

    resolved: List[Field] = []
    depth = 0
    while frontier:
        layer = tuple(field for group in frontier for field in fields_for_group(group, context))
        resolved.extend(layer)

        owners = frontier + tuple(field.node for field in layer)
        conditional = tuple(
            conditional_group
            for owner in owners
            for conditional_group in objects(store, owner, FORM.hasConditionalFieldGroup, form_graph)
        )
        active = tuple(group for group in conditional if conditions_hold(group, context))
        logger.debug(
            "Layer %d: %d fields, %d of %d conditional groups active",
            depth, len(layer), len(active), len(conditional),
        )
        frontier = tuple(
            group
            for conditional_group in active
            for group in objects(store, conditional_group, FORM.hasFieldGroup, form_graph)
        )
        depth += 1

    logger.info("Found %d fields", len(resolved))
    return resolved


__all__ = [
    "Field",
    "fields_for_group",
    "conditions_hold",
    "resolve_fields",
]
