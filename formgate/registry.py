"""Constraint validator registry.

Maps a constraint type URI to a validator function. Adding a constraint
type is a ``register`` call; the dispatcher in ``formgate.constraints``
never changes. A registry is an ordinary object handed to each resolution
run through its context, so two runs never share registrations unless the
caller passes them the same instance.

A validator is a pure function ``validator(value_or_values, options) -> bool``.
It receives a single value for MatchSome/MatchEvery groupings and the
whole ordered value list for Bag groupings. It must not mutate the store.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from rdflib.term import Node

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidatorOptions:
    """Lookup context handed to a validator.

    Attributes:
        store: Store holding all partitions of the resolution run
        constraint: The constraint node being checked
        form_graph: Partition of the form schema (constraint parameters live here)
        meta_graph: Partition of the codelists
        source_graph: Partition of the submitted data
        source_node: Subject under validation
    """
    store: Any
    constraint: Node
    form_graph: Any
    meta_graph: Any
    source_graph: Any
    source_node: Optional[Node] = None


Validator = Callable[[Any, ValidatorOptions], bool]


class ConstraintRegistry:
    """Registry of validators keyed by constraint type URI.

    Examples:
        >>> registry = ConstraintRegistry()
        >>> registry.register("http://example.org/Always", lambda values, options: True)
        >>> "http://example.org/Always" in registry
        True
        >>> registry.get("http://example.org/Unknown") is None
        True
    """

    def __init__(self, validators: Optional[Mapping[str, Validator]] = None) -> None:
        self._validators: Dict[str, Validator] = {}
        for constraint_type, validator in (validators or {}).items():
            self.register(constraint_type, validator)

    def register(self, constraint_type: str, validator: Validator) -> None:
        """Register (or replace) the validator for a constraint type."""
        key = str(constraint_type)
        if key in self._validators:
            logger.info("Replacing validator for constraint type <%s>", key)
        self._validators[key] = validator

    def unregister(self, constraint_type: str) -> None:
        self._validators.pop(str(constraint_type), None)

    def get(self, constraint_type: Optional[str]) -> Optional[Validator]:
        """Return the validator for an exact type match, or None."""
        if constraint_type is None:
            return None
        return self._validators.get(str(constraint_type))

    def types(self) -> List[str]:
        return list(self._validators)

    def copy(self) -> "ConstraintRegistry":
        return ConstraintRegistry(self._validators)

    def __contains__(self, constraint_type: object) -> bool:
        return str(constraint_type) in self._validators

    def __len__(self) -> int:
        return len(self._validators)


__all__ = [
    "ValidatorOptions",
    "Validator",
    "ConstraintRegistry",
]
