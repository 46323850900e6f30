"""Constraint checking with set-level grouping semantics.

``check`` is the single dispatcher used both for the conditions gating
conditional field groups and for the validations of active fields:

1. resolve the constraint's type to a validator in the context's registry
   (no validator: the result is UNVALIDATED, which counts as valid)
2. resolve the constraint's ``sh:path`` against the subject under validation
3. apply the validator according to the constraint's ``form:grouping``
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

from rdflib.term import Node

from formgate.namespaces import FORM, RDF, SH
from formgate.paths import triples_for_path
from formgate.registry import Validator, ValidatorOptions
from formgate.store import first_object, objects
from formgate.types import Grouping, ValidationOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    """Result of checking one constraint (or of combining several).

    Attributes:
        outcome: PASS, FAIL or UNVALIDATED (no validator for the constraint type)
        message: The constraint's declared result message, if any
        constraint: The constraint node that was checked
        constraint_type: The type URI that selected the validator

    Examples:
        >>> result = ValidationResult(ValidationOutcome.UNVALIDATED)
        >>> result.has_validation, result.valid
        (False, True)
    """
    outcome: ValidationOutcome
    message: Optional[str] = None
    constraint: Optional[Node] = None
    constraint_type: Optional[str] = None

    @property
    def has_validation(self) -> bool:
        return self.outcome != ValidationOutcome.UNVALIDATED

    @property
    def valid(self) -> bool:
        return self.outcome != ValidationOutcome.FAIL

    @classmethod
    def combine(cls, results: Iterable["ValidationResult"]) -> "ValidationResult":
        """Fold results with AND; the first failure is reported."""
        results = list(results)
        for result in results:
            if result.outcome == ValidationOutcome.FAIL:
                return result
        if any(result.outcome == ValidationOutcome.PASS for result in results):
            return cls(ValidationOutcome.PASS)
        return cls(ValidationOutcome.UNVALIDATED)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "hasValidation": self.has_validation,
            "valid": self.valid,
            "message": self.message or "",
        }
        if self.constraint is not None:
            result["constraint"] = str(self.constraint)
        if self.constraint_type is not None:
            result["constraintType"] = self.constraint_type
        return result


def evaluate_grouping(
    grouping: Grouping,
    validator: Validator,
    values: Sequence[Node],
    options: Optional[ValidatorOptions],
) -> bool:
    """Apply a validator to a value list under a grouping mode.

    - BAG: one call with the whole list
    - MATCH_SOME: valid if any value passes, so an empty list is invalid
    - MATCH_EVERY: valid if every value passes, so an empty list is valid
    """
    if grouping == Grouping.BAG:
        return bool(validator(list(values), options))
    if grouping == Grouping.MATCH_SOME:
        return any(bool(validator(value, options)) for value in values)
    if grouping == Grouping.MATCH_EVERY:
        return all(bool(validator(value, options)) for value in values)
    raise ValueError(f"Unknown grouping: {grouping}")


def _select_validator(constraint: Node, context) -> Tuple[Optional[str], Optional[Validator]]:
    types = objects(context.store, constraint, RDF.type, context.form_graph)
    for constraint_type in types:
        validator = context.registry.get(str(constraint_type))
        if validator is not None:
            return str(constraint_type), validator
    return (str(types[0]) if types else None), None


def check(
    constraint: Node, context, default_grouping: Optional[Grouping] = None
) -> ValidationResult:
    """Check one constraint against the subject of the context.

    Args:
        constraint: Constraint node in the form partition
        context: ResolutionContext of the run
        default_grouping: Grouping used when the constraint declares none
            (the owning field's grouping); Bag otherwise

    Returns:
        ValidationResult; UNVALIDATED when no validator is registered for the type
    """
    store = context.store
    constraint_type, validator = _select_validator(constraint, context)
    if validator is None:
        logger.warning("No validator registered for constraint <%s> of type <%s>", constraint, constraint_type)
        return ValidationResult(
            ValidationOutcome.UNVALIDATED,
            constraint=constraint,
            constraint_type=constraint_type,
        )

    grouping_node = first_object(store, constraint, FORM.grouping, context.form_graph)
    grouping = Grouping.from_uri(grouping_node) or default_grouping
    if grouping is None:
        logger.warning("Constraint <%s> has unknown grouping %s, using Bag", constraint, grouping_node)
        grouping = Grouping.BAG

    path_node = first_object(store, constraint, SH.path, context.form_graph)
    values = triples_for_path(path_node, context).values
    verdict = evaluate_grouping(grouping, validator, values, context.validator_options(constraint))
    logger.debug("Validation <%s> [%s] is %s", constraint_type, grouping.name, verdict)

    message = first_object(store, constraint, SH.resultMessage, context.form_graph)
    return ValidationResult(
        ValidationOutcome.PASS if verdict else ValidationOutcome.FAIL,
        message=str(message) if message is not None else None,
        constraint=constraint,
        constraint_type=constraint_type,
    )


__all__ = [
    "ValidationResult",
    "evaluate_grouping",
    "check",
]
