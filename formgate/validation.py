"""Form validation engine.

Validates the active fields of a form against the submitted data and
produces structured, per-field results. Every active field is checked and
the form verdict is the AND over all of them; a field with no validations
or only unknown constraint types is valid.

Validation is a pure read of the resolution context, so validating the
same form twice over unchanged data yields the same verdict.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from rdflib.term import Node

from formgate.constraints import ValidationResult, check
from formgate.errors import FieldError
from formgate.fields import Field, resolve_fields
from formgate.types import FieldErrorCode
from formgate.validators import (
    CODELIST,
    EXACT_VALUE,
    REQUIRED,
    SINGLE_CODELIST_VALUE,
    URI_FORMAT,
    VALID_DATE,
    VALID_DATE_TIME,
)

_ERROR_CODES: Dict[str, FieldErrorCode] = {
    REQUIRED: FieldErrorCode.REQUIRED,
    CODELIST: FieldErrorCode.INVALID_VALUE,
    SINGLE_CODELIST_VALUE: FieldErrorCode.INVALID_VALUE,
    EXACT_VALUE: FieldErrorCode.INVALID_VALUE,
    URI_FORMAT: FieldErrorCode.INVALID_FORMAT,
    VALID_DATE: FieldErrorCode.INVALID_FORMAT,
    VALID_DATE_TIME: FieldErrorCode.INVALID_FORMAT,
}


@dataclass(frozen=True)
class FormValidationReport:
    """Result of validating every active field of a form.

    Attributes:
        is_valid: Whether all active fields passed
        errors: One FieldError per failing constraint
        results: Pairs of (field, combined result) in field discovery order
        missing_fields: Paths of fields failing a required constraint
        invalid_fields: Paths of fields failing any other constraint
    """
    is_valid: bool
    errors: List[FieldError] = field(default_factory=list)
    results: Tuple[Tuple[Field, ValidationResult], ...] = ()
    missing_fields: List[str] = field(default_factory=list)
    invalid_fields: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "isValid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "missingFields": self.missing_fields,
            "invalidFields": self.invalid_fields,
        }


def validate_field(field: Field, context) -> ValidationResult:
    """Check all validations of one field and fold them with AND."""
    return ValidationResult.combine(
        check(constraint, context, default_grouping=field.grouping)
        for constraint in field.validations
    )


class ValidationEngine:
    """Validates forms within one resolution context.

    Attributes:
        context: The ResolutionContext all checks run against
    """

    def __init__(self, context) -> None:
        self.context = context

    def validate(self, form: Node) -> FormValidationReport:
        """Validate every active field of ``form``.

        Returns:
            FormValidationReport with the overall verdict and per-field errors
        """
        errors: List[FieldError] = []
        missing_fields: List[str] = []
        invalid_fields: List[str] = []
        results: List[Tuple[Field, ValidationResult]] = []

        for form_field in resolve_fields(form, self.context):
            checks = [
                check(constraint, self.context, default_grouping=form_field.grouping)
                for constraint in form_field.validations
            ]
            results.append((form_field, ValidationResult.combine(checks)))
            for result in checks:
                if result.valid:
                    continue
                field_error = self._translate_result(form_field, result)
                errors.append(field_error)
                if field_error.code == FieldErrorCode.REQUIRED:
                    missing_fields.append(field_error.path)
                else:
                    invalid_fields.append(field_error.path)

        return FormValidationReport(
            is_valid=all(result.valid for _, result in results),
            errors=errors,
            results=tuple(results),
            missing_fields=missing_fields,
            invalid_fields=invalid_fields,
        )

    def _translate_result(self, form_field: Field, result: ValidationResult) -> FieldError:
        """Turn a failed constraint check into a FieldError."""
        path = form_field.path_label(self.context)
        code = _ERROR_CODES.get(result.constraint_type or "", FieldErrorCode.CUSTOM)
        message = result.message or (
            f"Field '{path}' does not satisfy constraint <{result.constraint_type}>"
        )
        return FieldError(
            path=path,
            code=code,
            message=message,
            field=str(form_field.node),
            constraint=str(result.constraint) if result.constraint is not None else None,
        )


def validate_form(form: Node, context) -> bool:
    """True if every active field of the form is valid."""
    return ValidationEngine(context).validate(form).is_valid


__all__ = [
    "FormValidationReport",
    "ValidationEngine",
    "validate_field",
    "validate_form",
]
