"""Built-in constraint validators.

Every validator is a pure function of the value(s) found on the
constraint's path and a ``ValidatorOptions`` lookup context. Validators
for Bag-grouped constraints receive the full value list; the others
receive one value per call.
"""

import logging
import re
from typing import Any, Dict, Sequence

from dateutil.parser import isoparse
from jsonschema import Draft7Validator
from rdflib import Literal
from rdflib.term import Node

from formgate.namespaces import ELI, FIELD_OPTIONS, FORM, SKOS, XSD
from formgate.registry import ConstraintRegistry, Validator, ValidatorOptions
from formgate.store import first_object

logger = logging.getLogger(__name__)

REQUIRED = str(FORM.RequiredConstraint)
CODELIST = str(FORM.Codelist)
SINGLE_CODELIST_VALUE = str(FORM.SingleCodelistValue)
EXACT_VALUE = str(FORM.ExactValueConstraint)
URI_FORMAT = str(FORM.UriConstraint)
VALID_DATE = str(FORM.ValidDate)
VALID_DATE_TIME = str(FORM.ValidDateTime)
DECISION_ARTICLES = str(FORM.DecisionArticlesValidator)

EXCLUDE_DOCUMENT_TYPE = FIELD_OPTIONS["exclude-type_document"]

_FORMAT_CHECKER = Draft7Validator.FORMAT_CHECKER
_TIMEZONE_SUFFIX = re.compile(r"(Z|[+-](?:0\d|1[0-4]):[0-5]\d)$")
_DATE_TIME = re.compile(
    r"^-?\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})?$"
)
_URI = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:[^\s<>\"{}|\\^`]+$")
_HIERARCHICAL = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://[^/?#\s]+")
_OPAQUE_SCHEMES = ("mailto", "urn", "tel", "data", "doi")


def _as_list(values: Any) -> Sequence[Node]:
    if isinstance(values, (list, tuple)):
        return values
    return [values]


def _is_true(literal: Node) -> bool:
    if not isinstance(literal, Literal):
        return False
    if literal.datatype == XSD.boolean:
        return bool(literal.toPython())
    return str(literal).strip().lower() in ("true", "1")


def required(values: Any, options: ValidatorOptions) -> bool:
    """At least one value is present.

    With a Bag grouping ``values`` is the whole list; with a per-value
    grouping a single value must be a non-blank term.
    """
    if isinstance(values, (list, tuple)):
        return len(values) > 0
    return values is not None and str(values).strip() != ""


def codelist(value: Node, options: ValidatorOptions) -> bool:
    """The value is a concept of the constraint's concept scheme."""
    scheme = first_object(options.store, options.constraint, FORM.conceptScheme, options.form_graph)
    if scheme is None:
        logger.warning("Codelist constraint <%s> declares no concept scheme", options.constraint)
        return False
    return bool(options.store.match(value, SKOS.inScheme, scheme, options.meta_graph))


def single_codelist_value(values: Any, options: ValidatorOptions) -> bool:
    """Exactly one of the values is a concept of the constraint's concept scheme."""
    matching = [value for value in _as_list(values) if codelist(value, options)]
    return len(matching) == 1


def exact_value(value: Node, options: ValidatorOptions) -> bool:
    """The value equals the constraint's ``form:customValue``."""
    expected = first_object(options.store, options.constraint, FORM.customValue, options.form_graph)
    if expected is None:
        logger.warning("Exact value constraint <%s> declares no expected value", options.constraint)
        return False
    return str(value) == str(expected)


def uri_format(value: Node, options: ValidatorOptions) -> bool:
    """The value has the shape of an absolute URI."""
    text = str(value).strip()
    if not _URI.match(text):
        return False
    scheme = text.split(":", 1)[0].lower()
    if scheme in _OPAQUE_SCHEMES:
        return True
    return bool(_HIERARCHICAL.match(text))


def valid_date(value: Node, options: ValidatorOptions) -> bool:
    """An ``xsd:date`` literal naming a real calendar day between the years 1000 and 3000.

    Examples:
        >>> from rdflib import Literal
        >>> from formgate.namespaces import XSD
        >>> valid_date(Literal("2024-02-29", datatype=XSD.date), None)
        True
        >>> valid_date(Literal("2023-02-29", datatype=XSD.date), None)
        False
    """
    if not isinstance(value, Literal) or value.datatype != XSD.date:
        return False
    text = _TIMEZONE_SUFFIX.sub("", str(value))
    if not _FORMAT_CHECKER.conforms(text, "date"):
        return False
    return 1000 <= int(text[:4]) <= 3000


def valid_date_time(value: Node, options: ValidatorOptions) -> bool:
    """An ``xsd:dateTime`` literal with a real calendar date and an optional zone."""
    if not isinstance(value, Literal) or value.datatype != XSD.dateTime:
        return False
    text = str(value)
    if not _DATE_TIME.match(text):
        return False
    try:
        isoparse(text)
    except (ValueError, OverflowError):
        return False
    return True


def decision_articles(articles: Any, options: ValidatorOptions) -> bool:
    """Every article refers to a document and, unless opted out, carries a document type.

    Used with a Bag grouping on ``eli:has_part``; an empty article list is invalid.
    """
    articles = _as_list(articles)
    if not articles:
        return False

    store = options.store
    type_optional = _is_true(
        first_object(store, options.constraint, EXCLUDE_DOCUMENT_TYPE, options.form_graph)
    )
    for article in articles:
        if not store.match(article, ELI.refers_to, None, options.source_graph):
            return False
        if type_optional:
            continue
        if first_object(store, article, ELI.type_document, options.source_graph) is None:
            return False
    return True


BUILTIN_VALIDATORS: Dict[str, Validator] = {
    REQUIRED: required,
    CODELIST: codelist,
    SINGLE_CODELIST_VALUE: single_codelist_value,
    EXACT_VALUE: exact_value,
    URI_FORMAT: uri_format,
    VALID_DATE: valid_date,
    VALID_DATE_TIME: valid_date_time,
    DECISION_ARTICLES: decision_articles,
}


def default_registry() -> ConstraintRegistry:
    """Return a fresh registry holding the built-in validators."""
    return ConstraintRegistry(BUILTIN_VALIDATORS)


__all__ = [
    "REQUIRED",
    "CODELIST",
    "SINGLE_CODELIST_VALUE",
    "EXACT_VALUE",
    "URI_FORMAT",
    "VALID_DATE",
    "VALID_DATE_TIME",
    "DECISION_ARTICLES",
    "BUILTIN_VALIDATORS",
    "required",
    "codelist",
    "single_codelist_value",
    "exact_value",
    "uri_format",
    "valid_date",
    "valid_date_time",
    "decision_articles",
    "default_registry",
]
