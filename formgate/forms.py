"""Form selection and form data extraction.

``FormBuilder`` is the entry point of a resolution run: it loads the form
schema, the codelists and the submitted data into a fresh in-memory store,
picks the form to apply, and then extracts the data along the active
fields' paths and validates it.

Usage:
    >>> builder = FormBuilder(
    ...     submitted_resource="http://data.example.org/decisions/1",
    ...     form_ttl=form_ttl, meta_ttl=meta_ttl, source_ttl=source_ttl,
    ... ).build()                                                   # doctest: +SKIP
    >>> triples = builder.data()                                    # doctest: +SKIP
    >>> builder.validate()                                          # doctest: +SKIP
    True
"""

import logging
from typing import Iterable, List, Optional

from rdflib import URIRef
from rdflib.term import Node

from formgate.config import FormGateConfig
from formgate.context import ResolutionContext
from formgate.fields import resolve_fields
from formgate.namespaces import FORM, RDF
from formgate.paths import triples_for_path
from formgate.registry import ConstraintRegistry
from formgate.store import GraphStore, Statement, TripleStore, subjects
from formgate.validation import FormValidationReport, ValidationEngine, validate_field

logger = logging.getLogger(__name__)


def candidate_forms(store: TripleStore, form_graph) -> List[Node]:
    """All ``form:Form`` resources of the form partition."""
    return subjects(store, RDF.type, FORM.Form, form_graph)


def _type_fields_hold(form: Node, context: ResolutionContext) -> bool:
    for form_field in resolve_fields(form, context):
        if form_field.path != RDF.type:
            continue
        if not validate_field(form_field, context).valid:
            logger.debug("Form <%s> rejected: type field <%s> fails", form, form_field.node)
            return False
    return True


def select_form(
    candidates: Iterable[Node], context: ResolutionContext, refine: bool = True
) -> Optional[Node]:
    """Pick the form to apply to the context's subject.

    A single candidate is returned as is. With several candidates, those
    whose ``rdf:type`` fields fail against the subject are excluded when
    ``refine`` is set, and the first remaining candidate in lexicographic
    order of its identifier is returned.

    Returns:
        The selected form node, or None when no candidate qualifies
    """
    ordered = sorted(set(candidates), key=lambda node: node.n3())
    if not ordered:
        logger.info("No form found")
        return None
    if len(ordered) == 1:
        return ordered[0]

    logger.warning("Found %d forms while only 1 was expected", len(ordered))
    if refine:
        ordered = [form for form in ordered if _type_fields_hold(form, context)]
        if not ordered:
            logger.warning("None of the candidate forms matches the type of <%s>", context.source_node)
            return None
    logger.info("Taking form <%s>", ordered[0])
    return ordered[0]


def build_data(form: Node, context: ResolutionContext) -> List[Statement]:
    """Statements found along the paths of every active field, in field order."""
    statements: List[Statement] = []
    for form_field in resolve_fields(form, context):
        statements.extend(triples_for_path(form_field.path, context).statements)
    return statements


class FormBuilder:
    """One resolution run over a form, its codelists and the submitted data.

    Attributes:
        config: Engine configuration (partition names)
        store: In-memory store holding the three partitions
        context: ResolutionContext for the submitted resource
        form: The selected form after ``build()``, or None
    """

    def __init__(
        self,
        submitted_resource: str,
        form_ttl: Optional[str],
        meta_ttl: Optional[str],
        source_ttl: Optional[str],
        config: Optional[FormGateConfig] = None,
        registry: Optional[ConstraintRegistry] = None,
    ) -> None:
        self.config = config or FormGateConfig()
        self.store = GraphStore()
        self.store.load(form_ttl, self.config.form_graph)
        self.store.load(meta_ttl, self.config.meta_graph)
        self.store.load(source_ttl, self.config.source_graph)
        self.context = ResolutionContext.from_config(
            self.store, self.config, URIRef(submitted_resource), registry
        )
        self.form: Optional[Node] = None

    def build(self) -> "FormBuilder":
        forms = candidate_forms(self.store, self.context.form_graph)
        logger.info("Found %d forms in the store", len(forms))
        self.form = select_form(forms, self.context, refine=self.config.refine_form_selection)
        return self

    def has_form(self) -> bool:
        if self.form is None:
            logger.info("No form selected for <%s>", self.context.source_node)
        return self.form is not None

    def data(self) -> List[Statement]:
        """Statements of the submitted data covered by the form; empty without a form."""
        if not self.has_form():
            return []
        return build_data(self.form, self.context)

    def report(self) -> FormValidationReport:
        """Full validation report; a run without a form is invalid."""
        if not self.has_form():
            return FormValidationReport(is_valid=False)
        return ValidationEngine(self.context).validate(self.form)

    def validate(self) -> bool:
        return self.report().is_valid


__all__ = [
    "candidate_forms",
    "select_form",
    "build_data",
    "FormBuilder",
]
