"""FormGate semantic form resolution and submission processing.

FormGate validates documents described by RDF data against declarative
semantic forms and drives the submissions that carry them:
- Form selection for a submitted resource among the candidate forms
- Field resolution with conditional field groups
- Constraint evaluation through a pluggable validator registry
- Submission status state machine with a store-backed runtime
- Audit event stream for every status change and verdict

Basic usage:
    >>> from formgate.files import InMemoryFileContent
    >>> from formgate.runtime import SubmissionRuntime
    >>> from formgate.store import GraphStore
    >>> runtime = SubmissionRuntime(store=GraphStore(), files=InMemoryFileContent())
    >>> runtime.handle_task("http://data.example.org/tasks/1")      # doctest: +SKIP
"""

__version__ = "0.1.0"
__author__ = "FormGate Team"

# Version info
VERSION = (0, 1, 0)

# Core exports
from formgate.fields import resolve_fields
from formgate.forms import FormBuilder, build_data, select_form
from formgate.runtime import ProcessResult, SubmissionRuntime, process_submission
from formgate.validation import validate_field, validate_form

# Package metadata
__all__ = [
    "__version__",
    "VERSION",
    "FormBuilder",
    "ProcessResult",
    "SubmissionRuntime",
    "build_data",
    "process_submission",
    "resolve_fields",
    "select_form",
    "validate_field",
    "validate_form",
]
