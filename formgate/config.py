"""Engine configuration.

A single immutable ``FormGateConfig`` is handed to the store adapters,
the form builder and the runtime. Nothing in the package reads graph
names or file locations from module state.
"""

import os
from dataclasses import dataclass

CREATOR = "http://lblod.data.gift/services/validate-submission-service"


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class FormGateConfig:
    """Graph partitions, document locations and service identity.

    Attributes:
        form_graph: Partition holding the form schema during a resolution run
        meta_graph: Partition holding codelists during a resolution run
        source_graph: Partition holding the submitted data during a resolution run
        submission_graph: Persistent partition with submissions, documents and form data
        file_graph: Persistent partition with file metadata
        public_graph: Persistent partition with remote data objects
        form_ttl: URI of the form schema document
        meta_ttl: URI of the codelist document
        share_root: Directory that backs ``share://`` URIs
        artifact_folder: Folder below the share root for persisted form data
        creator: URI stamped as ``dct:creator`` on created resources
        refine_form_selection: Exclude candidate forms whose type fields fail

    Examples:
        >>> config = FormGateConfig(share_root="/tmp/share")
        >>> config.form_graph
        'http://data.lblod.info/graphs/semantic-forms'
    """

    form_graph: str = "http://data.lblod.info/graphs/semantic-forms"
    meta_graph: str = "http://data.lblod.info/graphs/meta"
    source_graph: str = "http://data.lblod.info/graphs/submission"
    submission_graph: str = "http://mu.semte.ch/application"
    file_graph: str = "http://mu.semte.ch/graphs/files"
    public_graph: str = "http://mu.semte.ch/graphs/public"
    form_ttl: str = "file:///data/semantic-forms/form.ttl"
    meta_ttl: str = "file:///data/semantic-forms/meta.ttl"
    share_root: str = "/share"
    artifact_folder: str = "submissions"
    creator: str = CREATOR
    refine_form_selection: bool = True

    @classmethod
    def from_env(cls) -> "FormGateConfig":
        """Create configuration from ``FORMGATE_*`` environment variables."""
        defaults = cls()
        return cls(
            form_graph=os.getenv("FORMGATE_FORM_GRAPH", defaults.form_graph),
            meta_graph=os.getenv("FORMGATE_META_GRAPH", defaults.meta_graph),
            source_graph=os.getenv("FORMGATE_SOURCE_GRAPH", defaults.source_graph),
            submission_graph=os.getenv("FORMGATE_SUBMISSION_GRAPH", defaults.submission_graph),
            file_graph=os.getenv("FORMGATE_FILE_GRAPH", defaults.file_graph),
            public_graph=os.getenv("FORMGATE_PUBLIC_GRAPH", defaults.public_graph),
            form_ttl=os.getenv("FORMGATE_FORM_TTL", defaults.form_ttl),
            meta_ttl=os.getenv("FORMGATE_META_TTL", defaults.meta_ttl),
            share_root=os.getenv("FORMGATE_SHARE_ROOT", defaults.share_root),
            artifact_folder=os.getenv("FORMGATE_ARTIFACT_FOLDER", defaults.artifact_folder),
            creator=os.getenv("FORMGATE_CREATOR", defaults.creator),
            refine_form_selection=_env_flag(
                "FORMGATE_REFINE_FORM_SELECTION", defaults.refine_form_selection
            ),
        )


__all__ = [
    "CREATOR",
    "FormGateConfig",
]
