"""Resolution context shared by path resolution, field expansion and validation."""

from dataclasses import dataclass, field
from typing import Optional

from rdflib import URIRef
from rdflib.term import Node

from formgate.config import FormGateConfig
from formgate.registry import ConstraintRegistry, ValidatorOptions
from formgate.store import TripleStore
from formgate.validators import default_registry


@dataclass(frozen=True)
class ResolutionContext:
    """Everything a resolution run reads from.

    One context is built per run over a store holding the three partitions
    (form schema, codelists, submitted data) and discarded afterwards.

    Attributes:
        store: Store holding the partitions
        form_graph: Partition of the form schema
        meta_graph: Partition of the codelists
        source_graph: Partition of the submitted data
        source_node: Subject under validation
        registry: Validators available to this run
    """
    store: TripleStore
    form_graph: URIRef
    meta_graph: URIRef
    source_graph: URIRef
    source_node: Optional[Node] = None
    registry: ConstraintRegistry = field(default_factory=default_registry)

    @classmethod
    def from_config(
        cls,
        store: TripleStore,
        config: FormGateConfig,
        source_node: Optional[Node] = None,
        registry: Optional[ConstraintRegistry] = None,
    ) -> "ResolutionContext":
        return cls(
            store=store,
            form_graph=URIRef(config.form_graph),
            meta_graph=URIRef(config.meta_graph),
            source_graph=URIRef(config.source_graph),
            source_node=source_node,
            registry=registry if registry is not None else default_registry(),
        )

    def validator_options(self, constraint: Node) -> ValidatorOptions:
        return ValidatorOptions(
            store=self.store,
            constraint=constraint,
            form_graph=self.form_graph,
            meta_graph=self.meta_graph,
            source_graph=self.source_graph,
            source_node=self.source_node,
        )


__all__ = [
    "ResolutionContext",
]
