"""Vocabularies used by the form engine and the submission workflow.

All namespaces are immutable rdflib ``Namespace`` objects. Graph partition
URIs and file locations are not defined here; they are part of
``FormGateConfig`` and travel with each resolution context.
"""

from rdflib import Namespace
from rdflib.namespace import DCTERMS, FOAF, PROV, RDF, SH, SKOS, XSD

FORM = Namespace("http://lblod.data.gift/vocabularies/forms/")
FIELD_OPTIONS = Namespace("http://lblod.data.gift/vocabularies/form-field-options/")
MELDING = Namespace("http://lblod.data.gift/vocabularies/automatische-melding/")

ADMS = Namespace("http://www.w3.org/ns/adms#")
MU = Namespace("http://mu.semte.ch/vocabularies/core/")
EXT = Namespace("http://mu.semte.ch/vocabularies/ext/")
ELI = Namespace("http://data.europa.eu/eli/ontology#")
NIE = Namespace("http://www.semanticdesktop.org/ontologies/2007/01/19/nie#")
NFO = Namespace("http://www.semanticdesktop.org/ontologies/2007/03/22/nfo#")
NMO = Namespace("http://www.semanticdesktop.org/ontologies/2007/03/22/nmo#")
TASK = Namespace("http://redpencil.data.gift/vocabularies/tasks/")
COGS = Namespace("http://vocab.deri.ie/cogs#")
DBPEDIA = Namespace("http://dbpedia.org/ontology/")

# Resource identifiers for concepts
ASJ = Namespace("http://data.lblod.info/id/automatic-submission-job/")
ADDITIONS_FILE_TYPE = "http://data.lblod.gift/concepts/additions-file-type"
REMOVALS_FILE_TYPE = "http://data.lblod.gift/concepts/removals-file-type"
AUTOMATIC_SUBMISSION_FLOW = (
    "http://lblod.data.gift/id/jobs/concept/JobOperation/automaticSubmissionFlow"
)
READY_TO_BE_CACHED = "http://lblod.data.gift/file-download-statuses/ready-to-be-cached"


__all__ = [
    "ADDITIONS_FILE_TYPE",
    "ADMS",
    "ASJ",
    "AUTOMATIC_SUBMISSION_FLOW",
    "COGS",
    "DBPEDIA",
    "DCTERMS",
    "ELI",
    "EXT",
    "FIELD_OPTIONS",
    "FOAF",
    "FORM",
    "MELDING",
    "MU",
    "NFO",
    "NIE",
    "NMO",
    "PROV",
    "RDF",
    "READY_TO_BE_CACHED",
    "REMOVALS_FILE_TYPE",
    "SH",
    "SKOS",
    "TASK",
    "XSD",
]
