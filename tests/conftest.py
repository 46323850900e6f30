"""Shared fixtures: a small decision form, its codelists and submitted data.

The form has one top-level group (type, title, session date, attachment).
Its type field carries a conditional group that is active for decisions
only and adds a publisher field (complex path) and an organ field
(inverse path). The publisher field in turn carries a conditional group
that is active when an urgency reason is given.
"""

from types import SimpleNamespace

import pytest
from rdflib import URIRef

from formgate.config import FormGateConfig
from formgate.context import ResolutionContext
from formgate.events import EventEmitter
from formgate.files import InMemoryFileContent
from formgate.runtime import SubmissionRuntime
from formgate.store import GraphStore
from formgate.types import SubmissionStatus

PREFIXES = """
@prefix rdf: <http://www.w3.org/1999/02/22-rdf-syntax-ns#> .
@prefix xsd: <http://www.w3.org/2001/XMLSchema#> .
@prefix skos: <http://www.w3.org/2004/02/skos/core#> .
@prefix sh: <http://www.w3.org/ns/shacl#> .
@prefix dct: <http://purl.org/dc/terms/> .
@prefix foaf: <http://xmlns.com/foaf/0.1/> .
@prefix eli: <http://data.europa.eu/eli/ontology#> .
@prefix nie: <http://www.semanticdesktop.org/ontologies/2007/01/19/nie#> .
@prefix adms: <http://www.w3.org/ns/adms#> .
@prefix mu: <http://mu.semte.ch/vocabularies/core/> .
@prefix prov: <http://www.w3.org/ns/prov#> .
@prefix melding: <http://lblod.data.gift/vocabularies/automatische-melding/> .
@prefix form: <http://lblod.data.gift/vocabularies/forms/> .
@prefix fieldopt: <http://lblod.data.gift/vocabularies/form-field-options/> .
@prefix ex: <http://data.example.org/ns/> .
@prefix fields: <http://data.example.org/fields/> .
"""

FORM_TTL = PREFIXES + """
fields:form a form:Form ;
    form:hasFieldGroup fields:mainGroup .

fields:mainGroup a form:FieldGroup ;
    form:hasField fields:typeField, fields:titleField, fields:dateField, fields:attachmentField .

fields:typeField a form:Field ;
    sh:path rdf:type ;
    form:validations fields:typeCodelist ;
    form:hasConditionalFieldGroup fields:decisionBranch .

fields:typeCodelist a form:Codelist ;
    form:grouping form:MatchSome ;
    form:conceptScheme ex:DocumentTypes ;
    sh:path rdf:type ;
    sh:resultMessage "Choose a document type." .

fields:titleField a form:Field ;
    sh:path dct:title ;
    form:validations fields:titleRequired .

fields:titleRequired a form:RequiredConstraint ;
    form:grouping form:Bag ;
    sh:path dct:title ;
    sh:resultMessage "Title is required." .

fields:dateField a form:Field ;
    sh:path ex:sessionDate ;
    form:validations fields:dateValid .

fields:dateValid a form:ValidDate ;
    form:grouping form:MatchEvery ;
    sh:path ex:sessionDate ;
    sh:resultMessage "Invalid date." .

fields:attachmentField a form:Field ;
    sh:path ( ex:attachment nie:url ) .

fields:decisionBranch a form:ConditionalFieldGroup ;
    form:conditions fields:isDecision ;
    form:hasFieldGroup fields:decisionGroup .

fields:isDecision a form:ExactValueConstraint ;
    form:grouping form:MatchSome ;
    form:customValue ex:Decision ;
    sh:path rdf:type .

fields:decisionGroup a form:FieldGroup ;
    form:hasField fields:publisherField, fields:organField .

fields:publisherField a form:Field ;
    sh:path ( ex:publishedBy foaf:name ) ;
    form:validations fields:publisherRequired ;
    form:hasConditionalFieldGroup fields:urgencyBranch .

fields:publisherRequired a form:RequiredConstraint ;
    form:grouping form:Bag ;
    sh:path ( ex:publishedBy foaf:name ) ;
    sh:resultMessage "Publisher is required." .

fields:organField a form:Field ;
    sh:path [ sh:inversePath ex:governs ] .

fields:urgencyBranch a form:ConditionalFieldGroup ;
    form:conditions fields:hasUrgencyReason ;
    form:hasFieldGroup fields:urgencyGroup .

fields:hasUrgencyReason a form:RequiredConstraint ;
    form:grouping form:Bag ;
    sh:path ex:urgencyReason .

fields:urgencyGroup a form:FieldGroup ;
    form:hasField fields:urgencyField .

fields:urgencyField a form:Field ;
    sh:path ex:urgencyReason .
"""

META_TTL = PREFIXES + """
ex:Decision skos:inScheme ex:DocumentTypes .
ex:Notice skos:inScheme ex:DocumentTypes .
"""

SOURCE_TTL = PREFIXES + """
<http://data.example.org/documents/1> a ex:Decision ;
    dct:title "Budget 2024" ;
    ex:sessionDate "2024-02-29"^^xsd:date ;
    ex:publishedBy ex:council ;
    ex:attachment <http://data.example.org/attachments/1> ;
    ex:internalNote "not part of the form" .

ex:council foaf:name "City council" .
ex:mayor ex:governs <http://data.example.org/documents/1> .

<http://data.example.org/attachments/1> nie:url <http://example.com/files/budget.pdf> .
"""

DOCUMENT = "http://data.example.org/documents/1"
FORM_NODE = "http://data.example.org/fields/form"
SUBMISSION = "http://data.example.org/submissions/1"
TASK = "http://data.example.org/tasks/1"
HARVESTED = "share://harvest/1.ttl"

FILES_TTL = PREFIXES + """
<share://downloads/1.html> nie:dataSource <http://data.example.org/remote-files/1> .
<share://harvest/1.ttl> nie:dataSource <share://downloads/1.html> .
"""


def submission_ttl(status: SubmissionStatus) -> str:
    return PREFIXES + """
<http://data.example.org/submissions/1> dct:subject <http://data.example.org/documents/1> ;
    adms:status <""" + status.value + """> ;
    nie:hasPart <http://data.example.org/remote-files/1> .

<http://data.example.org/documents/1> mu:uuid "doc-1" .

<http://data.example.org/tasks/1> a melding:AutomaticSubmissionTask ;
    prov:generated <http://data.example.org/submissions/1> .
"""


@pytest.fixture
def config():
    return FormGateConfig()


@pytest.fixture
def prefixes():
    return PREFIXES


@pytest.fixture
def form_ttl():
    return FORM_TTL


@pytest.fixture
def meta_ttl():
    return META_TTL


@pytest.fixture
def source_ttl():
    return SOURCE_TTL


@pytest.fixture
def document():
    return URIRef(DOCUMENT)


@pytest.fixture
def form_node():
    return URIRef(FORM_NODE)


@pytest.fixture
def make_context(config):
    """Factory for a resolution context over the fixture partitions.

    Any of the three documents can be replaced; an empty string loads nothing.
    """

    def _make(source=None, form=None, meta=None, registry=None, subject=DOCUMENT):
        store = GraphStore()
        store.load(FORM_TTL if form is None else form, config.form_graph)
        store.load(META_TTL if meta is None else meta, config.meta_graph)
        store.load(SOURCE_TTL if source is None else source, config.source_graph)
        subject_node = URIRef(subject) if subject is not None else None
        return ResolutionContext.from_config(store, config, subject_node, registry)

    return _make


@pytest.fixture
def make_runtime(config):
    """Factory for a runtime over a persistent store holding one submission.

    The submission was generated by an automatic submission task and its
    harvested data is ``source``; pass ``source=None`` to leave the harvested
    document missing.
    """

    def _make(status=SubmissionStatus.SUBMITABLE, source=SOURCE_TTL, emitter=None):
        store = GraphStore()
        store.load(submission_ttl(status), config.submission_graph)
        store.load(FILES_TTL, config.file_graph)
        documents = {config.form_ttl: FORM_TTL, config.meta_ttl: META_TTL}
        if source is not None:
            documents[HARVESTED] = source
        files = InMemoryFileContent(documents)
        runtime = SubmissionRuntime(
            store=store, files=files, config=config, emitter=emitter or EventEmitter()
        )
        return SimpleNamespace(
            runtime=runtime,
            store=store,
            files=files,
            config=config,
            task=TASK,
            submission=runtime.repository.get_by_task(TASK),
        )

    return _make
