"""
Vocabulary URIs used by the graph store.

Namespaces follow the ontologies the triple data is published with
(RDF, RDFS, W3C Time, Web Annotation, OEEV events, OESO experiments).
"""

RDF = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
RDFS = "http://www.w3.org/2000/01/rdf-schema#"
XSD = "http://www.w3.org/2001/XMLSchema#"
TIME = "http://www.w3.org/2006/time#"
OA = "http://www.w3.org/ns/oa#"
OEEV = "http://www.opensilex.org/vocabulary/oeev#"
OESO = "http://www.opensilex.org/vocabulary/oeso#"

# Structural predicates
RDF_TYPE = RDF + "type"
RDFS_LABEL = RDFS + "label"
RDFS_SUBCLASS_OF = RDFS + "subClassOf"
RDFS_DOMAIN = RDFS + "domain"
RDFS_RANGE = RDFS + "range"

# Time
TIME_INSTANT = TIME + "Instant"
TIME_HAS_TIME = TIME + "hasTime"
TIME_IN_XSD_DATETIMESTAMP = TIME + "inXSDDateTimeStamp"
XSD_DATETIMESTAMP = XSD + "dateTimeStamp"

# Events
OEEV_EVENT = OEEV + "Event"
OEEV_CONCERNS = OEEV + "concerns"

# Experiments, sensors, images, germplasm
OESO_EXPERIMENT = OESO + "Experiment"
OESO_MEASURES = OESO + "measures"
OESO_PARTICIPATES_IN = OESO + "participatesIn"
OESO_SENSOR = OESO + "SensingDevice"
OESO_VARIABLE = OESO + "Variable"
OESO_IMAGE = OESO + "Image"
OESO_GERMPLASM = OESO + "Germplasm"
OESO_PROVENANCE = OESO + "Provenance"
OESO_START_DATE = OESO + "startDate"
OESO_END_DATE = OESO + "endDate"
OESO_FROM_SPECIES = OESO + "fromSpecies"

# Annotations
OA_ANNOTATION = OA + "Annotation"
OA_HAS_TARGET = OA + "hasTarget"
OA_MOTIVATION = OA + "Motivation"

# Predicates never returned as generic attached properties of an event
EVENT_STRUCTURAL_PREDICATES = frozenset({
    RDF_TYPE,
    TIME_HAS_TIME,
    OEEV_CONCERNS,
})
