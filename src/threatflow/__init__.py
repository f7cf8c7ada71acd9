from threatflow.analyzer import ProjectAnalyzer, analyze_path
from threatflow.classify import (
    DataStoreClassifier,
    ProcessExtractor,
    StructureClassifier,
    clean_doc,
)
from threatflow.entities import ExternalEntityDetector
from threatflow.errors import (
    FactLoadError,
    RegistryFrozenError,
    RegistryNotFrozenError,
    ThreatflowError,
    UnknownFormatError,
)
from threatflow.facts import TypeFact, load_facts, parse_facts
from threatflow.flows import FlowDetector
from threatflow.keys import (
    CounterIdSource,
    HashIdSource,
    UuidIdSource,
    make_id_source,
)
from threatflow.model import (
    DataField,
    DataFlow,
    DataFlowType,
    DataStore,
    DataStoreType,
    DataStructure,
    DataStructureType,
    ExternalEntity,
    ExternalEntityType,
    Process,
)
from threatflow.registry import NodeRegistry
from threatflow.result import AnalysisResult

__version__ = "0.1.0"

__all__ = [
    "AnalysisResult",
    "CounterIdSource",
    "DataField",
    "DataFlow",
    "DataFlowType",
    "DataStore",
    "DataStoreType",
    "DataStructure",
    "DataStructureType",
    "DataStoreClassifier",
    "ExternalEntity",
    "ExternalEntityDetector",
    "ExternalEntityType",
    "FactLoadError",
    "FlowDetector",
    "HashIdSource",
    "NodeRegistry",
    "Process",
    "ProcessExtractor",
    "ProjectAnalyzer",
    "RegistryFrozenError",
    "RegistryNotFrozenError",
    "StructureClassifier",
    "ThreatflowError",
    "TypeFact",
    "UnknownFormatError",
    "UuidIdSource",
    "analyze_path",
    "clean_doc",
    "load_facts",
    "make_id_source",
    "parse_facts",
]
