"""Node classifiers - turn type facts into DFD nodes.

Each classifier is a pure function of one fact (plus, for processes, the
set of known data-structure ids) and takes its heuristics from the rule
tables in ``threatflow.rules``.
"""

from __future__ import annotations

import re
from collections.abc import Collection

from threatflow import rules
from threatflow.facts import FieldFact, MethodFact, TypeFact, annotation_map
from threatflow.model import (
    DataField,
    DataStore,
    DataStoreType,
    DataStructure,
    DataStructureType,
    Process,
)

_DOC_DELIMITERS = re.compile(r"^\s*/\*+|\*+/\s*$")
_DOC_DECORATION = re.compile(r"\s*\*\s*")


def clean_doc(text: str | None) -> str:
    """Collapse a doc comment into one line of prose.

    Strips comment delimiters and leading ``*`` decoration, then cuts the
    text at the first ``@tag`` (a tag at position 0 is kept).
    """
    if not text:
        return ""
    content = _DOC_DELIMITERS.sub("", text)
    content = _DOC_DECORATION.sub(" ", content)
    content = " ".join(content.split())
    tag = content.find("@")
    if tag > 0:
        content = content[:tag].strip()
    return content


# ---------------------------------------------------------------------------
# Structure/Field Classifier
# ---------------------------------------------------------------------------


class StructureClassifier:
    """Builds a DataStructure node, with classified fields, from a fact."""

    def __init__(
        self,
        type_rules: list[rules.TypeRule] | None = None,
        external_prefixes: tuple[str, ...] = rules.EXTERNAL_PACKAGE_PREFIXES,
        primitive_types: Collection[str] = rules.PRIMITIVE_TYPES,
        collection_markers: tuple[str, ...] = rules.COLLECTION_MARKERS,
        sensitive_keywords: tuple[str, ...] = rules.SENSITIVE_NAME_KEYWORDS,
        sensitive_annotations: tuple[str, ...] = rules.SENSITIVE_ANNOTATIONS,
    ):
        self.type_rules = (
            type_rules
            if type_rules is not None
            else rules.DATA_STRUCTURE_TYPE_RULES
        )
        self.external_prefixes = external_prefixes
        self.primitive_types = frozenset(primitive_types)
        self.collection_markers = collection_markers
        self.sensitive_keywords = tuple(k.lower() for k in sensitive_keywords)
        self.sensitive_annotations = sensitive_annotations

    def classify(self, fact: TypeFact) -> DataStructure:
        structure = DataStructure(
            name=fact.name,
            fully_qualified_name=fact.qualified_name,
            description=clean_doc(fact.doc),
            source_path=fact.source_path,
            annotations=fact.annotation_map,
            type=self.structure_type(fact),
            external=self.is_external(fact.package_name),
        )
        for field_fact in fact.fields:
            structure.add_field(self.classify_field(field_fact))
        return structure

    def structure_type(self, fact: TypeFact) -> DataStructureType:
        return rules.first_match(
            self.type_rules, fact, DataStructureType.OTHER
        )

    def is_external(self, package_name: str) -> bool:
        return package_name.startswith(self.external_prefixes)

    def classify_field(self, fact: FieldFact) -> DataField:
        annotations = annotation_map(fact.annotations)
        return DataField(
            name=fact.name,
            type=fact.type,
            description=clean_doc(fact.doc),
            annotations=annotations,
            primitive=self.is_primitive(fact.type),
            collection=self.is_collection(fact.type),
            sensitive=self.is_sensitive(fact.name, annotations),
        )

    def is_primitive(self, type_name: str) -> bool:
        return type_name in self.primitive_types

    def is_collection(self, type_name: str) -> bool:
        return rules.contains_any(type_name, self.collection_markers)

    def is_sensitive(self, name: str, annotations: dict[str, str]) -> bool:
        if rules.contains_any(name.lower(), self.sensitive_keywords):
            return True
        return any(a in annotations for a in self.sensitive_annotations)


# ---------------------------------------------------------------------------
# Data-Store Classifier
# ---------------------------------------------------------------------------


class DataStoreClassifier:
    """Decides whether a type is a data store, and of which kind."""

    def __init__(
        self,
        type_rules: list[rules.StoreRule] | None = None,
        name_markers: tuple[str, ...] = rules.DATA_STORE_NAME_MARKERS,
        annotations: tuple[str, ...] = rules.DATA_STORE_ANNOTATIONS,
        field_type_markers: tuple[str, ...] = (
            rules.DATA_STORE_FIELD_TYPE_MARKERS
        ),
    ):
        self.type_rules = (
            type_rules
            if type_rules is not None
            else rules.DATA_STORE_TYPE_RULES
        )
        self.name_markers = name_markers
        self.annotations = annotations
        self.field_type_markers = field_type_markers

    def is_data_store(self, fact: TypeFact) -> bool:
        if rules.contains_any(fact.name, self.name_markers):
            return True
        names = fact.annotation_names()
        if any(a in names for a in self.annotations):
            return True
        return any(
            rules.contains_any(f.type, self.field_type_markers)
            for f in fact.fields
        )

    def store_type(self, fact: TypeFact) -> DataStoreType:
        return rules.first_match(self.type_rules, fact, DataStoreType.OTHER)

    def classify(self, fact: TypeFact) -> DataStore | None:
        """Return a DataStore for ``fact``, or None if it is not one."""
        if not self.is_data_store(fact):
            return None
        qualified = fact.qualified_name
        return DataStore(
            id=qualified,
            name=fact.name,
            description=f"Data store identified from: {qualified}",
            type=self.store_type(fact),
        )


# ---------------------------------------------------------------------------
# Process Extractor
# ---------------------------------------------------------------------------


class ProcessExtractor:
    """Turns member functions into processes.

    Inputs and outputs resolve by exact string equality against the known
    data-structure ids; generic or partially-qualified types do not match.
    """

    def __init__(
        self,
        void_types: Collection[str] = rules.VOID_RETURN_TYPES,
    ):
        self.void_types = frozenset(void_types)

    def extract(
        self,
        fact: TypeFact,
        known_structures: Collection[str],
    ) -> list[Process]:
        return [
            self.extract_method(fact, method, known_structures)
            for method in fact.methods
        ]

    def extract_method(
        self,
        fact: TypeFact,
        method: MethodFact,
        known_structures: Collection[str],
    ) -> Process:
        owner = method.owner or fact.qualified_name
        simple_owner = owner[owner.rfind(".") + 1 :]
        process = Process(
            id=f"{owner}.{method.name}",
            name=f"{simple_owner}.{method.name}",
            description=clean_doc(method.doc),
            source_path=fact.source_path,
        )
        for param in method.parameters:
            if param.type in known_structures:
                process.add_input(param.type)
        if (
            method.return_type not in self.void_types
            and method.return_type in known_structures
        ):
            process.add_output(method.return_type)
        return process
