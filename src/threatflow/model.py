"""DFD model - nodes and edges of a threat-modeling data flow diagram.

Four node kinds (data structures, processes, external entities, data
stores) plus directed data flows between them. Nodes are mutable only in
their attributes; flows are frozen once created.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DataStructureType(str, Enum):
    CLASS = "Class"
    INTERFACE = "Interface"
    ENUM = "Enum"
    RECORD = "Record"
    DTO = "DTO"
    ENTITY = "Entity"
    OTHER = "Other"


class ExternalEntityType(str, Enum):
    USER = "User"
    SYSTEM = "System"
    SERVICE = "Service"
    DATABASE = "Database"
    OTHER = "Other"


class DataStoreType(str, Enum):
    DATABASE = "Database"
    FILE_SYSTEM = "FileSystem"
    CACHE = "Cache"
    MEMORY = "Memory"
    CLOUD_STORAGE = "CloudStorage"
    OTHER = "Other"


class DataFlowType(str, Enum):
    INPUT = "Input"
    OUTPUT = "Output"
    INTERNAL = "Internal"
    DATABASE_READ = "DatabaseRead"
    DATABASE_WRITE = "DatabaseWrite"
    API_CALL = "ApiCall"
    FILE_IO = "FileIO"
    OTHER = "Other"


def _append_unique(items: list[str], value: str) -> bool:
    if value in items:
        return False
    items.append(value)
    return True


@dataclass
class DataField:
    """A field/member variable of a data structure."""

    name: str
    type: str
    description: str = ""
    annotations: dict[str, str] = field(default_factory=dict)
    primitive: bool = False
    collection: bool = False
    sensitive: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "annotations": dict(self.annotations),
            "primitive": self.primitive,
            "collection": self.collection,
            "sensitive": self.sensitive,
        }


@dataclass
class DataStructure:
    """A class, interface, enum or record discovered in the codebase."""

    name: str
    fully_qualified_name: str
    description: str = ""
    source_path: str = ""
    fields: list[DataField] = field(default_factory=list)
    annotations: dict[str, str] = field(default_factory=dict)
    type: DataStructureType = DataStructureType.OTHER
    external: bool = False

    @property
    def id(self) -> str:
        return self.fully_qualified_name

    def add_field(self, data_field: DataField) -> None:
        """Add a field, replacing any earlier field with the same name."""
        for i, existing in enumerate(self.fields):
            if existing.name == data_field.name:
                self.fields[i] = data_field
                return
        self.fields.append(data_field)

    @property
    def sensitive_fields(self) -> list[DataField]:
        return [f for f in self.fields if f.sensitive]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "fully_qualified_name": self.fully_qualified_name,
            "description": self.description,
            "source_path": self.source_path,
            "type": self.type.value,
            "external": self.external,
            "annotations": dict(self.annotations),
            "fields": [f.to_dict() for f in self.fields],
        }


@dataclass
class Process:
    """A method that consumes and/or produces data structures."""

    id: str
    name: str
    description: str = ""
    source_path: str = ""
    input_ids: list[str] = field(default_factory=list)
    output_ids: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def add_input(self, data_structure_id: str) -> bool:
        return _append_unique(self.input_ids, data_structure_id)

    def add_output(self, data_structure_id: str) -> bool:
        return _append_unique(self.output_ids, data_structure_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "source_path": self.source_path,
            "input_ids": list(self.input_ids),
            "output_ids": list(self.output_ids),
            "metadata": dict(self.metadata),
        }


@dataclass
class ExternalEntity:
    """Something outside the trust boundary that talks to the system."""

    name: str
    description: str = ""
    type: ExternalEntityType = ExternalEntityType.OTHER
    protocols: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.name

    def add_protocol(self, protocol: str) -> bool:
        return _append_unique(self.protocols, protocol)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "type": self.type.value,
            "protocols": list(self.protocols),
            "metadata": dict(self.metadata),
        }


@dataclass
class DataStore:
    """A database, file system, cache or other persistent store."""

    id: str
    name: str
    description: str = ""
    type: DataStoreType = DataStoreType.OTHER
    data_structure_ids: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def add_data_structure(self, data_structure_id: str) -> bool:
        return _append_unique(self.data_structure_ids, data_structure_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type.value,
            "data_structure_ids": list(self.data_structure_ids),
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class DataFlow:
    """A directed edge carrying one data structure between two nodes."""

    id: str
    source_id: str
    destination_id: str
    data_structure_id: str
    type: DataFlowType = DataFlowType.OTHER
    external: bool = False
    protocol: str | None = None
    description: str = ""
    metadata: dict[str, Any] = field(default_factory=dict, hash=False)

    @property
    def signature(self) -> tuple[str, str, str, DataFlowType]:
        """(source, destination, data id, type), ignoring the edge id."""
        return (
            self.source_id,
            self.destination_id,
            self.data_structure_id,
            self.type,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source_id": self.source_id,
            "destination_id": self.destination_id,
            "data_structure_id": self.data_structure_id,
            "type": self.type.value,
            "external": self.external,
            "protocol": self.protocol,
            "description": self.description,
            "metadata": dict(self.metadata),
        }
