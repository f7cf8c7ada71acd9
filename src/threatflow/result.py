"""Finished analysis result handed to renderers."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from functools import cached_property
from types import MappingProxyType
from typing import Any

from threatflow.model import (
    DataFlow,
    DataStore,
    DataStructure,
    ExternalEntity,
    Process,
)
from threatflow.registry import NodeRegistry

UNKNOWN_NODE = "unknown"


@dataclass(frozen=True)
class AnalysisResult:
    """Immutable DFD: node collections, edges and project metadata."""

    project_name: str
    data_structures: tuple[DataStructure, ...] = ()
    processes: tuple[Process, ...] = ()
    external_entities: tuple[ExternalEntity, ...] = ()
    data_stores: tuple[DataStore, ...] = ()
    data_flows: tuple[DataFlow, ...] = ()
    project_description: str = ""
    project_metadata: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def assemble(
        cls,
        registry: NodeRegistry,
        flows: list[DataFlow],
        project_name: str,
        project_description: str = "",
        project_metadata: dict[str, str] | None = None,
    ) -> AnalysisResult:
        registry.require_frozen("result assembly")
        return cls(
            project_name=project_name,
            data_structures=tuple(registry.data_structures.values()),
            processes=tuple(registry.processes.values()),
            external_entities=tuple(registry.external_entities.values()),
            data_stores=tuple(registry.data_stores.values()),
            data_flows=tuple(flows),
            project_description=project_description,
            project_metadata=MappingProxyType(dict(project_metadata or {})),
        )

    def counts(self) -> dict[str, int]:
        return {
            "data_structures": len(self.data_structures),
            "processes": len(self.processes),
            "external_entities": len(self.external_entities),
            "data_stores": len(self.data_stores),
            "data_flows": len(self.data_flows),
        }

    def summary(self) -> str:
        c = self.counts()
        return "\n".join(
            [
                f"Project Analysis Summary for {self.project_name}",
                "================================",
                "",
                f"Data Structures: {c['data_structures']}",
                f"Data Flows: {c['data_flows']}",
                f"External Entities: {c['external_entities']}",
                f"Processes: {c['processes']}",
                f"Data Stores: {c['data_stores']}",
                "",
            ]
        )

    def iter_nodes(self) -> Iterator[tuple[str, str, str]]:
        """Yield (kind, id, label) for every node."""
        for ds in self.data_structures:
            yield "data_structure", ds.id, ds.name
        for p in self.processes:
            yield "process", p.id, p.name
        for e in self.external_entities:
            yield "external_entity", e.name, e.name
        for s in self.data_stores:
            yield "data_store", s.id, s.name

    @cached_property
    def _labels(self) -> dict[str, str]:
        labels: dict[str, str] = {}
        for _kind, nid, label in self.iter_nodes():
            labels.setdefault(nid, label)
        return labels

    @cached_property
    def _structure_names(self) -> dict[str, str]:
        names: dict[str, str] = {}
        for ds in self.data_structures:
            names.setdefault(ds.fully_qualified_name, ds.name)
        return names

    def node_label(self, node_id: str | None) -> str:
        """Display label for a node id, ``"unknown"`` if it is not known."""
        if node_id is None:
            return UNKNOWN_NODE
        return self._labels.get(node_id, UNKNOWN_NODE)

    def data_structure_name(self, data_structure_id: str) -> str:
        """Simple name of a data structure, or the raw id if unknown."""
        return self._structure_names.get(data_structure_id, data_structure_id)

    def flows_by_type(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for flow in self.data_flows:
            counts[flow.type.value] = counts.get(flow.type.value, 0) + 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "project_name": self.project_name,
            "project_description": self.project_description,
            "project_metadata": dict(self.project_metadata),
            "summary": self.counts(),
            "data_structures": [ds.to_dict() for ds in self.data_structures],
            "processes": [p.to_dict() for p in self.processes],
            "external_entities": [e.to_dict() for e in self.external_entities],
            "data_stores": [s.to_dict() for s in self.data_stores],
            "data_flows": [f.to_dict() for f in self.data_flows],
        }
