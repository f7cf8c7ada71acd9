"""Two-phase node registry.

Phase 1 registers nodes into four typed stores keyed by their stable
string id (later registrations with the same id replace earlier ones).
``freeze()`` ends phase 1: from then on registration raises
``RegistryFrozenError``, and phase-2 access through ``require_frozen()``
raises ``RegistryNotFrozenError`` until the registry is frozen.

The node maps are exposed as read-only views.

Freezing fixes the set of nodes, not their attributes: flow detection
still grows a data store's structure-id list after the freeze.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import TypeVar

import structlog

from threatflow.errors import RegistryFrozenError, RegistryNotFrozenError
from threatflow.model import DataStore, DataStructure, ExternalEntity, Process

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class NodeRegistry:
    """Deduplicated stores for the four DFD node kinds."""

    def __init__(self) -> None:
        self._data_structures: dict[str, DataStructure] = {}
        self._processes: dict[str, Process] = {}
        self._external_entities: dict[str, ExternalEntity] = {}
        self._data_stores: dict[str, DataStore] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def data_structures(self) -> Mapping[str, DataStructure]:
        return MappingProxyType(self._data_structures)

    @property
    def processes(self) -> Mapping[str, Process]:
        return MappingProxyType(self._processes)

    @property
    def external_entities(self) -> Mapping[str, ExternalEntity]:
        return MappingProxyType(self._external_entities)

    @property
    def data_stores(self) -> Mapping[str, DataStore]:
        return MappingProxyType(self._data_stores)

    # -- phase 1 ------------------------------------------------------------

    def _put(self, store: dict[str, T], key: str, node: T, kind: str) -> T:
        if self._frozen:
            raise RegistryFrozenError(
                f"cannot register {kind} {key!r}: registry is frozen"
            )
        if key in store:
            logger.debug("replacing node", kind=kind, id=key)
        store[key] = node
        return node

    def register_data_structure(self, node: DataStructure) -> DataStructure:
        return self._put(
            self._data_structures, node.id, node, "data structure"
        )

    def register_process(self, node: Process) -> Process:
        return self._put(self._processes, node.id, node, "process")

    def register_external_entity(self, node: ExternalEntity) -> ExternalEntity:
        return self._put(
            self._external_entities, node.name, node, "external entity"
        )

    def register_data_store(self, node: DataStore) -> DataStore:
        return self._put(self._data_stores, node.id, node, "data store")

    def has_data_structure(self, key: str) -> bool:
        return key in self._data_structures

    # -- phase boundary -----------------------------------------------------

    def freeze(self) -> NodeRegistry:
        """End phase 1. Idempotent."""
        if not self._frozen:
            self._frozen = True
            logger.debug("registry frozen", **self.counts())
        return self

    def require_frozen(self, operation: str = "flow detection") -> None:
        if not self._frozen:
            raise RegistryNotFrozenError(
                f"{operation} requires a frozen registry; call freeze() "
                "after all nodes are registered"
            )

    # -- read access --------------------------------------------------------

    def counts(self) -> dict[str, int]:
        return {
            "data_structures": len(self._data_structures),
            "processes": len(self._processes),
            "external_entities": len(self._external_entities),
            "data_stores": len(self._data_stores),
        }

    def node_ids(self) -> Iterator[str]:
        """Every node id, across all four kinds."""
        yield from self._data_structures
        yield from self._processes
        yield from self._external_entities
        yield from self._data_stores

    def __len__(self) -> int:
        return sum(self.counts().values())
