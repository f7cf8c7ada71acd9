"""Data flow inference over a frozen node registry.

Five passes, run in this order:

1. process -> process      (output id of one is an input id of another)
2. external -> process     (web clients and services feeding processes)
3. process -> external     (processes answering web clients / calling services)
4. process -> data store   (write-verb processes naming the store)
5. data store -> process   (read-verb processes naming the store)

Pass 4 adds every id it writes to the target store's structure-id list and
pass 5 reads that list, so pass 5 must run after pass 4. Passes 1-3 are
independent of each other and of the store lists. Verbs are matched
against the lower-cased process id; store names are matched as written.

Edges are never merged: if two rules match the same (source, destination,
data) triple, both edges are kept, each with its own id.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from threatflow import rules
from threatflow.keys import CounterIdSource, FlowIdSource
from threatflow.model import (
    DataFlow,
    DataFlowType,
    DataStore,
    ExternalEntity,
    ExternalEntityType,
    Process,
)
from threatflow.registry import NodeRegistry

logger = structlog.get_logger(__name__)

PASS_PROCESS_TO_PROCESS = 1
PASS_EXTERNAL_TO_PROCESS = 2
PASS_PROCESS_TO_EXTERNAL = 3
PASS_PROCESS_TO_STORE = 4
PASS_STORE_TO_PROCESS = 5


@dataclass
class FlowDetectionStats:
    """Edge counts per pass, plus the ids pass 4 recorded on each store."""

    edges_per_pass: dict[int, int] = field(default_factory=dict)
    store_writes: dict[str, list[str]] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.edges_per_pass.values())


class FlowDetector:
    """Infers directed data flows between registered nodes."""

    def __init__(
        self,
        registry: NodeRegistry,
        id_source: FlowIdSource | None = None,
        write_verbs: tuple[str, ...] = rules.WRITE_VERBS,
        read_verbs: tuple[str, ...] = rules.READ_VERBS,
    ):
        self.registry = registry
        self.id_source = id_source or CounterIdSource()
        self.write_verbs = write_verbs
        self.read_verbs = read_verbs
        self.stats = FlowDetectionStats()

    def _flow(
        self,
        pass_index: int,
        source_id: str,
        destination_id: str,
        data_structure_id: str,
        flow_type: DataFlowType,
        description: str,
        external: bool = False,
        protocol: str | None = None,
    ) -> DataFlow:
        flow_id = self.id_source.next_id(
            pass_index,
            source_id,
            destination_id,
            data_structure_id,
            flow_type.value,
        )
        return DataFlow(
            id=flow_id,
            source_id=source_id,
            destination_id=destination_id,
            data_structure_id=data_structure_id,
            type=flow_type,
            external=external,
            protocol=protocol,
            description=description,
            metadata={"pass": pass_index},
        )

    def detect(self) -> list[DataFlow]:
        """Run all five passes and return the edges in pass order."""
        self.registry.require_frozen()
        self.stats = FlowDetectionStats()
        self.id_source.reset()

        passes = [
            (PASS_PROCESS_TO_PROCESS, self.detect_process_to_process),
            (PASS_EXTERNAL_TO_PROCESS, self.detect_external_to_process),
            (PASS_PROCESS_TO_EXTERNAL, self.detect_process_to_external),
            (PASS_PROCESS_TO_STORE, self.detect_process_to_store),
            # reads the store lists pass 4 just extended
            (PASS_STORE_TO_PROCESS, self.detect_store_to_process),
        ]

        flows: list[DataFlow] = []
        for pass_index, run in passes:
            found = run()
            self.stats.edges_per_pass[pass_index] = len(found)
            flows.extend(found)

        logger.info(
            "flow detection complete",
            total=len(flows),
            per_pass=self.stats.edges_per_pass,
        )
        return flows

    # -- pass 1 -------------------------------------------------------------

    def detect_process_to_process(self) -> list[DataFlow]:
        self.registry.require_frozen()
        processes = list(self.registry.processes.values())
        flows = []
        for source in processes:
            for output_id in source.output_ids:
                for dest in processes:
                    if dest.id == source.id:
                        continue
                    if output_id not in dest.input_ids:
                        continue
                    flows.append(
                        self._flow(
                            PASS_PROCESS_TO_PROCESS,
                            source.id,
                            dest.id,
                            output_id,
                            DataFlowType.INTERNAL,
                            f"{source.name} -> {dest.name}",
                        )
                    )
        return flows

    # -- passes 2 and 3 -----------------------------------------------------

    def _web_client_targets(
        self, entity: ExternalEntity
    ) -> list[Process] | None:
        if (
            entity.type != ExternalEntityType.USER
            or not entity.name.startswith(rules.WEB_CLIENT_PREFIX)
        ):
            return None
        controller = entity.name[len(rules.WEB_CLIENT_PREFIX) :]
        return [
            p for p in self.registry.processes.values() if controller in p.id
        ]

    def _service_targets(self, entity: ExternalEntity) -> list[Process] | None:
        if (
            entity.type != ExternalEntityType.SERVICE
            or not entity.name.startswith(rules.SERVICE_PREFIX)
        ):
            return None
        service = entity.name[len(rules.SERVICE_PREFIX) :]
        return [
            p
            for p in self.registry.processes.values()
            if service in p.id or service in p.description
        ]

    @staticmethod
    def _first_protocol(entity: ExternalEntity) -> str | None:
        return entity.protocols[0] if entity.protocols else None

    def detect_external_to_process(self) -> list[DataFlow]:
        self.registry.require_frozen()
        flows = []
        for entity in self.registry.external_entities.values():
            targets = self._web_client_targets(entity)
            for process in targets or []:
                for input_id in process.input_ids:
                    flows.append(
                        self._flow(
                            PASS_EXTERNAL_TO_PROCESS,
                            entity.name,
                            process.id,
                            input_id,
                            DataFlowType.INPUT,
                            f"Web request from {entity.name} to "
                            f"{process.name}",
                            external=True,
                            protocol=rules.PROTOCOL_HTTP,
                        )
                    )

            targets = self._service_targets(entity)
            for process in targets or []:
                for input_id in process.input_ids:
                    flows.append(
                        self._flow(
                            PASS_EXTERNAL_TO_PROCESS,
                            entity.name,
                            process.id,
                            input_id,
                            DataFlowType.API_CALL,
                            f"Service call response from {entity.name} to "
                            f"{process.name}",
                            external=True,
                            protocol=self._first_protocol(entity),
                        )
                    )
        return flows

    def detect_process_to_external(self) -> list[DataFlow]:
        self.registry.require_frozen()
        flows = []
        for entity in self.registry.external_entities.values():
            targets = self._web_client_targets(entity)
            for process in targets or []:
                for output_id in process.output_ids:
                    flows.append(
                        self._flow(
                            PASS_PROCESS_TO_EXTERNAL,
                            process.id,
                            entity.name,
                            output_id,
                            DataFlowType.OUTPUT,
                            f"Web response from {process.name} to "
                            f"{entity.name}",
                            external=True,
                            protocol=rules.PROTOCOL_HTTP,
                        )
                    )

            targets = self._service_targets(entity)
            for process in targets or []:
                for output_id in process.output_ids:
                    flows.append(
                        self._flow(
                            PASS_PROCESS_TO_EXTERNAL,
                            process.id,
                            entity.name,
                            output_id,
                            DataFlowType.API_CALL,
                            f"Service call request from {process.name} to "
                            f"{entity.name}",
                            external=True,
                            protocol=self._first_protocol(entity),
                        )
                    )
        return flows

    # -- passes 4 and 5 -----------------------------------------------------

    @staticmethod
    def _names_store(process: Process, store: DataStore) -> bool:
        return store.name in process.id or store.name in process.description

    def _store_processes(
        self, store: DataStore, verbs: tuple[str, ...]
    ) -> list[Process]:
        return [
            p
            for p in self.registry.processes.values()
            if rules.contains_any(p.id.lower(), verbs)
            and self._names_store(p, store)
        ]

    def detect_process_to_store(self) -> list[DataFlow]:
        """Pass 4. Also records each written id on the target store."""
        self.registry.require_frozen()
        flows = []
        for store in self.registry.data_stores.values():
            for process in self._store_processes(store, self.write_verbs):
                for output_id in process.output_ids:
                    flows.append(
                        self._flow(
                            PASS_PROCESS_TO_STORE,
                            process.id,
                            store.id,
                            output_id,
                            DataFlowType.DATABASE_WRITE,
                            f"Data write from {process.name} to {store.name}",
                        )
                    )
                    store.add_data_structure(output_id)
                    written = self.stats.store_writes.setdefault(store.id, [])
                    if output_id not in written:
                        written.append(output_id)
        return flows

    def detect_store_to_process(self) -> list[DataFlow]:
        """Pass 5. Sees every id pass 4 recorded on the store."""
        self.registry.require_frozen()
        flows = []
        for store in self.registry.data_stores.values():
            for process in self._store_processes(store, self.read_verbs):
                for data_id in list(store.data_structure_ids):
                    flows.append(
                        self._flow(
                            PASS_STORE_TO_PROCESS,
                            store.id,
                            process.id,
                            data_id,
                            DataFlowType.DATABASE_READ,
                            f"Data read from {store.name} to {process.name}",
                        )
                    )
        return flows
