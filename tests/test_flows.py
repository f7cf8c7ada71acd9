"""Tests for the five-pass flow detector."""

from collections import Counter

import pytest

from threatflow.flows import (
    PASS_PROCESS_TO_STORE,
    PASS_STORE_TO_PROCESS,
    FlowDetector,
)
from threatflow.keys import UuidIdSource
from threatflow.model import (
    DataFlowType,
    DataStore,
    ExternalEntity,
    ExternalEntityType,
    Process,
)
from threatflow.registry import NodeRegistry

ORDER = "pkg.Order"


def frozen(*nodes) -> NodeRegistry:
    registry = NodeRegistry()
    for node in nodes:
        if isinstance(node, Process):
            registry.register_process(node)
        elif isinstance(node, ExternalEntity):
            registry.register_external_entity(node)
        elif isinstance(node, DataStore):
            registry.register_data_store(node)
    return registry.freeze()


class TestProcessToProcess:
    def test_single_internal_edge(self):
        a = Process("pkg.A.make", "A.make", output_ids=[ORDER])
        b = Process("pkg.B.use", "B.use", input_ids=[ORDER])
        flows = FlowDetector(frozen(a, b)).detect()

        assert len(flows) == 1
        (flow,) = flows
        assert flow.signature == (
            "pkg.A.make",
            "pkg.B.use",
            ORDER,
            DataFlowType.INTERNAL,
        )
        assert flow.external is False
        assert flow.id == "flow-1"
        assert flow.metadata == {"pass": 1}

    def test_no_self_loop(self):
        p = Process(
            "pkg.A.echo", "A.echo", input_ids=[ORDER], output_ids=[ORDER]
        )
        assert FlowDetector(frozen(p)).detect_process_to_process() == []


class TestExternalFlows:
    @pytest.fixture
    def registry(self):
        web = ExternalEntity(
            "WebClient-OrderController",
            type=ExternalEntityType.USER,
            protocols=["HTTP/HTTPS"],
        )
        svc = ExternalEntity(
            "Service-PaymentClient",
            type=ExternalEntityType.SERVICE,
            protocols=["Kafka"],
        )
        create = Process(
            "pkg.OrderController.create",
            "OrderController.create",
            input_ids=[ORDER],
            output_ids=[ORDER],
        )
        pay = Process(
            "pkg.Checkout.pay",
            "Checkout.pay",
            description="calls PaymentClient",
            input_ids=[ORDER],
        )
        return frozen(web, svc, create, pay)

    def test_inbound(self, registry):
        flows = FlowDetector(registry).detect_external_to_process()
        by_type = {f.type: f for f in flows}

        assert len(flows) == 2
        web = by_type[DataFlowType.INPUT]
        assert web.source_id == "WebClient-OrderController"
        assert web.destination_id == "pkg.OrderController.create"
        assert web.protocol == "HTTP/HTTPS"
        assert web.external is True
        assert web.description == (
            "Web request from WebClient-OrderController to "
            "OrderController.create"
        )

        svc = by_type[DataFlowType.API_CALL]
        assert svc.source_id == "Service-PaymentClient"
        assert svc.destination_id == "pkg.Checkout.pay"
        assert svc.protocol == "Kafka"

    def test_outbound(self, registry):
        flows = FlowDetector(registry).detect_process_to_external()
        assert [(f.type, f.destination_id) for f in flows] == [
            (DataFlowType.OUTPUT, "WebClient-OrderController"),
        ]

    def test_prefix_and_type_must_agree(self):
        # USER type without the web client prefix is ignored
        entity = ExternalEntity("Browser", type=ExternalEntityType.USER)
        p = Process("pkg.Browser.view", "Browser.view", input_ids=[ORDER])
        detector = FlowDetector(frozen(entity, p))
        assert detector.detect_external_to_process() == []


class TestStoreFlows:
    def test_no_stores_no_store_edges(self):
        p = Process(
            "pkg.OrderService.saveAndGet",
            "s",
            input_ids=[ORDER],
            output_ids=[ORDER],
        )
        detector = FlowDetector(frozen(p))
        detector.detect()
        assert detector.stats.edges_per_pass[PASS_PROCESS_TO_STORE] == 0
        assert detector.stats.edges_per_pass[PASS_STORE_TO_PROCESS] == 0

    def test_write_then_read(self):
        store = DataStore("pkg.Order", "Order")
        p = Process(
            "pkg.OrderService.saveAndGet",
            "OrderService.saveAndGet",
            output_ids=[ORDER],
        )
        detector = FlowDetector(frozen(store, p))
        flows = detector.detect()

        assert [(f.type, f.source_id, f.destination_id) for f in flows] == [
            (DataFlowType.DATABASE_WRITE, p.id, "pkg.Order"),
            (DataFlowType.DATABASE_READ, "pkg.Order", p.id),
        ]
        assert store.data_structure_ids == [ORDER]
        assert detector.stats.store_writes == {"pkg.Order": [ORDER]}

    def test_read_uses_existing_store_ids(self):
        store = DataStore("pkg.Cache", "Cache", data_structure_ids=["pkg.A"])
        p = Process("pkg.Cache.load", "Cache.load")
        flows = FlowDetector(frozen(store, p)).detect()
        assert [f.data_structure_id for f in flows] == ["pkg.A"]

    def test_store_named_in_description(self):
        store = DataStore("pkg.Ledger", "Ledger")
        p = Process(
            "pkg.Books.persistAll",
            "Books.persistAll",
            description="writes to the Ledger",
            output_ids=[ORDER],
        )
        flows = FlowDetector(frozen(store, p)).detect_process_to_store()
        assert len(flows) == 1

    def test_verb_without_store_name(self):
        store = DataStore("pkg.Invoice", "Invoice")
        p = Process("pkg.OrderService.save", "s", output_ids=[ORDER])
        assert FlowDetector(frozen(store, p)).detect() == []


class TestDeterminism:
    def test_every_matching_store_gets_an_edge(self):
        a = DataStore("pkg.Order", "Order")
        b = DataStore("pkg.OrderArchive", "OrderArchive")
        p = Process(
            "pkg.OrderArchive.save", "OrderArchive.save", output_ids=[ORDER]
        )
        flows = FlowDetector(frozen(a, b, p)).detect_process_to_store()
        assert len(flows) == 2
        assert len({f.id for f in flows}) == 2

    def test_rerun_same_multiset(self):
        store = DataStore("pkg.Order", "Order")
        procs = [
            Process("pkg.OrderService.saveAndGet", "a", output_ids=[ORDER]),
            Process(
                "pkg.OrderApi.create",
                "b",
                input_ids=[ORDER],
                output_ids=[ORDER],
            ),
            Process("pkg.Report.findOrders", "c", input_ids=[ORDER]),
        ]
        registry = frozen(store, *procs)

        first = FlowDetector(registry, id_source=UuidIdSource()).detect()
        second = FlowDetector(registry, id_source=UuidIdSource()).detect()

        assert len(first) == len(second)
        assert Counter(f.signature for f in first) == Counter(
            f.signature for f in second
        )
        assert {f.id for f in first}.isdisjoint(f.id for f in second)
