"""End-to-end tests for the two-phase analyzer."""

import json
from collections import Counter
from pathlib import Path

import pytest

from threatflow.analyzer import ProjectAnalyzer, analyze_path
from threatflow.classify import StructureClassifier
from threatflow.keys import HashIdSource, UuidIdSource, make_id_source
from threatflow.model import DataStoreType, DataStructureType

ORDER = "com.shop.model.Order"


class TestClassifyPhase:
    def test_registry_is_frozen(self, shop_facts):
        registry = ProjectAnalyzer().classify(shop_facts)
        assert registry.frozen
        assert registry.counts() == {
            "data_structures": 5,
            "processes": 5,
            "external_entities": 3,
            "data_stores": 2,
        }

    def test_nodes(self, shop_facts):
        registry = ProjectAnalyzer().classify(shop_facts)

        order = registry.data_structures[ORDER]
        assert order.type == DataStructureType.ENTITY
        assert order.description == "A customer order."
        repo = registry.data_structures["com.shop.repo.OrderRepository"]
        assert repo.type == DataStructureType.INTERFACE

        assert registry.data_stores[ORDER].type == DataStoreType.OTHER
        assert (
            registry.data_stores["com.shop.repo.OrderRepository"].type
            == DataStoreType.DATABASE
        )
        assert set(registry.external_entities) == {
            "WebClient-OrderController",
            "Database-OrderRepository",
            "Service-PaymentRestClient",
        }

    def test_process_io_independent_of_fact_order(self, shop_facts):
        # the Order structure arrives after every method that uses it
        reordered = shop_facts[1:] + shop_facts[:1]
        registry = ProjectAnalyzer().classify(reordered)
        save = registry.processes["com.shop.repo.OrderRepository.save"]
        assert save.input_ids == [ORDER]
        assert save.output_ids == [ORDER]

    def test_unclassifiable_fact_skipped(self, shop_facts):
        class Picky(StructureClassifier):
            def classify(self, fact):
                if fact.name == "User":
                    raise ValueError("cannot classify")
                return super().classify(fact)

        analyzer = ProjectAnalyzer(structure_classifier=Picky())
        registry = analyzer.classify(shop_facts)

        assert analyzer.skipped == ["com.shop.model.User"]
        assert "com.shop.model.User" not in registry.data_structures
        assert len(registry.data_structures) == 4


class TestAnalyze:
    def test_flow_counts_by_type(self, shop_facts):
        result = ProjectAnalyzer(project_name="shop").analyze(shop_facts)
        assert result.flows_by_type() == {
            "Internal": 10,
            "Input": 1,
            "ApiCall": 1,
            "Output": 2,
            "DatabaseWrite": 3,
            "DatabaseRead": 3,
        }
        assert result.counts()["data_flows"] == 20

    def test_counter_ids_sequential(self, shop_facts):
        result = ProjectAnalyzer().analyze(shop_facts)
        assert [f.id for f in result.data_flows] == [
            f"flow-{i}" for i in range(1, 21)
        ]

    def test_edges_in_pass_order(self, shop_facts):
        result = ProjectAnalyzer().analyze(shop_facts)
        passes = [f.metadata["pass"] for f in result.data_flows]
        assert passes == sorted(passes)

    def test_rerun_same_multiset(self, shop_facts):
        first = ProjectAnalyzer(id_source=UuidIdSource()).analyze(shop_facts)
        second = ProjectAnalyzer(id_source=UuidIdSource()).analyze(shop_facts)
        assert Counter(f.signature for f in first.data_flows) == Counter(
            f.signature for f in second.data_flows
        )

    def test_hash_ids_reproducible(self, shop_facts):
        first = ProjectAnalyzer(id_source=HashIdSource()).analyze(shop_facts)
        second = ProjectAnalyzer(id_source=HashIdSource()).analyze(shop_facts)
        assert [f.id for f in first.data_flows] == [
            f.id for f in second.data_flows
        ]

    @pytest.mark.parametrize("mode", ["counter", "hash"])
    def test_reused_analyzer_repeats_ids(self, shop_facts, mode):
        analyzer = ProjectAnalyzer(id_source=make_id_source(mode))
        first = analyzer.analyze(shop_facts)
        second = analyzer.analyze(shop_facts)
        assert [f.id for f in second.data_flows] == [
            f.id for f in first.data_flows
        ]

    def test_store_edges_record_written_ids(self, shop_facts):
        result = ProjectAnalyzer().analyze(shop_facts)
        stores = {s.id: s for s in result.data_stores}
        assert stores[ORDER].data_structure_ids == [ORDER]

    def test_project_metadata(self, shop_facts):
        result = ProjectAnalyzer(project_name="shop").analyze(shop_facts)
        assert result.project_description == "Analysis of shop"
        assert result.project_metadata["skipped_facts"] == "0"
        with pytest.raises(TypeError):
            result.project_metadata["x"] = "y"

    def test_empty_input(self):
        result = ProjectAnalyzer().analyze([])
        assert result.counts() == {
            "data_structures": 0,
            "processes": 0,
            "external_entities": 0,
            "data_stores": 0,
            "data_flows": 0,
        }


class TestAnalyzePath:
    def test_from_json(self, tmp_path: Path, shop_facts):
        path = tmp_path / "shop.json"
        path.write_text(
            json.dumps({"types": [f.model_dump() for f in shop_facts]})
        )
        result = analyze_path(path, id_mode="hash")
        assert result.project_name == "shop"
        assert result.counts()["data_flows"] == 20
        assert all(f.id.startswith("flow-") for f in result.data_flows)
