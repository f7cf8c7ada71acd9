"""Two-phase analysis pipeline.

Phase 1 classifies every fact into nodes. Data structures (and the data
stores and external entities that need nothing else) are registered first;
processes are extracted in a second sweep so their inputs and outputs
resolve against every known data structure regardless of fact order.

The registry is then frozen and phase 2 runs flow detection over it.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from pathlib import Path

import structlog

from threatflow.classify import (
    DataStoreClassifier,
    ProcessExtractor,
    StructureClassifier,
)
from threatflow.entities import ExternalEntityDetector
from threatflow.facts import TypeFact, load_facts
from threatflow.flows import FlowDetector
from threatflow.keys import FlowIdSource, make_id_source
from threatflow.model import DataFlow
from threatflow.registry import NodeRegistry
from threatflow.result import AnalysisResult

logger = structlog.get_logger(__name__)


class ProjectAnalyzer:
    """Runs classification and flow inference over a set of facts."""

    def __init__(
        self,
        project_name: str = "project",
        id_source: FlowIdSource | None = None,
        structure_classifier: StructureClassifier | None = None,
        store_classifier: DataStoreClassifier | None = None,
        process_extractor: ProcessExtractor | None = None,
        entity_detector: ExternalEntityDetector | None = None,
    ):
        self.project_name = project_name
        self.id_source = id_source
        self.structure_classifier = (
            structure_classifier or StructureClassifier()
        )
        self.store_classifier = store_classifier or DataStoreClassifier()
        self.process_extractor = process_extractor or ProcessExtractor()
        self.entity_detector = entity_detector or ExternalEntityDetector()
        self.skipped: list[str] = []

    # -- phase 1 ------------------------------------------------------------

    def _classify_type(self, registry: NodeRegistry, fact: TypeFact) -> None:
        # classify fully before registering anything for this fact
        structure = self.structure_classifier.classify(fact)
        store = self.store_classifier.classify(fact)
        entities = self.entity_detector.detect(fact)

        registry.register_data_structure(structure)
        if store is not None:
            registry.register_data_store(store)
        for entity in entities:
            registry.register_external_entity(entity)

    def _extract_processes(
        self, registry: NodeRegistry, fact: TypeFact
    ) -> None:
        known = registry.data_structures.keys()
        for process in self.process_extractor.extract(fact, known):
            registry.register_process(process)

    def classify(self, facts: Iterable[TypeFact]) -> NodeRegistry:
        """Phase 1: build a frozen registry from ``facts``."""
        registry = NodeRegistry()
        self.skipped = []
        classified: list[TypeFact] = []

        for fact in facts:
            try:
                self._classify_type(registry, fact)
            except Exception as e:
                logger.warning(
                    "skipping unclassifiable fact",
                    name=fact.name,
                    error=str(e),
                )
                self.skipped.append(fact.qualified_name)
                continue
            classified.append(fact)

        for fact in classified:
            self._extract_processes(registry, fact)

        return registry.freeze()

    # -- phase 2 ------------------------------------------------------------

    def detect_flows(self, registry: NodeRegistry) -> list[DataFlow]:
        """Phase 2: infer edges over the frozen registry."""
        detector = FlowDetector(
            registry, id_source=self.id_source or make_id_source("counter")
        )
        return detector.detect()

    def analyze(
        self,
        facts: Iterable[TypeFact],
        project_description: str | None = None,
    ) -> AnalysisResult:
        start = time.perf_counter()
        registry = self.classify(facts)
        logger.info("classification complete", **registry.counts())

        flows = self.detect_flows(registry)

        result = AnalysisResult.assemble(
            registry,
            flows,
            project_name=self.project_name,
            project_description=(
                project_description
                if project_description is not None
                else f"Analysis of {self.project_name}"
            ),
            project_metadata={"skipped_facts": str(len(self.skipped))},
        )
        logger.info(
            "analysis complete",
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
            **result.counts(),
        )
        return result


def analyze_path(
    path: Path,
    project_name: str | None = None,
    id_mode: str = "counter",
    strict: bool = False,
) -> AnalysisResult:
    """Load facts from ``path`` and analyze them."""
    facts = load_facts(path, strict=strict)
    logger.info("facts loaded", path=str(path), count=len(facts))
    analyzer = ProjectAnalyzer(
        project_name=project_name or path.stem,
        id_source=make_id_source(id_mode),
    )
    return analyzer.analyze(facts)
