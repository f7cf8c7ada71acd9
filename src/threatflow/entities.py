"""External entity detection.

Three independent sub-detectors look at each type fact: web endpoints
(controllers), repositories, and service clients. A type may trigger more
than one of them; each produces its own entity.
"""

from __future__ import annotations

from typing import Protocol

from threatflow import rules
from threatflow.facts import AnnotationFact, TypeFact
from threatflow.model import ExternalEntity, ExternalEntityType


def mapping_path(
    annotation: AnnotationFact,
    keys: tuple[str, ...] = rules.PATH_ANNOTATION_KEYS,
) -> str:
    """Extract the path literal from a mapping annotation, quotes stripped.

    A single-value annotation yields its value; a key/value annotation
    yields the first pair, in declaration order, whose key is in ``keys``.
    """
    if annotation.value is not None:
        return annotation.value.replace('"', "")
    for key, value in annotation.pairs:
        if key in keys:
            return value.replace('"', "")
    return ""


def _annotation_contains(
    annotations: list[AnnotationFact], markers: tuple[str, ...]
) -> bool:
    return any(rules.contains_any(a.name, markers) for a in annotations)


class SubDetector(Protocol):
    def detect(self, fact: TypeFact) -> ExternalEntity | None: ...


# ---------------------------------------------------------------------------
# Endpoint Detector
# ---------------------------------------------------------------------------


class EndpointDetector:
    """Web clients calling REST controllers."""

    def __init__(
        self,
        controller_markers: tuple[str, ...] = (
            rules.CONTROLLER_ANNOTATION_MARKERS
        ),
        base_path_marker: str = rules.BASE_PATH_ANNOTATION_MARKER,
        mapping_marker: str = rules.MAPPING_ANNOTATION_MARKER,
    ):
        self.controller_markers = controller_markers
        self.base_path_marker = base_path_marker
        self.mapping_marker = mapping_marker

    def base_path(self, fact: TypeFact) -> str:
        for annotation in fact.annotations:
            if self.base_path_marker in annotation.name:
                return mapping_path(annotation)
        return ""

    def detect(self, fact: TypeFact) -> ExternalEntity | None:
        if not _annotation_contains(fact.annotations, self.controller_markers):
            return None

        entity = ExternalEntity(
            name=f"{rules.WEB_CLIENT_PREFIX}{fact.name}",
            description=(
                f"Web client accessing REST endpoints in {fact.name}"
            ),
            type=ExternalEntityType.USER,
        )
        entity.add_protocol(rules.PROTOCOL_HTTP)

        base_path = self.base_path(fact)
        if base_path:
            entity.metadata["basePath"] = base_path

        for method in fact.methods:
            mapping = next(
                (
                    a
                    for a in method.annotations
                    if self.mapping_marker in a.name
                ),
                None,
            )
            if mapping is not None:
                entity.metadata[f"endpoint-{method.name}"] = (
                    base_path + mapping_path(mapping)
                )
        return entity


# ---------------------------------------------------------------------------
# Repository Detector
# ---------------------------------------------------------------------------


class RepositoryDetector:
    """Databases reached through repository/DAO types."""

    def __init__(
        self,
        annotation_markers: tuple[str, ...] = (
            rules.REPOSITORY_ANNOTATION_MARKERS
        ),
        name_markers: tuple[str, ...] = rules.REPOSITORY_NAME_MARKERS,
    ):
        self.annotation_markers = annotation_markers
        self.name_markers = name_markers

    def detect(self, fact: TypeFact) -> ExternalEntity | None:
        if not (
            _annotation_contains(fact.annotations, self.annotation_markers)
            or rules.contains_any(fact.name, self.name_markers)
        ):
            return None

        entity = ExternalEntity(
            name=f"{rules.DATABASE_PREFIX}{fact.name}",
            description=f"Database accessed by {fact.name}",
            type=ExternalEntityType.DATABASE,
        )
        entity.add_protocol(rules.PROTOCOL_JDBC)
        return entity


# ---------------------------------------------------------------------------
# Service Client Detector
# ---------------------------------------------------------------------------


class ServiceClientDetector:
    """External services reached through client/service types."""

    def __init__(
        self,
        annotation_markers: tuple[str, ...] = rules.SERVICE_ANNOTATION_MARKERS,
        name_markers: tuple[str, ...] = rules.SERVICE_NAME_MARKERS,
        protocol_rules: list[rules.ProtocolRule] | None = None,
    ):
        self.annotation_markers = annotation_markers
        self.name_markers = name_markers
        self.protocol_rules = (
            protocol_rules
            if protocol_rules is not None
            else rules.SERVICE_PROTOCOL_RULES
        )

    def protocol(self, name: str) -> str:
        for marker, protocol in self.protocol_rules:
            if marker in name:
                return protocol
        return rules.PROTOCOL_UNKNOWN

    def detect(self, fact: TypeFact) -> ExternalEntity | None:
        if not (
            _annotation_contains(fact.annotations, self.annotation_markers)
            or rules.contains_any(fact.name, self.name_markers)
        ):
            return None

        entity = ExternalEntity(
            name=f"{rules.SERVICE_PREFIX}{fact.name}",
            description=f"External service accessed by {fact.name}",
            type=ExternalEntityType.SERVICE,
        )
        entity.add_protocol(self.protocol(fact.name))
        return entity


# ---------------------------------------------------------------------------
# External Entity Detector
# ---------------------------------------------------------------------------


class ExternalEntityDetector:
    """Runs every sub-detector over a fact; no cross-detector dedup."""

    def __init__(self, detectors: list[SubDetector] | None = None):
        self.detectors: list[SubDetector] = (
            detectors
            if detectors is not None
            else [
                EndpointDetector(),
                RepositoryDetector(),
                ServiceClientDetector(),
            ]
        )

    def detect(self, fact: TypeFact) -> list[ExternalEntity]:
        entities = []
        for detector in self.detectors:
            entity = detector.detect(fact)
            if entity is not None:
                entities.append(entity)
        return entities
