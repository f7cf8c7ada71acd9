"""Structural facts about a codebase and the JSON loader for them.

Facts are produced by a language front end (outside this package) and
describe one discovered type each: its name, kind, annotations, fields and
methods. Loading is best-effort: every record is validated on its own and
a bad record is logged and skipped, never fatal to the run.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

import structlog
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from threatflow.errors import FactLoadError

logger = structlog.get_logger(__name__)

TypeKind = Literal["class", "interface", "enum", "record"]
_KINDS = ("class", "interface", "enum", "record")


def _coerce_annotations(value: Any) -> Any:
    # {"Entity": null, "Table": "\"orders\""} shorthand
    if isinstance(value, dict):
        return [{"name": k, "value": v} for k, v in value.items()]
    return value


def _as_text(value: Any, default: str) -> str:
    if value is None:
        return default
    if isinstance(value, bool):
        return "true" if value else "false"
    return value if isinstance(value, str) else str(value)


class AnnotationFact(BaseModel):
    """An annotation/decorator attached to a type, field or method.

    Marker annotations have neither ``value`` nor ``pairs``; single-value
    annotations carry the literal source text of the value (quotes
    included) in ``value``; key/value annotations keep their pairs in
    declaration order.
    """

    model_config = ConfigDict(extra="ignore")

    name: str
    value: str | None = None
    pairs: list[tuple[str, str]] = Field(default_factory=list)

    @field_validator("pairs", mode="before")
    @classmethod
    def pairs_from_mapping(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, dict):
            v = list(v.items())
        if not isinstance(v, list):
            return v
        return [
            (_as_text(p[0], ""), _as_text(p[1], ""))
            if isinstance(p, (list, tuple)) and len(p) == 2
            else p
            for p in v
        ]

    @field_validator("value", mode="before")
    @classmethod
    def value_to_text(cls, v: Any) -> Any:
        # null stays a marker; rendered reports it as "true"
        return None if v is None else _as_text(v, "")

    @property
    def rendered(self) -> str:
        """Annotation value as a single string ("true" for markers)."""
        if self.value is not None:
            return self.value
        if self.pairs:
            return ", ".join(f"{k}={v}" for k, v in self.pairs)
        return "true"


def annotation_map(annotations: list[AnnotationFact]) -> dict[str, str]:
    return {a.name: a.rendered for a in annotations}


class FieldFact(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    type: str = ""
    annotations: list[AnnotationFact] = Field(default_factory=list)
    doc: str | None = None

    @field_validator("annotations", mode="before")
    @classmethod
    def coerce_annotation_map(cls, v: Any) -> Any:
        return _coerce_annotations(v) or []

    @field_validator("type", mode="before")
    @classmethod
    def none_to_blank(cls, v: Any) -> Any:
        return "" if v is None else v


class ParameterFact(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    type: str = ""

    @field_validator("name", "type", mode="before")
    @classmethod
    def none_to_blank(cls, v: Any) -> Any:
        return "" if v is None else v


class MethodFact(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    owner: str | None = None
    parameters: list[ParameterFact] = Field(default_factory=list)
    return_type: str = "void"
    annotations: list[AnnotationFact] = Field(default_factory=list)
    doc: str | None = None

    @field_validator("annotations", mode="before")
    @classmethod
    def coerce_annotation_map(cls, v: Any) -> Any:
        return _coerce_annotations(v) or []

    @field_validator("return_type", mode="before")
    @classmethod
    def default_void(cls, v: Any) -> Any:
        return "void" if v is None else v

    @field_validator("parameters", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class TypeFact(BaseModel):
    """One discovered type (class, interface, enum or record)."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    fqn: str | None = None
    kind: TypeKind | None = None
    package: str | None = None
    annotations: list[AnnotationFact] = Field(default_factory=list)
    fields: list[FieldFact] = Field(default_factory=list)
    methods: list[MethodFact] = Field(default_factory=list)
    doc: str | None = None
    source_path: str = ""

    @field_validator("annotations", mode="before")
    @classmethod
    def coerce_annotation_map(cls, v: Any) -> Any:
        return _coerce_annotations(v) or []

    @field_validator("kind", mode="before")
    @classmethod
    def normalize_kind(cls, v: Any) -> Any:
        if not isinstance(v, str):
            return None
        v = v.strip().lower()
        return v if v in _KINDS else None

    @field_validator("fields", "methods", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("source_path", mode="before")
    @classmethod
    def none_to_blank(cls, v: Any) -> Any:
        return "" if v is None else str(v)

    @model_validator(mode="after")
    def fill_qualified_name(self) -> TypeFact:
        if not self.fqn:
            if self.package:
                self.fqn = f"{self.package}.{self.name}"
            else:
                self.fqn = self.name
        for method in self.methods:
            if not method.owner:
                method.owner = self.fqn
        return self

    @property
    def qualified_name(self) -> str:
        return self.fqn or self.name

    @property
    def package_name(self) -> str:
        """Package prefix of the fully-qualified name ("" when unqualified)."""
        fqn = self.qualified_name
        idx = fqn.rfind(".")
        return fqn[:idx] if idx > 0 else ""

    @property
    def annotation_map(self) -> dict[str, str]:
        return annotation_map(self.annotations)

    def annotation_names(self) -> list[str]:
        return [a.name for a in self.annotations]


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


def parse_facts(data: Any, source: str = "<memory>") -> list[TypeFact]:
    """Validate raw JSON data into facts, skipping invalid records."""
    if isinstance(data, dict):
        records = data.get("types", [])
    elif isinstance(data, list):
        records = data
    else:
        logger.warning("unsupported fact document", source=source)
        return []

    facts: list[TypeFact] = []
    for i, record in enumerate(records):
        try:
            facts.append(TypeFact.model_validate(record))
        except ValidationError as e:
            logger.warning(
                "skipping invalid fact",
                source=source,
                index=i,
                errors=e.error_count(),
            )
    return facts


def _load_file(path: Path, strict: bool) -> list[TypeFact]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        if strict:
            raise FactLoadError(f"cannot read facts from {path}: {e}") from e
        logger.warning(
            "failed to read fact file", path=str(path), error=str(e)
        )
        return []
    return parse_facts(data, source=str(path))


def load_facts(path: Path, strict: bool = False) -> list[TypeFact]:
    """Load facts from a JSON file or a directory of JSON files.

    Args:
        path: A ``.json`` file, or a directory searched recursively.
        strict: Raise ``FactLoadError`` on unreadable files instead of
            logging and skipping them.

    Returns:
        All valid facts, in file then record order.
    """
    if path.is_dir():
        files = sorted(p for p in path.rglob("*.json") if p.is_file())
    elif path.exists():
        files = [path]
    else:
        if strict:
            raise FactLoadError(f"fact source not found: {path}")
        logger.warning("fact source not found", path=str(path))
        return []

    facts: list[TypeFact] = []
    for file_path in files:
        loaded = _load_file(file_path, strict)
        logger.debug("loaded facts", path=str(file_path), count=len(loaded))
        facts.extend(loaded)
    return facts
