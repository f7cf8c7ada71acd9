"""Classification rule tables.

Every heuristic the classifiers apply lives here as data: ordered
``(predicate, value)`` lists where the first matching predicate wins, and
plain keyword tuples for substring checks. Classifiers accept replacement
tables, so callers can extend the heuristics without touching the
classifier code.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from threatflow.model import DataStoreType, DataStructureType

if TYPE_CHECKING:
    from threatflow.facts import TypeFact

TypeRule = tuple[Callable[["TypeFact"], bool], DataStructureType]
StoreRule = tuple[Callable[["TypeFact"], bool], DataStoreType]
ProtocolRule = tuple[str, str]


def contains_any(text: str, needles: tuple[str, ...] | list[str]) -> bool:
    return any(n in text for n in needles)


def _has_annotation(fact: TypeFact, name: str) -> bool:
    return any(a.name == name for a in fact.annotations)


# ---------------------------------------------------------------------------
# Data Structure Rules
# ---------------------------------------------------------------------------

DATA_STRUCTURE_TYPE_RULES: list[TypeRule] = [
    (lambda t: t.kind == "interface", DataStructureType.INTERFACE),
    (
        lambda t: t.name.endswith(("DTO", "Request", "Response")),
        DataStructureType.DTO,
    ),
    (
        lambda t: t.name.endswith("Entity") or _has_annotation(t, "Entity"),
        DataStructureType.ENTITY,
    ),
    (lambda t: t.kind == "enum", DataStructureType.ENUM),
    (lambda t: t.kind == "record", DataStructureType.RECORD),
    (lambda t: True, DataStructureType.CLASS),
]

EXTERNAL_PACKAGE_PREFIXES: tuple[str, ...] = (
    "java.",
    "javax.",
    "org.springframework",
    "com.google",
    "org.apache",
    "io.netty",
    "org.hibernate",
    "com.fasterxml",
    "org.slf4j",
)

# ---------------------------------------------------------------------------
# Field Rules
# ---------------------------------------------------------------------------

PRIMITIVE_TYPES: frozenset[str] = frozenset(
    {
        "int",
        "byte",
        "short",
        "long",
        "float",
        "double",
        "boolean",
        "char",
        "Integer",
        "Byte",
        "Short",
        "Long",
        "Float",
        "Double",
        "Boolean",
        "Character",
        "String",
    }
)

COLLECTION_MARKERS: tuple[str, ...] = (
    "List",
    "Set",
    "Map",
    "Collection",
    "Array",
    "[]",
)

SENSITIVE_NAME_KEYWORDS: tuple[str, ...] = (
    "password",
    "secret",
    "token",
    "key",
    "credential",
    "ssn",
    "social",
    "credit",
    "auth",
    "private",
    "secure",
)

SENSITIVE_ANNOTATIONS: tuple[str, ...] = ("Sensitive", "Secret")

# ---------------------------------------------------------------------------
# Data Store Rules
# ---------------------------------------------------------------------------

DATA_STORE_NAME_MARKERS: tuple[str, ...] = (
    "Repository",
    "DAO",
    "Store",
    "Cache",
)
DATA_STORE_ANNOTATIONS: tuple[str, ...] = ("Repository", "Entity")
DATA_STORE_FIELD_TYPE_MARKERS: tuple[str, ...] = (
    "Connection",
    "DataSource",
    "EntityManager",
)

DATA_STORE_TYPE_RULES: list[StoreRule] = [
    (
        lambda t: contains_any(t.name, ("Database", "Repository", "DAO")),
        DataStoreType.DATABASE,
    ),
    (
        lambda t: contains_any(t.name, ("File", "Storage")),
        DataStoreType.FILE_SYSTEM,
    ),
    (lambda t: "Cache" in t.name, DataStoreType.CACHE),
    (lambda t: True, DataStoreType.OTHER),
]

# ---------------------------------------------------------------------------
# External Entity Rules
# ---------------------------------------------------------------------------

CONTROLLER_ANNOTATION_MARKERS: tuple[str, ...] = (
    "RestController",
    "Controller",
)
BASE_PATH_ANNOTATION_MARKER = "RequestMapping"
MAPPING_ANNOTATION_MARKER = "Mapping"
PATH_ANNOTATION_KEYS: tuple[str, ...] = ("path", "value")

REPOSITORY_ANNOTATION_MARKERS: tuple[str, ...] = ("Repository",)
REPOSITORY_NAME_MARKERS: tuple[str, ...] = ("Repository", "DAO")

SERVICE_ANNOTATION_MARKERS: tuple[str, ...] = ("FeignClient", "Service")
SERVICE_NAME_MARKERS: tuple[str, ...] = ("Client", "Service")

SERVICE_PROTOCOL_RULES: list[ProtocolRule] = [
    ("Rest", "HTTP/HTTPS"),
    ("Soap", "SOAP"),
    ("Kafka", "Kafka"),
    ("Jms", "JMS"),
]

PROTOCOL_HTTP = "HTTP/HTTPS"
PROTOCOL_JDBC = "JDBC/SQL"
PROTOCOL_UNKNOWN = "Unknown"

WEB_CLIENT_PREFIX = "WebClient-"
DATABASE_PREFIX = "Database-"
SERVICE_PREFIX = "Service-"

# ---------------------------------------------------------------------------
# Flow Rules
# ---------------------------------------------------------------------------

WRITE_VERBS: tuple[str, ...] = (
    "save",
    "update",
    "create",
    "delete",
    "insert",
    "persist",
)

READ_VERBS: tuple[str, ...] = (
    "get",
    "find",
    "read",
    "load",
    "retrieve",
    "search",
)

VOID_RETURN_TYPES: frozenset[str] = frozenset({"", "void"})


def first_match(rules, fact, default):
    """Return the value of the first rule whose predicate accepts ``fact``."""
    for predicate, value in rules:
        if predicate(fact):
            return value
    return default
