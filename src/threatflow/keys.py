"""Edge id generation for data flows.

Three id sources:
- counter: flow-1, flow-2, ... (deterministic, default)
- hash: flow-{hash64 hex} of the edge content plus a discriminator
- uuid: flow-{uuid4} (fresh on every run)

The hash key includes the detection pass and a per-source ordinal, so two
edges with the same (source, destination, data, type) tuple never collapse
onto one id.
"""

from __future__ import annotations

import hashlib
import itertools
import struct
import threading
import uuid
from typing import Protocol

DEFAULT_PERSON = b"threatflow"
FLOW_PREFIX = "flow-"


def hash64(key: str, person: bytes = DEFAULT_PERSON) -> int:
    """Compute a 64-bit BLAKE2b hash of a key string.

    Args:
        key: The key string to hash.
        person: Personalization bytes for BLAKE2b (default: b"threatflow").

    Returns:
        64-bit unsigned integer (little-endian).
    """
    h = hashlib.blake2b(
        key.encode("utf-8"),
        digest_size=8,
        person=person.ljust(16, b"\x00"),
    )
    return struct.unpack("<Q", h.digest())[0]


def flow_key(
    pass_index: int,
    ordinal: int,
    source_id: str,
    destination_id: str,
    data_structure_id: str,
    flow_type: str,
) -> str:
    """Construct a flow key string.

    Format: flow:{pass}:{ordinal}:{source}>{destination}#{data}:{type}
    """
    return (
        f"flow:{pass_index}:{ordinal}:{source_id}>{destination_id}"
        f"#{data_structure_id}:{flow_type}"
    )


class FlowIdSource(Protocol):
    def next_id(
        self,
        pass_index: int,
        source_id: str,
        destination_id: str,
        data_structure_id: str,
        flow_type: str,
    ) -> str: ...

    def reset(self) -> None:
        """Forget per-run state so the next run repeats the same ids."""
        ...


class CounterIdSource:
    """Monotonic ``flow-N`` ids, safe to share between threads."""

    def __init__(self, start: int = 1) -> None:
        self._start = start
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def reset(self) -> None:
        with self._lock:
            self._counter = itertools.count(self._start)

    def next_id(
        self,
        pass_index: int,
        source_id: str,
        destination_id: str,
        data_structure_id: str,
        flow_type: str,
    ) -> str:
        with self._lock:
            n = next(self._counter)
        return f"{FLOW_PREFIX}{n}"


class HashIdSource:
    """Content-hash ids, stable across runs for the same input order."""

    def __init__(self) -> None:
        self._ordinals: dict[str, int] = {}
        self._lock = threading.Lock()

    def reset(self) -> None:
        with self._lock:
            self._ordinals.clear()

    def next_id(
        self,
        pass_index: int,
        source_id: str,
        destination_id: str,
        data_structure_id: str,
        flow_type: str,
    ) -> str:
        base = flow_key(
            pass_index,
            0,
            source_id,
            destination_id,
            data_structure_id,
            flow_type,
        )
        with self._lock:
            ordinal = self._ordinals.get(base, 0)
            self._ordinals[base] = ordinal + 1
        key = flow_key(
            pass_index,
            ordinal,
            source_id,
            destination_id,
            data_structure_id,
            flow_type,
        )
        return f"{FLOW_PREFIX}{hash64(key):016x}"


class UuidIdSource:
    """Random ids, different on every run."""

    def reset(self) -> None:
        pass

    def next_id(
        self,
        pass_index: int,
        source_id: str,
        destination_id: str,
        data_structure_id: str,
        flow_type: str,
    ) -> str:
        return f"{FLOW_PREFIX}{uuid.uuid4()}"


ID_SOURCES = {
    "counter": CounterIdSource,
    "hash": HashIdSource,
    "uuid": UuidIdSource,
}


def make_id_source(mode: str) -> FlowIdSource:
    """Build a fresh id source for ``mode`` (counter, hash or uuid)."""
    try:
        factory = ID_SOURCES[mode]
    except KeyError:
        raise ValueError(
            f"unknown id mode {mode!r} (expected one of: "
            f"{', '.join(sorted(ID_SOURCES))})"
        ) from None
    return factory()
