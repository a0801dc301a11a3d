"""Hash engine: content hashes, effective hashes, and package hash pairs.

Both hash kinds share one pipeline: a 64-bit digest (BLAKE2b with an
8-byte digest, unkeyed) is scrambled with a three-round multiply/xor-shift
avalanche and written as 11 base-62 symbols, most significant first.
A prefix tag keeps the two kinds apart as strings:

- ``osha_1``: content hash, from a module's own canonical content.
- ``oshi_1``: effective hash, from a content hash plus every dependency's
  effective hash, folded in sorted key order.

The numeric steps use wrapping 64-bit unsigned arithmetic and must not
change: hashes are persisted and compared across invocations.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import Any

CONTENT_PREFIX = "osha_1"
EFFECTIVE_PREFIX = "oshi_1"

ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
HASH_LENGTH = 11

_MASK64 = (1 << 64) - 1
_MULT = 0xC3326AD887AE7811
_XOR = 0x7EDD869DB2C3AF1F

# Terminates each fed field so ("ab", "c") and ("a", "bc") differ.
_FIELD_END = b"\xff"


def scramble(num: int) -> int:
    """Three-round multiply/xor-shift avalanche over a 64-bit value."""
    n = (num * _MULT + 1) & _MASK64
    n ^= n >> 30
    n = (n * _MULT) & _MASK64
    n ^= n >> 27
    n = (n * _MULT) & _MASK64
    n ^= n >> 31
    return n ^ _XOR


def encode_base62(num: int) -> str:
    """Encode *num* as exactly :data:`HASH_LENGTH` base-62 symbols."""
    base = len(ALPHABET)
    out = ["0"] * HASH_LENGTH
    for i in range(HASH_LENGTH - 1, -1, -1):
        num, rem = divmod(num, base)
        out[i] = ALPHABET[rem]
    return "".join(out)


def u64_to_hash(num: int) -> str:
    """Scramble and encode a 64-bit digest."""
    return encode_base62(scramble(num & _MASK64))


class _Accumulator:
    """64-bit hash accumulator fed with framed fields."""

    def __init__(self) -> None:
        self._digest = hashlib.blake2b(digest_size=8)

    def feed(self, value: str | bytes) -> None:
        data = value.encode("utf-8") if isinstance(value, str) else value
        self._digest.update(data)
        self._digest.update(_FIELD_END)

    def finish(self) -> int:
        return int.from_bytes(self._digest.digest(), "big")


def canonical_json(value: Any) -> str:
    """Deterministic JSON rendering of a structural representation.

    Two structurally identical values (same keys and values, any dict
    insertion order) render to the same string.
    """
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def content_hash(canonical: str | bytes) -> str:
    """Hash a module's canonical representation into an ``osha_1`` string."""
    acc = _Accumulator()
    acc.feed(canonical)
    return f"{CONTENT_PREFIX}{u64_to_hash(acc.finish())}"


def effective_hash(content: str, dependencies: Mapping[str, str]) -> str:
    """Combine a content hash with dependency effective hashes.

    Pairs are folded in sorted key order, so the mapping's insertion order
    never affects the result.
    """
    acc = _Accumulator()
    acc.feed(content)
    for key in sorted(dependencies):
        acc.feed(key)
        acc.feed(dependencies[key])
    return f"{EFFECTIVE_PREFIX}{u64_to_hash(acc.finish())}"


def dependency_hash_pair(name: str, version: str) -> tuple[str, str]:
    """Return ``(content_hash, effective_hash)`` for an external package.

    Packages have no transitive dependencies inside the graph, so both
    hashes derive from the same ``(name, version)`` digest.
    """
    acc = _Accumulator()
    acc.feed(name)
    acc.feed(version)
    encoded = u64_to_hash(acc.finish())
    return f"{CONTENT_PREFIX}{encoded}", f"{EFFECTIVE_PREFIX}{encoded}"
