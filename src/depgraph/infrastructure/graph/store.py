"""GraphStore: two-layer overlay of persisted and freshly changed nodes.

``existing`` holds the replayed log and is read-only for the invocation.
``new`` holds every node created or mutated during the invocation; it is
the only layer ever exported. Lookups consult ``new`` first.

The reverse-dependency index is a linear scan: each invocation rebuilds
the store from scratch and walks it once, so there is nothing to keep
incrementally in sync.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import ValidationError

from depgraph.domain.errors import RecordParseError
from depgraph.domain.types import Mangled, Node

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


class GraphStore:
    """Overlay graph keyed by mangled key."""

    def __init__(self, existing: dict[Mangled, Node] | None = None) -> None:
        self._existing: dict[Mangled, Node] = dict(existing or {})
        self._new: dict[Mangled, Node] = {}

    @classmethod
    def load(cls, lines: Iterable[str]) -> GraphStore:
        """Replay log *lines* into the ``existing`` layer.

        Later records for a key supersede earlier ones. Blank lines are
        skipped. Any malformed record aborts the whole load.
        """
        existing: dict[Mangled, Node] = {}
        for line_number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                node = Node.model_validate_json(line)
            except ValidationError as exc:
                first = exc.errors()[0]
                location = ".".join(str(part) for part in first["loc"])
                reason = f"{location}: {first['msg']}" if location else first["msg"]
                raise RecordParseError(line_number, reason) from exc
            existing[node.key] = node
        return cls(existing)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, key: Mangled) -> Node | None:
        """Return the current revision of *key*, ``new`` shadowing ``existing``."""
        node = self._new.get(key)
        if node is not None:
            return node
        return self._existing.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._new or key in self._existing

    def __len__(self) -> int:
        return len(self._new.keys() | self._existing.keys())

    def nodes(self) -> Iterator[Node]:
        """Iterate the overlay view: one current revision per key."""
        yield from self._new.values()
        for key, node in self._existing.items():
            if key not in self._new:
                yield node

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def insert(self, node: Node) -> bool:
        """Store *node* in ``new`` unless an identical revision is visible.

        Returns True when the graph changed.
        """
        key = node.key
        if self.get(key) == node:
            return False
        self._new[key] = node
        return True

    def find_dependents(self, key: Mangled) -> list[Node]:
        """Return every current node whose dependency set contains *key*."""
        return [node for node in self.nodes() if key in node.dependencies]

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    @property
    def changed_keys(self) -> list[Mangled]:
        """Keys written to the ``new`` layer during this invocation."""
        return list(self._new)

    def export_new(self) -> list[str]:
        """Serialize the ``new`` layer, one log record per node."""
        return [node.to_record() for node in self._new.values()]
