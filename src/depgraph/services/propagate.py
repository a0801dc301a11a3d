"""Propagator: cascading effective-hash recomputation over the overlay graph.

Handling a node resolves its dependencies' effective hashes, computes its
own when all are present, and inserts it. When the insert changes the
graph, every current dependent is handled in turn, depth first. An insert
that leaves the graph unchanged ends that branch: this is the fixpoint
that keeps propagation bounded on acyclic graphs.

The cascade runs on an explicit stack rather than recursion. Each entry
carries the chain of keys that led to it; a node reached again through
its own chain is a dependency cycle and is reported instead of revisited.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from depgraph.domain.hashing import effective_hash

if TYPE_CHECKING:
    from depgraph.domain.types import Mangled, Node
    from depgraph.infrastructure.graph.store import GraphStore

logger = logging.getLogger(__name__)

type _Entry = tuple[Node, tuple[Mangled, ...]]


@dataclass
class PropagationReport:
    """What one cascade touched."""

    handled: list[Mangled] = field(default_factory=list)
    changed: list[Mangled] = field(default_factory=list)
    blocked: list[tuple[Mangled, Mangled]] = field(default_factory=list)
    cycles: list[list[Mangled]] = field(default_factory=list)


class Propagator:
    """Runs cascades against one :class:`GraphStore`."""

    def __init__(self, store: GraphStore) -> None:
        self._store = store

    def handle(self, node: Node) -> PropagationReport:
        """Recompute *node*'s effective hash, insert it, and cascade upward."""
        report = PropagationReport()
        self._run([(node, ())], report)
        return report

    def seed(self, node: Node) -> PropagationReport:
        """Insert *node* verbatim and cascade to its dependents if it changed.

        Used for external packages, whose effective hash is fixed by
        ``(name, version)`` and must not be recomputed.
        """
        report = PropagationReport()
        key = node.key
        report.handled.append(key)
        if self._store.insert(node):
            report.changed.append(key)
            self._run(self._dependents_of(key, ()), report)
        return report

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run(self, stack: list[_Entry], report: PropagationReport) -> None:
        while stack:
            current, chain = stack.pop()
            key = current.key
            if key in chain:
                cycle = [*chain[chain.index(key) :], key]
                logger.warning("Dependency cycle: %s", " -> ".join(cycle))
                report.cycles.append(cycle)
                continue

            resolved = self._resolve(current, report)
            report.handled.append(key)
            if not self._store.insert(resolved):
                continue
            report.changed.append(key)
            stack.extend(self._dependents_of(key, chain))

    def _dependents_of(self, key: Mangled, chain: tuple[Mangled, ...]) -> list[_Entry]:
        """Snapshot dependents of *key*, ordered so the first found pops first."""
        dependents = self._store.find_dependents(key)
        next_chain = (*chain, key)
        return [(dependent, next_chain) for dependent in reversed(dependents)]

    def _resolve(self, node: Node, report: PropagationReport) -> Node:
        """Return *node* with its effective hash computed or cleared."""
        key = node.key
        hashes: dict[Mangled, str] = {}
        complete = True
        for dep in sorted(node.dependencies):
            found = self._store.get(dep)
            if found is None:
                logger.debug("%s: dependency %s not found", key, dep)
            elif found.effective_hash is None:
                logger.debug("%s: dependency %s has no effective hash", key, dep)
            else:
                hashes[dep] = found.effective_hash
                continue
            complete = False
            report.blocked.append((key, dep))

        value = effective_hash(node.content_hash, hashes) if complete else None
        logger.debug("Handled %s (effective hash %s)", key, "computed" if complete else "pending")
        return node.model_copy(update={"effective_hash": value})
