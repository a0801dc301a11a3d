"""GraphView: lazy-built NetworkX graph over the overlay store.

Edges point from a node to each of its dependencies. Dependencies that
have no node yet still appear as bare vertices so that impact queries
on a not-yet-compiled module work.
Rebuilt per invocation, no cross-invocation cache.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import networkx as nx

if TYPE_CHECKING:
    from depgraph.domain.types import Mangled
    from depgraph.infrastructure.graph.store import GraphStore

type _Graph = nx.DiGraph


class GraphView:
    """Read-only analysis view of a :class:`GraphStore`."""

    def __init__(self, store: GraphStore) -> None:
        self._store = store
        self._graph: _Graph | None = None

    @property
    def graph(self) -> _Graph:
        """Return the graph, building from the store on first access."""
        if self._graph is None:
            self._graph = self._build()
        return self._graph

    def _build(self) -> _Graph:
        g: _Graph = nx.DiGraph()
        for node in self._store.nodes():
            key = node.key
            g.add_node(key, scope=node.scope, resolved=node.effective_hash is not None)
            for dep in node.dependencies:
                g.add_edge(key, dep)
        return g

    def affected(self, key: Mangled) -> set[Mangled]:
        """Every node that transitively depends on *key*."""
        if key not in self.graph:
            return set()
        return set(nx.ancestors(self.graph, key))

    def cycles(self) -> list[list[Mangled]]:
        """Elementary dependency cycles, each rotated to start at its smallest key."""
        found: list[list[Mangled]] = []
        for cycle in nx.simple_cycles(self.graph):
            start = cycle.index(min(cycle))
            found.append(cycle[start:] + cycle[:start])
        return sorted(found)
