"""ReportService: read-only views of the persisted graph.

Reports replay the log exactly as an invocation would, so each key shows
its latest revision.
"""

from __future__ import annotations

from depgraph.domain.errors import DepgraphError
from depgraph.infrastructure.graph.view import GraphView
from depgraph.services.base import BaseService
from depgraph.services.contracts import SnapshotData, dump_validated
from depgraph.services.result import ServiceResult


class ReportService(BaseService):
    """Snapshot, impact and cycle queries over the graph log."""

    def snapshot(self) -> ServiceResult:
        """Every node with its key, sorted by key."""
        op = "snapshot"
        try:
            store = self._load_store()
        except DepgraphError as exc:
            return self._fatal(op, exc)

        nodes = sorted((node.summary() for node in store.nodes()), key=lambda n: n["key"])
        unresolved = sum(1 for node in nodes if node["effective_hash"] is None)
        data = dump_validated(
            SnapshotData,
            {"count": len(nodes), "unresolved": unresolved, "nodes": nodes},
        )
        return ServiceResult(ok=True, op=op, data=data)

    def impact(self, key: str) -> ServiceResult:
        """Nodes that must be recomputed when *key* changes."""
        op = "impact"
        try:
            store = self._load_store()
        except DepgraphError as exc:
            return self._fatal(op, exc)

        view = GraphView(store)
        if key not in view.graph:
            return ServiceResult.failure(op, "NOT_FOUND", f"Key '{key}' not found in graph")

        items = sorted(view.affected(key))
        return ServiceResult(ok=True, op=op, data={"key": key, "count": len(items), "items": items})

    def cycles(self) -> ServiceResult:
        """Dependency cycles present in the graph."""
        op = "cycles"
        try:
            store = self._load_store()
        except DepgraphError as exc:
            return self._fatal(op, exc)

        items = GraphView(store).cycles()
        result = ServiceResult(ok=True, op=op, data={"count": len(items), "items": items})
        if items:
            warnings = [f"Dependency cycle: {' -> '.join([*c, c[0]])}" for c in items]
            result = result.model_copy(update={"warnings": warnings})
        return result
