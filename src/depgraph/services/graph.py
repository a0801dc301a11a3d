"""GraphService: the per-module entry point called by the host compiler.

One call records one compiled file: it loads the full log, turns the file
into a node, propagates, and appends whatever changed. Calls for files
under the packages directory record the owning package instead.
(Concurrency: see :mod:`depgraph.infrastructure.log`.)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from depgraph.domain.errors import DepgraphError, MetadataError
from depgraph.domain.hashing import canonical_json, content_hash, dependency_hash_pair
from depgraph.domain.keys import mangle
from depgraph.domain.types import APP_SCOPE, DEP_SCOPE, Node
from depgraph.infrastructure.filesystem import (
    package_dir,
    relative_module_path,
    split_module_path,
    write_artifact,
)
from depgraph.services.base import BaseService
from depgraph.services.contracts import RecordResultData, dump_validated
from depgraph.services.propagate import Propagator
from depgraph.services.result import ServiceResult

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from pathlib import Path

    from depgraph.config.settings import DepgraphSettings
    from depgraph.infrastructure.log import GraphLog
    from depgraph.services.contracts import PackageMetadataProvider, SpecifierResolver

logger = logging.getLogger(__name__)


class GraphService(BaseService):
    """Records modules and packages into the dependency graph."""

    def __init__(
        self,
        settings: DepgraphSettings,
        *,
        log: GraphLog | None = None,
        metadata: PackageMetadataProvider | None = None,
    ) -> None:
        super().__init__(settings, log=log)
        self._metadata = metadata

    def record_module(
        self,
        path: str | Path,
        canonical: str | bytes | Mapping[str, Any] | list[Any],
        imports: Iterable[str],
        resolver: SpecifierResolver,
        *,
        artifact: str | None = None,
    ) -> ServiceResult:
        """Record one compiled module and propagate its change.

        Args:
            path: File being compiled, absolute or relative to the root.
            canonical: Deterministic structural representation of the module.
                Text or bytes are hashed as given; a parsed tree (mapping or
                list) is rendered with :func:`canonical_json` first.
            imports: Raw import specifiers found in the module.
            resolver: Maps each specifier to its dependency's identity.
            artifact: Emitted output to store under the content hash.
        """
        op = "record_module"
        try:
            rel = relative_module_path(self._settings.root, path)
            pkg = package_dir(rel, self._settings.packages.modules_dir)
            if pkg is not None:
                return self.record_package(pkg)

            obj, extension = split_module_path(rel)
            dependencies = frozenset(
                mangle(*resolver.resolve(rel.parent, specifier)) for specifier in imports
            )
            node = Node(
                object=obj,
                scope=APP_SCOPE,
                extension=extension,
                content_hash=content_hash(_canonical_text(canonical)),
                dependencies=dependencies,
            )
            return self._commit(op, node, artifact=artifact)
        except DepgraphError as exc:
            return self._fatal(op, exc)

    def record_package(self, package_dir: str) -> ServiceResult:
        """Record an external package and cascade to modules importing it."""
        op = "record_package"
        try:
            name, version = self._package_metadata(package_dir)
            abstract, effective = dependency_hash_pair(name, version)
            node = Node(
                object=name,
                scope=DEP_SCOPE,
                content_hash=abstract,
                effective_hash=effective,
                version=version,
            )
            return self._commit(op, node, seed=True)
        except DepgraphError as exc:
            return self._fatal(op, exc)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _package_metadata(self, package_dir: str) -> tuple[str, str]:
        if self._metadata is None:
            msg = f"No package metadata provider for {package_dir}"
            raise MetadataError(msg)
        try:
            return self._metadata.load(package_dir)
        except (OSError, ValueError, KeyError) as exc:
            msg = f"Cannot read package metadata for {package_dir}: {exc}"
            raise MetadataError(msg) from exc

    def _commit(
        self,
        op: str,
        node: Node,
        *,
        seed: bool = False,
        artifact: str | None = None,
    ) -> ServiceResult:
        """Load, propagate *node*, write its artifact, and append changes."""
        store = self._load_store()
        propagator = Propagator(store)
        report = propagator.seed(node) if seed else propagator.handle(node)

        warnings = [f"Dependency cycle: {' -> '.join(cycle)}" for cycle in report.cycles]
        if artifact is not None and self._settings.artifacts.enabled:
            try:
                write_artifact(
                    self._settings.log_dir,
                    node.content_hash,
                    artifact,
                    max_retries=self._settings.log.max_retries,
                    retry_delay=self._settings.retry_delay,
                )
            except OSError as exc:
                logger.warning("Artifact for %s not written: %s", node.key, exc)
                warnings.append(f"Artifact for {node.key} not written: {exc}")

        self._log.append_lines(store.export_new())
        written = len(store.changed_keys)
        logger.debug("Recorded %s, %d node(s) appended", node.key, written)

        current = store.get(node.key) or node
        data = dump_validated(
            RecordResultData,
            {
                "key": node.key,
                "content_hash": current.content_hash,
                "effective_hash": current.effective_hash,
                "written": written,
                "blocked": [{"node": n, "dependency": d} for n, d in report.blocked],
                "cycles": report.cycles,
            },
        )
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)


def _canonical_text(canonical: str | bytes | Mapping[str, Any] | list[Any]) -> str | bytes:
    if isinstance(canonical, (str, bytes)):
        return canonical
    return canonical_json(canonical)
