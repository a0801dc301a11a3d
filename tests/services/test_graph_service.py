"""Tests for GraphService: per-module invocations against a real log file."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from depgraph.config.settings import DepgraphSettings
from depgraph.domain.hashing import content_hash, dependency_hash_pair, effective_hash
from depgraph.infrastructure.graph.store import GraphStore
from depgraph.infrastructure.log import FileGraphLog, MemoryGraphLog
from depgraph.services.graph import GraphService

from tests.conftest import FakeMetadata, FakeResolver


def _record(service: GraphService, path: str, source: str, *imports: str, **kwargs):
    return service.record_module(path, source, list(imports), FakeResolver(), **kwargs)


def _persisted(settings: DepgraphSettings) -> GraphStore:
    return GraphStore.load(FileGraphLog(settings.log_path).read_lines())


class TestRecordModule:
    def test_leaf_module(self, settings: DepgraphSettings) -> None:
        result = _record(GraphService(settings), "src/b.ts", "export const b = 1;")
        assert result.ok, result.error
        assert result.op == "record_module"
        assert result.data["key"] == "app::src/b::js"
        assert result.data["content_hash"] == content_hash("export const b = 1;")
        assert result.data["effective_hash"] == effective_hash(result.data["content_hash"], {})
        assert result.data["written"] == 1
        assert len(settings.log_path.read_text(encoding="utf-8").splitlines()) == 1

    def test_record_shape(self, settings: DepgraphSettings) -> None:
        _record(GraphService(settings), "src/a.tsx", "a", "./b", "react")
        record = json.loads(settings.log_path.read_text(encoding="utf-8"))
        assert record["o"] == "src/a"
        assert record["s"] == "app"
        assert record["e"] == "tsx"
        assert record["d"] == ["app::src/b::js", "dep::react"]
        assert record["i"] is None

    def test_parsed_tree_hashed_canonically(self, settings: DepgraphSettings) -> None:
        service = GraphService(settings, log=MemoryGraphLog())
        first = _record(service, "src/a.ts", {"type": "Module", "body": [1, 2]})
        second = _record(service, "src/b.ts", {"body": [1, 2], "type": "Module"})
        assert first.data["content_hash"] == second.data["content_hash"]
        assert first.data["content_hash"] == content_hash('{"body":[1,2],"type":"Module"}')

    def test_absolute_path_under_root(self, settings: DepgraphSettings) -> None:
        result = _record(GraphService(settings), str(settings.root / "lib" / "x.js"), "x")
        assert result.ok
        assert result.data["key"] == "app::lib/x::js"

    def test_dependency_arrives_later(self, settings: DepgraphSettings) -> None:
        service = GraphService(settings)
        first = _record(service, "src/a.ts", "a", "./b")
        assert first.data["effective_hash"] is None
        assert first.data["blocked"] == [{"node": "app::src/a::js", "dependency": "app::src/b::js"}]

        second = _record(service, "src/b.ts", "b")
        assert second.data["written"] == 2
        graph = _persisted(settings)
        a = graph.get("app::src/a::js")
        b = graph.get("app::src/b::js")
        assert a.effective_hash == effective_hash(a.content_hash, {b.key: b.effective_hash})

    def test_dependency_change_propagates(self, settings: DepgraphSettings) -> None:
        service = GraphService(settings)
        _record(service, "src/b.ts", "b")
        _record(service, "src/a.ts", "a", "./b")
        before = _persisted(settings).get("app::src/a::js").effective_hash

        result = _record(service, "src/b.ts", "b, edited")

        assert result.data["written"] == 2
        after = _persisted(settings).get("app::src/a::js")
        assert after.content_hash == content_hash("a")
        assert after.effective_hash not in (None, before)

    def test_unchanged_module_appends_nothing(self, settings: DepgraphSettings) -> None:
        service = GraphService(settings)
        _record(service, "src/b.ts", "b")
        size = settings.log_path.stat().st_size
        result = _record(service, "src/b.ts", "b")
        assert result.data["written"] == 0
        assert settings.log_path.stat().st_size == size

    def test_tsx_and_ts_variants_coalesce(self, settings: DepgraphSettings) -> None:
        service = GraphService(settings)
        _record(service, "src/a.ts", "a")
        result = _record(service, "src/a.tsx", "a")
        assert result.data["key"] == "app::src/a::js"
        assert len(_persisted(settings)) == 1

    def test_self_import_reports_cycle(self, settings: DepgraphSettings) -> None:
        result = _record(GraphService(settings), "src/a.ts", "a", "./a")
        assert result.ok
        assert result.data["cycles"] == [["app::src/a::js", "app::src/a::js"]]
        assert result.warnings == ["Dependency cycle: app::src/a::js -> app::src/a::js"]


class TestFatalErrors:
    def test_path_outside_root(self, settings: DepgraphSettings, tmp_path: Path) -> None:
        result = _record(GraphService(settings), str(tmp_path.parent / "other.ts"), "x")
        assert not result.ok
        assert result.error.code == "PATH_OUTSIDE_ROOT"
        assert not settings.log_path.exists()

    def test_malformed_log(self, settings: DepgraphSettings) -> None:
        log = MemoryGraphLog(['{"o":"a","s":"app","a":"h","d":[]}', "{broken"])
        result = _record(GraphService(settings, log=log), "src/b.ts", "b")
        assert not result.ok
        assert result.error.code == "MALFORMED_LOG"
        assert result.error.detail == {"line": 2}
        assert len(log.lines) == 2

    def test_undecodable_log_is_malformed(self, settings: DepgraphSettings) -> None:
        settings.log_path.parent.mkdir(parents=True)
        settings.log_path.write_bytes(b'{"o":"\xff","s":"app","a":"h"}\n')
        result = _record(GraphService(settings), "src/b.ts", "b")
        assert not result.ok
        assert result.error.code == "MALFORMED_LOG"
        assert result.error.detail == {"line": 1}

    def test_path_climbing_out_through_parent_segments(self, settings: DepgraphSettings) -> None:
        result = _record(GraphService(settings), "src/../../x.ts", "x")
        assert not result.ok
        assert result.error.code == "PATH_OUTSIDE_ROOT"

    def test_log_unavailable(self, settings: DepgraphSettings, tmp_path: Path) -> None:
        blocked = tmp_path / "graph-dir"
        blocked.mkdir()
        log = FileGraphLog(blocked, max_retries=1, retry_delay=0, sleep=lambda _s: None)
        result = _record(GraphService(settings, log=log), "src/b.ts", "b")
        assert not result.ok
        assert result.error.code == "LOG_UNAVAILABLE"


class TestPackages:
    def test_file_under_modules_dir_records_package(
        self, settings: DepgraphSettings, metadata: FakeMetadata
    ) -> None:
        service = GraphService(settings, metadata=metadata)
        result = _record(service, "node_modules/react/index.js", "ignored")
        assert result.ok, result.error
        assert result.op == "record_package"
        assert result.data["key"] == "dep::react"
        abstract, effective = dependency_hash_pair("react", "18.2.0")
        assert result.data["content_hash"] == abstract
        assert result.data["effective_hash"] == effective
        node = _persisted(settings).get("dep::react")
        assert node.version == "18.2.0"
        assert node.extension is None

    def test_package_unblocks_importers(
        self, settings: DepgraphSettings, metadata: FakeMetadata
    ) -> None:
        service = GraphService(settings, metadata=metadata)
        _record(service, "app/page.tsx", "page", "react")
        result = service.record_package("node_modules/react")
        assert result.data["written"] == 2
        page = _persisted(settings).get("app::app/page::js")
        _, react = dependency_hash_pair("react", "18.2.0")
        assert page.effective_hash == effective_hash(page.content_hash, {"dep::react": react})

    def test_version_bump_cascades(self, settings: DepgraphSettings) -> None:
        packages = FakeMetadata({"node_modules/react": ("react", "18.2.0")})
        service = GraphService(settings, metadata=packages)
        service.record_package("node_modules/react")
        _record(service, "app/page.tsx", "page", "react")
        before = _persisted(settings).get("app::app/page::js").effective_hash

        packages.packages["node_modules/react"] = ("react", "18.3.1")
        service.record_package("node_modules/react")

        after = _persisted(settings).get("app::app/page::js").effective_hash
        assert after not in (None, before)

    def test_no_provider(self, settings: DepgraphSettings) -> None:
        result = _record(GraphService(settings), "node_modules/react/index.js", "x")
        assert not result.ok
        assert result.error.code == "METADATA_UNAVAILABLE"

    def test_unknown_package(self, settings: DepgraphSettings, metadata: FakeMetadata) -> None:
        result = GraphService(settings, metadata=metadata).record_package("node_modules/vue")
        assert not result.ok
        assert result.error.code == "METADATA_UNAVAILABLE"


class TestArtifacts:
    def test_artifact_written_under_content_hash(self, settings: DepgraphSettings) -> None:
        result = _record(GraphService(settings), "src/a.ts", "a", artifact="compiled a")
        target = settings.log_dir / result.data["content_hash"]
        assert target.read_text(encoding="utf-8") == "compiled a"

    def test_artifacts_disabled(self, tmp_path: Path) -> None:
        settings = DepgraphSettings.load(root=tmp_path, artifacts={"enabled": False})
        result = _record(GraphService(settings), "src/a.ts", "a", artifact="compiled a")
        assert not (settings.log_dir / result.data["content_hash"]).exists()

    def test_artifact_failure_is_a_warning(self, tmp_path: Path) -> None:
        settings = DepgraphSettings.load(root=tmp_path, log={"max_retries": 0})
        (settings.log_dir / content_hash("a")).mkdir(parents=True)
        result = _record(GraphService(settings), "src/a.ts", "a", artifact="compiled a")
        assert result.ok
        assert len(result.warnings) == 1
        assert "Artifact" in result.warnings[0]
        assert _persisted(settings).get("app::src/a::js") is not None


class TestConcurrentInvocations:
    def test_stale_snapshot_converges_on_next_invocation(
        self, settings: DepgraphSettings
    ) -> None:
        """Two invocations that read the same snapshot each miss the other's write."""
        service = GraphService(settings)
        snapshot = FileGraphLog(settings.log_path).read_lines()

        stale = MemoryGraphLog(snapshot)
        _record(GraphService(settings, log=stale), "src/a.ts", "a", "./b")
        _record(service, "src/b.ts", "b")
        FileGraphLog(settings.log_path).append_lines(stale.lines)

        assert _persisted(settings).get("app::src/a::js").effective_hash is None

        _record(service, "src/a.ts", "a", "./b")
        assert _persisted(settings).get("app::src/a::js").effective_hash is not None


@pytest.mark.parametrize("imports", [["./b", "./c"], ["./c", "./b"]])
def test_import_order_does_not_matter(settings: DepgraphSettings, imports: list[str]) -> None:
    service = GraphService(settings, log=MemoryGraphLog())
    _record(service, "b.ts", "b")
    _record(service, "c.ts", "c")
    result = _record(service, "a.ts", "a", *imports)
    b_hash = effective_hash(content_hash("b"), {})
    c_hash = effective_hash(content_hash("c"), {})
    assert result.data["effective_hash"] == effective_hash(
        content_hash("a"), {"app::b::js": b_hash, "app::c::js": c_hash}
    )
