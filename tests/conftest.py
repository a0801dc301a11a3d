"""Shared pytest fixtures and test helpers for depgraph tests."""

from __future__ import annotations

import posixpath
from pathlib import Path, PurePosixPath

import pytest

from depgraph.config.settings import DepgraphSettings
from depgraph.domain.errors import MetadataError
from depgraph.domain.types import APP_SCOPE, DEP_SCOPE, Node
from depgraph.infrastructure.log import MemoryGraphLog


class FakeResolver:
    """Relative specifiers resolve against the importing directory.

    Specifiers without an extension are taken as ``.ts``; bare specifiers
    name external packages.
    """

    def resolve(self, directory: PurePosixPath, specifier: str) -> tuple[str, str, str | None]:
        if not specifier.startswith("."):
            return DEP_SCOPE, specifier, None
        joined = posixpath.normpath(posixpath.join(str(directory), specifier))
        obj, ext = posixpath.splitext(joined)
        return APP_SCOPE, obj, ext[1:] or "ts"


class FakeMetadata:
    """Package metadata from a fixed ``package_dir -> (name, version)`` table."""

    def __init__(self, packages: dict[str, tuple[str, str]]) -> None:
        self.packages = packages

    def load(self, package_dir: str) -> tuple[str, str]:
        try:
            return self.packages[package_dir]
        except KeyError:
            msg = f"no package.json in {package_dir}"
            raise MetadataError(msg) from None


@pytest.fixture
def settings(tmp_path: Path) -> DepgraphSettings:
    """Settings rooted at a temp directory with code defaults."""
    return DepgraphSettings.load(root=tmp_path)


@pytest.fixture
def memory_log() -> MemoryGraphLog:
    return MemoryGraphLog()


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def metadata() -> FakeMetadata:
    return FakeMetadata({"node_modules/react": ("react", "18.2.0")})


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def make_node(name: str, *deps: str, content: str | None = None, **kwargs: object) -> Node:
    """Build an app-scope ``.ts`` node named *name* depending on *deps*."""
    return Node(
        object=name,
        scope=kwargs.pop("scope", APP_SCOPE),
        extension=kwargs.pop("extension", "ts"),
        content_hash=content or f"osha_1{name}",
        dependencies=frozenset(deps),
        **kwargs,
    )
