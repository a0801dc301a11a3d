"""Typed contracts at the service boundary.

Collaborator protocols describe what the host supplies (specifier
resolution, package metadata). Payload models validate result shapes
before they leave the service layer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

from pydantic import BaseModel

if TYPE_CHECKING:
    from pathlib import PurePosixPath


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


class SpecifierResolver(Protocol):
    """Maps a raw import specifier to the dependency's identity triple."""

    def resolve(
        self, directory: PurePosixPath, specifier: str
    ) -> tuple[str, str, str | None]:
        """Return ``(scope, object, extension)`` for *specifier* seen from *directory*."""
        ...


class PackageMetadataProvider(Protocol):
    """Reads ``(name, version)`` for an external package directory."""

    def load(self, package_dir: str) -> tuple[str, str]: ...


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


def dump_validated[T: BaseModel](model_cls: type[T], data: dict[str, Any]) -> dict[str, Any]:
    """Validate *data* against *model_cls* and return a normalized payload dict."""
    return model_cls.model_validate(data).model_dump(mode="python")


class BlockedItem(BaseModel):
    """A node whose effective hash is waiting on a dependency."""

    node: str
    dependency: str


class RecordResultData(BaseModel):
    """Payload contract for ``GraphService.record_module`` / ``record_package``."""

    key: str
    content_hash: str
    effective_hash: str | None
    written: int
    blocked: list[BlockedItem]
    cycles: list[list[str]]


class SnapshotNode(BaseModel):
    """One node in a graph snapshot."""

    key: str
    object: str
    scope: str
    extension: str | None
    content_hash: str
    effective_hash: str | None
    dependencies: list[str]
    version: str | None


class SnapshotData(BaseModel):
    """Payload contract for ``ReportService.snapshot``."""

    count: int
    unresolved: int
    nodes: list[SnapshotNode]
