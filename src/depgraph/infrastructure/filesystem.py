"""Filesystem helpers: module path decomposition and artifact output.

Paths handed in by the host are made relative to the working-directory
root before anything else happens; everything downstream works on that
relative POSIX form.
"""

from __future__ import annotations

import posixpath
import time
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from depgraph.domain.errors import PathOutsideRootError
from depgraph.infrastructure.log import open_with_retry

if TYPE_CHECKING:
    from collections.abc import Callable


# ---------------------------------------------------------------------------
# Path resolution
# ---------------------------------------------------------------------------


def relative_module_path(root: Path, path: str | Path) -> PurePosixPath:
    """Return *path* relative to *root* in POSIX form.

    Absolute paths must lie under *root*. Relative paths are taken as
    already relative to *root* but may not climb out of it.
    """
    candidate = Path(path)
    if candidate.is_absolute():
        if not candidate.is_relative_to(root):
            msg = f"Module path {candidate} is outside root {root}"
            raise PathOutsideRootError(msg)
        candidate = candidate.relative_to(root)

    rel = PurePosixPath(posixpath.normpath(candidate.as_posix()))
    if str(rel) == "." or rel.parts[0] == "..":
        msg = f"Module path {path} does not name a file under root {root}"
        raise PathOutsideRootError(msg)
    return rel


def split_module_path(rel: PurePosixPath) -> tuple[str, str | None]:
    """Split a relative module path into ``(object, extension)``.

    Only the last suffix is treated as the extension.
    """
    extension = rel.suffix[1:] or None
    obj = rel.with_suffix("") if extension else rel
    return obj.as_posix(), extension


def package_dir(rel: PurePosixPath, modules_dir: str) -> str | None:
    """Return the package directory containing *rel*, or None.

    ``node_modules/react/index.js`` -> ``node_modules/react``;
    ``node_modules/@scope/pkg/x.js`` -> ``node_modules/@scope/pkg``.
    """
    parts = rel.parts
    if len(parts) < 3 or parts[0] != modules_dir:
        return None
    name_parts = parts[1:3] if parts[1].startswith("@") and len(parts) > 3 else parts[1:2]
    return "/".join((modules_dir, *name_parts))


# ---------------------------------------------------------------------------
# Artifacts
# ---------------------------------------------------------------------------


def write_artifact(
    directory: Path,
    content_hash: str,
    text: str,
    *,
    max_retries: int,
    retry_delay: float,
    sleep: Callable[[float], None] = time.sleep,
) -> Path:
    """Write a module's emitted output to ``directory/content_hash``.

    Artifacts are content-addressed, so rewriting an existing one is
    harmless. Creates *directory* if needed.
    """
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / content_hash
    with open_with_retry(
        target, "w", max_retries=max_retries, retry_delay=retry_delay, sleep=sleep
    ) as fh:
        fh.write(text)
    return target
