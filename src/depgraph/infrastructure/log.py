"""Graph log: the append-only, newline-delimited record of graph revisions.

The log file is the only coordination point between invocations. Reading
(at start) and appending (at end) are separate, unlocked operations: two
concurrent invocations may each propagate from a stale snapshot, and the
graph converges over later invocations rather than within one pass.

Appends tolerate brief contention from concurrent writers by retrying the
open a fixed number of times with a fixed delay.
"""

from __future__ import annotations

import logging
import time
from typing import IO, TYPE_CHECKING, Any, Protocol

from depgraph.domain.errors import GraphLogError, RecordParseError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 8
DEFAULT_RETRY_DELAY = 0.1


class GraphLog(Protocol):
    """Load-snapshot / append-batch persistence injected into services."""

    def read_lines(self) -> list[str]: ...

    def append_lines(self, lines: Iterable[str]) -> None: ...


def open_with_retry(
    path: Path,
    mode: str,
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> IO[Any]:
    """Open *path* in *mode*, retrying on ``OSError``.

    Text modes use UTF-8; binary modes are opened unbuffered. Makes at
    most ``max_retries + 1`` attempts, sleeping *retry_delay* seconds
    between them, then re-raises the last error.
    """
    attempt = 0
    while True:
        try:
            if "b" in mode:
                return path.open(mode, buffering=0)
            return path.open(mode, encoding="utf-8")
        except OSError as exc:
            if attempt >= max_retries:
                raise
            attempt += 1
            logger.debug(
                "Open of %s failed (%s), retry %d/%d",
                path,
                exc,
                attempt,
                max_retries,
            )
            sleep(retry_delay)


class FileGraphLog:
    """Graph log backed by a text file on disk.

    A missing file reads as an empty graph. The parent directory is created
    on the first append.
    """

    def __init__(
        self,
        path: Path,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.path = path
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._sleep = sleep

    def read_lines(self) -> list[str]:
        """Return the log's records, split on ``\\n`` only.

        Record text may itself contain other Unicode line boundaries
        (U+2028 and friends), so ``str.splitlines`` is not usable here.
        """
        try:
            content = self.path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError as exc:
            msg = f"Cannot read graph log {self.path}: {exc}"
            raise GraphLogError(msg) from exc

        raw_lines = content.split(b"\n")
        if raw_lines[-1] == b"":
            raw_lines.pop()
        lines: list[str] = []
        for line_number, raw in enumerate(raw_lines, start=1):
            try:
                lines.append(raw.decode("utf-8"))
            except UnicodeDecodeError as exc:
                raise RecordParseError(line_number, f"invalid UTF-8: {exc.reason}") from exc
        return lines

    def append_lines(self, lines: Iterable[str]) -> None:
        """Append *lines* in one unbuffered write; an empty batch leaves the file alone."""
        payload = "".join(f"{line}\n" for line in lines).encode("utf-8")
        if not payload:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open_with_retry(
                self.path,
                "ab",
                max_retries=self._max_retries,
                retry_delay=self._retry_delay,
                sleep=self._sleep,
            ) as fh:
                view = memoryview(payload)
                while view:
                    view = view[fh.write(view) :]
        except OSError as exc:
            msg = f"Cannot append to graph log {self.path}: {exc}"
            raise GraphLogError(msg) from exc


class MemoryGraphLog:
    """In-memory graph log for tests and embedders that manage storage."""

    def __init__(self, lines: Iterable[str] = ()) -> None:
        self.lines: list[str] = list(lines)

    def read_lines(self) -> list[str]:
        return list(self.lines)

    def append_lines(self, lines: Iterable[str]) -> None:
        self.lines.extend(lines)
