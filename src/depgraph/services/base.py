"""BaseService: shared construction and error mapping for depgraph services.

Every service receives the invocation's settings and a :class:`GraphLog`,
and applies the settings' logging options when constructed.
Without an explicit log, the file log named by the settings is used.
Each operation loads its own :class:`GraphStore` from the log; nothing is
shared between operations or invocations except the log itself.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from depgraph.config.logging import apply_settings
from depgraph.domain.errors import (
    DepgraphError,
    GraphLogError,
    MetadataError,
    PathOutsideRootError,
    RecordParseError,
)
from depgraph.infrastructure.graph.store import GraphStore
from depgraph.infrastructure.log import FileGraphLog
from depgraph.services.result import ServiceResult

if TYPE_CHECKING:
    from depgraph.config.settings import DepgraphSettings
    from depgraph.infrastructure.log import GraphLog

logger = logging.getLogger(__name__)

# Fatal exception type -> ServiceError code.
_ERROR_CODES: dict[type[DepgraphError], str] = {
    RecordParseError: "MALFORMED_LOG",
    GraphLogError: "LOG_UNAVAILABLE",
    PathOutsideRootError: "PATH_OUTSIDE_ROOT",
    MetadataError: "METADATA_UNAVAILABLE",
}


class BaseService:
    """Abstract base for service-layer classes."""

    def __init__(self, settings: DepgraphSettings, *, log: GraphLog | None = None) -> None:
        apply_settings(settings)
        self._settings = settings
        if log is None:
            log = FileGraphLog(
                settings.log_path,
                max_retries=settings.log.max_retries,
                retry_delay=settings.retry_delay,
            )
        self._log = log

    def _load_store(self) -> GraphStore:
        """Replay the whole log into a fresh store."""
        store = GraphStore.load(self._log.read_lines())
        logger.debug("Loaded graph with %d node(s)", len(store))
        return store

    @staticmethod
    def _fatal(op: str, exc: DepgraphError) -> ServiceResult:
        """Convert an invocation-aborting exception into a failed result."""
        code = next(
            (code for exc_type, code in _ERROR_CODES.items() if isinstance(exc, exc_type)),
            "INTERNAL",
        )
        detail = {"line": exc.line_number} if isinstance(exc, RecordParseError) else {}
        return ServiceResult.failure(op, code, str(exc), **detail)
