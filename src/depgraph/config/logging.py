"""Logging setup for depgraph invocations.

depgraph modules log through stdlib ``logging.getLogger(__name__)``; this
module routes the ``depgraph`` logger tree through a structlog
``ProcessorFormatter`` on stderr, so a host compiler's stdout is never
touched. Root logger handlers belong to the host and are left alone.

Every service applies the invocation's settings on construction.
Reconfiguring replaces the handler installed last time instead of
stacking another one.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from depgraph.config.settings import DepgraphSettings

PACKAGE_LOGGER = "depgraph"

_HANDLER_NAME = "depgraph-stderr"

_PRE_CHAIN: list[structlog.types.Processor] = [
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.UnicodeDecoder(),
]


def _renderer(log_json: bool) -> structlog.types.Processor:
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> logging.Handler:
    """Install the stderr handler on the ``depgraph`` logger.

    Args:
        verbose: Emit DEBUG records (per-node propagation detail).
            Otherwise only warnings such as dependency cycles get through.
        log_json: One JSON object per line instead of console output.

    Returns:
        The installed handler.
    """
    structlog.configure(
        processors=[*_PRE_CHAIN, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_PRE_CHAIN,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_json),
            ],
        )
    )

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for existing in list(package_logger.handlers):
        if existing.get_name() == _HANDLER_NAME:
            package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    return handler


def apply_settings(settings: DepgraphSettings) -> logging.Handler:
    """Configure logging from an invocation's ``verbose`` and ``log_json``."""
    return configure_logging(verbose=settings.verbose, log_json=settings.log_json)
