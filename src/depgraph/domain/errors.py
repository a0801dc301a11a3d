"""Exception hierarchy for fatal, invocation-aborting conditions.

Recoverable incompleteness (a dependency without an effective hash yet)
is not an error and never raises.
"""

from __future__ import annotations


class DepgraphError(Exception):
    """Base class for all depgraph errors."""


class ConfigError(DepgraphError):
    """A configuration file could not be parsed."""


class RecordParseError(DepgraphError):
    """A persisted graph record is malformed.

    The whole load fails; no record of that log is applied.
    """

    def __init__(self, line_number: int, reason: str) -> None:
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"Malformed graph record on line {line_number}: {reason}")


class PathOutsideRootError(DepgraphError):
    """A module path cannot be made relative to the working-directory root."""


class GraphLogError(DepgraphError):
    """The graph log could not be opened or written."""


class MetadataError(DepgraphError):
    """Package metadata (name and version) could not be read."""
