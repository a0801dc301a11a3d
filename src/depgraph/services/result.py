"""ServiceResult and ServiceError: the return type of every service operation.

Fatal conditions (malformed log, unusable log file, bad module path)
come back as ``ok=False`` with an error code. Recoverable ones come back
as ``ok=True`` with ``warnings``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Outcome of a service operation.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"record_module"``).
        data: Operation-specific payload on success.
        warnings: Non-fatal issues encountered during the operation.
        error: Structured error if ``ok`` is False.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None

    @classmethod
    def failure(cls, op: str, code: str, message: str, **detail: Any) -> ServiceResult:
        """Build an ``ok=False`` result."""
        return cls(ok=False, op=op, error=ServiceError(code=code, message=message, detail=detail))
