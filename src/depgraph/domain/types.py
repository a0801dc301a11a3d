"""Identity components and the persisted Node record.

The wire format uses the compact single-letter keys of the original log
(``o``, ``s``, ``e``, ``a``, ``i``, ``d``, ``v``) so existing graph files
stay readable. In Python the fields carry descriptive names via aliases.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_serializer

from depgraph.domain.keys import APP_SCOPE, DEP_SCOPE, Mangled, mangle

__all__ = ["APP_SCOPE", "DEP_SCOPE", "Mangled", "Node"]


class Node(BaseModel):
    """One module (or external package) in the dependency graph.

    INVARIANT: ``effective_hash`` is set iff every key in ``dependencies``
    resolved to a node with an effective hash when it was computed.

    Equality is structural over every field; an insert of an equal node
    is a no-op and is what terminates propagation.
    """

    model_config = {"frozen": True, "populate_by_name": True, "extra": "ignore"}

    object: str = Field(alias="o", min_length=1)
    scope: str = Field(alias="s", min_length=1)
    extension: str | None = Field(default=None, alias="e")
    content_hash: str = Field(alias="a")
    effective_hash: str | None = Field(default=None, alias="i")
    dependencies: frozenset[Mangled] = Field(default_factory=frozenset, alias="d")
    version: str | None = Field(default=None, alias="v")

    @field_serializer("dependencies")
    def _sorted_dependencies(self, value: frozenset[Mangled]) -> list[Mangled]:
        return sorted(value)

    @property
    def key(self) -> Mangled:
        """The mangled key this node is stored under."""
        return mangle(self.scope, self.object, self.extension)

    def to_record(self) -> str:
        """Serialize as one compact JSON log line (no trailing newline)."""
        return self.model_dump_json(by_alias=True)

    def summary(self) -> dict[str, Any]:
        """Descriptive-name dict used in service results."""
        data = self.model_dump()
        data["key"] = self.key
        return data
