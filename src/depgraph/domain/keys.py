"""Key mangling: the sole identity used for graph lookups.

A mangled key is ``scope::object`` plus a suffix naming the extension's
normalization class. Sources compiled to the same output kind collapse
onto one key (``.ts``/``.tsx`` of one object are the same node).

INVARIANT: every producer and every consumer of a key goes through
:func:`mangle`. A key built any other way is unreachable by propagation.
"""

from __future__ import annotations

APP_SCOPE = "app"
DEP_SCOPE = "dep"

Mangled = str

# Extension -> normalization-class suffix.
EXTENSION_CLASSES: dict[str, str] = {
    "js": "::js",
    "jsx": "::js",
    "ts": "::js",
    "tsx": "::js",
    "css": "::css",
}


def mangle(scope: str, obj: str, extension: str | None = None) -> Mangled:
    """Return the mangled key for ``(scope, obj, extension)``.

    External dependencies (``scope == "dep"``) are extension-agnostic.
    Extensions outside :data:`EXTENSION_CLASSES` contribute no suffix.
    """
    suffix = ""
    if scope != DEP_SCOPE and extension is not None:
        suffix = EXTENSION_CLASSES.get(extension, "")
    return f"{scope}::{obj}{suffix}"
