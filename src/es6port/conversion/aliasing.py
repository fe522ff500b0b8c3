"""Collision-free local alias allocation for imported namespaces.

Allocation starts from the last namespace segment and walks outward through
the remaining segments until the candidate is usable:

1. The candidate must not be forbidden (reserved or already bound in the file)
   and must not be declared with ``var``/``let``/``const`` in the file. Common
   short words have fixed replacements (``string`` becomes ``strings``);
   otherwise the next outer segment is prepended, and an underscore once the
   segments run out.
2. The candidate must not already act as the prefix of a qualified access
   (``candidate.member``) in the file. The next outer segment is prepended
   with an underscore separator, then an ``s`` is appended, then underscores
   are prepended.

Both checks are repeated until neither changes the candidate. Class-like
namespaces (capitalized last segment) keep a capitalized alias.

Example:
    >>> allocate_alias("goog.string", {"string"}, "")
    'strings'
    >>> allocate_alias("goog.events.Event", set(), "var Event = 1;")
    'EventsEvent'
"""

from __future__ import annotations

import re
from typing import AbstractSet, Callable

from es6port.conversion.errors import AliasAllocationError
from es6port.conversion.syntax import capitalize_first, is_class_name

__all__ = [
    "DEFAULT_REPLACEMENTS",
    "allocate_alias",
    "is_qualified_prefix",
    "is_shadowed",
]

DEFAULT_REPLACEMENTS: dict[str, str] = {
    "string": "strings",
    "number": "numbers",
}


def is_shadowed(text: str, name: str) -> bool:
    """Return ``True`` when ``text`` declares a variable called ``name``."""

    pattern = rf"(?<![\w$])(?:var|let|const)\s+{re.escape(name)}(?![\w$])"
    return re.search(pattern, text) is not None


def is_qualified_prefix(text: str, name: str) -> bool:
    """Return ``True`` when ``name.`` starts a qualified access in ``text``."""

    pattern = rf"(?<![.\w$]){re.escape(name)}\."
    return re.search(pattern, text) is not None


def allocate_alias(
    namespace: str,
    forbidden: AbstractSet[str],
    text: str,
    *,
    max_attempts: int = 64,
) -> str:
    """Return a local alias for ``namespace`` that is safe to use in ``text``.

    Args:
        namespace: Dotted namespace being imported.
        forbidden: Names that may not be used (reserved or already bound).
        text: Current file text used for shadowing and prefix checks.
        max_attempts: Cap on candidate changes before giving up.

    Raises:
        AliasAllocationError: If no alias is found within ``max_attempts``.
    """

    parts = namespace.split(".")
    candidate = parts[-1]
    capitalize = is_class_name(candidate)
    index = len(parts) - 1
    attempts = 0

    def finalized(value: str) -> str:
        return capitalize_first(value) if capitalize else value

    def step(update: Callable[[str], str]) -> None:
        nonlocal candidate, attempts
        attempts += 1
        if attempts > max_attempts:
            raise AliasAllocationError(
                f"No alias found for {namespace!r} after {max_attempts} "
                "attempts"
            )
        candidate = update(candidate)

    def collides(value: str) -> bool:
        name = finalized(value)
        return name in forbidden or is_shadowed(text, name)

    while True:
        while collides(candidate):
            if candidate in DEFAULT_REPLACEMENTS:
                step(DEFAULT_REPLACEMENTS.__getitem__)
                continue
            index -= 1
            if index >= 0:
                outer = parts[index]
                step(lambda value: outer + value)
            else:
                step(lambda value: "_" + value)

        if not is_qualified_prefix(text, finalized(candidate)):
            return finalized(candidate)

        while is_qualified_prefix(text, finalized(candidate)):
            index -= 1
            if index >= 0:
                outer = parts[index]
                step(lambda value: f"{outer}_{value}")
            elif not candidate.endswith("s"):
                step(lambda value: value + "s")
            else:
                step(lambda value: "_" + value)
