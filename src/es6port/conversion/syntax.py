"""Regular-expression helpers shared by the conversion stages."""

from __future__ import annotations

from functools import lru_cache
import re
from typing import Iterator

IDENTIFIER_CHARS = r"\w$"
IDENTIFIER = rf"[{IDENTIFIER_CHARS}]+"

_PARAM_TAG = re.compile(r"\*\s*@param\s*")
_PARAM_NAME = re.compile(rf"\s*({IDENTIFIER})")
_DOC_TYPE_TAG = re.compile(r"@\w+\s*(?=\{)")
_QUALIFIED_NAME = re.compile(
    rf"(?<![{IDENTIFIER_CHARS}.])[A-Za-z_$][{IDENTIFIER_CHARS}]*"
    rf"(?:\.[A-Za-z_$][{IDENTIFIER_CHARS}]*)+"
)


def multiline_safe_pattern(namespace: str) -> str:
    """Return a regex matching ``namespace`` with whitespace around its dots.

    Example:
        >>> bool(re.fullmatch(multiline_safe_pattern("a.b"), "a .\\n b"))
        True
    """

    return r"\s*\.\s*".join(re.escape(part) for part in namespace.split("."))


def qualified_pattern(namespace: str) -> re.Pattern[str]:
    """Return the pattern for a standalone reference to ``namespace``.

    The reference may not be glued to identifier characters, quotes or slashes
    on either side, so string literals and module paths are left alone.
    """

    return _compile_qualified(namespace)


@lru_cache(maxsize=4096)
def _compile_qualified(namespace: str) -> re.Pattern[str]:
    guard = rf"['\"/{IDENTIFIER_CHARS}]"
    return re.compile(
        rf"(?<!{guard}){multiline_safe_pattern(namespace)}(?!{guard})"
    )


def replace_qualified(text: str, namespace: str, replacement: str) -> str:
    """Rewrite every standalone reference to ``namespace`` as ``replacement``.

    Example:
        >>> replace_qualified("a.b.C.x('a.b.C')", "a.b.C", "C")
        "C.x('a.b.C')"
    """

    return qualified_pattern(namespace).sub(lambda _: replacement, text)


def indent_code(text: str, prefix: str = "  ") -> str:
    """Indent every non-blank line of ``text`` with ``prefix``."""

    return re.sub(r"(?m)^(?=[^\n])", prefix, text)


def last_segment(namespace: str) -> str:
    return namespace.rsplit(".", 1)[-1]


def is_class_name(name: str) -> bool:
    """Return ``True`` for class-like (capitalized) identifiers.

    Example:
        >>> is_class_name("Menu"), is_class_name("dom")
        (True, False)
    """

    return name[:1].isupper()


def capitalize_first(name: str) -> str:
    return name[:1].upper() + name[1:]


def braced_end(text: str, open_index: int) -> int:
    """Return the index just past the brace group opening at ``open_index``.

    Returns ``-1`` when the group is not closed before the end of ``text``.
    """

    depth = 0
    for index in range(open_index, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return -1


def iter_doc_comments(text: str) -> Iterator[str]:
    """Yield every ``/** ... */`` documentation comment in ``text``."""

    for match in re.finditer(r"/\*\*.*?\*/", text, re.DOTALL):
        yield match.group()


def iter_doc_types(comment: str) -> Iterator[str]:
    """Yield the brace-delimited type expressions of a doc comment.

    Example:
        >>> list(iter_doc_types("/** @param {!a.B} b\\n @return {{x: c.D}} */"))
        ['!a.B', '{x: c.D}']
    """

    for match in _DOC_TYPE_TAG.finditer(comment):
        start = match.end()
        end = braced_end(comment, start)
        if end == -1:
            continue
        yield comment[start + 1 : end - 1]


def iter_qualified_names(text: str) -> Iterator[str]:
    """Yield dotted identifiers such as ``a.b.C`` found in ``text``."""

    for match in _QUALIFIED_NAME.finditer(text):
        yield match.group()


def inferred_parameters(doc_comment: str) -> list[str]:
    """Return the parameter names declared with ``@param`` in a doc comment.

    Example:
        >>> inferred_parameters("/** @param {number} a\\n * @param {{b: c}} b */")
        ['a', 'b']
    """

    names: list[str] = []
    for match in _PARAM_TAG.finditer(doc_comment):
        start = match.end()
        if doc_comment.startswith("{", start):
            start = braced_end(doc_comment, start)
            if start == -1:
                continue
        name = _PARAM_NAME.match(doc_comment, start)
        if name is not None:
            names.append(name.group(1))
    return names


__all__ = [
    "IDENTIFIER",
    "IDENTIFIER_CHARS",
    "braced_end",
    "capitalize_first",
    "indent_code",
    "inferred_parameters",
    "is_class_name",
    "iter_doc_comments",
    "iter_doc_types",
    "iter_qualified_names",
    "last_segment",
    "multiline_safe_pattern",
    "qualified_pattern",
    "replace_qualified",
]
