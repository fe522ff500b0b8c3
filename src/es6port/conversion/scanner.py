"""Lexical scanner locating statement and definition boundaries.

The scanner is a small state machine over raw source text. It understands
just enough of the language to skip string literals, comments and regular
expression literals while counting bracket nesting, which is all the
rewriting passes need to isolate the body of a declaration.

Example:
    >>> text = "a.b = function() { return ';'; };\\nnext();"
    >>> text[: scan_statement_end(text, 0)]
    "a.b = function() { return ';'; };"
"""

from __future__ import annotations

from enum import Enum
import re
from typing import Iterator

from es6port.conversion.errors import ScannerOverrunError

__all__ = [
    "definition_end",
    "get_definition",
    "scan_group_end",
    "scan_statement_end",
]

_OPENING = "([{"
_CLOSING = ")]}"
_QUOTES = "'\"`"
_DIVISION_LOOKAHEAD = re.compile(r"\s+\(?[\w$]")
_KEYWORDS_BEFORE_EXPRESSION = frozenset(
    {
        "case",
        "delete",
        "do",
        "else",
        "in",
        "instanceof",
        "new",
        "of",
        "return",
        "throw",
        "typeof",
        "void",
        "yield",
    }
)
_PRECEDING_WORD = re.compile(r"([\w$]+)\s*$")


class _State(Enum):
    TOP_LEVEL = "top-level"
    STRING = "string"
    LINE_COMMENT = "line-comment"
    BLOCK_COMMENT = "block-comment"
    REGEX = "regex"
    REGEX_CLASS = "regex-class"


def _is_regex_start(text: str, index: int) -> bool:
    """Decide whether the ``/`` at ``index`` opens a regular expression."""

    following = text[index + 1 : index + 2]
    if following == "=":
        return False
    if _DIVISION_LOOKAHEAD.match(text, index + 1):
        return False

    preceding = text[:index].rstrip()
    if not preceding:
        return True
    last = preceding[-1]
    if last in ")]":
        return False
    if last.isalnum() or last in "_$":
        word = _PRECEDING_WORD.search(preceding)
        return word is not None and word.group(1) in _KEYWORDS_BEFORE_EXPRESSION
    return True


def _iter_code(text: str, start: int) -> Iterator[tuple[int, str]]:
    """Yield ``(offset, char)`` for every character outside literals.

    String, template and regex literals and comments are consumed without
    being yielded, along with the delimiters that open them.
    """

    state = _State.TOP_LEVEL
    quote = ""
    index = start
    length = len(text)

    while index < length:
        char = text[index]

        if state is _State.LINE_COMMENT:
            if char == "\n":
                state = _State.TOP_LEVEL
        elif state is _State.BLOCK_COMMENT:
            if char == "*" and text.startswith("/", index + 1):
                index += 1
                state = _State.TOP_LEVEL
        elif state is _State.STRING:
            if char == "\\":
                index += 1
            elif char == quote:
                state = _State.TOP_LEVEL
        elif state is _State.REGEX:
            if char == "\\":
                index += 1
            elif char == "[":
                state = _State.REGEX_CLASS
            elif char == "/":
                state = _State.TOP_LEVEL
        elif state is _State.REGEX_CLASS:
            if char == "\\":
                index += 1
            elif char == "]":
                state = _State.REGEX
        elif char == "/":
            following = text[index + 1 : index + 2]
            if following == "/":
                state = _State.LINE_COMMENT
            elif following == "*":
                index += 1
                state = _State.BLOCK_COMMENT
            elif _is_regex_start(text, index):
                state = _State.REGEX
            else:
                yield index, char
        elif char in _QUOTES:
            quote = char
            state = _State.STRING
        else:
            yield index, char
        index += 1


def _overrun(text: str, start: int, what: str) -> ScannerOverrunError:
    excerpt = text[max(start - 30, 0) : start + 60]
    return ScannerOverrunError(
        f"Did not find the end of the {what} starting at {start}: "
        f"{excerpt!r}"
    )


def scan_statement_end(text: str, start: int) -> int:
    """Return the offset just past the statement beginning at ``start``.

    A statement ends at a ``;`` outside any bracket, or at a ``}`` that closes
    the outermost bracket and is followed by a blank line or by the end of
    the text.

    Raises:
        ScannerOverrunError: If ``text`` ends before a boundary is found.
    """

    depth = 0
    for index, char in _iter_code(text, start):
        if char == ";" and depth == 0:
            return index + 1
        if char in _OPENING:
            depth += 1
        elif char in _CLOSING:
            depth -= 1
            if (
                char == "}"
                and depth == 0
                and (
                    text.startswith("\n\n", index + 1)
                    or not text[index + 1 :].strip()
                )
            ):
                return index + 1
    raise _overrun(text, start, "statement")


def scan_group_end(text: str, open_index: int) -> int:
    """Return the offset just past the bracket group opened at ``open_index``.

    Brackets inside strings, comments and regex literals are ignored.

    Example:
        >>> text = "{a, // b }\\n c}; d"
        >>> text[: scan_group_end(text, 0)]
        '{a, // b }\\n c}'

    Raises:
        ScannerOverrunError: If the group is not closed before the end of
            ``text``.
    """

    depth = 0
    for index, char in _iter_code(text, open_index):
        if char in _OPENING:
            depth += 1
        elif char in _CLOSING:
            depth -= 1
            if depth == 0:
                return index + 1
    raise _overrun(text, open_index, "bracket group")


def definition_end(
    text: str, match: re.Match[str], group: int | str
) -> int:
    """Return the end offset of the definition introduced by ``match``.

    ``group`` captures either a bare ``;`` (uninitialized declaration) or the
    assignment operator that precedes the definition body.
    """

    if match.group(group) == ";":
        return match.end(group)
    return scan_statement_end(text, match.end())


def get_definition(
    text: str, match: re.Match[str], group: int | str
) -> str:
    """Return the definition text starting at ``group`` of ``match``.

    Example:
        >>> pattern = re.compile(r"a\\.x(;|\\s*=\\s*)")
        >>> text = "a.x = [1, 2];"
        >>> get_definition(text, pattern.match(text), 1)
        ' = [1, 2];'
        >>> get_definition("a.x;", pattern.match("a.x;"), 1)
        ';'
    """

    if match.group(group) == ";":
        return ";"
    return text[match.start(group) : definition_end(text, match, group)]
