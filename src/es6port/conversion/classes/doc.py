"""Documentation-comment editing for generated classes."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Iterable

__all__ = ["DocComment"]

_TAG = re.compile(r"\s*@(\w+)")
_VISIBILITY_WITH_TYPE = re.compile(r"^(\s*)@(private|protected|public)\s*\{")
_PRIMITIVE_TYPE = re.compile(r"^(\s*@type\s*\{)(number|boolean|string)\}")
_FUNCTION_TYPE = re.compile(r"^\s*@type\s*\{function\(")


def _strip_decoration(line: str) -> str:
    stripped = line.strip()
    if stripped.startswith("*"):
        stripped = stripped[1:]
        if stripped.startswith(" "):
            stripped = stripped[1:]
    return stripped.rstrip()


@dataclass(frozen=True, slots=True)
class DocComment:
    """A ``/** ... */`` comment split into description and tag blocks.

    Each block is a tuple of content lines without the ``*`` decoration; the
    first line of a tag block starts with ``@tag``.

    Example:
        >>> doc = DocComment.parse("/**\\n * Does x.\\n * @param {number} a\\n */")
        >>> doc.tags()
        ['param']
        >>> print(doc.without("param").render(), end="")
        /**
         * Does x.
         */
    """

    blocks: tuple[tuple[str, ...], ...] = ()

    @classmethod
    def parse(cls, text: str | None) -> "DocComment":
        if not text:
            return cls()
        inner = text.strip()
        if inner.startswith("/**"):
            inner = inner[3:]
        if inner.endswith("*/"):
            inner = inner[:-2]
        lines = [_strip_decoration(line) for line in inner.split("\n")]
        while lines and not lines[0].strip():
            lines.pop(0)
        while lines and not lines[-1].strip():
            lines.pop()

        blocks: list[list[str]] = []
        for line in lines:
            if _TAG.match(line) or not blocks:
                blocks.append([line])
            else:
                blocks[-1].append(line)
        return cls(tuple(tuple(block) for block in blocks))

    @staticmethod
    def block_tag(block: tuple[str, ...]) -> str | None:
        match = _TAG.match(block[0])
        return match.group(1) if match else None

    def tags(self) -> list[str]:
        return [
            tag
            for tag in (self.block_tag(block) for block in self.blocks)
            if tag is not None
        ]

    def has_tag(self, *names: str) -> bool:
        return any(tag in names for tag in self.tags())

    def without(self, *names: str) -> "DocComment":
        return DocComment(
            tuple(
                block
                for block in self.blocks
                if self.block_tag(block) not in names
            )
        )

    def only(self, *names: str) -> "DocComment":
        return DocComment(
            tuple(
                block for block in self.blocks if self.block_tag(block) in names
            )
        )

    def with_tag(self, line: str) -> "DocComment":
        return DocComment(self.blocks + ((line,),))

    def map_lines(self, *rewrites: tuple[re.Pattern[str], str]) -> "DocComment":
        blocks: list[tuple[str, ...]] = []
        for block in self.blocks:
            lines: list[str] = []
            for line in block:
                for pattern, replacement in rewrites:
                    line = pattern.sub(replacement, line)
                lines.extend(line.split("\n"))
            blocks.append(tuple(lines))
        return DocComment(tuple(blocks))

    def drop_lines(self, pattern: re.Pattern[str]) -> "DocComment":
        blocks = []
        for block in self.blocks:
            kept = tuple(line for line in block if not pattern.match(line))
            if kept:
                blocks.append(kept)
        return DocComment(tuple(blocks))

    def split_visibility_types(self) -> "DocComment":
        """Turn ``@private {T}`` into ``@private`` plus ``@type {T}``."""

        return self.map_lines((_VISIBILITY_WITH_TYPE, r"\1@\2\n\1@type {"))

    def nullable_primitive_type(self) -> "DocComment":
        """Widen ``@type {number}`` style primitives with ``|null``."""

        return self.map_lines((_PRIMITIVE_TYPE, r"\1\2|null}"))

    def drop_function_type(self) -> "DocComment":
        return self.drop_lines(_FUNCTION_TYPE)

    def mentions(self, fragment: str) -> bool:
        return any(fragment in line for block in self.blocks for line in block)

    def is_empty(self) -> bool:
        return not any(line.strip() for block in self.blocks for line in block)

    def lines(self) -> Iterable[str]:
        for block in self.blocks:
            yield from block

    def render(self) -> str:
        """Return the comment text with a trailing newline, or ``""``."""

        if self.is_empty():
            return ""
        body = "".join(f" * {line}".rstrip() + "\n" for line in self.lines())
        return f"/**\n{body} */\n"
