"""Cycle Breaker: merge mutually requiring files into one."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import re
from typing import Iterable, Mapping, Sequence

from es6port.conversion.models import AliasBinding, MemberBinding
from es6port.conversion.reader import extract_requires, read_source, root_patterns
from es6port.core.logging import get_logger

__all__ = ["CycleBreaker", "MergeResult", "merge_contents"]


@dataclass(frozen=True, slots=True)
class MergeResult:
    """Outcome of merging one cycle group."""

    target: Path
    merged: tuple[Path, ...]
    missing: tuple[Path, ...]


def _consume_line_end(text: str, end: int) -> int:
    while end < len(text) and text[end] in " \t":
        end += 1
    if text.startswith("\n", end):
        end += 1
    return end


def _remove_spans(text: str, spans: Iterable[tuple[int, int]]) -> str:
    pieces: list[str] = []
    cursor = 0
    for start, end in sorted(spans):
        if start < cursor:
            continue
        pieces.append(text[cursor:start])
        cursor = _consume_line_end(text, end)
    pieces.append(text[cursor:])
    return "".join(pieces)


def _requalify(text: str, alias: str, namespace: str) -> str:
    pattern = re.compile(rf"(?<![\w$.'\"/]){re.escape(alias)}(?![\w$'\"/])")
    return pattern.sub(lambda _: namespace, text)


def merge_contents(contents: Sequence[str], *, root: str = "goog") -> str:
    """Concatenate ``contents`` and drop requires between group members.

    Requires of a namespace provided by any member are removed; aliased ones
    have their alias references rewritten to the fully qualified namespace.
    Repeated identical requires of outside namespaces are kept once.

    Example:
        >>> a = "goog.provide('a.A');\\ngoog.require('b.B');\\n"
        >>> b = "goog.provide('b.B');\\ngoog.require('a.A');\\n"
        >>> merged = merge_contents([a, b])
        >>> "require" in merged, merged.count("goog.provide")
        (False, 2)
    """

    text = "\n\n".join(contents)
    provided = {
        match.group(2) for match in root_patterns(root).provide.finditer(text)
    }

    spans: list[tuple[int, int]] = []
    aliases: list[tuple[str, str]] = []
    seen_statements: set[str] = set()
    pattern = root_patterns(root).require
    for match, require in zip(
        pattern.finditer(text), extract_requires(text, root=root)
    ):
        if require.namespace in provided:
            spans.append(match.span())
            if isinstance(require.binding, AliasBinding):
                aliases.append((require.binding.alias, require.namespace))
            elif isinstance(require.binding, MemberBinding):
                for member in require.binding.members:
                    aliases.append(
                        (member.internal, f"{require.namespace}.{member.external}")
                    )
            continue
        statement = match.group()
        if statement in seen_statements:
            spans.append(match.span())
        seen_statements.add(statement)

    merged = _remove_spans(text, spans)
    for alias, namespace in aliases:
        merged = _requalify(merged, alias, namespace)
    return merged


class CycleBreaker:
    """Apply the configured cycle groups to an output tree."""

    def __init__(
        self,
        groups: Mapping[str, Sequence[str]],
        *,
        root_namespace: str = "goog",
    ) -> None:
        self._groups = dict(groups)
        self._root = root_namespace
        self._logger = get_logger(__name__, stage="cycles")

    def run(self, output_root: Path) -> list[MergeResult]:
        results: list[MergeResult] = []
        for target, members in self._groups.items():
            result = self.merge(output_root, target, members)
            if result is not None:
                results.append(result)
        return results

    def merge(
        self,
        output_root: Path,
        target: str,
        members: Sequence[str],
    ) -> MergeResult | None:
        """Merge ``members`` (relative to ``output_root``) into ``target``.

        Members that do not exist are skipped with a warning; a group with no
        existing member is skipped entirely.
        """

        files = [output_root / member for member in members]
        existing = [path for path in files if path.is_file()]
        missing = tuple(path for path in files if not path.is_file())
        for path in missing:
            self._logger.warning(
                "cycle-group-file-missing", group=target, path=str(path)
            )
        if not existing:
            self._logger.warning("cycle-group-skipped", group=target)
            return None

        content = merge_contents(
            [read_source(path) for path in existing], root=self._root
        )
        for path in existing:
            path.unlink()
        destination = output_root / target
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(content, encoding="utf-8")

        self._logger.info(
            "cycle-group-merged",
            group=target,
            files=[str(path) for path in existing],
        )
        return MergeResult(
            target=destination, merged=tuple(existing), missing=missing
        )
