"""Configured textual patches applied to files of the output tree."""

from __future__ import annotations

from pathlib import Path
import re
from typing import Sequence

from es6port.conversion.errors import PatchNotAppliedError
from es6port.conversion.reader import read_source
from es6port.core.config import PatchRule
from es6port.core.logging import get_logger

__all__ = ["PatchApplier", "apply_rule", "rule_targets"]


def rule_targets(rule: PatchRule, relative: str, *, extension: str) -> bool:
    """Return ``True`` when ``rule`` is scoped to the file at ``relative``.

    The rule's ``file`` is a path suffix; the extension may be omitted.

    Example:
        >>> rule = PatchRule(file="ui/menu", search="a")
        >>> rule_targets(rule, "closure/goog/ui/menu.js", extension=".js")
        True
        >>> rule_targets(rule, "closure/goog/ui/submenu.js", extension=".js")
        False
    """

    suffixes = {rule.file}
    if not rule.file.endswith(extension):
        suffixes.add(f"{rule.file}{extension}")
    return any(
        relative == suffix or relative.endswith(f"/{suffix}")
        for suffix in suffixes
    )


def apply_rule(rule: PatchRule, text: str) -> tuple[str, bool]:
    """Apply ``rule`` to ``text`` returning the new text and whether it hit."""

    if rule.regex:
        pattern = re.compile(rule.search, re.MULTILINE)
        if pattern.search(text) is None:
            return text, False
        return pattern.sub(rule.replace, text), True
    if rule.search not in text:
        return text, False
    return text.replace(rule.search, rule.replace), True


class PatchApplier:
    """Apply an ordered list of patch rules to files under a root."""

    def __init__(
        self,
        rules: Sequence[PatchRule],
        *,
        extension: str = ".js",
    ) -> None:
        self._rules = tuple(rules)
        self._extension = extension
        self._logger = get_logger(__name__, stage="patches")

    def apply_text(self, relative: str, text: str) -> str:
        """Return ``text`` with every rule scoped to ``relative`` applied.

        Raises:
            PatchNotAppliedError: If a strict rule's search text is absent.
        """

        for rule in self._rules:
            if not rule_targets(rule, relative, extension=self._extension):
                continue
            text, applied = apply_rule(rule, text)
            if applied:
                continue
            if rule.strict:
                raise PatchNotAppliedError(
                    f"{rule.search!r} not contained in {relative}"
                )
            self._logger.warning(
                "patch-search-missing", path=relative, search=rule.search
            )
        return text

    def run(self, root: Path) -> list[Path]:
        """Patch every matching file under ``root`` in place.

        Returns the files whose content changed. A strict rule that targets no
        file at all fails as well.
        """

        if not self._rules:
            return []

        changed: list[Path] = []
        hit: set[PatchRule] = set()
        for path in sorted(root.rglob(f"*{self._extension}")):
            if not path.is_file():
                continue
            relative = path.relative_to(root).as_posix()
            rules = [
                rule
                for rule in self._rules
                if rule_targets(rule, relative, extension=self._extension)
            ]
            if not rules:
                continue
            hit.update(rules)
            original = read_source(path)
            patched = self.apply_text(relative, original)
            if patched != original:
                path.write_text(patched, encoding="utf-8")
                changed.append(path)

        for rule in self._rules:
            if rule in hit:
                continue
            if rule.strict:
                raise PatchNotAppliedError(f"No file matches {rule.file!r}")
            self._logger.warning("patch-target-missing", file=rule.file)

        self._logger.info("patches-applied", files=len(changed))
        return changed
