"""Filesystem traversal helpers for the conversion stages."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Sequence

from pathspec import PathSpec

__all__ = [
    "TraversalResult",
    "TraversalService",
]


@dataclass(frozen=True, slots=True)
class TraversalResult:
    """Container describing a file discovered during traversal."""

    absolute_path: Path
    relative_path: Path


class TraversalService:
    """Enumerate source files under a root while honoring exclusion rules.

    Files are yielded in a stable, name-sorted depth-first order so repeated
    runs index the tree identically.
    """

    def __init__(
        self,
        *,
        root: Path,
        extensions: Sequence[str] = (".js",),
        exclude_patterns: Sequence[str] = (),
        respect_gitignore: bool = False,
        follow_symlinks: bool = False,
    ) -> None:
        if not root.exists():
            raise FileNotFoundError(f"Traversal root not found: {root}")
        if not root.is_dir():
            raise NotADirectoryError(
                f"Traversal root must be a directory: {root}"
            )
        self._root = root.resolve()
        self._extensions = tuple(ext.lower() for ext in extensions)
        self._exclude_spec = (
            PathSpec.from_lines("gitwildmatch", exclude_patterns)
            if exclude_patterns
            else None
        )
        self._respect_gitignore = respect_gitignore
        self._follow_symlinks = follow_symlinks
        self._gitignore_cache: dict[Path, PathSpec | None] = {}

    @property
    def root(self) -> Path:
        return self._root

    def iter_files(self) -> Iterator[TraversalResult]:
        """Yield every non-excluded source file below the root."""

        yield from self._walk_inner(self._root, [])

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _is_source(self, path: Path) -> bool:
        return path.name.lower().endswith(self._extensions)

    def _walk_inner(
        self,
        directory: Path,
        stack: list[PathSpec],
    ) -> Iterator[TraversalResult]:
        local_spec = self._load_gitignore(directory)
        if local_spec is not None:
            stack.append(local_spec)

        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
        except PermissionError:
            return

        for entry in entries:
            try:
                is_dir = entry.is_dir()
            except OSError:
                continue

            if entry.is_symlink() and not self._follow_symlinks:
                continue

            if self._is_ignored(entry, stack=stack, is_dir=is_dir):
                continue

            if is_dir:
                yield from self._walk_inner(entry, stack.copy())
                continue

            if not entry.is_file() or not self._is_source(entry):
                continue

            yield TraversalResult(
                absolute_path=entry,
                relative_path=entry.relative_to(self._root),
            )

    def _is_ignored(
        self,
        path: Path,
        *,
        stack: Sequence[PathSpec],
        is_dir: bool,
    ) -> bool:
        try:
            relative = path.relative_to(self._root)
        except ValueError:
            return True

        candidate = relative.as_posix()
        if is_dir:
            candidate = f"{candidate}/"

        if self._exclude_spec is not None and self._exclude_spec.match_file(
            candidate
        ):
            return True

        if not self._respect_gitignore:
            return False
        return any(spec.match_file(candidate) for spec in stack)

    def _load_gitignore(self, directory: Path) -> PathSpec | None:
        if not self._respect_gitignore:
            return None
        if directory in self._gitignore_cache:
            return self._gitignore_cache[directory]
        gitignore = directory / ".gitignore"
        spec: PathSpec | None = None
        if gitignore.is_file():
            try:
                lines = gitignore.read_text(encoding="utf-8").splitlines()
            except OSError:
                lines = []
            if lines:
                spec = PathSpec.from_lines("gitwildmatch", lines)
        self._gitignore_cache[directory] = spec
        return spec
