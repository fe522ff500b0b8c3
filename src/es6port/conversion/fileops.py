"""Copy sources from the input root into a cleared output root."""

from __future__ import annotations

from pathlib import Path
import shutil
from typing import Iterable

from es6port.core.logging import get_logger

__all__ = ["clear_directory", "copy_files", "copy_tree"]


def clear_directory(path: Path) -> None:
    """Remove every entry under ``path``, creating it when missing."""

    path.mkdir(parents=True, exist_ok=True)
    for entry in path.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()


def copy_files(
    files: Iterable[Path],
    *,
    source_root: Path,
    output_root: Path,
) -> list[Path]:
    """Copy ``files`` below ``source_root`` to the same relative paths.

    Raises:
        ValueError: If a file does not live under ``source_root``.
    """

    copied: list[Path] = []
    for path in sorted(files):
        relative = path.relative_to(source_root)
        destination = output_root / relative
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(path, destination)
        copied.append(destination)
    logger = get_logger(__name__, stage="files")
    logger.info("files-copied", count=len(copied), output=str(output_root))
    return copied


def copy_tree(source_root: Path, output_root: Path) -> list[Path]:
    """Copy every regular file below ``source_root`` into ``output_root``."""

    files = [path for path in source_root.rglob("*") if path.is_file()]
    return copy_files(files, source_root=source_root, output_root=output_root)
