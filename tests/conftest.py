"""Shared pytest fixtures for the es6port test suite."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
import logging
from pathlib import Path

import pytest


def _clear_root_handlers() -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        try:
            handler.close()
        except Exception:  # pragma: no cover - close failures are irrelevant
            pass


@pytest.fixture(autouse=True)
def reset_logging_state() -> Iterator[None]:
    """Ensure each test runs with a clean logging configuration."""

    _clear_root_handlers()
    yield
    _clear_root_handlers()


@pytest.fixture
def source_tree() -> Callable[[Path, Mapping[str, str]], Path]:
    """Return a helper writing ``{relative path: contents}`` below a root."""

    def _build(root: Path, files: Mapping[str, str]) -> Path:
        for relative, contents in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(contents, encoding="utf-8")
        return root

    return _build
