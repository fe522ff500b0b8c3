"""Dependency Selector: transitive closure of required namespaces."""

from __future__ import annotations

from collections import deque
from pathlib import Path
from typing import Iterable

from es6port.conversion.errors import UnresolvedDependencyError
from es6port.conversion.models import DependencyGraph
from es6port.core.logging import get_logger

__all__ = ["load_root_namespaces", "select"]


def load_root_namespaces(path: Path) -> list[str]:
    """Read one namespace per line, ignoring blanks and ``#`` comments.

    Example:
        >>> from pathlib import Path
        >>> import tempfile
        >>> with tempfile.TemporaryDirectory() as tmp:
        ...     target = Path(tmp) / "ns.txt"
        ...     _ = target.write_text("# roots\\na.b\\n\\nc.D\\n")
        ...     load_root_namespaces(target)
        ['a.b', 'c.D']
    """

    namespaces: list[str] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        candidate = line.strip()
        if not candidate or candidate.startswith("#"):
            continue
        namespaces.append(candidate)
    return namespaces


def select(
    graph: DependencyGraph,
    roots: Iterable[str],
    *,
    include_tests: bool = False,
    test_suffix: str = "Test",
) -> set[Path]:
    """Return the minimal set of files providing ``roots`` and their needs.

    Lenient (documentation-inferred) requires are not followed. When
    ``include_tests`` is set, the companion ``<namespace><test_suffix>`` of
    every processed namespace is pulled in as well if some file provides it.

    Raises:
        UnresolvedDependencyError: If a reachable namespace has no provider.
    """

    selected: set[Path] = set()
    processed: set[str] = set()
    pending: deque[str] = deque()

    def enqueue(namespace: str) -> None:
        if namespace not in processed:
            processed.add(namespace)
            pending.append(namespace)

    def expand(path: Path) -> None:
        selected.add(path)
        for require in graph.requires_of(path):
            if not require.kind.is_lenient:
                enqueue(require.namespace)

    for namespace in roots:
        enqueue(namespace)

    while pending:
        namespace = pending.popleft()
        path = graph.provider_of(namespace)
        if path is None:
            raise UnresolvedDependencyError([namespace])
        expand(path)

        if include_tests:
            companion = graph.provider_of(f"{namespace}{test_suffix}")
            if companion is not None and companion not in selected:
                expand(companion)

    logger = get_logger(__name__, stage="selection")
    logger.info(
        "selection-complete",
        namespaces=len(processed),
        files=len(selected),
        include_tests=include_tests,
    )
    return selected
