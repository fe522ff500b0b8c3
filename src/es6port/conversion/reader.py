"""Source Reader: index provides, requires and exports into a graph."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
import re
from typing import Iterable, Iterator, Sequence

from es6port.conversion.errors import (
    AmbiguousExportListError,
    MissingModuleExportsError,
    UnsupportedDestructuredImportError,
)
from es6port.conversion.models import (
    AliasBinding,
    Binding,
    DependencyGraph,
    ExportEntry,
    MemberBinding,
    ModuleExport,
    PlainBinding,
    ProvideDeclaration,
    ProvideShape,
    RequireDeclaration,
    RequireKind,
)
from es6port.conversion.scanner import scan_group_end, scan_statement_end
from es6port.conversion.syntax import (
    iter_doc_comments,
    iter_doc_types,
    iter_qualified_names,
    multiline_safe_pattern,
)
from es6port.conversion.traversal import TraversalService
from es6port.core.config import ReaderSettings
from es6port.core.logging import get_logger

__all__ = [
    "RootPatterns",
    "SourceReader",
    "classify_shape",
    "extract_module_exports",
    "extract_provides",
    "extract_requires",
    "infer_lenient_requires",
    "read_source",
    "root_patterns",
]

_IDENTIFIER = re.compile(r"[\w$]+")
_DOTTED_EXPORT = re.compile(r"(?m)^[ \t]*exports\.([\w$]+)\s*=(?!=)")
_LIST_EXPORT = re.compile(r"(?m)^[ \t]*exports\s*=(?!=)\s*")
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT = re.compile(r"//[^\n]*")


@dataclass(frozen=True, slots=True)
class RootPatterns:
    """Compiled header patterns for one root namespace."""

    root: str
    provide: re.Pattern[str]
    require: re.Pattern[str]


@lru_cache(maxsize=16)
def root_patterns(root: str) -> RootPatterns:
    """Return the provide/require patterns for ``root`` (e.g. ``goog``).

    Example:
        >>> patterns = root_patterns("goog")
        >>> patterns.provide.match("goog.provide('a.b');").group(2)
        'a.b'
    """

    prefix = multiline_safe_pattern(root)
    provide = re.compile(
        rf"(?m)^{prefix}\s*\.\s*(provide|module)\s*"
        r"\(\s*['\"]([\w$.]+)['\"]\s*\)\s*;?"
    )
    require = re.compile(
        r"(?m)^(?:(?:const|let|var)\s+(\{[^}]*\}|[\w$]+)\s*=\s*)?"
        rf"{prefix}\s*\.\s*(require|requireType|forwardDeclare)\s*"
        r"\(\s*['\"]([\w$.]+)['\"]\s*\)\s*;?"
    )
    return RootPatterns(root=root, provide=provide, require=require)


def read_source(path: Path) -> str:
    """Return the UTF-8 text of ``path`` without byte-order marks."""

    return path.read_text(encoding="utf-8").replace("\ufeff", "")


def _normalize_export_entry(raw: str) -> ExportEntry:
    external, sep, internal = raw.partition(":")
    external = external.strip()
    internal = internal.strip() if sep else external
    if not _IDENTIFIER.fullmatch(external) or not _IDENTIFIER.fullmatch(
        internal
    ):
        raise AmbiguousExportListError(
            f"Unsupported entry in module export list: {raw.strip()!r}"
        )
    return ExportEntry(external=external, internal=internal)


def extract_module_exports(text: str) -> list[ModuleExport]:
    """Return the exports of a module-style file in source order.

    Handles ``exports.name = ...`` assignments, ``exports = {a, b: c}`` lists
    (with interleaved comments) and ``exports = Name;``.

    Example:
        >>> text = "exports = {\\n  // first\\n  a,\\n  /* x */ b: c,\\n};\\n"
        >>> [e.entry.fragment() for e in extract_module_exports(text)]
        ['a', 'c as b']

    Raises:
        AmbiguousExportListError: If an export list entry is not a plain
            ``name`` or ``name: alias`` pair.
        ScannerOverrunError: If the export list is never closed.
    """

    exports: list[ModuleExport] = []
    for match in _DOTTED_EXPORT.finditer(text):
        exports.append(
            ModuleExport(
                entry=ExportEntry.same(match.group(1)),
                inline=True,
                matched_text=match.group(),
            )
        )

    for match in _LIST_EXPORT.finditer(text):
        value_start = match.end()
        if text.startswith("{", value_start):
            end = scan_group_end(text, value_start)
            body = text[value_start + 1 : end - 1]
            while end < len(text) and text[end] in " \t":
                end += 1
            if text.startswith(";", end):
                end += 1
            body = _LINE_COMMENT.sub("", _BLOCK_COMMENT.sub("", body))
            entries = [
                _normalize_export_entry(item)
                for item in body.split(",")
                if item.strip()
            ]
        else:
            end = scan_statement_end(text, value_start)
            entries = [_normalize_export_entry(text[value_start : end - 1])]
        statement = text[match.start() : end].lstrip(" \t")
        exports.extend(
            ModuleExport(entry=entry, inline=False, matched_text=statement)
            for entry in entries
        )
    return exports


def _default_export(text: str) -> str | None:
    for match in _LIST_EXPORT.finditer(text):
        if not text.startswith("{", match.end()):
            name = _IDENTIFIER.match(text, match.end())
            if name is not None:
                return name.group()
    return None


def classify_shape(text: str, namespace: str) -> ProvideShape:
    """Return whether ``namespace`` is declared as a value or an object.

    Namespaces assigned directly (classes, enums, functions, constants) or
    declared bare (typedefs) are values; namespaces that only carry members
    are objects.

    Example:
        >>> classify_shape("a.b.C = function() {};", "a.b.C")
        <ProvideShape.VALUE: 'value'>
        >>> classify_shape("a.b.x = 1;", "a.b")
        <ProvideShape.OBJECT: 'object'>
    """

    pattern = rf"(?m)^\s*{multiline_safe_pattern(namespace)}\s*(?:=(?!=)|;)"
    if re.search(pattern, text):
        return ProvideShape.VALUE
    return ProvideShape.OBJECT


def extract_provides(text: str, *, root: str = "goog") -> list[ProvideDeclaration]:
    """Return the provide/module declarations of ``text``.

    Raises:
        MissingModuleExportsError: If a module-style file exports nothing.
        AmbiguousExportListError: If its export list cannot be parsed.
    """

    provides: list[ProvideDeclaration] = []
    for match in root_patterns(root).provide.finditer(text):
        namespace = match.group(2)
        if match.group(1) == "module":
            exports = tuple(extract_module_exports(text))
            if not exports:
                raise MissingModuleExportsError(
                    f"Namespace {namespace!r} is declared as a module but no "
                    "exports were found"
                )
            provides.append(
                ProvideDeclaration(
                    namespace=namespace,
                    is_module_style=True,
                    exports=exports,
                    matched_text=match.group(),
                    default_export=_default_export(text),
                )
            )
        else:
            provides.append(
                ProvideDeclaration(
                    namespace=namespace,
                    is_module_style=False,
                    matched_text=match.group(),
                    shape=classify_shape(text, namespace),
                )
            )
    return provides


def _parse_binding(raw: str | None, statement: str) -> Binding:
    if raw is None:
        return PlainBinding()
    if not raw.startswith("{"):
        return AliasBinding(alias=raw)
    inner = raw[1:-1].strip().rstrip(",").strip()
    if "," in inner:
        raise UnsupportedDestructuredImportError(
            f"Found multiple member imports in {statement!r}, which is "
            "unsupported."
        )
    return MemberBinding(members=(_normalize_export_entry(inner),))


def extract_requires(text: str, *, root: str = "goog") -> list[RequireDeclaration]:
    """Return the explicit require/forward-declare statements of ``text``.

    Example:
        >>> [r.namespace for r in extract_requires("goog.require('a.b');")]
        ['a.b']

    Raises:
        UnsupportedDestructuredImportError: For ``const {a, b} = ...``.
    """

    requires: list[RequireDeclaration] = []
    for match in root_patterns(root).require.finditer(text):
        statement = match.group()
        kind = (
            RequireKind.FORWARD_DECLARE
            if match.group(2) == "forwardDeclare"
            else RequireKind.EXPLICIT_REQUIRE
        )
        requires.append(
            RequireDeclaration(
                namespace=match.group(3),
                kind=kind,
                binding=_parse_binding(match.group(1), statement),
                matched_text=statement,
            )
        )
    return requires


def infer_lenient_requires(
    text: str,
    *,
    known: Iterable[str],
) -> list[RequireDeclaration]:
    """Infer IMPLICIT_LENIENT requires from documentation type annotations.

    Every dotted name inside a ``@tag {type}`` expression that is not in
    ``known`` becomes a candidate. Candidates may not resolve; later stages
    drop those silently.
    """

    seen = set(known)
    inferred: list[RequireDeclaration] = []
    for comment in iter_doc_comments(text):
        for type_text in iter_doc_types(comment):
            for name in iter_qualified_names(type_text):
                if name in seen:
                    continue
                seen.add(name)
                inferred.append(RequireDeclaration.implicit(name, lenient=True))
    return inferred


class SourceReader:
    """Walk source trees and index their declarations into a graph."""

    def __init__(
        self,
        settings: ReaderSettings | None = None,
        *,
        root_namespace: str = "goog",
        include_tests: bool = False,
    ) -> None:
        self._settings = settings or ReaderSettings()
        self._root = root_namespace
        self._include_tests = include_tests
        self._logger = get_logger(__name__, stage="reader")

    def _exclude_patterns(self) -> Sequence[str]:
        patterns = list(self._settings.exclude_patterns)
        if not self._include_tests:
            patterns.extend(self._settings.test_patterns)
        return patterns

    def iter_paths(self, root: Path) -> Iterator[Path]:
        """Yield the source files below ``root`` that pass the filters."""

        traversal = TraversalService(
            root=root,
            extensions=self._settings.extensions,
            exclude_patterns=self._exclude_patterns(),
            respect_gitignore=self._settings.respect_gitignore,
        )
        for result in traversal.iter_files():
            yield result.absolute_path

    def read_tree(
        self,
        root: Path,
        *,
        graph: DependencyGraph | None = None,
    ) -> DependencyGraph:
        """Index every relevant file below ``root``.

        Raises:
            DuplicateProvideError: If two files provide the same namespace.
        """

        graph = graph if graph is not None else DependencyGraph()
        for path in self.iter_paths(root):
            self.read_file(path, graph)
        self._logger.info(
            "reader-complete",
            root=str(root),
            files=len(graph),
            namespaces=len(graph.files_by_namespace),
        )
        return graph

    def read_file(self, path: Path, graph: DependencyGraph) -> bool:
        """Index one file; return ``False`` when the file is skipped."""

        text = read_source(path)
        marker = self._settings.test_only_marker
        if marker and marker in text and not self._include_tests:
            self._logger.warning(
                "reader-file-skipped", path=str(path), reason="test-only"
            )
            return False

        try:
            provides = extract_provides(text, root=self._root)
        except AmbiguousExportListError as exc:
            self._logger.warning(
                "reader-exports-ambiguous", path=str(path), error=str(exc)
            )
            provides = [
                ProvideDeclaration(
                    namespace=match.group(2),
                    is_module_style=match.group(1) == "module",
                )
                for match in root_patterns(self._root).provide.finditer(text)
            ]
        if not provides:
            self._logger.debug(
                "reader-file-skipped", path=str(path), reason="no-provides"
            )
            return False

        requires = extract_requires(text, root=self._root)
        requires.extend(
            self._implicit_strict_requires(path, text, provides, requires)
        )
        known = {provide.namespace for provide in provides}
        known.update(require.namespace for require in requires)
        requires.extend(infer_lenient_requires(text, known=known))

        graph.add_file(path, provides, requires)
        self._logger.debug(
            "reader-file-indexed",
            path=str(path),
            provides=[provide.namespace for provide in provides],
            requires=len(requires),
        )
        return True

    def _implicit_strict_requires(
        self,
        path: Path,
        text: str,
        provides: Sequence[ProvideDeclaration],
        requires: Sequence[RequireDeclaration],
    ) -> list[RequireDeclaration]:
        required = {require.namespace for require in requires}
        provided = {provide.namespace for provide in provides}
        implicit: list[RequireDeclaration] = []

        dispose = f"{self._root}.dispose"
        if (
            f"{dispose}(" in text
            and dispose not in required
            and dispose not in provided
        ):
            implicit.append(RequireDeclaration.implicit(dispose))

        if (
            self._settings.implicit_root_require
            and path.name not in self._settings.root_files
            and self._root not in required
            and self._root not in provided
        ):
            implicit.append(
                RequireDeclaration(
                    namespace=self._root,
                    kind=RequireKind.IMPLICIT_STRICT,
                    binding=AliasBinding(alias=self._root),
                )
            )
        return implicit
