"""Namespace Rewriter: turn provide/require headers into import/export syntax.

Per file the rewriter

* converts module-style headers and ``exports`` statements into ``export``
  declarations, or, for provide-style files, turns every provided namespace
  (longest first) into local bindings plus a trailing ``export {...};``;
* replaces each dependency declaration (longest namespace first) with an
  ``import`` of the providing file under a collision-free alias;
* strips the root-namespace prefix from any remaining reference that is not
  an allow-listed root utility.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
import os
from pathlib import Path
import re
from typing import AbstractSet, Iterable, Sequence

from es6port.conversion.aliasing import allocate_alias
from es6port.conversion.errors import (
    AmbiguousExportListError,
    UnresolvedDependencyError,
)
from es6port.conversion.models import (
    AliasBinding,
    DependencyGraph,
    ExportEntry,
    MemberBinding,
    ProvideDeclaration,
    ProvideShape,
    RequireDeclaration,
)
from es6port.conversion.reader import classify_shape, read_source
from es6port.conversion.syntax import (
    IDENTIFIER,
    is_class_name,
    last_segment,
    multiline_safe_pattern,
    replace_qualified,
)
from es6port.core.config import RewriteSettings
from es6port.core.logging import get_logger

__all__ = [
    "NamespaceRewriter",
    "RewriteOutcome",
    "RewriteStatus",
    "convert_module_file",
    "convert_provide_file",
    "fix_define_keywords",
    "import_path",
    "strip_root_references",
]

_SUPPRESS_EXTRA_REQUIRE = re.compile(r"@suppress\s*\{extraRequire\}")
_EXPORTS_REFERENCE = re.compile(rf"(?<![\w$.])exports\.({IDENTIFIER})")
# Closure's `COMPILED` global is always true once the tree is bundled.
_COMPILED_FLAG = re.compile(r"(?<![\w$.])COMPILED(?![\w$])")


class RewriteStatus(StrEnum):
    CONVERTED = "converted"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class RewriteOutcome:
    """Result of rewriting one file."""

    path: Path
    status: RewriteStatus
    reason: str | None = None


def _remove_statement(text: str, statement: str) -> str:
    """Remove every occurrence of ``statement`` and its line break."""

    return re.sub(rf"{re.escape(statement)}[ \t]*\n?", "", text)


def _remove_first(text: str, statement: str) -> str:
    return re.sub(rf"{re.escape(statement)}\s*", "", text, count=1)


def import_path(source: Path, target: Path) -> str:
    """Return the relative module specifier from ``source`` to ``target``.

    Example:
        >>> from pathlib import Path
        >>> import_path(Path("/x/a/b.js"), Path("/x/c/d.js"))
        '../c/d.js'
        >>> import_path(Path("/x/a/b.js"), Path("/x/a/e.js"))
        './e.js'
    """

    relative = Path(os.path.relpath(target, start=source.parent)).as_posix()
    if not relative.startswith("."):
        relative = f"./{relative}"
    return relative


def fix_define_keywords(
    text: str,
    *,
    root: str = "goog",
) -> tuple[str, list[ExportEntry]]:
    """Bind defines to ``const`` names and collect them for export.

    ``let X = <root>.define(`` becomes ``const X = <root>.define(``, and a
    line-level ``<root>.define('a.b.X', ...)`` gains a ``const X = ``
    binding with every ``a.b.X`` reference shortened to ``X``.

    Example:
        >>> text = (
        ...     "goog.define('goog.userAgent.product.ASSUME_SAFARI', false);\\n"
        ...     " some(goog.userAgent.product.ASSUME_SAFARI)"
        ... )
        >>> print(fix_define_keywords(text)[0])
        const ASSUME_SAFARI = goog.define('goog.userAgent.product.ASSUME_SAFARI', false);
         some(ASSUME_SAFARI)
    """

    prefix = multiline_safe_pattern(root)
    exports: list[ExportEntry] = []

    def bind_let(match: re.Match[str]) -> str:
        exports.append(ExportEntry.same(match.group(1)))
        return f"const {match.group(1)} = {root}.define("

    text = re.sub(
        rf"(?<![\w$])let\s+({IDENTIFIER})\s*=\s*{prefix}\s*\.\s*define\s*\(",
        bind_let,
        text,
    )

    qualified: list[tuple[str, str]] = []

    def bind_call(match: re.Match[str]) -> str:
        namespace, short = match.group(3), match.group(4)
        qualified.append((namespace, short))
        exports.append(ExportEntry.same(short))
        return f"{match.group(1)}const {short} = {match.group(2)}"

    text = re.sub(
        rf"(?m)^([ \t]*)({prefix}\s*\.\s*define\s*\(\s*['\"]"
        rf"([\w$.]+\.({IDENTIFIER}))['\"]\s*,)",
        bind_call,
        text,
    )
    for namespace, short in qualified:
        text = replace_qualified(text, namespace, short)
    return text, exports


def _is_public(name: str) -> bool:
    return not name.endswith("_")


def _rewrite_value_namespace(
    text: str,
    namespace: str,
    exports: set[ExportEntry],
    reserved: AbstractSet[str],
) -> str:
    parts = namespace.split(".")
    name = parts[-1]
    local = name
    if local in reserved and len(parts) > 1:
        local = f"{parts[-2]}_{local}"
    if _is_public(name):
        exports.add(ExportEntry(external=name, internal=local))
    text = re.sub(
        rf"(?m)^([ \t]*){multiline_safe_pattern(namespace)}"
        r"(\s*=(?!=)|\s*;)",
        lambda match: f"{match.group(1)}let {local}{match.group(2)}",
        text,
        count=1,
    )
    return replace_qualified(text, namespace, local)


def _rewrite_object_namespace(
    text: str,
    namespace: str,
    exports: set[ExportEntry],
    reserved: AbstractSet[str],
) -> str:
    prefix = multiline_safe_pattern(namespace)
    member = re.compile(rf"(?m)^{prefix}\s*\.\s*({IDENTIFIER})(\s*=(?!=))")
    names = list(dict.fromkeys(m.group(1) for m in member.finditer(text)))
    for name in names:
        local = f"_{name}" if name in reserved else name
        if _is_public(name):
            exports.add(ExportEntry(external=name, internal=local))
        text = re.sub(
            rf"(?m)^{prefix}\s*\.\s*{re.escape(name)}(\s*=(?!=))",
            lambda match: f"let {local}{match.group(1)}",
            text,
            count=1,
        )
        text = replace_qualified(text, f"{namespace}.{name}", local)

    typedef = re.compile(rf"(?m)^{prefix}\s*\.\s*({IDENTIFIER})\s*;")
    names = list(dict.fromkeys(m.group(1) for m in typedef.finditer(text)))
    for name in names:
        local = f"_{name}" if name in reserved else name
        if _is_public(name):
            exports.add(ExportEntry(external=name, internal=local))
        text = re.sub(
            rf"(?m)^{prefix}\s*\.\s*{re.escape(name)}\s*;",
            lambda _: f"let {local};",
            text,
            count=1,
        )
        text = replace_qualified(text, f"{namespace}.{name}", local)
    return text


def _append_exports(text: str, exports: Iterable[ExportEntry]) -> str:
    fragments = ", ".join(entry.fragment() for entry in exports)
    return f"{text.rstrip()}\n\nexport {{{fragments}}};\n"


def convert_provide_file(
    text: str,
    provides: Sequence[ProvideDeclaration],
    *,
    root: str = "goog",
    reserved: AbstractSet[str] = frozenset(),
) -> tuple[str, list[ExportEntry]]:
    """Convert the provided namespaces of a provide-style file.

    Returns the converted text and its sorted export entries.

    Raises:
        AmbiguousExportListError: If nothing exportable is found.
    """

    text, defined = fix_define_keywords(text, root=root)
    exports: set[ExportEntry] = set(defined)

    ordered = sorted(provides, key=lambda p: len(p.namespace), reverse=True)
    for provide in ordered:
        if classify_shape(text, provide.namespace) is ProvideShape.VALUE:
            text = _rewrite_value_namespace(
                text, provide.namespace, exports, reserved
            )
        else:
            text = _rewrite_object_namespace(
                text, provide.namespace, exports, reserved
            )
        if provide.matched_text:
            text = _remove_first(text, provide.matched_text)

    if not exports:
        namespaces = ", ".join(provide.namespace for provide in provides)
        raise AmbiguousExportListError(
            f"Could not infer exports for {namespaces}"
        )

    text, _ = fix_define_keywords(text, root=root)
    entries = sorted(exports)
    return _append_exports(text, entries), entries


def convert_module_file(
    text: str,
    module: ProvideDeclaration,
    *,
    root: str = "goog",
) -> tuple[str, list[ExportEntry]]:
    """Convert a module-style file to ``export`` syntax.

    Returns the converted text and the entries it exports.
    """

    if module.matched_text:
        text = _remove_first(text, module.matched_text)
    text = re.sub(
        rf"{multiline_safe_pattern(root)}\s*\.\s*module\s*\.\s*"
        r"declareLegacyNamespace\s*\(\s*\)\s*;?[ \t]*\n?",
        "",
        text,
    )

    inline = [export for export in module.exports if export.inline]
    listed = [export for export in module.exports if not export.inline]
    entries = [export.entry for export in module.exports]

    for name in dict.fromkeys(export.entry.internal for export in inline):
        text = re.sub(
            rf"(?m)^([ \t]*)exports\.{re.escape(name)}\s*=(?!=)",
            lambda match: f"{match.group(1)}export const {name} =",
            text,
        )
        text = re.sub(
            rf"export const {re.escape(name)} = {re.escape(name)}\s*;",
            lambda _: f"export {{{name}}};",
            text,
        )
    text = _EXPORTS_REFERENCE.sub(lambda match: match.group(1), text)

    text, defined = fix_define_keywords(text, root=root)

    if not listed:
        return text, entries

    text = _remove_statement(text, listed[0].matched_text)
    exported = [export.entry for export in listed]
    exported.extend(entry for entry in defined if entry not in exported)
    return _append_exports(text, exported), entries


def strip_root_references(
    text: str,
    *,
    root: str = "goog",
    allowlist: Iterable[str] = (),
) -> str:
    """Shorten leftover ``<root>.a.B`` references to their last segment.

    Allow-listed members (given relative to ``root``) and prototype chains
    are kept.

    Example:
        >>> strip_root_references(
        ...     "/** @type {goog.a.B} */ goog.isDef(x);",
        ...     allowlist=["isDef"],
        ... )
        '/** @type {B} */ goog.isDef(x);'
    """

    allowed = tuple(f"{root}.{entry}" for entry in allowlist)
    pattern = re.compile(
        rf"(?<![\w$.'\"/]){re.escape(root)}\.[\w$]+(?:\.[\w$]+)*"
    )
    remaining: set[str] = set()
    for match in pattern.finditer(text):
        namespace = match.group()
        if "prototype" in namespace.split("."):
            continue
        if any(
            namespace == entry or namespace.startswith(f"{entry}.")
            for entry in allowed
        ):
            continue
        remaining.add(namespace)

    for namespace in sorted(remaining, key=len, reverse=True):
        text = replace_qualified(text, namespace, last_segment(namespace))
    return text


class NamespaceRewriter:
    """Rewrite every file of a dependency graph in place."""

    def __init__(
        self,
        graph: DependencyGraph,
        settings: RewriteSettings | None = None,
    ) -> None:
        self._graph = graph
        self._settings = settings or RewriteSettings()
        self._reserved = frozenset(self._settings.reserved_names)
        self._logger = get_logger(__name__, stage="rewriter")

    def run(self, paths: Iterable[Path] | None = None) -> list[RewriteOutcome]:
        outcomes: list[RewriteOutcome] = []
        targets = list(paths if paths is not None else self._graph.iter_files())
        for path in targets:
            outcomes.append(self.rewrite_file(path))
        converted = sum(o.status is RewriteStatus.CONVERTED for o in outcomes)
        self._logger.info(
            "rewrite-complete",
            converted=converted,
            skipped=len(outcomes) - converted,
        )
        return outcomes

    def rewrite_file(self, path: Path) -> RewriteOutcome:
        """Rewrite ``path`` on disk.

        Files whose exports cannot be inferred are left untouched with a
        warning. All other conversion errors propagate.
        """

        original = read_source(path)
        try:
            converted = self.convert_text(path, original)
        except AmbiguousExportListError as exc:
            self._logger.warning(
                "rewrite-export-ambiguous", path=str(path), error=str(exc)
            )
            return RewriteOutcome(path, RewriteStatus.SKIPPED, str(exc))

        if converted is None:
            self._logger.debug(
                "rewrite-file-skipped", path=str(path), reason="no-header"
            )
            return RewriteOutcome(
                path, RewriteStatus.SKIPPED, "already in module syntax"
            )

        path.write_text(converted, encoding="utf-8")
        self._logger.debug("rewrite-file-converted", path=str(path))
        return RewriteOutcome(path, RewriteStatus.CONVERTED)

    def convert_text(self, path: Path, text: str) -> str | None:
        """Return the converted ``text`` of ``path``.

        Returns ``None`` for module-style files without a recorded header,
        which are treated as already converted.

        Raises:
            AmbiguousExportListError: If a provide-style file has no exports.
            UnresolvedDependencyError: If a strict require has no provider.
        """

        root = self._settings.root_namespace
        provides = self._graph.provides_of(path)
        module = next((p for p in provides if p.is_module_style), None)

        if module is not None:
            if module.matched_text is None:
                return None
            text, exports = convert_module_file(text, module, root=root)
        else:
            text, exports = convert_provide_file(
                text, provides, root=root, reserved=self._reserved
            )

        requires = self._extend_requires(path, text)
        text = self._replace_requires(
            path, text, requires, {entry.internal for entry in exports}
        )
        text = _SUPPRESS_EXTRA_REQUIRE.sub("", text)
        text = strip_root_references(
            text, root=root, allowlist=self._settings.root_allowlist
        )
        return _COMPILED_FLAG.sub("true", text)

    # ------------------------------------------------------------------
    # Requires
    # ------------------------------------------------------------------
    def _extend_requires(
        self,
        path: Path,
        text: str,
    ) -> list[RequireDeclaration]:
        """Add requires for sibling namespaces provided by required files."""

        requires = list(self._graph.requires_of(path))
        required = {require.namespace for require in requires}
        for namespace in sorted(required):
            provider = self._graph.provider_of(namespace)
            if provider is None or provider == path:
                continue
            for sibling in self._graph.provides_of(provider):
                candidate = sibling.namespace
                if (
                    candidate not in required
                    and candidate.startswith(f"{namespace}.")
                    and candidate in text
                ):
                    required.add(candidate)
                    requires.append(RequireDeclaration.implicit(candidate))
        return requires

    def _replace_requires(
        self,
        path: Path,
        text: str,
        requires: Sequence[RequireDeclaration],
        bound: set[str],
    ) -> str:
        used = set(bound)
        imported: set[str] = set()
        ordered = sorted(
            requires, key=lambda require: len(require.namespace), reverse=True
        )
        for require in ordered:
            target = self._graph.provider_of(require.namespace)
            if target is None:
                if require.kind.is_lenient:
                    continue
                raise UnresolvedDependencyError([require.namespace])

            binding = require.binding
            if target == path or (
                require.namespace in imported
                and not isinstance(binding, (AliasBinding, MemberBinding))
            ):
                if require.matched_text:
                    text = _remove_statement(text, require.matched_text)
                continue

            specifier = import_path(path, target)
            if isinstance(binding, MemberBinding):
                fragments = ", ".join(
                    member.import_fragment() for member in binding.members
                )
                statement = f"import {{{fragments}}} from '{specifier}';"
                used.update(member.internal for member in binding.members)
            else:
                if isinstance(binding, AliasBinding):
                    alias = binding.alias
                else:
                    alias = allocate_alias(
                        require.namespace,
                        used | self._reserved,
                        text,
                        max_attempts=self._settings.max_alias_attempts,
                    )
                text = replace_qualified(text, require.namespace, alias)
                used.add(alias)
                statement = self._import_statement(
                    require.namespace, alias, specifier
                )
            imported.add(require.namespace)
            text = self._replace_or_insert(text, require.matched_text, statement)
        return text

    def _import_statement(self, namespace: str, alias: str, specifier: str) -> str:
        provide = self._graph.provide(namespace)
        name = last_segment(namespace)
        if provide is None:
            named = is_class_name(name)
        elif provide.is_module_style:
            named = provide.default_export is not None
            name = provide.default_export or name
        else:
            named = provide.shape is ProvideShape.VALUE

        if not named:
            return f"import * as {alias} from '{specifier}';"
        if name == alias:
            return f"import {{{alias}}} from '{specifier}';"
        return f"import {{{name} as {alias}}} from '{specifier}';"

    @staticmethod
    def _replace_or_insert(
        text: str,
        matched_text: str | None,
        statement: str,
    ) -> str:
        if matched_text is None:
            if statement in text:
                return text
            return f"{statement}\n{text}"
        if matched_text not in text:
            return f"{statement}\n{text}"
        head, _, tail = text.partition(matched_text)
        return f"{head}{statement}{_remove_statement(tail, matched_text)}"
