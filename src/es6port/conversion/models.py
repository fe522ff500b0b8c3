"""Data structures describing declarations and the dependency graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from functools import total_ordering
from pathlib import Path
from typing import Iterable, Iterator

from es6port.conversion.errors import (
    DuplicateProvideError,
    UnresolvedDependencyError,
)

__all__ = [
    "AliasBinding",
    "Binding",
    "DependencyGraph",
    "ExportEntry",
    "MemberBinding",
    "ModuleExport",
    "PlainBinding",
    "ProvideDeclaration",
    "ProvideShape",
    "RequireDeclaration",
    "RequireKind",
]


class RequireKind(StrEnum):
    """How a dependency declaration came to exist."""

    EXPLICIT_REQUIRE = "explicit-require"
    FORWARD_DECLARE = "forward-declare"
    IMPLICIT_STRICT = "implicit-strict"
    IMPLICIT_LENIENT = "implicit-lenient"

    @property
    def is_lenient(self) -> bool:
        return self is RequireKind.IMPLICIT_LENIENT


class ProvideShape(StrEnum):
    """What a provided namespace looks like at its declaration site."""

    VALUE = "value"
    OBJECT = "object"


@total_ordering
@dataclass(frozen=True, slots=True)
class ExportEntry:
    """A name exported from a module, optionally under a different name.

    Entries sort by ``internal`` name so generated export clauses are
    deterministic.

    Example:
        >>> ExportEntry("strings", "string_").fragment()
        'string_ as strings'
        >>> ExportEntry.same("Menu").fragment()
        'Menu'
    """

    external: str
    internal: str

    def __post_init__(self) -> None:
        if not self.external.strip() or not self.internal.strip():
            raise ValueError("Export names must be non-empty.")

    @classmethod
    def same(cls, name: str) -> "ExportEntry":
        return cls(external=name, internal=name)

    def fragment(self) -> str:
        """Return the clause used inside ``export {...}``."""

        if self.external == self.internal:
            return self.internal
        return f"{self.internal} as {self.external}"

    def import_fragment(self) -> str:
        """Return the clause used inside ``import {...}``."""

        if self.external == self.internal:
            return self.internal
        return f"{self.external} as {self.internal}"

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ExportEntry):
            return NotImplemented
        return (self.internal, self.external) < (other.internal, other.external)


@dataclass(frozen=True, slots=True)
class ModuleExport:
    """An ``exports`` statement found in a module-style file.

    For inline exports ``matched_text`` is the ``exports.name =`` prefix; for
    export lists it is the whole ``exports = {...};`` statement.
    """

    entry: ExportEntry
    inline: bool
    matched_text: str


@dataclass(frozen=True, slots=True)
class ProvideDeclaration:
    """A namespace declared by a provide or module header."""

    namespace: str
    is_module_style: bool
    exports: tuple[ModuleExport, ...] = ()
    matched_text: str | None = None
    shape: ProvideShape | None = None
    default_export: str | None = None

    @property
    def export_entries(self) -> tuple[ExportEntry, ...]:
        return tuple(export.entry for export in self.exports)


@dataclass(frozen=True, slots=True)
class PlainBinding:
    """A require whose result is not bound to a local name."""


@dataclass(frozen=True, slots=True)
class AliasBinding:
    """A require bound to a single local alias."""

    alias: str


@dataclass(frozen=True, slots=True)
class MemberBinding:
    """A destructured require importing named members."""

    members: tuple[ExportEntry, ...]


Binding = PlainBinding | AliasBinding | MemberBinding


@dataclass(frozen=True, slots=True)
class RequireDeclaration:
    """A dependency of one file on a namespace."""

    namespace: str
    kind: RequireKind
    binding: Binding = field(default_factory=PlainBinding)
    matched_text: str | None = None

    @classmethod
    def implicit(
        cls,
        namespace: str,
        *,
        lenient: bool = False,
    ) -> "RequireDeclaration":
        kind = (
            RequireKind.IMPLICIT_LENIENT if lenient else RequireKind.IMPLICIT_STRICT
        )
        return cls(namespace=namespace, kind=kind)


@dataclass(slots=True)
class DependencyGraph:
    """Namespace ownership and per-file dependencies of one reader run.

    Example:
        >>> from pathlib import Path
        >>> graph = DependencyGraph()
        >>> graph.add_file(
        ...     Path("a.js"),
        ...     [ProvideDeclaration("a.A", is_module_style=False)],
        ...     [],
        ... )
        >>> graph.provider_of("a.A")
        PosixPath('a.js')
    """

    files_by_namespace: dict[str, Path] = field(default_factory=dict)
    provides_by_file: dict[Path, list[ProvideDeclaration]] = field(
        default_factory=dict
    )
    requires_by_file: dict[Path, list[RequireDeclaration]] = field(
        default_factory=dict
    )

    def add_file(
        self,
        path: Path,
        provides: Iterable[ProvideDeclaration],
        requires: Iterable[RequireDeclaration],
    ) -> None:
        """Register a file's declarations.

        Raises:
            DuplicateProvideError: If a namespace already has a provider.
        """

        provided = list(provides)
        for provide in provided:
            owner = self.files_by_namespace.get(provide.namespace)
            if owner is not None:
                raise DuplicateProvideError(provide.namespace, owner, path)
            self.files_by_namespace[provide.namespace] = path
        self.provides_by_file.setdefault(path, []).extend(provided)
        self.requires_by_file.setdefault(path, []).extend(requires)

    def provider_of(self, namespace: str) -> Path | None:
        return self.files_by_namespace.get(namespace)

    def provides_of(self, path: Path) -> list[ProvideDeclaration]:
        return self.provides_by_file.get(path, [])

    def requires_of(self, path: Path) -> list[RequireDeclaration]:
        return self.requires_by_file.get(path, [])

    def provide(self, namespace: str) -> ProvideDeclaration | None:
        """Return the declaration of ``namespace`` if any file provides it."""

        path = self.provider_of(namespace)
        if path is None:
            return None
        for provide in self.provides_of(path):
            if provide.namespace == namespace:
                return provide
        return None

    def iter_files(self) -> Iterator[Path]:
        return iter(self.provides_by_file)

    def unresolved(self) -> list[str]:
        """Return non-lenient required namespaces that have no provider."""

        missing: set[str] = set()
        for requires in self.requires_by_file.values():
            for require in requires:
                if require.kind.is_lenient:
                    continue
                if require.namespace not in self.files_by_namespace:
                    missing.add(require.namespace)
        return sorted(missing)

    def validate(self) -> None:
        """Check that every strict dependency resolves.

        Raises:
            UnresolvedDependencyError: Listing every unresolved namespace.
        """

        missing = self.unresolved()
        if missing:
            raise UnresolvedDependencyError(missing)

    def __len__(self) -> int:
        return len(self.provides_by_file)
