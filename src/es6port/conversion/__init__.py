"""Conversion pipeline package for :mod:`es6port`."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .errors import (
    AliasAllocationError,
    AmbiguousExportListError,
    ConversionError,
    DuplicateProvideError,
    MissingModuleExportsError,
    PatchNotAppliedError,
    ScannerOverrunError,
    UnresolvedDependencyError,
    UnsupportedDestructuredImportError,
    VerificationError,
)
from .models import (
    AliasBinding,
    DependencyGraph,
    ExportEntry,
    MemberBinding,
    PlainBinding,
    ProvideDeclaration,
    ProvideShape,
    RequireDeclaration,
    RequireKind,
)

if TYPE_CHECKING:  # pragma: no cover - imports only used for typing
    from .classes import ClassConverter
    from .cycles import CycleBreaker
    from .reader import SourceReader
    from .rewriter import NamespaceRewriter
    from .selection import select
    from .service import ConversionReport, ConversionService


__all__ = [
    "AliasAllocationError",
    "AmbiguousExportListError",
    "ConversionError",
    "DuplicateProvideError",
    "MissingModuleExportsError",
    "PatchNotAppliedError",
    "ScannerOverrunError",
    "UnresolvedDependencyError",
    "UnsupportedDestructuredImportError",
    "VerificationError",
    "AliasBinding",
    "DependencyGraph",
    "ExportEntry",
    "MemberBinding",
    "PlainBinding",
    "ProvideDeclaration",
    "ProvideShape",
    "RequireDeclaration",
    "RequireKind",
    "ClassConverter",
    "CycleBreaker",
    "SourceReader",
    "NamespaceRewriter",
    "select",
    "ConversionReport",
    "ConversionService",
]


_LAZY_IMPORTS = {
    "ClassConverter": "classes",
    "CycleBreaker": "cycles",
    "SourceReader": "reader",
    "NamespaceRewriter": "rewriter",
    "select": "selection",
    "ConversionReport": "service",
    "ConversionService": "service",
}


def __getattr__(name: str) -> Any:  # pragma: no cover - trivial delegation
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        raise AttributeError(
            f"module 'es6port.conversion' has no attribute {name!r}"
        )

    module = __import__(f"es6port.conversion.{module_name}", fromlist=[name])
    return getattr(module, name)
