"""Domain-specific exceptions for the conversion pipeline."""

from __future__ import annotations

from typing import Iterable


class ConversionError(RuntimeError):
    """Base error for conversion pipeline failures."""


class DuplicateProvideError(ConversionError):
    """Raised when a namespace is provided by more than one file."""

    def __init__(self, namespace: str, first: object, second: object) -> None:
        self.namespace = namespace
        self.first = first
        self.second = second
        super().__init__(
            f"Namespace {namespace!r} is provided by more than one file: "
            f"{first}, {second}"
        )


class UnresolvedDependencyError(ConversionError):
    """Raised when required namespaces have no providing file."""

    def __init__(self, namespaces: Iterable[str]) -> None:
        self.namespaces = tuple(sorted(set(namespaces)))
        joined = ", ".join(self.namespaces)
        super().__init__(f"Required namespaces could not be found: {joined}")


class AmbiguousExportListError(ConversionError):
    """Raised when a provide-style file yields no inferable exports."""


class UnsupportedDestructuredImportError(ConversionError):
    """Raised when a destructured require names more than one member."""


class ScannerOverrunError(ConversionError):
    """Raised when the scanner reaches end of text without a boundary."""


class MissingModuleExportsError(ConversionError):
    """Raised when a module-style file declares no exports."""


class AliasAllocationError(ConversionError):
    """Raised when alias allocation exceeds its iteration cap."""


class PatchNotAppliedError(ConversionError):
    """Raised when a strict patch finds nothing to replace."""


class VerificationError(ConversionError):
    """Raised when the external verification command fails."""

    def __init__(self, message: str, *, output: str = "") -> None:
        self.output = output
        super().__init__(message)


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
]
