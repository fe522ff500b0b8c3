"""Tests for :mod:`es6port.conversion.models`."""

from __future__ import annotations

from pathlib import Path

import pytest

from es6port.conversion.errors import (
    DuplicateProvideError,
    UnresolvedDependencyError,
)
from es6port.conversion.models import (
    AliasBinding,
    DependencyGraph,
    ExportEntry,
    PlainBinding,
    ProvideDeclaration,
    RequireDeclaration,
    RequireKind,
)


def _provide(namespace: str) -> ProvideDeclaration:
    return ProvideDeclaration(namespace=namespace, is_module_style=False)


def _require(namespace: str) -> RequireDeclaration:
    return RequireDeclaration(namespace, RequireKind.EXPLICIT_REQUIRE)


def test_export_entry_fragments_and_ordering() -> None:
    renamed = ExportEntry(external="strings", internal="string_")

    assert renamed.fragment() == "string_ as strings"
    assert renamed.import_fragment() == "strings as string_"
    assert sorted([ExportEntry.same("b"), renamed, ExportEntry.same("a")]) == [
        ExportEntry.same("a"),
        ExportEntry.same("b"),
        renamed,
    ]


def test_export_entry_rejects_blank_names() -> None:
    with pytest.raises(ValueError):
        ExportEntry(external=" ", internal="x")


def test_require_defaults_and_kinds() -> None:
    plain = _require("a.B")
    lenient = RequireDeclaration.implicit("c.D", lenient=True)
    strict = RequireDeclaration.implicit("goog.dispose")

    assert plain.binding == PlainBinding()
    assert lenient.kind is RequireKind.IMPLICIT_LENIENT
    assert lenient.kind.is_lenient
    assert strict.kind is RequireKind.IMPLICIT_STRICT
    assert not strict.kind.is_lenient


def test_graph_indexes_files_by_namespace() -> None:
    graph = DependencyGraph()
    graph.add_file(
        Path("a.js"),
        [_provide("a.A"), _provide("a.A.Inner")],
        [RequireDeclaration("b.B", RequireKind.EXPLICIT_REQUIRE, AliasBinding("B"))],
    )

    assert len(graph) == 1
    assert graph.provider_of("a.A.Inner") == Path("a.js")
    assert graph.provider_of("missing") is None
    assert graph.provide("a.A") == _provide("a.A")
    assert graph.provide("missing") is None
    assert [r.namespace for r in graph.requires_of(Path("a.js"))] == ["b.B"]
    assert graph.requires_of(Path("other.js")) == []
    assert list(graph.iter_files()) == [Path("a.js")]


def test_graph_rejects_duplicate_provides() -> None:
    graph = DependencyGraph()
    graph.add_file(Path("a.js"), [_provide("x.Y")], [])

    with pytest.raises(DuplicateProvideError) as exc:
        graph.add_file(Path("b.js"), [_provide("x.Y")], [])

    assert exc.value.namespace == "x.Y"
    assert exc.value.first == Path("a.js")
    assert exc.value.second == Path("b.js")


def test_graph_validation_ignores_lenient_requires() -> None:
    graph = DependencyGraph()
    graph.add_file(
        Path("a.js"),
        [_provide("a.A")],
        [
            _require("x.Y"),
            _require("a.A"),
            RequireDeclaration.implicit("z.W", lenient=True),
        ],
    )

    assert graph.unresolved() == ["x.Y"]
    with pytest.raises(UnresolvedDependencyError) as exc:
        graph.validate()
    assert exc.value.namespaces == ("x.Y",)


def test_graph_validation_passes_when_everything_resolves() -> None:
    graph = DependencyGraph()
    graph.add_file(Path("a.js"), [_provide("a.A")], [_require("b.B")])
    graph.add_file(Path("b.js"), [_provide("b.B")], [])

    graph.validate()
