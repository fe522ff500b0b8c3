"""Tests for :mod:`es6port.conversion.reader`."""

from __future__ import annotations

from pathlib import Path

import pytest

from es6port.conversion.errors import (
    AmbiguousExportListError,
    DuplicateProvideError,
    MissingModuleExportsError,
    ScannerOverrunError,
    UnsupportedDestructuredImportError,
)
from es6port.conversion.models import (
    AliasBinding,
    ExportEntry,
    MemberBinding,
    PlainBinding,
    ProvideShape,
    RequireKind,
)
from es6port.conversion.reader import (
    SourceReader,
    classify_shape,
    extract_module_exports,
    extract_provides,
    extract_requires,
    infer_lenient_requires,
    read_source,
)
from es6port.core.config import ReaderSettings


def _write(path: Path, contents: str = "") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(contents, encoding="utf-8")


def test_extract_provides_records_shape_and_header() -> None:
    text = (
        "goog.provide('a.b.C');\n"
        "goog.provide('a.util');\n\n"
        "a.b.C = function() {};\n"
        "a.util.max = function(x) { return x; };\n"
    )

    provides = extract_provides(text)

    assert [p.namespace for p in provides] == ["a.b.C", "a.util"]
    assert [p.shape for p in provides] == [
        ProvideShape.VALUE,
        ProvideShape.OBJECT,
    ]
    assert provides[0].matched_text == "goog.provide('a.b.C');"
    assert not provides[0].is_module_style


def test_classify_shape_treats_bare_declarations_as_values() -> None:
    assert classify_shape("/** @typedef {string} */\na.Id;", "a.Id") is (
        ProvideShape.VALUE
    )
    assert classify_shape("a.Id.x = 1;", "a.Id") is ProvideShape.OBJECT
    assert classify_shape("if (a.Id == 1) {}", "a.Id") is ProvideShape.OBJECT


def test_extract_provides_for_module_files() -> None:
    text = (
        "goog.module('m.mod');\n\n"
        "const make = () => 1;\n"
        "exports = {\n  // factory\n  make,\n  /* alias */ build: make,\n};\n"
    )

    (module,) = extract_provides(text)

    assert module.is_module_style
    assert module.default_export is None
    assert [e.fragment() for e in module.export_entries] == [
        "make",
        "make as build",
    ]
    assert module.exports[0].matched_text.startswith("exports = {")
    assert module.exports[0].matched_text.endswith("};")


def test_module_export_list_ignores_braces_in_comments() -> None:
    text = (
        "goog.module('m.pair');\n"
        "const a = 1, b = 2;\n"
        "exports = {\n  a,  // legacy alias }\n  b,\n};\n"
    )

    exports = extract_module_exports(text)

    assert [e.entry.internal for e in exports] == ["a", "b"]
    assert exports[0].matched_text == (
        "exports = {\n  a,  // legacy alias }\n  b,\n};"
    )


def test_unterminated_module_export_list_raises() -> None:
    with pytest.raises(ScannerOverrunError):
        extract_module_exports("exports = {\n  a,\n  b,\n")


def test_module_default_export_and_inline_exports() -> None:
    text = "goog.module('m.Widget');\n\nclass Widget {}\n\nexports = Widget;\n"
    (module,) = extract_provides(text)
    assert module.default_export == "Widget"
    assert module.export_entries == (ExportEntry.same("Widget"),)

    inline = extract_module_exports("exports.a = 1;\nexports.b = exports.a;\n")
    assert [e.entry.internal for e in inline] == ["a", "b"]
    assert all(e.inline for e in inline)


def test_module_without_exports_is_rejected() -> None:
    with pytest.raises(MissingModuleExportsError):
        extract_provides("goog.module('m.empty');\n\nconst x = 1;\n")


def test_module_export_list_with_expressions_is_ambiguous() -> None:
    with pytest.raises(AmbiguousExportListError):
        extract_module_exports("exports = {a: b.c};\n")


def test_extract_requires_classifies_bindings() -> None:
    text = (
        "goog.require('a.B');\n"
        "const C = goog.require('c.C');\n"
        "const {d} = goog.require('x.y');\n"
        "let {e: f} = goog.requireType('x.z');\n"
        "goog.forwardDeclare('f.G');\n"
    )

    requires = extract_requires(text)

    assert [r.namespace for r in requires] == ["a.B", "c.C", "x.y", "x.z", "f.G"]
    assert [r.kind for r in requires] == [
        RequireKind.EXPLICIT_REQUIRE,
        RequireKind.EXPLICIT_REQUIRE,
        RequireKind.EXPLICIT_REQUIRE,
        RequireKind.EXPLICIT_REQUIRE,
        RequireKind.FORWARD_DECLARE,
    ]
    assert requires[0].binding == PlainBinding()
    assert requires[1].binding == AliasBinding("C")
    assert requires[2].binding == MemberBinding((ExportEntry.same("d"),))
    assert requires[3].binding == MemberBinding(
        (ExportEntry(external="e", internal="f"),)
    )
    assert requires[1].matched_text == "const C = goog.require('c.C');"


def test_extract_requires_rejects_multiple_members() -> None:
    with pytest.raises(UnsupportedDestructuredImportError):
        extract_requires("const {a, b} = goog.require('x.y');\n")


def test_extract_requires_honours_root_namespace() -> None:
    text = "lib.require('a.B');\ngoog.require('c.D');\n"

    assert [r.namespace for r in extract_requires(text, root="lib")] == ["a.B"]


def test_infer_lenient_requires_from_doc_types() -> None:
    text = (
        "/**\n * @param {!a.b.C} c\n * @return {d.E|undefined}\n */\n"
        "function f(c) {}\n"
        "/** @type {d.E} */\nvar x;\n"
    )

    inferred = infer_lenient_requires(text, known={"a.b.C"})

    assert [r.namespace for r in inferred] == ["d.E"]
    assert inferred[0].kind is RequireKind.IMPLICIT_LENIENT


def test_read_source_strips_byte_order_mark(tmp_path: Path) -> None:
    path = tmp_path / "bom.js"
    path.write_text("\ufeffgoog.provide('a');\n", encoding="utf-8")

    assert read_source(path) == "goog.provide('a');\n"


def _sample_tree(root: Path) -> None:
    _write(
        root / "a" / "c.js",
        "goog.provide('a.C');\n\n"
        "goog.require('b.D');\n\n"
        "/** @param {x.Y} y */\n"
        "a.C = function(y) {};\n",
    )
    _write(root / "b" / "d.js", "goog.provide('b.D');\n\nb.D = 1;\n")
    _write(
        root / "a" / "c_test.js",
        "goog.provide('a.CTest');\ngoog.setTestOnly('a.CTest');\n",
    )
    _write(root / "testing" / "helper.js", "goog.provide('t.Helper');\n")
    _write(root / "plain.js", "var x = 1;\n")
    _write(root / "notes.txt", "goog.provide('not.Source');\n")


def test_read_tree_indexes_sources(tmp_path: Path) -> None:
    root = tmp_path / "src"
    _sample_tree(root)
    base = root.resolve()

    graph = SourceReader(ReaderSettings()).read_tree(root)

    assert set(graph.files_by_namespace) == {"a.C", "b.D"}
    assert graph.provider_of("b.D") == base / "b" / "d.js"

    requires = graph.requires_of(base / "a" / "c.js")
    assert [(r.namespace, r.kind) for r in requires] == [
        ("b.D", RequireKind.EXPLICIT_REQUIRE),
        ("x.Y", RequireKind.IMPLICIT_LENIENT),
    ]
    graph.validate()


def test_read_tree_includes_tests_when_requested(tmp_path: Path) -> None:
    root = tmp_path / "src"
    _sample_tree(root)

    reader = SourceReader(ReaderSettings(), include_tests=True)
    graph = reader.read_tree(root)

    assert graph.provider_of("a.CTest") == root.resolve() / "a" / "c_test.js"
    assert graph.provider_of("t.Helper") is None


def test_test_only_marker_skips_files(tmp_path: Path) -> None:
    root = tmp_path / "src"
    _write(root / "t.js", "goog.provide('a.T');\ngoog.setTestOnly();\n")

    graph = SourceReader().read_tree(root)

    assert len(graph) == 0


def test_duplicate_provides_across_files_fail(tmp_path: Path) -> None:
    root = tmp_path / "src"
    _write(root / "a.js", "goog.provide('x.Y');\nx.Y = 1;\n")
    _write(root / "b.js", "goog.provide('x.Y');\nx.Y = 2;\n")

    with pytest.raises(DuplicateProvideError):
        SourceReader().read_tree(root)


def test_implicit_strict_requires(tmp_path: Path) -> None:
    root = tmp_path / "src"
    _write(root / "base.js", "goog.provide('goog');\ngoog.x = 1;\n")
    _write(
        root / "a.js",
        "goog.provide('a.A');\n\na.A = function(x) {\n  goog.dispose(x);\n};\n",
    )
    settings = ReaderSettings(implicit_root_require=True)

    graph = SourceReader(settings).read_tree(root)
    base = root.resolve()

    requires = graph.requires_of(base / "a.js")
    assert [(r.namespace, r.kind) for r in requires] == [
        ("goog.dispose", RequireKind.IMPLICIT_STRICT),
        ("goog", RequireKind.IMPLICIT_STRICT),
    ]
    assert requires[1].binding == AliasBinding("goog")
    assert graph.requires_of(base / "base.js") == []


def test_iter_paths_is_sorted_and_filtered(tmp_path: Path) -> None:
    root = tmp_path / "src"
    _sample_tree(root)

    paths = [
        path.relative_to(root.resolve()).as_posix()
        for path in SourceReader().iter_paths(root)
    ]

    assert paths == ["a/c.js", "b/d.js", "plain.js"]
