"""Tests for :mod:`es6port.conversion.cycles`."""

from __future__ import annotations

from pathlib import Path

from es6port.conversion.cycles import CycleBreaker, merge_contents
from es6port.conversion.reader import extract_provides, extract_requires

FIRST = (
    "goog.provide('a.A');\n\n"
    "goog.require('x.X');\n"
    "const B = goog.require('b.B');\n\n"
    "a.A = function() {\n  return new B();\n};\n"
)
SECOND = (
    "goog.provide('b.B');\n\n"
    "goog.require('x.X');\n"
    "goog.require('a.A');\n\n"
    "b.B = function() {};\n"
)


def _write(path: Path, contents: str = "") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(contents, encoding="utf-8")


def test_merge_contents_drops_requires_between_members() -> None:
    merged = merge_contents([FIRST, SECOND])

    namespaces = [require.namespace for require in extract_requires(merged)]
    assert namespaces == ["x.X"]
    assert "const B" not in merged
    assert "return new b.B();" in merged
    assert merged.index("a.A = function") < merged.index("b.B = function")
    assert [p.namespace for p in extract_provides(merged)] == ["a.A", "b.B"]


def test_merge_contents_honours_member_bindings() -> None:
    first = (
        "goog.module('m.one');\n\n"
        "const {helper} = goog.require('m.two');\n\n"
        "exports.run = () => helper();\n"
    )
    second = "goog.module('m.two');\n\nexports.helper = () => 1;\n"

    merged = merge_contents([first, second])

    assert "goog.require" not in merged
    assert "exports.run = () => m.two.helper();" in merged


def test_cycle_breaker_merges_into_target(tmp_path: Path) -> None:
    output = tmp_path / "out"
    _write(output / "g" / "a.js", FIRST)
    _write(output / "g" / "b.js", SECOND)
    _write(output / "g" / "other.js", "goog.provide('o.O');\n")

    breaker = CycleBreaker(
        {"g/a.js": ["g/a.js", "g/b.js", "g/missing.js"]},
    )
    (result,) = breaker.run(output)

    target = output / "g" / "a.js"
    assert result.target == target
    assert result.merged == (output / "g" / "a.js", output / "g" / "b.js")
    assert result.missing == (output / "g" / "missing.js",)
    assert target.exists()
    assert not (output / "g" / "b.js").exists()
    assert (output / "g" / "other.js").exists()

    text = target.read_text(encoding="utf-8")
    provided = {p.namespace for p in extract_provides(text)}
    assert provided == {"a.A", "b.B"}
    assert not [
        require
        for require in extract_requires(text)
        if require.namespace in provided
    ]


def test_cycle_breaker_skips_groups_without_files(tmp_path: Path) -> None:
    output = tmp_path / "out"
    output.mkdir()

    breaker = CycleBreaker({"g/x.js": ["g/x.js", "g/y.js"]})

    assert breaker.run(output) == []
    assert not (output / "g" / "x.js").exists()


def test_cycle_breaker_uses_configured_root(tmp_path: Path) -> None:
    output = tmp_path / "out"
    _write(output / "a.js", "lib.provide('a.A');\nlib.require('b.B');\n")
    _write(output / "b.js", "lib.provide('b.B');\nlib.require('a.A');\n")

    CycleBreaker({"ab.js": ["a.js", "b.js"]}, root_namespace="lib").run(output)

    merged = (output / "ab.js").read_text(encoding="utf-8")
    assert "lib.require" not in merged
    assert merged.count("lib.provide") == 2
