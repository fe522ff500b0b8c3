"""Tests for :mod:`es6port.conversion.aliasing`."""

from __future__ import annotations

import pytest

from es6port.conversion.aliasing import (
    allocate_alias,
    is_qualified_prefix,
    is_shadowed,
)
from es6port.conversion.errors import AliasAllocationError


def test_last_segment_is_used_when_free() -> None:
    assert allocate_alias("goog.dom.TagName", set(), "") == "TagName"
    assert allocate_alias("goog.array", set(), "x = 1;") == "array"


def test_common_words_get_fixed_replacements() -> None:
    assert allocate_alias("goog.string", {"string"}, "") == "strings"
    assert allocate_alias("goog.number", {"number"}, "") == "numbers"


def test_shadowed_class_names_take_outer_segments() -> None:
    text = "var Event = 1;"

    assert allocate_alias("goog.events.Event", set(), text) == "EventsEvent"


def test_forbidden_names_take_outer_segments() -> None:
    assert allocate_alias("a.b.Menu", {"Menu"}, "") == "BMenu"


def test_qualified_prefixes_are_avoided() -> None:
    text = "dom.x = 1;"

    assert allocate_alias("goog.dom", set(), text) == "goog_dom"
    assert allocate_alias("dom", set(), text) == "doms"


def test_allocation_gives_up_after_max_attempts() -> None:
    with pytest.raises(AliasAllocationError):
        allocate_alias("a", {"a", "_a", "__a"}, "", max_attempts=2)


def test_shadow_and_prefix_helpers() -> None:
    assert is_shadowed("let foo = 1;", "foo")
    assert not is_shadowed("let foobar = 1;", "foo")
    assert is_qualified_prefix("return foo.bar;", "foo")
    assert not is_qualified_prefix("return x.foo.bar;", "foo")


def test_allocation_is_deterministic() -> None:
    forbidden = frozenset({"Event", "string"})
    text = "var EventsEvent = 1;\nEvent.x = 2;\n"

    first = allocate_alias("goog.events.Event", forbidden, text)

    assert allocate_alias("goog.events.Event", forbidden, text) == first
    assert first not in forbidden


@pytest.mark.parametrize(
    ("namespace", "forbidden", "text", "expected"),
    [
        ("goog.dom", set(), "dom.x = 1;", "goog_dom"),
        ("dom", set(), "dom.x = 1;", "doms"),
        ("items", set(), "items.x = 1;", "_items"),
        ("a.dom", {"a_dom"}, "dom.x = 1;", "_a_dom"),
        ("goog.ui.Menu", set(), "Menu.x = 1;", "Ui_Menu"),
    ],
)
def test_alias_is_never_a_qualified_prefix(
    namespace: str,
    forbidden: set[str],
    text: str,
    expected: str,
) -> None:
    alias = allocate_alias(namespace, forbidden, text)

    assert alias == expected
    assert alias not in forbidden
    assert not is_qualified_prefix(text, alias)
    assert not is_shadowed(text, alias)
