"""Tests for :mod:`es6port.core.config`."""

from __future__ import annotations

from pathlib import Path
import tomllib

import pytest
from pydantic import ValidationError

from es6port.core.config import (
    AppConfig,
    PatchRule,
    PatchSettings,
    ReaderSettings,
    VerifySettings,
    load_config,
    load_packaged_defaults,
    load_user_config,
    read_packaged_defaults_text,
    render_user_config,
)


def _write(path: Path, contents: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(contents, encoding="utf-8")


def test_packaged_defaults_load() -> None:
    defaults = load_packaged_defaults()

    assert read_packaged_defaults_text().startswith("#")
    config = load_config(defaults=defaults)

    assert config.log_level == "INFO"
    assert config.rewrite.root_namespace == "goog"
    assert config.reader.extensions == (".js",)
    assert config.reader.test_patterns == ("*_test.js",)
    assert "testing/" in config.reader.exclude_patterns
    menu_group = config.cycle_groups["closure/goog/ui/menu.js"]
    assert "closure/goog/ui/menu.js" in menu_group
    assert config.input_dir is None
    assert not config.verify.enabled


def test_user_cycle_groups_replace_packaged_groups() -> None:
    defaults = load_packaged_defaults()
    user = {"cycle_groups": {"lib/pair.js": ["lib/a.js", "lib/b.js"]}}

    config = load_config(defaults=defaults, user_config=user)

    assert config.cycle_groups == {"lib/pair.js": ("lib/a.js", "lib/b.js")}


def test_nested_tables_merge_with_precedence(tmp_path: Path) -> None:
    defaults = load_packaged_defaults()
    user = {
        "log_level": "warning",
        "reader": {"extensions": ["mjs", ".JS", ".mjs"]},
        "rewrite": {"max_alias_attempts": 8},
    }
    cli = {"log_level": "debug", "output_dir": str(tmp_path / "out")}

    config = load_config(
        defaults=defaults, user_config=user, cli_overrides=cli
    )

    assert config.log_level == "DEBUG"
    assert config.output_dir == tmp_path / "out"
    assert config.reader.extensions == (".mjs", ".js")
    assert config.reader.test_only_marker == "goog.setTestOnly("
    assert config.rewrite.max_alias_attempts == 8
    assert config.rewrite.root_namespace == "goog"


def test_load_user_config_resolves_relative_paths(tmp_path: Path) -> None:
    config_path = tmp_path / "project" / "es6port.toml"
    _write(
        config_path,
        'input_dir = "closure"\n'
        'output_dir = "build/es6"\n'
        "[selection]\n"
        'required_namespaces_file = "namespaces.txt"\n',
    )

    data = load_user_config(config_path)
    config = load_config(defaults=load_packaged_defaults(), user_config=data)

    base = tmp_path / "project"
    assert config.input_dir == base / "closure"
    assert config.output_dir == base / "build" / "es6"
    assert config.selection.required_namespaces_file == base / "namespaces.txt"


def test_render_user_config_round_trips(tmp_path: Path) -> None:
    config = AppConfig(
        input_dir=tmp_path / "src",
        output_dir=tmp_path / "out",
        cycle_groups={"lib/pair.js": ["lib/a.js", "lib/b.js"]},
        patches=PatchSettings(
            source=(
                PatchRule(
                    file="lib/a.js",
                    search=r"x(\d)",
                    replace=r"y\1",
                    regex=True,
                ),
            ),
            declaration=(PatchRule(file="lib/a", search="any", strict=True),),
        ),
        verify=VerifySettings(command=("tsc", "-p", "{output}")),
    )

    rendered = render_user_config(config)
    assert rendered.startswith("# Generated by es6port init")

    reloaded = load_config(defaults={}, user_config=tomllib.loads(rendered))

    assert reloaded.input_dir == config.input_dir
    assert reloaded.output_dir == config.output_dir
    assert reloaded.reader == config.reader
    assert reloaded.rewrite == config.rewrite
    assert reloaded.cycle_groups == config.cycle_groups
    assert reloaded.patches == config.patches
    assert reloaded.verify.command == ("tsc", "-p", "{output}")


def test_render_without_commentary() -> None:
    rendered = render_user_config(AppConfig(), include_defaults=False)

    assert "Generated by" not in rendered
    data = tomllib.loads(rendered)
    assert "input_dir" not in data
    assert data["patches"] == {}


def test_patch_rule_normalizes_file_suffix() -> None:
    rule = PatchRule(file="\\lib\\a.js ", search="x")

    assert rule.file == "lib/a.js"
    assert rule.replace == ""
    assert not rule.regex

    with pytest.raises(ValidationError):
        PatchRule(file="  ", search="x")


def test_cycle_groups_reject_empty_members() -> None:
    with pytest.raises(ValidationError):
        AppConfig(cycle_groups={"lib/pair.js": ["", " "]})

    with pytest.raises(ValidationError):
        AppConfig(cycle_groups={" ": ["lib/a.js"]})


def test_reader_settings_require_an_extension() -> None:
    with pytest.raises(ValidationError):
        ReaderSettings(extensions=(" ",))

    settings = ReaderSettings(exclude_patterns=("a/", " a/ ", ""))
    assert settings.exclude_patterns == ("a/",)
