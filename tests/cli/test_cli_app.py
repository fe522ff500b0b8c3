"""Integration tests for the Typer application exposed by :mod:`es6port.cli`."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from pathlib import Path

import pytest
import structlog
from typer.testing import CliRunner

from es6port.cli import create_app, load_cli_config
from es6port.core.config import DEFAULTS_RESOURCE_NAME

TreeBuilder = Callable[[Path, Mapping[str, str]], Path]

SOURCES = {
    "lib/thing.js": (
        "goog.provide('lib.Thing');\n\n"
        "/** @constructor */\n"
        "lib.Thing = function() {\n  this.id = 0;\n};\n"
    ),
    "lib/util.js": (
        "goog.provide('lib.util');\n\n"
        "goog.require('lib.Thing');\n\n"
        "lib.util.make = function() {\n  return new lib.Thing();\n};\n"
    ),
    "other/broken.js": "goog.provide('other.Broken');\nother.Broken = 1;\n",
}


@pytest.fixture()
def runner() -> CliRunner:
    """Return a Typer CLI runner for invoking the application."""

    return CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging(
    monkeypatch: pytest.MonkeyPatch,
) -> Iterator[dict[str, object]]:
    """Keep the CLI from reconfiguring global logging handlers.

    structlog is pointed at the stdlib root logger so that command events
    stay out of the captured stdout.
    """

    configured: dict[str, object] = {}

    def fake_configure_logging(
        *, level: str, log_dir: Path | None = None, console=None
    ) -> None:
        configured["level"] = level
        configured["log_dir"] = log_dir

    monkeypatch.setattr("es6port.cli.configure_logging", fake_configure_logging)
    structlog.configure(
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )
    yield configured
    structlog.reset_defaults()


def test_cli_init_writes_config(
    runner: CliRunner,
    tmp_path: Path,
    quiet_logging: dict[str, object],
) -> None:
    app = create_app()
    result = runner.invoke(
        app,
        ["init", "--dir", str(tmp_path), "--log-level", "warning"],
        catch_exceptions=False,
    )

    assert result.exit_code == 0, result.stdout
    assert "Configuration ready" in result.stdout
    assert (tmp_path / "es6port.toml").is_file()
    assert (tmp_path / DEFAULTS_RESOURCE_NAME).is_file()
    assert quiet_logging["level"] == "WARNING"

    again = runner.invoke(app, ["init", "--dir", str(tmp_path)])
    assert again.exit_code == 0
    assert "existing config left untouched (use --force)" in again.stdout


def test_cli_convert_reports_summary(
    runner: CliRunner,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    source_tree: TreeBuilder,
) -> None:
    monkeypatch.chdir(tmp_path)
    source_tree(tmp_path / "src", SOURCES)

    result = runner.invoke(
        create_app(),
        [
            "convert",
            "--input",
            str(tmp_path / "src"),
            "--output",
            str(tmp_path / "out"),
            "--no-verify",
        ],
        catch_exceptions=False,
    )

    assert result.exit_code == 0, result.stdout
    assert "Conversion complete" in result.stdout
    assert "files rewritten: 3" in result.stdout
    util = (tmp_path / "out" / "lib" / "util.js").read_text(encoding="utf-8")
    assert util.startswith("import {Thing} from './thing.js';\n")
    assert "return new Thing();" in util


def test_cli_convert_failure_exits_non_zero(
    runner: CliRunner,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    source_tree: TreeBuilder,
) -> None:
    monkeypatch.chdir(tmp_path)
    source_tree(
        tmp_path / "src",
        {"a.js": "goog.provide('a.A');\ngoog.require('gone.G');\na.A = 1;\n"},
    )

    result = runner.invoke(
        create_app(),
        ["convert", "-i", str(tmp_path / "src"), "-o", str(tmp_path / "out")],
    )

    assert result.exit_code == 1
    assert "Conversion failed" in result.stdout
    assert "gone.G" in result.stdout


def test_cli_select_uses_working_directory_config(
    runner: CliRunner,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    source_tree: TreeBuilder,
) -> None:
    monkeypatch.chdir(tmp_path)
    source_tree(tmp_path / "src", SOURCES)
    (tmp_path / "namespaces.txt").write_text("lib.util\n", encoding="utf-8")
    (tmp_path / "es6port.toml").write_text(
        'input_dir = "src"\n'
        "[selection]\n"
        'required_namespaces_file = "namespaces.txt"\n',
        encoding="utf-8",
    )

    result = runner.invoke(create_app(), ["select"], catch_exceptions=False)

    assert result.exit_code == 0, result.stdout
    assert result.stdout.split() == ["lib/thing.js", "lib/util.js"]


def test_cli_select_without_namespaces_fails(
    runner: CliRunner,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "src").mkdir()

    result = runner.invoke(create_app(), ["select", "-i", str(tmp_path / "src")])

    assert result.exit_code == 1
    assert "No required namespaces file configured" in result.stdout


def test_cli_reports_missing_config_file(
    runner: CliRunner,
    tmp_path: Path,
) -> None:
    result = runner.invoke(
        create_app(),
        ["convert", "--config", str(tmp_path / "missing.toml")],
    )

    assert result.exit_code == 1
    assert "Failed to load configuration" in result.stdout


def test_cli_patch_declarations(
    runner: CliRunner,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    source_tree: TreeBuilder,
) -> None:
    monkeypatch.chdir(tmp_path)
    source_tree(tmp_path / "out", {"lib/a.d.ts": "export let x: any;\n"})
    (tmp_path / "es6port.toml").write_text(
        'output_dir = "out"\n'
        "[[patches.declaration]]\n"
        'file = "lib/a"\n'
        'search = "any"\n'
        'replace = "unknown"\n',
        encoding="utf-8",
    )

    result = runner.invoke(
        create_app(), ["patch-declarations"], catch_exceptions=False
    )

    assert result.exit_code == 0, result.stdout
    assert "Patched 1 declaration file(s)" in result.stdout
    assert (tmp_path / "out" / "lib" / "a.d.ts").read_text(
        encoding="utf-8"
    ) == "export let x: unknown;\n"


def test_load_cli_config_prefers_flags(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "es6port.toml").write_text(
        'input_dir = "src"\nlog_level = "ERROR"\n', encoding="utf-8"
    )

    from_file = load_cli_config(config_path=None)
    assert from_file.input_dir == tmp_path / "src"
    assert from_file.log_level == "ERROR"

    overridden = load_cli_config(
        config_path=None,
        input_dir=tmp_path / "other",
        log_level="debug",
    )
    assert overridden.input_dir == tmp_path / "other"
    assert overridden.log_level == "DEBUG"
