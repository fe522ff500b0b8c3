"""Tests for the :mod:`es6port.__main__` entrypoint."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from es6port.__main__ import main


def test_main_invokes_cli(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    target = tmp_path / "project"

    monkeypatch.setattr(
        sys,
        "argv",
        ["es6port", "init", "--dir", str(target), "--log-level", "warning"],
    )

    configured: dict[str, object] = {}

    def fake_configure_logging(
        *, level: str, log_dir: Path | None = None, console=None
    ) -> None:
        configured["level"] = level
        configured["log_dir"] = log_dir

    monkeypatch.setattr("es6port.cli.configure_logging", fake_configure_logging)

    with pytest.raises(SystemExit) as exc:
        main()

    assert exc.value.code == 0

    assert (target / "es6port.toml").is_file()
    assert configured["level"] == "WARNING"
    assert configured["log_dir"] is None
