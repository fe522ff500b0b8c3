"""Tests for :mod:`es6port.conversion.verify`."""

from __future__ import annotations

from pathlib import Path
import sys

import pytest

from es6port.conversion.errors import VerificationError
from es6port.conversion.verify import build_command, run_verification


def test_build_command_substitutes_output_root() -> None:
    assert build_command(["tsc", "--outDir={output}/types"], Path("/o")) == [
        "tsc",
        "--outDir=/o/types",
    ]


def test_run_verification_reports_success(tmp_path: Path) -> None:
    command = [sys.executable, "-c", "import sys; print(sys.argv[1])", "{output}"]

    result = run_verification(command, tmp_path)

    assert result.passed
    assert result.returncode == 0
    assert result.output.strip() == str(tmp_path)
    assert result.command[-1] == str(tmp_path)


def test_run_verification_failure_carries_output(tmp_path: Path) -> None:
    command = [
        sys.executable,
        "-c",
        "import sys; print('type error'); sys.exit(3)",
    ]

    with pytest.raises(VerificationError) as exc:
        run_verification(command, tmp_path)

    assert "exit code 3" in str(exc.value)
    assert "type error" in exc.value.output


def test_run_verification_missing_command(tmp_path: Path) -> None:
    with pytest.raises(VerificationError):
        run_verification(["es6port-no-such-command"], tmp_path)
