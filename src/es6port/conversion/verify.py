"""Optional external verification of a converted tree."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import subprocess
from typing import Sequence

from es6port.conversion.errors import VerificationError
from es6port.core.logging import get_logger

__all__ = ["VerificationResult", "build_command", "run_verification"]

OUTPUT_PLACEHOLDER = "{output}"


@dataclass(frozen=True, slots=True)
class VerificationResult:
    command: tuple[str, ...]
    returncode: int
    output: str

    @property
    def passed(self) -> bool:
        return self.returncode == 0


def build_command(command: Sequence[str], output_root: Path) -> list[str]:
    """Substitute the output root into ``command``.

    Example:
        >>> build_command(["tsc", "-p", "{output}/tsconfig.json"], Path("/o"))
        ['tsc', '-p', '/o/tsconfig.json']
    """

    return [
        part.replace(OUTPUT_PLACEHOLDER, str(output_root)) for part in command
    ]


def run_verification(
    command: Sequence[str],
    output_root: Path,
    *,
    timeout: float | None = None,
) -> VerificationResult:
    """Run ``command`` against ``output_root`` and require it to succeed.

    Raises:
        VerificationError: If the command is missing, times out or exits with
            a non-zero status. The captured output is attached.
    """

    logger = get_logger(__name__, stage="verify")
    argv = build_command(command, output_root)
    logger.info("verify-start", command=argv)
    try:
        completed = subprocess.run(
            argv,
            cwd=output_root,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired) as exc:
        raise VerificationError(
            f"Verification command could not run: {exc}"
        ) from exc

    output = (completed.stdout or "") + (completed.stderr or "")
    result = VerificationResult(
        command=tuple(argv),
        returncode=completed.returncode,
        output=output,
    )
    if not result.passed:
        logger.error("verify-failed", returncode=completed.returncode)
        raise VerificationError(
            f"Verification failed with exit code {completed.returncode}",
            output=output,
        )
    logger.info("verify-passed")
    return result
