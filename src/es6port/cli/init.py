"""Helpers for the ``es6port init`` command."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from es6port.core.config import (
    AppConfig,
    DEFAULTS_RESOURCE_NAME,
    USER_CONFIG_FILENAME,
    load_config,
    load_packaged_defaults,
    read_packaged_defaults_text,
    render_user_config,
)


@dataclass(frozen=True, slots=True)
class InitResult:
    """Files produced by :func:`init_project`."""

    config: AppConfig
    config_path: Path
    defaults_path: Path
    written: bool


def init_project(
    *,
    directory: Path,
    input_dir: Path | None = None,
    output_dir: Path | None = None,
    log_level: str | None = None,
    force: bool = False,
) -> InitResult:
    """Seed ``directory`` with a starter ``es6port.toml``.

    Existing files are left untouched unless ``force`` is set. A copy of the
    packaged defaults is written next to the config for reference.

    Example:
        >>> import tempfile
        >>> with tempfile.TemporaryDirectory() as tmp:
        ...     result = init_project(directory=Path(tmp))
        ...     result.config_path.name, result.written
        ('es6port.toml', True)
    """

    directory.mkdir(parents=True, exist_ok=True)

    cli_overrides: dict[str, object] = {}
    if input_dir is not None:
        cli_overrides["input_dir"] = str(input_dir)
    if output_dir is not None:
        cli_overrides["output_dir"] = str(output_dir)
    if log_level:
        cli_overrides["log_level"] = log_level

    config = load_config(
        defaults=load_packaged_defaults(),
        cli_overrides=cli_overrides,
    )

    config_path = directory / USER_CONFIG_FILENAME
    defaults_path = directory / DEFAULTS_RESOURCE_NAME
    written = force or not config_path.exists()
    if written:
        config_path.write_text(render_user_config(config), encoding="utf-8")
    if force or not defaults_path.exists():
        defaults_path.write_text(
            read_packaged_defaults_text(), encoding="utf-8"
        )

    return InitResult(
        config=config,
        config_path=config_path,
        defaults_path=defaults_path,
        written=written,
    )


__all__ = ["InitResult", "init_project"]
