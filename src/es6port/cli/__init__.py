"""Command-line interface primitives for :mod:`es6port`.

This module exposes the Typer application behind the ``es6port`` console
script and wires its commands into the conversion service.

Example:
    >>> import typer
    >>> from es6port.cli import create_app
    >>> app = create_app()
    >>> isinstance(app, typer.Typer)
    True
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, NoReturn

import typer

from es6port.cli.init import init_project
from es6port.conversion.errors import ConversionError, VerificationError
from es6port.conversion.service import ConversionReport, ConversionService
from es6port.core.config import (
    AppConfig,
    DEFAULTS_RESOURCE_NAME,
    USER_CONFIG_FILENAME,
    load_config,
    load_packaged_defaults,
    load_user_config,
)
from es6port.core.logging import configure_logging, get_logger

_app_help = (
    "Convert goog.provide/goog.module JavaScript into ES6 modules and classes."
    "\n\n"
    "Use `es6port init` to create an `es6port.toml` next to your sources."
)


def _fail(message: str, error: BaseException | None = None) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED)
    if error is not None:
        raise typer.Exit(code=1) from error
    raise typer.Exit(code=1)


def load_cli_config(
    *,
    config_path: Path | None,
    input_dir: Path | None = None,
    output_dir: Path | None = None,
    log_level: str | None = None,
    namespaces_file: Path | None = None,
) -> AppConfig:
    """Resolve configuration for a command.

    Uses ``config_path`` when given (it must exist), otherwise an
    ``es6port.toml`` in the working directory when present. CLI values win
    over the file, which wins over the packaged defaults.
    """

    user_config: dict[str, Any] | None = None
    if config_path is not None:
        if not config_path.is_file():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        user_config = load_user_config(config_path)
    else:
        candidate = Path.cwd() / USER_CONFIG_FILENAME
        if candidate.is_file():
            user_config = load_user_config(candidate)

    overrides: dict[str, Any] = {}
    if input_dir is not None:
        overrides["input_dir"] = str(input_dir)
    if output_dir is not None:
        overrides["output_dir"] = str(output_dir)
    if log_level:
        overrides["log_level"] = log_level
    if namespaces_file is not None:
        overrides["selection"] = {
            "required_namespaces_file": str(namespaces_file)
        }

    return load_config(
        defaults=load_packaged_defaults(),
        user_config=user_config,
        cli_overrides=overrides or None,
    )


def _prepare(
    command: str,
    *,
    config_path: Path | None,
    input_dir: Path | None = None,
    output_dir: Path | None = None,
    log_level: str | None = None,
    namespaces_file: Path | None = None,
) -> AppConfig:
    try:
        config = load_cli_config(
            config_path=config_path,
            input_dir=input_dir,
            output_dir=output_dir,
            log_level=log_level,
            namespaces_file=namespaces_file,
        )
    except (OSError, ValueError) as exc:
        _fail(f"Failed to load configuration: {exc}", exc)

    try:
        configure_logging(level=config.log_level, log_dir=config.log_dir)
    except ValueError as exc:
        _fail(f"Invalid logging configuration: {exc}", exc)
    get_logger(__name__, command=command).debug(
        "command-start", input=str(config.input_dir)
    )
    return config


def _display(path: Path, root: Path | None) -> str:
    if root is not None:
        try:
            return path.relative_to(root.resolve()).as_posix()
        except ValueError:
            pass
    return str(path)


def _emit_report(report: ConversionReport) -> None:
    typer.secho("Conversion complete", fg=typer.colors.GREEN, bold=True)
    typer.echo(f"  output: {report.output_dir}")
    if report.selected is not None:
        typer.echo(f"  selected files: {len(report.selected)}")
    typer.echo(f"  merged cycle groups: {len(report.merged)}")
    typer.echo(
        f"  files with converted classes: {len(report.classes_converted)}"
    )
    typer.echo(f"  files rewritten: {len(report.rewritten)}")
    skipped = report.skipped
    if skipped:
        typer.secho(
            f"  files skipped: {len(skipped)}", fg=typer.colors.YELLOW
        )
        for outcome in skipped:
            name = _display(outcome.path, report.output_dir)
            typer.echo(f"    - {name}: {outcome.reason}")
    if report.verification is not None:
        typer.secho("  verification: passed", fg=typer.colors.GREEN)


def create_app() -> "typer.Typer":
    """Return the Typer application powering the ``es6port`` CLI.

    Example:
        >>> import typer
        >>> from es6port.cli import create_app
        >>> cli = create_app()
        >>> isinstance(cli, typer.Typer)
        True

    Returns:
        A configured Typer application ready to be invoked by ``es6port``.
    """

    app = typer.Typer(
        help=_app_help,
        no_args_is_help=True,
        rich_markup_mode="rich",
        invoke_without_command=False,
        cls=typer.core.TyperGroup,
    )

    @app.callback()
    def main_callback() -> None:
        """Top-level CLI callback ensuring subcommands are dispatched."""

        return None

    @app.command(
        "init",
        help="Write a starter es6port.toml (and a copy of the defaults).",
    )
    def init_command(
        directory: Path = typer.Option(
            Path("."),
            "--dir",
            "-d",
            help="Directory receiving es6port.toml.",
        ),
        input_dir: Path | None = typer.Option(
            None,
            "--input",
            "-i",
            help="Root of the legacy source tree to record in the config.",
        ),
        output_dir: Path | None = typer.Option(
            None,
            "--output",
            "-o",
            help="Root of the converted tree to record in the config.",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            "-l",
            help="Logging level to record (DEBUG/INFO/WARNING/ERROR).",
        ),
        force: bool = typer.Option(
            False,
            "--force",
            help="Overwrite an existing es6port.toml.",
        ),
    ) -> None:
        """Create a commented configuration file.

        Example:
            >>> from typer.testing import CliRunner
            >>> runner = CliRunner()
            >>> app = create_app()
            >>> result = runner.invoke(app, ["init", "--help"])
            >>> result.exit_code
            0
        """

        try:
            result = init_project(
                directory=directory,
                input_dir=input_dir,
                output_dir=output_dir,
                log_level=log_level,
                force=force,
            )
            configure_logging(level=result.config.log_level)
        except (OSError, ValueError) as exc:
            _fail(f"Failed to write configuration: {exc}", exc)

        get_logger(__name__, command="init").info(
            "init-complete",
            config=str(result.config_path),
            written=result.written,
        )

        typer.secho("Configuration ready", fg=typer.colors.GREEN, bold=True)
        typer.echo(f"  config: {result.config_path}")
        typer.echo(f"  defaults: {result.defaults_path}")
        typer.echo(f"  packaged resource: {DEFAULTS_RESOURCE_NAME}")
        if not result.written:
            typer.echo(
                "  note: existing config left untouched (use --force)"
            )

    @app.command(
        "select",
        help="Print the files needed by the required namespaces.",
    )
    def select_command(
        config_path: Path | None = typer.Option(
            None,
            "--config",
            "-c",
            help="Path to es6port.toml (defaults to ./es6port.toml).",
        ),
        input_dir: Path | None = typer.Option(
            None,
            "--input",
            "-i",
            help="Override the legacy source root.",
        ),
        namespaces_file: Path | None = typer.Option(
            None,
            "--namespaces",
            "-n",
            help="File listing the required root namespaces, one per line.",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            "-l",
            help="Override the logging level (DEBUG/INFO/WARNING/ERROR).",
        ),
    ) -> None:
        config = _prepare(
            "select",
            config_path=config_path,
            input_dir=input_dir,
            log_level=log_level,
            namespaces_file=namespaces_file,
        )
        service = ConversionService(config)
        try:
            selected = service.select()
        except ConversionError as exc:
            _fail(f"Selection failed: {exc}", exc)

        if selected is None:
            _fail(
                "No required namespaces file configured; pass --namespaces "
                "or set selection.required_namespaces_file."
            )
        for path in selected:
            typer.echo(_display(path, config.input_dir))

    @app.command(
        "convert",
        help="Copy, restructure and rewrite the source tree into ES6.",
    )
    def convert_command(
        config_path: Path | None = typer.Option(
            None,
            "--config",
            "-c",
            help="Path to es6port.toml (defaults to ./es6port.toml).",
        ),
        input_dir: Path | None = typer.Option(
            None,
            "--input",
            "-i",
            help="Override the legacy source root.",
        ),
        output_dir: Path | None = typer.Option(
            None,
            "--output",
            "-o",
            help="Override the output root (cleared before conversion).",
        ),
        namespaces_file: Path | None = typer.Option(
            None,
            "--namespaces",
            "-n",
            help="Only convert what these root namespaces need.",
        ),
        verify: bool = typer.Option(
            True,
            "--verify/--no-verify",
            help="Run the configured verification command afterwards.",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            "-l",
            help="Override the logging level (DEBUG/INFO/WARNING/ERROR).",
        ),
    ) -> None:
        config = _prepare(
            "convert",
            config_path=config_path,
            input_dir=input_dir,
            output_dir=output_dir,
            log_level=log_level,
            namespaces_file=namespaces_file,
        )
        service = ConversionService(config)
        try:
            report = service.run(verify=verify)
        except VerificationError as exc:
            if exc.output:
                typer.echo(exc.output)
            _fail(f"Conversion failed: {exc}", exc)
        except ConversionError as exc:
            _fail(f"Conversion failed: {exc}", exc)
        _emit_report(report)

    @app.command(
        "patch-declarations",
        help="Apply the configured declaration patches to .d.ts files.",
    )
    def patch_declarations_command(
        directory: Path | None = typer.Option(
            None,
            "--dir",
            "-d",
            help="Directory holding the .d.ts files (defaults to output_dir).",
        ),
        config_path: Path | None = typer.Option(
            None,
            "--config",
            "-c",
            help="Path to es6port.toml (defaults to ./es6port.toml).",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            "-l",
            help="Override the logging level (DEBUG/INFO/WARNING/ERROR).",
        ),
    ) -> None:
        config = _prepare(
            "patch-declarations",
            config_path=config_path,
            log_level=log_level,
        )
        service = ConversionService(config)
        try:
            changed = service.patch_declarations(directory)
        except ConversionError as exc:
            _fail(f"Patching declarations failed: {exc}", exc)
        typer.secho(
            f"Patched {len(changed)} declaration file(s)",
            fg=typer.colors.GREEN,
        )

    return app


__all__ = ["create_app", "load_cli_config"]
