"""Console-script entry point for :mod:`es6port`."""

from __future__ import annotations

from es6port.cli import create_app


def main() -> None:
    """Execute the CLI application.

    Example:
        >>> from es6port.__main__ import main
        >>> main()  # doctest: +SKIP
    """

    app = create_app()
    app(prog_name="es6port")


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    main()


__all__ = ["main"]
