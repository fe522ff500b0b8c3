"""Top-level package for :mod:`es6port`.

The package converts namespace-based legacy JavaScript (``goog.provide``,
``goog.require`` and prototype pseudo-classes) into ES6 modules and classes.

Example:
    >>> from es6port import __version__
    >>> __version__.split(".")[0]
    '0'
"""

from importlib import metadata

try:
    __version__ = metadata.version("es6port")
except metadata.PackageNotFoundError:  # pragma: no cover - fallback for editable installs
    __version__ = "0.0.0"

__all__ = ["__version__"]
