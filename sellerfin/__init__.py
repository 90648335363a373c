"""Seller-financing offer engine.

Formula primitives, data models and default presets live here; the search
and edit engines are in :mod:`core`."""

from importlib import metadata

__all__ = ["__version__"]

try:
    __version__ = metadata.version("sellerfin")
except metadata.PackageNotFoundError:  # pragma: no cover - during local dev
    __version__ = "0.1.0"
