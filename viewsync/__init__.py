# =============================================================================
# viewsync Main Package - Dynamic Version Loading
# =============================================================================
"""
viewsync - derived chat and rating views kept consistent with ground truth

Version is loaded from installed package metadata, with pyproject.toml as
fallback when running from a source checkout.
"""

from __future__ import annotations

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path


def _get_version() -> str:
    """
    Get package version from installed metadata.

    Falls back to reading pyproject.toml if the package is not installed.

    Returns:
        Version string (e.g., "0.3.0")
    """
    try:
        return version("viewsync")
    except PackageNotFoundError:
        pass

    pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
    if pyproject_path.exists():
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
            return data["project"]["version"]

    return "0.1.0-unknown"


__version__: str = _get_version()
__description__: str = "viewsync - reconciliation of denormalized chat and rating views"

__all__ = [
    "__version__",
    "__description__",
]
