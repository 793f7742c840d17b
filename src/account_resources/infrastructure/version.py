"""Version management for account-resources.

Provides version information using importlib.metadata with fallback to
pyproject.toml when running from a source checkout.
"""

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path


def get_version() -> str:
    """Get the package version.

    Tries to read from installed package metadata first. Falls back to reading
    from the repository's pyproject.toml in development mode.

    Returns:
        Version string (e.g., "0.1.0")
    """
    try:
        return version("account-resources")
    except PackageNotFoundError:
        pyproject_path = Path(__file__).parents[3] / "pyproject.toml"

        with open(pyproject_path, "rb") as f:
            pyproject_data = tomllib.load(f)

        return pyproject_data["project"]["version"]


__version__ = get_version()
