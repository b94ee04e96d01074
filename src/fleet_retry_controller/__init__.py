"""
Fleet Retry Controller - Fleet policy remediation retry tool.

This package walks a Fleet server's teams, policies and failing hosts and
re-triggers each policy's automation (script run or software install),
with a persistent retry cache and backoff so hosts are not hammered.
"""

import importlib.metadata
from pathlib import Path

# Defaults
__version__ = "unknown"
__license__ = "MIT"


def _read_pyproject_toml():
    """Read and parse pyproject.toml file."""
    try:
        import tomllib  # Python 3.11+
    except ModuleNotFoundError:
        return None

    pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject_path.exists():
        with open(pyproject_path, "rb") as f:
            return tomllib.load(f)
    return None


# Try to get version from installed package metadata
try:
    __version__ = importlib.metadata.version("fleet-retry-controller")
except importlib.metadata.PackageNotFoundError:
    # Fallback: read from pyproject.toml
    pyproject_data = _read_pyproject_toml()
    if pyproject_data:
        __version__ = pyproject_data.get("project", {}).get("version", __version__)

__all__ = ['__version__', '__license__']
