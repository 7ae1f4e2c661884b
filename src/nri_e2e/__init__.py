"""nri-e2e - End-to-end test harness for New Relic infrastructure integrations."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("nri-e2e")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"  # Fallback for editable installs without metadata

from .main import main

__all__ = ["main", "__version__"]
