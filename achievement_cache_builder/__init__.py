"""Achievement Cache Builder - Merge trophy/achievement progress from gaming platforms into local caches."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("achievement-cache-builder")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.1.0"
