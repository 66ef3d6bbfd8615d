"""redis-tics - inspector and analytics core for Redis and Valkey servers."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("redis-tics")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"  # Fallback for development without install
