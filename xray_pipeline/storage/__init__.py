"""Storage abstraction for xray-pipeline."""

from .interface import HostStore
from .local import LocalHostStore

__all__ = ["HostStore", "LocalHostStore"]
