"""Abstract base class for bid document storage backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import BinaryIO


class DocumentStorageBase(ABC):
    """Append-only document store.

    Every ``store`` call writes a new object under a freshly generated name,
    so concurrent uploads never overwrite one another.
    """

    @abstractmethod
    def store(self, data: bytes, suggested_name: str) -> str:
        """Persist ``data`` and return an opaque locator for it."""

    @abstractmethod
    def exists(self, locator: str) -> bool:
        """Return True if an object is stored under ``locator``."""

    @abstractmethod
    def open_for_read(self, locator: str) -> BinaryIO:
        """Open the stored object for binary reading."""
