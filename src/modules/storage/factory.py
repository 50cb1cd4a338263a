"""Build the configured document storage backend."""

from __future__ import annotations

from src.config import settings
from src.modules.storage.base import DocumentStorageBase
from src.modules.storage.local import LocalDocumentStorage

_instance: DocumentStorageBase | None = None


def get_document_storage() -> DocumentStorageBase:
    global _instance
    if _instance is None:
        _instance = LocalDocumentStorage(settings.document_storage_root)
    return _instance
