"""Filesystem-backed document storage."""

from __future__ import annotations

import logging
import re
import uuid
from pathlib import Path
from typing import BinaryIO

from src.exceptions import NotFoundException
from src.modules.storage.base import DocumentStorageBase

logger = logging.getLogger(__name__)

LOCATOR_PREFIX = "/uploads/"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class LocalDocumentStorage(DocumentStorageBase):
    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def store(self, data: bytes, suggested_name: str) -> str:
        file_name = f"{uuid.uuid4().hex}_{self._safe_name(suggested_name)}"
        (self.root / file_name).write_bytes(data)
        logger.info("Stored document %s (%d bytes)", file_name, len(data))
        return f"{LOCATOR_PREFIX}{file_name}"

    def exists(self, locator: str) -> bool:
        path = self._resolve(locator)
        return path is not None and path.is_file()

    def open_for_read(self, locator: str) -> BinaryIO:
        path = self._resolve(locator)
        if path is None or not path.is_file():
            raise NotFoundException(f"Document {locator} not found in storage")
        return path.open("rb")

    def _resolve(self, locator: str) -> Path | None:
        """Map a locator back to a file under root; None for foreign locators."""
        if not locator.startswith(LOCATOR_PREFIX):
            return None
        name = locator[len(LOCATOR_PREFIX):]
        if not name or "/" in name or name in {".", ".."}:
            return None
        return self.root / name

    @staticmethod
    def _safe_name(name: str) -> str:
        cleaned = _UNSAFE_CHARS.sub("_", Path(name).name).strip("._")
        return cleaned[:120] or "document"
