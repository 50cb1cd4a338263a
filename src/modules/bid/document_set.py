"""The one-document-per-type collection attached to a bid.

The set is an immutable value: ``put`` and ``reset`` return a new set, and the
owning bid persists it by reassigning its ``documents`` column. Nothing is ever
mutated in place.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime

from src.exceptions import ValidationException

DOCUMENT_TYPE_PATTERN = re.compile(r"^[a-z][a-z0-9_]{0,63}$")


def validate_document_type(document_type: str) -> None:
    if not document_type or not DOCUMENT_TYPE_PATTERN.match(document_type):
        raise ValidationException(
            f"Invalid document type '{document_type}'",
            details=[{
                "field": "document_type",
                "message": "Document type must be a lowercase slug such as 'technical_proposal'",
            }],
        )


@dataclass(frozen=True)
class Document:
    document_type: str
    name: str
    locator: str
    size: int | None = None
    uploaded_at: datetime | None = None

    def to_record(self) -> dict:
        return {
            "document_type": self.document_type,
            "name": self.name,
            "locator": self.locator,
            "size": self.size,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }

    @classmethod
    def from_record(cls, record: dict) -> Document:
        uploaded_at = record.get("uploaded_at")
        return cls(
            document_type=record["document_type"],
            name=record["name"],
            locator=record["locator"],
            size=record.get("size"),
            uploaded_at=datetime.fromisoformat(uploaded_at) if uploaded_at else None,
        )


@dataclass(frozen=True)
class DocumentSet:
    documents: tuple[Document, ...] = ()

    @classmethod
    def from_records(cls, records: Iterable[dict] | None) -> DocumentSet:
        return cls(tuple(Document.from_record(record) for record in records or ()))

    def to_records(self) -> list[dict]:
        return [document.to_record() for document in self.documents]

    def __iter__(self) -> Iterator[Document]:
        return iter(self.documents)

    def __len__(self) -> int:
        return len(self.documents)

    @property
    def types(self) -> list[str]:
        return [document.document_type for document in self.documents]

    def get(self, document_type: str) -> Document | None:
        for document in self.documents:
            if document.document_type == document_type:
                return document
        return None

    def put(self, document: Document) -> DocumentSet:
        """Return a new set with ``document`` replacing any of the same type."""
        missing_fields = [
            field
            for field in ("document_type", "name", "locator")
            if not (getattr(document, field) or "").strip()
        ]
        if missing_fields:
            raise ValidationException(
                "Document is missing required fields",
                details=[
                    {"field": field, "message": f"{field} is required"}
                    for field in missing_fields
                ],
            )
        validate_document_type(document.document_type)

        kept = tuple(d for d in self.documents if d.document_type != document.document_type)
        return DocumentSet(kept + (document,))

    def reset(self) -> DocumentSet:
        return DocumentSet()

    def missing(self, required_types: Iterable[str]) -> list[str]:
        """Required types without exactly one document, in the order given."""
        counts: dict[str, int] = {}
        for document in self.documents:
            counts[document.document_type] = counts.get(document.document_type, 0) + 1
        return [doc_type for doc_type in required_types if counts.get(doc_type, 0) != 1]

    def completeness(self, required_types: Iterable[str]) -> bool:
        return not self.missing(required_types)
