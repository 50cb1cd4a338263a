"""Structured operation results returned by the lifecycle engine."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ErrorDetail(BaseModel):
    """A single field-level or contextual error detail."""

    field: str | None = None
    message: str


class OperationError(BaseModel):
    """Stable error kind plus a human-readable message."""

    code: str
    message: str
    details: list[ErrorDetail] = []


class OperationResult(BaseModel, Generic[T]):
    """Success value or structured error; exactly one of the two is set."""

    value: T | None = None
    error: OperationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> OperationResult[T]:
        return cls(value=value)

    @classmethod
    def failure(
        cls, code: str, message: str, details: list[dict] | None = None
    ) -> OperationResult[T]:
        return cls(
            error=OperationError(
                code=code,
                message=message,
                details=[ErrorDetail(**detail) for detail in details or []],
            )
        )
