"""Translate pydantic validation failures into domain ValidationExceptions."""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from src.exceptions import ValidationException

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_payload(model: type[ModelT], **data: Any) -> ModelT:
    try:
        return model(**data)
    except PydanticValidationError as exc:
        details = [
            {
                "field": ".".join(str(part) for part in error["loc"]) or None,
                "message": error["msg"],
            }
            for error in exc.errors()
        ]
        raise ValidationException(f"Invalid {model.__name__} payload", details=details) from exc
