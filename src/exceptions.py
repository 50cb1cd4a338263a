"""Domain exception hierarchy for structured error results."""

from __future__ import annotations


class AppException(Exception):
    """Base exception for all domain errors.

    Subclasses set ``code`` and ``status_code`` at the class level; callers
    provide ``message`` and an optional ``details`` list.
    """

    code: str = "APP_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class NotFoundException(AppException):
    code = "NOT_FOUND"
    status_code = 404


class ConflictException(AppException):
    code = "CONFLICT"
    status_code = 409


class ValidationException(AppException):
    code = "VALIDATION_ERROR"
    status_code = 422


class BusinessRuleException(AppException):
    code = "BUSINESS_RULE_VIOLATION"
    status_code = 422


class TenderClosedException(AppException):
    code = "TENDER_CLOSED"
    status_code = 409


class AlreadySubmittedException(AppException):
    code = "ALREADY_SUBMITTED"
    status_code = 409


class TenderNotAwardableException(AppException):
    code = "TENDER_NOT_AWARDABLE"
    status_code = 409


class IncompleteDocumentsException(AppException):
    """Submission attempted without every required document type.

    ``missing_types`` lists the absent types so callers can tell the vendor
    exactly what to upload.
    """

    code = "INCOMPLETE_DOCUMENTS"
    status_code = 422

    def __init__(self, message: str, missing_types: list[str]) -> None:
        super().__init__(
            message,
            details=[
                {"field": doc_type, "message": f"Required document '{doc_type}' is missing"}
                for doc_type in missing_types
            ],
        )
        self.missing_types = list(missing_types)
