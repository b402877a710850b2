from typing import List, Optional

from pydantic import BaseModel, ValidationError


class FieldIssue(BaseModel):
    """One offending field in a rejected outbound payload."""
    path: str
    message: str
    error_type: Optional[str] = None


class TranslationError(Exception):
    """Base class for errors surfaced to callers of the translation service."""


class UnsupportedTransactionError(TranslationError):
    def __init__(self, transaction_type: str, direction: Optional[str] = None):
        self.transaction_type = transaction_type
        self.direction = direction
        if direction:
            message = f"Unsupported {direction} transaction type: {transaction_type}"
        else:
            message = f"Unsupported transaction type: {transaction_type}"
        super().__init__(message)


class PayloadValidationError(TranslationError):
    def __init__(self, transaction_type: str, issues: List[FieldIssue]):
        self.transaction_type = transaction_type
        self.issues = issues
        paths = ", ".join(issue.path for issue in issues) or "<payload>"
        super().__init__(f"Validation failed for {transaction_type} payload: {paths}")

    @classmethod
    def from_validation_error(cls, transaction_type: str, error: ValidationError) -> "PayloadValidationError":
        issues = [
            FieldIssue(
                path=".".join(str(part) for part in detail.get("loc", ())) or "<payload>",
                message=detail.get("msg", ""),
                error_type=detail.get("type"),
            )
            for detail in error.errors()
        ]
        return cls(transaction_type, issues)
