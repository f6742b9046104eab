"""
Shared error handling for the Observer Conditions layer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class ObserverLayerException(Exception):
    """Base exception for the Observer Conditions layer."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(ObserverLayerException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class ConditionError(ObserverLayerException):
    """Base class for condition tree failures."""


class InvalidCondition(ConditionError):
    """A condition tree is structurally malformed."""

    def __init__(self, message: str = "Invalid condition", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_CONDITION", message, details)


class InvalidOperator(ConditionError):
    """A leaf constraint key is not a known ``$operator``."""

    def __init__(self, operator: str, details: Optional[Dict[str, Any]] = None):
        self.operator = operator
        details = dict(details or {})
        details.setdefault("operator", operator)
        super().__init__("INVALID_OPERATOR", f"Invalid operator {operator}", details)


class OperatorError(ConditionError):
    """An operator implementation raised while evaluating a transition."""

    def __init__(self, operator: str, cause: BaseException, details: Optional[Dict[str, Any]] = None):
        self.operator = operator
        self.cause = cause
        details = dict(details or {})
        details.setdefault("operator", operator)
        details.setdefault("cause", type(cause).__name__)
        super().__init__("OPERATOR_ERROR", f"Error executing operator {operator}: {cause}", details)
