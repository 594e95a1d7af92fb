"""
Error taxonomy for the claim workflow
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any


class ErrorType(str, Enum):
    VALIDATION = "VALIDATION_ERROR"
    ELIGIBILITY = "ELIGIBILITY_ERROR"
    AUTHORIZATION = "AUTHORIZATION_ERROR"
    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"
    DUPLICATE_VOTE = "DUPLICATE_VOTE"
    NOT_FOUND = "NOT_FOUND"


# HTTP status surfaced for each error type
HTTP_STATUS = {
    ErrorType.VALIDATION: 400,
    ErrorType.ELIGIBILITY: 403,
    ErrorType.AUTHORIZATION: 403,
    ErrorType.INVALID_STATE_TRANSITION: 409,
    ErrorType.DUPLICATE_VOTE: 409,
    ErrorType.NOT_FOUND: 404,
}


@dataclass
class ErrorContext:
    """
    Context carried by every expected workflow failure.

    Attributes:
        error_type: Kind of failure
        message: User-facing, actionable message
        details: Extra structured detail (field name, remaining days, ...)
    """

    error_type: ErrorType
    message: str
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.error_type.value,
            "message": self.message,
            "details": self.details or {},
        }


class ClaimWorkflowError(Exception):
    """Base exception for expected, recoverable workflow failures."""

    error_type = ErrorType.VALIDATION

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.context = ErrorContext(
            error_type=self.error_type, message=message, details=details
        )
        super().__init__(message)

    @property
    def message(self) -> str:
        return self.context.message

    @property
    def details(self) -> Dict[str, Any]:
        return self.context.details or {}

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.error_type]

    def to_dict(self) -> Dict[str, Any]:
        return self.context.to_dict()


class ValidationError(ClaimWorkflowError):
    """Malformed input, e.g. amount out of bounds or a missing settlement ref."""

    error_type = ErrorType.VALIDATION

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, details={"field": field})


class EligibilityError(ClaimWorkflowError):
    error_type = ErrorType.ELIGIBILITY

    @classmethod
    def from_result(cls, result) -> "EligibilityError":
        return cls(
            result.message,
            details={
                "membership_days": result.membership_days,
                "required_days": result.required_days,
                "remaining_days": result.remaining_days,
                "membership_status": result.membership_status,
            },
        )


class AuthorizationError(ClaimWorkflowError):
    """
    Wrong role or a forbidden self-action.

    Only the required and current role are ever exposed.
    """

    error_type = ErrorType.AUTHORIZATION

    @classmethod
    def insufficient_role(cls, required: str, current: str) -> "AuthorizationError":
        return cls(
            "Forbidden",
            details={"required_role": required, "current_role": current},
        )


class InvalidStateTransition(ClaimWorkflowError):
    error_type = ErrorType.INVALID_STATE_TRANSITION

    @classmethod
    def for_claim(
        cls, claim_id, current: str, attempted: str
    ) -> "InvalidStateTransition":
        return cls(
            "Claim cannot be processed in its current state",
            details={
                "claim_id": str(claim_id),
                "current_status": current,
                "attempted_status": attempted,
            },
        )


class DuplicateVoteError(ClaimWorkflowError):
    error_type = ErrorType.DUPLICATE_VOTE


class NotFoundError(ClaimWorkflowError):
    error_type = ErrorType.NOT_FOUND

    @classmethod
    def claim(cls, claim_id) -> "NotFoundError":
        return cls("Claim not found", details={"claim_id": str(claim_id)})
