"""
Module: tribunal/errors.py
Description: Rejection taxonomy for arbitration operations

Every rejection is raised before any mutation is committed, so callers may
treat all of these as normal, expected outcomes of misuse or timing.
"""

from typing import Any, Dict, Optional


class ArbitrationError(Exception):
    """Base class for precondition failures with an API-facing error code."""

    error_code = "ARBITRATION_ERROR"
    http_status = 400

    def __init__(self, message: str, case_id: Optional[str] = None):
        self.message = message
        self.case_id = case_id
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "detail": self.message,
            "case_id": self.case_id,
        }


class AlreadyExists(ArbitrationError):
    error_code = "ALREADY_EXISTS"
    http_status = 409


class NotFound(ArbitrationError):
    error_code = "NOT_FOUND"
    http_status = 404


class UnknownAccount(ArbitrationError):
    error_code = "UNKNOWN_ACCOUNT"
    http_status = 404


class NotOwner(ArbitrationError):
    error_code = "NOT_OWNER"
    http_status = 403


class NotRespondent(ArbitrationError):
    error_code = "NOT_RESPONDENT"
    http_status = 403


class EvidenceTooLarge(ArbitrationError):
    error_code = "EVIDENCE_TOO_LARGE"
    http_status = 413


class ExpirationTooSoon(ArbitrationError):
    error_code = "EXPIRATION_TOO_SOON"
    http_status = 422


class EditWindowClosed(ArbitrationError):
    error_code = "EDIT_WINDOW_CLOSED"
    http_status = 409


class VotingClosed(ArbitrationError):
    error_code = "VOTING_CLOSED"
    http_status = 409


class ArbitrationStillPending(ArbitrationError):
    error_code = "ARBITRATION_STILL_PENDING"
    http_status = 409


class AlreadyVotedSame(ArbitrationError):
    error_code = "ALREADY_VOTED_SAME"
    http_status = 409


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""
    pass
