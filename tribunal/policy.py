"""
Module: tribunal/policy.py
Description: Time windows, evidence bound and the derived case phase

A case has no stored state field. Its phase is a pure function of the
record's timestamps, the window policy and the current time.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING

from .errors import ConfigurationError

if TYPE_CHECKING:
    from .dispute_store import DisputeRecord


class CasePhase(Enum):
    """Derived lifecycle phase of a live case."""
    EDIT_WINDOW = "edit_window"  # amend, respond and vote allowed
    VOTING = "voting"            # vote allowed
    SEALED = "sealed"            # now == expires_at, nothing allowed
    EXECUTABLE = "executable"    # execute allowed


@dataclass(frozen=True)
class WindowPolicy:
    """Arbitration timing and size limits."""
    edit_window: timedelta = timedelta(days=3)
    min_reservation: timedelta = timedelta(days=4)
    max_evidence_bytes: int = 32767

    def __post_init__(self):
        if self.edit_window <= timedelta(0):
            raise ConfigurationError("edit window must be positive")
        if self.min_reservation <= self.edit_window:
            raise ConfigurationError(
                "minimum reservation window must be longer than the edit window"
            )
        if self.max_evidence_bytes <= 0:
            raise ConfigurationError("evidence bound must be positive")

    @classmethod
    def from_config(cls, cfg) -> "WindowPolicy":
        return cls(
            edit_window=timedelta(seconds=cfg.EDIT_WINDOW_SECONDS),
            min_reservation=timedelta(seconds=cfg.MIN_RESERVATION_SECONDS),
            max_evidence_bytes=cfg.MAX_EVIDENCE_BYTES,
        )

    def edit_deadline(self, created_at: datetime) -> datetime:
        return created_at + self.edit_window

    def earliest_expiration(self, reference: datetime) -> datetime:
        """Expirations must be strictly later than this instant."""
        return reference + self.min_reservation

    def evidence_fits(self, text: str) -> bool:
        return evidence_size(text) <= self.max_evidence_bytes


def evidence_size(text: str) -> int:
    """Size of evidence text in UTF-8 bytes."""
    return len(text.encode("utf-8"))


def derive_phase(record: "DisputeRecord", now: datetime, policy: WindowPolicy) -> CasePhase:
    """Phase of a live case at ``now``."""
    if now < policy.edit_deadline(record.created_at):
        return CasePhase.EDIT_WINDOW
    if now < record.expires_at:
        return CasePhase.VOTING
    if now == record.expires_at:
        return CasePhase.SEALED
    return CasePhase.EXECUTABLE


def is_editable(phase: CasePhase) -> bool:
    return phase is CasePhase.EDIT_WINDOW


def is_voting_open(phase: CasePhase) -> bool:
    return phase in (CasePhase.EDIT_WINDOW, CasePhase.VOTING)


def is_executable(phase: CasePhase) -> bool:
    return phase is CasePhase.EXECUTABLE
