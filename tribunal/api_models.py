"""
Module: tribunal/api_models.py
Description: Pydantic Models for API Request/Response Validation

Evidence length is not validated here; the workflow rejects
oversized evidence with EVIDENCE_TOO_LARGE.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .context import ensure_utc
from .dispute_store import DisputeRecord
from .outcomes import ExecutionResult
from .policy import CasePhase, WindowPolicy
from .vote_ledger import VoteEntry, VoteLedger

CASE_ID_PATTERN = r"^[A-Za-z0-9._:-]+$"


# ============================================================
# Base Models
# ============================================================

class BaseAPIModel(BaseModel):
    """Base model with common configuration."""
    model_config = ConfigDict(
        validate_assignment=True,
        extra='forbid'  # Reject unknown fields
    )


class ExpiringRequest(BaseAPIModel):
    expires_at: datetime = Field(..., description="Voting closes at this instant (ISO-8601 or epoch seconds)")

    @field_validator('expires_at')
    @classmethod
    def normalize_expires_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)


# ============================================================
# Requests
# ============================================================

class FileDisputeRequest(ExpiringRequest):
    """Request model for filing a dispute."""
    case_id: str = Field(
        ...,
        min_length=1,
        max_length=64,
        pattern=CASE_ID_PATTERN,
        description="Caller-chosen unique case identifier"
    )
    evidence: str = Field(default="", description="Claimant evidence")
    respondent_name: str = Field(..., min_length=1, max_length=256)
    linked_reference: str = Field(default="", max_length=256, description="Associated transaction id")


class AmendDisputeRequest(ExpiringRequest):
    """Request model for the claimant's amendment."""
    evidence: str = Field(default="", description="Replacement claimant evidence")


class RespondRequest(BaseAPIModel):
    response_text: str = Field(default="", description="Respondent evidence")


# ============================================================
# Responses
# ============================================================

class DisputeResponse(BaseModel):
    case_id: str
    claimant: int
    respondent: int
    linked_reference: str
    claim_evidence: str
    response_evidence: str
    created_at: datetime
    expires_at: datetime
    edit_deadline: datetime
    phase: CasePhase

    @classmethod
    def from_record(cls, record: DisputeRecord, phase: CasePhase, policy: WindowPolicy) -> "DisputeResponse":
        return cls(
            case_id=record.case_id,
            claimant=record.claimant,
            respondent=record.respondent,
            linked_reference=record.linked_reference,
            claim_evidence=record.claim_evidence,
            response_evidence=record.response_evidence,
            created_at=record.created_at,
            expires_at=record.expires_at,
            edit_deadline=policy.edit_deadline(record.created_at),
            phase=phase,
        )


class VoteEntryModel(BaseModel):
    voter: int
    vote_time: datetime

    @classmethod
    def from_entry(cls, entry: VoteEntry) -> "VoteEntryModel":
        return cls(voter=entry.voter, vote_time=entry.vote_time)


class VoteLedgerResponse(BaseModel):
    case_id: str
    agree_count: int
    disagree_count: int
    agree: List[VoteEntryModel]
    disagree: List[VoteEntryModel]

    @classmethod
    def from_ledger(cls, ledger: VoteLedger) -> "VoteLedgerResponse":
        agree_count, disagree_count = ledger.get_vote_count()
        return cls(
            case_id=ledger.case_id,
            agree_count=agree_count,
            disagree_count=disagree_count,
            agree=[VoteEntryModel.from_entry(e) for e in ledger.agree],
            disagree=[VoteEntryModel.from_entry(e) for e in ledger.disagree],
        )


class ExecutionResponse(BaseModel):
    case_id: str
    outcome: str
    agree_count: int
    disagree_count: int
    executed_at: datetime
    executed_by: int
    claimant: int
    respondent: int
    linked_reference: str
    summary: str

    @classmethod
    def from_result(cls, result: ExecutionResult) -> "ExecutionResponse":
        return cls(
            case_id=result.case_id,
            outcome=result.outcome.value,
            agree_count=result.agree_count,
            disagree_count=result.disagree_count,
            executed_at=result.executed_at,
            executed_by=result.executed_by,
            claimant=result.claimant,
            respondent=result.respondent,
            linked_reference=result.linked_reference,
            summary=result.summary(),
        )


class ErrorResponse(BaseModel):
    error_code: str
    detail: str
    case_id: Optional[str] = None


class HealthCheckResponse(BaseModel):
    status: str
    storage: str
    timestamp: datetime
