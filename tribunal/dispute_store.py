"""
Module: tribunal/dispute_store.py
Description: Dispute records and their ownership/window-guarded mutations

Guards run in a fixed order and raise before anything is written:
existence, time window, caller identity, evidence size, expiration.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from .context import ensure_utc
from .errors import (
    AlreadyExists,
    EditWindowClosed,
    EvidenceTooLarge,
    ExpirationTooSoon,
    NotFound,
    NotOwner,
    NotRespondent,
    UnknownAccount,
)
from .identity import IdentityResolver
from .policy import WindowPolicy, derive_phase, evidence_size, is_editable
from .storage import Table, UnitOfWork

logger = logging.getLogger("tribunal.disputes")


@dataclass
class DisputeRecord:
    """One arbitration case: parties, evidence, timing."""
    case_id: str
    claimant: int
    respondent: int
    linked_reference: str
    claim_evidence: str
    created_at: datetime
    expires_at: datetime
    response_evidence: str = field(default="")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "case_id": self.case_id,
            "claimant": self.claimant,
            "respondent": self.respondent,
            "linked_reference": self.linked_reference,
            "claim_evidence": self.claim_evidence,
            "response_evidence": self.response_evidence,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DisputeRecord":
        return cls(
            case_id=d["case_id"],
            claimant=int(d["claimant"]),
            respondent=int(d["respondent"]),
            linked_reference=d["linked_reference"],
            claim_evidence=d["claim_evidence"],
            response_evidence=d.get("response_evidence", ""),
            created_at=ensure_utc(datetime.fromisoformat(d["created_at"])),
            expires_at=ensure_utc(datetime.fromisoformat(d["expires_at"])),
        )


class DisputeStore:
    """Storage and field-level mutation of DisputeRecord."""

    def __init__(
        self,
        resolver: IdentityResolver,
        policy: Optional[WindowPolicy] = None,
        table: Optional[Table] = None,
    ):
        self.resolver = resolver
        self.policy = policy or WindowPolicy()
        self.table = table or Table("disputes")

    async def get(self, uow: UnitOfWork, case_id: str) -> DisputeRecord:
        data = await uow.get(self.table.key(case_id))
        if data is None:
            raise NotFound(f"Arbitration {case_id!r} does not exist", case_id)
        return DisputeRecord.from_dict(data)

    async def exists(self, uow: UnitOfWork, case_id: str) -> bool:
        return await uow.get(self.table.key(case_id)) is not None

    async def file(
        self,
        uow: UnitOfWork,
        case_id: str,
        claimant: int,
        respondent_name: str,
        linked_reference: str,
        evidence: str,
        expires_at: datetime,
        now: datetime,
    ) -> DisputeRecord:
        """Create a new record with ``created_at = now``."""
        expires_at = ensure_utc(expires_at)

        if await self.exists(uow, case_id):
            raise AlreadyExists(
                f"Arbitration {case_id!r} already exists; choose another case id "
                f"or amend the existing case if you filed it",
                case_id,
            )

        respondent = await self.resolver.resolve(respondent_name)
        if respondent is None:
            raise UnknownAccount(f"Respondent account {respondent_name!r} does not exist", case_id)

        self._check_evidence(evidence, case_id)

        if expires_at <= self.policy.earliest_expiration(now):
            raise ExpirationTooSoon(
                f"Expiration must be later than {self.policy.earliest_expiration(now).isoformat()} "
                f"to leave voters time to deliberate",
                case_id,
            )

        record = DisputeRecord(
            case_id=case_id,
            claimant=claimant,
            respondent=respondent,
            linked_reference=linked_reference,
            claim_evidence=evidence,
            created_at=now,
            expires_at=expires_at,
        )
        uow.put(self.table.key(case_id), record.to_dict())
        return record

    async def amend(
        self,
        uow: UnitOfWork,
        case_id: str,
        caller: int,
        new_evidence: str,
        new_expires_at: datetime,
        now: datetime,
    ) -> DisputeRecord:
        """Claimant-only rewrite of evidence and expiration."""
        new_expires_at = ensure_utc(new_expires_at)
        record = await self.get(uow, case_id)
        self._check_edit_window(record, now)

        if caller != record.claimant:
            raise NotOwner("Only the claimant may amend this arbitration", case_id)

        self._check_evidence(new_evidence, case_id)

        # Measured from filing time, not from this call.
        if new_expires_at <= self.policy.earliest_expiration(record.created_at):
            raise ExpirationTooSoon(
                f"Expiration must be later than "
                f"{self.policy.earliest_expiration(record.created_at).isoformat()}",
                case_id,
            )

        record.claim_evidence = new_evidence
        record.expires_at = new_expires_at
        uow.put(self.table.key(case_id), record.to_dict())
        return record

    async def respond(
        self,
        uow: UnitOfWork,
        case_id: str,
        caller: int,
        response_text: str,
        now: datetime,
    ) -> DisputeRecord:
        """Respondent-only rewrite of the response; later calls replace earlier text."""
        record = await self.get(uow, case_id)
        self._check_edit_window(record, now)

        if caller != record.respondent:
            raise NotRespondent("Only the respondent may respond to this arbitration", case_id)

        self._check_evidence(response_text, case_id)

        record.response_evidence = response_text
        uow.put(self.table.key(case_id), record.to_dict())
        return record

    def remove(self, uow: UnitOfWork, case_id: str) -> None:
        uow.delete(self.table.key(case_id))

    def _check_edit_window(self, record: DisputeRecord, now: datetime) -> None:
        if not is_editable(derive_phase(record, now, self.policy)):
            raise EditWindowClosed(
                f"Edit window closed at {self.policy.edit_deadline(record.created_at).isoformat()}",
                record.case_id,
            )

    def _check_evidence(self, text: str, case_id: str) -> None:
        if not self.policy.evidence_fits(text):
            raise EvidenceTooLarge(
                f"Evidence is {evidence_size(text)} bytes; the limit is "
                f"{self.policy.max_evidence_bytes} bytes",
                case_id,
            )
