"""
Module: tribunal/vote_ledger.py
Description: Mutually exclusive agree/disagree vote lists per case
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .context import ensure_utc
from .errors import AlreadyVotedSame, NotFound
from .storage import Table, UnitOfWork

logger = logging.getLogger("tribunal.votes")


class VoteChoice(Enum):
    AGREE = "agree"
    DISAGREE = "disagree"

    @property
    def opposite(self) -> "VoteChoice":
        return VoteChoice.DISAGREE if self is VoteChoice.AGREE else VoteChoice.AGREE


@dataclass
class VoteEntry:
    voter: int
    vote_time: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {"voter": self.voter, "vote_time": self.vote_time.isoformat()}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "VoteEntry":
        return cls(voter=int(d["voter"]), vote_time=ensure_utc(datetime.fromisoformat(d["vote_time"])))


@dataclass
class VoteLedger:
    """Votes on one case, in insertion order."""
    case_id: str
    agree: List[VoteEntry] = field(default_factory=list)
    disagree: List[VoteEntry] = field(default_factory=list)

    def side(self, choice: VoteChoice) -> List[VoteEntry]:
        return self.agree if choice is VoteChoice.AGREE else self.disagree

    def choice_of(self, voter: int) -> Optional[VoteChoice]:
        for choice in VoteChoice:
            if any(entry.voter == voter for entry in self.side(choice)):
                return choice
        return None

    def get_vote_count(self) -> Tuple[int, int]:
        """(agree_count, disagree_count)"""
        return len(self.agree), len(self.disagree)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "case_id": self.case_id,
            "agree": [e.to_dict() for e in self.agree],
            "disagree": [e.to_dict() for e in self.disagree],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "VoteLedger":
        return cls(
            case_id=d["case_id"],
            agree=[VoteEntry.from_dict(e) for e in d.get("agree", [])],
            disagree=[VoteEntry.from_dict(e) for e in d.get("disagree", [])],
        )


class VoteLedgerStore:
    """Per-case vote lists; lifecycle bound to the dispute record."""

    def __init__(self, table: Optional[Table] = None):
        self.table = table or Table("votes")

    def create_for(self, uow: UnitOfWork, case_id: str) -> VoteLedger:
        ledger = VoteLedger(case_id=case_id)
        uow.put(self.table.key(case_id), ledger.to_dict())
        return ledger

    async def get(self, uow: UnitOfWork, case_id: str) -> VoteLedger:
        data = await uow.get(self.table.key(case_id))
        if data is None:
            raise NotFound(f"No vote ledger for arbitration {case_id!r}", case_id)
        return VoteLedger.from_dict(data)

    async def cast(
        self,
        uow: UnitOfWork,
        case_id: str,
        voter: int,
        choice: VoteChoice,
        vote_time: datetime,
    ) -> VoteLedger:
        """Append to ``choice``; a vote on the opposite side moves over."""
        ledger = await self.get(uow, case_id)
        previous = ledger.choice_of(voter)

        if previous is choice:
            raise AlreadyVotedSame(f"Account {voter} already voted {choice.value}", case_id)

        ledger.side(choice).append(VoteEntry(voter=voter, vote_time=vote_time))
        if previous is not None:
            opposite = ledger.side(choice.opposite)
            opposite[:] = [entry for entry in opposite if entry.voter != voter]
            logger.debug(f"Account {voter} switched to {choice.value} on {case_id}")

        uow.put(self.table.key(case_id), ledger.to_dict())
        return ledger

    async def tally(self, uow: UnitOfWork, case_id: str) -> Tuple[int, int]:
        ledger = await self.get(uow, case_id)
        return ledger.get_vote_count()

    def remove(self, uow: UnitOfWork, case_id: str) -> None:
        uow.delete(self.table.key(case_id))
