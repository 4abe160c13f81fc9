"""
Module: tribunal/workflow.py
Description: Arbitration workflow controller

Exposes file, amend, respond, vote-agree, vote-disagree and execute.
Each operation:
- runs under a per-case lock, so operations on one case never interleave;
  the lock is dropped once no operation holds or awaits it
- evaluates every guard against the CallContext supplied at entry
- buffers its writes in one UnitOfWork; a rejection commits nothing

Dispute records and vote ledgers are created together at filing and
removed together at execution.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict, Optional

from .context import CallContext
from .dispute_store import DisputeRecord, DisputeStore
from .errors import ArbitrationError, ArbitrationStillPending, VotingClosed
from .identity import IdentityResolver
from .outcomes import ExecutionResult, OutcomePublisher, decide
from .policy import CasePhase, WindowPolicy, derive_phase, is_executable, is_voting_open
from .storage import StorageBackend, unit_of_work
from .vote_ledger import VoteChoice, VoteLedger, VoteLedgerStore

logger = logging.getLogger("tribunal.workflow")


class WorkflowController:
    """
    Arbitration workflow over the dispute store and the vote ledger.

    Usage:
        controller = WorkflowController(backend, AccountDirectory({...}))
        await controller.file(ctx, "C1", evidence, "bob", "tx-42", expires_at)
        await controller.vote_agree(voter_ctx, "C1")
        result = await controller.execute(later_ctx, "C1")
    """

    def __init__(
        self,
        backend: StorageBackend,
        resolver: IdentityResolver,
        policy: Optional[WindowPolicy] = None,
        publisher: Optional[OutcomePublisher] = None,
    ):
        self.backend = backend
        self.policy = policy or WindowPolicy()
        self.disputes = DisputeStore(resolver, self.policy)
        self.votes = VoteLedgerStore()
        self.publisher = publisher or OutcomePublisher()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @asynccontextmanager
    async def _case_lock(self, case_id: str):
        lock = self._locks.get(case_id)
        if lock is None:
            lock = self._locks[case_id] = asyncio.Lock()
            self._lock_users[case_id] = 0
        self._lock_users[case_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[case_id] -= 1
            if self._lock_users[case_id] == 0:
                del self._locks[case_id]
                del self._lock_users[case_id]

    @asynccontextmanager
    async def _unit(self, case_id: str, operation: str):
        """Unit of work that logs rejections; the caller holds the case lock."""
        try:
            async with unit_of_work(self.backend) as uow:
                yield uow
        except ArbitrationError as e:
            logger.info(f"{operation} rejected for {case_id}: {e.error_code} ({e.message})")
            raise

    @asynccontextmanager
    async def _transaction(self, case_id: str, operation: str):
        async with self._case_lock(case_id):
            async with self._unit(case_id, operation) as uow:
                yield uow

    async def file(
        self,
        ctx: CallContext,
        case_id: str,
        evidence: str,
        respondent_name: str,
        linked_reference: str,
        expires_at: datetime,
    ) -> DisputeRecord:
        """Open a case; the caller becomes the claimant."""
        async with self._transaction(case_id, "file") as uow:
            record = await self.disputes.file(
                uow,
                case_id=case_id,
                claimant=ctx.caller,
                respondent_name=respondent_name,
                linked_reference=linked_reference,
                evidence=evidence,
                expires_at=expires_at,
                now=ctx.now,
            )
            self.votes.create_for(uow, case_id)

        logger.info(
            f"Filed arbitration {case_id}: claimant={record.claimant} "
            f"respondent={record.respondent} expires_at={record.expires_at.isoformat()}"
        )
        return record

    async def amend(
        self,
        ctx: CallContext,
        case_id: str,
        evidence: str,
        expires_at: datetime,
    ) -> DisputeRecord:
        async with self._transaction(case_id, "amend") as uow:
            record = await self.disputes.amend(uow, case_id, ctx.caller, evidence, expires_at, ctx.now)

        logger.info(f"Amended arbitration {case_id}: expires_at={record.expires_at.isoformat()}")
        return record

    async def respond(self, ctx: CallContext, case_id: str, response_text: str) -> DisputeRecord:
        async with self._transaction(case_id, "respond") as uow:
            record = await self.disputes.respond(uow, case_id, ctx.caller, response_text, ctx.now)

        logger.info(f"Respondent {ctx.caller} responded on arbitration {case_id}")
        return record

    async def vote_agree(self, ctx: CallContext, case_id: str) -> VoteLedger:
        return await self._vote(ctx, case_id, VoteChoice.AGREE)

    async def vote_disagree(self, ctx: CallContext, case_id: str) -> VoteLedger:
        return await self._vote(ctx, case_id, VoteChoice.DISAGREE)

    async def _vote(self, ctx: CallContext, case_id: str, choice: VoteChoice) -> VoteLedger:
        async with self._transaction(case_id, f"vote_{choice.value}") as uow:
            record = await self.disputes.get(uow, case_id)
            if not is_voting_open(derive_phase(record, ctx.now, self.policy)):
                raise VotingClosed(
                    f"Voting closed at {record.expires_at.isoformat()}", case_id
                )
            ledger = await self.votes.cast(uow, case_id, ctx.caller, choice, ctx.now)

        agree, disagree = ledger.get_vote_count()
        logger.info(f"Account {ctx.caller} voted {choice.value} on {case_id} ({agree}/{disagree})")
        return ledger

    async def execute(self, ctx: CallContext, case_id: str) -> ExecutionResult:
        """Tally and purge the case, then publish the outcome once the purge is committed."""
        async with self._case_lock(case_id):
            async with self._unit(case_id, "execute") as uow:
                record = await self.disputes.get(uow, case_id)
                if not is_executable(derive_phase(record, ctx.now, self.policy)):
                    raise ArbitrationStillPending(
                        f"Arbitration is open for voting until {record.expires_at.isoformat()} "
                        f"and cannot be executed yet",
                        case_id,
                    )

                agree_count, disagree_count = await self.votes.tally(uow, case_id)
                result = ExecutionResult(
                    case_id=case_id,
                    outcome=decide(agree_count, disagree_count),
                    agree_count=agree_count,
                    disagree_count=disagree_count,
                    executed_at=ctx.now,
                    executed_by=ctx.caller,
                    claimant=record.claimant,
                    respondent=record.respondent,
                    linked_reference=record.linked_reference,
                )
                self.votes.remove(uow, case_id)
                self.disputes.remove(uow, case_id)

            # Published only after commit; the case id is free from here on.
            try:
                await self.publisher.publish(result)
            except Exception:
                logger.exception(f"Arbitration {case_id} was executed but its outcome could not be published")
                raise

        logger.info(f"Executed arbitration {case_id}: {result.outcome.value}")
        return result

    async def get(self, case_id: str) -> DisputeRecord:
        async with unit_of_work(self.backend) as uow:
            return await self.disputes.get(uow, case_id)

    async def get_votes(self, case_id: str) -> VoteLedger:
        async with unit_of_work(self.backend) as uow:
            return await self.votes.get(uow, case_id)

    def phase_of(self, record: DisputeRecord, now: datetime) -> CasePhase:
        return derive_phase(record, now, self.policy)
