"""
Module: tribunal/__init__.py
Description: Community-vote dispute arbitration
"""

from .context import CallContext, FixedClock, SystemClock, TimeSource
from .dispute_store import DisputeRecord, DisputeStore
from .errors import ArbitrationError
from .identity import AccountDirectory, IdentityResolver
from .outcomes import ExecutionResult, Outcome, OutcomePublisher
from .policy import CasePhase, WindowPolicy, derive_phase
from .storage import InMemoryBackend, RedisBackend, StorageBackend
from .vote_ledger import VoteChoice, VoteLedger, VoteLedgerStore
from .workflow import WorkflowController

__all__ = [
    "AccountDirectory",
    "ArbitrationError",
    "CallContext",
    "CasePhase",
    "DisputeRecord",
    "DisputeStore",
    "ExecutionResult",
    "FixedClock",
    "IdentityResolver",
    "InMemoryBackend",
    "Outcome",
    "OutcomePublisher",
    "RedisBackend",
    "StorageBackend",
    "SystemClock",
    "TimeSource",
    "VoteChoice",
    "VoteLedger",
    "VoteLedgerStore",
    "WindowPolicy",
    "WorkflowController",
    "derive_phase",
]
