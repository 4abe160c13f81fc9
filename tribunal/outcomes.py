"""
Module: tribunal/outcomes.py
Description: Execution outcome and its observable publication

Verdicts are not persisted. The only record of an execution is the event
published here: a log line, in-process subscribers and, when a Redis client
is configured, a message on the outcome channel.
"""

import inspect
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import redis.asyncio as redis

logger = logging.getLogger("tribunal.outcomes")


class Outcome(Enum):
    SUPPORT = "support"
    REJECT = "reject"


def decide(agree_count: int, disagree_count: int) -> Outcome:
    """Strict majority supports the request; a tie rejects it. No quorum."""
    if agree_count > disagree_count:
        return Outcome.SUPPORT
    return Outcome.REJECT


@dataclass(frozen=True)
class ExecutionResult:
    """What an execution decided, reported once and never stored."""
    case_id: str
    outcome: Outcome
    agree_count: int
    disagree_count: int
    executed_at: datetime
    executed_by: int
    claimant: int
    respondent: int
    linked_reference: str

    def summary(self) -> str:
        verdict = "supports" if self.outcome is Outcome.SUPPORT else "rejects"
        return (
            f"After a formal hearing of the materials provided by the parties, "
            f"arbitration {self.case_id} got {self.agree_count} consents and "
            f"{self.disagree_count} disagreements. Therefore, the current arbitral "
            f"tribunal {verdict} the request for arbitration."
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "case_id": self.case_id,
            "outcome": self.outcome.value,
            "agree_count": self.agree_count,
            "disagree_count": self.disagree_count,
            "executed_at": self.executed_at.isoformat(),
            "executed_by": self.executed_by,
            "claimant": self.claimant,
            "respondent": self.respondent,
            "linked_reference": self.linked_reference,
            "summary": self.summary(),
        }


Subscriber = Callable[[ExecutionResult], Union[None, Awaitable[None]]]


class OutcomePublisher:
    """Fans an ExecutionResult out to the log, subscribers and Redis pub/sub."""

    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        channel: str = "tribunal:outcomes",
    ):
        self.redis = redis_client
        self.channel = channel
        self._subscribers: List[Subscriber] = []
        self.published_count = 0

    def subscribe(self, callback: Subscriber) -> None:
        """Register a sync or async callable invoked with every result."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        self._subscribers.remove(callback)

    async def publish(self, result: ExecutionResult) -> None:
        logger.info(result.summary())

        for callback in list(self._subscribers):
            maybe_awaitable = callback(result)
            if inspect.isawaitable(maybe_awaitable):
                await maybe_awaitable

        if self.redis is not None:
            await self.redis.publish(self.channel, json.dumps(result.to_dict(), sort_keys=True))

        self.published_count += 1
