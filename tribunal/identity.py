"""
Module: tribunal/identity.py
Description: Account name to numeric identity resolution
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

logger = logging.getLogger("tribunal.identity")


class IdentityResolver(ABC):
    """Resolves a human-readable account name to a stable numeric identity."""

    @abstractmethod
    async def resolve(self, name: str) -> Optional[int]:
        """Return the identity, or None when no such account exists."""
        ...


class AccountDirectory(IdentityResolver):
    """In-memory account registry."""

    def __init__(self, accounts: Optional[Dict[str, int]] = None):
        self._accounts: Dict[str, int] = dict(accounts or {})
        logger.info(f"AccountDirectory initialized with {len(self._accounts)} accounts")

    async def resolve(self, name: str) -> Optional[int]:
        return self._accounts.get(name)
