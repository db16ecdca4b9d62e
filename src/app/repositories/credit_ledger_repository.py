"""Credit Ledger Repository Interface

Defines the contract for per-(owner, category) credit balance
persistence. Callers pair every adjust with a CreditTransaction inside
one unit of work.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from src.domain.credit_balance import CreditBalance, DurationPolicy


class CreditLedgerRepository(ABC):
    """
    Repository interface for CreditBalance persistence

    Reads used before a mutation lock the row (SELECT FOR UPDATE);
    adjust is a single atomic increment guarded against going negative.
    """

    @abstractmethod
    async def get_balance(
        self, owner_id: str, category_id: str, for_update: bool = False
    ) -> Optional[CreditBalance]:
        """
        Retrieve the balance for an (owner, category) pair

        Args:
            owner_id: Owner identifier
            category_id: Category identifier
            for_update: If True, lock the row with SELECT FOR UPDATE

        Returns:
            CreditBalance if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> List[CreditBalance]:
        pass

    @abstractmethod
    async def adjust(
        self, owner_id: str, category_id: str, delta: int, touch_last_used: bool = False
    ) -> CreditBalance:
        """
        Atomically apply amount += delta

        Creates the balance (amount = delta) when absent and delta > 0.

        Raises:
            InsufficientCreditError: resulting amount < 0 on a limited balance,
                or the balance is absent and delta <= 0
        """
        pass

    @abstractmethod
    async def set_duration(
        self,
        owner_id: str,
        category_id: str,
        duration_policy: DurationPolicy,
        expires_at: Optional[datetime],
    ) -> None:
        """Overwrite expiry metadata (called alongside grants and expiry)"""
        pass

    @abstractmethod
    async def list_expired(self, now: datetime, limit: int = 500) -> List[CreditBalance]:
        """
        Balances with a non-unlimited duration, expires_at < now and amount > 0

        Args:
            now: Reference timestamp
            limit: Maximum number of balances to return

        Returns:
            List of expired, non-empty balances
        """
        pass
