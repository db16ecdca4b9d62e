"""Credit Transaction Repository Interface

Append-only log of every credit movement: transfers, debits, refunds
and expiries.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple
from src.domain.credit_transaction import CreditTransaction, TransactionType


class CreditTransactionRepository(ABC):
    """
    Rows are never updated. A unique idempotency_key lets a retried
    debit or campaign refund find the row it already wrote.
    """

    @abstractmethod
    async def create(self, transaction: CreditTransaction) -> CreditTransaction:
        """
        Insert a transaction and return it with its generated id

        Raises:
            IntegrityError: If the idempotency_key was already used
        """
        pass

    @abstractmethod
    async def get_by_idempotency_key(self, idempotency_key: str) -> Optional[CreditTransaction]:
        """Existing transaction for a key such as campaign:12:run:1:debit, if any"""
        pass

    @abstractmethod
    async def list_for_owner(
        self,
        owner_id: str,
        category_id: Optional[str] = None,
        transaction_type: Optional[TransactionType] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[CreditTransaction], int]:
        """
        Transactions where the owner is sender or receiver, newest first

        Returns:
            Tuple of (page of transactions, total count)
        """
        pass

    @abstractmethod
    async def list_by_campaign(
        self, campaign_id: int, transaction_type: Optional[TransactionType] = None
    ) -> List[CreditTransaction]:
        pass
