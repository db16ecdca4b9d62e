"""SQLAlchemy implementation of CreditTransactionRepository

Provides persistence for CreditTransaction entities with idempotency enforcement
via unique constraint on idempotency_key.
"""

from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy import or_
from sqlmodel import select, func
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.credit_transaction import CreditTransaction, TransactionType


class SqlAlchemyCreditTransactionRepository(CreditTransactionRepository):
    """
    SQLAlchemy implementation of CreditTransactionRepository

    Features:
    - Idempotency enforcement via unique idempotency_key constraint
    - Immutable append-only transactions
    - Owner history filtered by category, kind and date range
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, transaction: CreditTransaction) -> CreditTransaction:
        """
        Create a new credit transaction

        Raises:
            IntegrityError: If idempotency_key already exists (duplicate transaction attempt)
        """
        self.session.add(transaction)
        await self.session.flush()
        await self.session.refresh(transaction)
        return transaction

    async def get_by_idempotency_key(self, idempotency_key: str) -> Optional[CreditTransaction]:
        stmt = select(CreditTransaction).where(
            CreditTransaction.idempotency_key == idempotency_key
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

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
        Transactions where the owner is sender or receiver

        Returns:
            Tuple of (page ordered newest first, total matching count)
        """
        conditions = [
            or_(CreditTransaction.from_owner_id == owner_id, CreditTransaction.to_owner_id == owner_id)
        ]
        if category_id:
            conditions.append(CreditTransaction.category_id == category_id)
        if transaction_type:
            conditions.append(CreditTransaction.transaction_type == transaction_type)
        if start_date:
            conditions.append(CreditTransaction.created_at >= start_date)
        if end_date:
            conditions.append(CreditTransaction.created_at <= end_date)

        # Get total count
        count_stmt = select(func.count()).select_from(CreditTransaction).where(*conditions)
        count_result = await self.session.execute(count_stmt)
        total = count_result.scalar()

        stmt = (
            select(CreditTransaction)
            .where(*conditions)
            .order_by(CreditTransaction.created_at.desc(), CreditTransaction.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def list_by_campaign(
        self, campaign_id: int, transaction_type: Optional[TransactionType] = None
    ) -> List[CreditTransaction]:
        stmt = select(CreditTransaction).where(CreditTransaction.campaign_id == campaign_id)
        if transaction_type:
            stmt = stmt.where(CreditTransaction.transaction_type == transaction_type)
        stmt = stmt.order_by(CreditTransaction.created_at, CreditTransaction.id)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())
