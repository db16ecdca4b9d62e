"""SQLAlchemy implementation of CreditLedgerRepository

Provides persistence for CreditBalance entities with pessimistic locking
and a single-statement guarded increment, so concurrent adjustments on one
(owner, category) can never drive the amount below zero.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import or_, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.credit_ledger_repository import CreditLedgerRepository
from src.domain.base import utcnow
from src.domain.credit_balance import CreditBalance, DurationPolicy
from src.domain.errors import InsufficientCreditError


class SqlAlchemyCreditLedgerRepository(CreditLedgerRepository):
    """
    SQLAlchemy implementation of CreditLedgerRepository

    Features:
    - Pessimistic locking via SELECT FOR UPDATE
    - Atomic UPDATE ... SET amount = amount + :delta with a non-negative guard
    - Lazy balance creation on first grant
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_balance(
        self, owner_id: str, category_id: str, for_update: bool = False
    ) -> Optional[CreditBalance]:
        """
        Retrieve balance with optional row-level locking

        Args:
            owner_id: Owner identifier
            category_id: Category identifier
            for_update: If True, locks the row with SELECT FOR UPDATE (prevents concurrent modifications)

        Returns:
            CreditBalance if found, None otherwise
        """
        stmt = (
            select(CreditBalance)
            .where(CreditBalance.owner_id == owner_id, CreditBalance.category_id == category_id)
            .execution_options(populate_existing=True)
        )

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_owner(self, owner_id: str) -> List[CreditBalance]:
        stmt = (
            select(CreditBalance)
            .where(CreditBalance.owner_id == owner_id)
            .order_by(CreditBalance.category_id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def adjust(
        self, owner_id: str, category_id: str, delta: int, touch_last_used: bool = False
    ) -> CreditBalance:
        """
        Apply amount += delta in one statement

        The WHERE clause refuses the update when a limited balance would go
        negative; a zero row count then means either no balance exists (created
        here when delta > 0) or the guard rejected it.

        Raises:
            InsufficientCreditError: resulting amount would be negative
        """
        now = utcnow()
        values = {"amount": CreditBalance.amount + delta, "updated_at": now}
        if touch_last_used:
            values["last_used_at"] = now

        stmt = (
            update(CreditBalance)
            .where(CreditBalance.owner_id == owner_id, CreditBalance.category_id == category_id)
            .where(or_(CreditBalance.is_unlimited.is_(True), CreditBalance.amount + delta >= 0))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)

        if result.rowcount == 0:
            existing = await self.get_balance(owner_id, category_id)
            if existing is None and delta > 0:
                balance = CreditBalance(
                    owner_id=owner_id,
                    category_id=category_id,
                    amount=delta,
                    last_used_at=now if touch_last_used else None,
                )
                self.session.add(balance)
                await self.session.flush()
                await self.session.refresh(balance)
                return balance

            raise InsufficientCreditError(
                owner_id=owner_id,
                category_id=category_id,
                required=-delta,
                available=existing.amount if existing else 0,
            )

        balance = await self.get_balance(owner_id, category_id)
        return balance

    async def set_duration(
        self,
        owner_id: str,
        category_id: str,
        duration_policy: DurationPolicy,
        expires_at: Optional[datetime],
    ) -> None:
        stmt = (
            update(CreditBalance)
            .where(CreditBalance.owner_id == owner_id, CreditBalance.category_id == category_id)
            .values(duration_policy=duration_policy, expires_at=expires_at, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def list_expired(self, now: datetime, limit: int = 500) -> List[CreditBalance]:
        """
        Balances with a non-unlimited duration that expired before `now` and still hold credits

        Args:
            now: Reference timestamp
            limit: Maximum number of balances to return

        Returns:
            List of expired, non-empty balances ordered by expiry
        """
        stmt = (
            select(CreditBalance)
            .where(
                CreditBalance.duration_policy != DurationPolicy.UNLIMITED,
                CreditBalance.expires_at.is_not(None),
                CreditBalance.expires_at < now,
                CreditBalance.amount > 0,
            )
            .order_by(CreditBalance.expires_at)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
