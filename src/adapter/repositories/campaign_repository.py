"""SQLAlchemy implementation of CampaignRepository

Status changes are compare-and-set UPDATEs and counters are SQL-side
increments, so the dispatch loop and API requests running in separate
sessions never overwrite each other's writes.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.campaign_repository import CampaignRepository
from src.domain.base import utcnow
from src.domain.campaign import RATE_LIMIT_PAUSE_REASON, Campaign, CampaignStatus

COUNTER_COLUMNS = frozenset({"sent_count", "delivered_count", "read_count", "failed_count"})


class SqlAlchemyCampaignRepository(CampaignRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, campaign: Campaign) -> Campaign:
        self.session.add(campaign)
        await self.session.flush()
        await self.session.refresh(campaign)
        return campaign

    async def get_by_id(self, campaign_id: int) -> Optional[Campaign]:
        stmt = (
            select(Campaign)
            .where(Campaign.id == campaign_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_status(self, campaign_id: int) -> Optional[CampaignStatus]:
        stmt = select(Campaign.status).where(Campaign.id == campaign_id)
        result = await self.session.execute(stmt)
        status = result.scalar_one_or_none()
        return CampaignStatus(status) if status is not None else None

    async def transition(
        self,
        campaign_id: int,
        from_statuses: Iterable[CampaignStatus],
        to_status: CampaignStatus,
        **values: Any,
    ) -> bool:
        """
        Compare-and-set status change

        Returns:
            True if exactly this campaign was in one of from_statuses and was updated
        """
        values.setdefault("updated_at", utcnow())
        stmt = (
            update(Campaign)
            .where(Campaign.id == campaign_id, Campaign.status.in_(list(from_statuses)))
            .values(status=to_status, **values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def save_checkpoint(self, campaign_id: int, last_processed_index: int) -> None:
        stmt = (
            update(Campaign)
            .where(Campaign.id == campaign_id)
            .values(last_processed_index=last_processed_index, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def increment_counters(self, campaign_id: int, counter_deltas: Dict[str, int]) -> None:
        values = self._counter_values(counter_deltas)
        if not values:
            return
        values["updated_at"] = utcnow()

        stmt = (
            update(Campaign)
            .where(Campaign.id == campaign_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def reset_for_rerun(
        self,
        campaign_id: int,
        from_statuses: Iterable[CampaignStatus],
        to_status: CampaignStatus,
        total_count: int,
    ) -> bool:
        stmt = (
            update(Campaign)
            .where(Campaign.id == campaign_id, Campaign.status.in_(list(from_statuses)))
            .values(
                status=to_status,
                total_count=total_count,
                sent_count=0,
                delivered_count=0,
                read_count=0,
                failed_count=0,
                last_processed_index=0,
                run_number=Campaign.run_number + 1,
                credits_charged=0,
                started_at=None,
                completed_at=None,
                error_message=None,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def list_due_scheduled(self, now: datetime, limit: int = 100) -> List[Campaign]:
        stmt = (
            select(Campaign)
            .where(
                Campaign.status == CampaignStatus.SCHEDULED,
                Campaign.scheduled_at.is_not(None),
                Campaign.scheduled_at <= now,
            )
            .order_by(Campaign.scheduled_at)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_rate_limited(self, paused_before: datetime, limit: int = 100) -> List[Campaign]:
        stmt = (
            select(Campaign)
            .where(
                Campaign.status == CampaignStatus.PAUSED,
                Campaign.error_message == RATE_LIMIT_PAUSE_REASON,
                Campaign.updated_at <= paused_before,
            )
            .order_by(Campaign.updated_at)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    def _counter_values(counter_deltas: Dict[str, int]) -> Dict[str, Any]:
        unknown = set(counter_deltas) - COUNTER_COLUMNS
        if unknown:
            raise ValueError(f"Unknown campaign counters: {sorted(unknown)}")
        return {
            name: getattr(Campaign, name) + delta
            for name, delta in counter_deltas.items()
            if delta
        }
