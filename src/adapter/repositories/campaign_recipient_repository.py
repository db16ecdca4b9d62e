"""SQLAlchemy implementation of CampaignRecipientRepository"""

from typing import Dict, List, Optional
from sqlalchemy import update
from sqlmodel import select, func
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.campaign_recipient_repository import CampaignRecipientRepository
from src.domain.campaign_recipient import CampaignRecipient, RecipientStatus


class SqlAlchemyCampaignRecipientRepository(CampaignRecipientRepository):
    """
    SQLAlchemy implementation of CampaignRecipientRepository

    Recipients are always read in position order; that order is the
    dispatch order and the resume key.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add_many(self, recipients: List[CampaignRecipient]) -> None:
        self.session.add_all(recipients)
        await self.session.flush()

    async def list_range(self, campaign_id: int, start: int, end: int) -> List[CampaignRecipient]:
        stmt = (
            select(CampaignRecipient)
            .where(
                CampaignRecipient.campaign_id == campaign_id,
                CampaignRecipient.position >= start,
                CampaignRecipient.position < end,
            )
            .order_by(CampaignRecipient.position)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_retry_candidates(self, campaign_id: int, limit: int) -> List[CampaignRecipient]:
        stmt = (
            select(CampaignRecipient)
            .where(
                CampaignRecipient.campaign_id == campaign_id,
                CampaignRecipient.status == RecipientStatus.FAILED,
                CampaignRecipient.error_retryable.is_(True),
            )
            .order_by(CampaignRecipient.position)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count(self, campaign_id: int) -> int:
        stmt = select(func.count()).select_from(CampaignRecipient).where(
            CampaignRecipient.campaign_id == campaign_id
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def count_by_status(self, campaign_id: int) -> Dict[RecipientStatus, int]:
        stmt = (
            select(CampaignRecipient.status, func.count())
            .where(CampaignRecipient.campaign_id == campaign_id)
            .group_by(CampaignRecipient.status)
        )
        result = await self.session.execute(stmt)
        return {RecipientStatus(status): count for status, count in result.all()}

    async def get_by_external_id(self, external_message_id: str) -> Optional[CampaignRecipient]:
        stmt = (
            select(CampaignRecipient)
            .where(CampaignRecipient.external_message_id == external_message_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def save_many(self, recipients: List[CampaignRecipient]) -> None:
        if not recipients:
            return
        self.session.add_all(recipients)
        await self.session.flush()

    async def reset_all(self, campaign_id: int) -> None:
        stmt = (
            update(CampaignRecipient)
            .where(CampaignRecipient.campaign_id == campaign_id)
            .values(
                status=RecipientStatus.PENDING,
                external_message_id=None,
                error_message=None,
                error_code=None,
                error_retryable=False,
                retry_count=0,
                sent_at=None,
                delivered_at=None,
                read_at=None,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
