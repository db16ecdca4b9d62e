"""SQLAlchemy implementation of CampaignCreditRepository"""

from typing import Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.campaign_credit_repository import CampaignCreditRepository
from src.domain.campaign_credit import CampaignCredit


class SqlAlchemyCampaignCreditRepository(CampaignCreditRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, owner_id: str, campaign_id: int) -> Optional[CampaignCredit]:
        stmt = select(CampaignCredit).where(
            CampaignCredit.owner_id == owner_id,
            CampaignCredit.campaign_id == campaign_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def save(self, campaign_credit: CampaignCredit) -> CampaignCredit:
        self.session.add(campaign_credit)
        await self.session.flush()
        await self.session.refresh(campaign_credit)
        return campaign_credit
