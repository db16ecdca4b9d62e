"""PauseCampaign Use Case"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.campaign_repository import CampaignRepository
from src.domain.base import utcnow
from src.domain.campaign import CampaignStatus
from .dtos import CampaignResponseDTO
from .state import state_error

logger = logging.getLogger(__name__)


class PauseCampaign:
    """
    Use Case: Pause a running campaign

    Only flips the durable status; the dispatch loop notices it at the next
    batch boundary (or mid-interval) and stops with its cursor intact.
    """

    def __init__(self, uow: UnitOfWork, campaign_repo: CampaignRepository):
        self.uow = uow
        self.campaign_repo = campaign_repo

    async def execute(self, campaign_id: int) -> Result[CampaignResponseDTO]:
        try:
            changed = await self.campaign_repo.transition(
                campaign_id,
                [CampaignStatus.RUNNING],
                CampaignStatus.PAUSED,
                updated_at=utcnow(),
            )
            if not changed:
                await self.uow.rollback()
                return Return.err(await state_error(self.campaign_repo, campaign_id, "pause"))

            await self.uow.commit()
            logger.info(f"Campaign {campaign_id} paused")

            campaign = await self.campaign_repo.get_by_id(campaign_id)
            return Return.ok(CampaignResponseDTO.from_entity(campaign))

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(code="PAUSE_CAMPAIGN_FAILED", message="Failed to pause campaign", reason=str(e))
            )
