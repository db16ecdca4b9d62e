"""CancelCampaign Use Case"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.campaign_repository import CampaignRepository
from src.domain.base import utcnow
from src.domain.campaign import CampaignStatus
from .dtos import CampaignResponseDTO
from .state import state_error

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = (CampaignStatus.RUNNING, CampaignStatus.PAUSED, CampaignStatus.SCHEDULED)


class CancelCampaign:
    """
    Use Case: Cancel a running, paused or scheduled campaign

    Cooperative: an in-flight send finishes, then the loop stops at its
    next status check.
    """

    def __init__(self, uow: UnitOfWork, campaign_repo: CampaignRepository):
        self.uow = uow
        self.campaign_repo = campaign_repo

    async def execute(self, campaign_id: int) -> Result[CampaignResponseDTO]:
        try:
            now = utcnow()
            changed = await self.campaign_repo.transition(
                campaign_id,
                CANCELLABLE_STATUSES,
                CampaignStatus.CANCELLED,
                completed_at=now,
                updated_at=now,
            )
            if not changed:
                await self.uow.rollback()
                return Return.err(await state_error(self.campaign_repo, campaign_id, "cancel"))

            await self.uow.commit()
            logger.info(f"Campaign {campaign_id} cancelled")

            campaign = await self.campaign_repo.get_by_id(campaign_id)
            return Return.ok(CampaignResponseDTO.from_entity(campaign))

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(code="CANCEL_CAMPAIGN_FAILED", message="Failed to cancel campaign", reason=str(e))
            )
