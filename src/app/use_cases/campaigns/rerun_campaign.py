"""RerunCampaign Use Case"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.campaign_repository import CampaignRepository
from src.app.repositories.campaign_recipient_repository import CampaignRecipientRepository
from src.domain.base import utcnow
from src.domain.campaign import CampaignStatus, TERMINAL_STATUSES
from .dtos import CampaignResponseDTO
from .state import state_error

logger = logging.getLogger(__name__)


class RerunCampaign:
    """
    Use Case: Prepare a finished campaign for another run

    Resets every recipient to pending, zeroes the counters and cursor and
    bumps run_number, keeping recipients and message content. Goes back to
    scheduled when the campaign has a future start time, otherwise draft.
    Does not start the campaign.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        campaign_repo: CampaignRepository,
        recipient_repo: CampaignRecipientRepository,
    ):
        self.uow = uow
        self.campaign_repo = campaign_repo
        self.recipient_repo = recipient_repo

    async def execute(self, campaign_id: int) -> Result[CampaignResponseDTO]:
        try:
            campaign = await self.campaign_repo.get_by_id(campaign_id)
            if not campaign:
                return Return.err(
                    Error(code="CAMPAIGN_NOT_FOUND", message=f"Campaign {campaign_id} not found")
                )

            target = CampaignStatus.DRAFT
            if campaign.scheduled_at is not None and campaign.scheduled_at > utcnow():
                target = CampaignStatus.SCHEDULED

            total_count = await self.recipient_repo.count(campaign_id)
            changed = await self.campaign_repo.reset_for_rerun(
                campaign_id, TERMINAL_STATUSES, target, total_count
            )
            if not changed:
                await self.uow.rollback()
                return Return.err(await state_error(self.campaign_repo, campaign_id, "rerun"))

            await self.recipient_repo.reset_all(campaign_id)
            await self.uow.commit()

            logger.info(f"Campaign {campaign_id} reset for rerun ({target.value})")
            rerun = await self.campaign_repo.get_by_id(campaign_id)
            return Return.ok(CampaignResponseDTO.from_entity(rerun))

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(code="RERUN_CAMPAIGN_FAILED", message="Failed to rerun campaign", reason=str(e))
            )
