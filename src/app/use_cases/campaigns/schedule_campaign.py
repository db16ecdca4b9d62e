"""ScheduleCampaign Use Case"""

from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.campaign_repository import CampaignRepository
from src.domain.base import to_naive_utc, utcnow
from src.domain.campaign import CampaignStatus
from .dtos import CampaignResponseDTO, ScheduleCampaignCommandDTO
from .state import state_error


class ScheduleCampaign:
    """
    Use Case: Schedule a draft campaign

    The campaign scheduler worker starts it once start_at has passed.
    """

    def __init__(self, uow: UnitOfWork, campaign_repo: CampaignRepository):
        self.uow = uow
        self.campaign_repo = campaign_repo

    async def execute(
        self, campaign_id: int, command: ScheduleCampaignCommandDTO
    ) -> Result[CampaignResponseDTO]:
        now = utcnow()
        start_at = to_naive_utc(command.start_at)

        if start_at <= now:
            return Return.err(
                Error(
                    code="VALIDATION_ERROR",
                    message="Scheduled start time must be in the future",
                    reason=f"start_at={start_at.isoformat()}",
                )
            )

        try:
            changed = await self.campaign_repo.transition(
                campaign_id,
                [CampaignStatus.DRAFT],
                CampaignStatus.SCHEDULED,
                scheduled_at=start_at,
                updated_at=now,
            )
            if not changed:
                await self.uow.rollback()
                return Return.err(await state_error(self.campaign_repo, campaign_id, "schedule"))

            await self.uow.commit()

            campaign = await self.campaign_repo.get_by_id(campaign_id)
            return Return.ok(CampaignResponseDTO.from_entity(campaign))

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(code="SCHEDULE_CAMPAIGN_FAILED", message="Failed to schedule campaign", reason=str(e))
            )
