"""ResumeCampaign Use Case"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.task_runner import TaskRunner
from src.app.repositories.campaign_repository import CampaignRepository
from src.domain.base import utcnow
from src.domain.campaign import CampaignStatus
from .dtos import CampaignResponseDTO
from .start_campaign import DispatchRunner
from .state import dispatch_task_key, state_error

logger = logging.getLogger(__name__)


class ResumeCampaign:
    """
    Use Case: Resume a paused campaign

    The dispatch loop restarts at last_processed_index, so recipients
    already processed are never sent again. If the previous loop is still
    winding down, the task runner starts the new one as soon as it ends,
    so a resumed campaign never stays running without a loop.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        campaign_repo: CampaignRepository,
        task_runner: TaskRunner,
        dispatch_runner: DispatchRunner,
    ):
        self.uow = uow
        self.campaign_repo = campaign_repo
        self.task_runner = task_runner
        self.dispatch_runner = dispatch_runner

    async def execute(self, campaign_id: int) -> Result[CampaignResponseDTO]:
        try:
            changed = await self.campaign_repo.transition(
                campaign_id,
                [CampaignStatus.PAUSED],
                CampaignStatus.RUNNING,
                error_message=None,
                updated_at=utcnow(),
            )
            if not changed:
                await self.uow.rollback()
                return Return.err(await state_error(self.campaign_repo, campaign_id, "resume"))

            await self.uow.commit()

            submitted = self.task_runner.submit(
                dispatch_task_key(campaign_id),
                lambda: self.dispatch_runner(campaign_id),
                run_again_if_busy=True,
            )
            if submitted:
                logger.info(f"Campaign {campaign_id} resumed")
            else:
                logger.info(f"Campaign {campaign_id} resumed; dispatch restarts when the previous loop ends")

            campaign = await self.campaign_repo.get_by_id(campaign_id)
            return Return.ok(CampaignResponseDTO.from_entity(campaign))

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(code="RESUME_CAMPAIGN_FAILED", message="Failed to resume campaign", reason=str(e))
            )
