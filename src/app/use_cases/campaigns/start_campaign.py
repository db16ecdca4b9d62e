"""StartCampaign Use Case

Charges the campaign's required credits, moves it to running and hands
the dispatch loop to the task runner without waiting for it.
"""

import logging
from typing import Any, Awaitable, Callable
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.task_runner import TaskRunner
from src.app.repositories.campaign_repository import CampaignRepository
from src.app.repositories.campaign_recipient_repository import CampaignRecipientRepository
from src.app.repositories.category_repository import CategoryRepository
from src.app.use_cases.credits import CalculateRequiredCredits, DebitCredits, DebitCommandDTO
from src.domain.base import utcnow
from src.domain.campaign import CampaignStatus
from .dtos import CampaignResponseDTO, StartCampaignResponseDTO
from .state import debit_idempotency_key, dispatch_task_key, state_error

logger = logging.getLogger(__name__)

STARTABLE_STATUSES = (CampaignStatus.DRAFT, CampaignStatus.SCHEDULED)

DispatchRunner = Callable[[int], Awaitable[Any]]


class StartCampaign:
    """
    Use Case: Start a draft or due scheduled campaign

    Business Rules:
    1. Valid only from draft, or scheduled once scheduled_at has passed
    2. Category must exist and be active; the campaign needs recipients
    3. Required credits are debited once per run (idempotency key scoped by
       run_number); on insufficient credit nothing changes
    4. The status change and the debit commit together
    5. Returns immediately; progress is observed through the campaign status

    Flow:
    1. Load and validate campaign, category, recipients
    2. Price the run
    3. Compare-and-set status -> running (uncommitted)
    4. Debit (commits the status change with it)
    5. Submit the dispatch loop to the task runner
    """

    def __init__(
        self,
        uow: UnitOfWork,
        campaign_repo: CampaignRepository,
        recipient_repo: CampaignRecipientRepository,
        category_repo: CategoryRepository,
        debit_credits: DebitCredits,
        required_credits: CalculateRequiredCredits,
        task_runner: TaskRunner,
        dispatch_runner: DispatchRunner,
    ):
        self.uow = uow
        self.campaign_repo = campaign_repo
        self.recipient_repo = recipient_repo
        self.category_repo = category_repo
        self.debit_credits = debit_credits
        self.required_credits = required_credits
        self.task_runner = task_runner
        self.dispatch_runner = dispatch_runner

    async def execute(self, campaign_id: int) -> Result[StartCampaignResponseDTO]:
        try:
            # Step 1: Validate
            campaign = await self.campaign_repo.get_by_id(campaign_id)
            if not campaign:
                return Return.err(
                    Error(code="CAMPAIGN_NOT_FOUND", message=f"Campaign {campaign_id} not found")
                )

            if campaign.status not in STARTABLE_STATUSES:
                return Return.err(await state_error(self.campaign_repo, campaign_id, "start"))

            now = utcnow()
            if (
                campaign.status == CampaignStatus.SCHEDULED
                and campaign.scheduled_at is not None
                and campaign.scheduled_at > now
            ):
                return Return.err(
                    Error(
                        code="CAMPAIGN_STATE_ERROR",
                        message=f"Campaign {campaign_id} is scheduled for {campaign.scheduled_at.isoformat()}",
                        reason="scheduled time not reached",
                    )
                )

            task_key = dispatch_task_key(campaign_id)
            if self.task_runner.is_running(task_key):
                return Return.err(
                    Error(
                        code="CAMPAIGN_ALREADY_RUNNING",
                        message=f"Campaign {campaign_id} already has a dispatch in progress",
                    )
                )

            category = await self.category_repo.get_by_id(campaign.category_id)
            if not category:
                return Return.err(
                    Error(code="CATEGORY_NOT_FOUND", message=f"Category {campaign.category_id} not found")
                )
            if not category.is_active:
                return Return.err(
                    Error(code="VALIDATION_ERROR", message=f"Category {category.id} is not active")
                )

            recipient_count = await self.recipient_repo.count(campaign_id)
            if recipient_count == 0:
                return Return.err(
                    Error(code="VALIDATION_ERROR", message="Campaign has no recipients")
                )

            # Step 2: Price the run
            pricing = await self.required_credits.execute(campaign, category, recipient_count)
            if pricing.is_err():
                return Return.err(pricing.error)
            required = pricing.value.required_credits

            # Step 3: Status change, committed together with the debit
            changed = await self.campaign_repo.transition(
                campaign_id,
                [CampaignStatus(campaign.status)],
                CampaignStatus.RUNNING,
                started_at=now,
                completed_at=None,
                credits_charged=required,
                total_count=recipient_count,
                error_message=None,
                updated_at=now,
            )
            if not changed:
                await self.uow.rollback()
                return Return.err(await state_error(self.campaign_repo, campaign_id, "start"))

            # Step 4: Debit
            transaction_id = None
            if required > 0:
                debit = await self.debit_credits.execute(
                    DebitCommandDTO(
                        owner_id=campaign.owner_id,
                        category_id=campaign.category_id,
                        amount=required,
                        campaign_id=campaign_id,
                        idempotency_key=debit_idempotency_key(campaign_id, campaign.run_number),
                    )
                )
                if debit.is_err():
                    await self.uow.rollback()
                    logger.warning(
                        f"Campaign {campaign_id} not started: {debit.error.code} ({debit.error.message})"
                    )
                    return Return.err(debit.error)
                transaction_id = debit.value.transaction_id

            await self.uow.commit()
            logger.info(f"Campaign {campaign_id} started: {recipient_count} recipients, {required} credits")

            # Step 5: Fire and forget
            submitted = self.task_runner.submit(task_key, lambda: self.dispatch_runner(campaign_id))
            if not submitted:
                logger.warning(f"Campaign {campaign_id} dispatch already in flight; not submitted again")

            started = await self.campaign_repo.get_by_id(campaign_id)
            return Return.ok(
                StartCampaignResponseDTO(
                    campaign=CampaignResponseDTO.from_entity(started),
                    credits_charged=required,
                    transaction_id=transaction_id,
                    dispatch_submitted=submitted,
                )
            )

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(code="START_CAMPAIGN_FAILED", message="Failed to start campaign", reason=str(e))
            )
