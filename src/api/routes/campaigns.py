"""Campaign API Routes

FastAPI routes for the campaign lifecycle: create, schedule, start,
pause, resume, cancel, rerun, pricing and refund policy.
"""

from fastapi import APIRouter, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession

from libs.result import Error
from src.api.schemas.campaign_request import ScheduleRequestSchema
from src.api.schemas.credit_request import RefundPolicyRequestSchema
from src.app.services import TaskRunner
from src.app.use_cases.campaigns import (
    CampaignResponseDTO,
    CancelCampaign,
    CreateCampaign,
    CreateCampaignCommandDTO,
    DispatchRunner,
    GetCampaign,
    PauseCampaign,
    RerunCampaign,
    ResumeCampaign,
    ScheduleCampaign,
    ScheduleCampaignCommandDTO,
    StartCampaignResponseDTO,
)
from src.app.use_cases.credits import (
    CalculateRequiredCredits,
    GetRefundStats,
    RefundPolicyResponseDTO,
    RefundStatsDTO,
    RequiredCreditsDTO,
    UpdateRefundPolicy,
    UpdateRefundPolicyCommandDTO,
)
from src.adapter.repositories import (
    SqlAlchemyCampaignCreditRepository,
    SqlAlchemyCampaignRecipientRepository,
    SqlAlchemyCampaignRepository,
    SqlAlchemyCategoryRepository,
    SqlAlchemyCreditTransactionRepository,
    SqlAlchemyOwnerRepository,
)
from src.adapter.services import SqlAlchemyUnitOfWork
from src.depends import build_start_campaign, get_dispatch_runner, get_session, get_task_runner
from src.api.error import ClientError

router = APIRouter(prefix="/campaigns", tags=["Campaigns"])

STATE_CONFLICT_RESPONSE = {
    "description": "Operation not valid for the campaign's current status",
    "content": {
        "application/json": {
            "example": {
                "error": {
                    "code": "CAMPAIGN_STATE_ERROR",
                    "message": "Cannot pause campaign 12 while it is completed",
                }
            }
        }
    },
}


@router.post(
    "",
    response_model=CampaignResponseDTO,
    status_code=status.HTTP_201_CREATED,
)
async def create_campaign(
    request: CreateCampaignCommandDTO,
    session: AsyncSession = Depends(get_session)
):
    """Create a campaign in draft together with its recipients."""
    use_case = CreateCampaign(
        uow=SqlAlchemyUnitOfWork(session),
        owner_repo=SqlAlchemyOwnerRepository(session),
        category_repo=SqlAlchemyCategoryRepository(session),
        campaign_repo=SqlAlchemyCampaignRepository(session),
        recipient_repo=SqlAlchemyCampaignRecipientRepository(session),
        campaign_credit_repo=SqlAlchemyCampaignCreditRepository(session),
    )

    result = await use_case.execute(request)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.get(
    "/{campaign_id}",
    response_model=CampaignResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def get_campaign(
    campaign_id: int,
    session: AsyncSession = Depends(get_session)
):
    """Campaign status, counters and checkpoint."""
    result = await GetCampaign(SqlAlchemyCampaignRepository(session)).execute(campaign_id)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/{campaign_id}/schedule",
    response_model=CampaignResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={409: STATE_CONFLICT_RESPONSE},
)
async def schedule_campaign(
    campaign_id: int,
    request: ScheduleRequestSchema,
    session: AsyncSession = Depends(get_session)
):
    """Schedule a draft campaign; the scheduler worker starts it once due."""
    use_case = ScheduleCampaign(
        uow=SqlAlchemyUnitOfWork(session),
        campaign_repo=SqlAlchemyCampaignRepository(session),
    )

    result = await use_case.execute(
        campaign_id, ScheduleCampaignCommandDTO(start_at=request.start_at)
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/{campaign_id}/start",
    response_model=StartCampaignResponseDTO,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        402: {
            "description": "Insufficient credits for the campaign",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "INSUFFICIENT_CREDIT",
                            "message": "Insufficient credits. Required: 100, Available: 40",
                        }
                    }
                }
            },
        },
        409: STATE_CONFLICT_RESPONSE,
    },
)
async def start_campaign(
    campaign_id: int,
    session: AsyncSession = Depends(get_session),
    task_runner: TaskRunner = Depends(get_task_runner),
    dispatch_runner: DispatchRunner = Depends(get_dispatch_runner),
):
    """
    Charge the campaign's credits and start dispatching.

    Returns as soon as the debit commits; the batches are sent in the
    background and progress shows up in the campaign's status and stats.
    """
    use_case = build_start_campaign(session, task_runner, dispatch_runner)

    result = await use_case.execute(campaign_id)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/{campaign_id}/pause",
    response_model=CampaignResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={409: STATE_CONFLICT_RESPONSE},
)
async def pause_campaign(
    campaign_id: int,
    session: AsyncSession = Depends(get_session)
):
    """Pause a running campaign after the batch in flight."""
    use_case = PauseCampaign(
        uow=SqlAlchemyUnitOfWork(session),
        campaign_repo=SqlAlchemyCampaignRepository(session),
    )

    result = await use_case.execute(campaign_id)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/{campaign_id}/resume",
    response_model=CampaignResponseDTO,
    status_code=status.HTTP_202_ACCEPTED,
    responses={409: STATE_CONFLICT_RESPONSE},
)
async def resume_campaign(
    campaign_id: int,
    session: AsyncSession = Depends(get_session),
    task_runner: TaskRunner = Depends(get_task_runner),
    dispatch_runner: DispatchRunner = Depends(get_dispatch_runner),
):
    """Resume a paused campaign from its last checkpoint without charging again."""
    use_case = ResumeCampaign(
        uow=SqlAlchemyUnitOfWork(session),
        campaign_repo=SqlAlchemyCampaignRepository(session),
        task_runner=task_runner,
        dispatch_runner=dispatch_runner,
    )

    result = await use_case.execute(campaign_id)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/{campaign_id}/cancel",
    response_model=CampaignResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={409: STATE_CONFLICT_RESPONSE},
)
async def cancel_campaign(
    campaign_id: int,
    session: AsyncSession = Depends(get_session)
):
    """Cancel a scheduled, running or paused campaign. Credits are not refunded."""
    use_case = CancelCampaign(
        uow=SqlAlchemyUnitOfWork(session),
        campaign_repo=SqlAlchemyCampaignRepository(session),
    )

    result = await use_case.execute(campaign_id)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/{campaign_id}/rerun",
    response_model=CampaignResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={409: STATE_CONFLICT_RESPONSE},
)
async def rerun_campaign(
    campaign_id: int,
    session: AsyncSession = Depends(get_session)
):
    """Reset a finished campaign's recipients and counters so it can run again."""
    use_case = RerunCampaign(
        uow=SqlAlchemyUnitOfWork(session),
        campaign_repo=SqlAlchemyCampaignRepository(session),
        recipient_repo=SqlAlchemyCampaignRecipientRepository(session),
    )

    result = await use_case.execute(campaign_id)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.get(
    "/{campaign_id}/required-credits",
    response_model=RequiredCreditsDTO,
    status_code=status.HTTP_200_OK,
)
async def get_required_credits(
    campaign_id: int,
    session: AsyncSession = Depends(get_session)
):
    """Price a campaign run without charging for it."""
    campaign = await SqlAlchemyCampaignRepository(session).get_by_id(campaign_id)
    if not campaign:
        raise ClientError(
            Error(code="CAMPAIGN_NOT_FOUND", message=f"Campaign {campaign_id} not found")
        )

    category = await SqlAlchemyCategoryRepository(session).get_by_id(campaign.category_id)
    if not category:
        raise ClientError(
            Error(code="CATEGORY_NOT_FOUND", message=f"Category {campaign.category_id} not found")
        )

    recipient_count = await SqlAlchemyCampaignRecipientRepository(session).count(campaign_id)
    result = await CalculateRequiredCredits().execute(campaign, category, recipient_count)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.put(
    "/{campaign_id}/refund-policy",
    response_model=RefundPolicyResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def update_refund_policy(
    campaign_id: int,
    request: RefundPolicyRequestSchema,
    session: AsyncSession = Depends(get_session)
):
    """Replace the refund policy applied when the campaign's messages fail."""
    campaign = await SqlAlchemyCampaignRepository(session).get_by_id(campaign_id)
    if not campaign:
        raise ClientError(
            Error(code="CAMPAIGN_NOT_FOUND", message=f"Campaign {campaign_id} not found")
        )

    use_case = UpdateRefundPolicy(
        uow=SqlAlchemyUnitOfWork(session),
        campaign_credit_repo=SqlAlchemyCampaignCreditRepository(session),
    )

    result = await use_case.execute(
        UpdateRefundPolicyCommandDTO(campaign_id=campaign_id, **request.model_dump())
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.get(
    "/{campaign_id}/refund-stats",
    response_model=RefundStatsDTO,
    status_code=status.HTTP_200_OK,
)
async def get_refund_stats(
    campaign_id: int,
    session: AsyncSession = Depends(get_session)
):
    """Refund totals across every run of a campaign."""
    use_case = GetRefundStats(SqlAlchemyCreditTransactionRepository(session))

    result = await use_case.execute(campaign_id)

    if result.is_err():
        raise ClientError(result.error)

    return result.value
