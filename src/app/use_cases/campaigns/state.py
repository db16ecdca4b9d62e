"""Shared helpers for campaign status changes"""

from libs.result import Error
from src.app.repositories.campaign_repository import CampaignRepository
from src.domain.campaign import CampaignStatus
from src.domain.errors import CampaignStateError


def dispatch_task_key(campaign_id: int) -> str:
    return f"campaign:{campaign_id}"


def debit_idempotency_key(campaign_id: int, run_number: int) -> str:
    return f"campaign:{campaign_id}:run:{run_number}:debit"


def refund_idempotency_key(campaign_id: int, run_number: int) -> str:
    return f"campaign:{campaign_id}:run:{run_number}:refund"


async def state_error(campaign_repo: CampaignRepository, campaign_id: int, operation: str) -> Error:
    """Error for a rejected compare-and-set: not found, or the status that blocked it"""
    status = await campaign_repo.get_status(campaign_id)
    if status is None:
        return Error(code="CAMPAIGN_NOT_FOUND", message=f"Campaign {campaign_id} not found")

    error = CampaignStateError(campaign_id, CampaignStatus(status).value, operation)
    return Error(
        code="CAMPAIGN_STATE_ERROR",
        message=str(error),
        reason=f"status={error.current}",
    )
