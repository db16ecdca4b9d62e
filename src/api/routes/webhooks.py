"""WhatsApp webhook routes

Subscription verification and delivery status callbacks from the
WhatsApp Cloud API.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import PlainTextResponse
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from libs.result import Error
from src.api.schemas.campaign_request import WhatsAppWebhookSchema, webhook_error_fields
from src.app.use_cases.campaigns import ApplyMessageStatus, MessageStatusCommandDTO
from src.adapter.repositories import (
    SqlAlchemyCampaignRecipientRepository,
    SqlAlchemyCampaignRepository,
)
from src.adapter.services import SqlAlchemyUnitOfWork
from src.depends import get_session
from src.api.error import ClientError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Webhook timestamps are unix seconds as strings"""
    if not value:
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


@router.get("/whatsapp", response_class=PlainTextResponse)
async def verify_subscription(
    mode: Optional[str] = Query(default=None, alias="hub.mode"),
    verify_token: Optional[str] = Query(default=None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(default=None, alias="hub.challenge"),
):
    """Echo the challenge when Meta verifies the webhook subscription."""
    expected = ApplicationConfig.META_WEBHOOK_VERIFY_TOKEN
    if mode != "subscribe" or not expected or verify_token != expected:
        raise ClientError(
            Error(code="WEBHOOK_VERIFICATION_FAILED", message="Webhook verification failed"),
            status_code=status.HTTP_403_FORBIDDEN,
        )
    return PlainTextResponse(challenge or "")


@router.post("/whatsapp", status_code=status.HTTP_200_OK)
async def receive_status_updates(
    payload: WhatsAppWebhookSchema,
    session: AsyncSession = Depends(get_session)
):
    """
    Apply delivery status updates to campaign recipients.

    Updates for unknown message ids are ignored so the provider does not
    keep redelivering them. Out-of-order updates never move a recipient
    backwards.
    """
    use_case = ApplyMessageStatus(
        uow=SqlAlchemyUnitOfWork(session),
        campaign_repo=SqlAlchemyCampaignRepository(session),
        recipient_repo=SqlAlchemyCampaignRecipientRepository(session),
    )

    received = applied = ignored = 0
    for update in payload.iter_statuses():
        received += 1
        result = await use_case.execute(
            MessageStatusCommandDTO(
                external_message_id=update.id,
                status=update.status,
                timestamp=parse_timestamp(update.timestamp),
                **webhook_error_fields(update),
            )
        )
        if result.is_err():
            ignored += 1
            if result.error.code.endswith("_FAILED"):
                logger.error(f"Status update for {update.id} failed: {result.error.reason}")
            else:
                logger.info(f"Ignoring status update for {update.id}: {result.error.message}")
        elif result.value.applied:
            applied += 1
        else:
            ignored += 1

    return {"received": received, "applied": applied, "ignored": ignored}
