"""ApplyMessageStatus Use Case

Applies provider delivery callbacks (sent / delivered / read / failed) to
the matching recipient and moves the campaign counters with it.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.campaign_repository import CampaignRepository
from src.app.repositories.campaign_recipient_repository import CampaignRecipientRepository
from src.domain.base import to_naive_utc, utcnow
from src.domain.campaign_recipient import RecipientStatus, counter_deltas, is_forward_move
from .dtos import MessageStatusCommandDTO, MessageStatusResultDTO

logger = logging.getLogger(__name__)


class ApplyMessageStatus:
    """
    Use Case: Apply a delivery status callback

    Business Rules:
    1. Statuses only move forward (sent -> delivered -> read; any -> failed)
    2. Backward or repeated updates are acknowledged but not applied
    3. Counter deltas and the recipient update commit together
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

    async def execute(self, command: MessageStatusCommandDTO) -> Result[MessageStatusResultDTO]:
        try:
            target = RecipientStatus(command.status.lower())
        except ValueError:
            return Return.err(
                Error(code="VALIDATION_ERROR", message=f"Unknown message status '{command.status}'")
            )
        if target == RecipientStatus.PENDING:
            return Return.err(
                Error(code="VALIDATION_ERROR", message="Message status cannot move back to pending")
            )

        try:
            recipient = await self.recipient_repo.get_by_external_id(command.external_message_id)
            if not recipient:
                return Return.err(
                    Error(
                        code="RECIPIENT_NOT_FOUND",
                        message=f"No recipient with message id {command.external_message_id}",
                    )
                )

            current = RecipientStatus(recipient.status)
            if not is_forward_move(current, target):
                return Return.ok(
                    MessageStatusResultDTO(
                        campaign_id=recipient.campaign_id,
                        recipient_position=recipient.position,
                        status=current.value,
                        applied=False,
                    )
                )

            timestamp = to_naive_utc(command.timestamp) if command.timestamp else utcnow()
            recipient.status = target
            if target == RecipientStatus.DELIVERED:
                recipient.delivered_at = timestamp
            elif target == RecipientStatus.READ:
                recipient.read_at = timestamp
                recipient.delivered_at = recipient.delivered_at or timestamp
            elif target == RecipientStatus.FAILED:
                recipient.error_code = command.error_code
                recipient.error_message = command.error_message
                recipient.error_retryable = False
            elif target == RecipientStatus.SENT:
                recipient.sent_at = recipient.sent_at or timestamp

            await self.recipient_repo.save_many([recipient])
            await self.campaign_repo.increment_counters(
                recipient.campaign_id, counter_deltas(current, target)
            )
            await self.uow.commit()

            return Return.ok(
                MessageStatusResultDTO(
                    campaign_id=recipient.campaign_id,
                    recipient_position=recipient.position,
                    status=target.value,
                    applied=True,
                )
            )

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="APPLY_MESSAGE_STATUS_FAILED",
                    message="Failed to apply message status",
                    reason=str(e),
                )
            )
