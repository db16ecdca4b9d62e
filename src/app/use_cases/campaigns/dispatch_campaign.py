"""DispatchCampaign Use Case

The campaign send loop: resumes at last_processed_index, sends
recipients in fixed-size batches and checkpoints after every batch.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.message_sender import MessageSender
from src.app.services.rate_limiter import RateLimiter
from src.app.repositories.campaign_repository import CampaignRepository
from src.app.repositories.campaign_recipient_repository import CampaignRecipientRepository
from src.app.use_cases.credits import RefundCampaignCredits, RefundCommandDTO
from src.domain.base import utcnow
from src.domain.campaign import RATE_LIMIT_PAUSE_REASON, Campaign, CampaignStatus, MessageSpec
from src.domain.campaign_recipient import (
    CampaignRecipient,
    RecipientStatus,
    SUCCESS_STATUSES,
    counter_deltas,
)
from src.domain.errors import ProviderAuthenticationError, ProviderError
from .dtos import DispatchResultDTO
from .message_builder import MessageBuilder
from .state import refund_idempotency_key

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class BatchOutcome:
    processed: List[CampaignRecipient] = field(default_factory=list)
    sent: int = 0
    failed: int = 0
    halted_at: Optional[int] = None
    rate_limited: bool = False
    stop_error: Optional[ProviderError] = None
    fatal: Optional[ProviderAuthenticationError] = None

    def record(self, recipient: CampaignRecipient) -> None:
        self.processed.append(recipient)
        if recipient.status == RecipientStatus.FAILED:
            self.failed += 1
        else:
            self.sent += 1


class DispatchCampaign:
    """
    Use Case: Run the dispatch loop for one campaign

    Loop:
    1. Re-read status before every batch; stop unless running
    2. Send the batch sequentially, one rate-limiter token per send
    3. Persist each recipient and its counter deltas right after its send,
       so delivery callbacks can find it; persist the cursor after the batch
    4. Sleep interval_minutes between batches (cut short by pause/cancel)
    5. Retry pass for failed recipients still flagged retryable
    6. running -> completed, then request the completion refund

    Per-recipient provider errors are recorded on the recipient and never
    abort the batch unless stop_on_error is set (pause + refund of unsent).
    An exhausted rate limiter pauses the campaign at the first unsent
    recipient. Authentication errors and unexpected exceptions fail the
    campaign and refund unsent recipients.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        campaign_repo: CampaignRepository,
        recipient_repo: CampaignRecipientRepository,
        message_sender: MessageSender,
        rate_limiter: RateLimiter,
        refund_credits: RefundCampaignCredits,
        message_builder: Optional[MessageBuilder] = None,
        sleep: Sleep = asyncio.sleep,
        status_poll_seconds: float = 5.0,
    ):
        self.uow = uow
        self.campaign_repo = campaign_repo
        self.recipient_repo = recipient_repo
        self.message_sender = message_sender
        self.rate_limiter = rate_limiter
        self.refund_credits = refund_credits
        self.message_builder = message_builder or MessageBuilder()
        self.sleep = sleep
        self.status_poll_seconds = status_poll_seconds

    async def execute(self, campaign_id: int) -> Result[DispatchResultDTO]:
        campaign = await self.campaign_repo.get_by_id(campaign_id)
        if not campaign:
            return Return.err(
                Error(code="CAMPAIGN_NOT_FOUND", message=f"Campaign {campaign_id} not found")
            )

        result = DispatchResultDTO(
            campaign_id=campaign_id,
            status=CampaignStatus(campaign.status).value,
            last_processed_index=campaign.last_processed_index,
        )
        if campaign.status != CampaignStatus.RUNNING:
            result.stopped_reason = f"Campaign is {result.status}"
            return Return.ok(result)

        message = campaign.message
        try:
            total = await self.recipient_repo.count(campaign_id)
            index = campaign.last_processed_index

            # Main pass
            while index < total:
                status = await self.campaign_repo.get_status(campaign_id)
                if status != CampaignStatus.RUNNING:
                    return Return.ok(self._stopped(result, status))

                end = min(index + campaign.batch_size, total)
                batch = await self.recipient_repo.list_range(campaign_id, index, end)
                outcome = await self._send_batch(campaign, message, batch, pending_only=True)

                next_index = outcome.halted_at if outcome.halted_at is not None else end
                await self.campaign_repo.save_checkpoint(campaign_id, next_index)
                await self.uow.commit()

                index = next_index
                result.batches_processed += 1
                result.sent += outcome.sent
                result.failed += outcome.failed
                result.last_processed_index = index

                halted = await self._handle_halt(campaign, outcome, result, total)
                if halted is not None:
                    return halted

                if index < total and campaign.interval_minutes > 0:
                    await self._wait(campaign_id, campaign.interval_minutes * 60)

            # Retry pass
            while True:
                status = await self.campaign_repo.get_status(campaign_id)
                if status != CampaignStatus.RUNNING:
                    return Return.ok(self._stopped(result, status))

                candidates = await self.recipient_repo.list_retry_candidates(
                    campaign_id, limit=campaign.batch_size
                )
                if not candidates:
                    break

                outcome = await self._send_batch(campaign, message, candidates)
                result.retried += len(outcome.processed)
                result.sent += outcome.sent
                result.failed += outcome.failed

                halted = await self._handle_halt(campaign, outcome, result, total)
                if halted is not None:
                    return halted

            # Completion
            now = utcnow()
            completed = await self.campaign_repo.transition(
                campaign_id,
                [CampaignStatus.RUNNING],
                CampaignStatus.COMPLETED,
                completed_at=now,
                updated_at=now,
            )
            await self.uow.commit()

            if not completed:
                status = await self.campaign_repo.get_status(campaign_id)
                return Return.ok(self._stopped(result, status))

            result.status = CampaignStatus.COMPLETED.value
            counts = await self.recipient_repo.count_by_status(campaign_id)
            failed_count = counts.get(RecipientStatus.FAILED, 0)
            logger.info(
                f"Campaign {campaign_id} completed: {total - failed_count} sent, {failed_count} failed"
            )
            await self._request_refund(campaign, failed_count, total)
            return Return.ok(result)

        except ProviderAuthenticationError as e:
            return await self._fail(campaign, result, f"Provider authentication failed: {e.message}")
        except Exception as e:
            return await self._fail(campaign, result, str(e))

    async def _send_batch(
        self,
        campaign: Campaign,
        message: MessageSpec,
        recipients: List[CampaignRecipient],
        pending_only: bool = False,
    ) -> BatchOutcome:
        outcome = BatchOutcome()

        for recipient in recipients:
            if pending_only and recipient.status != RecipientStatus.PENDING:
                # Saved by an earlier run that stopped before its checkpoint
                continue

            if not self.rate_limiter.try_acquire():
                outcome.rate_limited = True
                outcome.halted_at = recipient.position
                break

            delay = self.message_builder.jitter_seconds(
                campaign.min_delay_seconds, campaign.max_delay_seconds
            )
            if delay > 0:
                await self.sleep(delay)

            outbound = self.message_builder.build(
                message, recipient.variables, campaign.use_message_variations
            )
            previous = RecipientStatus(recipient.status)

            try:
                sent = await self.message_sender.send(recipient.phone_number, outbound)
            except ProviderAuthenticationError as e:
                outcome.fatal = e
                outcome.halted_at = recipient.position
                break
            except ProviderError as e:
                self._mark_failed(recipient, e, campaign.max_retries)
                await self._save_recipient(campaign.id, recipient, previous)
                outcome.record(recipient)
                logger.warning(
                    f"Campaign {campaign.id} recipient {recipient.position} failed "
                    f"({e.code}, retryable={e.retryable}): {e.message}"
                )
                if campaign.stop_on_error:
                    outcome.stop_error = e
                    outcome.halted_at = recipient.position + 1
                    break
                continue

            recipient.status = RecipientStatus.SENT
            recipient.external_message_id = sent.external_id
            recipient.sent_at = utcnow()
            recipient.error_message = None
            recipient.error_code = None
            recipient.error_retryable = False
            await self._save_recipient(campaign.id, recipient, previous)
            outcome.record(recipient)

        return outcome

    async def _save_recipient(
        self, campaign_id: int, recipient: CampaignRecipient, previous: RecipientStatus
    ) -> None:
        await self.recipient_repo.save_many([recipient])
        await self.campaign_repo.increment_counters(
            campaign_id, counter_deltas(previous, recipient.status)
        )
        await self.uow.commit()

    @staticmethod
    def _mark_failed(recipient: CampaignRecipient, error: ProviderError, max_retries: int) -> None:
        recipient.status = RecipientStatus.FAILED
        recipient.error_message = error.message
        recipient.error_code = error.code
        if error.retryable and recipient.retry_count < max_retries:
            recipient.retry_count += 1
            recipient.error_retryable = True
        else:
            recipient.error_retryable = False

    async def _handle_halt(
        self, campaign: Campaign, outcome: BatchOutcome, result: DispatchResultDTO, total: int
    ) -> Optional[Result[DispatchResultDTO]]:
        if outcome.fatal is not None:
            raise outcome.fatal

        if outcome.rate_limited:
            await self._pause(campaign, result, RATE_LIMIT_PAUSE_REASON)
            logger.warning(f"Campaign {campaign.id} paused: rate limit reached at index {result.last_processed_index}")
            return Return.ok(result)

        if outcome.stop_error is not None:
            paused = await self._pause(
                campaign,
                result,
                f"Stopped on error: {outcome.stop_error.message}",
            )
            logger.warning(f"Campaign {campaign.id} paused on error: {outcome.stop_error.message}")
            if paused:
                await self._refund_unsent(campaign, total)
            return Return.ok(result)

        return None

    async def _pause(self, campaign: Campaign, result: DispatchResultDTO, reason: str) -> bool:
        paused = await self.campaign_repo.transition(
            campaign.id,
            [CampaignStatus.RUNNING],
            CampaignStatus.PAUSED,
            error_message=reason,
            updated_at=utcnow(),
        )
        await self.uow.commit()

        status = CampaignStatus.PAUSED if paused else await self.campaign_repo.get_status(campaign.id)
        result.status = CampaignStatus(status).value if status else result.status
        result.stopped_reason = reason
        return paused

    async def _fail(
        self, campaign: Campaign, result: DispatchResultDTO, reason: str
    ) -> Result[DispatchResultDTO]:
        await self.uow.rollback()
        logger.error(f"Campaign {campaign.id} failed: {reason}")

        try:
            now = utcnow()
            failed = await self.campaign_repo.transition(
                campaign.id,
                [CampaignStatus.RUNNING],
                CampaignStatus.FAILED,
                error_message=reason,
                completed_at=now,
                updated_at=now,
            )
            await self.uow.commit()
            if failed:
                total = await self.recipient_repo.count(campaign.id)
                await self._refund_unsent(campaign, total)
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Campaign {campaign.id} could not be marked failed: {e}", exc_info=True)

        return Return.err(
            Error(
                code="DISPATCH_CAMPAIGN_FAILED",
                message=f"Campaign {campaign.id} failed",
                reason=reason,
            )
        )

    async def _refund_unsent(self, campaign: Campaign, total: int) -> None:
        counts = await self.recipient_repo.count_by_status(campaign.id)
        delivered = sum(counts.get(status, 0) for status in SUCCESS_STATUSES)
        await self._request_refund(campaign, total - delivered, total)

    async def _request_refund(self, campaign: Campaign, failed_count: int, total_count: int) -> None:
        if failed_count <= 0:
            return

        refund = await self.refund_credits.execute(
            RefundCommandDTO(
                owner_id=campaign.owner_id,
                category_id=campaign.category_id,
                failed_count=failed_count,
                total_count=total_count,
                campaign_id=campaign.id,
                idempotency_key=refund_idempotency_key(campaign.id, campaign.run_number),
            )
        )
        if refund.is_err():
            logger.error(f"Refund for campaign {campaign.id} failed: {refund.error.reason or refund.error.message}")
        elif refund.value.refunded:
            logger.info(f"Refunded {refund.value.amount} credits for campaign {campaign.id}")
        else:
            logger.info(f"No refund for campaign {campaign.id}: {refund.value.reason}")

    async def _wait(self, campaign_id: int, seconds: float) -> None:
        """Inter-batch sleep, polling status so pause/cancel cut it short"""
        remaining = seconds
        while remaining > 0:
            chunk = min(self.status_poll_seconds, remaining)
            await self.sleep(chunk)
            remaining -= chunk
            if await self.campaign_repo.get_status(campaign_id) != CampaignStatus.RUNNING:
                return

    def _stopped(self, result: DispatchResultDTO, status: Optional[CampaignStatus]) -> DispatchResultDTO:
        if status is None:
            result.stopped_reason = "Campaign no longer exists"
        else:
            result.status = CampaignStatus(status).value
            result.stopped_reason = f"Campaign is {result.status}"
        logger.info(f"Campaign {result.campaign_id} dispatch stopped ({result.status})")
        return result
