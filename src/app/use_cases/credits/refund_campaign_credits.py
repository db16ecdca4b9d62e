"""RefundCampaignCredits Use Case

Returns a percentage of credits to the owner when enough campaign
messages fail, per the campaign's refund policy.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.campaign_credit_repository import CampaignCreditRepository
from src.app.repositories.credit_ledger_repository import CreditLedgerRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.base import generate_uuid, utcnow
from src.domain.credit_transaction import CreditTransaction, TransactionType
from .dtos import RefundCommandDTO, RefundResultDTO, CreditTransactionResponseDTO
from .sweep_expired_credits import expire_balance

logger = logging.getLogger(__name__)


def calculate_refund_amount(failed_count: int, total_count: int, refund_percentage: int) -> int:
    """floor(failed / total * percentage), computed in integers"""
    if total_count <= 0 or failed_count <= 0:
        return 0
    return (failed_count * refund_percentage) // total_count


class RefundCampaignCredits:
    """
    Use Case: Refund credits for failed campaign messages

    Business Rules:
    1. Idempotency: Same idempotency_key returns the original refund
    2. No refund when the policy is missing/disabled, failures are below the
       threshold, or the computed amount is 0 (a NoRefund result, not an error)
    3. Refund amount = floor(failed_count / total_count * refund_percentage)
    4. Credit and transaction commit together
    """

    def __init__(
        self,
        uow: UnitOfWork,
        campaign_credit_repo: CampaignCreditRepository,
        ledger_repo: CreditLedgerRepository,
        transaction_repo: CreditTransactionRepository,
    ):
        self.uow = uow
        self.campaign_credit_repo = campaign_credit_repo
        self.ledger_repo = ledger_repo
        self.transaction_repo = transaction_repo

    async def execute(self, command: RefundCommandDTO) -> Result[RefundResultDTO]:
        idempotency_key = command.idempotency_key or f"campaign:{command.campaign_id}:refund:{generate_uuid()}"
        try:
            existing_transaction = await self.transaction_repo.get_by_idempotency_key(idempotency_key)
            if existing_transaction:
                return Return.ok(
                    RefundResultDTO(
                        refunded=True,
                        amount=existing_transaction.amount,
                        transaction=CreditTransactionResponseDTO.from_entity(existing_transaction),
                    )
                )

            if command.failed_count <= 0:
                return Return.ok(RefundResultDTO.no_refund("No failed messages"))

            campaign_credit = await self.campaign_credit_repo.get(command.owner_id, command.campaign_id)
            if not campaign_credit or not campaign_credit.refund_enabled:
                return Return.ok(RefundResultDTO.no_refund("Refund not enabled for this campaign"))

            if command.failed_count < campaign_credit.refund_threshold:
                return Return.ok(RefundResultDTO.no_refund("Failed messages below refund threshold"))

            amount = calculate_refund_amount(
                command.failed_count, command.total_count, campaign_credit.refund_percentage
            )
            if amount <= 0:
                return Return.ok(RefundResultDTO.no_refund("No refund amount calculated"))

            now = utcnow()
            balance = await self.ledger_repo.get_balance(
                command.owner_id, command.category_id, for_update=True
            )
            if balance and balance.is_expired(now):
                await expire_balance(self.ledger_repo, self.transaction_repo, balance, now)
                balance_before = 0
            else:
                balance_before = balance.amount if balance else 0

            updated = await self.ledger_repo.adjust(command.owner_id, command.category_id, amount)

            transaction = CreditTransaction(
                from_owner_id=command.owner_id,
                to_owner_id=command.owner_id,
                category_id=command.category_id,
                transaction_type=TransactionType.REFUND,
                amount=amount,
                balance_before=balance_before,
                balance_after=updated.amount,
                description=(
                    f"Refund for {command.failed_count} failed messages "
                    f"out of {command.total_count} total messages"
                ),
                campaign_id=command.campaign_id,
                metadata_json={
                    "failed_count": command.failed_count,
                    "total_count": command.total_count,
                    "refund_percentage": campaign_credit.refund_percentage,
                },
                idempotency_key=idempotency_key,
            )
            created_transaction = await self.transaction_repo.create(transaction)

            await self.uow.commit()

            logger.info(
                f"Refunded {amount} credits to {command.owner_id} for campaign {command.campaign_id}"
            )
            return Return.ok(
                RefundResultDTO(
                    refunded=True,
                    amount=amount,
                    transaction=CreditTransactionResponseDTO.from_entity(created_transaction),
                )
            )

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="REFUND_CREDIT_FAILED",
                    message="Failed to refund credits",
                    reason=str(e),
                )
            )
