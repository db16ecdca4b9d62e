"""Get Refund Stats Use Case"""

from libs.result import Result, Return
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.credit_transaction import TransactionType
from .dtos import CreditTransactionResponseDTO, RefundStatsDTO


class GetRefundStats:
    """Totals of the refund transactions recorded for one campaign"""

    def __init__(self, transaction_repo: CreditTransactionRepository):
        self.transaction_repo = transaction_repo

    async def execute(self, campaign_id: int) -> Result[RefundStatsDTO]:
        refunds = await self.transaction_repo.list_by_campaign(
            campaign_id, transaction_type=TransactionType.REFUND
        )

        total_failed = 0
        total_messages = 0
        for refund in refunds:
            metadata = refund.metadata_json or {}
            total_failed += int(metadata.get("failed_count", 0))
            total_messages += int(metadata.get("total_count", 0))

        return Return.ok(
            RefundStatsDTO(
                campaign_id=campaign_id,
                total_refunded=sum(refund.amount for refund in refunds),
                total_failed_messages=total_failed,
                total_messages=total_messages,
                refund_transactions=[CreditTransactionResponseDTO.from_entity(r) for r in refunds],
            )
        )
