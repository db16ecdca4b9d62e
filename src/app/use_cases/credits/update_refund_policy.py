"""UpdateRefundPolicy Use Case

Replaces the refund policy of an (owner, campaign) pair.
"""

from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.campaign_credit_repository import CampaignCreditRepository
from src.domain.campaign_credit import CampaignCredit, RefundPolicy
from .dtos import UpdateRefundPolicyCommandDTO, RefundPolicyResponseDTO


class UpdateRefundPolicy:
    """
    Use Case: Replace a campaign's refund policy

    Creates the (owner, campaign) association on first update.
    Validation: refund_percentage in [0, 100], refund_threshold >= 0.
    """

    def __init__(self, uow: UnitOfWork, campaign_credit_repo: CampaignCreditRepository):
        self.uow = uow
        self.campaign_credit_repo = campaign_credit_repo

    async def execute(self, command: UpdateRefundPolicyCommandDTO) -> Result[RefundPolicyResponseDTO]:
        if not 0 <= command.refund_percentage <= 100:
            return Return.err(
                Error(
                    code="VALIDATION_ERROR",
                    message="Refund percentage must be between 0 and 100",
                    reason=f"refund_percentage={command.refund_percentage}",
                )
            )
        if command.refund_threshold < 0:
            return Return.err(
                Error(
                    code="VALIDATION_ERROR",
                    message="Refund threshold cannot be negative",
                    reason=f"refund_threshold={command.refund_threshold}",
                )
            )

        try:
            campaign_credit = await self.campaign_credit_repo.get(command.owner_id, command.campaign_id)
            if not campaign_credit:
                campaign_credit = CampaignCredit(owner_id=command.owner_id, campaign_id=command.campaign_id)

            campaign_credit.apply_policy(
                RefundPolicy(
                    enabled=command.enabled,
                    refund_percentage=command.refund_percentage,
                    refund_threshold=command.refund_threshold,
                )
            )
            saved = await self.campaign_credit_repo.save(campaign_credit)
            await self.uow.commit()

            return Return.ok(
                RefundPolicyResponseDTO(
                    owner_id=saved.owner_id,
                    campaign_id=saved.campaign_id,
                    enabled=saved.refund_enabled,
                    refund_percentage=saved.refund_percentage,
                    refund_threshold=saved.refund_threshold,
                    updated_at=saved.updated_at,
                )
            )
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="UPDATE_REFUND_POLICY_FAILED",
                    message="Failed to update refund policy",
                    reason=str(e),
                )
            )
