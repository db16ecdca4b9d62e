"""Data Transfer Objects for Credit Accounting Use Cases

Pydantic models for command inputs and response outputs.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from src.domain.credit_balance import DurationPolicy
from src.domain.credit_transaction import CreditTransaction, TransactionType


class TransferCommandDTO(BaseModel):
    """
    Command DTO for transferring credits down the role hierarchy

    Used as input to TransferCredits use case.
    """

    from_owner_id: str = Field(..., description="Owner giving the credits")
    to_owner_id: str = Field(..., description="Owner receiving the credits")
    category_id: str = Field(..., description="Category of the balance")
    amount: int = Field(..., gt=0, description="Credits to transfer (must be > 0)")
    duration_policy: DurationPolicy = Field(
        default=DurationPolicy.UNLIMITED,
        description="Expiry schedule applied to the receiving balance"
    )
    expires_at: Optional[datetime] = Field(
        default=None,
        description="Explicit expiry (required for custom/specific_date)"
    )
    idempotency_key: Optional[str] = Field(
        default=None,
        description="Unique key for idempotent retries (generated when omitted)"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "from_owner_id": "reseller_1",
                "to_owner_id": "user_7",
                "category_id": "marketing",
                "amount": 40,
                "duration_policy": "monthly",
            }
        }


class DebitCommandDTO(BaseModel):
    """
    Command DTO for debiting credits from an owner's own balance

    Used as input to DebitCredits use case.
    """

    owner_id: str = Field(..., description="Owner being charged")
    category_id: str = Field(..., description="Category of the balance")
    amount: int = Field(..., gt=0, description="Credits to debit (must be > 0)")
    campaign_id: Optional[int] = Field(default=None, description="Campaign being charged for")
    idempotency_key: Optional[str] = Field(default=None)


class RefundCommandDTO(BaseModel):
    """
    Command DTO for refunding credits for failed campaign messages

    Used as input to RefundCampaignCredits use case.
    """

    owner_id: str = Field(..., description="Owner receiving the refund")
    category_id: str = Field(..., description="Category credited")
    failed_count: int = Field(..., ge=0, description="Messages that failed")
    total_count: int = Field(..., ge=0, description="Messages in the campaign")
    campaign_id: int = Field(..., description="Campaign the refund is for")
    idempotency_key: Optional[str] = Field(default=None)


class UpdateRefundPolicyCommandDTO(BaseModel):
    """Command DTO for replacing a campaign's refund policy"""

    owner_id: str
    campaign_id: int
    enabled: bool
    refund_percentage: int
    refund_threshold: int


class CreditTransactionResponseDTO(BaseModel):
    """
    Response DTO for credit transaction operations

    Returned by TransferCredits, DebitCredits, RefundCampaignCredits.
    """

    transaction_id: int = Field(..., description="Transaction ID")
    transaction_type: str = Field(..., description="Kind of transaction")
    from_owner_id: str
    to_owner_id: str
    category_id: str
    amount: int
    balance_before: Optional[int] = None
    balance_after: Optional[int] = None
    campaign_id: Optional[int] = None
    description: str = ""
    metadata: Optional[Dict[str, Any]] = None
    idempotency_key: str
    created_at: datetime

    @classmethod
    def from_entity(cls, transaction: CreditTransaction) -> "CreditTransactionResponseDTO":
        """Balance snapshots are stored in the transaction for perfect idempotency."""
        return cls(
            transaction_id=transaction.id,
            transaction_type=TransactionType(transaction.transaction_type).value,
            from_owner_id=transaction.from_owner_id,
            to_owner_id=transaction.to_owner_id,
            category_id=transaction.category_id,
            amount=transaction.amount,
            balance_before=transaction.balance_before,
            balance_after=transaction.balance_after,
            campaign_id=transaction.campaign_id,
            description=transaction.description,
            metadata=transaction.metadata_json,
            idempotency_key=transaction.idempotency_key,
            created_at=transaction.created_at,
        )


class RefundResultDTO(BaseModel):
    """Refund outcome: either a refund transaction or the reason none was made"""

    refunded: bool
    amount: int = 0
    reason: Optional[str] = None
    transaction: Optional[CreditTransactionResponseDTO] = None

    @classmethod
    def no_refund(cls, reason: str) -> "RefundResultDTO":
        return cls(refunded=False, amount=0, reason=reason)


class RefundPolicyResponseDTO(BaseModel):
    owner_id: str
    campaign_id: int
    enabled: bool
    refund_percentage: int
    refund_threshold: int
    updated_at: datetime


class RefundStatsDTO(BaseModel):
    campaign_id: int
    total_refunded: int
    total_failed_messages: int
    total_messages: int
    refund_transactions: List[CreditTransactionResponseDTO]


class BalanceResponseDTO(BaseModel):
    """
    Response DTO for get balance operation

    `amount` is the spendable amount (0 once expired); `stored_amount`
    is what the ledger row holds until the expiry sweep runs.
    """

    owner_id: str
    category_id: str
    amount: int
    stored_amount: int
    is_unlimited: bool
    duration_policy: str
    expires_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None
    last_updated: datetime


class ListTransactionsResponseDTO(BaseModel):
    transactions: List[CreditTransactionResponseDTO]
    total: int
    limit: int
    offset: int


class RequiredCreditsDTO(BaseModel):
    required_credits: int = Field(..., ge=0)
    per_message_cost: float
    recipient_count: int


class SweepResultDTO(BaseModel):
    expired_balances: int
    expired_credits: int
    failed_balances: int
    executed_at: datetime
