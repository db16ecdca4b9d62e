"""Request schemas for Credit API

Pydantic models for validating incoming HTTP requests.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field
from src.domain.credit_balance import DurationPolicy


class TransferRequestSchema(BaseModel):
    """
    Request schema for transferring credits

    Used for POST /credits/transfers endpoint.
    """

    from_owner_id: str = Field(..., min_length=1, description="Owner giving the credits")
    to_owner_id: str = Field(..., min_length=1, description="Owner receiving the credits")
    category_id: str = Field(..., min_length=1, description="Category of the balance")
    amount: int = Field(..., gt=0, description="Credits to transfer (must be > 0)")
    duration_policy: DurationPolicy = Field(
        default=DurationPolicy.UNLIMITED,
        description="unlimited | daily | weekly | monthly | yearly | custom | specific_date"
    )
    expires_at: Optional[datetime] = Field(
        default=None,
        description="Required for custom and specific_date policies"
    )
    idempotency_key: Optional[str] = Field(
        default=None,
        min_length=1,
        description="Unique key for idempotent retries"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "from_owner_id": "reseller_1",
                "to_owner_id": "user_7",
                "category_id": "marketing",
                "amount": 40,
                "duration_policy": "monthly",
                "idempotency_key": "transfer-2024-10-01-user_7",
            }
        }


class DebitRequestSchema(BaseModel):
    """Request schema for POST /credits/debits"""

    owner_id: str = Field(..., min_length=1)
    category_id: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0, description="Credits to debit (must be > 0)")
    campaign_id: Optional[int] = Field(default=None)
    idempotency_key: Optional[str] = Field(default=None, min_length=1)


class RefundRequestSchema(BaseModel):
    """Request schema for POST /credits/refunds"""

    owner_id: str = Field(..., min_length=1)
    category_id: str = Field(..., min_length=1)
    campaign_id: int
    failed_count: int = Field(..., ge=0)
    total_count: int = Field(..., ge=0)
    idempotency_key: Optional[str] = Field(default=None, min_length=1)


class RefundPolicyRequestSchema(BaseModel):
    """
    Request schema for PUT /campaigns/{campaign_id}/refund-policy

    Range checks happen in the use case so they surface as VALIDATION_ERROR.
    """

    owner_id: str = Field(..., min_length=1)
    enabled: bool
    refund_percentage: int = Field(default=10, description="0-100")
    refund_threshold: int = Field(default=0, description="Minimum failed messages before refunding")
