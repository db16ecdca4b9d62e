"""Data Transfer Objects for Campaign Use Cases"""

from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from src.domain.campaign import Campaign, CampaignStatus, CampaignType, MessageSpec
from src.domain.campaign_credit import RefundPolicy


class RecipientInputDTO(BaseModel):
    phone_number: str = Field(..., min_length=5, description="Recipient phone number")
    variables: Dict[str, str] = Field(
        default_factory=dict,
        description="Template placeholder index -> value, e.g. {'1': 'Ana'}"
    )


class CreateCampaignCommandDTO(BaseModel):
    """
    Command DTO for creating a campaign in draft

    Used as input to CreateCampaign use case.
    """

    name: str = Field(..., min_length=1, max_length=255)
    owner_id: str
    category_id: str
    campaign_type: CampaignType = CampaignType.TEMPLATE
    message: MessageSpec
    recipients: List[RecipientInputDTO] = Field(..., min_length=1)
    batch_size: int = Field(default=50, ge=1)
    interval_minutes: float = Field(default=0, ge=0)
    max_retries: int = Field(default=3, ge=0)
    stop_on_error: bool = False
    use_message_variations: bool = False
    min_delay_seconds: float = Field(default=0, ge=0)
    max_delay_seconds: float = Field(default=0, ge=0)
    refund_policy: Optional[RefundPolicy] = None

    class Config:
        json_schema_extra = {
            "example": {
                "name": "October promo",
                "owner_id": "user_7",
                "category_id": "marketing",
                "campaign_type": "template",
                "message": {"template_name": "promo_oct", "language_code": "en_US"},
                "recipients": [{"phone_number": "+15551230001", "variables": {"1": "Ana"}}],
                "batch_size": 50,
                "interval_minutes": 1,
            }
        }


class ScheduleCampaignCommandDTO(BaseModel):
    start_at: datetime = Field(..., description="When the scheduler should start the campaign (UTC)")


class MessageStatusCommandDTO(BaseModel):
    """Delivery status callback from the provider"""

    external_message_id: str
    status: str = Field(..., description="sent | delivered | read | failed")
    timestamp: Optional[datetime] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None


class CampaignResponseDTO(BaseModel):
    """
    Response DTO for campaign operations

    `stats` mirrors the persisted counters: total, sent, delivered, read, failed.
    """

    id: int
    name: str
    owner_id: str
    category_id: str
    campaign_type: str
    status: str
    stats: Dict[str, int]
    batch_size: int
    interval_minutes: float
    last_processed_index: int
    run_number: int
    credits_charged: int
    scheduled_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_entity(cls, campaign: Campaign) -> "CampaignResponseDTO":
        return cls(
            id=campaign.id,
            name=campaign.name,
            owner_id=campaign.owner_id,
            category_id=campaign.category_id,
            campaign_type=CampaignType(campaign.campaign_type).value,
            status=CampaignStatus(campaign.status).value,
            stats=campaign.stats,
            batch_size=campaign.batch_size,
            interval_minutes=campaign.interval_minutes,
            last_processed_index=campaign.last_processed_index,
            run_number=campaign.run_number,
            credits_charged=campaign.credits_charged,
            scheduled_at=campaign.scheduled_at,
            started_at=campaign.started_at,
            completed_at=campaign.completed_at,
            error_message=campaign.error_message,
            created_at=campaign.created_at,
        )


class StartCampaignResponseDTO(BaseModel):
    campaign: CampaignResponseDTO
    credits_charged: int
    transaction_id: Optional[int] = None
    dispatch_submitted: bool


class MessageStatusResultDTO(BaseModel):
    campaign_id: int
    recipient_position: int
    status: str
    applied: bool


class DispatchResultDTO(BaseModel):
    """Outcome of one dispatch loop invocation"""

    campaign_id: int
    status: str
    batches_processed: int = 0
    sent: int = 0
    failed: int = 0
    retried: int = 0
    last_processed_index: int = 0
    stopped_reason: Optional[str] = None
