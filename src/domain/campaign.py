"""Campaign Domain Entity

A campaign owns an ordered recipient list, the message to send and the
batching settings that drive the dispatch loop.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional
from pydantic import BaseModel as PydanticModel
from pydantic import Field as PydanticField
from sqlmodel import Field, Column, Index
from sqlalchemy import JSON, String, Text
from src.domain.base import BaseModel, IdType, utcnow


class CampaignStatus(str, Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class CampaignType(str, Enum):
    QUICK = "quick"
    TEMPLATE = "template"
    BUTTON = "button"
    MEDIA = "media"
    POLL = "poll"
    LIST = "list"


TERMINAL_STATUSES: FrozenSet[CampaignStatus] = frozenset(
    {CampaignStatus.COMPLETED, CampaignStatus.FAILED, CampaignStatus.CANCELLED}
)

ALLOWED_TRANSITIONS: Dict[CampaignStatus, FrozenSet[CampaignStatus]] = {
    CampaignStatus.DRAFT: frozenset({CampaignStatus.SCHEDULED, CampaignStatus.RUNNING}),
    CampaignStatus.SCHEDULED: frozenset({CampaignStatus.RUNNING, CampaignStatus.CANCELLED}),
    CampaignStatus.RUNNING: frozenset({
        CampaignStatus.PAUSED,
        CampaignStatus.COMPLETED,
        CampaignStatus.FAILED,
        CampaignStatus.CANCELLED,
    }),
    CampaignStatus.PAUSED: frozenset({CampaignStatus.RUNNING, CampaignStatus.CANCELLED}),
    # Terminal states only leave through an explicit rerun
    CampaignStatus.COMPLETED: frozenset({CampaignStatus.DRAFT, CampaignStatus.SCHEDULED}),
    CampaignStatus.FAILED: frozenset({CampaignStatus.DRAFT, CampaignStatus.SCHEDULED}),
    CampaignStatus.CANCELLED: frozenset({CampaignStatus.DRAFT, CampaignStatus.SCHEDULED}),
}


# error_message of a campaign the send rate limit paused; the scheduler resumes these
RATE_LIMIT_PAUSE_REASON = "Rate limit reached; the campaign resumes once the limit resets"


def can_transition(current: CampaignStatus, target: CampaignStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(CampaignStatus(current), frozenset())


class MediaSpec(PydanticModel):
    type: str = "image"  # image | video | document | audio
    url: str
    caption: Optional[str] = None


class ButtonSpec(PydanticModel):
    id: str
    title: str


class MessageSpec(PydanticModel):
    """
    Message to send: template mode (template_name + language_code +
    components) or free text with optional media and buttons
    """

    template_name: Optional[str] = None
    language_code: str = "en_US"
    components: List[Dict[str, Any]] = PydanticField(default_factory=list)
    text: Optional[str] = None
    media: Optional[MediaSpec] = None
    buttons: List[ButtonSpec] = PydanticField(default_factory=list)

    @property
    def is_template(self) -> bool:
        return bool(self.template_name)

    @property
    def has_media(self) -> bool:
        return self.media is not None and self.media.type != "text"

    @property
    def has_buttons(self) -> bool:
        return bool(self.buttons)


class Campaign(BaseModel, table=True):
    """
    Campaign - batched, resumable message send

    Domain Rules:
    - Created in draft; status follows ALLOWED_TRANSITIONS
    - Recipient order is fixed at creation; position is the resume key
    - last_processed_index only increases within a run
    - sent_count counts recipients that reached sent or beyond (delivered
      and read likewise); failed_count counts recipients currently failed
    - run_number increases on every rerun and scopes debit/refund keys
    """

    __tablename__ = "campaigns"
    __table_args__ = (
        Index("ix_campaigns_owner_status", "owner_id", "status"),
        Index("ix_campaigns_scheduled_at", "scheduled_at"),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
        description="Unique campaign identifier (auto-increment)"
    )

    name: str = Field(
        sa_column=Column(String(255), nullable=False),
        description="Campaign name"
    )

    owner_id: str = Field(
        sa_column=Column(String(64), nullable=False),
        description="Owner running the campaign"
    )

    category_id: str = Field(
        sa_column=Column(String(64), nullable=False),
        description="Category credits are charged against"
    )

    campaign_type: CampaignType = Field(
        default=CampaignType.TEMPLATE,
        description="Campaign type (selects the category multiplier)"
    )

    message_spec: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False, default=dict),
        description="Serialized MessageSpec"
    )

    status: CampaignStatus = Field(
        default=CampaignStatus.DRAFT,
        description="Lifecycle status"
    )

    batch_size: int = Field(default=50, ge=1)

    interval_minutes: float = Field(default=0, ge=0)

    scheduled_at: Optional[datetime] = Field(
        default=None,
        description="Scheduled start time"
    )

    max_retries: int = Field(default=3, ge=0)

    stop_on_error: bool = Field(default=False)

    use_message_variations: bool = Field(default=False)

    min_delay_seconds: float = Field(default=0, ge=0)

    max_delay_seconds: float = Field(default=0, ge=0)

    total_count: int = Field(default=0)
    sent_count: int = Field(default=0)
    delivered_count: int = Field(default=0)
    read_count: int = Field(default=0)
    failed_count: int = Field(default=0)

    last_processed_index: int = Field(
        default=0,
        description="Resume cursor: position of the next recipient to send"
    )

    run_number: int = Field(default=1)

    credits_charged: int = Field(
        default=0,
        description="Credits debited for the current run"
    )

    error_message: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
        description="Last campaign-level error or pause reason"
    )

    started_at: Optional[datetime] = Field(default=None)

    completed_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow)

    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def message(self) -> MessageSpec:
        return MessageSpec.model_validate(self.message_spec or {})

    @property
    def stats(self) -> Dict[str, int]:
        return {
            "total": self.total_count,
            "sent": self.sent_count,
            "delivered": self.delivered_count,
            "read": self.read_count,
            "failed": self.failed_count,
        }
