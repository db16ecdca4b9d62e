"""Campaign Recipient Domain Entity

One row per recipient of a campaign, ordered by position.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import BigInteger, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from src.domain.base import BaseModel, IdType


class RecipientStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"


_FORWARD_RANK: Dict[RecipientStatus, int] = {
    RecipientStatus.PENDING: 0,
    RecipientStatus.SENT: 1,
    RecipientStatus.DELIVERED: 2,
    RecipientStatus.READ: 3,
}

SUCCESS_STATUSES = frozenset({RecipientStatus.SENT, RecipientStatus.DELIVERED, RecipientStatus.READ})


def is_forward_move(current: RecipientStatus, target: RecipientStatus) -> bool:
    """
    Recipient statuses only move forward (pending -> sent -> delivered -> read).
    Any non-read status may fail; failed may go back to sent only via a retry.
    """
    current = RecipientStatus(current)
    target = RecipientStatus(target)
    if target == RecipientStatus.FAILED:
        return current not in (RecipientStatus.FAILED, RecipientStatus.READ)
    if current == RecipientStatus.FAILED:
        return False
    return _FORWARD_RANK[target] > _FORWARD_RANK[current]


class CampaignRecipient(BaseModel, table=True):
    """
    Campaign Recipient - per-recipient send state

    Domain Rules:
    - (campaign_id, position) is unique and never reordered
    - status moves forward only (see is_forward_move)
    - retry_count <= campaign.max_retries; error_retryable marks a failed
      recipient as eligible for the next retry pass
    """

    __tablename__ = "campaign_recipients"
    __table_args__ = (
        UniqueConstraint("campaign_id", "position", name="uq_campaign_recipients_position"),
        Index("ix_campaign_recipients_status", "campaign_id", "status"),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
        description="Unique recipient identifier (auto-increment)"
    )

    campaign_id: int = Field(
        sa_column=Column(BigInteger, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False),
        description="Foreign key to Campaign"
    )

    position: int = Field(
        sa_column=Column(Integer, nullable=False),
        description="Zero-based index in the campaign's recipient list"
    )

    phone_number: str = Field(
        sa_column=Column(String(32), nullable=False),
        description="Recipient address"
    )

    status: RecipientStatus = Field(default=RecipientStatus.PENDING)

    variables: Dict[str, str] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False, default=dict),
        description="Template placeholder -> value"
    )

    external_message_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True, index=True),
        description="Provider message id (wamid)"
    )

    error_message: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
    )

    error_code: Optional[str] = Field(default=None)

    error_retryable: bool = Field(
        default=False,
        description="Whether the last failure may be retried"
    )

    retry_count: int = Field(default=0)

    sent_at: Optional[datetime] = Field(default=None)

    delivered_at: Optional[datetime] = Field(default=None)

    read_at: Optional[datetime] = Field(default=None)

    def reset(self) -> None:
        self.status = RecipientStatus.PENDING
        self.external_message_id = None
        self.error_message = None
        self.error_code = None
        self.error_retryable = False
        self.retry_count = 0
        self.sent_at = None
        self.delivered_at = None
        self.read_at = None


_COUNTER_MEMBERSHIP: Dict[str, FrozenSet[RecipientStatus]] = {
    "sent_count": SUCCESS_STATUSES,
    "delivered_count": frozenset({RecipientStatus.DELIVERED, RecipientStatus.READ}),
    "read_count": frozenset({RecipientStatus.READ}),
    "failed_count": frozenset({RecipientStatus.FAILED}),
}


def counter_deltas(current: RecipientStatus, target: RecipientStatus) -> Dict[str, int]:
    """
    Campaign counter changes for one recipient moving current -> target.

    Counters are cumulative: a read message also counts as sent and
    delivered, so sent_count + failed_count covers every processed recipient.
    """
    current = RecipientStatus(current)
    target = RecipientStatus(target)
    deltas = {}
    for counter, members in _COUNTER_MEMBERSHIP.items():
        delta = int(target in members) - int(current in members)
        if delta:
            deltas[counter] = delta
    return deltas
