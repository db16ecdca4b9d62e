"""Campaign Credit Domain Entity

Association between an owner and a campaign carrying the refund policy
applied to that campaign's failed messages.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel as PydanticModel
from pydantic import Field as PydanticField
from sqlmodel import Field, Column
from sqlalchemy import BigInteger, String, UniqueConstraint
from src.domain.base import BaseModel, IdType, utcnow


class RefundPolicy(PydanticModel):
    """Refund settings embedded in a CampaignCredit"""

    enabled: bool = False
    refund_percentage: int = PydanticField(default=10, ge=0, le=100)
    refund_threshold: int = PydanticField(default=0, ge=0)


class CampaignCredit(BaseModel, table=True):
    """
    Campaign Credit - refund policy for an (owner, campaign) pair

    Domain Rules:
    - (owner_id, campaign_id) is unique
    - refund_percentage in [0, 100], refund_threshold >= 0
    - mutated only by the refund policy update operation
    """

    __tablename__ = "campaign_credits"
    __table_args__ = (
        UniqueConstraint("owner_id", "campaign_id", name="uq_campaign_credits_owner_campaign"),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
        description="Unique identifier (auto-increment)"
    )

    owner_id: str = Field(
        sa_column=Column(String(64), nullable=False),
        description="Owner of the campaign"
    )

    campaign_id: int = Field(
        sa_column=Column(BigInteger, nullable=False, index=True),
        description="Campaign the policy applies to"
    )

    refund_enabled: bool = Field(default=False)

    refund_percentage: int = Field(default=10, ge=0, le=100)

    refund_threshold: int = Field(default=0, ge=0)

    updated_at: datetime = Field(
        default_factory=utcnow,
        description="Last policy update timestamp"
    )

    @property
    def refund_policy(self) -> RefundPolicy:
        return RefundPolicy(
            enabled=self.refund_enabled,
            refund_percentage=self.refund_percentage,
            refund_threshold=self.refund_threshold,
        )

    def apply_policy(self, policy: RefundPolicy) -> None:
        self.refund_enabled = policy.enabled
        self.refund_percentage = policy.refund_percentage
        self.refund_threshold = policy.refund_threshold
        self.updated_at = utcnow()
