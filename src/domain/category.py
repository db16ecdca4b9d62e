"""Category Domain Entity

Billing bucket with its own pricing. Each owner holds one balance per
category.
"""

from datetime import datetime
from typing import Dict, Optional
from sqlmodel import Field, Column
from sqlalchemy import JSON, String
from src.domain.base import BaseModel, utcnow


class Category(BaseModel, table=True):
    """
    Category - pricing source for campaign credit requirements

    Domain Rules:
    - credit_cost is charged per message
    - media_credit_cost is added per message when the message carries media
    - interactive_credit_cost is added per message when it carries buttons
    - campaign_type_multipliers maps a campaign type to a float multiplier
      (missing types use 1.0)
    """

    __tablename__ = "categories"

    id: str = Field(
        sa_column=Column(String(64), primary_key=True),
        description="Category identifier"
    )

    name: str = Field(
        sa_column=Column(String(100), nullable=False, unique=True),
        description="Category name (e.g. marketing, utility)"
    )

    credit_cost: float = Field(
        default=1.0,
        ge=0,
        description="Base credits charged per message"
    )

    media_credit_cost: float = Field(
        default=1.0,
        ge=0,
        description="Extra credits per message with non-text media"
    )

    interactive_credit_cost: float = Field(
        default=1.0,
        ge=0,
        description="Extra credits per message with buttons"
    )

    campaign_type_multipliers: Dict[str, float] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False, default=dict),
        description="Credit multiplier per campaign type"
    )

    is_active: bool = Field(
        default=True,
        description="Inactive categories cannot be used to start campaigns"
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        description="Category creation timestamp"
    )

    def campaign_type_multiplier(self, campaign_type: Optional[str]) -> float:
        if not campaign_type:
            return 1.0
        return float((self.campaign_type_multipliers or {}).get(campaign_type, 1.0))
