"""Credit Balance Domain Entity

Per-(owner, category) credit balance with expiry metadata.
Balance changes only through the ledger's atomic adjust, always paired
with a CreditTransaction.
"""

from calendar import monthrange
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import CheckConstraint, BigInteger, String, UniqueConstraint
from src.domain.base import BaseModel, IdType, utcnow


class DurationPolicy(str, Enum):
    """Expiry schedule attached to a credit grant"""
    UNLIMITED = "unlimited"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"
    SPECIFIC_DATE = "specific_date"


def add_months(value: datetime, months: int) -> datetime:
    """Calendar-month arithmetic, clamping the day to the target month's length"""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    _, last_day = monthrange(year, month)
    return value.replace(year=year, month=month, day=min(value.day, last_day))


def compute_expiry(
    policy: DurationPolicy,
    now: datetime,
    custom_expires_at: Optional[datetime] = None,
) -> Optional[datetime]:
    """
    Compute the expiry timestamp for a grant made at `now`

    Raises:
        ValueError: custom/specific_date without a caller-supplied date
    """
    if policy == DurationPolicy.UNLIMITED:
        return None
    if policy == DurationPolicy.DAILY:
        return now + timedelta(days=1)
    if policy == DurationPolicy.WEEKLY:
        return now + timedelta(days=7)
    if policy == DurationPolicy.MONTHLY:
        return add_months(now, 1)
    if policy == DurationPolicy.YEARLY:
        return add_months(now, 12)
    if custom_expires_at is None:
        raise ValueError(f"Duration policy '{policy.value}' requires an explicit expiry date")
    return custom_expires_at


class CreditBalance(BaseModel, table=True):
    """
    Credit Balance - credits an owner holds in one category

    Domain Rules:
    - (owner_id, category_id) is unique; created lazily on first grant
    - amount >= 0 unless is_unlimited
    - expires_at is None iff duration_policy == unlimited
    - once now > expires_at the balance is logically zero, even before
      the expiry sweep zeroes it
    - never deleted; zeroed instead so transactions stay attached
    """

    __tablename__ = "credit_balances"
    __table_args__ = (
        UniqueConstraint("owner_id", "category_id", name="uq_credit_balances_owner_category"),
        CheckConstraint("is_unlimited OR amount >= 0", name="amount_non_negative"),
        Index("ix_credit_balances_expires_at", "expires_at"),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
        description="Unique balance identifier (auto-increment)"
    )

    owner_id: str = Field(
        sa_column=Column(String(64), nullable=False, index=True),
        description="Owner holding the credits"
    )

    category_id: str = Field(
        sa_column=Column(String(64), nullable=False),
        description="Category the credits belong to"
    )

    amount: int = Field(
        default=0,
        sa_column=Column(BigInteger, nullable=False, default=0),
        description="Current credit amount (integer)"
    )

    is_unlimited: bool = Field(
        default=False,
        description="Unlimited balances are never decremented"
    )

    duration_policy: DurationPolicy = Field(
        default=DurationPolicy.UNLIMITED,
        description="Expiry schedule of the last grant"
    )

    expires_at: Optional[datetime] = Field(
        default=None,
        description="Expiry timestamp (None = never expires)"
    )

    last_used_at: Optional[datetime] = Field(
        default=None,
        description="Last debit timestamp"
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        description="Balance creation timestamp"
    )

    updated_at: datetime = Field(
        default_factory=utcnow,
        description="Last balance update timestamp"
    )

    def is_expired(self, now: datetime) -> bool:
        return (
            self.duration_policy != DurationPolicy.UNLIMITED
            and self.expires_at is not None
            and now > self.expires_at
        )

    def available_amount(self, now: datetime) -> int:
        """Spendable amount at `now` (0 once expired)"""
        if self.is_expired(now):
            return 0
        return self.amount

    def can_cover(self, amount: int, now: datetime) -> bool:
        if self.is_unlimited and not self.is_expired(now):
            return True
        return self.available_amount(now) >= amount
