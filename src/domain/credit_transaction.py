"""Credit Transaction Domain Entity

Immutable append-only audit trail of all credit mutations.
Each transaction records one balance change with complete context.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import BigInteger, JSON, String
from src.domain.base import BaseModel, IdType, utcnow


class TransactionType(str, Enum):
    """Credit transaction kinds"""
    CREDIT = "credit"        # Credits added outside a transfer
    DEBIT = "debit"          # Credits consumed by a campaign
    TRANSFER = "transfer"    # Credits moved down the role hierarchy
    BONUS = "bonus"          # Promotional grant
    REFUND = "refund"        # Credits returned for failed messages
    EXPIRY = "expiry"        # Credits forfeited at expiry


class CreditTransaction(BaseModel, table=True):
    """
    Credit Transaction - Immutable audit trail of credit mutations

    Domain Rules:
    - Transactions are immutable (append-only), never updated or deleted
    - amount is always positive; transaction_type plus from/to give direction
    - idempotency_key must be unique (prevents double debit/refund)
    - balance_before/balance_after snapshot the balance that changed
      (None when no balance changed, e.g. the unlimited tier)
    """

    __tablename__ = "credit_transactions"
    __table_args__ = (
        Index("ix_credit_transactions_created_at", "created_at"),
        Index("ix_credit_transactions_from_owner", "from_owner_id", "created_at"),
        Index("ix_credit_transactions_to_owner", "to_owner_id", "created_at"),
        Index("ix_credit_transactions_campaign", "campaign_id", "created_at"),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
        description="Unique transaction identifier (auto-increment)"
    )

    from_owner_id: str = Field(
        sa_column=Column(String(64), nullable=False),
        description="Owner the credits come from"
    )

    to_owner_id: str = Field(
        sa_column=Column(String(64), nullable=False),
        description="Owner the credits go to"
    )

    category_id: str = Field(
        sa_column=Column(String(64), nullable=False, index=True),
        description="Category of the balance involved"
    )

    transaction_type: TransactionType = Field(
        description="Kind of mutation (credit, debit, transfer, bonus, refund, expiry)"
    )

    amount: int = Field(
        sa_column=Column(BigInteger, nullable=False),
        description="Credit amount (always positive)"
    )

    balance_before: Optional[int] = Field(
        default=None,
        sa_column=Column(BigInteger, nullable=True),
        description="Balance before the mutation"
    )

    balance_after: Optional[int] = Field(
        default=None,
        sa_column=Column(BigInteger, nullable=True),
        description="Balance after the mutation"
    )

    description: str = Field(
        default="",
        description="Human-readable description"
    )

    campaign_id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigInteger, nullable=True),
        description="Campaign the mutation is tied to"
    )

    metadata_json: Optional[Dict[str, Any]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
        description="Additional context (failed/total message counts, refund percentage)"
    )

    idempotency_key: str = Field(
        sa_column=Column(String(255), nullable=False, unique=True, index=True),
        description="Unique key for idempotent operations"
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        description="Transaction timestamp (immutable)"
    )
