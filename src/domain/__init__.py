from .base import BaseModel, generate_uuid, to_naive_utc, utcnow
from .owner import Owner, OwnerRole
from .category import Category
from .credit_balance import CreditBalance, DurationPolicy, compute_expiry
from .credit_transaction import CreditTransaction, TransactionType
from .campaign_credit import CampaignCredit, RefundPolicy
from .campaign import (
    Campaign,
    CampaignStatus,
    CampaignType,
    MessageSpec,
    MediaSpec,
    ButtonSpec,
    can_transition,
)
from .campaign_recipient import CampaignRecipient, RecipientStatus, counter_deltas, is_forward_move
from .credit_transfer_policy import can_transfer

__all__ = [
    "BaseModel",
    "generate_uuid",
    "utcnow",
    "to_naive_utc",
    "Owner",
    "OwnerRole",
    "Category",
    "CreditBalance",
    "DurationPolicy",
    "compute_expiry",
    "CreditTransaction",
    "TransactionType",
    "CampaignCredit",
    "RefundPolicy",
    "Campaign",
    "CampaignStatus",
    "CampaignType",
    "MessageSpec",
    "MediaSpec",
    "ButtonSpec",
    "can_transition",
    "CampaignRecipient",
    "RecipientStatus",
    "counter_deltas",
    "is_forward_move",
    "can_transfer",
]
