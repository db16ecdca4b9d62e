"""Credit accounting use cases"""
from .transfer_credits import TransferCredits
from .debit_credits import DebitCredits
from .refund_campaign_credits import RefundCampaignCredits, calculate_refund_amount
from .update_refund_policy import UpdateRefundPolicy
from .sweep_expired_credits import SweepExpiredCredits, expire_balance
from .calculate_required_credits import CalculateRequiredCredits, per_message_cost
from .get_balance import GetBalance
from .list_transactions import ListTransactions
from .get_refund_stats import GetRefundStats
from .dtos import (
    TransferCommandDTO,
    DebitCommandDTO,
    RefundCommandDTO,
    UpdateRefundPolicyCommandDTO,
    CreditTransactionResponseDTO,
    RefundResultDTO,
    RefundPolicyResponseDTO,
    RefundStatsDTO,
    BalanceResponseDTO,
    ListTransactionsResponseDTO,
    RequiredCreditsDTO,
    SweepResultDTO,
)

__all__ = [
    "TransferCredits",
    "DebitCredits",
    "RefundCampaignCredits",
    "calculate_refund_amount",
    "UpdateRefundPolicy",
    "SweepExpiredCredits",
    "expire_balance",
    "CalculateRequiredCredits",
    "per_message_cost",
    "GetBalance",
    "ListTransactions",
    "GetRefundStats",
    "TransferCommandDTO",
    "DebitCommandDTO",
    "RefundCommandDTO",
    "UpdateRefundPolicyCommandDTO",
    "CreditTransactionResponseDTO",
    "RefundResultDTO",
    "RefundPolicyResponseDTO",
    "RefundStatsDTO",
    "BalanceResponseDTO",
    "ListTransactionsResponseDTO",
    "RequiredCreditsDTO",
    "SweepResultDTO",
]
