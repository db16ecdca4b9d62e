from .credit_ledger_repository import CreditLedgerRepository
from .credit_transaction_repository import CreditTransactionRepository
from .owner_repository import OwnerRepository
from .category_repository import CategoryRepository
from .campaign_credit_repository import CampaignCreditRepository
from .campaign_repository import CampaignRepository
from .campaign_recipient_repository import CampaignRecipientRepository

__all__ = [
    "CreditLedgerRepository",
    "CreditTransactionRepository",
    "OwnerRepository",
    "CategoryRepository",
    "CampaignCreditRepository",
    "CampaignRepository",
    "CampaignRecipientRepository",
]
