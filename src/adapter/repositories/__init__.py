from .credit_ledger_repository import SqlAlchemyCreditLedgerRepository
from .credit_transaction_repository import SqlAlchemyCreditTransactionRepository
from .owner_repository import SqlAlchemyOwnerRepository
from .category_repository import SqlAlchemyCategoryRepository
from .campaign_credit_repository import SqlAlchemyCampaignCreditRepository
from .campaign_repository import SqlAlchemyCampaignRepository
from .campaign_recipient_repository import SqlAlchemyCampaignRecipientRepository

__all__ = [
    "SqlAlchemyCreditLedgerRepository",
    "SqlAlchemyCreditTransactionRepository",
    "SqlAlchemyOwnerRepository",
    "SqlAlchemyCategoryRepository",
    "SqlAlchemyCampaignCreditRepository",
    "SqlAlchemyCampaignRepository",
    "SqlAlchemyCampaignRecipientRepository",
]
