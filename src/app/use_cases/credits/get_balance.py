"""Get Balance Use Case

Retrieves an owner's credit balance in one category.
"""

from libs.result import Result, Return, Error
from src.app.repositories.credit_ledger_repository import CreditLedgerRepository
from src.domain.base import utcnow
from src.domain.credit_balance import DurationPolicy
from .dtos import BalanceResponseDTO


class GetBalance:
    """
    Get Balance Use Case

    Read-only. An expired balance reports amount=0 even before the expiry
    sweep has zeroed the stored row.
    """

    def __init__(self, ledger_repo: CreditLedgerRepository):
        self.ledger_repo = ledger_repo

    async def execute(self, owner_id: str, category_id: str) -> Result[BalanceResponseDTO]:
        """
        Execute get balance operation

        Errors:
            BALANCE_NOT_FOUND: Owner holds no balance in the category
        """
        balance = await self.ledger_repo.get_balance(owner_id, category_id)

        if not balance:
            return Return.err(
                Error(
                    code="BALANCE_NOT_FOUND",
                    message=f"No credit balance found for owner {owner_id} in category {category_id}",
                )
            )

        return Return.ok(
            BalanceResponseDTO(
                owner_id=balance.owner_id,
                category_id=balance.category_id,
                amount=balance.available_amount(utcnow()),
                stored_amount=balance.amount,
                is_unlimited=balance.is_unlimited,
                duration_policy=DurationPolicy(balance.duration_policy).value,
                expires_at=balance.expires_at,
                last_used_at=balance.last_used_at,
                last_updated=balance.updated_at,
            )
        )
