"""
List Transactions Use Case

Retrieves credit transaction history for an owner with filters and
pagination.
"""
from datetime import datetime
from typing import Optional
from libs.result import Result, Return, Error
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.credit_transaction import TransactionType
from .dtos import CreditTransactionResponseDTO, ListTransactionsResponseDTO


class ListTransactions:
    """
    Use case: View credit transactions

    Returns transactions where the owner is sender or receiver, ordered by
    created_at DESC (most recent first).
    """

    def __init__(self, transaction_repo: CreditTransactionRepository):
        self.transaction_repo = transaction_repo

    async def execute(
        self,
        owner_id: str,
        category_id: Optional[str] = None,
        transaction_type: Optional[TransactionType] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Result[ListTransactionsResponseDTO]:
        if start_date and end_date and start_date > end_date:
            return Return.err(
                Error(code="VALIDATION_ERROR", message="start_date must not be after end_date")
            )

        transactions, total = await self.transaction_repo.list_for_owner(
            owner_id=owner_id,
            category_id=category_id,
            transaction_type=transaction_type,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
            offset=offset,
        )

        return Return.ok(
            ListTransactionsResponseDTO(
                transactions=[CreditTransactionResponseDTO.from_entity(txn) for txn in transactions],
                total=total,
                limit=limit,
                offset=offset,
            )
        )
