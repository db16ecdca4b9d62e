"""DebitCredits Use Case

Charges an owner's own balance (campaign starts and direct debits).
"""

from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.owner_repository import OwnerRepository
from src.app.repositories.credit_ledger_repository import CreditLedgerRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.base import generate_uuid, utcnow
from src.domain.credit_transaction import CreditTransaction, TransactionType
from src.domain.errors import InsufficientCreditError
from .dtos import DebitCommandDTO, CreditTransactionResponseDTO


class DebitCredits:
    """
    Use Case: Debit credits from an owner's balance

    Business Rules:
    1. Idempotency: Same idempotency_key returns same transaction
    2. super_admin owners are never decremented, but the debit is still
       recorded with metadata {"unlimited": true}
    3. Expired balances cannot be spent
    4. Pessimistic locking plus a guarded atomic decrement

    Flow:
    1. Check idempotency (return existing if found)
    2. Load owner (unlimited short-circuit)
    3. Get balance with lock and validate it covers the amount
    4. Decrement, stamp last_used_at
    5. Create transaction record and commit
    """

    def __init__(
        self,
        uow: UnitOfWork,
        owner_repo: OwnerRepository,
        ledger_repo: CreditLedgerRepository,
        transaction_repo: CreditTransactionRepository,
    ):
        self.uow = uow
        self.owner_repo = owner_repo
        self.ledger_repo = ledger_repo
        self.transaction_repo = transaction_repo

    async def execute(self, command: DebitCommandDTO) -> Result[CreditTransactionResponseDTO]:
        idempotency_key = command.idempotency_key or f"debit:{generate_uuid()}"
        try:
            existing_transaction = await self.transaction_repo.get_by_idempotency_key(idempotency_key)
            if existing_transaction:
                return Return.ok(CreditTransactionResponseDTO.from_entity(existing_transaction))

            owner = await self.owner_repo.get_by_id(command.owner_id)
            if not owner:
                return Return.err(
                    Error(code="OWNER_NOT_FOUND", message=f"Owner {command.owner_id} not found")
                )

            description = (
                f"Credits debited for campaign {command.campaign_id}"
                if command.campaign_id is not None
                else "Credits debited"
            )

            if owner.is_unlimited:
                transaction = CreditTransaction(
                    from_owner_id=command.owner_id,
                    to_owner_id=command.owner_id,
                    category_id=command.category_id,
                    transaction_type=TransactionType.DEBIT,
                    amount=command.amount,
                    description=description,
                    campaign_id=command.campaign_id,
                    metadata_json={"unlimited": True},
                    idempotency_key=idempotency_key,
                )
                created_transaction = await self.transaction_repo.create(transaction)
                await self.uow.commit()
                return Return.ok(CreditTransactionResponseDTO.from_entity(created_transaction))

            now = utcnow()
            balance = await self.ledger_repo.get_balance(
                command.owner_id, command.category_id, for_update=True
            )
            available = balance.available_amount(now) if balance else 0
            if not balance or not balance.can_cover(command.amount, now):
                return Return.err(
                    Error(
                        code="INSUFFICIENT_CREDIT",
                        message=f"Insufficient credits. Required: {command.amount}, Available: {available}",
                        reason=f"balance={available}, required={command.amount}",
                    )
                )

            balance_before = balance.amount
            delta = 0 if balance.is_unlimited else -command.amount
            updated = await self.ledger_repo.adjust(
                command.owner_id, command.category_id, delta, touch_last_used=True
            )

            transaction = CreditTransaction(
                from_owner_id=command.owner_id,
                to_owner_id=command.owner_id,
                category_id=command.category_id,
                transaction_type=TransactionType.DEBIT,
                amount=command.amount,
                balance_before=balance_before,
                balance_after=updated.amount,
                description=description,
                campaign_id=command.campaign_id,
                idempotency_key=idempotency_key,
            )
            created_transaction = await self.transaction_repo.create(transaction)

            await self.uow.commit()

            return Return.ok(CreditTransactionResponseDTO.from_entity(created_transaction))

        except InsufficientCreditError as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="INSUFFICIENT_CREDIT",
                    message=str(e),
                    reason=f"balance={e.available}, required={e.required}",
                )
            )
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="DEBIT_CREDIT_FAILED",
                    message="Failed to debit credits",
                    reason=str(e),
                )
            )
