"""TransferCredits Use Case

Moves credits from one owner to another within a category, following
the role hierarchy, with idempotency and pessimistic locking.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.owner_repository import OwnerRepository
from src.app.repositories.category_repository import CategoryRepository
from src.app.repositories.credit_ledger_repository import CreditLedgerRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.base import generate_uuid, to_naive_utc, utcnow
from src.domain.credit_balance import compute_expiry
from src.domain.credit_transaction import CreditTransaction, TransactionType
from src.domain.credit_transfer_policy import can_transfer
from src.domain.errors import InsufficientCreditError
from .dtos import TransferCommandDTO, CreditTransactionResponseDTO
from .sweep_expired_credits import expire_balance

logger = logging.getLogger(__name__)


class TransferCredits:
    """
    Use Case: Transfer credits down the role hierarchy

    Business Rules:
    1. Idempotency: Same idempotency_key returns same transaction
    2. Role matrix: super_admin -> admin/reseller/user, admin -> reseller/user,
       reseller -> user
    3. super_admin sources are never decremented
    4. Expired destination credits are forfeited before the new grant lands
    5. Atomic updates: both balances and the transaction commit together

    Flow:
    1. Check idempotency (return existing if found)
    2. Load owners and category, validate the role matrix
    3. Lock both balances in a stable order (SELECT FOR UPDATE)
    4. Validate the source can cover the amount
    5. Decrement source, expire + increment destination, set duration
    6. Create transaction record and commit
    """

    def __init__(
        self,
        uow: UnitOfWork,
        owner_repo: OwnerRepository,
        category_repo: CategoryRepository,
        ledger_repo: CreditLedgerRepository,
        transaction_repo: CreditTransactionRepository,
    ):
        self.uow = uow
        self.owner_repo = owner_repo
        self.category_repo = category_repo
        self.ledger_repo = ledger_repo
        self.transaction_repo = transaction_repo

    async def execute(self, command: TransferCommandDTO) -> Result[CreditTransactionResponseDTO]:
        idempotency_key = command.idempotency_key or f"transfer:{generate_uuid()}"
        try:
            # Step 1: Check idempotency
            existing_transaction = await self.transaction_repo.get_by_idempotency_key(idempotency_key)
            if existing_transaction:
                return Return.ok(CreditTransactionResponseDTO.from_entity(existing_transaction))

            # Step 2: Owners, category and role matrix
            if command.from_owner_id == command.to_owner_id:
                return Return.err(
                    Error(
                        code="TRANSFER_NOT_ALLOWED",
                        message="Cannot transfer credits to the same owner",
                    )
                )

            from_owner = await self.owner_repo.get_by_id(command.from_owner_id)
            if not from_owner:
                return Return.err(
                    Error(code="OWNER_NOT_FOUND", message=f"Owner {command.from_owner_id} not found")
                )

            to_owner = await self.owner_repo.get_by_id(command.to_owner_id)
            if not to_owner:
                return Return.err(
                    Error(code="OWNER_NOT_FOUND", message=f"Owner {command.to_owner_id} not found")
                )

            category = await self.category_repo.get_by_id(command.category_id)
            if not category:
                return Return.err(
                    Error(code="CATEGORY_NOT_FOUND", message=f"Category {command.category_id} not found")
                )

            if not can_transfer(from_owner.role, to_owner.role):
                return Return.err(
                    Error(
                        code="TRANSFER_NOT_ALLOWED",
                        message=f"Role '{from_owner.role.value}' cannot transfer credits to role '{to_owner.role.value}'",
                        reason=f"from={from_owner.id}, to={to_owner.id}",
                    )
                )

            now = utcnow()
            try:
                custom_expires_at = to_naive_utc(command.expires_at) if command.expires_at else None
                expires_at = compute_expiry(command.duration_policy, now, custom_expires_at)
            except ValueError as e:
                return Return.err(Error(code="VALIDATION_ERROR", message=str(e)))

            # Step 3: Lock both balances, lowest owner id first
            locked = {}
            for owner_id in sorted({command.from_owner_id, command.to_owner_id}):
                locked[owner_id] = await self.ledger_repo.get_balance(
                    owner_id, command.category_id, for_update=True
                )
            source = locked[command.from_owner_id]
            destination = locked[command.to_owner_id]

            # Step 4: Source must cover the amount (super_admin always can)
            source_after = None
            if not from_owner.is_unlimited:
                available = source.available_amount(now) if source else 0
                if not source or not source.can_cover(command.amount, now):
                    return Return.err(
                        Error(
                            code="INSUFFICIENT_CREDIT",
                            message=f"Insufficient credits. Required: {command.amount}, Available: {available}",
                            reason=f"balance={available}, required={command.amount}",
                        )
                    )
                if not source.is_unlimited:
                    updated_source = await self.ledger_repo.adjust(
                        command.from_owner_id, command.category_id, -command.amount
                    )
                    source_after = updated_source.amount

            # Step 5: Destination grant
            if destination and destination.is_expired(now):
                await expire_balance(self.ledger_repo, self.transaction_repo, destination, now)
                balance_before = 0
            else:
                balance_before = destination.amount if destination else 0

            updated_destination = await self.ledger_repo.adjust(
                command.to_owner_id, command.category_id, command.amount
            )
            await self.ledger_repo.set_duration(
                command.to_owner_id, command.category_id, command.duration_policy, expires_at
            )

            # Step 6: Transaction record
            transaction = CreditTransaction(
                from_owner_id=command.from_owner_id,
                to_owner_id=command.to_owner_id,
                category_id=command.category_id,
                transaction_type=TransactionType.TRANSFER,
                amount=command.amount,
                balance_before=balance_before,
                balance_after=updated_destination.amount,
                description=f"Transfer of {command.amount} {category.name} credits",
                metadata_json={
                    "duration_policy": command.duration_policy.value,
                    "expires_at": expires_at.isoformat() if expires_at else None,
                    "source_balance_after": source_after,
                },
                idempotency_key=idempotency_key,
            )
            created_transaction = await self.transaction_repo.create(transaction)

            await self.uow.commit()

            logger.info(
                f"Transferred {command.amount} credits ({command.category_id}) "
                f"from {command.from_owner_id} to {command.to_owner_id}"
            )
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
                    code="TRANSFER_CREDIT_FAILED",
                    message="Failed to transfer credits",
                    reason=str(e),
                )
            )
