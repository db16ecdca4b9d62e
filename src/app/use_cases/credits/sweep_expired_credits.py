"""SweepExpiredCredits Use Case

Zeroes balances whose duration has elapsed and records an expiry
transaction for each. Run periodically by the credit expiry worker.
"""

import logging
from datetime import datetime
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.credit_ledger_repository import CreditLedgerRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.base import utcnow
from src.domain.credit_balance import CreditBalance, DurationPolicy
from src.domain.credit_transaction import CreditTransaction, TransactionType
from .dtos import SweepResultDTO

logger = logging.getLogger(__name__)


async def expire_balance(
    ledger_repo: CreditLedgerRepository,
    transaction_repo: CreditTransactionRepository,
    balance: CreditBalance,
    now: datetime,
) -> Optional[CreditTransaction]:
    """
    Forfeit an expired balance inside the caller's unit of work

    The idempotency key is derived from the balance and its expiry, so the
    same expiry is never recorded twice.
    """
    amount = balance.amount
    if amount <= 0:
        # Nothing to forfeit; only drop the stale expiry
        await ledger_repo.set_duration(balance.owner_id, balance.category_id, DurationPolicy.UNLIMITED, None)
        return None

    idempotency_key = f"expiry:{balance.id}:{balance.expires_at.isoformat()}"
    existing = await transaction_repo.get_by_idempotency_key(idempotency_key)
    if existing:
        return existing

    policy = DurationPolicy(balance.duration_policy)
    await ledger_repo.adjust(balance.owner_id, balance.category_id, -amount)
    await ledger_repo.set_duration(balance.owner_id, balance.category_id, DurationPolicy.UNLIMITED, None)

    transaction = CreditTransaction(
        from_owner_id=balance.owner_id,
        to_owner_id=balance.owner_id,
        category_id=balance.category_id,
        transaction_type=TransactionType.EXPIRY,
        amount=amount,
        balance_before=amount,
        balance_after=0,
        description=f"Credits expired due to {policy.value} duration",
        metadata_json={
            "duration_policy": policy.value,
            "expired_at": balance.expires_at.isoformat(),
            "swept_at": now.isoformat(),
        },
        idempotency_key=idempotency_key,
    )
    return await transaction_repo.create(transaction)


class SweepExpiredCredits:
    """
    Use Case: Forfeit every expired, non-empty balance

    Pages through list_expired until no balance is left to try. Each
    balance is expired and committed on its own so one failure does not
    hold back the rest, and is attempted at most once per run; a page made
    only of balances that already failed ends the run.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        ledger_repo: CreditLedgerRepository,
        transaction_repo: CreditTransactionRepository,
    ):
        self.uow = uow
        self.ledger_repo = ledger_repo
        self.transaction_repo = transaction_repo

    async def execute(self, now: Optional[datetime] = None, limit: int = 500) -> Result[SweepResultDTO]:
        now = now or utcnow()
        expired_balances = 0
        expired_credits = 0
        failed_balances = 0

        attempted = set()

        while True:
            try:
                page = await self.ledger_repo.list_expired(now, limit=limit)
            except Exception as e:
                return Return.err(
                    Error(code="SWEEP_EXPIRED_CREDITS_FAILED", message="Failed to list expired balances", reason=str(e))
                )

            candidates = [c for c in page if (c.owner_id, c.category_id) not in attempted]
            if not candidates:
                if page:
                    logger.warning(f"{len(page)} expired balance(s) could not be expired; leaving them for the next run")
                break

            for candidate in candidates:
                attempted.add((candidate.owner_id, candidate.category_id))
                try:
                    balance = await self.ledger_repo.get_balance(
                        candidate.owner_id, candidate.category_id, for_update=True
                    )
                    # Re-check under the lock: a grant may have landed since listing
                    if not balance or not balance.is_expired(now) or balance.amount <= 0:
                        await self.uow.rollback()
                        continue

                    amount = balance.amount
                    await expire_balance(self.ledger_repo, self.transaction_repo, balance, now)
                    await self.uow.commit()

                    expired_balances += 1
                    expired_credits += amount
                except Exception as e:
                    await self.uow.rollback()
                    failed_balances += 1
                    logger.error(
                        f"Failed to expire balance {candidate.owner_id}/{candidate.category_id}: {e}",
                        exc_info=True,
                    )

        if expired_balances:
            logger.info(f"Expired {expired_credits} credits across {expired_balances} balances")

        return Return.ok(
            SweepResultDTO(
                expired_balances=expired_balances,
                expired_credits=expired_credits,
                failed_balances=failed_balances,
                executed_at=now,
            )
        )
