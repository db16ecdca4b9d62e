"""Unit tests for TransferCredits use case

Tests cover:
- Role matrix enforcement
- Insufficient credit on the source
- super_admin sources are never decremented
- Expired destination credits are forfeited before the grant
- Idempotency
"""

import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

from src.app.use_cases.credits.transfer_credits import TransferCredits
from src.app.use_cases.credits.dtos import TransferCommandDTO
from src.domain.base import utcnow
from src.domain.category import Category
from src.domain.credit_balance import CreditBalance, DurationPolicy
from src.domain.credit_transaction import CreditTransaction, TransactionType
from src.domain.owner import Owner, OwnerRole

OWNERS = {
    "root": Owner(id="root", role=OwnerRole.SUPER_ADMIN),
    "reseller_1": Owner(id="reseller_1", role=OwnerRole.RESELLER),
    "user_1": Owner(id="user_1", role=OwnerRole.USER),
    "user_2": Owner(id="user_2", role=OwnerRole.USER),
}


def balance(owner_id, amount, **kwargs):
    return CreditBalance(id=hash(owner_id) % 1000, owner_id=owner_id, category_id="marketing", amount=amount, **kwargs)


@pytest.fixture
def mock_owner_repo():
    repo = MagicMock()
    repo.get_by_id = AsyncMock(side_effect=lambda owner_id: OWNERS.get(owner_id))
    return repo


@pytest.fixture
def mock_category_repo():
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=Category(id="marketing", name="marketing"))
    return repo


@pytest.fixture
def mock_ledger_repo():
    repo = MagicMock()
    repo.set_duration = AsyncMock()
    return repo


@pytest.fixture
def mock_transaction_repo():
    repo = MagicMock()
    repo.get_by_idempotency_key = AsyncMock(return_value=None)

    async def create(transaction):
        transaction.id = 77
        transaction.created_at = utcnow()
        return transaction

    repo.create = AsyncMock(side_effect=create)
    return repo


@pytest.fixture
def transfer_use_case(mock_uow, mock_owner_repo, mock_category_repo, mock_ledger_repo, mock_transaction_repo):
    return TransferCredits(
        uow=mock_uow,
        owner_repo=mock_owner_repo,
        category_repo=mock_category_repo,
        ledger_repo=mock_ledger_repo,
        transaction_repo=mock_transaction_repo,
    )


def stub_balances(ledger_repo, balances):
    ledger_repo.get_balance = AsyncMock(
        side_effect=lambda owner_id, category_id, for_update=False: balances.get(owner_id)
    )

    async def adjust(owner_id, category_id, delta, touch_last_used=False):
        current = balances.get(owner_id)
        amount = (current.amount if current else 0) + delta
        balances[owner_id] = balance(owner_id, amount)
        return balances[owner_id]

    ledger_repo.adjust = AsyncMock(side_effect=adjust)


@pytest.mark.asyncio
class TestTransferCredits:

    async def test_reseller_transfers_to_user(self, transfer_use_case, mock_ledger_repo, mock_uow):
        """
        Given: reseller with 100 credits, user with 0
        When: reseller transfers 40 with a monthly policy
        Then: reseller 60, user 40 with a monthly expiry, one TRANSFER transaction
        """
        balances = {"reseller_1": balance("reseller_1", 100)}
        stub_balances(mock_ledger_repo, balances)

        result = await transfer_use_case.execute(
            TransferCommandDTO(
                from_owner_id="reseller_1",
                to_owner_id="user_1",
                category_id="marketing",
                amount=40,
                duration_policy=DurationPolicy.MONTHLY,
                idempotency_key="t-1",
            )
        )

        assert result.is_ok()
        response = result.value
        assert response.transaction_type == "transfer"
        assert response.amount == 40
        assert response.balance_before == 0
        assert response.balance_after == 40
        assert response.metadata["source_balance_after"] == 60
        assert balances["reseller_1"].amount == 60
        assert balances["user_1"].amount == 40

        policy, expires_at = mock_ledger_repo.set_duration.call_args.args[2:]
        assert policy == DurationPolicy.MONTHLY
        assert expires_at > utcnow() + timedelta(days=27)
        mock_uow.commit.assert_called_once()

    async def test_user_cannot_transfer(self, transfer_use_case, mock_ledger_repo, mock_uow):
        mock_ledger_repo.get_balance = AsyncMock()

        result = await transfer_use_case.execute(
            TransferCommandDTO(from_owner_id="user_1", to_owner_id="user_2", category_id="marketing", amount=5)
        )

        assert result.is_err()
        assert result.error.code == "TRANSFER_NOT_ALLOWED"
        mock_ledger_repo.get_balance.assert_not_called()
        mock_uow.commit.assert_not_called()

    async def test_user_cannot_transfer_up_to_reseller(self, transfer_use_case):
        result = await transfer_use_case.execute(
            TransferCommandDTO(from_owner_id="user_1", to_owner_id="reseller_1", category_id="marketing", amount=5)
        )

        assert result.error.code == "TRANSFER_NOT_ALLOWED"

    async def test_insufficient_source_balance(self, transfer_use_case, mock_ledger_repo, mock_uow):
        balances = {"reseller_1": balance("reseller_1", 30)}
        stub_balances(mock_ledger_repo, balances)

        result = await transfer_use_case.execute(
            TransferCommandDTO(from_owner_id="reseller_1", to_owner_id="user_1", category_id="marketing", amount=40)
        )

        assert result.is_err()
        assert result.error.code == "INSUFFICIENT_CREDIT"
        assert balances["reseller_1"].amount == 30
        mock_ledger_repo.adjust.assert_not_called()
        mock_uow.commit.assert_not_called()

    async def test_super_admin_source_is_never_decremented(self, transfer_use_case, mock_ledger_repo):
        balances = {}
        stub_balances(mock_ledger_repo, balances)

        result = await transfer_use_case.execute(
            TransferCommandDTO(from_owner_id="root", to_owner_id="reseller_1", category_id="marketing", amount=500)
        )

        assert result.is_ok()
        assert "root" not in balances
        assert balances["reseller_1"].amount == 500
        mock_ledger_repo.adjust.assert_called_once_with("reseller_1", "marketing", 500)

    async def test_expired_destination_is_forfeited_first(
        self, transfer_use_case, mock_ledger_repo, mock_transaction_repo
    ):
        """Stale credits on the destination are expired before the new grant lands"""
        balances = {
            "reseller_1": balance("reseller_1", 100),
            "user_1": balance(
                "user_1", 25, duration_policy=DurationPolicy.DAILY, expires_at=utcnow() - timedelta(hours=1)
            ),
        }
        stub_balances(mock_ledger_repo, balances)

        result = await transfer_use_case.execute(
            TransferCommandDTO(from_owner_id="reseller_1", to_owner_id="user_1", category_id="marketing", amount=10)
        )

        assert result.is_ok()
        assert result.value.balance_before == 0
        assert result.value.balance_after == 10
        created_types = [call.args[0].transaction_type for call in mock_transaction_repo.create.call_args_list]
        assert created_types == [TransactionType.EXPIRY, TransactionType.TRANSFER]

    async def test_specific_date_without_expiry_is_rejected(self, transfer_use_case, mock_ledger_repo):
        stub_balances(mock_ledger_repo, {"reseller_1": balance("reseller_1", 100)})

        result = await transfer_use_case.execute(
            TransferCommandDTO(
                from_owner_id="reseller_1",
                to_owner_id="user_1",
                category_id="marketing",
                amount=10,
                duration_policy=DurationPolicy.SPECIFIC_DATE,
            )
        )

        assert result.error.code == "VALIDATION_ERROR"

    async def test_unknown_owner(self, transfer_use_case):
        result = await transfer_use_case.execute(
            TransferCommandDTO(from_owner_id="reseller_1", to_owner_id="ghost", category_id="marketing", amount=1)
        )

        assert result.error.code == "OWNER_NOT_FOUND"

    async def test_idempotent_retry_returns_original(
        self, transfer_use_case, mock_transaction_repo, mock_ledger_repo, mock_uow
    ):
        existing = CreditTransaction(
            id=9,
            from_owner_id="reseller_1",
            to_owner_id="user_1",
            category_id="marketing",
            transaction_type=TransactionType.TRANSFER,
            amount=40,
            balance_before=0,
            balance_after=40,
            idempotency_key="t-1",
            created_at=datetime(2024, 1, 1),
        )
        mock_transaction_repo.get_by_idempotency_key = AsyncMock(return_value=existing)
        mock_ledger_repo.adjust = AsyncMock()

        result = await transfer_use_case.execute(
            TransferCommandDTO(
                from_owner_id="reseller_1",
                to_owner_id="user_1",
                category_id="marketing",
                amount=40,
                idempotency_key="t-1",
            )
        )

        assert result.is_ok()
        assert result.value.transaction_id == 9
        mock_ledger_repo.adjust.assert_not_called()
        mock_uow.commit.assert_not_called()

    async def test_repository_failure_rolls_back(self, transfer_use_case, mock_ledger_repo, mock_uow):
        mock_ledger_repo.get_balance = AsyncMock(side_effect=RuntimeError("connection lost"))

        result = await transfer_use_case.execute(
            TransferCommandDTO(from_owner_id="reseller_1", to_owner_id="user_1", category_id="marketing", amount=1)
        )

        assert result.error.code == "TRANSFER_CREDIT_FAILED"
        assert "connection lost" in result.error.reason
        mock_uow.rollback.assert_called_once()
