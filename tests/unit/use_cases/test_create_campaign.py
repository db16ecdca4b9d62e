"""Unit tests for CreateCampaign and GetRefundStats use cases"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from src.app.use_cases.campaigns import CreateCampaign, CreateCampaignCommandDTO
from src.app.use_cases.credits import GetRefundStats
from src.domain.base import utcnow
from src.domain.campaign import CampaignStatus, MessageSpec
from src.domain.campaign_credit import RefundPolicy
from src.domain.credit_transaction import CreditTransaction, TransactionType


def make_command(**kwargs):
    values = dict(
        name="October promo",
        owner_id="user_1",
        category_id="marketing",
        message=MessageSpec(template_name="promo_oct", language_code="en_US"),
        recipients=[
            {"phone_number": "+15550000001", "variables": {"1": "Ana"}},
            {"phone_number": "+15550000002", "variables": {"1": "Ben"}},
        ],
    )
    values.update(kwargs)
    return CreateCampaignCommandDTO(**values)


@pytest.fixture
def repos():
    owner_repo = MagicMock()
    owner_repo.get_by_id = AsyncMock(return_value=MagicMock(id="user_1"))
    category_repo = MagicMock()
    category_repo.get_by_id = AsyncMock(return_value=MagicMock(id="marketing"))

    campaign_repo = MagicMock()

    async def create(campaign):
        campaign.id = 11
        campaign.created_at = utcnow()
        return campaign

    campaign_repo.create = AsyncMock(side_effect=create)
    recipient_repo = MagicMock()
    recipient_repo.add_many = AsyncMock()
    campaign_credit_repo = MagicMock()
    campaign_credit_repo.save = AsyncMock()
    return owner_repo, category_repo, campaign_repo, recipient_repo, campaign_credit_repo


@pytest.fixture
def use_case(mock_uow, repos):
    owner_repo, category_repo, campaign_repo, recipient_repo, campaign_credit_repo = repos
    return CreateCampaign(
        uow=mock_uow,
        owner_repo=owner_repo,
        category_repo=category_repo,
        campaign_repo=campaign_repo,
        recipient_repo=recipient_repo,
        campaign_credit_repo=campaign_credit_repo,
    )


@pytest.mark.asyncio
class TestCreateCampaign:

    async def test_creates_draft_with_ordered_recipients(self, use_case, repos, mock_uow):
        """
        Given: A template campaign with two recipients and a refund policy
        When: It is created
        Then: It is a draft, recipients keep their order and the policy is stored
        """
        # Arrange
        _, _, campaign_repo, recipient_repo, campaign_credit_repo = repos
        command = make_command(refund_policy=RefundPolicy(enabled=True, refund_percentage=40))

        # Act
        result = await use_case.execute(command)

        # Assert
        assert result.is_ok()
        assert result.value.id == 11
        assert result.value.status == CampaignStatus.DRAFT.value

        created = campaign_repo.create.call_args[0][0]
        assert created.total_count == 2
        assert created.message_spec["template_name"] == "promo_oct"

        recipients = recipient_repo.add_many.call_args[0][0]
        assert [(r.position, r.phone_number) for r in recipients] == [
            (0, "+15550000001"),
            (1, "+15550000002"),
        ]
        assert recipients[1].variables == {"1": "Ben"}

        saved_policy = campaign_credit_repo.save.call_args[0][0]
        assert saved_policy.refund_enabled is True
        assert saved_policy.refund_percentage == 40
        mock_uow.commit.assert_called_once()

    async def test_message_without_content_is_rejected(self, use_case, repos):
        _, _, campaign_repo, _, _ = repos

        result = await use_case.execute(make_command(message=MessageSpec()))

        assert result.is_err()
        assert result.error.code == "VALIDATION_ERROR"
        campaign_repo.create.assert_not_called()

    async def test_inverted_delay_window_is_rejected(self, use_case):
        result = await use_case.execute(make_command(min_delay_seconds=5, max_delay_seconds=1))

        assert result.is_err()
        assert result.error.code == "VALIDATION_ERROR"

    async def test_unknown_category(self, use_case, repos):
        _, category_repo, campaign_repo, _, _ = repos
        category_repo.get_by_id.return_value = None

        result = await use_case.execute(make_command())

        assert result.error.code == "CATEGORY_NOT_FOUND"
        campaign_repo.create.assert_not_called()

    async def test_repository_failure_rolls_back(self, use_case, repos, mock_uow):
        _, _, _, recipient_repo, _ = repos
        recipient_repo.add_many.side_effect = Exception("disk full")

        result = await use_case.execute(make_command())

        assert result.error.code == "CREATE_CAMPAIGN_FAILED"
        assert result.error.reason == "disk full"
        mock_uow.rollback.assert_called_once()
        mock_uow.commit.assert_not_called()


@pytest.mark.asyncio
class TestGetRefundStats:

    async def test_sums_refund_transactions(self):
        refunds = [
            CreditTransaction(
                id=id,
                from_owner_id="user_1",
                to_owner_id="user_1",
                category_id="marketing",
                campaign_id=11,
                transaction_type=TransactionType.REFUND,
                amount=amount,
                idempotency_key=f"campaign:11:run:{id}:refund",
                metadata_json={"failed_count": failed, "total_count": 10, "refund_percentage": 50},
                created_at=utcnow(),
            )
            for id, amount, failed in [(1, 10, 2), (2, 5, 1)]
        ]
        transaction_repo = MagicMock()
        transaction_repo.list_by_campaign = AsyncMock(return_value=refunds)

        result = await GetRefundStats(transaction_repo).execute(11)

        assert result.is_ok()
        assert result.value.total_refunded == 15
        assert result.value.total_failed_messages == 3
        assert result.value.total_messages == 20
        assert len(result.value.refund_transactions) == 2
        transaction_repo.list_by_campaign.assert_called_once_with(11, transaction_type=TransactionType.REFUND)
