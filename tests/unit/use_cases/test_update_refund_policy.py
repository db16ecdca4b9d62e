"""Unit tests for UpdateRefundPolicy use case"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from src.app.use_cases.credits.update_refund_policy import UpdateRefundPolicy
from src.app.use_cases.credits.dtos import UpdateRefundPolicyCommandDTO
from src.domain.campaign_credit import CampaignCredit


@pytest.fixture
def mock_campaign_credit_repo():
    repo = MagicMock()
    repo.get = AsyncMock(return_value=None)
    repo.save = AsyncMock(side_effect=lambda campaign_credit: campaign_credit)
    return repo


@pytest.fixture
def update_use_case(mock_uow, mock_campaign_credit_repo):
    return UpdateRefundPolicy(uow=mock_uow, campaign_credit_repo=mock_campaign_credit_repo)


def command(**overrides):
    values = dict(owner_id="user_1", campaign_id=12, enabled=True, refund_percentage=80, refund_threshold=3)
    values.update(overrides)
    return UpdateRefundPolicyCommandDTO(**values)


@pytest.mark.asyncio
class TestUpdateRefundPolicy:

    async def test_creates_policy_when_missing(self, update_use_case, mock_campaign_credit_repo, mock_uow):
        result = await update_use_case.execute(command())

        assert result.is_ok()
        assert result.value.enabled is True
        assert result.value.refund_percentage == 80
        assert result.value.refund_threshold == 3
        saved = mock_campaign_credit_repo.save.call_args.args[0]
        assert saved.campaign_id == 12
        mock_uow.commit.assert_called_once()

    async def test_replaces_existing_policy(self, update_use_case, mock_campaign_credit_repo):
        existing = CampaignCredit(id=4, owner_id="user_1", campaign_id=12, refund_enabled=True, refund_percentage=10)
        mock_campaign_credit_repo.get = AsyncMock(return_value=existing)

        result = await update_use_case.execute(command(enabled=False, refund_percentage=0, refund_threshold=0))

        assert result.value.enabled is False
        assert existing.refund_enabled is False
        assert existing.refund_percentage == 0

    @pytest.mark.parametrize("percentage", [-1, 101])
    async def test_percentage_out_of_range(self, update_use_case, mock_uow, percentage):
        result = await update_use_case.execute(command(refund_percentage=percentage))

        assert result.error.code == "VALIDATION_ERROR"
        mock_uow.commit.assert_not_called()

    async def test_negative_threshold(self, update_use_case):
        result = await update_use_case.execute(command(refund_threshold=-2))

        assert result.error.code == "VALIDATION_ERROR"
