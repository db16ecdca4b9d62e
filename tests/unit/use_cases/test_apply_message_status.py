"""Unit tests for ApplyMessageStatus use case"""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from src.app.use_cases.campaigns import ApplyMessageStatus, MessageStatusCommandDTO
from src.domain.campaign_recipient import CampaignRecipient, RecipientStatus


def make_recipient(status=RecipientStatus.SENT):
    return CampaignRecipient(
        id=3,
        campaign_id=12,
        position=4,
        phone_number="+15550000004",
        status=status,
        external_message_id="wamid.ABC",
    )


@pytest.fixture
def mock_campaign_repo():
    repo = MagicMock()
    repo.increment_counters = AsyncMock()
    return repo


@pytest.fixture
def mock_recipient_repo():
    repo = MagicMock()
    repo.get_by_external_id = AsyncMock(return_value=make_recipient())
    repo.save_many = AsyncMock()
    return repo


@pytest.fixture
def apply_use_case(mock_uow, mock_campaign_repo, mock_recipient_repo):
    return ApplyMessageStatus(
        uow=mock_uow,
        campaign_repo=mock_campaign_repo,
        recipient_repo=mock_recipient_repo,
    )


@pytest.mark.asyncio
class TestApplyMessageStatus:

    async def test_delivery_moves_recipient_and_counters(
        self, apply_use_case, mock_campaign_repo, mock_recipient_repo, mock_uow
    ):
        delivered_at = datetime(2024, 10, 19, 8, 30, tzinfo=timezone.utc)

        result = await apply_use_case.execute(
            MessageStatusCommandDTO(external_message_id="wamid.ABC", status="delivered", timestamp=delivered_at)
        )

        assert result.is_ok()
        assert result.value.applied is True
        assert result.value.campaign_id == 12
        assert result.value.recipient_position == 4
        recipient = mock_recipient_repo.save_many.call_args.args[0][0]
        assert recipient.status == RecipientStatus.DELIVERED
        assert recipient.delivered_at == datetime(2024, 10, 19, 8, 30)
        mock_campaign_repo.increment_counters.assert_called_once_with(12, {"delivered_count": 1})
        mock_uow.commit.assert_called_once()

    async def test_read_implies_delivered(self, apply_use_case, mock_campaign_repo):
        await apply_use_case.execute(MessageStatusCommandDTO(external_message_id="wamid.ABC", status="read"))

        mock_campaign_repo.increment_counters.assert_called_once_with(
            12, {"delivered_count": 1, "read_count": 1}
        )

    async def test_late_delivery_after_read_is_ignored(
        self, apply_use_case, mock_recipient_repo, mock_campaign_repo, mock_uow
    ):
        mock_recipient_repo.get_by_external_id = AsyncMock(return_value=make_recipient(RecipientStatus.READ))

        result = await apply_use_case.execute(
            MessageStatusCommandDTO(external_message_id="wamid.ABC", status="delivered")
        )

        assert result.is_ok()
        assert result.value.applied is False
        assert result.value.status == "read"
        mock_campaign_repo.increment_counters.assert_not_called()
        mock_uow.commit.assert_not_called()

    async def test_failure_after_send_records_error(self, apply_use_case, mock_recipient_repo, mock_campaign_repo):
        await apply_use_case.execute(
            MessageStatusCommandDTO(
                external_message_id="wamid.ABC",
                status="failed",
                error_code="131026",
                error_message="Message undeliverable",
            )
        )

        recipient = mock_recipient_repo.save_many.call_args.args[0][0]
        assert recipient.error_code == "131026"
        assert recipient.error_retryable is False
        mock_campaign_repo.increment_counters.assert_called_once_with(
            12, {"sent_count": -1, "failed_count": 1}
        )

    async def test_unknown_message_id(self, apply_use_case, mock_recipient_repo):
        mock_recipient_repo.get_by_external_id = AsyncMock(return_value=None)

        result = await apply_use_case.execute(
            MessageStatusCommandDTO(external_message_id="wamid.OTHER", status="delivered")
        )

        assert result.error.code == "RECIPIENT_NOT_FOUND"

    @pytest.mark.parametrize("status", ["pending", "bounced"])
    async def test_invalid_status(self, apply_use_case, status):
        result = await apply_use_case.execute(
            MessageStatusCommandDTO(external_message_id="wamid.ABC", status=status)
        )

        assert result.error.code == "VALIDATION_ERROR"
