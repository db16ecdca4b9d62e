"""Unit tests for CampaignSchedulerWorker

Tests cover:
- Starting every due scheduled campaign
- Campaigns that cannot start are skipped, not fatal
- Unexpected errors on one campaign do not stop the others
- Rate-limited campaigns resumed once the cool-down has passed
- Shutdown drains the task runner
"""

import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

from libs.result import Return, Error
from src.worker.campaign_scheduler import CampaignSchedulerWorker


@pytest.fixture
def session_factory():
    session = MagicMock()
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=session)
    context.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=context)


@pytest.fixture
def task_runner():
    runner = MagicMock()
    runner.shutdown = AsyncMock()
    return runner


@pytest.fixture
def worker(session_factory, task_runner):
    return CampaignSchedulerWorker(
        session_factory=session_factory,
        message_sender=MagicMock(),
        rate_limiter=MagicMock(),
        task_runner=task_runner,
        resume_after_seconds=300,
    )


def started(campaign_id, credits=10):
    value = MagicMock(credits_charged=credits)
    value.campaign.id = campaign_id
    return Return.ok(value)


@pytest.mark.asyncio
class TestCampaignSchedulerWorkerRunOnce:

    @patch("src.worker.campaign_scheduler.build_start_campaign")
    @patch("src.worker.campaign_scheduler.SqlAlchemyCampaignRepository")
    async def test_starts_due_campaigns(self, mock_repo_cls, mock_build, worker, task_runner):
        """
        Given: Two scheduled campaigns whose start time has passed
        When: run_once is called
        Then: Both are started through StartCampaign with the worker's task runner
        """
        # Arrange
        mock_repo_cls.return_value.list_due_scheduled = AsyncMock(
            return_value=[MagicMock(id=1), MagicMock(id=2)]
        )
        use_case = MagicMock()
        use_case.execute = AsyncMock(side_effect=[started(1), started(2)])
        mock_build.return_value = use_case
        now = datetime(2024, 10, 19, 9, 0, 0)

        # Act
        count = await worker.run_once(now=now, limit=10)

        # Assert
        assert count == 2
        mock_repo_cls.return_value.list_due_scheduled.assert_awaited_once_with(now, limit=10)
        assert [c.args[0] for c in use_case.execute.await_args_list] == [1, 2]
        assert mock_build.call_args.args[1] is task_runner
        assert mock_build.call_args.args[2] is worker.dispatch_runner

    @patch("src.worker.campaign_scheduler.build_start_campaign")
    @patch("src.worker.campaign_scheduler.SqlAlchemyCampaignRepository")
    async def test_insufficient_credit_is_skipped(self, mock_repo_cls, mock_build, worker):
        """
        Given: One due campaign whose owner lacks credits
        When: run_once is called
        Then: It is not counted and the next campaign still starts
        """
        mock_repo_cls.return_value.list_due_scheduled = AsyncMock(
            return_value=[MagicMock(id=1), MagicMock(id=2)]
        )
        use_case = MagicMock()
        use_case.execute = AsyncMock(
            side_effect=[
                Return.err(Error(code="INSUFFICIENT_CREDIT", message="Insufficient credits")),
                started(2),
            ]
        )
        mock_build.return_value = use_case

        count = await worker.run_once()

        assert count == 1

    @patch("src.worker.campaign_scheduler.build_start_campaign")
    @patch("src.worker.campaign_scheduler.SqlAlchemyCampaignRepository")
    async def test_unexpected_error_does_not_stop_cycle(self, mock_repo_cls, mock_build, worker):
        mock_repo_cls.return_value.list_due_scheduled = AsyncMock(
            return_value=[MagicMock(id=1), MagicMock(id=2)]
        )
        use_case = MagicMock()
        use_case.execute = AsyncMock(side_effect=[RuntimeError("connection reset"), started(2)])
        mock_build.return_value = use_case

        count = await worker.run_once()

        assert count == 1

    @patch("src.worker.campaign_scheduler.build_start_campaign")
    @patch("src.worker.campaign_scheduler.SqlAlchemyCampaignRepository")
    async def test_nothing_due(self, mock_repo_cls, mock_build, worker):
        mock_repo_cls.return_value.list_due_scheduled = AsyncMock(return_value=[])

        count = await worker.run_once()

        assert count == 0
        mock_build.assert_not_called()


@pytest.mark.asyncio
class TestCampaignSchedulerWorkerResumeRateLimited:

    @patch("src.worker.campaign_scheduler.build_resume_campaign")
    @patch("src.worker.campaign_scheduler.SqlAlchemyCampaignRepository")
    async def test_resumes_campaigns_paused_before_the_cool_down(
        self, mock_repo_cls, mock_build, worker, task_runner
    ):
        """
        Given: Two campaigns the rate limit paused more than five minutes ago
        When: resume_rate_limited is called
        Then: Only campaigns paused before now minus the cool-down are listed, and both resume
        """
        # Arrange
        mock_repo_cls.return_value.list_rate_limited = AsyncMock(
            return_value=[MagicMock(id=3), MagicMock(id=4)]
        )
        use_case = MagicMock()
        use_case.execute = AsyncMock(side_effect=[Return.ok(MagicMock()), Return.ok(MagicMock())])
        mock_build.return_value = use_case
        now = datetime(2024, 10, 19, 9, 0, 0)

        # Act
        count = await worker.resume_rate_limited(now=now, limit=20)

        # Assert
        assert count == 2
        mock_repo_cls.return_value.list_rate_limited.assert_awaited_once_with(
            now - timedelta(seconds=300), limit=20
        )
        assert [c.args[0] for c in use_case.execute.await_args_list] == [3, 4]
        assert mock_build.call_args.args[1] is task_runner
        assert mock_build.call_args.args[2] is worker.dispatch_runner

    @patch("src.worker.campaign_scheduler.build_resume_campaign")
    @patch("src.worker.campaign_scheduler.SqlAlchemyCampaignRepository")
    async def test_campaign_cancelled_since_listing_is_skipped(self, mock_repo_cls, mock_build, worker):
        mock_repo_cls.return_value.list_rate_limited = AsyncMock(
            return_value=[MagicMock(id=3), MagicMock(id=4)]
        )
        use_case = MagicMock()
        use_case.execute = AsyncMock(
            side_effect=[
                Return.err(Error(code="CAMPAIGN_STATE_ERROR", message="Cannot resume campaign 3")),
                RuntimeError("connection reset"),
            ]
        )
        mock_build.return_value = use_case

        count = await worker.resume_rate_limited()

        assert count == 0
        assert use_case.execute.await_count == 2


@pytest.mark.asyncio
class TestCampaignSchedulerWorkerShutdown:

    async def test_shutdown_drains_task_runner(self, worker, task_runner):
        await worker.shutdown(timeout=None)

        task_runner.shutdown.assert_awaited_once_with(timeout=None)
