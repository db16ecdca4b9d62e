"""Scheduled Campaign Starter Background Worker

Starts scheduled campaigns once their start time has passed, and resumes
campaigns the send rate limit paused once RATE_LIMIT_RESUME_AFTER_SECONDS
have passed since the pause. A campaign still over the limit pauses again
and waits another interval. Campaigns paused by an operator or by a
provider error are never resumed here. Dispatch loops run inside this
process, so a one-shot run waits for them before exiting.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories import SqlAlchemyCampaignRepository
from src.adapter.services import AsyncioTaskRunner, create_message_sender, create_rate_limiter
from src.app.services import MessageSender, RateLimiter
from src.domain.base import utcnow
from src.depends import build_dispatch_runner, build_resume_campaign, build_start_campaign

logger = logging.getLogger(__name__)


class CampaignSchedulerWorker:
    """
    Background worker that starts due scheduled campaigns

    Features:
    - Polls for campaigns in `scheduled` whose scheduled_at has passed
    - Starts each one in its own session (debit + status change)
    - Campaigns it cannot start (e.g. insufficient credit) stay scheduled
      and are logged
    - Resumes rate-limited campaigns after a cool-down
    - Can run once or continuously

    Usage:
        worker = CampaignSchedulerWorker()
        started = await worker.run_once()

        worker = CampaignSchedulerWorker()
        await worker.run_forever(interval_seconds=60)
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
        session_factory=None,
        message_sender: Optional[MessageSender] = None,
        rate_limiter: Optional[RateLimiter] = None,
        task_runner: Optional[AsyncioTaskRunner] = None,
        resume_after_seconds: Optional[int] = None,
    ):
        self.engine = None
        if session_factory is None:
            self.engine = create_async_engine(db_uri or ApplicationConfig.DB_URI, echo=False, future=True)
            session_factory = sessionmaker(
                self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
            )
        self.async_session_factory = session_factory

        self.task_runner = task_runner or AsyncioTaskRunner()
        if resume_after_seconds is None:
            resume_after_seconds = ApplicationConfig.RATE_LIMIT_RESUME_AFTER_SECONDS
        self.resume_after = timedelta(seconds=resume_after_seconds)
        self.dispatch_runner = build_dispatch_runner(
            self.async_session_factory,
            message_sender or create_message_sender(
                phone_number_id=ApplicationConfig.META_PHONE_NUMBER_ID,
                access_token=ApplicationConfig.META_ACCESS_TOKEN,
                base_url=ApplicationConfig.META_GRAPH_API_URL,
                api_version=ApplicationConfig.META_API_VERSION,
                timeout=ApplicationConfig.SEND_TIMEOUT_SECONDS,
            ),
            rate_limiter or create_rate_limiter(
                per_minute=ApplicationConfig.RATE_LIMIT_PER_MINUTE,
                per_hour=ApplicationConfig.RATE_LIMIT_PER_HOUR,
                per_day=ApplicationConfig.RATE_LIMIT_PER_DAY,
            ),
            status_poll_seconds=ApplicationConfig.STATUS_POLL_SECONDS,
        )

        logger.info("CampaignSchedulerWorker initialized")

    async def run_once(self, now: Optional[datetime] = None, limit: int = 100) -> int:
        """
        Start every due scheduled campaign

        Returns:
            Number of campaigns started
        """
        now = now or utcnow()

        async with self.async_session_factory() as session:
            due = await SqlAlchemyCampaignRepository(session).list_due_scheduled(now, limit=limit)

        if due:
            logger.info(f"Found {len(due)} due scheduled campaign(s)")

        started = 0
        for campaign in due:
            try:
                async with self.async_session_factory() as session:
                    use_case = build_start_campaign(session, self.task_runner, self.dispatch_runner)
                    result = await use_case.execute(campaign.id)

                if result.is_err():
                    logger.warning(
                        f"Could not start scheduled campaign {campaign.id}: "
                        f"{result.error.code} {result.error.message}"
                    )
                    continue

                started += 1
                logger.info(
                    f"Started scheduled campaign {campaign.id}, "
                    f"charged {result.value.credits_charged} credits"
                )
            except Exception as e:
                logger.error(f"Unexpected error starting campaign {campaign.id}: {e}")

        return started

    async def resume_rate_limited(self, now: Optional[datetime] = None, limit: int = 100) -> int:
        """
        Resume campaigns paused by the send rate limit at least resume_after ago

        Returns:
            Number of campaigns resumed
        """
        now = now or utcnow()

        async with self.async_session_factory() as session:
            paused = await SqlAlchemyCampaignRepository(session).list_rate_limited(
                now - self.resume_after, limit=limit
            )

        resumed = 0
        for campaign in paused:
            try:
                async with self.async_session_factory() as session:
                    use_case = build_resume_campaign(session, self.task_runner, self.dispatch_runner)
                    result = await use_case.execute(campaign.id)

                if result.is_err():
                    # Cancelled or resumed by someone else since listing
                    logger.info(f"Skipped resuming campaign {campaign.id}: {result.error.code}")
                    continue

                resumed += 1
                logger.info(f"Resumed rate-limited campaign {campaign.id}")
            except Exception as e:
                logger.error(f"Unexpected error resuming campaign {campaign.id}: {e}")

        return resumed

    async def run_forever(self, interval_seconds: Optional[int] = None):
        interval_seconds = interval_seconds or ApplicationConfig.CAMPAIGN_SCHEDULER_INTERVAL_SECONDS
        logger.info(f"Starting campaign scheduler with {interval_seconds}s interval")

        while True:
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Campaign scheduler cycle failed: {e}")

            try:
                await self.resume_rate_limited()
            except Exception as e:
                logger.error(f"Rate-limited campaign resume failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self, timeout: Optional[float] = 10.0):
        """Wait for running dispatch loops, then cleanup resources"""
        await self.task_runner.shutdown(timeout=timeout)
        if self.engine is not None:
            await self.engine.dispose()
        logger.info("CampaignSchedulerWorker shutdown complete")


async def main():
    """
    Entry point for running the worker as a standalone script

    Usage:
        python -m src.worker.campaign_scheduler
        python -m src.worker.campaign_scheduler --continuous
    """
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Scheduled Campaign Starter")
    parser.add_argument("--continuous", action="store_true", help="Run continuously")
    parser.add_argument("--interval", type=int, help="Seconds between polls")
    args = parser.parse_args()

    if not ApplicationConfig.CAMPAIGN_SCHEDULER_ENABLED:
        logger.info("Campaign scheduler disabled by configuration")
        return

    worker = CampaignSchedulerWorker()
    # A one-shot run lets its dispatch loops finish before exiting
    drain_timeout = None

    try:
        if args.continuous:
            drain_timeout = 10.0
            await worker.run_forever(interval_seconds=args.interval)
        else:
            started = await worker.run_once()
            resumed = await worker.resume_rate_limited()
            print(f"Started {started} scheduled campaign(s), resumed {resumed} rate-limited campaign(s)")
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown(timeout=drain_timeout)


if __name__ == "__main__":
    asyncio.run(main())
