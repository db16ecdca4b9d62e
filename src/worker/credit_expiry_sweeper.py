"""Credit Expiry Background Worker

Zeroes out balances whose expiry date has passed and records an expiry
transaction for each. Can be run as a standalone script or integrated
with a scheduler.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories import (
    SqlAlchemyCreditLedgerRepository,
    SqlAlchemyCreditTransactionRepository,
)
from src.adapter.services import SqlAlchemyUnitOfWork
from src.app.use_cases.credits import SweepExpiredCredits, SweepResultDTO

logger = logging.getLogger(__name__)


class CreditExpirySweeperWorker:
    """
    Background worker for credit expiry

    Features:
    - Finds balances whose expires_at has passed
    - Writes one EXPIRY transaction per balance and resets it to unlimited
    - Idempotent: a balance already swept is skipped
    - Can run once or continuously

    Usage:
        worker = CreditExpirySweeperWorker()
        result = await worker.run_once()

        worker = CreditExpirySweeperWorker()
        await worker.run_forever(interval_seconds=86400)
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
        session_factory=None,
    ):
        """
        Initialize the worker

        Args:
            db_uri: Database URI (defaults to ApplicationConfig.DB_URI)
            session_factory: Existing session factory to use instead of creating an engine
        """
        self.engine = None
        if session_factory is None:
            self.engine = create_async_engine(db_uri or ApplicationConfig.DB_URI, echo=False, future=True)
            session_factory = sessionmaker(
                self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
            )
        self.async_session_factory = session_factory

        logger.info("CreditExpirySweeperWorker initialized")

    async def run_once(self, now: Optional[datetime] = None, limit: int = 500) -> Optional[SweepResultDTO]:
        """
        Run one sweep

        Returns:
            SweepResultDTO, or None when the sweep itself failed
        """
        async with self.async_session_factory() as session:
            use_case = SweepExpiredCredits(
                uow=SqlAlchemyUnitOfWork(session),
                ledger_repo=SqlAlchemyCreditLedgerRepository(session),
                transaction_repo=SqlAlchemyCreditTransactionRepository(session),
            )
            result = await use_case.execute(now=now, limit=limit)

        if result.is_err():
            logger.error(f"Credit expiry sweep failed: {result.error.message} ({result.error.reason})")
            return None

        sweep = result.value
        logger.info(
            f"Credit expiry sweep complete: {sweep.expired_balances} balances expired, "
            f"{sweep.expired_credits} credits removed, {sweep.failed_balances} failed"
        )
        return sweep

    async def run_forever(self, interval_seconds: Optional[int] = None):
        """
        Run the sweep continuously

        Args:
            interval_seconds: Seconds between sweeps (defaults to config, daily)
        """
        interval_seconds = interval_seconds or ApplicationConfig.CREDIT_EXPIRY_SWEEP_INTERVAL_SECONDS
        logger.info(f"Starting continuous credit expiry sweep with {interval_seconds}s interval")

        while True:
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Credit expiry sweep cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        if self.engine is not None:
            await self.engine.dispose()
        logger.info("CreditExpirySweeperWorker shutdown complete")


async def main():
    """
    Entry point for running the worker as a standalone script

    Usage:
        python -m src.worker.credit_expiry_sweeper
        python -m src.worker.credit_expiry_sweeper --continuous --interval 3600
    """
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Credit Expiry Sweeper Worker")
    parser.add_argument("--continuous", action="store_true", help="Run continuously")
    parser.add_argument("--interval", type=int, help="Seconds between sweeps")
    parser.add_argument("--limit", type=int, default=500, help="Maximum balances per sweep")
    args = parser.parse_args()

    if not ApplicationConfig.CREDIT_EXPIRY_SWEEP_ENABLED:
        logger.info("Credit expiry sweep disabled by configuration")
        return

    worker = CreditExpirySweeperWorker()

    try:
        if args.continuous:
            await worker.run_forever(interval_seconds=args.interval)
        else:
            result = await worker.run_once(limit=args.limit)
            if result:
                print("Credit expiry sweep complete:")
                print(f"  Balances expired: {result.expired_balances}")
                print(f"  Credits removed: {result.expired_credits}")
                print(f"  Failed balances: {result.failed_balances}")
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
