import logging
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from src.adapter.repositories import (
    SqlAlchemyCampaignCreditRepository,
    SqlAlchemyCampaignRecipientRepository,
    SqlAlchemyCampaignRepository,
    SqlAlchemyCategoryRepository,
    SqlAlchemyCreditLedgerRepository,
    SqlAlchemyCreditTransactionRepository,
    SqlAlchemyOwnerRepository,
)
from src.adapter.services import (
    AsyncioTaskRunner,
    SqlAlchemyUnitOfWork,
    create_message_sender,
    create_rate_limiter,
)
from src.app.services import MessageSender, RateLimiter, TaskRunner
from src.app.use_cases.campaigns import DispatchCampaign, DispatchRunner, ResumeCampaign, StartCampaign
from src.app.use_cases.credits import CalculateRequiredCredits, DebitCredits, RefundCampaignCredits

logger = logging.getLogger(__name__)

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


def build_refund_credits(session: AsyncSession) -> RefundCampaignCredits:
    return RefundCampaignCredits(
        uow=SqlAlchemyUnitOfWork(session),
        campaign_credit_repo=SqlAlchemyCampaignCreditRepository(session),
        ledger_repo=SqlAlchemyCreditLedgerRepository(session),
        transaction_repo=SqlAlchemyCreditTransactionRepository(session),
    )


def build_dispatch_runner(
    session_factory,
    message_sender: MessageSender,
    rate_limiter: RateLimiter,
    status_poll_seconds: float = 5.0,
) -> DispatchRunner:
    """Each dispatch loop runs in its own session, independent of the request that started it"""

    async def run_dispatch(campaign_id: int):
        async with session_factory() as session:
            use_case = DispatchCampaign(
                uow=SqlAlchemyUnitOfWork(session),
                campaign_repo=SqlAlchemyCampaignRepository(session),
                recipient_repo=SqlAlchemyCampaignRecipientRepository(session),
                message_sender=message_sender,
                rate_limiter=rate_limiter,
                refund_credits=build_refund_credits(session),
                status_poll_seconds=status_poll_seconds,
            )
            result = await use_case.execute(campaign_id)
            if result.is_err():
                logger.error(f"Dispatch of campaign {campaign_id} ended with {result.error.code}: {result.error.reason}")
            else:
                logger.info(
                    f"Dispatch of campaign {campaign_id} ended: status={result.value.status}, "
                    f"sent={result.value.sent}, failed={result.value.failed}"
                )
            return result

    return run_dispatch


def build_start_campaign(
    session: AsyncSession, task_runner: TaskRunner, dispatch_runner: DispatchRunner
) -> StartCampaign:
    ledger_repo = SqlAlchemyCreditLedgerRepository(session)
    transaction_repo = SqlAlchemyCreditTransactionRepository(session)
    uow = SqlAlchemyUnitOfWork(session)
    return StartCampaign(
        uow=uow,
        campaign_repo=SqlAlchemyCampaignRepository(session),
        recipient_repo=SqlAlchemyCampaignRecipientRepository(session),
        category_repo=SqlAlchemyCategoryRepository(session),
        debit_credits=DebitCredits(
            uow=uow,
            owner_repo=SqlAlchemyOwnerRepository(session),
            ledger_repo=ledger_repo,
            transaction_repo=transaction_repo,
        ),
        required_credits=CalculateRequiredCredits(),
        task_runner=task_runner,
        dispatch_runner=dispatch_runner,
    )


def build_resume_campaign(
    session: AsyncSession, task_runner: TaskRunner, dispatch_runner: DispatchRunner
) -> ResumeCampaign:
    return ResumeCampaign(
        uow=SqlAlchemyUnitOfWork(session),
        campaign_repo=SqlAlchemyCampaignRepository(session),
        task_runner=task_runner,
        dispatch_runner=dispatch_runner,
    )


# One limiter, sender and task runner per API process
rate_limiter = create_rate_limiter(
    per_minute=ApplicationConfig.RATE_LIMIT_PER_MINUTE,
    per_hour=ApplicationConfig.RATE_LIMIT_PER_HOUR,
    per_day=ApplicationConfig.RATE_LIMIT_PER_DAY,
)

message_sender = create_message_sender(
    phone_number_id=ApplicationConfig.META_PHONE_NUMBER_ID,
    access_token=ApplicationConfig.META_ACCESS_TOKEN,
    base_url=ApplicationConfig.META_GRAPH_API_URL,
    api_version=ApplicationConfig.META_API_VERSION,
    timeout=ApplicationConfig.SEND_TIMEOUT_SECONDS,
)

task_runner = AsyncioTaskRunner()

dispatch_runner = build_dispatch_runner(
    AsyncSessionLocal,
    message_sender,
    rate_limiter,
    status_poll_seconds=ApplicationConfig.STATUS_POLL_SECONDS,
)


def get_task_runner() -> TaskRunner:
    return task_runner


def get_dispatch_runner() -> DispatchRunner:
    return dispatch_runner
