import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

import src.domain  # noqa: F401  registers every table on SQLModel.metadata
from src.adapter.services.task_runner import AsyncioTaskRunner
from src.depends import get_dispatch_runner, get_session, get_task_runner
from src.domain.category import Category
from src.domain.credit_balance import CreditBalance
from src.domain.owner import Owner, OwnerRole
from tests.integration.fakes import RecordingDispatchRunner


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """File-backed SQLite database, so several sessions can share it"""
    test_db_url = f"sqlite+aiosqlite:///{tmp_path / 'campaigns_test.db'}"

    engine = create_async_engine(test_db_url, echo=False, future=True)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Create a new database session for each test"""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seed(db_session):
    """Owners across the role hierarchy plus one active category"""
    db_session.add_all(
        [
            Owner(id="root", name="Root", role=OwnerRole.SUPER_ADMIN),
            Owner(id="admin_1", name="Admin", role=OwnerRole.ADMIN),
            Owner(id="reseller_1", name="Reseller", role=OwnerRole.RESELLER),
            Owner(id="user_1", name="User One", role=OwnerRole.USER),
            Owner(id="user_2", name="User Two", role=OwnerRole.USER),
            Category(
                id="marketing",
                name="Marketing",
                credit_cost=1.0,
                media_credit_cost=0.5,
                interactive_credit_cost=0.25,
                campaign_type_multipliers={"media": 1.5},
            ),
            CreditBalance(owner_id="root", category_id="marketing", amount=0, is_unlimited=True),
        ]
    )
    await db_session.commit()
    return db_session


@pytest_asyncio.fixture
async def task_runner():
    runner = AsyncioTaskRunner()
    yield runner
    await runner.shutdown(timeout=1)


@pytest_asyncio.fixture
async def dispatch_runner():
    return RecordingDispatchRunner()


@pytest_asyncio.fixture
async def client(db_session, task_runner, dispatch_runner):
    """Create test client with database session and background work overrides"""
    from src.api.app import create_app
    from config import ApplicationConfig

    app = create_app(ApplicationConfig)

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_task_runner] = lambda: task_runner
    app.dependency_overrides[get_dispatch_runner] = lambda: dispatch_runner

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
