"""Pytest configuration and fixtures."""

import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Sequence
from uuid import uuid4

# Settings are cached on first import, so point them at SQLite before that
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from gen_scheduler.api.masters import get_edge_client
from gen_scheduler.api.scheduler import get_scheduler
from gen_scheduler.db.models import Chapter, Master, MasterStatus
from gen_scheduler.db.session import Base, get_db
from gen_scheduler.main import app
from gen_scheduler.services.edge_client import EdgeFunctionClient, EdgeFunctionError
from gen_scheduler.services.scheduler import Scheduler


class FakeEdgeClient(EdgeFunctionClient):
    """Records remote calls instead of sending them."""

    def __init__(self):
        super().__init__(base_url="http://edge.test", service_key="test-key")
        self.orchestrated: list[str] = []
        self.bab_calls: list[str] = []
        self.failing_masters: set[str] = set()
        self.failing_babs: set[str] = set()

    async def run_orchestrator(self, master_id: str) -> str:
        self.orchestrated.append(master_id)
        if master_id in self.failing_masters:
            raise EdgeFunctionError(self.orchestrator_function, 500, "orchestrator unavailable")
        return '{"ok": true}'

    async def generate_bab_structure(self, bab_id: str) -> str:
        self.bab_calls.append(bab_id)
        if bab_id in self.failing_babs:
            raise EdgeFunctionError(self.bab_structure_function, 500, "model timeout")
        return '{"ok": true}'


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """Create a fresh SQLite database per test."""
    # Writers take the lock at BEGIN so concurrent passes wait on each other
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        connect_args={"isolation_level": "IMMEDIATE"},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def edge_client() -> FakeEdgeClient:
    return FakeEdgeClient()


@pytest.fixture
def scheduler(session_maker, edge_client) -> Scheduler:
    return Scheduler(
        session_maker,
        edge_client,
        max_concurrent=3,
        stuck_threshold=timedelta(minutes=10),
    )


@pytest.fixture
def create_master(session_maker):
    """Factory that inserts a master (and its chapters) and returns its id."""

    async def _create(
        status: MasterStatus = MasterStatus.BELUM_SIAP,
        age_minutes: float = 0,
        chapters: Sequence[int] = (),
        percobaan: int = 0,
    ) -> str:
        master_id = str(uuid4())
        updated_at = datetime.now(timezone.utc) - timedelta(minutes=age_minutes)

        async with session_maker() as db:
            db.add(
                Master(
                    id=master_id,
                    nama=f"Master {master_id[:8]}",
                    generate_status=status,
                    generate_updated_at=updated_at,
                    percobaan=percobaan,
                )
            )
            for nomor in chapters:
                db.add(
                    Chapter(
                        id=str(uuid4()),
                        master_id=master_id,
                        nomor=nomor,
                        judul=f"Bab {nomor}",
                    )
                )
            await db.commit()

        return master_id

    return _create


@pytest.fixture
def fetch_master(session_maker):
    """Reload a master from the database."""

    async def _fetch(master_id: str) -> Master:
        async with session_maker() as db:
            return await db.get(Master, master_id)

    return _fetch


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    scheduler: Scheduler,
    edge_client: FakeEdgeClient,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    app.dependency_overrides[get_edge_client] = lambda: edge_client

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
