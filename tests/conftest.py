import pytest
from datetime import datetime, timezone
from typing import AsyncGenerator, List

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from ascendia.api.auth import get_current_user
from ascendia.api.deps import get_mission_service
from ascendia.db.sql_store import SqlStore
from ascendia.main import app
from ascendia.models import CurrentUser, Mission, MissionStatus
from ascendia.services.archetypes import DEFAULT_ARCHETYPES, ArchetypeCatalog
from ascendia.services.missions import MissionService

# in-memory test db, one connection shared across sessions
TEST_DB_URL = "sqlite+aiosqlite://"

LEVEL_UP_EVERY_DAYS = 7


class FrozenClock:
    """Callable clock the tests can move by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, iso: str) -> None:
        self.now = datetime.fromisoformat(iso).replace(tzinfo=timezone.utc)


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def store(engine: AsyncEngine) -> SqlStore:
    s = SqlStore(engine)
    await s.seed_archetypes(DEFAULT_ARCHETYPES)
    return s


@pytest.fixture
def archetypes(store: SqlStore) -> ArchetypeCatalog:
    return ArchetypeCatalog(store)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 2, 2, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def service(store: SqlStore, archetypes: ArchetypeCatalog, clock: FrozenClock) -> MissionService:
    return MissionService(
        store=store,
        archetypes=archetypes,
        level_up_every_days=LEVEL_UP_EVERY_DAYS,
        clock=clock,
    )


@pytest.fixture
def user() -> CurrentUser:
    return CurrentUser(id="user-1", email="hunter@ascendia.local")


@pytest.fixture
async def client(service: MissionService, user: CurrentUser) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_mission_service] = lambda: service
    app.dependency_overrides[get_current_user] = lambda: user
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def complete_all(store: SqlStore):
    """Mark every given mission completed, straight in the store."""

    async def _complete(missions: List[Mission]) -> None:
        for m in missions:
            await store.update_mission_status(m.id, m.user_id, MissionStatus.COMPLETED)

    return _complete
