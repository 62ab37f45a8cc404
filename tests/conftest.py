"""
Test infrastructure for the Relations service.

Strategy
--------
- SQLite in-memory via aiosqlite replaces Postgres; StaticPool makes every
  task share the one connection an in-memory database lives on.
- The app's get_db dependency is overridden so requests use the test
  session factory.  Tables are created before and dropped after each test.
- The Users and Messages services are replaced by ``FakeUpstream``, whose
  handlers are mounted on ``httpx.MockTransport``.  The real
  ``UsersClient`` / ``MessagesClient`` code runs unchanged on top of it and
  is injected through ``dependency_overrides``.
"""
import asyncio

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.clients import MessagesClient, UsersClient
from app.config import Settings
from app.database import Base, get_db
from app.dependencies import get_messages_client, get_settings, get_users_client
from app.main import app
from app.middleware import install_query_counter
from app.models import Follow

VALID_TOKEN = "Bearer valid-token"
USERS_URL = "http://usuarios.test/redesSocial/usuarios"
MESSAGES_URL = "http://mensajes.test/redesSocial/mensajes"

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Fake Users / Messages services
# ---------------------------------------------------------------------------

class FakeUpstream:
    """
    In-memory stand-in for the Users and Messages services.

    - ``users``: usernames that exist.
    - ``messages``: username -> list of message dicts (newest first).
    - ``message_delays``: username -> seconds to sleep before answering.
    - ``message_failures``: username -> HTTP status code or an httpx
      exception instance to raise.
    - ``users_down``: when True every Users call answers 500.
    - ``calls``: ``(service, username)`` for every request received.
    """

    def __init__(self) -> None:
        self.users: set[str] = set()
        self.messages: dict[str, list[dict]] = {}
        self.message_delays: dict[str, float] = {}
        self.message_failures: dict[str, object] = {}
        self.users_down = False
        self.calls: list[tuple[str, str]] = []

    def calls_to(self, service: str) -> list[str]:
        return [username for svc, username in self.calls if svc == service]

    async def users_handler(self, request: httpx.Request) -> httpx.Response:
        username = request.url.path.rsplit("/", 1)[-1]
        self.calls.append(("usuarios", username))
        if self.users_down:
            return httpx.Response(500, json={"status": "error", "mensaje": "boom"})
        if request.headers.get("authorization") != VALID_TOKEN:
            return httpx.Response(401, json={"status": "error", "mensaje": "Token inválido o expirado."})
        if username not in self.users:
            return httpx.Response(404, json={"status": "error", "mensaje": "Usuario no encontrado."})
        return httpx.Response(200, json={
            "status": "success",
            "data": {"username": username, "nombre": username.title(), "rol": "Usuario red social"},
        })

    async def messages_handler(self, request: httpx.Request) -> httpx.Response:
        username = request.url.path.rsplit("/", 1)[-1]
        self.calls.append(("mensajes", username))
        delay = self.message_delays.get(username)
        if delay:
            await asyncio.sleep(delay)
        failure = self.message_failures.get(username)
        if isinstance(failure, Exception):
            raise failure
        if isinstance(failure, int):
            return httpx.Response(failure, json={"status": "error", "mensaje": "fallo"})
        if request.headers.get("authorization") != VALID_TOKEN:
            return httpx.Response(401, json={"status": "error", "mensaje": "No te encuentras logueado."})
        return httpx.Response(200, json={"status": "success", "data": self.messages.get(username, [])})

    def users_client(self) -> UsersClient:
        return UsersClient(
            USERS_URL, httpx.AsyncClient(transport=httpx.MockTransport(self.users_handler))
        )

    def messages_client(self) -> MessagesClient:
        return MessagesClient(
            MESSAGES_URL, httpx.AsyncClient(transport=httpx.MockTransport(self.messages_handler))
        )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """A live session for seeding data and asserting Follow Store state."""
    async with async_session_test() as session:
        yield session


@pytest.fixture
def upstream() -> FakeUpstream:
    fake = FakeUpstream()
    fake.users.update({"alice", "bob", "carol", "dave"})
    return fake


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        DATABASE_URL=TEST_DATABASE_URL,
        USERS_API_URL=USERS_URL,
        MESSAGES_API_URL=MESSAGES_URL,
        FANOUT_TIMEOUT_SECONDS=1.0,
    )


@pytest_asyncio.fixture
async def async_client(upstream: FakeUpstream, test_settings: Settings) -> AsyncClient:
    """
    Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport,
    with the upstream services replaced by *upstream*.
    """
    users = upstream.users_client()
    messages = upstream.messages_client()
    app.dependency_overrides[get_users_client] = lambda: users
    app.dependency_overrides[get_messages_client] = lambda: messages
    app.dependency_overrides[get_settings] = lambda: test_settings

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    for dependency in (get_users_client, get_messages_client, get_settings):
        app.dependency_overrides.pop(dependency, None)
    await users.aclose()
    await messages.aclose()


async def seed_follows(db: AsyncSession, follower: str, followees: list[str]) -> None:
    """Insert follow edges for *follower* in the given order and commit."""
    for followee in followees:
        db.add(Follow(followee_username=followee, follower_username=follower))
        await db.flush()
    await db.commit()


@pytest.fixture
def seed(db_session: AsyncSession):
    """``await seed("alice", ["bob", "carol"])`` inserts edges in that order."""
    async def _seed(follower: str, followees: list[str]) -> None:
        await seed_follows(db_session, follower, followees)
    return _seed
