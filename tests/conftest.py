"""
Test infrastructure for articlehub.

Strategy
--------
- SQLite in-memory via aiosqlite; StaticPool keeps every task on the one
  connection that holds the in-memory database.
- The app's get_db dependency is overridden with the test session factory.
- Tables are created before and dropped after each test.
- Redis is disabled (cache._redis = None) unless a test asks for the
  ``memory_cache`` or ``broken_cache`` fixture, which install in-process
  doubles exposing the subset of the redis.asyncio client the cache uses.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from articlehub.cache import cache
from articlehub.database import Base, commit, get_db, rollback
from articlehub.dependencies import get_token_service
from articlehub.main import app
from articlehub.middleware import install_query_counter
from articlehub.models import User
from articlehub.security.passwords import generate_salt_and_hash

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
            await commit(session)
        except Exception:
            await rollback(session)
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Redis doubles
# ---------------------------------------------------------------------------

class MemoryRedis:
    def __init__(self) -> None:
        self.store: dict[str, str] = {}

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def set(self, key: str, value: str) -> bool:
        self.store[key] = value
        return True

    async def delete(self, *keys: str) -> int:
        return sum(1 for key in keys if self.store.pop(key, None) is not None)

    async def aclose(self) -> None:
        pass


class BrokenRedis:
    async def ping(self):
        raise RedisConnectionError("connection refused")

    async def get(self, key):
        raise RedisConnectionError("connection refused")

    async def set(self, key, value):
        raise RedisConnectionError("connection refused")

    async def delete(self, *keys):
        raise RedisConnectionError("connection refused")

    async def aclose(self) -> None:
        pass


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    cache._redis = None
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    cache._redis = None


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def memory_cache() -> MemoryRedis:
    backend = MemoryRedis()
    cache._redis = backend
    return backend


@pytest.fixture
def broken_cache() -> BrokenRedis:
    backend = BrokenRedis()
    cache._redis = backend
    return backend


@pytest.fixture
def tokens():
    return get_token_service()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def make_user(
    db: AsyncSession,
    name: str = "Jim Raynor",
    email: str = "jim@example.com",
    password: str = "secret-pass",
    active: bool = True,
) -> User:
    salt, hashed = generate_salt_and_hash(password)
    user = User(name=name, email=email, password_hash=hashed, password_salt=salt, active=active)
    db.add(user)
    await db.flush()
    return user


async def sign_up(client: AsyncClient, name: str, email: str, password: str = "secret-pass") -> dict:
    """Create a user over HTTP and return ``{"id", "token", "headers"}``."""
    resp = await client.post("/api/v1/users", json={
        "name": name,
        "email": email,
        "password": password,
    })
    assert resp.status_code == 201, resp.text
    user_id = resp.json()["id"]

    resp = await client.post("/api/v1/users/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    token = resp.json()["session_token"]
    return {"id": user_id, "token": token, "headers": {"Authorization": f"Bearer {token}"}}
