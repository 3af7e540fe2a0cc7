"""
Read-through / write-invalidate tests for CachedArticleService.

Most tests use an in-memory fake store that counts calls, so they check
exactly when the wrapper goes to the source of truth.  The last group runs
against real sessions to check invalidation against the commit.
"""
import uuid
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from articlehub.cache import CacheManager
from articlehub.database import Base, after_commit, commit, rollback
from articlehub.guards import ArticleAccessGuard, Denial
from articlehub.models import AccessLevel
from articlehub.schemas import (
    ArticleCreate,
    ArticleDeleted,
    ArticleResponse,
    ArticleSearch,
    ArticleUpdate,
)
from articlehub.security.tokens import TokenService
from articlehub.services.article_service import ArticleService
from articlehub.services.cached_article_service import CachedArticleService
from conftest import BrokenRedis, MemoryRedis, make_user


class FakeStore:
    def __init__(self, *articles: ArticleResponse) -> None:
        self.articles = {a.id: a for a in articles}
        self.calls: list[str] = []

    async def create(self, author_id, data):
        self.calls.append("create")
        raise NotImplementedError

    async def get_by_id(self, article_id):
        self.calls.append("get_by_id")
        return self.articles.get(article_id)

    async def update(self, article_id, data):
        self.calls.append("update")
        article = self.articles.get(article_id)
        if article is None:
            return None
        article = article.model_copy(update=data.model_dump(exclude_unset=True))
        self.articles[article_id] = article
        return article

    async def delete(self, article_id):
        self.calls.append("delete")
        self.articles.pop(article_id, None)
        return ArticleDeleted(id=article_id)

    async def search(self, filters):
        self.calls.append("search")
        return list(self.articles.values())


def _article(**overrides) -> ArticleResponse:
    now = datetime.now(timezone.utc)
    fields = dict(
        id=uuid.uuid4(),
        created_at=now,
        updated_at=now,
        active=True,
        header="Jim Raynor",
        content="Marshal of Mar Sara",
        tags=["terran"],
        access=AccessLevel.PUBLIC,
        author_id=uuid.uuid4(),
        author_name="Arcturus Mengsk",
    )
    fields.update(overrides)
    return ArticleResponse(**fields)


def _cache(backend) -> CacheManager:
    manager = CacheManager()
    manager._redis = backend
    return manager


@pytest.mark.asyncio
async def test_miss_reads_store_and_populates_cache():
    article = _article()
    store = FakeStore(article)
    backend = MemoryRedis()
    service = CachedArticleService(store, _cache(backend))

    assert await service.get_by_id(article.id) == article
    assert store.calls == ["get_by_id"]
    assert str(article.id) in backend.store


@pytest.mark.asyncio
async def test_hit_skips_store():
    article = _article()
    store = FakeStore()
    manager = _cache(MemoryRedis())
    await manager.set(article)
    service = CachedArticleService(store, manager)

    result = await service.get_by_id(article.id)

    assert result == article
    assert isinstance(result, ArticleResponse)
    assert store.calls == []


@pytest.mark.asyncio
async def test_not_found_is_not_cached():
    store = FakeStore()
    backend = MemoryRedis()
    service = CachedArticleService(store, _cache(backend))

    missing = uuid.uuid4()
    assert await service.get_by_id(missing) is None
    assert await service.get_by_id(missing) is None
    assert store.calls == ["get_by_id", "get_by_id"]
    assert backend.store == {}


@pytest.mark.asyncio
async def test_update_invalidates_after_mutation():
    article = _article()
    store = FakeStore(article)
    backend = MemoryRedis()
    service = CachedArticleService(store, _cache(backend))

    await service.get_by_id(article.id)
    updated = await service.update(article.id, ArticleUpdate(header="Renamed"))

    assert updated.header == "Renamed"
    assert str(article.id) not in backend.store
    # next read goes back to the store and sees the new value
    assert (await service.get_by_id(article.id)).header == "Renamed"
    assert store.calls == ["get_by_id", "update", "get_by_id"]


@pytest.mark.asyncio
async def test_update_of_missing_article_skips_invalidation():
    other = _article()
    store = FakeStore()
    manager = _cache(MemoryRedis())
    await manager.set(other)
    service = CachedArticleService(store, manager)

    assert await service.update(uuid.uuid4(), ArticleUpdate(header="x")) is None
    assert await manager.get_by_id(other.id) is not None


@pytest.mark.asyncio
async def test_delete_invalidates_and_is_idempotent():
    article = _article()
    store = FakeStore(article)
    backend = MemoryRedis()
    service = CachedArticleService(store, _cache(backend))

    await service.get_by_id(article.id)
    first = await service.delete(article.id)
    second = await service.delete(article.id)

    assert first.id == second.id == article.id
    assert backend.store == {}
    assert await service.get_by_id(article.id) is None


@pytest.mark.asyncio
async def test_unreadable_cache_entry_falls_back_to_store():
    article = _article()
    store = FakeStore(article)
    backend = MemoryRedis()
    backend.store[str(article.id)] = '{"id": "not-a-valid-article"}'
    service = CachedArticleService(store, _cache(backend))

    assert await service.get_by_id(article.id) == article
    assert store.calls == ["get_by_id"]


@pytest.mark.asyncio
async def test_broken_cache_does_not_change_results():
    article = _article()
    store = FakeStore(article)
    service = CachedArticleService(store, _cache(BrokenRedis()))

    assert await service.get_by_id(article.id) == article
    assert (await service.update(article.id, ArticleUpdate(active=False))).active is False
    assert (await service.delete(article.id)).id == article.id


@pytest.mark.asyncio
async def test_disabled_cache_always_reads_store():
    article = _article()
    store = FakeStore(article)
    service = CachedArticleService(store, CacheManager())

    await service.get_by_id(article.id)
    await service.get_by_id(article.id)
    assert store.calls == ["get_by_id", "get_by_id"]


@pytest.mark.asyncio
async def test_search_is_passed_through():
    article = _article()
    store = FakeStore(article)
    service = CachedArticleService(store, _cache(MemoryRedis()))
    assert await service.search(ArticleSearch()) == [article]
    assert store.calls == ["search"]


# ---------------------------------------------------------------------------
# Invalidation relative to the transaction
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_after_commit_callbacks_run_only_on_commit(db_session):
    calls = []

    async def record():
        calls.append("ran")

    after_commit(db_session, record)
    await rollback(db_session)
    await commit(db_session)
    assert calls == []

    after_commit(db_session, record)
    assert calls == []
    await commit(db_session)
    assert calls == ["ran"]


@pytest.mark.asyncio
async def test_entry_written_back_before_commit_is_dropped_on_commit(db_session):
    article = _article()
    store = FakeStore(article)
    backend = MemoryRedis()
    manager = _cache(backend)
    service = CachedArticleService(store, manager, db_session)

    await service.update(article.id, ArticleUpdate(access=AccessLevel.PRIVATE))
    assert str(article.id) not in backend.store

    # a concurrent reader repopulates with the row it could still see
    await manager.set(article)
    await commit(db_session)

    assert str(article.id) not in backend.store


@pytest_asyncio.fixture
async def file_sessions(tmp_path):
    """Separate connections on one SQLite file, so uncommitted writes stay private."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'articles.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.mark.asyncio
async def test_article_made_private_is_not_served_stale_after_commit(file_sessions):
    manager = _cache(MemoryRedis())
    tokens = TokenService("cache-secret", ttl_seconds=60)

    async with file_sessions() as setup:
        author = await make_user(setup)
        article = await ArticleService(setup).create(
            author.id, ArticleCreate(header="Soon private", access=AccessLevel.PUBLIC)
        )
        await commit(setup)

    async with file_sessions() as writer:
        await CachedArticleService(ArticleService(writer), manager, writer).update(
            article.id, ArticleUpdate(access=AccessLevel.PRIVATE)
        )

        # flushed but not committed: another session still reads the old row
        async with file_sessions() as reader:
            seen = await CachedArticleService(ArticleService(reader), manager, reader).get_by_id(
                article.id
            )
        assert seen.access == AccessLevel.PUBLIC

        await commit(writer)

    async with file_sessions() as later:
        store = CachedArticleService(ArticleService(later), manager, later)
        assert (await store.get_by_id(article.id)).access == AccessLevel.PRIVATE
        decision = await ArticleAccessGuard(store, tokens).check(article.id, None)

    assert decision.allowed is False
    assert decision.denial is Denial.UNAUTHORIZED
