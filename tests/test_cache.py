"""
CacheManager tests — disabled mode, fail-open behaviour and serialisation.

A fresh CacheManager is used per test so the application singleton is
left alone.
"""
import uuid
from datetime import datetime, timezone

import pytest

from articlehub import cache as cache_module
from articlehub.cache import CacheManager
from articlehub.models import AccessLevel
from articlehub.schemas import ArticleResponse
from conftest import BrokenRedis, MemoryRedis


def _article() -> ArticleResponse:
    now = datetime.now(timezone.utc)
    return ArticleResponse(
        id=uuid.uuid4(),
        created_at=now,
        updated_at=now,
        active=True,
        header="Queen of Blades",
        content=None,
        tags=["starcraft", "zerg"],
        access=AccessLevel.PRIVATE,
        author_id=uuid.uuid4(),
        author_name="Sarah Kerrigan",
    )


@pytest.mark.asyncio
async def test_disabled_cache_is_a_no_op():
    manager = CacheManager()
    await manager.connect(None)
    assert manager.enabled is False

    article = _article()
    await manager.set(article)
    assert await manager.get_by_id(article.id) is None
    await manager.delete(article.id)


@pytest.mark.asyncio
async def test_failed_ping_leaves_cache_disabled(monkeypatch):
    monkeypatch.setattr(cache_module.redis, "Redis", lambda **kwargs: BrokenRedis())
    manager = CacheManager()
    await manager.connect("redis.invalid", 6379)
    assert manager.enabled is False


@pytest.mark.asyncio
async def test_connect_uses_configured_target(monkeypatch):
    seen = {}

    def fake_redis(**kwargs):
        seen.update(kwargs)
        return MemoryRedis()

    monkeypatch.setattr(cache_module.redis, "Redis", fake_redis)
    manager = CacheManager()
    await manager.connect("cache.local", 6380, db=2, tls=True)

    assert manager.enabled is True
    assert seen["host"] == "cache.local"
    assert seen["port"] == 6380
    assert seen["db"] == 2
    assert seen["ssl"] is True

    await manager.disconnect()
    assert manager.enabled is False


@pytest.mark.asyncio
async def test_set_then_get_round_trips_by_id():
    manager = CacheManager()
    backend = MemoryRedis()
    manager._redis = backend

    article = _article()
    await manager.set(article)

    assert str(article.id) in backend.store
    cached = await manager.get_by_id(article.id)
    assert ArticleResponse.model_validate(cached) == article


@pytest.mark.asyncio
async def test_set_accepts_plain_mapping():
    manager = CacheManager()
    manager._redis = MemoryRedis()
    await manager.set({"id": "abc", "value": 1})
    assert await manager.get_by_id("abc") == {"id": "abc", "value": 1}


@pytest.mark.asyncio
async def test_delete_removes_entry():
    manager = CacheManager()
    manager._redis = MemoryRedis()
    article = _article()
    await manager.set(article)
    await manager.delete(article.id)
    assert await manager.get_by_id(article.id) is None


@pytest.mark.asyncio
async def test_backend_errors_fail_open():
    manager = CacheManager()
    manager._redis = BrokenRedis()
    article = _article()

    # None of these may raise.
    await manager.set(article)
    assert await manager.get_by_id(article.id) is None
    await manager.delete(article.id)


@pytest.mark.asyncio
async def test_value_without_id_is_skipped():
    manager = CacheManager()
    backend = MemoryRedis()
    manager._redis = backend
    await manager.set({"header": "no id"})
    assert backend.store == {}


@pytest.mark.asyncio
async def test_delete_several_entries_at_once():
    manager = CacheManager()
    backend = MemoryRedis()
    manager._redis = backend
    first, second, kept = _article(), _article(), _article()
    for article in (first, second, kept):
        await manager.set(article)

    await manager.delete(first.id, second.id)
    await manager.delete()

    assert list(backend.store) == [str(kept.id)]
