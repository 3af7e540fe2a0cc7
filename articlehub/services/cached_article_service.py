"""
Cache-aware ``ArticleStore`` wrapper.

``get_by_id`` reads through the cache; ``update`` and ``delete`` run the
inner mutation first and then drop the affected id from the cache.  The
cache fails open, so results never depend on Redis being reachable;
only latency does.

When a session is given, the id is dropped a second time once that
session commits.  A reader that misses the cache between the flush and
the commit can only see the old committed row, and may write it back;
the post-commit delete removes that copy.
"""
import logging
import uuid

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from articlehub.cache import CacheManager
from articlehub.database import after_commit
from articlehub.schemas import (
    ArticleCreate,
    ArticleDeleted,
    ArticleResponse,
    ArticleSearch,
    ArticleUpdate,
)
from articlehub.services.article_service import ArticleStore

logger = logging.getLogger(__name__)


class CachedArticleService:
    def __init__(
        self,
        inner: ArticleStore,
        cache: CacheManager,
        session: AsyncSession | None = None,
    ) -> None:
        self._inner = inner
        self._cache = cache
        self._session = session

    async def create(self, author_id: uuid.UUID, data: ArticleCreate) -> ArticleResponse:
        return await self._inner.create(author_id, data)

    async def get_by_id(self, article_id: uuid.UUID) -> ArticleResponse | None:
        cached = await self._cache.get_by_id(article_id)
        if cached is not None:
            try:
                return ArticleResponse.model_validate(cached)
            except ValidationError as exc:
                logger.warning("Discarding unreadable cache entry for %s: %s", article_id, exc)

        article = await self._inner.get_by_id(article_id)
        # Negative results are not cached.
        if article is not None:
            await self._cache.set(article)
        return article

    async def update(
        self, article_id: uuid.UUID, data: ArticleUpdate
    ) -> ArticleResponse | None:
        result = await self._inner.update(article_id, data)
        await self._invalidate(result)
        return result

    async def delete(self, article_id: uuid.UUID) -> ArticleDeleted:
        result = await self._inner.delete(article_id)
        await self._invalidate(result)
        return result

    async def search(self, filters: ArticleSearch) -> list[ArticleResponse]:
        return await self._inner.search(filters)

    async def _invalidate(self, result: ArticleResponse | ArticleDeleted | None) -> None:
        object_id = getattr(result, "id", None)
        if object_id is None:
            logger.debug("Nothing to invalidate: result carries no id")
            return
        await self._cache.delete(object_id)
        if self._session is not None:
            after_commit(self._session, lambda: self._cache.delete(object_id))
        logger.debug("Invalidated cache for %s", object_id)
