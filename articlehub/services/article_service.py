"""
Article service — persistence and search for the Article aggregate.

Design notes
------------
- ``ArticleStore`` is the interface the routers and the access guard
  depend on.  ``ArticleService`` implements it over SQLAlchemy;
  ``CachedArticleService`` (see ``cached_article_service``) wraps any
  store with the read-through / write-invalidate cache.
- The visibility rule lives in ``build_search_conditions``: anonymous
  callers only ever see PUBLIC articles, authenticated callers see every
  non-PRIVATE article plus their own PRIVATE ones.  A requested ``access``
  filter never widens or narrows that rule.
- Relationships are ``lazy="raise"``; every read uses ``joinedload``
  (author) and ``selectinload`` (tags) explicitly.
- Service methods flush but do not commit; the transaction boundary is
  owned by the ``get_db`` dependency in the router layer.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from articlehub.database import utcnow
from articlehub.exceptions import NotFoundError
from articlehub.models import AccessLevel, Article, ArticleTag, User
from articlehub.schemas import (
    ArticleCreate,
    ArticleDeleted,
    ArticleResponse,
    ArticleSearch,
    ArticleUpdate,
)

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ArticleStore(Protocol):
    async def create(self, author_id: uuid.UUID, data: ArticleCreate) -> ArticleResponse: ...

    async def get_by_id(self, article_id: uuid.UUID) -> ArticleResponse | None: ...

    async def update(
        self, article_id: uuid.UUID, data: ArticleUpdate
    ) -> ArticleResponse | None: ...

    async def delete(self, article_id: uuid.UUID) -> ArticleDeleted: ...

    async def search(self, filters: ArticleSearch) -> list[ArticleResponse]: ...


# ---------------------------------------------------------------------------
# Search predicate
# ---------------------------------------------------------------------------

def build_search_conditions(filters: ArticleSearch, now: datetime | None = None):
    """
    Return the WHERE clause for *filters*.

    ``active``, ``header``, ``tags`` and the creation-date window are
    ANDed together and then combined with the visibility rule:

    - no requester: ``<filters> AND access = PUBLIC``
    - requester:    ``(<filters> AND access != PRIVATE)
                     OR (<filters> AND access = PRIVATE AND author_id = requester)``

    The caller-supplied ``access`` filter is replaced by the visibility
    branches in both cases.
    """
    conditions = []

    if filters.active is not None:
        conditions.append(Article.active == filters.active)

    if filters.header:
        conditions.append(Article.header.icontains(filters.header, autoescape=True))

    if filters.tags:
        conditions.append(Article.tag_links.any(ArticleTag.tag.in_(filters.tags)))

    if filters.created_at_from is not None or filters.created_at_to is not None:
        lower = filters.created_at_from or _EPOCH
        upper = filters.created_at_to or now or datetime.now(timezone.utc)
        conditions.append(Article.created_at.between(lower, upper))

    if filters.requester_id is None:
        return and_(*conditions, Article.access == AccessLevel.PUBLIC)

    return or_(
        and_(*conditions, Article.access != AccessLevel.PRIVATE),
        and_(
            *conditions,
            Article.access == AccessLevel.PRIVATE,
            Article.author_id == filters.requester_id,
        ),
    )


def _tag_links(tags: list[str] | None) -> list[ArticleTag]:
    return [ArticleTag(position=i, tag=tag) for i, tag in enumerate(tags or [])]


# ---------------------------------------------------------------------------
# SQLAlchemy-backed store
# ---------------------------------------------------------------------------

class ArticleService:
    """``ArticleStore`` over a request-scoped ``AsyncSession``."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def _load(self, article_id: uuid.UUID) -> Article | None:
        q = (
            select(Article)
            .where(Article.id == article_id)
            .options(joinedload(Article.author), selectinload(Article.tag_links))
        )
        result = await self._db.execute(q)
        return result.unique().scalar_one_or_none()

    async def create(self, author_id: uuid.UUID, data: ArticleCreate) -> ArticleResponse:
        """
        Create an article owned by *author_id*.

        Raises ``NotFoundError`` when no user row exists for *author_id*.
        """
        author = await self._db.get(User, author_id)
        if author is None:
            raise NotFoundError("User not found")

        article = Article(
            header=data.header,
            content=data.content,
            access=data.access,
            active=True,
            author=author,
            tag_links=_tag_links(data.tags),
        )
        self._db.add(article)
        await self._db.flush()

        logger.info("Article %s created by %s (%s)", article.id, author_id, article.access.value)
        return ArticleResponse.model_validate(article)

    async def get_by_id(self, article_id: uuid.UUID) -> ArticleResponse | None:
        article = await self._load(article_id)
        if article is None:
            return None
        return ArticleResponse.model_validate(article)

    async def update(
        self, article_id: uuid.UUID, data: ArticleUpdate
    ) -> ArticleResponse | None:
        """
        Apply the fields explicitly present in *data*.

        Returns None when the article does not exist.  An empty update is
        not a mutation: the current record comes back with its
        ``updated_at`` untouched.
        """
        article = await self._load(article_id)
        if article is None:
            return None

        fields = data.model_fields_set
        if "active" in fields:
            article.active = data.active
        if "header" in fields:
            article.header = data.header
        if "content" in fields:
            article.content = data.content
        if "access" in fields:
            article.access = data.access
        if "tags" in fields:
            article.tag_links = _tag_links(data.tags)

        if fields:
            # Tag-only changes never touch the articles row, so bump explicitly.
            article.updated_at = utcnow()
            await self._db.flush()
            logger.info("Article %s updated: %s", article_id, ", ".join(sorted(fields)))

        return ArticleResponse.model_validate(article)

    async def delete(self, article_id: uuid.UUID) -> ArticleDeleted:
        """Hard delete; deleting an id that does not exist is not an error."""
        await self._db.execute(delete(ArticleTag).where(ArticleTag.article_id == article_id))
        result = await self._db.execute(delete(Article).where(Article.id == article_id))
        if result.rowcount:
            logger.info("Article %s deleted", article_id)
        return ArticleDeleted(id=article_id)

    async def search(self, filters: ArticleSearch) -> list[ArticleResponse]:
        """
        Return one page of articles visible to ``filters.requester_id``.

        Ordered by creation time (id breaks ties) so the same filters
        return the same page when nothing was written in between.
        """
        q = (
            select(Article)
            .where(build_search_conditions(filters))
            .options(joinedload(Article.author), selectinload(Article.tag_links))
            .order_by(Article.created_at, Article.id)
            .offset(filters.offset)
            .limit(filters.limit)
        )
        result = await self._db.execute(q)
        return [ArticleResponse.model_validate(a) for a in result.unique().scalars().all()]
