import uuid
from datetime import datetime
from functools import lru_cache

from fastapi import Depends, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from articlehub.cache import cache
from articlehub.config import settings
from articlehub.database import get_db
from articlehub.exceptions import NotFoundError, UnauthorizedError
from articlehub.guards import ArticleAccessGuard, Denial, resolve_caller
from articlehub.models import AccessLevel
from articlehub.schemas import ArticleResponse, ArticleSearch, UserSearch
from articlehub.security.tokens import TokenService
from articlehub.services.article_service import ArticleService, ArticleStore
from articlehub.services.cached_article_service import CachedArticleService


# ---------------------------------------------------------------------------
# Component wiring
# ---------------------------------------------------------------------------

@lru_cache
def get_token_service() -> TokenService:
    """Process-wide token service built once from settings."""
    return TokenService(
        secret=settings.JWT_SECRET.get_secret_value(),
        ttl_seconds=settings.JWT_TTL,
        algorithm=settings.JWT_ALGORITHM,
    )


def get_article_store(db: AsyncSession = Depends(get_db)) -> ArticleStore:
    """Request-scoped article store with the cache wrapped around it."""
    return CachedArticleService(ArticleService(db), cache, db)


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------

def optional_user_id(
    request: Request,
    authorization: str | None = Header(None),
    tokens: TokenService = Depends(get_token_service),
) -> uuid.UUID | None:
    """Caller id when a valid bearer token is present, otherwise None."""
    user_id = resolve_caller(authorization, tokens)
    if user_id is not None:
        request.state.user_id = user_id
    return user_id


def require_user_id(user_id: uuid.UUID | None = Depends(optional_user_id)) -> uuid.UUID:
    if user_id is None:
        raise UnauthorizedError()
    return user_id


async def check_article_access(
    article_id: uuid.UUID,
    request: Request,
    authorization: str | None = Header(None),
    articles: ArticleStore = Depends(get_article_store),
    tokens: TokenService = Depends(get_token_service),
) -> ArticleResponse:
    """Run the article access guard; returns the article on ALLOW."""
    decision = await ArticleAccessGuard(articles, tokens).check(article_id, authorization)
    if not decision.allowed:
        if decision.denial is Denial.NOT_FOUND:
            raise NotFoundError("Article not found")
        raise UnauthorizedError()
    if decision.caller_id is not None:
        request.state.user_id = decision.caller_id
    return decision.article


# ---------------------------------------------------------------------------
# Query parameters
# ---------------------------------------------------------------------------

class ArticleSearchParams:
    """
    Parses article search query parameters into an ``ArticleSearch``.

    ``tags`` arrive as one comma-separated string and an empty ``header``
    is ignored.  Range and size validation happens in the ``ArticleSearch``
    model; failures surface as the usual 422 response.
    """

    def __init__(
        self,
        limit: int = Query(settings.DEFAULT_PAGE_SIZE, description="Articles per page."),
        offset: int = Query(0, description="Articles to skip."),
        active: bool | None = Query(None, description="Filter by active flag."),
        access: AccessLevel | None = Query(None, description="Filter by access tier."),
        tags: str | None = Query(None, description="Comma separated tags; any overlap matches."),
        header: str | None = Query(None, description="Case-insensitive header substring."),
        created_at_from: datetime | None = Query(None, description="ISO 8601 lower bound."),
        created_at_to: datetime | None = Query(None, description="ISO 8601 upper bound."),
    ) -> None:
        try:
            self.filters = ArticleSearch(
                limit=min(limit, settings.MAX_PAGE_SIZE),
                offset=offset,
                active=active,
                access=access,
                tags=tags,
                header=header or None,
                created_at_from=created_at_from,
                created_at_to=created_at_to,
            )
        except ValidationError as exc:
            raise RequestValidationError(exc.errors(include_url=False, include_context=False))


class UserSearchParams:
    def __init__(
        self,
        limit: int = Query(settings.DEFAULT_USER_PAGE_SIZE, ge=0, le=settings.MAX_USER_PAGE_SIZE),
        offset: int = Query(0, ge=0),
        name: str | None = Query(None, description="Case-insensitive name substring."),
        active: bool | None = Query(None),
    ) -> None:
        self.filters = UserSearch(limit=limit, offset=offset, name=name, active=active)
