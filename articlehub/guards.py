"""
Request guards: bearer-token extraction and the article access decision.

The functions here are framework-free so the decision logic can be tested
without HTTP.  ``articlehub.dependencies`` adapts them to FastAPI
dependencies and translates denials into ``ServiceError`` responses.

Article access state machine (``ArticleAccessGuard.check``):

1. Article not found                      -> DENY  (NOT_FOUND)
2. access == PUBLIC                       -> ALLOW (no token needed)
3. no / malformed bearer token            -> DENY  (UNAUTHORIZED)
4. token fails verification               -> DENY  (UNAUTHORIZED)
5. access == RESTRICTED                   -> ALLOW
   access == PRIVATE and caller is author -> ALLOW
   otherwise                              -> DENY  (UNAUTHORIZED)

Ownership failures are reported as UNAUTHORIZED; there is no separate
"forbidden" signal.
"""
import enum
import logging
import uuid
from dataclasses import dataclass

from articlehub.models import AccessLevel
from articlehub.schemas import ArticleResponse
from articlehub.security.tokens import TokenService
from articlehub.services.article_service import ArticleStore

logger = logging.getLogger(__name__)

BEARER_SCHEME = "Bearer"


def extract_bearer_token(authorization: str | None) -> str | None:
    """
    Return the token from an ``Authorization: Bearer <token>`` header.

    The scheme is case-sensitive and separated by exactly one space.  Any
    other shape, including an empty token, yields None; callers decide
    whether a missing token is fatal.
    """
    if not authorization:
        return None
    scheme, sep, token = authorization.partition(" ")
    if scheme != BEARER_SCHEME or not sep or not token or " " in token:
        return None
    return token


def resolve_caller(authorization: str | None, tokens: TokenService) -> uuid.UUID | None:
    """Verified caller id for *authorization*, or None."""
    token = extract_bearer_token(authorization)
    if token is None:
        return None
    return tokens.verify_session_token(token)


class Denial(str, enum.Enum):
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    denial: Denial | None = None
    caller_id: uuid.UUID | None = None
    article: ArticleResponse | None = None

    @classmethod
    def allow(cls, article: ArticleResponse, caller_id: uuid.UUID | None = None) -> "AccessDecision":
        return cls(allowed=True, caller_id=caller_id, article=article)

    @classmethod
    def deny(cls, denial: Denial, article: ArticleResponse | None = None) -> "AccessDecision":
        return cls(allowed=False, denial=denial, article=article)


class ArticleAccessGuard:
    def __init__(self, articles: ArticleStore, tokens: TokenService) -> None:
        self._articles = articles
        self._tokens = tokens

    async def check(self, article_id: uuid.UUID, authorization: str | None) -> AccessDecision:
        article = await self._articles.get_by_id(article_id)
        if article is None:
            return AccessDecision.deny(Denial.NOT_FOUND)

        if article.access == AccessLevel.PUBLIC:
            return AccessDecision.allow(article)

        token = extract_bearer_token(authorization)
        if token is None:
            return AccessDecision.deny(Denial.UNAUTHORIZED, article)

        caller_id = self._tokens.verify_session_token(token)
        if caller_id is None:
            return AccessDecision.deny(Denial.UNAUTHORIZED, article)

        if article.access == AccessLevel.RESTRICTED:
            return AccessDecision.allow(article, caller_id)

        if article.access == AccessLevel.PRIVATE and article.author_id == caller_id:
            return AccessDecision.allow(article, caller_id)

        logger.debug("Caller %s denied PRIVATE article %s", caller_id, article_id)
        return AccessDecision.deny(Denial.UNAUTHORIZED, article)
