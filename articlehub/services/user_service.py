"""
User service — sign-up, login and profile operations for the User aggregate.

Users are not cached: only articles sit on the per-request guard path.
A rename does drop the author's cached articles, which carry the name.
Password hashes and salts never leave this module; every public function
returns ``UserResponse`` (or a session token for ``login``).
"""
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from articlehub.cache import cache
from articlehub.database import after_commit
from articlehub.exceptions import BadCredentialsError, ConflictError, InactiveUserError
from articlehub.models import Article, User
from articlehub.schemas import (
    LoginResult,
    UserCreate,
    UserResponse,
    UserSearch,
    UserUpdate,
)
from articlehub.security.passwords import check_password, generate_salt_and_hash
from articlehub.security.tokens import TokenService

logger = logging.getLogger(__name__)


async def _find_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def login(
    db: AsyncSession, tokens: TokenService, email: str, password: str
) -> LoginResult:
    """
    Exchange email + password for a session token.

    Unknown email and wrong password fail with the same message.  An
    inactive account is reported as such, and is checked before the
    password.
    """
    user = await _find_by_email(db, email)
    if user is None:
        raise BadCredentialsError()

    if not user.active:
        raise InactiveUserError()

    if not check_password(password, user.password_salt, user.password_hash):
        logger.info("Failed login for user %s", user.id)
        raise BadCredentialsError()

    return LoginResult(session_token=tokens.create_session_token(user.id))


async def create_user(db: AsyncSession, data: UserCreate) -> UserResponse:
    """Create a user; a second account for the same email is a ``ConflictError``."""
    if await _find_by_email(db, data.email) is not None:
        raise ConflictError("User with this email already exists")

    salt, hashed = generate_salt_and_hash(data.password)
    user = User(
        name=data.name,
        email=data.email.lower(),
        password_hash=hashed,
        password_salt=salt,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        # Lost a race with a concurrent sign-up for the same email.
        raise ConflictError("User with this email already exists")

    logger.info("User %s created", user.id)
    return UserResponse.model_validate(user)


async def _invalidate_articles_of(db: AsyncSession, user_id: uuid.UUID) -> None:
    # Cached articles carry the author name.
    result = await db.execute(select(Article.id).where(Article.author_id == user_id))
    article_ids = result.scalars().all()
    if article_ids:
        after_commit(db, lambda: cache.delete(*article_ids))


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> UserResponse | None:
    user = await db.get(User, user_id)
    if user is None:
        return None
    return UserResponse.model_validate(user)


async def update_user(
    db: AsyncSession, user_id: uuid.UUID, data: UserUpdate
) -> UserResponse | None:
    """
    Apply the fields present in *data*.  A new password rotates both the
    salt and the hash.  Returns None when the user does not exist.
    """
    user = await db.get(User, user_id)
    if user is None:
        return None

    fields = data.model_fields_set
    if "name" in fields:
        user.name = data.name
        await _invalidate_articles_of(db, user_id)
    if "active" in fields:
        user.active = data.active
    if "password" in fields:
        user.password_salt, user.password_hash = generate_salt_and_hash(data.password)

    if fields:
        await db.flush()
        logger.info("User %s updated: %s", user_id, ", ".join(sorted(fields)))
    return UserResponse.model_validate(user)


async def search_users(db: AsyncSession, filters: UserSearch) -> list[UserResponse]:
    q = select(User)
    if filters.active is not None:
        q = q.where(User.active == filters.active)
    if filters.name:
        q = q.where(User.name.icontains(filters.name, autoescape=True))
    q = q.order_by(User.created_at, User.id).offset(filters.offset).limit(filters.limit)

    result = await db.execute(q)
    return [UserResponse.model_validate(u) for u in result.scalars().all()]
