"""Session token issuance and verification (JWT)."""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

logger = logging.getLogger(__name__)


class TokenService:
    """
    Issue and verify bearer session tokens.

    Tokens are stateless: validity depends only on the signature and the
    ``exp`` claim.  There is no revocation list.
    """

    def __init__(self, secret: str, ttl_seconds: int, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._ttl = timedelta(seconds=ttl_seconds)
        self._algorithm = algorithm

    def create_session_token(self, user_id: uuid.UUID | str) -> str:
        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify_session_token(self, token: str) -> uuid.UUID | None:
        """
        Return the subject user id of *token*, or None when the token is
        malformed, badly signed, expired, or carries no usable subject.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.PyJWTError as exc:
            logger.debug("Session token rejected: %s", exc)
            return None

        try:
            return uuid.UUID(str(payload["sub"]))
        except ValueError:
            logger.debug("Session token rejected: subject is not a user id")
            return None
