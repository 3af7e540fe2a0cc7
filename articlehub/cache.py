import json
import logging
import uuid
from typing import Any

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class CacheManager:
    """
    Entity cache backed by Redis, keyed by entity id.

    All public methods are safe to call even when Redis is unavailable:
    reads return None and writes are skipped, so a cache problem only ever
    costs latency.  When no host is configured, or the first ping fails,
    the manager stays disabled for the life of the process and never
    touches the network.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(
        self,
        host: str | None,
        port: int = 6379,
        db: int = 0,
        tls: bool = False,
    ) -> None:
        """Open the connection pool.  Called once at application startup."""
        if not host:
            logger.info("Cache disabled: no Redis host configured")
            return

        client = redis.Redis(
            host=host,
            port=port,
            db=db,
            ssl=tls,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await client.ping()
        except Exception as exc:
            logger.warning("Redis ping failed, cache disabled: %s", exc)
            await client.aclose()
            return

        self._redis = client
        logger.info("Cache enabled: redis://%s:%s/%s", host, port, db)

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    # ------------------------------------------------------------------
    # Entity operations
    # ------------------------------------------------------------------

    async def get_by_id(self, object_id: uuid.UUID | str) -> dict | None:
        """Return the cached object for *object_id*, or None on a miss / error."""
        if not self._redis:
            return None
        try:
            data = await self._redis.get(str(object_id))
            if data is None:
                return None
            return json.loads(data)
        except Exception as exc:
            logger.warning("Cache GET error for id=%s: %s", object_id, exc)
            return None

    async def set(self, value: Any) -> None:
        """
        Store *value* under its ``id``.

        *value* is a pydantic model or a mapping; either way it must carry
        an ``id``.  Failures are logged and never propagated.
        """
        if not self._redis:
            return
        try:
            if hasattr(value, "model_dump_json"):
                object_id = value.id
                serialised = value.model_dump_json()
            else:
                object_id = value["id"]
                serialised = json.dumps(value, default=str)
            await self._redis.set(str(object_id), serialised)
        except Exception as exc:
            logger.warning("Cache SET error: %s", exc)

    async def delete(self, *object_ids: uuid.UUID | str) -> None:
        """Drop the cached entries for *object_ids*; failures are logged only."""
        if not self._redis or not object_ids:
            return
        try:
            await self._redis.delete(*(str(object_id) for object_id in object_ids))
        except Exception as exc:
            logger.warning("Cache DELETE error for ids=%s: %s", object_ids, exc)


# Module-level singleton shared across all request handlers.
cache = CacheManager()
