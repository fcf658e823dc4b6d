"""Page cache: cached page data per user, invalidated by path.

Learn: Keys look like "welth:page:/dashboard:<user_id>". Writes that
change what a page shows call `revalidate_path(path, user_id)` so the
next read rebuilds it. Without Redis every call is a no-op and pages
are always built fresh.
"""

import json
from typing import Any, Optional

import structlog

from welth.cache.redis import get_redis

logger = structlog.get_logger()


def _key(path: str, user_id: str) -> str:
    return f"welth:page:{path}:{user_id}"


class PageCache:
    def __init__(self, ttl: int = 300):
        self.ttl = ttl

    async def get(self, path: str, user_id: str) -> Optional[Any]:
        try:
            raw = await get_redis().get(_key(path, user_id))
        except Exception as e:
            logger.debug("welth.cache.unavailable", op="get", error=str(e))
            return None
        return json.loads(raw) if raw else None

    async def set(self, path: str, user_id: str, data: Any) -> None:
        try:
            await get_redis().set(
                _key(path, user_id), json.dumps(data, default=str), ex=self.ttl
            )
        except Exception as e:
            logger.debug("welth.cache.unavailable", op="set", error=str(e))

    async def revalidate_path(self, path: str, user_id: str) -> None:
        """Mark a page stale for one user."""
        try:
            await get_redis().delete(_key(path, user_id))
        except Exception as e:
            logger.debug("welth.cache.unavailable", op="revalidate", error=str(e))
            return
        logger.info("welth.cache.revalidated", page=path, user_id=user_id)
