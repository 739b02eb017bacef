"""
Canteen Service — Redis client (document change feed)

Every store write publishes a small JSON notice on ``documents:{collection}``.
Subscribers treat a notice as "something changed" and re-read the full
result set; the notice itself carries no document data.
"""
import json
import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from canteen.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

CHANGE_CHANNEL_PREFIX = "documents:"

_redis_client: aioredis.Redis | None = None


def get_redis() -> aioredis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = aioredis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=settings.HEALTH_CHECK_TIMEOUT,
        )
    return _redis_client


def change_channel(collection: str) -> str:
    return f"{CHANGE_CHANNEL_PREFIX}{collection}"


async def publish_change(collection: str, doc_id: str, op: str) -> None:
    """Announce a write. Feed failures never fail the write itself."""
    try:
        await get_redis().publish(change_channel(collection), json.dumps({"id": doc_id, "op": op}))
    except RedisError as exc:
        logger.warning("Change feed unavailable for %s/%s: %s", collection, doc_id, exc)


async def close_redis():
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
