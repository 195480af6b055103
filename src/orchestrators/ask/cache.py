"""Short-lived Redis cache of retrieval results per user and query set."""

import hashlib
import json
import logging
from typing import Protocol

from redis.asyncio import Redis

from src.core.schemas.ask import CandidateMessage

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "ask:results"
KEY_QUERIES = 3


class ResultCache(Protocol):
    async def get(self, user_id: str, queries: list[str]) -> list[CandidateMessage] | None: ...

    async def set(self, user_id: str, queries: list[str], messages: list[CandidateMessage]) -> None: ...


def cache_key(user_id: str, queries: list[str]) -> str:
    digest = hashlib.sha256("|".join(queries[:KEY_QUERIES]).encode()).hexdigest()[:32]
    return f"{CACHE_KEY_PREFIX}:{user_id}:{digest}"


class RedisResultCache:
    """Best-effort: any Redis error is a miss."""

    def __init__(self, redis: Redis, ttl: int = 300):
        self._redis = redis
        self._ttl = ttl

    async def get(self, user_id: str, queries: list[str]) -> list[CandidateMessage] | None:
        try:
            raw = await self._redis.get(cache_key(user_id, queries))
            if not raw:
                return None
            return [CandidateMessage.model_validate(m) for m in json.loads(raw)]
        except Exception as e:
            logger.warning("Result cache read failed: %s", e)
            return None

    async def set(self, user_id: str, queries: list[str], messages: list[CandidateMessage]) -> None:
        payload = json.dumps([m.model_dump(by_alias=True) for m in messages], ensure_ascii=False)
        try:
            await self._redis.set(cache_key(user_id, queries), payload, ex=self._ttl)
        except Exception as e:
            logger.warning("Result cache write failed: %s", e)
