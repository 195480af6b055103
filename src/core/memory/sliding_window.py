"""Recent ask exchanges per user, kept in a Redis list."""

import json
import logging

from src.core.db import redis

logger = logging.getLogger(__name__)

REDIS_KEY_PREFIX = "ask"
DEFAULT_WINDOW_SIZE = 10
TTL_SECONDS = 86400  # 24 hours


def _key(user_id: str) -> str:
    return f"{REDIS_KEY_PREFIX}:{user_id}:conversation"


async def add_message(
    user_id: str,
    role: str,
    content: str,
    action: str | None = None,
) -> None:
    """Append one turn and trim the window."""
    key = _key(user_id)
    message = json.dumps(
        {
            "role": role,
            "content": content,
            "action": action,
        },
        ensure_ascii=False,
    )

    await redis.rpush(key, message)
    await redis.ltrim(key, -DEFAULT_WINDOW_SIZE, -1)
    await redis.expire(key, TTL_SECONDS)


async def get_recent_messages(
    user_id: str,
    limit: int = DEFAULT_WINDOW_SIZE,
) -> list[dict]:
    """Return the last ``limit`` turns, oldest first. Errors yield an empty list."""
    try:
        raw_messages = await redis.lrange(_key(user_id), -limit, -1)
    except Exception as e:
        logger.warning("Conversation window read failed for %s: %s", user_id, e)
        return []
    return [json.loads(m) for m in raw_messages]


async def record_exchange(user_id: str, question: str, answer: str, action: str | None) -> None:
    """Store a question/answer pair. Used as a response background task."""
    try:
        await add_message(user_id, "user", question)
        await add_message(user_id, "assistant", answer, action=action)
    except Exception as e:
        logger.warning("Conversation window write failed for %s: %s", user_id, e)
