"""Tests for the per-user conversation window."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

from src.core.memory.sliding_window import get_recent_messages, record_exchange


def _redis():
    redis = MagicMock()
    redis.rpush = AsyncMock()
    redis.ltrim = AsyncMock()
    redis.expire = AsyncMock()
    redis.lrange = AsyncMock(return_value=[])
    return redis


async def test_record_exchange_appends_both_turns():
    redis = _redis()
    with patch("src.core.memory.sliding_window.redis", redis):
        await record_exchange("u1", "any invoices?", "Two invoices.", "send")

    pushed = [json.loads(c.args[1]) for c in redis.rpush.await_args_list]
    assert [m["role"] for m in pushed] == ["user", "assistant"]
    assert pushed[1] == {"role": "assistant", "content": "Two invoices.", "action": "send"}
    assert redis.rpush.await_args.args[0] == "ask:u1:conversation"


async def test_record_exchange_survives_redis_failure():
    redis = _redis()
    redis.rpush = AsyncMock(side_effect=ConnectionError("down"))
    with patch("src.core.memory.sliding_window.redis", redis):
        await record_exchange("u1", "q", "a", None)


async def test_recent_messages_reads_tail():
    redis = _redis()
    redis.lrange = AsyncMock(return_value=[json.dumps({"role": "user", "content": "hi", "action": None})])
    with patch("src.core.memory.sliding_window.redis", redis):
        messages = await get_recent_messages("u1", 4)

    assert messages == [{"role": "user", "content": "hi", "action": None}]
    redis.lrange.assert_awaited_once_with("ask:u1:conversation", -4, -1)


async def test_recent_messages_empty_on_error():
    redis = _redis()
    redis.lrange = AsyncMock(side_effect=ConnectionError("down"))
    with patch("src.core.memory.sliding_window.redis", redis):
        assert await get_recent_messages("u1") == []
