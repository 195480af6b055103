"""Memory notes — persisted "remember X: Y" facts per user (PostgreSQL)."""

import logging
from typing import Protocol

from sqlalchemy import select

from src.core.db import async_session
from src.core.models.memory_note import MemoryNote

logger = logging.getLogger(__name__)


class MemoryStore(Protocol):
    async def find_notes(self, user_id: str, limit: int) -> list[MemoryNote]: ...

    async def create_note(self, user_id: str, type: str, key: str, value: str) -> None: ...


class SqlMemoryStore:
    """MemoryStore backed by the ``memory_notes`` table."""

    async def find_notes(self, user_id: str, limit: int) -> list[MemoryNote]:
        """Return up to ``limit`` notes, most recently updated first."""
        async with async_session() as session:
            result = await session.execute(
                select(MemoryNote)
                .where(MemoryNote.user_id == user_id)
                .order_by(MemoryNote.updated_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def create_note(self, user_id: str, type: str, key: str, value: str) -> None:
        async with async_session() as session:
            session.add(MemoryNote(user_id=user_id, type=type, key=key, value=value))
            await session.commit()
        logger.info("Stored memory note %r for user %s", key, user_id)


def format_notes(notes: list[MemoryNote]) -> list[str]:
    """Render notes as prompt lines: ``(type) key: value``."""
    return [f"({n.type or 'note'}) {n.key}: {n.value}" for n in notes]
