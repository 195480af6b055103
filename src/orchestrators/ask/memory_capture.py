"""'remember <key>: <value>' → persisted memory note."""

import logging
import re
from dataclasses import dataclass

from src.core.memory.notes import MemoryStore

logger = logging.getLogger(__name__)

_REMEMBER_RE = re.compile(r"\bremember\s+(?:that\s+)?(.+?):\s*(.+)$", re.IGNORECASE | re.DOTALL)

MAX_KEY_CHARS = 120
MAX_VALUE_CHARS = 2000
NOTE_TYPE = "note"


@dataclass(frozen=True)
class NoteDraft:
    key: str
    value: str
    type: str = NOTE_TYPE


def extract_memory_note(question: str) -> NoteDraft | None:
    """
    >>> extract_memory_note("Remember that my accountant: Ravi")
    NoteDraft(key='my accountant', value='Ravi', type='note')
    """
    match = _REMEMBER_RE.search((question or "").strip())
    if not match:
        return None
    key = match.group(1).strip()[:MAX_KEY_CHARS].lower()
    value = match.group(2).strip()[:MAX_VALUE_CHARS]
    if not key or not value:
        return None
    return NoteDraft(key=key, value=value)


async def capture_memory(store: MemoryStore, user_id: str, note: NoteDraft) -> None:
    """Persist one note. Failures are logged and swallowed."""
    try:
        await store.create_note(user_id, note.type, note.key, note.value)
    except Exception as e:
        logger.warning("Memory capture failed for %s: %s", user_id, e)
