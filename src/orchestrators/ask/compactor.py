"""Rank results by date and project the newest into a prompt-sized list."""

import json
import logging
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

from src.core.formatting import message_text
from src.core.schemas.ask import CandidateMessage, CompactMessage
from src.orchestrators.ask.limits import AskLimits

logger = logging.getLogger(__name__)

_EPOCH = datetime.fromtimestamp(0, tz=UTC)


def parse_message_date(value: str) -> datetime:
    """RFC 2822 date header → aware datetime; unparseable → epoch."""
    if not value:
        return _EPOCH
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def sort_by_date(messages: list[CandidateMessage]) -> list[CandidateMessage]:
    """Newest first. Stable for equal dates."""
    return sorted(messages, key=lambda m: parse_message_date(m.date), reverse=True)


def to_compact(message: CandidateMessage, preview_chars: int) -> CompactMessage:
    text = message_text(message.body_text, message.body_html, message.snippet)
    return CompactMessage(
        id=message.id,
        subject=message.subject,
        from_=message.from_,
        to=message.to,
        date=message.date,
        preview=text[:preview_chars],
    )


def serialized_size(compact: list[CompactMessage]) -> int:
    return len(json.dumps([c.model_dump(by_alias=True) for c in compact], ensure_ascii=False))


def compact_results(
    messages: list[CandidateMessage],
    limits: AskLimits,
    cap: int | None = None,
) -> tuple[list[CandidateMessage], list[CompactMessage]]:
    """Return ``(sorted_messages, compact_list)``.

    The compact list starts at the first size in ``compact_sizes`` and
    shrinks to the next one while its JSON exceeds ``compact_char_budget``.
    The smallest size is used regardless of budget. ``cap`` bounds every size.
    """
    ranked = sort_by_date(messages)
    sizes = [min(s, cap) for s in limits.compact_sizes] if cap is not None else limits.compact_sizes
    compact: list[CompactMessage] = []
    for size in sizes:
        compact = [to_compact(m, limits.preview_chars) for m in ranked[:size]]
        if serialized_size(compact) <= limits.compact_char_budget:
            break
    logger.debug("Compacted %d results to %d", len(ranked), len(compact))
    return ranked, compact
