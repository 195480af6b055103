"""Retrieval engine — (query, folder) units drained by a bounded worker pool.

Caps: up to ``list_max_results`` ids per unit, at most ``max_full_fetches``
full-format fetches per run (the rest are metadata-only) and at most
``max_results`` aggregated messages. Results are unordered; ranking
happens in the compactor.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import TypeVar

from src.core.formatting import message_text
from src.core.schemas.ask import CandidateMessage
from src.orchestrators.ask.limits import FOLDERS, METADATA_HEADERS, AskLimits
from src.orchestrators.ask.state import StageError
from src.tools.gmail import MailboxProvider, decode_base64url, image_parts, to_candidate
from src.tools.ocr import OcrEngine

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_pool(items: Iterable[T], worker: Callable[[T], Awaitable[None]], concurrency: int) -> None:
    """Run ``worker`` over ``items`` with at most ``concurrency`` in flight."""
    queue: asyncio.Queue[T] = asyncio.Queue()
    for item in items:
        queue.put_nowait(item)

    async def drain() -> None:
        while True:
            try:
                item = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            await worker(item)

    workers = min(max(1, concurrency), queue.qsize())
    if workers:
        await asyncio.gather(*(drain() for _ in range(workers)))


@dataclass
class Aggregate:
    """Id-deduplicated result set with a hard size cap.

    Mutations happen between awaits only, so check-and-update sequences
    are atomic on the event loop.
    """

    max_results: int
    messages: list[CandidateMessage] = field(default_factory=list)
    participants: dict[str, None] = field(default_factory=dict)
    claimed: set[str] = field(default_factory=set)
    full_fetches: int = 0
    errors: list[StageError] = field(default_factory=list)

    @classmethod
    def seeded(cls, max_results: int, messages: list[CandidateMessage], participants: list[str]) -> "Aggregate":
        agg = cls(max_results=max_results)
        agg.messages = list(messages)
        agg.claimed = {m.id for m in messages}
        agg.participants = dict.fromkeys(participants)
        return agg

    @property
    def is_full(self) -> bool:
        return len(self.messages) >= self.max_results

    def claim(self, message_id: str) -> bool:
        """Reserve an id for fetching; False if already seen."""
        if message_id in self.claimed:
            return False
        self.claimed.add(message_id)
        return True

    def take_full_fetch(self, cap: int) -> bool:
        if self.full_fetches >= cap:
            return False
        self.full_fetches += 1
        return True

    def add(self, message: CandidateMessage) -> bool:
        if self.is_full or any(m.id == message.id for m in self.messages):
            return False
        self.messages.append(message)
        for header in (message.from_, message.to):
            if header:
                self.participants.setdefault(header)
        return True


@dataclass
class RetrievalResult:
    messages: list[CandidateMessage]
    participants: list[str]
    full_fetches: int
    errors: list[StageError]


async def ocr_images(
    provider: MailboxProvider,
    ocr: OcrEngine,
    message_id: str,
    payload: dict | None,
    limits: AskLimits,
) -> str:
    """Recognized text of up to ``ocr_max_images`` image parts. Never raises."""
    chunks: list[str] = []
    used = 0
    for part in image_parts(payload)[: limits.ocr_max_images]:
        if used >= limits.ocr_max_chars:
            break
        try:
            body = part.get("body", {})
            data = body.get("data") or await provider.get_attachment(message_id, body["attachmentId"])
            text = await ocr.extract_text(decode_base64url(data), part.get("mimeType", "image/png"))
        except Exception as e:
            logger.debug("OCR skipped for %s: %s", message_id, e)
            continue
        text = (text or "").strip()[: limits.ocr_max_chars - used]
        if text:
            chunks.append(text)
            used += len(text)
    return "\n".join(chunks)


async def fetch_candidate(
    provider: MailboxProvider,
    message_id: str,
    full: bool,
    limits: AskLimits,
    ocr: OcrEngine | None = None,
) -> CandidateMessage:
    """Fetch one message; full fetches with near-empty bodies get OCR text appended."""
    if full:
        raw = await provider.get_message(message_id, "full")
    else:
        raw = await provider.get_message(message_id, "metadata", METADATA_HEADERS)
    candidate = to_candidate(raw)
    if not candidate.id:
        candidate.id = message_id

    if full and ocr is not None:
        visible = message_text(candidate.body_text, candidate.body_html).strip()
        if len(visible) < limits.ocr_min_body_chars:
            recognized = await ocr_images(provider, ocr, message_id, raw.get("payload"), limits)
            if recognized:
                candidate.body_text = f"{candidate.body_text}\n{recognized}".strip()
    return candidate


async def retrieve(
    provider: MailboxProvider,
    queries: list[str],
    limits: AskLimits,
    ocr: OcrEngine | None = None,
) -> RetrievalResult:
    """Run every query in every folder and aggregate the parsed messages."""
    agg = Aggregate(max_results=limits.max_results)
    units = [(query, folder) for query in queries for folder in FOLDERS]

    async def work(unit: tuple[str, str]) -> None:
        query, folder = unit
        if agg.is_full:
            return
        try:
            ids = await provider.list_message_ids(query, folder, limits.list_max_results)
        except Exception as e:
            logger.warning("Listing %s in %s failed, skipping: %s", query, folder, e)
            agg.errors.append(StageError("retrieve", "provider", f"{folder} {query}: {e}"))
            return

        for message_id in ids:
            if agg.is_full:
                return
            if not agg.claim(message_id):
                continue
            full = agg.take_full_fetch(limits.max_full_fetches)
            try:
                candidate = await fetch_candidate(provider, message_id, full, limits, ocr)
            except Exception as e:
                logger.warning("Fetching message %s failed, skipping: %s", message_id, e)
                agg.errors.append(StageError("retrieve", "provider", f"{message_id}: {e}"))
                continue
            agg.add(candidate)

    await run_pool(units, work, limits.retrieval_concurrency)
    logger.info(
        "Retrieved %d messages from %d queries (%d full fetches)",
        len(agg.messages), len(queries), agg.full_fetches,
    )
    return RetrievalResult(
        messages=agg.messages,
        participants=list(agg.participants),
        full_fetches=agg.full_fetches,
        errors=agg.errors,
    )
