"""Fallback enrichers run after the primary retrieval.

- broaden: date-constrained search found nothing → one ``in:anywhere`` query.
- enrich_recent: few results and a named recipient → scan the recent
  window of each folder and keep messages whose participants match.
"""

import logging
from dataclasses import dataclass

from src.core.schemas.ask import CandidateMessage, DateRange
from src.orchestrators.ask.dates import date_query
from src.orchestrators.ask.limits import FOLDERS, AskLimits
from src.orchestrators.ask.participants import score_participant
from src.orchestrators.ask.retrieval import Aggregate, fetch_candidate, run_pool
from src.orchestrators.ask.state import StageError
from src.tools.gmail import MailboxProvider

logger = logging.getLogger(__name__)


@dataclass
class Enriched:
    messages: list[CandidateMessage]
    participants: list[str]
    added: int
    errors: list[StageError]


def should_broaden(primary_count: int, date_range: DateRange | None) -> bool:
    return primary_count == 0 and date_range is not None


def should_enrich(result_count: int, target_tokens: list[str], limits: AskLimits) -> bool:
    return result_count < limits.enrich_below and bool(target_tokens)


async def broaden(
    provider: MailboxProvider,
    date_range: DateRange,
    messages: list[CandidateMessage],
    participants: list[str],
    limits: AskLimits,
) -> Enriched:
    """Merge metadata of up to ``broaden_max_results`` messages anywhere in the window."""
    agg = Aggregate.seeded(len(messages) + limits.broaden_max_results, messages, participants)
    query = f"in:anywhere {date_query(date_range)}"
    try:
        ids = await provider.list_message_ids(query, None, limits.broaden_max_results)
    except Exception as e:
        logger.warning("Broadened search failed: %s", e)
        return Enriched(messages, participants, 0, [StageError("broaden", "provider", str(e))])

    errors: list[StageError] = []
    for message_id in ids[: limits.broaden_max_results]:
        if not agg.claim(message_id):
            continue
        try:
            agg.add(await fetch_candidate(provider, message_id, False, limits))
        except Exception as e:
            logger.warning("Broadened fetch of %s failed: %s", message_id, e)
            errors.append(StageError("broaden", "provider", f"{message_id}: {e}"))

    added = len(agg.messages) - len(messages)
    logger.info("Broadened search added %d messages", added)
    return Enriched(agg.messages, list(agg.participants), added, errors)


async def enrich_recent(
    provider: MailboxProvider,
    target_tokens: list[str],
    messages: list[CandidateMessage],
    participants: list[str],
    limits: AskLimits,
) -> Enriched:
    """Add recent messages whose From/To matches the named recipient.

    All or nothing: any provider error discards the scan.
    """
    known = {m.id for m in messages}
    try:
        scan: list[str] = []
        for folder in FOLDERS:
            ids = await provider.list_message_ids("", folder, limits.enrich_scan_per_folder)
            scan.extend(i for i in ids[: limits.enrich_scan_per_folder] if i not in known and i not in scan)
    except Exception as e:
        logger.warning("Recent-window enrichment aborted: %s", e)
        return Enriched(messages, participants, 0, [StageError("enrich", "provider", str(e))])

    matched: dict[int, CandidateMessage] = {}
    failures: list[Exception] = []

    async def score(item: tuple[int, str]) -> None:
        if failures:
            return
        position, message_id = item
        try:
            candidate = await fetch_candidate(provider, message_id, False, limits)
        except Exception as e:
            failures.append(e)
            return
        best = max(
            score_participant(candidate.from_, target_tokens),
            score_participant(candidate.to, target_tokens),
        )
        if best >= limits.enrich_min_score:
            candidate.match_score = best
            matched[position] = candidate

    await run_pool(list(enumerate(scan)), score, limits.retrieval_concurrency)
    if failures:
        logger.warning("Recent-window enrichment aborted: %s", failures[0])
        return Enriched(messages, participants, 0, [StageError("enrich", "provider", str(failures[0]))])

    agg = Aggregate.seeded(len(messages) + limits.enrich_max_added, messages, participants)
    for position in sorted(matched):
        agg.add(matched[position])

    added = len(agg.messages) - len(messages)
    logger.info("Recent-window enrichment added %d of %d scanned", added, len(scan))
    return Enriched(agg.messages, list(agg.participants), added, [])
