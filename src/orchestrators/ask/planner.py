"""Query planner — model-suggested, date-qualified and keyword queries, capped."""

import logging
import re

from src.core.exceptions import LLMError
from src.core.llm.generation import GenerationService
from src.core.llm.json_output import ParseFailure, parse_as
from src.core.schemas.ask import DateRange, QueryPlan
from src.orchestrators.ask.dates import date_query
from src.orchestrators.ask.limits import CATCH_ALL_QUERY, AskLimits
from src.orchestrators.ask.state import StageError

logger = logging.getLogger(__name__)

QUERY_SYSTEM_PROMPT = """\
You are an email search engine. You turn a user's question into Gmail search queries.
Return ONLY valid JSON: {"queries": ["...", "..."]}"""

QUERY_USER_PROMPT = """\
User question: "{question}"

Write up to {count} Gmail search queries that would find the messages needed to answer it.

Operators:
- participants: from:, to:, cc:
- content: subject:, has:attachment, filename:
- time: after:YYYY/MM/DD, before:YYYY/MM/DD, newer_than:7d
- status: is:important, is:starred, is:unread
- location: in:inbox, in:sent, in:anywhere

Start with the most precise query, then broaden. Use OR groups for synonyms,
e.g. (meeting OR call OR zoom). Do not invent names or dates that are not in the question."""


def normalize_query(query: str, max_chars: int) -> str:
    return re.sub(r"\s+", " ", query).strip()[:max_chars].strip()


def keyword_queries(keywords: list[str], date_q: str) -> tuple[str, str]:
    """Composite OR query over each keyword, and a subject-only variant."""
    composite = " ".join(f"(from:{t} OR to:{t} OR subject:{t} OR {t})" for t in keywords)
    subjects = " ".join(f"subject:{t}" for t in keywords)
    return (
        f"{CATCH_ALL_QUERY} {composite} {date_q}".strip(),
        f"{CATCH_ALL_QUERY} {subjects} {date_q}".strip(),
    )


def merge_queries(
    model_queries: list[str],
    date_range: DateRange | None,
    keywords: list[str],
    limits: AskLimits,
) -> list[str]:
    """Combine the query sources into 1..max_queries distinct queries."""
    queries = list(model_queries[: limits.model_queries]) or [CATCH_ALL_QUERY]
    date_q = date_query(date_range)
    if date_q:
        queries = [f"{q} {date_q}" for q in queries]
        queries.append(f"{CATCH_ALL_QUERY} {date_q}")

    if keywords:
        composite, subject_only = keyword_queries(keywords, date_q)
        queries.insert(0, composite)
        queries.append(subject_only)

    planned: list[str] = []
    for q in queries:
        q = normalize_query(q, limits.max_query_chars)
        if q and q not in planned:
            planned.append(q)
    return planned[: limits.max_queries] or [CATCH_ALL_QUERY]


async def suggest_queries(
    question: str,
    llm: GenerationService,
    limits: AskLimits,
) -> tuple[list[str], list[StageError]]:
    """Ask the model for provider queries; any failure yields no suggestions."""
    prompt = QUERY_USER_PROMPT.format(question=question, count=limits.model_queries)
    try:
        text = await llm.complete(
            QUERY_SYSTEM_PROMPT,
            prompt,
            temperature=0.3,
            max_tokens=500,
            task="query_planning",
        )
    except LLMError as e:
        logger.warning("Query planning unavailable, using catch-all: %s", e)
        return [], [StageError("plan", "generation", str(e))]

    plan = parse_as(text, QueryPlan)
    if isinstance(plan, ParseFailure):
        logger.info("Query plan unparseable (%s), using catch-all", plan.reason)
        return [], [StageError("plan", "parse", plan.reason)]
    return plan.queries[: limits.model_queries], []
