"""Forced-summary subflow for "summarize ..." questions.

Runs its own INBOX search from the question tokens, independent of the
primary retrieval, and summarizes the newest matching message.
"""

import logging
import re

from src.core.exceptions import LLMError
from src.core.formatting import message_text
from src.core.llm.generation import GenerationService
from src.core.llm.json_output import ParseFailure, parse_as
from src.core.observability import observe
from src.core.schemas.ask import CandidateMessage, ForcedSummary, SummaryOutput
from src.orchestrators.ask.compactor import sort_by_date
from src.orchestrators.ask.limits import CATCH_ALL_QUERY, INBOX, AskLimits
from src.orchestrators.ask.retrieval import fetch_candidate
from src.orchestrators.ask.state import StageError
from src.tools.gmail import MailboxProvider

logger = logging.getLogger(__name__)

MAX_SUMMARY_TOKENS = 4

SUMMARY_STOPWORDS = frozenset({
    "summarize", "summarise", "summary", "summaries", "brief", "condense",
    "the", "and", "for", "from", "with", "about", "this", "that", "these",
    "those", "please", "can", "could", "you", "your", "give", "get", "show",
    "what", "was", "were", "are", "email", "emails", "mail", "mails",
    "message", "messages", "inbox", "latest", "last", "recent", "new",
    "me", "my", "our", "all", "any",
})

SUMMARY_SYSTEM_PROMPT = """\
You summarize emails factually. Return ONLY valid JSON: {"summary": "..."}"""

SUMMARY_USER_PROMPT = """\
Summarize this email in 4-7 sentences. Keep names, dates, amounts and
requested actions. Do not speculate.

Subject: {subject}
From: {sender}
Date: {date}

{body}"""


def summary_tokens(question: str) -> list[str]:
    """Up to four distinct search tokens of length ≥ 3."""
    tokens: list[str] = []
    for raw in (question or "").lower().split():
        word = re.sub(r"[^a-z0-9@._-]", "", raw).strip("._-")
        if len(word) < 3 or word in SUMMARY_STOPWORDS or word in tokens:
            continue
        tokens.append(word)
        if len(tokens) == MAX_SUMMARY_TOKENS:
            break
    return tokens


def summary_query(tokens: list[str]) -> str:
    clauses = " OR ".join(f"(from:{t} OR subject:{t})" for t in tokens)
    return f"{CATCH_ALL_QUERY} {clauses}".strip()


async def summarize_message(
    message: CandidateMessage,
    llm: GenerationService,
    limits: AskLimits,
) -> str:
    """One summarization call over a single message. Raises ``LLMError``."""
    body = message_text(message.body_text, message.body_html, message.snippet)
    prompt = SUMMARY_USER_PROMPT.format(
        subject=message.subject or "(no subject)",
        sender=message.from_ or "(unknown)",
        date=message.date or "(unknown)",
        body=body[: limits.summary_body_chars],
    )
    text = await llm.complete(
        SUMMARY_SYSTEM_PROMPT,
        prompt,
        temperature=0.2,
        max_tokens=600,
        task="summarization",
    )
    parsed = parse_as(text, SummaryOutput)
    if isinstance(parsed, ParseFailure) or not parsed.summary.strip():
        return (text or "").strip()
    return parsed.summary.strip()


@observe(name="ask_forced_summary")
async def forced_summary(
    question: str,
    provider: MailboxProvider,
    llm: GenerationService,
    limits: AskLimits,
) -> tuple[ForcedSummary | None, list[StageError]]:
    tokens = summary_tokens(question)
    query = summary_query(tokens)
    errors: list[StageError] = []

    try:
        ids = await provider.list_message_ids(query, INBOX, limits.summary_max_messages)
    except Exception as e:
        logger.warning("Forced summary search failed: %s", e)
        return None, [StageError("forced_summary", "provider", str(e))]

    fetched: list[CandidateMessage] = []
    for message_id in ids[: limits.summary_max_messages]:
        try:
            fetched.append(await fetch_candidate(provider, message_id, True, limits))
        except Exception as e:
            logger.warning("Forced summary fetch of %s failed: %s", message_id, e)
            errors.append(StageError("forced_summary", "provider", f"{message_id}: {e}"))
    if not fetched:
        return None, errors

    top = sort_by_date(fetched)[0]
    try:
        summary = await summarize_message(top, llm, limits)
    except LLMError as e:
        logger.warning("Forced summary generation failed: %s", e)
        return None, errors + [StageError("forced_summary", "generation", str(e))]
    if not summary:
        return None, errors + [StageError("forced_summary", "parse", "empty summary")]

    logger.info("Forced summary of %s (%d tokens: %s)", top.id, len(tokens), tokens)
    return ForcedSummary(summary=summary, subject=top.subject, message_id=top.id), errors
