"""Ask pipeline graph nodes.

Collaborators arrive in ``config["configurable"]["deps"]`` so the compiled
graph stays a module-level singleton.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from langchain_core.runnables import RunnableConfig

from src.core.llm.generation import GenerationService
from src.core.memory.notes import MemoryStore, format_notes
from src.core.search_utils import extract_keywords
from src.orchestrators.ask.actions import infer_action
from src.orchestrators.ask.cache import ResultCache
from src.orchestrators.ask.compactor import compact_results
from src.orchestrators.ask.dates import parse_date_range
from src.orchestrators.ask.enrichment import broaden, enrich_recent, should_broaden, should_enrich
from src.orchestrators.ask.intents import (
    extract_email,
    extract_target_tokens,
    has_summary_intent,
    is_compose_request,
)
from src.orchestrators.ask.limits import AskLimits
from src.orchestrators.ask.planner import merge_queries, suggest_queries
from src.orchestrators.ask.retrieval import retrieve
from src.orchestrators.ask.signals import analyze_batch, describe_messages, template_for_request
from src.orchestrators.ask.state import AskState, StageError
from src.orchestrators.ask.summary import forced_summary
from src.orchestrators.ask.synthesizer import synthesize
from src.tools.gmail import MailboxProvider
from src.tools.ocr import OcrEngine

logger = logging.getLogger(__name__)


@dataclass
class AskDeps:
    mailbox: MailboxProvider
    llm: GenerationService
    limits: AskLimits
    memory: MemoryStore | None = None
    ocr: OcrEngine | None = None
    cache: ResultCache | None = None
    timezone: str = "UTC"


def _deps(config: RunnableConfig) -> AskDeps:
    return config["configurable"]["deps"]


def _participants_of(messages) -> list[str]:
    seen: dict[str, None] = {}
    for m in messages:
        for header in (m.from_, m.to):
            if header:
                seen.setdefault(header)
    return list(seen)


async def analyze(state: AskState, config: RunnableConfig) -> dict[str, Any]:
    """Extract the date window, keywords and recipient hints from the question."""
    deps = _deps(config)
    question = state["question"]
    now = state.get("now") or datetime.now(UTC)
    date_range = parse_date_range(question, now=now, tz=deps.timezone)
    keywords = extract_keywords(question)
    target_tokens = extract_target_tokens(question)
    logger.info(
        "Ask analyze: range=%s keywords=%s targets=%s",
        date_range.description if date_range else None, keywords, target_tokens,
    )
    return {
        "now": now,
        "date_range": date_range,
        "keywords": keywords,
        "target_tokens": target_tokens,
        "explicit_email": extract_email(question),
        "compose_request": is_compose_request(question),
    }


async def plan(state: AskState, config: RunnableConfig) -> dict[str, Any]:
    deps = _deps(config)
    suggested, errors = await suggest_queries(state["question"], deps.llm, deps.limits)
    queries = merge_queries(suggested, state.get("date_range"), state.get("keywords", []), deps.limits)
    logger.info("Ask plan: %d queries", len(queries))
    return {"queries": queries, "errors": errors}


async def retrieve_messages(state: AskState, config: RunnableConfig) -> dict[str, Any]:
    deps = _deps(config)
    user_id, queries = state["user_id"], state["queries"]

    if deps.cache is not None:
        cached = await deps.cache.get(user_id, queries)
        if cached is not None:
            logger.info("Ask retrieve: cache hit (%d messages)", len(cached))
            return {
                "results": cached,
                "participants": _participants_of(cached),
                "primary_count": len(cached),
                "full_fetches": 0,
                "needs_enrichment": should_enrich(len(cached), state.get("target_tokens", []), deps.limits),
            }

    result = await retrieve(deps.mailbox, queries, deps.limits, deps.ocr)
    if deps.cache is not None and result.messages:
        await deps.cache.set(user_id, queries, result.messages)
    return {
        "results": result.messages,
        "participants": result.participants,
        "primary_count": len(result.messages),
        "full_fetches": result.full_fetches,
        "needs_enrichment": should_enrich(len(result.messages), state.get("target_tokens", []), deps.limits),
        "errors": result.errors,
    }


async def broaden_search(state: AskState, config: RunnableConfig) -> dict[str, Any]:
    deps = _deps(config)
    out = await broaden(
        deps.mailbox, state["date_range"], state.get("results", []),
        state.get("participants", []), deps.limits,
    )
    needs = should_enrich(len(out.messages), state.get("target_tokens", []), deps.limits)
    return {
        "results": out.messages,
        "participants": out.participants,
        "needs_enrichment": needs,
        "errors": out.errors,
    }


async def enrich(state: AskState, config: RunnableConfig) -> dict[str, Any]:
    deps = _deps(config)
    out = await enrich_recent(
        deps.mailbox, state.get("target_tokens", []), state.get("results", []),
        state.get("participants", []), deps.limits,
    )
    return {"results": out.messages, "participants": out.participants, "errors": out.errors}


async def compact(state: AskState, config: RunnableConfig) -> dict[str, Any]:
    deps = _deps(config)
    cap = deps.limits.compose_context_limit if state.get("compose_request") else None
    ranked, compact_list = compact_results(state.get("results", []), deps.limits, cap=cap)
    return {"results": ranked, "compact": compact_list}


async def summarize_latest(state: AskState, config: RunnableConfig) -> dict[str, Any]:
    deps = _deps(config)
    summary, errors = await forced_summary(state["question"], deps.mailbox, deps.llm, deps.limits)
    return {"forced_summary": summary, "errors": errors}


async def answer(state: AskState, config: RunnableConfig) -> dict[str, Any]:
    deps = _deps(config)
    errors: list[StageError] = []
    notes: list[str] = []
    compose = bool(state.get("compose_request"))
    if deps.memory is not None and not compose:
        try:
            notes = format_notes(await deps.memory.find_notes(state["user_id"], deps.limits.memory_notes_limit))
        except Exception as e:
            logger.warning("Memory notes unavailable: %s", e)
            errors.append(StageError("synthesize", "store", str(e)))

    results = state.get("results", [])
    compact_list = state.get("compact", [])
    by_id = {m.id: m for m in results}
    result = await synthesize(
        question=state["question"],
        compact=compact_list,
        results=results,
        participants=state.get("participants", []),
        notes=notes,
        target_tokens=state.get("target_tokens", []),
        explicit_email=state.get("explicit_email"),
        date_range=state.get("date_range"),
        conversation=[] if compose else state.get("conversation", []),
        forced=state.get("forced_summary"),
        llm=deps.llm,
        limits=deps.limits,
        signals=describe_messages([by_id[c.id] for c in compact_list if c.id in by_id]),
        insights=analyze_batch(results[: deps.limits.insight_batch_size]),
        template=template_for_request(state["question"]),
    )
    return {
        "model_answer": result.model_answer,
        "answer": result.answer,
        "citations": result.citations,
        "errors": errors + result.errors,
    }


async def act(state: AskState, config: RunnableConfig) -> dict[str, Any]:
    deps = _deps(config)
    action_state, action = infer_action(
        state["question"],
        state.get("answer", ""),
        state.get("model_answer"),
        state.get("forced_summary"),
        state.get("results", []),
        target_tokens=state.get("target_tokens", []),
        participants=state.get("participants", []),
        min_score=deps.limits.recipient_min_score,
    )
    logger.info("Ask act: %s (%s)", action_state, action.kind)
    return {"action_state": action_state.value, "action": action}


# --- Routing ---


def route_enrichment(state: AskState) -> str:
    return "enrich" if state.get("needs_enrichment") else "compact"


def route_after_retrieve(state: AskState) -> str:
    if should_broaden(state.get("primary_count", 0), state.get("date_range")):
        return "broaden"
    return route_enrichment(state)


def route_after_compact(state: AskState) -> str:
    if has_summary_intent(state["question"]):
        return "forced_summary"
    return "synthesize"
