"""Ask orchestrator — LangGraph StateGraph.

Nodes: analyze → plan → retrieve → [broaden] → [enrich] → compact_context
       → [summarize] → synthesize → act
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial

from langgraph.graph import END, StateGraph

from src.core.observability import observe
from src.core.schemas.ask import AnswerPayload, CandidateMessage
from src.orchestrators.ask.memory_capture import capture_memory, extract_memory_note
from src.orchestrators.ask.nodes import (
    AskDeps,
    act,
    analyze,
    answer,
    broaden_search,
    compact,
    enrich,
    plan,
    retrieve_messages,
    route_after_compact,
    route_after_retrieve,
    route_enrichment,
    summarize_latest,
)
from src.orchestrators.ask.state import AskState, StageError

logger = logging.getLogger(__name__)


def build_ask_graph() -> StateGraph:
    """Build the ask pipeline graph."""
    graph = StateGraph(AskState)

    graph.add_node("analyze", analyze)
    graph.add_node("plan", plan)
    graph.add_node("retrieve", retrieve_messages)
    graph.add_node("broaden", broaden_search)
    graph.add_node("enrich", enrich)
    graph.add_node("compact_context", compact)
    graph.add_node("summarize", summarize_latest)
    graph.add_node("synthesize", answer)
    graph.add_node("act", act)

    graph.set_entry_point("analyze")
    graph.add_edge("analyze", "plan")
    graph.add_edge("plan", "retrieve")
    graph.add_conditional_edges(
        "retrieve",
        route_after_retrieve,
        {
            "broaden": "broaden",
            "enrich": "enrich",
            "compact": "compact_context",
        },
    )
    graph.add_conditional_edges(
        "broaden",
        route_enrichment,
        {
            "enrich": "enrich",
            "compact": "compact_context",
        },
    )
    graph.add_edge("enrich", "compact_context")
    graph.add_conditional_edges(
        "compact_context",
        route_after_compact,
        {
            "forced_summary": "summarize",
            "synthesize": "synthesize",
        },
    )
    graph.add_edge("summarize", "synthesize")
    graph.add_edge("synthesize", "act")
    graph.add_edge("act", END)

    return graph


# Compiled graph (singleton)
_ask_graph = build_ask_graph().compile()


@dataclass
class AskResult:
    payload: AnswerPayload
    messages: list[CandidateMessage]
    queries: list[str]
    errors: list[StageError] = field(default_factory=list)
    background_tasks: list[Callable[[], Awaitable[None]]] = field(default_factory=list)

    def to_response(self) -> dict:
        body = self.payload.model_dump(by_alias=True)
        body["messages"] = [m.model_dump(by_alias=True) for m in self.messages]
        body["queries"] = self.queries
        return body


class AskOrchestrator:
    """Runs one question through the compiled ask graph.

    ``LLMUnavailableError`` from the main answer call propagates; every
    other stage failure is recovered and listed in ``AskResult.errors``.
    """

    def __init__(self, deps: AskDeps):
        self._deps = deps

    @observe(name="ask_pipeline")
    async def run(
        self,
        question: str,
        user_id: str,
        conversation: list[dict] | None = None,
        now: datetime | None = None,
    ) -> AskResult:
        initial_state: AskState = {
            "question": question,
            "user_id": user_id,
            "conversation": conversation or [],
            "errors": [],
        }
        if now is not None:
            initial_state["now"] = now

        state = await _ask_graph.ainvoke(initial_state, config={"configurable": {"deps": self._deps}})

        errors = state.get("errors", [])
        if errors:
            logger.info("Ask recovered %d stage errors: %s", len(errors), [e.stage for e in errors])

        tasks: list[Callable[[], Awaitable[None]]] = []
        note = extract_memory_note(question)
        if note is not None and self._deps.memory is not None:
            tasks.append(partial(capture_memory, self._deps.memory, user_id, note))

        action = state["action"]
        messages = state.get("results", [])
        if action.kind != "none":
            messages = messages[: self._deps.limits.compose_messages_returned]

        return AskResult(
            payload=AnswerPayload.build(state["answer"], state.get("citations", []), action),
            messages=messages,
            queries=state.get("queries", []),
            errors=errors,
            background_tasks=tasks,
        )
