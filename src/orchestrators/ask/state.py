"""Ask pipeline state definition."""

import operator
from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, TypedDict

from src.core.schemas.ask import (
    CandidateMessage,
    CompactMessage,
    DateRange,
    ForcedSummary,
    ModelAnswer,
    NoAction,
    ScheduleAction,
    SendAction,
)


@dataclass(frozen=True)
class StageError:
    """A failure recovered inside one pipeline stage."""

    stage: str
    kind: str  # provider | generation | parse | cache | store
    detail: str


class AskState(TypedDict, total=False):
    """State for the ask LangGraph pipeline."""

    question: str
    user_id: str
    now: datetime
    conversation: list[dict]

    # Populated by analyze node
    date_range: DateRange | None
    keywords: list[str]
    target_tokens: list[str]
    explicit_email: str | None
    compose_request: bool

    # Populated by plan node
    queries: list[str]

    # Populated by retrieve / broaden / enrich nodes
    results: list[CandidateMessage]
    participants: list[str]
    primary_count: int
    full_fetches: int
    needs_enrichment: bool

    # Populated by compact node
    compact: list[CompactMessage]

    # Populated by forced_summary node
    forced_summary: ForcedSummary | None

    # Populated by synthesize node
    model_answer: ModelAnswer | None
    answer: str
    citations: list[str]

    # Populated by act node
    action_state: str
    action: NoAction | SendAction | ScheduleAction

    errors: Annotated[list[StageError], operator.add]
