"""Action inference — decide whether the response proposes a send or schedule."""

import logging
import re
from collections.abc import Sequence
from enum import StrEnum

from pydantic import ValidationError

from src.core.schemas.ask import (
    CandidateMessage,
    ForcedSummary,
    ModelAnswer,
    NoAction,
    ScheduleAction,
    SendAction,
    is_email,
)
from src.orchestrators.ask.intents import extract_email, has_send_intent, is_question_about_mailbox
from src.orchestrators.ask.participants import score_participant

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "Quick note"
DEFAULT_BODY = "Thank you!"
MAX_ANSWER_AS_BODY = 800

_RE_PREFIX = re.compile(r"^\s*re:\s*", re.IGNORECASE)


class ActionState(StrEnum):
    NONE = "none"
    QUESTION = "question"
    CANDIDATE_SEND = "candidate_send"
    RESOLVED_SEND = "resolved_send"


def _model_action(model: ModelAnswer | None) -> SendAction | ScheduleAction | None:
    """A send/schedule from the model, if it validates."""
    if model is None:
        return None
    try:
        if model.action == "schedule" and model.schedule and model.schedule.when:
            s = model.schedule
            return ScheduleAction(
                to_email=s.to_email or "",
                subject=s.subject or DEFAULT_SUBJECT,
                body=s.body or DEFAULT_BODY,
                when=s.when,
                timezone=s.timezone or "UTC",
            )
        if model.action == "send" and model.send and is_email(model.send.to_email):
            return SendAction(
                to_email=model.send.to_email,
                subject=model.send.subject or DEFAULT_SUBJECT,
                body=model.send.body or DEFAULT_BODY,
            )
    except ValidationError as e:
        logger.info("Discarding model action: %s", e.error_count())
    return None


def match_participant(target_tokens: Sequence[str], participants: Sequence[str], min_score: int) -> str | None:
    """Email of the best-scoring participant, if it reaches ``min_score``.

    Ties keep participant order.
    """
    if not target_tokens:
        return None
    best_email, best_score = None, 0
    for header in participants:
        email = extract_email(header)
        if not email:
            continue
        score = score_participant(header, target_tokens)
        if score > best_score:
            best_email, best_score = email, score
    return best_email if best_score >= min_score else None


def infer_recipient(
    question: str,
    results: list[CandidateMessage],
    target_tokens: Sequence[str] = (),
    participants: Sequence[str] = (),
    min_score: int = 3,
) -> str | None:
    """Question literal, then a named participant, then From and To of the top result."""
    literal = extract_email(question)
    if literal:
        return literal
    matched = match_participant(target_tokens, participants, min_score)
    if matched:
        return matched
    if results:
        top = results[0]
        for header in (top.from_, top.to):
            found = extract_email(header)
            if found:
                return found
    return None


def anchor_message(results: list[CandidateMessage], recipient: str) -> list[CandidateMessage]:
    """Results reordered so the newest message involving ``recipient`` leads."""
    needle = recipient.lower()
    for i, m in enumerate(results):
        if needle in (m.from_ or "").lower() or needle in (m.to or "").lower():
            return [m, *results[:i], *results[i + 1:]]
    return results


def infer_subject(
    model: ModelAnswer | None,
    forced: ForcedSummary | None,
    results: list[CandidateMessage],
) -> str:
    if model and model.send and model.send.subject:
        return model.send.subject
    if forced and forced.subject:
        return f"Summary: {forced.subject}"
    if results and results[0].subject:
        return f"Re: {_RE_PREFIX.sub('', results[0].subject)}"
    return DEFAULT_SUBJECT


def infer_body(model: ModelAnswer | None, forced: ForcedSummary | None, answer: str) -> str:
    if model and model.send and model.send.body:
        return model.send.body
    if forced and forced.summary:
        return forced.summary
    if answer and len(answer) < MAX_ANSWER_AS_BODY:
        return answer
    return DEFAULT_BODY


def infer_action(
    question: str,
    answer: str,
    model: ModelAnswer | None,
    forced: ForcedSummary | None,
    results: list[CandidateMessage],
    target_tokens: Sequence[str] = (),
    participants: Sequence[str] = (),
    min_score: int = 3,
) -> tuple[ActionState, NoAction | SendAction | ScheduleAction]:
    """Final action state and action.

    A send intent is a ``CANDIDATE_SEND`` until a recipient resolves; it
    then ends as ``RESOLVED_SEND`` or collapses to ``NONE``.
    """
    resolved = _model_action(model)
    if resolved is not None:
        return ActionState.RESOLVED_SEND, resolved

    asks_mailbox = is_question_about_mailbox(question)
    if not has_send_intent(question) or asks_mailbox:
        return (ActionState.QUESTION if asks_mailbox else ActionState.NONE), NoAction()

    recipient = infer_recipient(question, results, target_tokens, participants, min_score)
    if not recipient:
        logger.info("Candidate send without a resolvable recipient")
        return ActionState.NONE, NoAction()

    anchored = anchor_message(results, recipient)
    action = SendAction(
        to_email=recipient,
        subject=infer_subject(model, forced, anchored),
        body=infer_body(model, forced, answer),
    )
    return ActionState.RESOLVED_SEND, action
