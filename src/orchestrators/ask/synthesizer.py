"""Answer synthesizer: main generation call plus the repair chain.

Repair order when the model gives no usable answer: forced summary,
summarization of the top result, heuristic summary of the top result,
then a deterministic "nothing found" text.
"""

import json
import logging
from dataclasses import dataclass, field

from src.core.exceptions import LLMError
from src.core.formatting import clean_answer, message_text
from src.core.llm.generation import GenerationService
from src.core.llm.json_output import ParseFailure, parse_as, salvage_string_field
from src.core.observability import observe
from src.core.schemas.ask import (
    CandidateMessage,
    CompactMessage,
    DateRange,
    ForcedSummary,
    ModelAnswer,
    SummaryOutput,
)
from src.orchestrators.ask.dates import fmt_ymd
from src.orchestrators.ask.limits import AskLimits
from src.orchestrators.ask.signals import BatchInsights, TemplateHint, render_insights
from src.orchestrators.ask.state import StageError

logger = logging.getLogger(__name__)

NO_ANSWER = "No answer"

ANSWER_SYSTEM_PROMPT = """\
You are an email assistant with read access to the user's Inbox and Sent folders.
Answer from the provided messages only. Be exact about names, dates and amounts.

Return ONLY valid JSON:
{
  "answer": "plain text answer, bullets allowed, no JSON or code blocks inside",
  "citations": ["Subject from Sender - Date"],
  "action": "send" | "schedule" | null,
  "send": {"toEmail": "...", "subject": "...", "body": "..."} | null,
  "schedule": {"when": "...", "timezone": "...", "toEmail": "...", "subject": "...", "body": "..."} | null
}

Set "action" only when the user explicitly asks to send, reply, forward or
schedule an email. Questions about existing mail never get an action.
If the messages do not answer the question, set "answer" to "No answer"."""

ANSWER_USER_PROMPT = """\
<known_participants>
{participants}
</known_participants>

<memory_notes>
{notes}
</memory_notes>

Recipient name tokens: {target_tokens}
Recipient email in question: {explicit_email}
Date window: {date_description}
Suggested reply template: {template}

<mailbox_insights>
{insights}
</mailbox_insights>

<message_signals>
{signals}
</message_signals>

<conversation>
{conversation}
</conversation>

<messages>
{messages}
</messages>

Question: {question}"""

REPAIR_SYSTEM_PROMPT = """\
You answer questions about a single email. Return ONLY valid JSON: {"summary": "..."}"""

REPAIR_USER_PROMPT = """\
The user asked: "{question}"

Answer from this email. Mention amounts, dates, requested actions and
deadlines. Suggest a next step if one is obvious.

Subject: {subject}
From: {sender}
Date: {date}

{body}"""


@dataclass
class Synthesis:
    answer: str
    citations: list[str]
    model_answer: ModelAnswer | None
    errors: list[StageError] = field(default_factory=list)


def _is_missing(answer: str | None) -> bool:
    return not answer or not answer.strip() or answer.strip() == NO_ANSWER


def _render_conversation(conversation: list[dict]) -> str:
    lines = [f"{m.get('role', 'user')}: {m.get('content', '')}" for m in conversation]
    return "\n".join(lines) or "(none)"


def build_answer_prompt(
    question: str,
    compact: list[CompactMessage],
    participants: list[str],
    notes: list[str],
    target_tokens: list[str],
    explicit_email: str | None,
    date_range: DateRange | None,
    conversation: list[dict],
    limits: AskLimits,
    signals: list[str] | None = None,
    insights: BatchInsights | None = None,
    template: TemplateHint | None = None,
) -> str:
    return ANSWER_USER_PROMPT.format(
        participants="\n".join(participants[: limits.participants_limit]) or "(none)",
        notes="\n".join(notes[: limits.memory_notes_limit]) or "(none)",
        target_tokens=", ".join(target_tokens) or "(none)",
        explicit_email=explicit_email or "(none)",
        date_description=date_range.description if date_range else "(any)",
        template=str(template) if template else "(none)",
        insights=render_insights(insights) if insights else "(none)",
        signals="\n".join(signals or []) or "(none)",
        conversation=_render_conversation(conversation[-limits.history_turns :] if limits.history_turns else []),
        messages=json.dumps([c.model_dump(by_alias=True) for c in compact], ensure_ascii=False, indent=1),
        question=question,
    )


def heuristic_summary(message: CandidateMessage, preview_chars: int = 300) -> str:
    """Deterministic description of one message."""
    text = message_text(message.body_text, message.body_html, message.snippet).strip()
    subject = message.subject or "(no subject)"
    line = f'The most relevant message is "{subject}"'
    if message.from_:
        line += f" from {message.from_}"
    if message.date:
        line += f" ({message.date})"
    line += "."
    if text:
        line += f"\n\n{text[:preview_chars]}"
    return line


def not_found_answer(date_range: DateRange | None) -> str:
    if date_range is None:
        return (
            "I could not find messages matching your request. I searched Inbox and Sent. "
            "Try specifying sender or subject keywords, or expand the date range."
        )
    return (
        f"I could not find messages matching your request within {date_range.description}. "
        f"I searched Inbox and Sent between {fmt_ymd(date_range.after)} and {fmt_ymd(date_range.before)}. "
        "Try specifying sender or subject keywords, or expand the date range."
    )


async def repair_from_top(
    question: str,
    top: CandidateMessage,
    llm: GenerationService,
    limits: AskLimits,
) -> tuple[str | None, StageError | None]:
    """Narrow summarization call over one message. Only a parsed summary counts."""
    body = message_text(top.body_text, top.body_html, top.snippet)
    prompt = REPAIR_USER_PROMPT.format(
        question=question,
        subject=top.subject or "(no subject)",
        sender=top.from_ or "(unknown)",
        date=top.date or "(unknown)",
        body=body[: limits.summary_body_chars],
    )
    try:
        text = await llm.complete(
            REPAIR_SYSTEM_PROMPT,
            prompt,
            temperature=0.5,
            max_tokens=500,
            task="summarization",
        )
    except LLMError as e:
        logger.warning("Repair summary unavailable: %s", e)
        return None, StageError("synthesize", "generation", f"repair: {e}")

    parsed = parse_as(text, SummaryOutput)
    if isinstance(parsed, ParseFailure) or not parsed.summary.strip():
        reason = parsed.reason if isinstance(parsed, ParseFailure) else "empty summary"
        return None, StageError("synthesize", "parse", f"repair: {reason}")
    return parsed.summary.strip(), None


@observe(name="ask_synthesize")
async def synthesize(
    *,
    question: str,
    compact: list[CompactMessage],
    results: list[CandidateMessage],
    participants: list[str],
    notes: list[str],
    target_tokens: list[str],
    explicit_email: str | None,
    date_range: DateRange | None,
    conversation: list[dict],
    forced: ForcedSummary | None,
    llm: GenerationService,
    limits: AskLimits,
    signals: list[str] | None = None,
    insights: BatchInsights | None = None,
    template: TemplateHint | None = None,
) -> Synthesis:
    """Produce the answer text and citations.

    Raises ``LLMUnavailableError`` when the main call cannot be served;
    every later failure is repaired.
    """
    prompt = build_answer_prompt(
        question, compact, participants, notes, target_tokens,
        explicit_email, date_range, conversation, limits,
        signals=signals, insights=insights, template=template,
    )
    text = await llm.complete(ANSWER_SYSTEM_PROMPT, prompt, temperature=0.2, max_tokens=1500)

    errors: list[StageError] = []
    model_answer: ModelAnswer | None = None
    parsed = parse_as(text, ModelAnswer)
    if isinstance(parsed, ParseFailure):
        logger.warning("Answer output unparseable: %s", parsed.reason)
        errors.append(StageError("synthesize", "parse", parsed.reason))
        answer = salvage_string_field(text, "answer")
        citations: list[str] = []
    else:
        model_answer = parsed
        answer = parsed.answer
        citations = parsed.citations

    if _is_missing(answer) and forced is not None:
        answer = forced.summary
    if _is_missing(answer) and results:
        repaired, error = await repair_from_top(question, results[0], llm, limits)
        if error:
            errors.append(error)
        answer = repaired or heuristic_summary(results[0])
    if _is_missing(answer):
        answer = not_found_answer(date_range)

    return Synthesis(
        answer=clean_answer(answer),
        citations=citations,
        model_answer=model_answer,
        errors=errors,
    )
