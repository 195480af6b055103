import re
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")


def is_email(value: str | None) -> bool:
    return bool(value) and bool(EMAIL_PATTERN.match(value.strip()))


class DateRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    after: datetime
    before: datetime
    description: str


class CandidateMessage(BaseModel):
    """A mailbox message considered for the answer. Identity is ``id``."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    thread_id: str = Field("", alias="threadId")
    subject: str = ""
    from_: str = Field("", alias="from")
    to: str = ""
    date: str = ""
    snippet: str = ""
    body_text: str = Field("", alias="bodyText")
    body_html: str = Field("", alias="bodyHtml")
    match_score: int | None = Field(None, alias="matchScore")


class CompactMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    subject: str
    from_: str = Field(alias="from")
    to: str
    date: str
    preview: str


class ForcedSummary(BaseModel):
    summary: str
    subject: str = ""
    message_id: str = ""


# --- Untrusted generation output ---


class SendDraft(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    to_email: str | None = Field(None, alias="toEmail")
    subject: str | None = None
    body: str | None = None


class ScheduleDraft(SendDraft):
    when: str | None = None
    timezone: str | None = None


class ModelAnswer(BaseModel):
    """Shape requested from the answer model. Every field is optional."""

    model_config = ConfigDict(extra="ignore")

    answer: str | None = None
    citations: list[str] = []
    action: str | None = None
    send: SendDraft | None = None
    schedule: ScheduleDraft | None = None

    @field_validator("citations", mode="before")
    @classmethod
    def _coerce_citations(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [str(c) for c in value if c]

    @field_validator("answer", mode="before")
    @classmethod
    def _coerce_answer(cls, value: Any) -> str | None:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("send", "schedule", mode="before")
    @classmethod
    def _drop_non_objects(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None


class QueryPlan(BaseModel):
    model_config = ConfigDict(extra="ignore")

    queries: list[str] = []

    @field_validator("queries", mode="before")
    @classmethod
    def _strings_only(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [q for q in value if isinstance(q, str) and q.strip()]


class SummaryOutput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    summary: str = ""

    @field_validator("summary", mode="before")
    @classmethod
    def _coerce_summary(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""


# --- Proposed action (tagged variant) ---


class NoAction(BaseModel):
    kind: Literal["none"] = "none"


class SendAction(BaseModel):
    kind: Literal["send"] = "send"
    to_email: str
    subject: str
    body: str

    @field_validator("to_email")
    @classmethod
    def _valid_recipient(cls, value: str) -> str:
        value = value.strip()
        if not is_email(value):
            raise ValueError("to_email must be an email address")
        return value


class ScheduleAction(SendAction):
    kind: Literal["schedule"] = "schedule"  # type: ignore[assignment]
    when: str
    timezone: str = "UTC"


Action = Annotated[NoAction | SendAction | ScheduleAction, Field(discriminator="kind")]


# --- Wire payload ---


class SendPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    to_email: str = Field(alias="toEmail")
    subject: str
    body: str


class SchedulePayload(SendPayload):
    when: str
    timezone: str


class AnswerPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    answer: str
    citations: list[str] = []
    action: Literal["send", "schedule"] | None = None
    send: SendPayload | None = None
    schedule: SchedulePayload | None = None

    @classmethod
    def build(cls, answer: str, citations: list[str], action: NoAction | SendAction | ScheduleAction) -> "AnswerPayload":
        if isinstance(action, ScheduleAction):
            return cls(
                answer=answer,
                citations=citations,
                action="schedule",
                schedule=SchedulePayload(
                    to_email=action.to_email,
                    subject=action.subject,
                    body=action.body,
                    when=action.when,
                    timezone=action.timezone,
                ),
            )
        if isinstance(action, SendAction):
            return cls(
                answer=answer,
                citations=citations,
                action="send",
                send=SendPayload(to_email=action.to_email, subject=action.subject, body=action.body),
            )
        return cls(answer=answer, citations=citations)
