from src.core.schemas.ask import (
    AnswerPayload,
    CandidateMessage,
    CompactMessage,
    DateRange,
    ForcedSummary,
    ModelAnswer,
    NoAction,
    ScheduleAction,
    SendAction,
)

__all__ = [
    "AnswerPayload",
    "CandidateMessage",
    "CompactMessage",
    "DateRange",
    "ForcedSummary",
    "ModelAnswer",
    "NoAction",
    "ScheduleAction",
    "SendAction",
]
