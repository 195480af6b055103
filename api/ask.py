"""POST /ask — natural-language questions over the user's mailbox."""

import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from pydantic import BaseModel

from api.session_auth import SessionUser, require_session
from src.core.config import settings
from src.core.db import redis
from src.core.exceptions import LLMUnavailableError
from src.core.llm.generation import LLMGenerationService
from src.core.memory.notes import MemoryStore, SqlMemoryStore
from src.core.memory.sliding_window import get_recent_messages, record_exchange
from src.orchestrators.ask.cache import RedisResultCache, ResultCache
from src.orchestrators.ask.graph import AskOrchestrator
from src.orchestrators.ask.limits import AskLimits
from src.orchestrators.ask.nodes import AskDeps
from src.tools.gmail import GmailClient, MailboxProvider
from src.tools.ocr import OcrEngine, VisionOcr

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ask"])


class AskRequest(BaseModel):
    question: str = ""


class AskResponse(BaseModel):
    answer: str
    citations: list[str]
    action: str | None = None
    send: dict | None = None
    schedule: dict | None = None
    messages: list[dict]
    queries: list[str]


# --- Collaborators (overridable via app.dependency_overrides) ---


def get_limits() -> AskLimits:
    return AskLimits.from_settings(settings)


def get_llm() -> LLMGenerationService:
    return LLMGenerationService()


def get_memory_store() -> MemoryStore | None:
    return SqlMemoryStore()


def get_ocr() -> OcrEngine | None:
    return VisionOcr()


def get_result_cache(limits: AskLimits = Depends(get_limits)) -> ResultCache | None:
    return RedisResultCache(redis, ttl=limits.result_cache_ttl)


async def get_mailbox(user: SessionUser = Depends(require_session)) -> AsyncIterator[MailboxProvider]:
    client = GmailClient(user.access_token)
    try:
        yield client
    finally:
        await client.aclose()


@router.post("/ask", response_model=AskResponse)
async def ask(
    body: AskRequest,
    background_tasks: BackgroundTasks,
    user: SessionUser = Depends(require_session),
    mailbox: MailboxProvider = Depends(get_mailbox),
    llm: LLMGenerationService = Depends(get_llm),
    memory: MemoryStore | None = Depends(get_memory_store),
    ocr: OcrEngine | None = Depends(get_ocr),
    cache: ResultCache | None = Depends(get_result_cache),
    limits: AskLimits = Depends(get_limits),
):
    if not llm.is_configured("answer"):
        raise HTTPException(status_code=500, detail="Answer model is not configured")

    question = body.question.strip()
    if not question:
        raise HTTPException(status_code=400, detail="Question is required")

    deps = AskDeps(
        mailbox=mailbox,
        llm=llm,
        limits=limits,
        memory=memory,
        ocr=ocr,
        cache=cache,
        timezone=settings.timezone,
    )
    conversation = await get_recent_messages(user.user_id, limits.history_turns) if limits.history_turns else []

    try:
        result = await AskOrchestrator(deps).run(question, user.user_id, conversation=conversation)
    except LLMUnavailableError as e:
        logger.error("Ask failed for %s: %s", user.user_id, e)
        raise HTTPException(status_code=500, detail="Answer model unavailable")

    for task in result.background_tasks:
        background_tasks.add_task(task)
    background_tasks.add_task(
        record_exchange, user.user_id, question, result.payload.answer, result.payload.action
    )
    return result.to_response()
