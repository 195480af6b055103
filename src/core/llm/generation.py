"""Text generation service used by the ask pipeline.

Every call is bounded by ``settings.llm_timeout_seconds`` and walks the
task's primary → fallback model chain. A timeout counts as the service
being unavailable, never as an empty completion.
"""

import asyncio
import logging
from typing import Protocol

from src.core.config import settings
from src.core.exceptions import LLMUnavailableError
from src.core.llm.clients import generate_text, has_credentials
from src.core.llm.router import ModelRouter

logger = logging.getLogger(__name__)


class GenerationService(Protocol):
    async def complete(
        self,
        system: str,
        prompt: str,
        *,
        temperature: float,
        max_tokens: int,
        task: str = "answer",
    ) -> str: ...


class LLMGenerationService:
    def __init__(self, router: ModelRouter | None = None, timeout: float | None = None):
        self._router = router or ModelRouter()
        self._timeout = timeout if timeout is not None else settings.llm_timeout_seconds

    def is_configured(self, task: str = "answer") -> bool:
        """True when at least one model for ``task`` has an API key."""
        return any(has_credentials(m) for m in self._router.candidates(task))

    async def complete(
        self,
        system: str,
        prompt: str,
        *,
        temperature: float,
        max_tokens: int,
        task: str = "answer",
    ) -> str:
        models = [m for m in self._router.candidates(task) if has_credentials(m)]
        if not models:
            raise LLMUnavailableError(f"No credentials configured for task {task!r}")

        last_error: Exception | None = None
        for model in models:
            try:
                return await asyncio.wait_for(
                    generate_text(
                        model,
                        system,
                        prompt=prompt,
                        max_tokens=max_tokens,
                        temperature=temperature,
                    ),
                    timeout=self._timeout,
                )
            except TimeoutError as e:
                logger.warning("LLM %s timed out after %.0fs (task=%s)", model, self._timeout, task)
                last_error = e
            except Exception as e:
                logger.warning("LLM %s failed (task=%s): %s", model, task, e)
                last_error = e
        raise LLMUnavailableError(f"All models failed for task {task!r}") from last_error
