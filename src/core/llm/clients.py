from anthropic import AsyncAnthropic
from google import genai
from openai import AsyncOpenAI

from src.core.config import settings
from src.core.llm.prompts import PromptAdapter

# Singleton clients (lazy initialization)
_anthropic: AsyncAnthropic | None = None
_openai: AsyncOpenAI | None = None
_google: genai.Client | None = None


def anthropic_client() -> AsyncAnthropic:
    global _anthropic
    if _anthropic is None:
        _anthropic = AsyncAnthropic(api_key=settings.anthropic_api_key)
    return _anthropic


def openai_client() -> AsyncOpenAI:
    global _openai
    if _openai is None:
        _openai = AsyncOpenAI(api_key=settings.openai_api_key)
    return _openai


def google_client() -> genai.Client:
    global _google
    if _google is None:
        _google = genai.Client(api_key=settings.google_ai_api_key)
    return _google


def has_credentials(model: str) -> bool:
    """True when the API key for the model's provider is configured."""
    if model.startswith("gpt-"):
        return bool(settings.openai_api_key)
    if model.startswith("claude-"):
        return bool(settings.anthropic_api_key)
    if model.startswith("gemini-"):
        return bool(settings.google_ai_api_key)
    return False


async def generate_text(
    model: str,
    system: str,
    messages: list[dict[str, str]] | None = None,
    max_tokens: int = 1024,
    *,
    prompt: str | None = None,
    temperature: float | None = None,
) -> str:
    """Unified LLM call — routes to the correct SDK based on model ID.

    Supports OpenAI (gpt-*), Anthropic (claude-*), and Google (gemini-*) models.
    Pass either ``messages`` (list of dicts) or ``prompt`` (single string).
    """
    if prompt is not None and messages is None:
        messages = [{"role": "user", "content": prompt}]
    if not messages:
        raise ValueError("Either messages or prompt is required")

    sampling = {} if temperature is None else {"temperature": temperature}

    if model.startswith("gpt-"):
        resp = await openai_client().chat.completions.create(
            model=model,
            max_completion_tokens=max_tokens,
            **sampling,
            **PromptAdapter.for_openai(system, messages),
        )
        return resp.choices[0].message.content or ""
    elif model.startswith("claude-"):
        resp = await anthropic_client().messages.create(
            model=model,
            max_tokens=max_tokens,
            **sampling,
            **PromptAdapter.for_claude(system, messages),
        )
        return resp.content[0].text
    elif model.startswith("gemini-"):
        from google.genai import types

        request = PromptAdapter.for_gemini(system, messages)
        resp = await google_client().aio.models.generate_content(
            model=model,
            contents=request["contents"],
            config=types.GenerateContentConfig(
                system_instruction=request["system_instruction"],
                max_output_tokens=max_tokens,
                **sampling,
            ),
        )
        return resp.text or ""
    else:
        raise ValueError(f"Unknown model prefix: {model}")
