"""OCR of image parts — Gemini Flash vision, Claude fallback."""

import base64
import logging
from typing import Protocol

from src.core.exceptions import OCRError
from src.core.llm.clients import anthropic_client, google_client, has_credentials
from src.core.llm.router import ModelRouter
from src.core.observability import observe

logger = logging.getLogger(__name__)

OCR_PROMPT = """Transcribe all readable text in this image exactly as written.
Return plain text only, no commentary. If there is no text, return an empty response."""


class OcrEngine(Protocol):
    async def extract_text(self, data: bytes, mime_type: str) -> str: ...


class VisionOcr:
    def __init__(self, router: ModelRouter | None = None):
        self._router = router or ModelRouter()

    async def extract_text(self, data: bytes, mime_type: str) -> str:
        models = [m for m in self._router.candidates("ocr") if has_credentials(m)]
        for model in models:
            try:
                if model.startswith("gemini-"):
                    return await self._ocr_gemini(model, data, mime_type)
                if model.startswith("claude-"):
                    return await self._ocr_claude(model, data, mime_type)
            except Exception as e:
                logger.warning("OCR with %s failed: %s", model, e)
        raise OCRError("No OCR model succeeded")

    @observe(name="ocr_gemini")
    async def _ocr_gemini(self, model: str, data: bytes, mime_type: str) -> str:
        response = await google_client().aio.models.generate_content(
            model=model,
            contents=[
                OCR_PROMPT,
                {
                    "inline_data": {
                        "mime_type": mime_type,
                        "data": base64.b64encode(data).decode(),
                    }
                },
            ],
        )
        return (response.text or "").strip()

    @observe(name="ocr_claude")
    async def _ocr_claude(self, model: str, data: bytes, mime_type: str) -> str:
        response = await anthropic_client().messages.create(
            model=model,
            max_tokens=1024,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": mime_type,
                                "data": base64.b64encode(data).decode(),
                            },
                        },
                        {"type": "text", "text": OCR_PROMPT},
                    ],
                }
            ],
        )
        return response.content[0].text.strip()
