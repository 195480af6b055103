"""Tests for the vision OCR engine fallback chain."""

from unittest.mock import AsyncMock, patch

import pytest

from src.core.exceptions import OCRError
from src.tools.ocr import VisionOcr


async def test_gemini_first():
    ocr = VisionOcr()
    with (
        patch("src.tools.ocr.has_credentials", lambda m: True),
        patch.object(VisionOcr, "_ocr_gemini", AsyncMock(return_value="Total 4,200")) as gemini,
        patch.object(VisionOcr, "_ocr_claude", AsyncMock()) as claude,
    ):
        assert await ocr.extract_text(b"img", "image/png") == "Total 4,200"
    gemini.assert_awaited_once()
    claude.assert_not_awaited()


async def test_claude_fallback():
    ocr = VisionOcr()
    with (
        patch("src.tools.ocr.has_credentials", lambda m: True),
        patch.object(VisionOcr, "_ocr_gemini", AsyncMock(side_effect=RuntimeError("quota"))),
        patch.object(VisionOcr, "_ocr_claude", AsyncMock(return_value="fallback text")),
    ):
        assert await ocr.extract_text(b"img", "image/jpeg") == "fallback text"


async def test_no_model_raises():
    with patch("src.tools.ocr.has_credentials", lambda m: False), pytest.raises(OCRError):
        await VisionOcr().extract_text(b"img", "image/png")
