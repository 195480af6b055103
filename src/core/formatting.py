"""Plain-text conversion for email bodies and LLM answer text."""

import re

from bs4 import BeautifulSoup


def html_to_text(html: str) -> str:
    """Visible text of an HTML body, whitespace collapsed.

    Script, style and head content is dropped.
    """
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "head"]):
        tag.decompose()
    text = soup.get_text(separator=" ", strip=True)
    return re.sub(r"\s+", " ", text).strip()


def message_text(body_text: str, body_html: str, snippet: str = "") -> str:
    """Best plain-text rendition: body text, else converted HTML, else snippet."""
    return body_text or html_to_text(body_html) or snippet or ""


def clean_answer(text: str) -> str:
    """Strip code fences and escaped control sequences from model prose."""
    if not text:
        return text

    # ```json ... ``` wrappers
    text = re.sub(r"```(?:json)?\s*", "", text)
    text = text.replace("```", "")

    # Literal \n / \t left behind by double-encoded JSON
    text = text.replace("\\n", "\n").replace("\\t", "\t").replace("\\r", "")

    return text.strip()
