"""Regex rules over the raw question. Each rule is a pure function."""

import re

_MAILBOX_QUESTION_RE = re.compile(
    r"(when|what|who|did|has|have|show|find|list|search|look|check)\b"
    r"[\s\S]{0,40}\b(mail|email|inbox|message|messages)\b",
    re.IGNORECASE,
)
_SEND_VERB_RE = re.compile(r"(send|draft|compose|write|reply|forward)\b", re.IGNORECASE)
_MAIL_TO_RE = re.compile(r"(email|mail)\s+to\b", re.IGNORECASE)
_SUMMARY_RE = re.compile(r"(summari[sz]e|summary|tl;dr|brief|condense)", re.IGNORECASE)
_COMPOSE_RE = re.compile(
    r"\b(send|compose|draft|write|email)\s+(?:a|an)?\s*(?:email|mail|message)?\s*(?:to|for)\b",
    re.IGNORECASE,
)
_TARGET_RE = re.compile(
    r"(?:send|email|mail|compose|write)\b[\s\S]{0,40}?\bto\b\s+([^,\n]+?)"
    r"(?:\s+(?:saying|that|about|regarding|with)\b|$)",
    re.IGNORECASE,
)
_EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")

_TARGET_STOP = {"an", "a", "the", "mr", "mrs", "ms", "dr", "me", "him", "her", "them"}


def is_question_about_mailbox(text: str) -> bool:
    """"when did X mail me", "show messages from ..." and the like."""
    return bool(_MAILBOX_QUESTION_RE.search(text or ""))


def has_send_intent(text: str) -> bool:
    return bool(_SEND_VERB_RE.search(text or "") or _MAIL_TO_RE.search(text or ""))


def has_summary_intent(text: str) -> bool:
    return bool(_SUMMARY_RE.search(text or ""))


def is_compose_request(text: str) -> bool:
    """"send an email to ...", "draft a message for ...". Narrows the answer context."""
    return bool(_COMPOSE_RE.search(text or ""))


def extract_email(text: str) -> str | None:
    """First email address literal in ``text``."""
    match = _EMAIL_RE.search(text or "")
    return match.group(0) if match else None


def extract_target_tokens(text: str) -> list[str]:
    """Name tokens of the recipient in "send ... to <name> ...".

    >>> extract_target_tokens("Send an email to Irfan Khan saying hi")
    ['irfan', 'khan']
    """
    match = _TARGET_RE.search((text or "").lower())
    if not match:
        return []
    cleaned = re.sub(r"[^a-z\s@._-]", " ", match.group(1))
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    return [t for t in cleaned.split(" ") if t and t not in _TARGET_STOP]
