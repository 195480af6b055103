"""Keyword extraction for mailbox search queries."""

import re

_SPLIT_RE = re.compile(r"[^a-z0-9@._-]+")

# Articles, prepositions, pronouns, mailbox-generic and temporal words
_STOP_WORDS = {
    "the", "a", "an", "and", "or", "to", "of", "in", "on", "at", "by", "for", "from",
    "with", "about", "regarding", "re", "fwd",
    "i", "me", "my", "mine", "we", "us", "our", "you", "your", "it", "its",
    "is", "are", "was", "were", "do", "did", "any", "all", "what", "who", "when",
    "email", "emails", "mail", "mails", "message", "messages", "inbox", "sent",
    "latest", "last", "yesterday", "today", "summarize", "summarise", "send",
    "please", "kindly", "find", "show", "search", "get", "list",
    "week", "weeks", "month", "months", "day", "days", "ago",
}

MAX_KEYWORDS = 5


def extract_keywords(text: str, limit: int = MAX_KEYWORDS, min_len: int = 2) -> list[str]:
    """Salient lowercase tokens of ``text`` in first-seen order.

    >>> extract_keywords("show me yesterday's emails about invoice")
    ['invoice']
    >>> extract_keywords("Invoice from acme.com and ACME invoice")
    ['invoice', 'acme.com', 'acme']
    """
    words: list[str] = []
    for w in _SPLIT_RE.split((text or "").lower()):
        if not w or w in _STOP_WORDS or len(w) < min_len or w in words:
            continue
        words.append(w)
        if len(words) >= limit:
            break
    return words
