"""Fuzzy matching of From/To header values against recipient name tokens."""

import re

from src.orchestrators.ask.intents import extract_email

_NAME_RE = re.compile(r'"?([^"<]+)"?\s*<.+?>')

NAME_TOKEN_SCORE = 3
EMAIL_TOKEN_SCORE = 2
NAME_SUBSTRING_SCORE = 1


def normalize(s: str) -> str:
    s = re.sub(r"[^a-z0-9@._\s-]", " ", (s or "").lower())
    return re.sub(r"\s+", " ", s).strip()


def tokenize(s: str) -> list[str]:
    return [t for t in normalize(s).split(" ") if t]


def name_from_address(header: str) -> str:
    """Display name of ``"Name" <email>`` / ``Name <email>``, else text before ``<``."""
    match = _NAME_RE.search(header or "")
    if match:
        return match.group(1).strip()
    return (header or "").split("<")[0].strip()


def score_participant(header: str, target_tokens: list[str]) -> int:
    """Score how well one header value matches the target tokens.

    Per token: +3 for an exact name token, +2 for an exact email
    local-part token, +1 when the normalized name contains it.
    """
    name = name_from_address(header)
    email = extract_email(header) or ""
    name_tokens = tokenize(name)
    local_part = email.split("@")[0]
    email_tokens = tokenize(re.sub(r"[._-]", " ", local_part))
    normalized_name = normalize(name)

    score = 0
    for token in target_tokens:
        if token in name_tokens:
            score += NAME_TOKEN_SCORE
        if token in email_tokens:
            score += EMAIL_TOKEN_SCORE
        if token and token in normalized_name:
            score += NAME_SUBSTRING_SCORE
    return score
