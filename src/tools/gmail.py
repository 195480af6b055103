"""Gmail REST client and Gmail message → CandidateMessage parsing.

The client speaks the Gmail v1 API with an already-valid OAuth access
token; token refresh belongs to the session layer.
"""

import base64
import logging
from collections import deque
from datetime import UTC, datetime
from email.utils import format_datetime
from typing import Protocol

import httpx

from src.core.config import settings
from src.core.exceptions import MailboxError
from src.core.schemas.ask import CandidateMessage

logger = logging.getLogger(__name__)


class MailboxProvider(Protocol):
    async def list_message_ids(self, query: str, label: str | None, max_results: int) -> list[str]: ...

    async def get_message(
        self, message_id: str, format: str = "full", headers: list[str] | None = None
    ) -> dict: ...

    async def get_attachment(self, message_id: str, attachment_id: str) -> str: ...


class GmailClient:
    """Per-user Gmail API client.

    Every failed call raises ``MailboxError`` so callers can skip a unit
    of work without inspecting transport details.
    """

    def __init__(
        self,
        access_token: str,
        base_url: str | None = None,
        http: httpx.AsyncClient | None = None,
    ):
        self._http = http or httpx.AsyncClient(
            base_url=base_url or settings.gmail_api_base_url,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=20.0,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _get(self, path: str, params: list[tuple[str, str | int]] | None = None) -> dict:
        try:
            resp = await self._http.get(path, params=params)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPError as e:
            raise MailboxError(f"Gmail GET {path} failed: {e}") from e

    # ── Gmail ─────────────────────────────────────────────────────────

    async def list_message_ids(self, query: str, label: str | None, max_results: int) -> list[str]:
        """Ids of messages matching ``query``, optionally within one label."""
        params: list[tuple[str, str | int]] = [("maxResults", max_results)]
        if query:
            params.append(("q", query))
        if label:
            params.append(("labelIds", label))
        data = await self._get("/messages", params)
        return [m["id"] for m in data.get("messages", []) if m.get("id")][:max_results]

    async def get_message(
        self, message_id: str, format: str = "full", headers: list[str] | None = None
    ) -> dict:
        params: list[tuple[str, str | int]] = [("format", format)]
        params.extend(("metadataHeaders", h) for h in headers or [])
        return await self._get(f"/messages/{message_id}", params)

    async def get_attachment(self, message_id: str, attachment_id: str) -> str:
        """Base64url attachment data."""
        data = await self._get(f"/messages/{message_id}/attachments/{attachment_id}")
        return data.get("data", "")


# ── Message parsing ───────────────────────────────────────────────────


def decode_base64url(data: str) -> bytes:
    if not data:
        return b""
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


def _decode_text(data: str) -> str:
    return decode_base64url(data).decode("utf-8", errors="replace")


def parse_headers(payload: dict) -> dict[str, str]:
    """Lowercased header name → value."""
    return {h["name"].lower(): h.get("value", "") for h in payload.get("headers", []) if h.get("name")}


def extract_body(payload: dict | None) -> tuple[str, str]:
    """Return ``(body_text, body_html)``.

    A direct body wins; otherwise parts are walked breadth-first and the
    first text/html and first text/plain parts are taken.
    """
    if not payload:
        return "", ""

    mime = payload.get("mimeType", "")
    direct = payload.get("body", {}).get("data")
    if direct:
        content = _decode_text(direct)
        if "text/html" in mime:
            return "", content
        return content, ""

    body_text, body_html = "", ""
    queue = deque(payload.get("parts", []))
    while queue:
        part = queue.popleft()
        if not part:
            continue
        queue.extend(part.get("parts", []))
        data = part.get("body", {}).get("data")
        if not data:
            continue
        part_mime = part.get("mimeType", "")
        if not body_html and "text/html" in part_mime:
            body_html = _decode_text(data)
        elif not body_text and "text/plain" in part_mime:
            body_text = _decode_text(data)
        if body_html and body_text:
            break
    return body_text, body_html


def image_parts(payload: dict | None) -> list[dict]:
    """Image parts in breadth-first order (inline data or attachment id)."""
    found = []
    queue = deque([payload] if payload else [])
    while queue:
        part = queue.popleft()
        queue.extend(part.get("parts", []))
        if part.get("mimeType", "").startswith("image/"):
            body = part.get("body", {})
            if body.get("data") or body.get("attachmentId"):
                found.append(part)
    return found


def _message_date(msg: dict, headers: dict[str, str]) -> str:
    if headers.get("date"):
        return headers["date"]
    internal = msg.get("internalDate")
    if internal and str(internal).isdigit():
        return format_datetime(datetime.fromtimestamp(int(internal) / 1000, tz=UTC))
    return ""


def to_candidate(msg: dict) -> CandidateMessage:
    payload = msg.get("payload", {})
    headers = parse_headers(payload)
    body_text, body_html = extract_body(payload)
    return CandidateMessage(
        id=msg.get("id", ""),
        thread_id=msg.get("threadId", ""),
        subject=headers.get("subject", ""),
        from_=headers.get("from", ""),
        to=headers.get("to", ""),
        date=_message_date(msg, headers),
        snippet=msg.get("snippet", ""),
        body_text=body_text,
        body_html=body_html,
    )
