from typing import Any


class PromptAdapter:
    """Adapts a system prompt + chat turns to each provider's request shape."""

    @staticmethod
    def for_claude(
        system: str,
        messages: list[dict[str, str]],
        cache: bool = True,
    ) -> dict[str, Any]:
        """Format for Anthropic Claude API with 1h TTL prompt caching."""
        system_blocks = [{"type": "text", "text": system}]
        if cache:
            system_blocks[0]["cache_control"] = {"type": "ephemeral", "ttl": "1h"}

        return {
            "system": system_blocks,
            "messages": messages,
        }

    @staticmethod
    def for_openai(
        system: str,
        messages: list[dict[str, str]],
    ) -> dict[str, Any]:
        """Format for OpenAI API (auto-caching)."""
        return {
            "messages": [
                {"role": "system", "content": system},
                *messages,
            ],
        }

    @staticmethod
    def for_gemini(
        system: str,
        messages: list[dict[str, str]],
    ) -> dict[str, Any]:
        """Format for Google Gemini ``generate_content``.

        A single turn is passed as a plain string.
        """
        if len(messages) == 1:
            return {"system_instruction": system, "contents": messages[0]["content"]}
        return {
            "system_instruction": system,
            "contents": [
                {
                    "role": (m["role"] if m["role"] != "assistant" else "model"),
                    "parts": [{"text": m["content"]}],
                }
                for m in messages
            ],
        }
