"""Exception hierarchy for Mail Ask."""


class MailAskError(Exception):
    """Base exception for all Mail Ask errors."""
    pass


class MailboxError(MailAskError):
    """Mailbox provider call failed."""
    pass


class LLMError(MailAskError):
    """LLM API call failed."""
    pass


class LLMUnavailableError(LLMError):
    """Both primary and fallback LLM failed or timed out."""
    pass


class OCRError(MailAskError):
    """OCR processing failed."""
    pass
