"""Static caps and thresholds of the ask pipeline.

Values come from ``Settings`` (``ASK_*`` env vars); tests build their own.
"""

from dataclasses import dataclass

from src.core.config import Settings

INBOX = "INBOX"
SENT = "SENT"
FOLDERS = (INBOX, SENT)
CATCH_ALL_QUERY = "in:inbox"
METADATA_HEADERS = ["From", "To", "Subject", "Date"]


@dataclass(frozen=True)
class AskLimits:
    model_queries: int = 3
    max_queries: int = 6
    max_query_chars: int = 500
    list_max_results: int = 50
    max_full_fetches: int = 5
    max_results: int = 60
    retrieval_concurrency: int = 4
    ocr_min_body_chars: int = 20
    ocr_max_images: int = 2
    ocr_max_chars: int = 4000
    enrich_below: int = 8
    enrich_min_score: int = 3
    enrich_scan_per_folder: int = 100
    enrich_max_added: int = 40
    broaden_max_results: int = 30
    compact_sizes: tuple[int, ...] = (12, 8, 5)
    compact_char_budget: int = 8000
    preview_chars: int = 600
    summary_max_messages: int = 10
    summary_body_chars: int = 9000
    memory_notes_limit: int = 12
    participants_limit: int = 20
    history_turns: int = 4
    result_cache_ttl: int = 300
    recipient_min_score: int = 3
    compose_context_limit: int = 3
    compose_messages_returned: int = 2
    insight_batch_size: int = 20

    @classmethod
    def from_settings(cls, s: Settings) -> "AskLimits":
        return cls(
            model_queries=s.ask_model_queries,
            max_queries=s.ask_max_queries,
            max_query_chars=s.ask_max_query_chars,
            list_max_results=s.ask_list_max_results,
            max_full_fetches=s.ask_max_full_fetches,
            max_results=s.ask_max_results,
            retrieval_concurrency=s.ask_retrieval_concurrency,
            ocr_min_body_chars=s.ask_ocr_min_body_chars,
            ocr_max_images=s.ask_ocr_max_images,
            ocr_max_chars=s.ask_ocr_max_chars,
            enrich_below=s.ask_enrich_below,
            enrich_min_score=s.ask_enrich_min_score,
            enrich_scan_per_folder=s.ask_enrich_scan_per_folder,
            enrich_max_added=s.ask_enrich_max_added,
            broaden_max_results=s.ask_broaden_max_results,
            compact_sizes=tuple(s.ask_compact_sizes),
            compact_char_budget=s.ask_compact_char_budget,
            preview_chars=s.ask_preview_chars,
            summary_max_messages=s.ask_summary_max_messages,
            summary_body_chars=s.ask_summary_body_chars,
            memory_notes_limit=s.ask_memory_notes_limit,
            participants_limit=s.ask_participants_limit,
            history_turns=s.ask_history_turns,
            result_cache_ttl=s.ask_result_cache_ttl,
            recipient_min_score=s.ask_recipient_min_score,
            compose_context_limit=s.ask_compose_context_limit,
            compose_messages_returned=s.ask_compose_messages_returned,
            insight_batch_size=s.ask_insight_batch_size,
        )
