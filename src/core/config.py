from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database (memory notes)
    database_url: str

    @property
    def async_database_url(self) -> str:
        """Return database URL with asyncpg driver for SQLAlchemy async."""
        url = self.database_url
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)
        if url.startswith("postgres://"):
            return url.replace("postgres://", "postgresql+asyncpg://", 1)
        return url

    # Redis (sessions, result cache, conversation window)
    redis_url: str = "redis://localhost:6379/0"

    # LLM API Keys
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    google_ai_api_key: str = ""
    llm_timeout_seconds: float = 30.0

    # Langfuse
    langfuse_secret_key: str = ""
    langfuse_public_key: str = ""
    langfuse_host: str = "http://localhost:3000"

    # Gmail REST
    gmail_api_base_url: str = "https://gmail.googleapis.com/gmail/v1/users/me"

    # Ask pipeline caps and thresholds (ASK_* env vars)
    ask_model_queries: int = 3
    ask_max_queries: int = 6
    ask_max_query_chars: int = 500
    ask_list_max_results: int = 50
    ask_max_full_fetches: int = 5
    ask_max_results: int = 60
    ask_retrieval_concurrency: int = 4
    ask_ocr_min_body_chars: int = 20
    ask_ocr_max_images: int = 2
    ask_ocr_max_chars: int = 4000
    ask_enrich_below: int = 8
    ask_enrich_min_score: int = 3
    ask_enrich_scan_per_folder: int = 100
    ask_enrich_max_added: int = 40
    ask_broaden_max_results: int = 30
    ask_compact_sizes: list[int] = [12, 8, 5]
    ask_compact_char_budget: int = 8000
    ask_preview_chars: int = 600
    ask_summary_max_messages: int = 10
    ask_summary_body_chars: int = 9000
    ask_memory_notes_limit: int = 12
    ask_participants_limit: int = 20
    ask_history_turns: int = 4
    ask_result_cache_ttl: int = 300
    ask_recipient_min_score: int = 3
    ask_compose_context_limit: int = 3
    ask_compose_messages_returned: int = 2
    ask_insight_batch_size: int = 20

    # App
    app_env: str = "development"
    log_level: str = "INFO"
    timezone: str = "UTC"


settings = Settings()
