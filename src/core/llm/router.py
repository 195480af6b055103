from dataclasses import dataclass


@dataclass
class ModelConfig:
    provider: str  # "anthropic", "openai", "google"
    model_id: str
    fallback_provider: str | None = None
    fallback_model_id: str | None = None


# Ask pipeline task → model mapping
TASK_MODEL_MAP: dict[str, ModelConfig] = {
    "query_planning": ModelConfig(
        provider="google",
        model_id="gemini-3-flash-preview",
        fallback_provider="anthropic",
        fallback_model_id="claude-haiku-4-5",
    ),
    "answer": ModelConfig(
        provider="anthropic",
        model_id="claude-sonnet-4-5",
        fallback_provider="openai",
        fallback_model_id="gpt-5.2",
    ),
    "summarization": ModelConfig(
        provider="google",
        model_id="gemini-3-flash-preview",
        fallback_provider="anthropic",
        fallback_model_id="claude-haiku-4-5",
    ),
    "ocr": ModelConfig(
        provider="google",
        model_id="gemini-3-flash-preview",
        fallback_provider="anthropic",
        fallback_model_id="claude-haiku-4-5",
    ),
}


class ModelRouter:
    """Routes ask tasks to appropriate LLM models."""

    def get_model(self, task: str) -> ModelConfig:
        config = TASK_MODEL_MAP.get(task)
        if config is None:
            return TASK_MODEL_MAP["answer"]
        return config

    def get_fallback(self, task: str) -> ModelConfig | None:
        config = self.get_model(task)
        if config.fallback_provider:
            return ModelConfig(
                provider=config.fallback_provider,
                model_id=config.fallback_model_id,
            )
        return None

    def candidates(self, task: str) -> list[str]:
        """Model ids to try for a task, primary first."""
        models = [self.get_model(task).model_id]
        fallback = self.get_fallback(task)
        if fallback and fallback.model_id:
            models.append(fallback.model_id)
        return models
