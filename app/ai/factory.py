from app.ai.config import AIConfig, load_ai_config
from app.ai.types import AIClient

from app.ai.providers.openai_provider import OpenAIProvider
from app.core.errors import ProviderError


def get_ai_client(cfg: AIConfig | None = None) -> AIClient:
    cfg = cfg or load_ai_config()

    if cfg.provider not in {"openai", "groq"}:
        raise ProviderError(f"Unsupported AI_PROVIDER='{cfg.provider}'", code="provider_unsupported")

    if not cfg.api_key:
        key_name = "GROQ_API_KEY" if cfg.provider == "groq" else "OPENAI_API_KEY"
        raise ProviderError(f"{key_name} is missing", code="provider_not_configured")

    return OpenAIProvider(
        model=cfg.model,
        api_key=cfg.api_key,
        base_url=cfg.base_url,
        timeout_s=cfg.timeout_s,
        max_retries=cfg.max_retries,
        temperature=cfg.temperature,
        max_output_tokens=cfg.max_output_tokens,
        provider_name=cfg.provider,
    )
