import os
from dataclasses import dataclass

GROQ_BASE_URL = "https://api.groq.com/openai/v1"

_DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "groq": "llama-3.3-70b-versatile",
}


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


@dataclass(frozen=True)
class AIConfig:
    provider: str
    model: str
    api_key: str
    base_url: str | None
    temperature: float
    max_output_tokens: int
    timeout_s: float
    max_retries: int


def _looks_like_placeholder(value: str) -> bool:
    lower = value.strip().lower()
    return lower.startswith("your_") or lower.startswith("replace_") or lower in {"changeme", "todo"}


def load_ai_config() -> AIConfig:
    provider = os.getenv("AI_PROVIDER", "openai").strip().lower()
    model = (os.getenv("AI_MODEL") or _DEFAULT_MODELS.get(provider, "")).strip()

    if provider == "groq":
        api_key = (os.getenv("GROQ_API_KEY") or "").strip()
        base_url = (os.getenv("GROQ_BASE_URL") or GROQ_BASE_URL).strip()
    else:
        api_key = (os.getenv("OPENAI_API_KEY") or "").strip()
        base_url = (os.getenv("OPENAI_BASE_URL") or "").strip() or None

    if _looks_like_placeholder(api_key):
        api_key = ""

    return AIConfig(
        provider=provider,
        model=model,
        api_key=api_key,
        base_url=base_url,
        temperature=_env_float("AI_TEMPERATURE", 0.2),
        max_output_tokens=_env_int("AI_MAX_OUTPUT_TOKENS", 2048),
        timeout_s=_env_float("AI_TIMEOUT_S", 60.0),
        max_retries=_env_int("AI_MAX_RETRIES", 0),
    )
