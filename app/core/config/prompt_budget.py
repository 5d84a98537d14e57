from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

_PROMPT_BUDGET_CACHE: dict[str, Any] | None = None
_DEFAULT_PROMPT_BUDGET_PATH = Path(__file__).resolve().parents[3] / "config" / "prompt_budget.yaml"


def _budget_path() -> Path:
    override = (os.getenv("PROMPT_BUDGET_PATH") or "").strip()
    return Path(override) if override else _DEFAULT_PROMPT_BUDGET_PATH


def get_prompt_budget_config() -> dict[str, Any]:
    """Load the prompt budget from config/prompt_budget.yaml (or PROMPT_BUDGET_PATH) and cache it."""
    global _PROMPT_BUDGET_CACHE

    if _PROMPT_BUDGET_CACHE is not None:
        return _PROMPT_BUDGET_CACHE

    path = _budget_path()
    if not path.exists():
        raise RuntimeError(
            f"Prompt budget config not found at '{path}'. "
            "Expected file: config/prompt_budget.yaml"
        )

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(f"Failed to read prompt budget config '{path}': {exc}") from exc

    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise RuntimeError(f"Invalid YAML in prompt budget config '{path}': {exc}") from exc

    if not isinstance(parsed, dict):
        raise RuntimeError(f"Invalid prompt budget config '{path}': expected a top-level mapping.")

    _PROMPT_BUDGET_CACHE = parsed
    return _PROMPT_BUDGET_CACHE


def get_budget_value(path: str, default: Any = None) -> Any:
    """Get nested config value using dot path notation, e.g. 'truncation.resume_max_tokens'."""
    if not path:
        return default

    current: Any = get_prompt_budget_config()
    for key in path.split("."):
        if not isinstance(current, dict):
            return default
        if key not in current:
            return default
        current = current[key]
    return current


def reset_prompt_budget_cache() -> None:
    global _PROMPT_BUDGET_CACHE
    _PROMPT_BUDGET_CACHE = None
