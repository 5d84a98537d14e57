from __future__ import annotations

from typing import Any

from app.core.config import settings


def cors_middleware_options() -> dict[str, Any]:
    regex = (settings.cors_allow_origin_regex or "").strip()
    return {
        "allow_origins": list(settings.cors_allowed_origins),
        "allow_origin_regex": regex or None,
        "allow_credentials": settings.cors_allow_credentials,
        "allow_methods": ["GET", "POST", "PUT", "OPTIONS"],
        "allow_headers": ["*"],
        "expose_headers": ["Content-Disposition"],
    }
