from fastapi import APIRouter

from app.ai.config import load_ai_config

router = APIRouter()


@router.get("/health", summary="Health Check", description="Report service status and the configured model provider.")
async def health_check():
    cfg = load_ai_config()
    return {
        "status": "healthy",
        "provider": cfg.provider,
        "model": cfg.model,
        "provider_configured": bool(cfg.api_key),
    }
