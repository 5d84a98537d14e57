from contextlib import asynccontextmanager
import logging

from app.ai.config import load_ai_config
from app.core.cache_store import init_cache_db
from app.core.config import settings
from app.core.config.prompt_budget import get_prompt_budget_config

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    init_cache_db()
    get_prompt_budget_config()
    cfg = load_ai_config()
    logger.info(
        "resume_service_started provider=%s model=%s cache_db=%s",
        cfg.provider,
        cfg.model,
        settings.cache_db_path,
    )
    yield
    logger.info("resume_service_stopped")
