import logging

import sentry_sdk
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.api.v1.health import router as health_router
from app.api.v1.resume import router as resume_router
from app.core.config import settings
from app.core.cors import cors_middleware_options
from app.core.lifespan import lifespan
from app.core.rate_limit import limiter

load_dotenv()
logging.basicConfig(level=settings.log_level, format="%(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn, send_default_pii=False)

app = FastAPI(
    title="ATS Resume Optimizer API",
    description="Scores resumes against job descriptions and rewrites them for ATS screening.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(CORSMiddleware, **cors_middleware_options())
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.include_router(health_router, prefix="/v1", tags=["Health"])
app.include_router(resume_router, prefix="/v1", tags=["Resume"])
