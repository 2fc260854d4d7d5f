"""FastAPI application for the mock exam paper generation service."""

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, UTC
from typing import Any, AsyncIterator, Dict, Tuple, Union

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded  # type: ignore[import-not-found]

from app.config import get_generation_config, get_settings
from app.db.supabase_client import get_supabase_client
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.rate_limit import get_limiter, rate_limit_exceeded_handler
from app.middleware.request_id import RequestIDMiddleware
from app.routers import generation, papers

# Application metadata
VERSION = "1.0.0"
COMMIT_HASH = "development"  # This can be set via environment variable or build process

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan event handler for startup and shutdown."""
    # Startup: raises ValidationError if required env vars are missing
    try:
        settings = get_settings()
        config = get_generation_config()

        configured = [name for name, spec in config.providers.items() if spec.configured]
        logger.info(f"Starting Mock Exam Generator API v{VERSION}")
        logger.info(f"Providers configured: {', '.join(configured) or 'none'}")
        logger.info(
            f"Routing: technical={settings.technical_provider}, "
            f"non_technical={settings.non_technical_provider}, "
            f"max_attempts={config.max_attempts}, batch_size={config.batch_size}"
        )
        if not configured:
            logger.warning("No provider API key set; every subject will use placeholder questions")

    except Exception as e:
        logger.error(f"Startup validation failed: {e}")
        raise

    yield

    logger.info("Shutting down Mock Exam Generator API")


app = FastAPI(
    title="Mock Exam Generator API",
    description="Generates multiple-choice mock exam papers from multiple AI providers",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# slowapi looks the limiter up on app.state
app.state.limiter = get_limiter()

app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Middleware added last runs first: request id, then logging
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this to specific domains
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _provider_services() -> Tuple[Dict[str, str], bool]:
    """Report credential status per provider; usable if any one has a key."""
    try:
        providers = get_generation_config().providers
    except Exception as e:
        return {"providers": f"unhealthy: {e}"}, False

    services = {
        name: "configured" if spec.configured else "missing api key"
        for name, spec in providers.items()
    }
    return services, any(spec.configured for spec in providers.values())


def _supabase_service() -> Tuple[str, bool]:
    try:
        result = get_supabase_client().table("question_papers").select("id").limit(1).execute()
    except Exception as e:
        return f"unhealthy: {e}", False
    if result is None:
        return "unhealthy: no response", False
    return "healthy", True


@app.get("/health", response_model=None)
async def health_check() -> Union[Dict[str, Any], Response]:
    """
    Health check endpoint.

    Status Codes:
        200: Supabase reachable and at least one provider configured
        503: Otherwise
    """
    services, providers_ok = _provider_services()
    services["supabase"], supabase_ok = _supabase_service()
    healthy = providers_ok and supabase_ok

    body: Dict[str, Any] = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "services": services,
    }
    if healthy:
        return body
    return Response(content=json.dumps(body), status_code=503, media_type="application/json")


@app.get("/version")
async def version_info() -> Dict[str, str]:
    """
    Get version information for the API.

    Returns:
        JSON with version number and commit hash.
    """
    return {
        "version": VERSION,
        "commit_hash": COMMIT_HASH,
    }


app.include_router(generation.router)
app.include_router(papers.router)
