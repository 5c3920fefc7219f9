"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from fishcast.config import get_settings
from fishcast.logging_config import setup_logging
from fishcast.routes.conditions import limiter
from fishcast.routes.conditions import router as conditions_router
from fishcast.services.cache import clear_cache
from fishcast.services.http import close_http_client
from fishcast.services.session import clear_sessions

settings = get_settings()
setup_logging(settings.log_level, settings.log_json)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    yield
    # Cleanup on shutdown
    await close_http_client()
    clear_sessions()
    clear_cache()


app = FastAPI(
    title="Fishcast API",
    description="Weather, marine and fishing-conditions aggregation for anglers",
    version="1.0.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "PUT", "POST"],
    allow_headers=["Content-Type"],
)

app.include_router(conditions_router, tags=["conditions"])


@app.get("/health")
async def health_check() -> dict:
    """
    Health check endpoint with service status.

    Returns:
        Status dictionary with service health information.
    """
    redis_status = "disabled"
    if settings.use_redis:
        try:
            import redis

            r = redis.from_url(settings.redis_url, socket_connect_timeout=2)
            r.ping()
            redis_status = "healthy"
        except Exception:
            redis_status = "unhealthy"

    return {
        "status": "healthy",
        "service": "fishcast",
        "version": "1.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "redis": redis_status,
            "groq_ai": "configured" if settings.groq_api_key else "not_configured",
            "open_meteo": "configured",
        },
    }


@app.get("/")
async def root() -> dict:
    """Root endpoint."""
    return {
        "message": "Fishcast API",
        "docs": "/docs",
        "health": "/health",
    }
