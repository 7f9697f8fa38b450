# app/main.py
"""
Relationship coach API: vibe refinement, coach dialogue, relationship radar
and the supporting partner/calendar endpoints.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.infrastructure.observability.logging import get_logger, log_request, setup_logging
from app.middleware import RequestContextMiddleware
from app.routes import calendar, coaching, health, messages, radar, users
from app.services.openai_service import TextGenerationGateway
from app.services.store import InMemoryStore

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the process-wide gateway and store; close the gateway on shutdown."""

    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    gateway = TextGenerationGateway.from_settings(settings)
    if not gateway.configured:
        logger.warning("OPENAI_API_KEY not set; AI features will use fallbacks")

    store = InMemoryStore()
    await store.load_coaching_library()
    if settings.SEED_SAMPLE_DATA:
        await store.seed_sample_data()

    app.state.gateway = gateway
    app.state.store = store
    logger.info("All services initialized successfully", openai_configured=gateway.configured)

    yield

    logger.info("Application shutting down")
    try:
        await gateway.close()
    except Exception as e:
        logger.error("Error closing text generation gateway", error=str(e))


app = FastAPI(
    title="Couples Coach API",
    description="Tone-adjusted partner messaging, AI relationship coaching and relationship insights",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(users.router)
app.include_router(messages.router)
app.include_router(coaching.router)
app.include_router(radar.router)
app.include_router(calendar.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
