"""FastAPI application: generation endpoints, session polling and status streaming."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from routes import generate, sessions, status_ws
from routes.deps import get_provider, get_scheduler
from services.errors import ConfigurationError
from services.settings import get_settings

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    if get_scheduler.cache_info().currsize:
        scheduler = get_scheduler()
        logger.info("[app] Shutting down: cancelling %d scheduled polls", scheduler.pending_count)
        await scheduler.aclose()
        get_scheduler.cache_clear()
    if get_provider.cache_info().currsize:
        await get_provider().aclose()
        get_provider.cache_clear()


app = FastAPI(title="Cinematic Video API", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(generate.router, prefix="/api")
app.include_router(sessions.router, prefix="/api")
app.include_router(status_ws.router, prefix="/api")


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(_request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("[app] Configuration error: %s", exc)
    return JSONResponse({"error": str(exc)}, status_code=500)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
