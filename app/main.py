"""FastAPI application entry point"""

import logging
from typing import Callable, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import PlainTextResponse

from app.config.settings import Settings, preset_length, settings
from app.errors import ConfigurationError, DocumentStoreError, WindowTimeoutError
from app.models.play_history import AggregationWindow, PlayOrder
from app.pipeline import PlayCountPipeline
from app.services.publisher import envelope_to_payload
from app.stores import build_document_store
from app.stores.document_store import DocumentStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Play Count Service",
    description="Ranked play counts over a trailing window of listening history",
    version="1.0.0"
)


def get_settings() -> Settings:
    return settings


def get_store_factory() -> Callable[[Settings], DocumentStore]:
    return build_document_store


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error: {exc}")
    return PlainTextResponse("Failed to get GitHub info", status_code=500)


@app.exception_handler(DocumentStoreError)
async def document_store_error_handler(request: Request, exc: DocumentStoreError):
    logger.error(f"Play history fetch failed: {exc}")
    return PlainTextResponse("Failed to get play history", status_code=500)


@app.exception_handler(WindowTimeoutError)
async def window_timeout_handler(request: Request, exc: WindowTimeoutError):
    logger.error(f"Play history fetch timed out: {exc}")
    return PlainTextResponse("Failed to get play history", status_code=500)


@app.get("/api/health")
async def health_check(config: Settings = Depends(get_settings)):
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "play-count-service",
        "version": config.APP_VERSION
    }


@app.get("/play-count")
async def play_count(
    t: Optional[str] = None,
    config: Settings = Depends(get_settings),
    store_factory: Callable[[Settings], DocumentStore] = Depends(get_store_factory),
):
    """
    Ranked play counts for a preset window

    Query params:
        t: window preset, e.g. "last-30-days"
    """
    days = preset_length(config, t)
    if days is None:
        return PlainTextResponse("Invalid query", status_code=400)

    # Invalid queries are rejected before credentials are checked
    store = store_factory(config)
    try:
        pipeline = PlayCountPipeline(
            store,
            concurrency=config.FETCH_CONCURRENCY or None,
            timeout_seconds=config.WINDOW_TIMEOUT_SECONDS,
        )
        result = await pipeline.run(AggregationWindow(length_days=days, order=PlayOrder.OLDEST_FIRST))
    finally:
        await store.aclose()

    return envelope_to_payload(result.envelope)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG
    )
