"""HTTP surface for the memory service."""

import hmac
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings
from .errors import StorageError
from .handlers import HandlerResult, MemoryHandlers
from .provider import FactProvider
from .storage import MemoryStorage

logger = logging.getLogger(__name__)

PUBLIC_PATHS = {"/health"}


def _respond(result: HandlerResult) -> JSONResponse:
    return JSONResponse(result.body(), status_code=result.status_code)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[MemoryStorage] = None,
    provider: Optional[FactProvider] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Service settings (default: loaded from the environment)
        storage: Vector store client (default: built from settings)
        provider: Fact provider (default: built from settings)

    Returns:
        Configured application. Storage provisioning runs on startup.
    """
    settings = settings or Settings.load()
    storage = storage or MemoryStorage.from_settings(settings)
    provider = provider or FactProvider.from_settings(settings)
    handlers = MemoryHandlers(
        storage,
        provider,
        max_message_length=settings.max_message_length,
        max_query_length=settings.max_query_length,
        add_concurrency=settings.add_concurrency,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Written only here, read by /health
        app.state.storage_ready = False
        try:
            await storage.ensure_collection()
            app.state.storage_ready = True
        except StorageError as e:
            logger.error("Failed to ensure collection: %s", e.message)
            logger.warning("Starting anyway, Qdrant may not be ready yet")

        logger.info(
            "Qdrant: %s, collection: %s", settings.qdrant_url, settings.collection_name
        )
        logger.info(
            "LLM: %s, embed: %s (%s)",
            settings.llm_model,
            settings.embed_model,
            settings.embed_provider,
        )
        if settings.api_key:
            logger.info("API key auth enabled")

        yield

        await storage.close()
        await provider.close()

    app = FastAPI(title="memory-service", lifespan=lifespan)
    app.state.settings = settings
    app.state.handlers = handlers
    app.state.storage_ready = False

    @app.middleware("http")
    async def log_and_authenticate(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        if settings.api_key and request.url.path not in PUBLIC_PATHS:
            expected = f"Bearer {settings.api_key}"
            supplied = request.headers.get("authorization", "")
            if not hmac.compare_digest(supplied.encode(), expected.encode()):
                return _error("Unauthorized", 401)
        return await call_next(request)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        message = "Not found" if exc.status_code == 404 else str(exc.detail)
        return _error(message, exc.status_code)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error("Internal server error", 500)

    @app.get("/health")
    async def health(request: Request):
        if not request.app.state.storage_ready:
            return JSONResponse(
                {"status": "degraded", "reason": "qdrant unreachable"},
                status_code=503,
            )
        return {"status": "ok"}

    @app.post("/add")
    async def add(request: Request):
        body = await _json_body(request)
        if body is None:
            return _error("Invalid JSON body", 400)
        return _respond(await handlers.add(body))

    @app.post("/search")
    async def search(request: Request):
        body = await _json_body(request)
        if body is None:
            return _error("Invalid JSON body", 400)
        return _respond(await handlers.search(body))

    @app.get("/memories/count")
    async def count_memories(request: Request):
        return _respond(await handlers.count(request.query_params))

    @app.get("/memories")
    async def list_memories(request: Request):
        return _respond(await handlers.list_memories(request.query_params))

    @app.delete("/memories/{memory_id}")
    async def delete_memory(memory_id: str):
        return _respond(await handlers.delete(memory_id))

    return app


async def _json_body(request: Request):
    try:
        return await request.json()
    except ValueError:
        return None
