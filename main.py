"""
main.py
-------
Gateway application factory and entry point.

Application lifecycle:
  1. App is created by create_application().
  2. lifespan builds the process-scoped services on startup
     (tenant store, responder client, streaming orchestrator) and tears
     them down on shutdown.
  3. Routers are registered with their URL prefixes.
  4. Global exception handlers normalise validation and unexpected errors.

Run with:
    uvicorn main:app --port 3000 --reload     # development
"""

from contextlib import asynccontextmanager
from typing import Annotated, AsyncGenerator

from fastapi import Depends, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import chat, debug
from app.core.config import settings
from app.core.logging import configure_logging, get_logger
from app.dependencies import get_generator_client, get_tenant_store
from app.services.chat_stream import StreamingOrchestrator
from app.services.generator_client import GeneratorClient
from app.services.tenant_store import TenantStore

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Startup / shutdown lifecycle hook.

    Startup:
      - Configure structured logging
      - Create the tenant store, responder client and orchestrator

    Shutdown:
      - Cancel in-flight turns, close the HTTP client, release tenant state
    """
    configure_logging()
    store = TenantStore()
    generator = GeneratorClient()
    app.state.tenant_store = store
    app.state.generator_client = generator
    app.state.orchestrator = StreamingOrchestrator(store=store, generator=generator)
    logger.info(
        "Starting up",
        app=settings.APP_NAME,
        env=settings.APP_ENV,
        responder_url=settings.RESPONDER_URL,
    )
    yield
    logger.info("Shutting down")
    await app.state.orchestrator.shutdown()
    await generator.aclose()
    store.close()


def create_application() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Multi-tenant chat gateway that streams responder replies "
            "word by word over Server-Sent Events."
        ),
        version="2.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── CORS ─────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Tenant-Id"],
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(chat.router)
    app.include_router(debug.router)

    # ── Global Exception Handlers ─────────────────────────────────────────────

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.info("Request rejected", path=request.url.path, errors=len(exc.errors()))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Validation failed", "detail": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    # ── Health / Info ─────────────────────────────────────────────────────────

    @app.get("/health", tags=["Health"], summary="Service health check")
    async def health(
        generator: Annotated[GeneratorClient, Depends(get_generator_client)],
        store: Annotated[TenantStore, Depends(get_tenant_store)],
    ) -> dict:
        responder_ok = await generator.health_check()
        stats = store.global_stats()
        return {
            "status": "ok",
            "service": "gateway",
            "env": settings.APP_ENV,
            "responder_status": "connected" if responder_ok else "disconnected",
            "responder_url": generator.base_url,
            "stats": {
                "tenant_count": stats.tenant_count,
                "total_message_count": stats.total_message_count,
            },
        }

    @app.get("/info", tags=["Health"], summary="Service information")
    async def info() -> dict:
        return {
            "service": "gateway",
            "version": app.version,
            "description": "MiniChat gateway with SSE streaming",
            "endpoints": {
                "GET /health": "Health check (no tenant header)",
                "GET /info": "Service information (no tenant header)",
                "POST /api/v2/chat": "Record a message (requires X-Tenant-Id)",
                "GET /api/v2/chat/stream": "SSE reply stream (requires X-Tenant-Id)",
                "GET /api/v2/debug/state": "Tenant history (requires X-Tenant-Id)",
                "DELETE /api/v2/debug/state": "Clear tenant history (requires X-Tenant-Id)",
            },
            "responder_url": settings.RESPONDER_URL,
        }

    return app


app = create_application()
