"""
responder_main.py
-----------------
Responder application factory and entry point.

Hosts exactly one ChatEngine, chosen from settings.ENGINE at startup,
behind POST /respond. The gateway talks to this service through
app.services.generator_client.

Run with:
    ENGINE=rule uvicorn responder_main:app --port 3001 --reload
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api.routes import respond
from app.core.logging import configure_logging, get_logger
from app.engines import AVAILABLE_ENGINES, ChatEngine, create_engine
from app.models import utcnow
from app.services.tracking import setup_tracking

logger = get_logger(__name__)


def create_application(engine: Optional[ChatEngine] = None) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        configure_logging()
        app.state.engine = engine or create_engine()
        app.state.tracking = setup_tracking()
        logger.info("Responder ready", engine=app.state.engine.name, tracking=app.state.tracking)
        yield
        logger.info("Responder shutting down")
        await app.state.engine.aclose()

    app = FastAPI(
        title="MiniChat Responder",
        description="Generates one complete reply per request with a pluggable engine.",
        version="2.0.0",
        lifespan=lifespan,
    )

    app.include_router(respond.router)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
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
            content={"error": "Internal server error", "message": str(exc)},
        )

    @app.get("/health", tags=["Health"], summary="Service health check")
    async def health(request: Request) -> dict:
        return {
            "status": "ok",
            "engine": request.app.state.engine.name,
            "timestamp": utcnow().isoformat(),
        }

    @app.get("/info", tags=["Health"], summary="Service information")
    async def info(request: Request) -> dict:
        return {
            "service": "responder",
            "version": app.version,
            "engine": request.app.state.engine.name,
            "available_engines": AVAILABLE_ENGINES,
            "endpoints": {
                "POST /respond": "Generate a response to a message",
                "GET /health": "Health check",
                "GET /info": "Service information",
            },
        }

    return app


app = create_application()
