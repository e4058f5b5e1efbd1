"""
dependencies.py
---------------
FastAPI dependency injection functions for the gateway.

Tenant identity:
  Every /api route requires an X-Tenant-Id header of 1–128 characters.
  The value is an opaque, pre-authenticated key; no signature or lookup
  is performed here. It is bound to the logging context so every log
  line of the request carries it.

Process-scoped services (store, generator client, orchestrator) are
created in main.lifespan and read back from app.state.
"""

from typing import Annotated

from fastapi import Header, Request

from app.core.config import settings
from app.core.logging import bind_tenant, get_logger
from app.services.chat_stream import StreamingOrchestrator
from app.services.generator_client import GeneratorClient
from app.services.tenant_store import TenantStore

logger = get_logger(__name__)


async def get_tenant_id(
    request: Request,
    x_tenant_id: Annotated[
        str,
        Header(
            min_length=1,
            max_length=settings.TENANT_ID_MAX_LENGTH,
            description="Opaque tenant identifier",
        ),
    ],
) -> str:
    bind_tenant(x_tenant_id)
    logger.info("Tenant request", method=request.method, path=request.url.path)
    return x_tenant_id


def get_tenant_store(request: Request) -> TenantStore:
    return request.app.state.tenant_store


def get_generator_client(request: Request) -> GeneratorClient:
    return request.app.state.generator_client


def get_orchestrator(request: Request) -> StreamingOrchestrator:
    return request.app.state.orchestrator
