"""
api/routes/respond.py
---------------------
Responder endpoint: one request in, one complete reply out.

POST /respond  — {text, tenant_id, mode} → {reply, engine, timestamp}
"""

import time
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.core.logging import bind_tenant, get_logger
from app.engines import ChatEngine
from app.models import utcnow
from app.schemas.responder import RespondRequest, RespondResponse
from app.services.tracking import track_generation

logger = get_logger(__name__)

router = APIRouter(tags=["Responder"])


def get_engine(request: Request) -> ChatEngine:
    return request.app.state.engine


@router.post("/respond", response_model=RespondResponse, summary="Generate a reply")
async def respond(
    body: RespondRequest,
    engine: Annotated[ChatEngine, Depends(get_engine)],
) -> RespondResponse:
    bind_tenant(body.tenant_id)
    preview = body.text[:50] + ("..." if len(body.text) > 50 else "")
    logger.info("Processing message", preview=preview, mode=body.mode.value)

    start = time.monotonic()
    reply = await engine.generate_reply(body.text, body.mode)
    latency_ms = round((time.monotonic() - start) * 1000, 1)

    logger.info("Reply generated", engine=engine.name, length=len(reply), latency_ms=latency_ms)
    track_generation(
        engine=engine.name,
        mode=body.mode.value,
        tenant_id=body.tenant_id,
        prompt=body.text,
        reply=reply,
        latency_ms=latency_ms,
    )

    return RespondResponse(reply=reply, engine=engine.name, timestamp=utcnow())
