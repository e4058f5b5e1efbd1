"""
api/routes/chat.py
------------------
Chat turn endpoints. All routes require the X-Tenant-Id header.

POST /api/v2/chat         — Record a user message (immediate acknowledgment)
GET  /api/v2/chat/stream  — Run a full turn and stream the reply (SSE)
"""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse

from app.core.config import settings
from app.dependencies import get_orchestrator, get_tenant_id, get_tenant_store
from app.models import MessageRole
from app.schemas.chat import ChatAccepted, ChatCreate
from app.schemas.responder import GenerationMode
from app.services.chat_stream import SSEChannel, StreamingOrchestrator
from app.services.segmenter import Granularity
from app.services.tenant_store import TenantStore

router = APIRouter(prefix="/api/v2", tags=["Chat"])


@router.post(
    "/chat",
    response_model=ChatAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Record a user message",
)
async def post_chat(
    body: ChatCreate,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    store: Annotated[TenantStore, Depends(get_tenant_store)],
) -> ChatAccepted:
    """
    Store the message in the tenant's history and acknowledge it.
    The reply is produced by /api/v2/chat/stream.
    """
    message = store.append(tenant_id, MessageRole.user, body.text, body.metadata)
    return ChatAccepted(message_id=message.id)


@router.get(
    "/chat/stream",
    summary="Stream a reply as Server-Sent Events",
    response_class=StreamingResponse,
)
async def stream_chat(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    orchestrator: Annotated[StreamingOrchestrator, Depends(get_orchestrator)],
    text: str = Query(
        ...,
        min_length=1,
        max_length=settings.MAX_MESSAGE_LENGTH,
        description="User message for this turn",
    ),
    mode: GenerationMode = Query(default=GenerationMode.default),
    granularity: Literal["word", "chunk"] = Query(
        default="word", description="word = typewriter effect, chunk = size-based"
    ),
):
    """
    Record the message, fetch a reply from the responder and push it to the
    client unit by unit.

    Events:
        event: chunk   data: "<text fragment>"
        event: done    data: {"engine", "total_length", "unit_count"}
        event: error   data: {"error", "message"}   (mid-stream failure only)

    How to test with curl:
        curl -N -H "X-Tenant-Id: acme" \\
          "http://localhost:3000/api/v2/chat/stream?text=hello+world&mode=slow"
    """
    unit_granularity = (
        Granularity.fixed_size(settings.CHUNK_SIZE)
        if granularity == "chunk"
        else Granularity.word()
    )

    channel = SSEChannel()
    orchestrator.start(tenant_id, text, channel, mode, unit_granularity)

    return StreamingResponse(
        channel.frames(),
        media_type="text/event-stream",
        headers={
            # Prevent proxy/browser buffering
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
            "Connection": "keep-alive",
        },
    )
