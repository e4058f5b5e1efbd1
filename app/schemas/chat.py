"""
schemas/chat.py
---------------
Pydantic request/response models for the gateway's chat and debug routes.

Naming convention:
  ChatCreate   → inbound request body
  *Read        → outbound response body
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.core.config import settings
from app.models import Message


class ChatCreate(BaseModel):
    text: str = Field(
        ...,
        min_length=1,
        max_length=settings.MAX_MESSAGE_LENGTH,
        examples=["Hello there, tell me a joke"],
        description="User message for this turn",
    )
    metadata: Optional[Dict[str, Any]] = None


class ChatAccepted(BaseModel):
    accepted: bool = True
    message_id: str
    detail: str = "Message received. Use /api/v2/chat/stream to get the response."


class TenantSummary(BaseModel):
    id: str
    message_count: int
    created_at: datetime
    last_activity_at: datetime


class StoreStatsRead(BaseModel):
    tenant_count: int
    total_message_count: int


class DebugStateRead(BaseModel):
    tenant: TenantSummary
    messages: List[Message]
    global_stats: StoreStatsRead


class ClearStateRead(BaseModel):
    success: bool = True
    cleared: bool
    tenant_id: str
