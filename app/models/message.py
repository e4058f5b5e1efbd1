"""
models/message.py
-----------------
In-memory conversation models.

A Message is immutable once created. A TenantHistory handed out by the
store is a snapshot: its message tuple never changes after it is built,
so callers can hold on to it while other requests keep appending.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageRole(str, PyEnum):
    user = "user"
    assistant = "assistant"


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=utcnow)
    metadata: Optional[Dict[str, Any]] = None

    def __repr__(self) -> str:
        return f"<Message id={self.id} role={self.role.value}>"


class TenantHistory(BaseModel):
    model_config = ConfigDict(frozen=True)

    tenant_id: str
    messages: Tuple[Message, ...] = ()
    created_at: datetime
    last_activity_at: datetime

    @property
    def message_count(self) -> int:
        return len(self.messages)
