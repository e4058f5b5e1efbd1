"""
schemas/responder.py
--------------------
Wire models shared by the gateway's generator client and the responder's
/respond endpoint.
"""

from datetime import datetime
from enum import Enum as PyEnum

from pydantic import BaseModel, Field

from app.core.config import settings


class GenerationMode(str, PyEnum):
    fast = "fast"
    slow = "slow"
    default = "default"


class RespondRequest(BaseModel):
    text: str = Field(..., min_length=1, description="User message to answer")
    tenant_id: str = Field(..., min_length=1, max_length=settings.TENANT_ID_MAX_LENGTH)
    mode: GenerationMode = GenerationMode.default


class RespondResponse(BaseModel):
    reply: str
    engine: str
    timestamp: datetime
