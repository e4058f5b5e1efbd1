"""
services/generator_client.py
----------------------------
HTTP client for the responder service.

request_reply() is total: transport errors, timeouts, non-2xx statuses
and malformed bodies are logged and turned into a fixed fallback reply
whose engine name is FALLBACK_ENGINE. Callers never need an error branch
for generation; they can still tell a degraded reply apart by its engine.

The underlying httpx.AsyncClient is created at gateway startup and closed
at shutdown (see main.lifespan).
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import httpx
from pydantic import ValidationError

from app.core.config import settings
from app.core.logging import get_logger
from app.models import utcnow
from app.schemas.responder import GenerationMode, RespondRequest, RespondResponse

logger = get_logger(__name__)

FALLBACK_ENGINE = "fallback"
FALLBACK_REPLY = (
    "Sorry, I'm having trouble connecting to the response service. "
    "Please try again later."
)


@dataclass(frozen=True)
class GeneratedReply:
    text: str
    engine: str
    generated_at: datetime = field(default_factory=utcnow)

    @property
    def is_fallback(self) -> bool:
        return self.engine == FALLBACK_ENGINE


def fallback_reply() -> GeneratedReply:
    return GeneratedReply(text=FALLBACK_REPLY, engine=FALLBACK_ENGINE)


class GeneratorClient:

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.RESPONDER_URL).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.RESPONDER_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def request_reply(
        self,
        text: str,
        tenant_id: str,
        mode: GenerationMode = GenerationMode.default,
    ) -> GeneratedReply:
        """
        Ask the responder for a complete reply.

        Returns the fallback reply when the request cannot be built or on
        any upstream failure; never raises for those.
        """
        try:
            payload = RespondRequest(text=text, tenant_id=tenant_id, mode=mode)
        except ValidationError as exc:
            logger.error("Reply request rejected before sending", errors=exc.error_count())
            return fallback_reply()

        start = time.monotonic()
        logger.info("Requesting reply", url=f"{self.base_url}/respond", mode=payload.mode.value)

        try:
            resp = await self._client.post("/respond", json=payload.model_dump(mode="json"))
        except httpx.TimeoutException:
            logger.error("Responder timed out", timeout=self._client.timeout.read)
            return fallback_reply()
        except httpx.HTTPError as exc:
            logger.error("Responder unreachable", error=str(exc))
            return fallback_reply()

        if resp.status_code >= 300:
            logger.error(
                "Responder returned an error",
                status_code=resp.status_code,
                body=resp.text[:200],
            )
            return fallback_reply()

        try:
            data = RespondResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            logger.error("Malformed responder payload", error=str(exc))
            return fallback_reply()

        latency_ms = round((time.monotonic() - start) * 1000, 1)
        logger.info(
            "Reply received",
            engine=data.engine,
            length=len(data.reply),
            latency_ms=latency_ms,
        )
        return GeneratedReply(text=data.reply, engine=data.engine, generated_at=data.timestamp)

    async def health_check(self) -> bool:
        try:
            resp = await self._client.get("/health")
        except httpx.HTTPError:
            return False
        return resp.is_success

    async def aclose(self) -> None:
        await self._client.aclose()
