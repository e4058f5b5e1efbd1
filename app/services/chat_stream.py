"""
services/chat_stream.py
-----------------------
Per-turn streaming orchestration.

One turn runs through:

    RECEIVED → RECORDING_USER → GENERATING → DELIVERING
             → RECORDING_ASSISTANT → COMPLETED          (or FAILED)

The user message is written before generation starts and is never rolled
back. Units are pushed over a DeliveryChannel in order with a fixed delay
between them; the first failed send stops delivery, a best-effort `error`
event is attempted and the channel is closed. Only a fully delivered reply
is recorded as the assistant message, and it is exactly the concatenation
of the units that were sent.

Channel events (SSE):
    event: chunk   data: "<unit text>"
    event: done    data: {"engine": ..., "total_length": ..., "unit_count": ...}
    event: error   data: {"error": "Stream error", "message": ...}
"""

import asyncio
import json
from contextlib import aclosing
from dataclasses import dataclass, field
from enum import Enum as PyEnum
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol, Set

from app.core.config import settings
from app.core.logging import get_logger
from app.models import MessageRole
from app.schemas.responder import GenerationMode
from app.services.generator_client import GeneratorClient
from app.services.segmenter import (
    DeliveryUnit,
    Granularity,
    reassemble,
    segment,
    timed_sequence,
)
from app.services.tenant_store import TenantStore

logger = get_logger(__name__)


# ── Channel ───────────────────────────────────────────────────────────────────

class ChannelClosedError(Exception):
    """Raised by a channel when the client is no longer listening."""


@dataclass(frozen=True)
class StreamEvent:
    event: str
    data: Any

    def to_sse(self) -> str:
        return f"event: {self.event}\ndata: {json.dumps(self.data)}\n\n"


def chunk_event(unit: DeliveryUnit) -> StreamEvent:
    return StreamEvent("chunk", unit.text)


def done_event(engine: str, total_length: int, unit_count: int) -> StreamEvent:
    return StreamEvent(
        "done",
        {"engine": engine, "total_length": total_length, "unit_count": unit_count},
    )


def error_event(message: str) -> StreamEvent:
    return StreamEvent("error", {"error": "Stream error", "message": message})


class DeliveryChannel(Protocol):
    async def send(self, event: StreamEvent) -> None: ...

    async def close(self) -> None: ...


class SSEChannel:
    """
    Queue-backed channel consumed by a StreamingResponse.

    The orchestrator writes events with send(); the HTTP response drains
    frames(). When the response stops draining (client went away) the
    channel is marked disconnected and later sends raise ChannelClosedError.
    """

    def __init__(self) -> None:
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
        self._closed = False
        self._disconnected = False

    @property
    def disconnected(self) -> bool:
        return self._disconnected

    async def send(self, event: StreamEvent) -> None:
        if self._disconnected or self._closed:
            raise ChannelClosedError("client disconnected")
        await self._queue.put(event.to_sse())

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._queue.put(None)

    async def frames(self) -> AsyncIterator[str]:
        try:
            while True:
                frame = await self._queue.get()
                if frame is None:
                    break
                yield frame
        finally:
            if not self._closed:
                self._disconnected = True


# ── Orchestrator ─────────────────────────────────────────────────────────────

class TurnState(str, PyEnum):
    RECEIVED = "received"
    RECORDING_USER = "recording_user"
    GENERATING = "generating"
    DELIVERING = "delivering"
    RECORDING_ASSISTANT = "recording_assistant"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class TurnResult:
    tenant_id: str
    state: TurnState = TurnState.RECEIVED
    engine: Optional[str] = None
    reply: str = ""
    units_sent: List[DeliveryUnit] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def unit_count(self) -> int:
        return len(self.units_sent)


class StreamingOrchestrator:

    def __init__(
        self,
        store: TenantStore,
        generator: GeneratorClient,
        slow_delay_ms: Optional[int] = None,
        fast_delay_ms: Optional[int] = None,
    ) -> None:
        self.store = store
        self.generator = generator
        self.slow_delay_ms = settings.SLOW_DELAY_MS if slow_delay_ms is None else slow_delay_ms
        self.fast_delay_ms = settings.FAST_DELAY_MS if fast_delay_ms is None else fast_delay_ms
        self._tasks: Set[asyncio.Task] = set()

    def delay_for(self, mode: GenerationMode) -> int:
        return self.slow_delay_ms if mode == GenerationMode.slow else self.fast_delay_ms

    async def run_turn(
        self,
        tenant_id: str,
        text: str,
        channel: DeliveryChannel,
        mode: GenerationMode = GenerationMode.default,
        granularity: Optional[Granularity] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> TurnResult:
        """
        Run one chat turn end to end over an already-open channel.

        Input validation happens before this is called. The channel is
        always closed when this returns.
        """
        granularity = granularity or Granularity.word()
        result = TurnResult(tenant_id=tenant_id)

        try:
            result.state = TurnState.RECORDING_USER
            self.store.append(tenant_id, MessageRole.user, text, metadata)

            try:
                result.state = TurnState.GENERATING
                reply = await self.generator.request_reply(text, tenant_id, mode)
                result.engine = reply.engine

                result.state = TurnState.DELIVERING
                units = segment(reply.text, granularity)
                delay_ms = self.delay_for(mode)
                logger.info(
                    "Streaming reply",
                    engine=reply.engine,
                    unit_count=len(units),
                    granularity=granularity.kind,
                    delay_ms=delay_ms,
                )

                async with aclosing(timed_sequence(units, delay_ms)) as stream:
                    async for unit in stream:
                        await channel.send(chunk_event(unit))
                        result.units_sent.append(unit)

                result.reply = reassemble(result.units_sent)

                result.state = TurnState.RECORDING_ASSISTANT
                self.store.append(
                    tenant_id,
                    MessageRole.assistant,
                    result.reply,
                    {"engine": reply.engine, "unit_count": result.unit_count},
                )

                await channel.send(
                    done_event(reply.engine, len(result.reply), result.unit_count)
                )
                result.state = TurnState.COMPLETED
            except Exception as exc:
                await self._fail(result, channel, exc)
        finally:
            await channel.close()

        if result.state == TurnState.COMPLETED:
            logger.info(
                "Turn completed",
                engine=result.engine,
                unit_count=result.unit_count,
                total_length=len(result.reply),
            )
        return result

    async def _fail(
        self, result: TurnResult, channel: DeliveryChannel, exc: Exception
    ) -> None:
        logger.warning(
            "Turn aborted",
            state=result.state.value,
            units_sent=result.unit_count,
            error=str(exc) or type(exc).__name__,
        )
        result.error = str(exc) or type(exc).__name__
        result.state = TurnState.FAILED
        try:
            await channel.send(error_event(result.error))
        except Exception as send_exc:
            logger.debug("Error event not delivered", error=str(send_exc))

    def start(
        self,
        tenant_id: str,
        text: str,
        channel: DeliveryChannel,
        mode: GenerationMode = GenerationMode.default,
        granularity: Optional[Granularity] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "asyncio.Task[TurnResult]":
        """Schedule run_turn() in the background and keep track of it."""
        task = asyncio.create_task(
            self.run_turn(tenant_id, text, channel, mode, granularity, metadata)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(self._log_turn_crash)
        return task

    def _log_turn_crash(self, task: "asyncio.Task[TurnResult]") -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Turn crashed",
                error=str(exc) or type(exc).__name__,
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    @property
    def active_turns(self) -> int:
        return len(self._tasks)

    async def shutdown(self) -> None:
        """Cancel turns still in flight. Called once at process shutdown."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Orchestrator stopped", cancelled_turns=len(tasks))
