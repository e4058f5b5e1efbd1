from typing import List

import pytest

from app.schemas.responder import GenerationMode
from app.services.chat_stream import ChannelClosedError, StreamEvent
from app.services.generator_client import GeneratedReply, fallback_reply
from app.services.tenant_store import TenantStore


class EchoGenerator:
    """Returns the user's text unchanged, or a fixed reply when given one."""

    def __init__(self, reply=None, engine="StubEngine"):
        self.reply = reply
        self.engine = engine
        self.calls = []
        self.base_url = "http://responder.test"

    async def request_reply(self, text, tenant_id, mode=GenerationMode.default):
        self.calls.append((text, tenant_id, mode))
        return GeneratedReply(text=text if self.reply is None else self.reply, engine=self.engine)

    async def health_check(self):
        return True

    async def aclose(self):
        return None


class FallbackGenerator(EchoGenerator):
    async def request_reply(self, text, tenant_id, mode=GenerationMode.default):
        self.calls.append((text, tenant_id, mode))
        return fallback_reply()


class RecordingChannel:
    def __init__(self):
        self.events: List[StreamEvent] = []
        self.closed = False

    async def send(self, event):
        if self.closed:
            raise ChannelClosedError("closed")
        self.events.append(event)

    async def close(self):
        self.closed = True

    def chunks(self):
        return [e.data for e in self.events if e.event == "chunk"]

    def of(self, name):
        return [e for e in self.events if e.event == name]


class DisconnectingChannel(RecordingChannel):
    """Accepts `allowed` chunk events, then behaves like a dropped client."""

    def __init__(self, allowed, accept_error_event=False):
        super().__init__()
        self.allowed = allowed
        self.accept_error_event = accept_error_event

    async def send(self, event):
        if event.event == "error" and self.accept_error_event:
            self.events.append(event)
            return
        if len(self.chunks()) >= self.allowed:
            raise ChannelClosedError("client disconnected")
        await super().send(event)


def parse_sse(body: str):
    events = []
    for block in body.strip().split("\n\n"):
        if not block:
            continue
        fields = dict(line.split(": ", 1) for line in block.split("\n"))
        events.append((fields["event"], fields["data"]))
    return events


@pytest.fixture
def store():
    return TenantStore()


@pytest.fixture
def echo_generator():
    return EchoGenerator()
