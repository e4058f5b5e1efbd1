"""
engines/base.py
---------------
Contract for pluggable reply generators hosted by the responder.

An engine receives the user's text and a generation mode and returns one
complete reply string. Engines are selected once at responder startup
(see app.engines.create_engine).
"""

from abc import ABC, abstractmethod

from app.schemas.responder import GenerationMode


class ChatEngine(ABC):
    name: str = "ChatEngine"

    @abstractmethod
    async def generate_reply(
        self, text: str, mode: GenerationMode = GenerationMode.default
    ) -> str:
        """Return the full reply for *text*."""

    async def aclose(self) -> None:
        return None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name}>"


def word_count(text: str) -> int:
    return len(text.split())


def reversed_text(text: str) -> str:
    return text[::-1]

