"""
engines/echo.py
---------------
EchoEngine: echoes the input through one randomly chosen transformation.
Slow mode appends a longer trailer so the gateway has more to stream.
"""

import random
from typing import Callable, List, Optional

from app.engines.base import ChatEngine, reversed_text, word_count
from app.models import utcnow
from app.schemas.responder import GenerationMode

TRANSFORMATIONS: List[Callable[[str], str]] = [
    lambda text: f'Echo: "{text}"',
    lambda text: f"You said: {text.upper()}",
    lambda text: f"Reversed: {reversed_text(text)}",
    lambda text: f"Sparkle: * {text} *",
    lambda text: f"Whisper: *{text.lower()}*",
]


class EchoEngine(ChatEngine):
    name = "EchoEngine"

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    async def generate_reply(
        self, text: str, mode: GenerationMode = GenerationMode.default
    ) -> str:
        transform = self._rng.choice(TRANSFORMATIONS)
        reply = transform(text)
        if mode == GenerationMode.slow:
            return self._extended(text, reply)
        return reply

    def _extended(self, original: str, transformed: str) -> str:
        return "".join([
            transformed,
            f"\n\nOriginal message had {len(original)} characters.",
            f"\nWord count: {word_count(original)}",
            f"\nProcessed at: {utcnow().isoformat()}",
            f'\n\nFun fact: If you reverse "{original}", you get "{reversed_text(original)}"!',
            f"\n\nRandom number for you: {self._rng.randrange(1000)}",
            "\n\nThe EchoEngine appreciates your message!",
            "\n\nThis is a longer response designed to demonstrate the chunking feature.",
            " The gateway service will split this into multiple SSE events.",
        ])
