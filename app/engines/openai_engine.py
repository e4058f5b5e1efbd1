"""
engines/openai_engine.py
------------------------
OpenAIEngine: replies through the OpenAI chat-completions API.

Only available when OPENAI_API_KEY is set. API failures are raised as
RuntimeError; the responder turns them into a 500 and the gateway's
generator client substitutes its fallback reply.
"""

from typing import Optional

from app.core.config import settings
from app.core.logging import get_logger
from app.engines.base import ChatEngine
from app.schemas.responder import GenerationMode

logger = get_logger(__name__)

SYSTEM_PROMPT = "You are a friendly assistant in a small chat demo. Keep replies short."
SLOW_MODE_SUFFIX = " Give a longer, more detailed answer of a few paragraphs."


class OpenAIEngine(ChatEngine):
    name = "OpenAIEngine"

    def __init__(self, api_key: Optional[str] = None, client=None) -> None:
        if client is None:
            import openai
            client = openai.AsyncOpenAI(api_key=api_key or settings.OPENAI_API_KEY)
        self._client = client

    async def generate_reply(
        self, text: str, mode: GenerationMode = GenerationMode.default
    ) -> str:
        system = SYSTEM_PROMPT + (SLOW_MODE_SUFFIX if mode == GenerationMode.slow else "")
        try:
            completion = await self._client.chat.completions.create(
                model=settings.LLM_MODEL,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": text},
                ],
                max_tokens=settings.LLM_MAX_TOKENS,
                temperature=settings.LLM_TEMPERATURE,
            )
            return completion.choices[0].message.content or ""
        except Exception as exc:
            logger.error("OpenAI API error", error=str(exc))
            raise RuntimeError(f"LLM generation failed: {exc}") from exc

    async def aclose(self) -> None:
        await self._client.close()
