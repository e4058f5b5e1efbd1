"""
engines/__init__.py
-------------------
Engine registry. The responder calls create_engine(settings.ENGINE) once
at startup:

    echo                          → EchoEngine (default)
    rule | rulebased | rule-based → RuleBasedEngine
    openai                        → OpenAIEngine (needs OPENAI_API_KEY)
"""

from typing import Optional

from app.core.config import settings
from app.core.logging import get_logger
from app.engines.base import ChatEngine
from app.engines.echo import EchoEngine
from app.engines.rule_based import RuleBasedEngine

logger = get_logger(__name__)

AVAILABLE_ENGINES = ["EchoEngine", "RuleBasedEngine", "OpenAIEngine"]


def create_engine(name: Optional[str] = None) -> ChatEngine:
    key = (name or settings.ENGINE).strip().lower()

    if key in ("rule", "rulebased", "rule-based"):
        engine: ChatEngine = RuleBasedEngine()
    elif key == "openai":
        if not settings.OPENAI_API_KEY:
            logger.warning("OPENAI_API_KEY not set — falling back to EchoEngine")
            engine = EchoEngine()
        else:
            from app.engines.openai_engine import OpenAIEngine
            engine = OpenAIEngine()
    else:
        if key != "echo":
            logger.warning("Unknown engine requested — using EchoEngine", requested=key)
        engine = EchoEngine()

    logger.info("Engine selected", engine=engine.name)
    return engine


__all__ = ["AVAILABLE_ENGINES", "ChatEngine", "EchoEngine", "RuleBasedEngine", "create_engine"]
