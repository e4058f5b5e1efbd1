"""
engines/rule_based.py
---------------------
RuleBasedEngine: keyword matching with priorities.

The highest-priority rule whose keywords appear in the message (case
insensitive substring match) supplies the reply; ties keep rule order.
No match → one of the generic fallback phrases.
"""

import random
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from app.engines.base import ChatEngine, word_count
from app.models import utcnow
from app.schemas.responder import GenerationMode


@dataclass(frozen=True)
class Rule:
    keywords: Tuple[str, ...]
    responses: Tuple[str, ...]
    priority: int = 0


def _time_responses() -> Tuple[str, ...]:
    now = datetime.now()
    return (
        f"The current server time is {now.strftime('%Y-%m-%d %H:%M:%S')}",
        f"Today is {now.strftime('%A, %B %d, %Y')}",
    )


RULES: List[Rule] = [
    Rule(
        keywords=("hello", "hi", "hey", "greetings", "howdy", "hola"),
        responses=(
            "Hello there! How can I help you today?",
            "Hi! Great to see you!",
            "Hey! What's on your mind?",
        ),
        priority=1,
    ),
    Rule(
        keywords=("bye", "goodbye", "see you", "later", "farewell"),
        responses=(
            "Goodbye! Have a wonderful day!",
            "See you later! Take care!",
            "Farewell! Until next time!",
        ),
        priority=1,
    ),
    Rule(
        keywords=("help", "assist", "support", "guide"),
        responses=(
            "I'm here to help! What do you need assistance with?",
            "Need help? Just ask me anything!",
        ),
        priority=2,
    ),
    Rule(
        keywords=("thanks", "thank you", "appreciate", "grateful"),
        responses=(
            "You're welcome! Happy to help!",
            "My pleasure! Anything else?",
        ),
        priority=1,
    ),
    Rule(
        keywords=("joke", "funny", "laugh", "humor"),
        responses=(
            "Why don't scientists trust atoms? Because they make up everything!",
            "What do you call a fake noodle? An impasta!",
            "Why did the scarecrow win an award? He was outstanding in his field!",
        ),
        priority=2,
    ),
    Rule(
        keywords=("time", "date", "today", "now"),
        responses=(),  # filled at reply time
        priority=2,
    ),
    Rule(
        keywords=("name", "who are you", "what are you", "introduce"),
        responses=(
            "I'm MiniChat's RuleBasedEngine! I match keywords to give you responses.",
            "I'm a simple rule-based chatbot, part of the MiniChat system!",
        ),
        priority=3,
    ),
]

FALLBACK_RESPONSES: Tuple[str, ...] = (
    "Interesting! Tell me more about that.",
    "I'm not sure I understand, but I'm listening!",
    "That's an intriguing topic. Could you elaborate?",
    "Fascinating! What else would you like to discuss?",
)


def matched_keywords(text: str) -> List[str]:
    lowered = text.lower()
    return [kw for rule in RULES for kw in rule.keywords if kw in lowered]


def matching_rules(text: str) -> List[Rule]:
    lowered = text.lower()
    hits = [rule for rule in RULES if any(kw in lowered for kw in rule.keywords)]
    # sorted() is stable, so equal priorities keep declaration order
    return sorted(hits, key=lambda rule: rule.priority, reverse=True)


class RuleBasedEngine(ChatEngine):
    name = "RuleBasedEngine"

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    async def generate_reply(
        self, text: str, mode: GenerationMode = GenerationMode.default
    ) -> str:
        rules = matching_rules(text)
        had_match = bool(rules)
        if had_match:
            responses = rules[0].responses or _time_responses()
            reply = self._rng.choice(responses)
        else:
            reply = self._rng.choice(FALLBACK_RESPONSES)

        if mode == GenerationMode.slow:
            return self._extended(text, reply, had_match)
        return reply

    def _extended(self, original: str, base_reply: str, had_match: bool) -> str:
        keywords = matched_keywords(original)
        return "".join([
            base_reply,
            "\n\n**Message Analysis**",
            f"\n- Characters: {len(original)}",
            f"\n- Words: {word_count(original)}",
            f"\n- Rule matched: {'Yes' if had_match else 'No (used fallback)'}",
            "\n\n**Keywords Detected**",
            f"\n- {', '.join(keywords) if keywords else 'None from my ruleset'}",
            f"\n\nProcessed at: {utcnow().isoformat()}",
            "\n\n---",
            "\nThis extended response demonstrates the slow mode feature.",
        ])
