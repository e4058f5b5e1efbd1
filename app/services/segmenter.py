"""
services/segmenter.py
---------------------
Splits a complete reply into ordered display units for progressive
delivery, and spaces those units out in time.

Segmentation and timing are separate steps:
  segment()         — pure, deterministic, returns a restartable Segmentation
  timed_sequence()  — async iterator that only adds the inter-unit delay

Every unit keeps the whitespace that follows it, so joining the unit
texts in order gives back the original reply exactly.
"""

import asyncio
import math
import re
from dataclasses import dataclass
from typing import AsyncIterator, Iterable, Iterator, Optional

_WORD_PATTERN = re.compile(r"\s*\S+\s*")

# Break-point preferences for fixed-size chunks, as fractions of the window.
SPACE_BREAK_FRACTION = 0.5
NEWLINE_BREAK_FRACTION = 0.7


@dataclass(frozen=True)
class Granularity:
    kind: str
    size: Optional[int] = None

    @classmethod
    def word(cls) -> "Granularity":
        return cls(kind="word")

    @classmethod
    def fixed_size(cls, size: int) -> "Granularity":
        if size < 1:
            raise ValueError(f"Chunk size must be at least 1, got {size}")
        return cls(kind="fixed", size=size)


@dataclass(frozen=True)
class DeliveryUnit:
    position: int
    text: str


@dataclass(frozen=True)
class SegmentStats:
    total_length: int
    unit_count: int
    average_unit_size: int


def _split_words(text: str) -> Iterator[str]:
    matched = False
    for match in _WORD_PATTERN.finditer(text):
        matched = True
        yield match.group(0)
    if not matched and text:
        # whitespace-only text
        yield text


def _split_fixed(text: str, size: int) -> Iterator[str]:
    remaining = text
    while remaining:
        if len(remaining) <= size:
            yield remaining
            return

        break_point = size

        space_index = remaining.rfind(" ", 0, size + 1)
        if space_index > size * SPACE_BREAK_FRACTION:
            break_point = space_index + 1

        newline_index = remaining.rfind("\n", 0, size + 1)
        if newline_index > break_point * NEWLINE_BREAK_FRACTION:
            break_point = newline_index + 1

        yield remaining[:break_point]
        remaining = remaining[break_point:]


class Segmentation:
    """
    Finite, restartable sequence of DeliveryUnit.

    Units are produced lazily on each iteration; iterating twice yields
    the same units.
    """

    def __init__(self, text: str, granularity: Granularity) -> None:
        self.text = text
        self.granularity = granularity

    def _pieces(self) -> Iterator[str]:
        if self.granularity.kind == "word":
            return _split_words(self.text)
        return _split_fixed(self.text, self.granularity.size)

    def __iter__(self) -> Iterator[DeliveryUnit]:
        for position, piece in enumerate(self._pieces()):
            yield DeliveryUnit(position=position, text=piece)

    def __len__(self) -> int:
        return sum(1 for _ in self._pieces())

    def __repr__(self) -> str:
        return f"<Segmentation kind={self.granularity.kind} length={len(self.text)}>"


def segment(text: str, granularity: Granularity) -> Segmentation:
    return Segmentation(text, granularity)


def reassemble(units: Iterable[DeliveryUnit]) -> str:
    return "".join(unit.text for unit in units)


async def timed_sequence(
    units: Iterable[DeliveryUnit], delay_ms: int
) -> AsyncIterator[DeliveryUnit]:
    """
    Yield units one by one, sleeping delay_ms between successive units.

    There is no sleep before the first unit or after the last one. If the
    consumer stops iterating, no further sleeps are scheduled.
    """
    delay = max(delay_ms, 0) / 1000
    iterator = iter(units)
    current = next(iterator, None)
    while current is not None:
        yield current
        following = next(iterator, None)
        if following is not None and delay:
            await asyncio.sleep(delay)
        current = following


def stats(text: str, granularity: Granularity) -> SegmentStats:
    unit_count = len(segment(text, granularity))
    total_length = len(text)
    average = math.floor(total_length / unit_count + 0.5) if unit_count else 0
    return SegmentStats(
        total_length=total_length,
        unit_count=unit_count,
        average_unit_size=average,
    )

