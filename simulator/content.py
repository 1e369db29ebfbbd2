"""Filler text of an exact length."""

from __future__ import annotations

import random
from typing import Tuple, Union

LengthSpec = Union[int, Tuple[int, int]]

# Plain ASCII so character length and byte length agree.
WORDS = (
    "lorem", "ipsum", "dolor", "sit", "amet", "consectetur", "adipiscing", "elit",
    "sed", "do", "eiusmod", "tempor", "incididunt", "ut", "labore", "et", "dolore",
    "magna", "aliqua", "enim", "ad", "minim", "veniam", "quis", "nostrud",
    "exercitation", "ullamco", "laboris", "nisi", "aliquip", "ex", "ea", "commodo",
    "consequat", "duis", "aute", "irure", "in", "reprehenderit", "voluptate",
    "velit", "esse", "cillum", "eu", "fugiat", "nulla", "pariatur", "excepteur",
    "sint", "occaecat", "cupidatat", "non", "proident", "sunt", "culpa", "qui",
    "officia", "deserunt", "mollit", "anim", "id", "est", "laborum",
)


class ContentGenerator:
    def __init__(self, length: LengthSpec = 250, *, rng: random.Random | None = None) -> None:
        self.length = length
        self._rng = rng if rng is not None else random.Random()

    def resolve_length(self, spec: LengthSpec | None = None) -> int:
        """Turn a fixed length or an inclusive ``(min, max)`` range into one length."""
        spec = self.length if spec is None else spec
        if isinstance(spec, tuple):
            low, high = spec
            if low > high:
                low, high = high, low
            return self._rng.randint(max(0, low), max(0, high))
        return max(0, int(spec))

    def generate(self, length: int) -> str:
        """Return exactly ``length`` characters of filler; a word may be cut."""
        if length <= 0:
            return ""
        words = []
        size = 0
        while size < length:
            word = self._rng.choice(WORDS)
            if words:
                size += 1
            else:
                word = word.capitalize()
            words.append(word)
            size += len(word)
        return " ".join(words)[:length]


__all__ = ["ContentGenerator", "WORDS"]
