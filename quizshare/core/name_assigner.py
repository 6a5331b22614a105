"""Assigns display names to anonymous public attempters who leave the name blank."""

from __future__ import annotations

from collections import deque
import random
from threading import Lock

_ADJECTIVES = [
    "Curious",
    "Swift",
    "Quiet",
    "Bold",
    "Clever",
    "Patient",
    "Bright",
    "Steady",
]
_ANIMALS = [
    "Otter",
    "Falcon",
    "Badger",
    "Heron",
    "Lynx",
    "Tortoise",
    "Fox",
    "Marten",
]


class NameAssigner:
    """Hands out randomized, non-repeating names until the pool is exhausted."""

    def __init__(self, names: list[str], seed: int | None = None):
        cleaned = [name.strip() for name in names if name.strip()]
        if not cleaned:
            raise ValueError("Name list cannot be empty.")
        self._names = cleaned
        self._pool: deque[str] = deque()
        self._lock = Lock()
        self._rng = random.Random(seed)
        self._refill_pool()

    @classmethod
    def default(cls, seed: int | None = None) -> "NameAssigner":
        names = [f"{adjective} {animal}" for adjective in _ADJECTIVES for animal in _ANIMALS]
        return cls(names, seed=seed)

    def next_name(self) -> str:
        with self._lock:
            if not self._pool:
                self._refill_pool()
            return self._pool.popleft()

    def _refill_pool(self) -> None:
        shuffled = list(self._names)
        self._rng.shuffle(shuffled)
        self._pool.extend(shuffled)
