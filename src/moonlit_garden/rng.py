"""Seeded random streams for the garden.

Planting, harvesting and cross-breeding each draw from their own stream, keyed
by the garden seed and by what is being acted on (plot, plant, pair of
parents) plus the millisecond of the action. Replaying a garden with the same
seed and clock replays every roll, whatever order the plots are visited in.
"""

from __future__ import annotations

import hashlib
import logging
import random
import secrets
from typing import Optional, Union

logger = logging.getLogger(__name__)

SeedLike = Union[int, str, bytes]

PLANTING = "planting"
HARVEST = "harvest"
CROSS_BREED = "cross_breed"


def seed_bytes(seed: SeedLike) -> bytes:
    """Bytes behind a seed; ints and strings map through their text."""
    if isinstance(seed, bytes):
        return seed
    if isinstance(seed, bool) or not isinstance(seed, (int, str)):
        raise TypeError(f"Unsupported garden seed type: {type(seed).__name__}")
    return str(seed).strip().encode("utf-8")


class RNGManager:
    """Hands out one ``random.Random`` per garden action."""

    def __init__(self, seed: Optional[SeedLike] = None) -> None:
        if seed is None:
            self._seed = secrets.token_bytes(16)
            logger.info("No garden seed provided; generated %s", self._seed.hex())
        else:
            self._seed = seed_bytes(seed)
            logger.debug("Using garden seed %r", seed)
        self._key = hashlib.blake2b(self._seed, digest_size=32).digest()

    @property
    def seed_hex(self) -> str:
        return self._seed.hex()

    def _stream(self, action: str, *parts: object) -> random.Random:
        h = hashlib.blake2b(digest_size=8, key=self._key, person=action.encode("ascii")[:16])
        h.update("|".join(str(p) for p in parts).encode("utf-8"))
        return random.Random(int.from_bytes(h.digest(), "big"))

    def for_planting(self, plot_id: int, stamp_ms: int) -> random.Random:
        return self._stream(PLANTING, plot_id, stamp_ms)

    def for_harvest(self, plant_id: str, stamp_ms: int) -> random.Random:
        return self._stream(HARVEST, plant_id, stamp_ms)

    def for_cross_breed(self, plant_a_id: str, plant_b_id: str, stamp_ms: int) -> random.Random:
        # Parent order matters: the first parent's traits are inherited first.
        return self._stream(CROSS_BREED, plant_a_id, plant_b_id, stamp_ms)


__all__ = ["RNGManager", "seed_bytes"]
