from __future__ import annotations

import random
from typing import List, Optional

from mkatools.types import MAX_UID


class UidGenerator:
    """Hands out 63-bit non-negative chapter uids, unique within one album.

    The entropy source is injected so runs can be replayed with a seeded
    ``random.Random``; the default draws from the operating system.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng if rng is not None else random.SystemRandom()
        self._issued = set()

    def next(self) -> int:
        while True:
            uid = self._rng.getrandbits(63)
            # Matroska reserves 0 as "no uid"
            if uid and uid <= MAX_UID and uid not in self._issued:
                self._issued.add(uid)
                return uid

    def generate(self, count: int) -> List[int]:
        return [self.next() for _ in range(count)]
