"""
Xorwow pseudo-random generator (Marsaglia 2003).

Used for reproducible component palettes: the same seed always yields the
same color sequence.
"""

from mutcap_constants import XORWOW_WARMUP

_MASK32 = 0xFFFFFFFF
_WEYL_INCREMENT = 362437


class Xorwow:
    """32-bit xorwow generator with a Weyl counter."""

    def __init__(self, seed: int):
        self.a = (seed >> 32) & _MASK32
        self.b = seed & _MASK32
        self.c = 1
        self.d = 1
        self.counter = 0
        for _ in range(XORWOW_WARMUP):
            self.next()

    def reset(self, seed: int) -> None:
        self.a = seed & _MASK32
        self.b = 1
        self.c = 1
        self.d = 1
        self.counter = 0

    def next(self) -> int:
        t = self.d
        s = self.a
        self.d = self.c
        self.c = self.b
        self.b = s
        t ^= t >> 2
        t ^= (t << 1) & _MASK32
        t ^= s ^ ((s << 4) & _MASK32)
        self.a = t
        self.counter = (self.counter + _WEYL_INCREMENT) & _MASK32
        return (t + self.counter) & _MASK32

    def next64(self) -> int:
        a = self.next()
        b = self.next()
        return (a << 32) | b

    def rnd(self) -> float:
        """Uniform float in [0, 1) with 48 bits of resolution."""
        return (self.next64() & ((1 << 48) - 1)) / float(1 << 48)
