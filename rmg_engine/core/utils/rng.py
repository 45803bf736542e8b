# rmg_engine/core/utils/rng.py
from __future__ import annotations
from typing import Dict, Union

# golden ratio for 64-bit
_DEF_CONST = 0x9E3779B97F4A7C15


def _splitmix64(x: int) -> int:
    x = (x + 0x9E3779B97F4A7C15) & 0xFFFFFFFFFFFFFFFF
    z = x
    z = (z ^ (z >> 30)) * 0xBF58476D1CE4E5B9 & 0xFFFFFFFFFFFFFFFF
    z = (z ^ (z >> 27)) * 0x94D049BB133111EB & 0xFFFFFFFFFFFFFFFF
    return z ^ (z >> 31)


def seed_from_any(x: Union[int, str, bytes]) -> int:
    if isinstance(x, int):
        return x & 0xFFFFFFFFFFFFFFFF
    if isinstance(x, bytes):
        acc = 0xcbf29ce484222325
        for b in x:
            acc ^= b
            acc = (acc * 0x100000001B3) & 0xFFFFFFFFFFFFFFFF
        return acc
    if isinstance(x, str):
        return seed_from_any(x.encode('utf-8'))
    raise TypeError("Unsupported seed type")


def hash64(*vals: int) -> int:
    h = 0x84222325CBF29CE4
    for v in vals:
        h ^= v & 0xFFFFFFFFFFFFFFFF
        h = _splitmix64(h)
    return h


class RNG:
    """Последовательный детерминированный генератор (splitmix64).

    Единственный источник случайности ядра: рассев центроидов k-means,
    разброс центров зон и тай-брейки при расстановке.
    """
    __slots__ = ("state",)

    def __init__(self, seed: Union[int, str, bytes]):
        self.state = seed_from_any(seed)

    def u64(self) -> int:
        self.state = _splitmix64(self.state)
        return self.state

    def randint(self, a: int, b: int) -> int:
        if a > b: a, b = b, a
        span = b - a + 1
        return a + (self.u64() % span)

    def next_int(self, bound: int) -> int:
        """Целое в [0, bound] включительно."""
        if bound <= 0:
            return 0
        return self.randint(0, bound)


def init_stage_seeds(seed: int) -> Dict[str, int]:
    """
    Создает детерминированные сиды для разных стадий генерации,
    основанные на глобальном сиде карты.
    """
    base = seed_from_any(seed)
    return {
        "zones":        hash64(base, 0xA5A5A5A5),
        "segmentation": hash64(base, 0x5A5A5A5A),
        "rewards":      hash64(base, 0x55AA55AA),
        "guards":       hash64(base ^ _DEF_CONST, 0x33CC33CC),
    }
