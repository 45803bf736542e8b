# rmg_engine/core/types.py
from __future__ import annotations
from dataclasses import dataclass
from typing import NamedTuple, Optional, Protocol


class Pos(NamedTuple):
    """Целочисленная позиция тайла (x, y, z)."""

    x: int
    y: int
    z: int = 0

    def __add__(self, other: "Pos") -> "Pos":  # type: ignore[override]
        return Pos(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Pos") -> "Pos":
        return Pos(self.x - other.x, self.y - other.y, self.z - other.z)

    def shifted(self, dx: int, dy: int) -> "Pos":
        return Pos(self.x + dx, self.y + dy, self.z)


@dataclass(frozen=True)
class ZoneSpec:
    """Описание одной зоны шаблона: где её семя и какую долю карты она хочет."""

    id: str
    center: Pos
    relative_area: int = 100
    center_dispersion: Pos = Pos(0, 0)
    relative_area_dispersion: int = 0
    terrain: Optional[str] = None
    guard_min: int = 0
    guard_max: int = 0


class RandomSource(Protocol):
    """Интерфейс генератора случайных чисел, который потребляет ядро."""

    def next_int(self, bound: int) -> int: ...
