# ==============================================================================
# Файл: rmg_engine/world/tile_grid.py
# Назначение: Прямоугольная сетка тайлов с заранее посчитанными соседями.
#             Топология строится один раз и дальше не меняется; меняются
#             только метки зоны/сегмента на тайлах.
# ==============================================================================
from __future__ import annotations
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np

from ..core.constants import UNASSIGNED_ZONE
from ..core.types import Pos
from .tile_region import TileRegion


class Tile:
    """Один тайл карты. Создаётся и принадлежит только TileGrid."""

    __slots__ = (
        "pos", "index", "grid", "zone_index", "segment_index",
        "t", "b", "l", "r", "tl", "tr", "bl", "br",
        "neighbors4", "neighbors8",
    )

    def __init__(self, grid: "TileGrid", pos: Pos, index: int):
        self.grid = grid
        self.pos = pos
        self.index = index
        self.zone_index = UNASSIGNED_ZONE
        self.segment_index = 0

        self.t: Optional[Tile] = None
        self.b: Optional[Tile] = None
        self.l: Optional[Tile] = None
        self.r: Optional[Tile] = None
        self.tl: Optional[Tile] = None
        self.tr: Optional[Tile] = None
        self.bl: Optional[Tile] = None
        self.br: Optional[Tile] = None
        self.neighbors4: Tuple[Tile, ...] = ()
        self.neighbors8: Tuple[Tile, ...] = ()

    @property
    def x(self) -> int:
        return self.pos.x

    @property
    def y(self) -> int:
        return self.pos.y

    @property
    def z(self) -> int:
        return self.pos.z

    def neighbors(self, diagonal: bool) -> Tuple["Tile", ...]:
        return self.neighbors8 if diagonal else self.neighbors4

    def __lt__(self, other: "Tile") -> bool:
        return self.index < other.index

    def __repr__(self) -> str:
        return f"Tile({self.pos.x}, {self.pos.y}, {self.pos.z})"


class TileGrid:
    """Контейнер всех тайлов: O(1) поиск по позиции и соседям."""

    def __init__(self, width: int, height: int, depth: int = 1):
        if width <= 0 or height <= 0 or depth <= 0:
            raise ValueError(f"Invalid grid size {width}x{height}x{depth}")
        self.width = width
        self.height = height
        self.depth = depth

        self._tiles: List[Tile] = []
        self._index: Dict[Pos, Tile] = {}
        for z in range(depth):
            for y in range(height):
                for x in range(width):
                    pos = Pos(x, y, z)
                    tile = Tile(self, pos, len(self._tiles))
                    self._tiles.append(tile)
                    self._index[pos] = tile

        # --- Соседи считаются один раз ---
        for tile in self._tiles:
            x, y, z = tile.pos
            tile.t = self.get(x, y - 1, z)
            tile.b = self.get(x, y + 1, z)
            tile.l = self.get(x - 1, y, z)
            tile.r = self.get(x + 1, y, z)
            tile.tl = self.get(x - 1, y - 1, z)
            tile.tr = self.get(x + 1, y - 1, z)
            tile.bl = self.get(x - 1, y + 1, z)
            tile.br = self.get(x + 1, y + 1, z)
            tile.neighbors4 = tuple(n for n in (tile.t, tile.l, tile.r, tile.b) if n is not None)
            tile.neighbors8 = tile.neighbors4 + tuple(
                n for n in (tile.tl, tile.tr, tile.bl, tile.br) if n is not None
            )

        self.all = TileRegion(self._tiles)
        self.center_tile = self._index[Pos(width // 2, height // 2, 0)]

    def __iter__(self) -> Iterator[Tile]:
        return iter(self._tiles)

    def __len__(self) -> int:
        return len(self._tiles)

    def get(self, x: int, y: int, z: int = 0) -> Optional[Tile]:
        if 0 <= x < self.width and 0 <= y < self.height and 0 <= z < self.depth:
            return self._tiles[x + y * self.width + z * self.width * self.height]
        return None

    def tile_at(self, pos: Pos) -> Tile:
        """Как get(), но отсутствие тайла - ошибка (KeyError)."""
        return self._index[pos]

    def in_bounds(self, pos: Pos) -> bool:
        return pos in self._index

    def clamp(self, pos: Pos) -> Pos:
        return Pos(
            min(max(pos.x, 0), self.width - 1),
            min(max(pos.y, 0), self.height - 1),
            min(max(pos.z, 0), self.depth - 1),
        )

    def level(self, z: int = 0) -> TileRegion:
        start = z * self.width * self.height
        return TileRegion(self._tiles[start:start + self.width * self.height])

    def level_tiles(self, z: int = 0) -> List[Tile]:
        start = z * self.width * self.height
        return self._tiles[start:start + self.width * self.height]

    def zone_array(self, z: int = 0) -> np.ndarray:
        """Метки зон уровня z в виде массива (height, width)."""
        tags = np.fromiter(
            (t.zone_index for t in self.level_tiles(z)),
            dtype=np.int32,
            count=self.width * self.height,
        )
        return tags.reshape((self.height, self.width))

    def reset_zones(self, z: Optional[int] = None) -> None:
        tiles = self._tiles if z is None else self.level_tiles(z)
        for tile in tiles:
            tile.zone_index = UNASSIGNED_ZONE
            tile.segment_index = 0
