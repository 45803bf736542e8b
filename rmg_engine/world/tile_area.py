# ==============================================================================
# Файл: rmg_engine/world/tile_area.py
# Назначение: Регион + кэш его внутреннего/внешнего края. Доводка краёв
#             (дыры, шипы, расширение) и разбиение области на части.
# ==============================================================================
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from ..core.types import RandomSource
from .kmeans import segment_zone
from .tile_region import TileRegion, make_centroid, split_by_flood_fill


class RefineTask(Enum):
    RemoveHollows = "remove_hollows"
    RemoveSpikes = "remove_spikes"
    Expand = "expand"


def _orthogonal_inside(tile, region: TileRegion) -> int:
    return (
        (tile.b in region)
        + (tile.t in region)
        + (tile.r in region)
        + (tile.l in region)
    )


@dataclass
class TileArea:
    inner_area: TileRegion = field(default_factory=TileRegion)
    inner_edge: TileRegion = field(default_factory=TileRegion)
    outside_edge: TileRegion = field(default_factory=TileRegion)
    diagonal_growth: bool = False

    @classmethod
    def from_region(cls, region: TileRegion, diagonal_growth: bool = False) -> "TileArea":
        area = cls(inner_area=region.copy(), diagonal_growth=diagonal_growth)
        area.make_edge_from_inner_area()
        return area

    def __len__(self) -> int:
        return len(self.inner_area)

    # --- кэш краёв ---

    def make_edge_from_inner_area(self) -> None:
        self.inner_edge = self.inner_area.copy()
        self.remove_non_inner_from_inner_edge()

    def remove_non_inner_from_inner_edge(self) -> None:
        full = 8 if self.diagonal_growth else 4
        surrounded = []
        for tile in self.inner_edge:
            neighbours = tile.neighbors(self.diagonal_growth)
            if len(neighbours) == full and all(n in self.inner_area for n in neighbours):
                surrounded.append(tile)
        self.inner_edge.erase(surrounded)
        self.make_outside_edge()

    def make_outside_edge(self) -> None:
        self.outside_edge = TileRegion()
        for tile in self.inner_edge:
            for n in tile.neighbors(self.diagonal_growth):
                if n not in self.inner_area:
                    self.outside_edge.insert(n)

    def remove_edge_from_inner_area(self) -> None:
        self.inner_area.erase(self.inner_edge)

    # --- доводка ---

    def refine_edge(self, task: RefineTask, allowed_area: TileRegion, index: int) -> bool:
        """
        Доводит край сегмента с номером index.

        RemoveHollows: забираем внешние тайлы с >=3 ортогональными соседями внутри.
        RemoveSpikes: выкидываем краевые тайлы с <=1 соседом внутри.
        Expand: забираем весь разрешённый внешний край.
        Тайлы, уже занятые другим сегментом, не трогаем.
        """
        def _free_for_us(tile) -> bool:
            if tile not in allowed_area:
                return False
            return not (tile.segment_index > 0 and tile.segment_index != index)

        if task is RefineTask.RemoveHollows:
            additional = [
                t for t in self.outside_edge
                if _free_for_us(t) and _orthogonal_inside(t, self.inner_area) >= 3
            ]
            for t in additional:
                t.segment_index = index
            self.inner_area.update(additional)
        elif task is RefineTask.RemoveSpikes:
            removal = [t for t in self.inner_edge if _orthogonal_inside(t, self.inner_area) <= 1]
            for t in removal:
                t.segment_index = 0
            self.inner_area.erase(removal)
        elif task is RefineTask.Expand:
            additional = [t for t in self.outside_edge if _free_for_us(t)]
            for t in additional:
                t.segment_index = index
            self.inner_area.update(additional)

        self.make_edge_from_inner_area()
        return True

    def get_bottom_edge(self) -> TileRegion:
        """Краевые тайлы, под которыми (B/BL/BR) меньше двух тайлов области."""
        return TileRegion(
            t for t in self.inner_edge
            if (t.b in self.inner_area) + (t.br in self.inner_area) + (t.bl in self.inner_area) < 2
        )

    # --- разбиение ---

    def flood_fill_diagonal_by_inner_edge(self, start) -> "TileArea":
        segments = split_by_flood_fill(self.inner_edge, diagonal=True, hint=start)
        if not segments:
            return TileArea()
        return TileArea.from_region(segments[0])

    def split_by_flood_fill(self, diagonal: bool = False, hint=None) -> List["TileArea"]:
        return [
            TileArea.from_region(r, self.diagonal_growth)
            for r in split_by_flood_fill(self.inner_area, diagonal, hint)
        ]

    def split_by_max_area(self, max_area: int, repulse: bool = False,
                          rng: Optional[RandomSource] = None) -> List["TileArea"]:
        parts = segment_zone(self.inner_area, target_max_area=max_area, repulse=repulse, rng=rng)
        return [TileArea.from_region(r, self.diagonal_growth) for r in parts]

    def split_by_k(self, k: int, repulse: bool = False,
                   rng: Optional[RandomSource] = None) -> List["TileArea"]:
        parts = segment_zone(self.inner_area, target_k=k, repulse=repulse, rng=rng)
        return [TileArea.from_region(r, self.diagonal_growth) for r in parts]

    def centroid(self, ensure_in_bounds: bool = True):
        return make_centroid(self.inner_area, ensure_in_bounds)

    @staticmethod
    def inner_border_net(areas: Sequence["TileArea"]) -> "TileArea":
        """Краевые тайлы области i, лежащие на внешнем крае любой последующей области j."""
        result = TileArea()
        for i, area_x in enumerate(areas):
            for area_y in areas[i + 1:]:
                for tile in area_x.inner_edge:
                    if tile in area_y.outside_edge:
                        result.inner_area.insert(tile)
        return result
