# ==============================================================================
# Файл: rmg_engine/world/distributor.py
# Назначение: Расстановка объектов внутри зоны по сегментам.
#   Init       - сегменты + тепловая карта от уже занятых тайлов;
#   Distribute - объект за объектом: лучший сегмент, самая "холодная"
#                (дальняя от занятого) точка, проверка коллизий, не
#                больше одного корректирующего сдвига, фиксация;
#   Finalize   - всё, что не встало, записывается в failed_ids.
# ==============================================================================
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
from scipy.ndimage import distance_transform_edt

from ..core import constants as const
from ..core.types import RandomSource
from .objects import PlacedObject, ZoneObject, estimate_occupied
from .tile_grid import Tile
from .tile_region import CollisionResult, TileRegion, collision_shift, make_centroid

logger = logging.getLogger(__name__)


class DistributorStage(Enum):
    Init = "init"
    Distribute = "distribute"
    Finalize = "finalize"


@dataclass
class HeatDataItem:
    centroid: Optional[Tile]
    free: TileRegion
    heat: int


@dataclass
class Guard:
    value: int
    tile: Tile
    joinable: bool = False
    object_id: str = ""


class ZoneSegment:
    """Кусок зоны, в который ставятся объекты."""

    def __init__(self, region: TileRegion, segment_index: int = 0, zone_id: str = "",
                 blocked: Optional[TileRegion] = None):
        self.zone_id = zone_id
        self.segment_index = segment_index
        self.original_area = region.copy()
        self.original_centroid = make_centroid(region)
        self.blocked = blocked.copy() if blocked is not None else TileRegion()
        self.free_area = TileRegion()
        self.heat_map: Dict[int, HeatDataItem] = {}
        self.distances: Dict[Tile, int] = {}
        self.placed: List[PlacedObject] = []
        self.recalc_free()
        self.recalc_heat()

    def __repr__(self) -> str:
        return (f"ZoneSegment(zone={self.zone_id!r}, index={self.segment_index}, "
                f"free={len(self.free_area)}/{len(self.original_area)}, max_heat={self.max_heat})")

    def free_percent(self) -> int:
        if not self.original_area:
            return 0
        return len(self.free_area) * 100 // len(self.original_area)

    @property
    def max_heat(self) -> int:
        return max(self.heat_map) if self.heat_map else 0

    def heat_levels(self) -> List[int]:
        """Уровни тепла от самого дальнего от занятого к ближнему."""
        return sorted(self.heat_map, reverse=True)

    def find_best_heat_data(self, heat: int) -> Optional[HeatDataItem]:
        """Ближайший уровень, не превышающий heat."""
        levels = [level for level in self.heat_map if level <= heat]
        if not levels:
            return None
        return self.heat_map[max(levels)]

    def recalc_free(self, exclude: Optional[PlacedObject] = None) -> None:
        free = self.original_area - self.blocked
        for placed in self.placed:
            if placed is not exclude:
                free.erase(placed.all_area)
        self.free_area = free

    def recalc_heat(self) -> None:
        """
        Уровень тепла тайла = floor(евклидово расстояние до ближайшего
        несвободного тайла). Всё вне сегмента считается несвободным.
        """
        self.heat_map = {}
        self.distances = {}
        if not self.free_area:
            return

        top_left, bottom_right = self.original_area.bounding_box()
        width = bottom_right.x - top_left.x + 1
        height = bottom_right.y - top_left.y + 1

        # рамка в 1 клетку = "занято" по краю
        mask = np.zeros((height + 2, width + 2), dtype=bool)
        coords = self.free_area.coords()
        mask[coords[:, 1] - top_left.y + 1, coords[:, 0] - top_left.x + 1] = True
        dist = distance_transform_edt(mask)

        levels = np.minimum(
            np.floor(dist[coords[:, 1] - top_left.y + 1, coords[:, 0] - top_left.x + 1]),
            const.MAX_HEAT_LEVEL,
        ).astype(np.int64)

        buckets: Dict[int, List[Tile]] = {}
        for tile, level in zip(self.free_area, levels):
            level = int(level)
            self.distances[tile] = level
            buckets.setdefault(level, []).append(tile)

        for level, tiles in buckets.items():
            region = TileRegion(tiles)
            self.heat_map[level] = HeatDataItem(centroid=make_centroid(region), free=region, heat=level)

    def commit_placement(self, placed: PlacedObject) -> None:
        placed.segment_index = self.segment_index
        self.placed.append(placed)
        self.free_area.erase(placed.all_area)
        self.recalc_heat()


@dataclass
class DistributionResult:
    zone_id: str = ""
    stage: DistributorStage = DistributorStage.Init
    max_heat: int = 0
    all_objects: List[PlacedObject] = field(default_factory=list)
    segments: List[ZoneSegment] = field(default_factory=list)
    guards: List[Guard] = field(default_factory=list)
    need_block: TileRegion = field(default_factory=TileRegion)
    all_original_ids: List[str] = field(default_factory=list)
    placed_ids: List[str] = field(default_factory=list)
    failed_ids: List[str] = field(default_factory=list)

    @property
    def placed_objects(self) -> List[PlacedObject]:
        return [p for p in self.all_objects if p.valid]

    @property
    def success(self) -> bool:
        return not self.failed_ids


class ZoneObjectDistributor:
    def __init__(self, rng: RandomSource, zone_id: str = ""):
        self.rng = rng
        self.zone_id = zone_id

    # --------------------------------------------------------------------------
    # Init
    # --------------------------------------------------------------------------
    def make_initial_distribution(self, segments: Sequence[TileRegion], objects: Sequence[ZoneObject],
                                  occupied: Optional[TileRegion] = None) -> DistributionResult:
        result = DistributionResult(zone_id=self.zone_id)
        for i, region in enumerate(segments):
            if not region:
                continue
            result.segments.append(ZoneSegment(region, segment_index=i + 1,
                                               zone_id=self.zone_id, blocked=occupied))
        result.max_heat = max((seg.max_heat for seg in result.segments), default=0)

        # охраняемые вперёд, потом крупные, при равенстве - исходный порядок
        ordered = sorted(
            enumerate(objects),
            key=lambda item: (not item[1].guarded, -item[1].footprint.estimated_area, item[0]),
        )
        result.all_objects = [PlacedObject(obj) for _, obj in ordered]
        result.all_original_ids = [obj.id for obj in objects]
        logger.debug("[%s] init: %d segment(s), %d object(s), max heat %d",
                     self.zone_id, len(result.segments), len(objects), result.max_heat)
        return result

    # --------------------------------------------------------------------------
    # Distribute + Finalize
    # --------------------------------------------------------------------------
    def do_place_distribution(self, result: DistributionResult) -> DistributionResult:
        result.stage = DistributorStage.Distribute
        for placed in result.all_objects:
            candidates = self._order_segments(result.segments)
            if self._place_into_segments(result, placed, candidates):
                result.placed_ids.append(placed.id)
            else:
                placed.valid = False
                placed.anchor = None
                result.failed_ids.append(placed.id)
                logger.warning("[%s] failed to place object %s (%s)",
                               self.zone_id, placed.id, placed.object.kind.name)

        result.stage = DistributorStage.Finalize
        logger.info("[%s] placed %d/%d object(s)", self.zone_id,
                    len(result.placed_ids), len(result.all_original_ids))
        return result

    def _order_segments(self, segments: Iterable[ZoneSegment]) -> List[ZoneSegment]:
        keyed = []
        for seg in segments:
            if not seg.free_area:
                continue
            tie = self.rng.next_int(const.SEGMENT_TIE_BREAK_RANGE)
            keyed.append(((-seg.max_heat, -seg.free_percent(), tie, seg.segment_index), seg))
        keyed.sort(key=lambda item: item[0])
        return [seg for _, seg in keyed]

    def _place_into_segments(self, result: DistributionResult, placed: PlacedObject,
                             candidates: List[ZoneSegment]) -> bool:
        for seg in candidates:
            for level in seg.heat_levels():
                anchor = seg.heat_map[level].centroid
                if anchor is None:
                    continue
                if self._try_anchor(placed, seg, anchor):
                    placed.placed_heat = level
                    self._commit(result, placed, seg)
                    return True
        return False

    def _try_anchor(self, placed: PlacedObject, seg: ZoneSegment, anchor: Tile) -> bool:
        placed.shifted = False
        if not estimate_occupied(placed, anchor):
            return False

        check = collision_shift(placed.occupied_with_danger, seg.free_area, invert_obstacle=True)
        if check.result is CollisionResult.NoCollision:
            return True
        if check.result is not CollisionResult.HasShift:
            return False

        shifted = anchor.grid.get(anchor.pos.x + check.shift.x, anchor.pos.y + check.shift.y, anchor.pos.z)
        if shifted is None or not estimate_occupied(placed, shifted):
            return False
        check = collision_shift(placed.occupied_with_danger, seg.free_area, invert_obstacle=True)
        if check.result is CollisionResult.NoCollision:
            placed.shifted = True
            return True
        return False

    def _commit(self, result: DistributionResult, placed: PlacedObject, seg: ZoneSegment) -> None:
        seg.commit_placement(placed)
        # соседние сегменты тоже теряют то, что задела новая постройка
        for other in result.segments:
            if other is not seg and other.free_area & placed.all_area:
                other.free_area.erase(placed.all_area)
                other.recalc_heat()

        footprint = placed.object.footprint
        if footprint.guard > 0 and placed.guard_tile is not None:
            result.guards.append(Guard(
                value=footprint.guard,
                tile=placed.guard_tile,
                joinable=footprint.joinable,
                object_id=placed.id,
            ))
        result.need_block.update(placed.unpassable_area)
        logger.debug("[%s] placed %s at %s (segment %d, heat %d%s)",
                     self.zone_id, placed.id, tuple(placed.anchor.pos), seg.segment_index,
                     placed.placed_heat, ", shifted" if placed.shifted else "")


def distribute_objects(segments: Sequence[TileRegion], objects: Sequence[ZoneObject],
                       rng: RandomSource, zone_id: str = "",
                       occupied: Optional[TileRegion] = None) -> DistributionResult:
    """
    Расставляет объекты по сегментам одной зоны. Не бросает исключений из-за
    отдельных объектов: неудачи попадают в DistributionResult.failed_ids.
    """
    distributor = ZoneObjectDistributor(rng, zone_id)
    result = distributor.make_initial_distribution(segments, objects, occupied)
    return distributor.do_place_distribution(result)
