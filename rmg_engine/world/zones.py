# ==============================================================================
# Файл: rmg_engine/world/zones.py
# Назначение: Разбиение уровня карты на зоны.
#   1) поле "расстояний в радиусах" (numba) -> первичная разметка с буфером;
#   2) каждая зона перечитывает себя от семени (связность);
#   3) проходы добора дефицита площади (20% / 10% / 0%);
#   4) добивка оставшихся ничьих тайлов.
# ==============================================================================
from __future__ import annotations
import logging
import math
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence, Set

import numpy as np
from numba import njit

from ..core import constants as const
from ..core.errors import (
    ConfigurationError,
    EmptyZoneError,
    NonPositiveZoneWeightError,
    TooFewZonesError,
    ZeroTotalWeightError,
)
from ..core.types import Pos, RandomSource, ZoneSpec
from .tile_area import TileArea
from .tile_grid import Tile, TileGrid
from .tile_region import TileRegion, pos_distance

logger = logging.getLogger(__name__)


# ==============================================================================
# --- БЛОК 1: ЯДРО NUMBA ---
# ==============================================================================

@njit(cache=True)
def _assign_by_distance_kernel(width, height, seed_x, seed_y, radius, scale, threshold):
    """
    Для каждой клетки находит две зоны с наименьшим distance*scale/radius.
    Если по "честному" расстоянию лидер выигрывает меньше чем на threshold,
    клетка остаётся ничьей (-1).
    """
    n = seed_x.shape[0]
    out = np.full((height, width), -1, dtype=np.int32)
    dist = np.zeros(n, dtype=np.int64)
    for y in range(height):
        for x in range(width):
            first = -1
            second = -1
            first_dbr = 0
            second_dbr = 0
            for i in range(n):
                dx = x - seed_x[i]
                dy = y - seed_y[i]
                d = np.int64(int(math.sqrt(dx * dx + dy * dy)))
                dist[i] = d
                dbr = d * scale // radius[i]
                if first == -1 or dbr < first_dbr:
                    second = first
                    second_dbr = first_dbr
                    first = i
                    first_dbr = dbr
                elif second == -1 or dbr < second_dbr:
                    second = i
                    second_dbr = dbr

            r1 = radius[first]
            r2 = radius[second]
            total_in_radiuses = (dist[first] + dist[second]) * 100 // (r1 + r2)
            diff = total_in_radiuses * r1 // 100 - dist[first]
            if diff < threshold:
                continue
            out[y, x] = first
    return out


# ==============================================================================
# --- БЛОК 2: ЗОНА ---
# ==============================================================================

class TileZone:
    """Рабочее состояние одной зоны во время разбиения."""

    def __init__(self, index: int, spec: ZoneSpec, start_tile: Tile, relative_area: int):
        self.index = index
        self.id = spec.id
        self.spec = spec
        self.start_tile = start_tile
        self.relative_area = relative_area
        self.absolute_area = 0
        self.radius = 1
        self.area = TileArea()

    def __repr__(self) -> str:
        return f"TileZone({self.id!r}, index={self.index}, placed={self.placed_area}/{self.absolute_area})"

    @property
    def placed_area(self) -> int:
        return len(self.area.inner_area)

    @property
    def deficit(self) -> int:
        return self.absolute_area - self.placed_area

    def read_from_map(self) -> None:
        """Перечитать область: BFS от семени по тайлам с меткой этой зоны."""
        area = [self.start_tile]
        seen = {self.start_tile}
        frontier = [self.start_tile]
        while frontier:
            next_frontier = []
            for tile in frontier:
                for n in tile.neighbors4:
                    if n in seen or n.zone_index != self.index:
                        continue
                    seen.add(n)
                    area.append(n)
                    next_frontier.append(n)
            frontier = next_frontier
        self.area.inner_area = TileRegion(area)
        self.area.make_edge_from_inner_area()

    def write_to_map(self) -> None:
        for tile in self.area.inner_area:
            tile.zone_index = self.index

    def grow_once(self, guard: Optional[_ConsumeGuard] = None,
                  cap: Optional[int] = None) -> int:
        """
        Прирастить одно кольцо. С cap берём не больше cap тайлов: сначала
        ничьи, потом ближайшие к семени. Чужие тайлы берём только при
        переданном guard и только с его разрешения.
        """
        candidates = []
        for tile in self.area.outside_edge:
            if tile.zone_index in (const.UNASSIGNED_ZONE, self.index):
                candidates.append((0, tile))
            elif guard is not None and guard.may_consider(tile, self.index):
                candidates.append((1, tile))
        if not candidates:
            return 0

        if cap is not None:
            seed = self.start_tile.pos
            candidates.sort(key=lambda c: (c[0], pos_distance(c[1].pos, seed, 100), c[1].index))

        taken = []
        for priority, tile in candidates:
            if cap is not None and len(taken) >= cap:
                break
            # связность жертвы проверяется по текущим меткам, тайл за тайлом
            if priority == 1 and not guard.can_take(tile):
                continue
            if guard is not None:
                guard.moved(tile, self.index)
            tile.zone_index = self.index
            taken.append(tile)
        if not taken:
            return 0
        self.area.inner_area.update(taken)
        self.area.make_edge_from_inner_area()
        return len(taken)

    def fill_deficit(self, threshold_percent: int, guard: Optional[_ConsumeGuard] = None) -> None:
        allowed = self.absolute_area * threshold_percent // 100
        while self.deficit > allowed:
            if not self.grow_once(guard, cap=self.deficit):
                break


class _ConsumeGuard:
    """
    Правила "поедания" соседей в проходах добора дефицита.

    Чужой тайл можно забрать, только если:
      - это не семя чужой зоны и не его ортогональный сосед;
      - у зоны-жертвы площадь сейчас больше её цели;
      - жертва без этого тайла остаётся связной от своего семени.
    """

    def __init__(self, zones: Sequence[TileZone], level: Iterable[Tile]):
        self.zones = zones
        self.counts = Counter(tile.zone_index for tile in level)
        self.near_seed: Dict[Tile, Set[int]] = {}
        for zone in zones:
            for tile in (zone.start_tile,) + tuple(zone.start_tile.neighbors4):
                self.near_seed.setdefault(tile, set()).add(zone.index)

    def may_consider(self, tile: Tile, grower_index: int) -> bool:
        if self.near_seed.get(tile, set()) - {grower_index}:
            return False
        victim = self.zones[tile.zone_index]
        return self.counts[victim.index] > victim.absolute_area

    def can_take(self, tile: Tile) -> bool:
        victim = self.zones[tile.zone_index]
        if self.counts[victim.index] <= victim.absolute_area:
            return False
        return _stays_connected(victim, tile)

    def moved(self, tile: Tile, new_index: int) -> None:
        self.counts[tile.zone_index] -= 1
        self.counts[new_index] += 1


def _stays_connected(zone: TileZone, removed: Tile) -> bool:
    """Соседи removed из той же зоны достижимы от семени в обход removed."""
    targets = {n for n in removed.neighbors4 if n.zone_index == zone.index}
    targets.discard(zone.start_tile)
    seen = {zone.start_tile, removed}
    frontier = [zone.start_tile]
    while frontier and targets:
        next_frontier = []
        for tile in frontier:
            for n in tile.neighbors4:
                if n in seen or n.zone_index != zone.index:
                    continue
                seen.add(n)
                targets.discard(n)
                next_frontier.append(n)
        frontier = next_frontier
    return not targets



# ==============================================================================
# --- БЛОК 3: РЕЗУЛЬТАТ РАЗБИЕНИЯ ---
# ==============================================================================

class ZoneAssignment:
    """
    Итог разбиения. Источник истины - метки zone_index на тайлах уровня z;
    области зон (TileZone.area) - производный кэш, обновляется через refresh().
    """

    def __init__(self, grid: TileGrid, zones: List[TileZone], z: int = 0):
        self.grid = grid
        self.zones = zones
        self.z = z
        self._by_id: Dict[str, TileZone] = {zone.id: zone for zone in zones}

    def zone(self, zone_id: str) -> TileZone:
        return self._by_id[zone_id]

    def zone_by_index(self, index: int) -> TileZone:
        return self.zones[index]

    @property
    def zone_ids(self) -> List[str]:
        return [zone.id for zone in self.zones]

    def tiles(self) -> List[Tile]:
        return self.grid.level_tiles(self.z)

    def region(self, zone_id: str) -> TileRegion:
        index = self._by_id[zone_id].index
        return TileRegion(t for t in self.tiles() if t.zone_index == index)

    def regions(self) -> Dict[str, TileRegion]:
        buckets: Dict[int, List[Tile]] = {zone.index: [] for zone in self.zones}
        for tile in self.tiles():
            if tile.zone_index in buckets:
                buckets[tile.zone_index].append(tile)
        return {zone.id: TileRegion(buckets[zone.index]) for zone in self.zones}

    def unassigned(self) -> TileRegion:
        return TileRegion(t for t in self.tiles() if t.zone_index == const.UNASSIGNED_ZONE)

    def areas(self) -> Dict[str, int]:
        return {zone_id: len(region) for zone_id, region in self.regions().items()}

    def zone_array(self) -> np.ndarray:
        return self.grid.zone_array(self.z)

    def refresh(self, zone_ids: Optional[Iterable[str]] = None) -> None:
        """Перестроить кэш областей для перечисленных зон (None - для всех)."""
        ids = self.zone_ids if zone_ids is None else list(zone_ids)
        if not ids:
            return
        regions = self.regions()
        for zone_id in ids:
            self._by_id[zone_id].area = TileArea.from_region(regions[zone_id])


# ==============================================================================
# --- БЛОК 4: РАЗБИЕНИЕ ---
# ==============================================================================

def _validate_specs(zone_specs: Sequence[ZoneSpec]) -> None:
    if len(zone_specs) < 2:
        raise TooFewZonesError("need at least two zones")
    ids = set()
    for spec in zone_specs:
        if spec.relative_area <= 0:
            raise NonPositiveZoneWeightError(f"Zone: {spec.id} has nonpositive relative size")
        if spec.id in ids:
            raise ConfigurationError(f"Duplicate zone id: {spec.id}")
        ids.add(spec.id)
    if sum(spec.relative_area for spec in zone_specs) == 0:
        raise ZeroTotalWeightError("Total relative area can't be zero")


def _disperse(value: int, dispersion: int, rng: RandomSource) -> int:
    if dispersion <= 0:
        return value
    return value + rng.next_int(2 * dispersion) - dispersion


def _make_zones(grid: TileGrid, zone_specs: Sequence[ZoneSpec], rng: RandomSource, z: int) -> List[TileZone]:
    zones: List[TileZone] = []
    seeds: Dict[Tile, str] = {}
    for index, spec in enumerate(zone_specs):
        center = Pos(
            _disperse(spec.center.x, spec.center_dispersion.x, rng),
            _disperse(spec.center.y, spec.center_dispersion.y, rng),
            z,
        )
        if spec.center_dispersion != Pos(0, 0):
            center = grid.clamp(center)
        start = grid.get(center.x, center.y, z)
        if start is None:
            raise ConfigurationError(f"Zone: {spec.id} center {tuple(spec.center)} is outside of the map")
        if start in seeds:
            raise ConfigurationError(f"Zones {seeds[start]} and {spec.id} share the center tile {tuple(center)}")
        seeds[start] = spec.id

        relative = max(1, _disperse(spec.relative_area, spec.relative_area_dispersion, rng))
        zones.append(TileZone(index, spec, start, relative))
    return zones


def _fill_deficit_pass(zones: List[TileZone], level: List[Tile], threshold_percent: int,
                       consume: bool) -> None:
    guard = _ConsumeGuard(zones, level) if consume else None
    order = sorted(zones, key=lambda zone: zone.deficit, reverse=True)
    for zone in order:
        zone.fill_deficit(threshold_percent, guard)
        if consume:
            for other in zones:
                other.read_from_map()


def _fill_the_rest(zones: List[TileZone], level: List[Tile]) -> None:
    while True:
        grown = [zone.grow_once() for zone in zones]
        if not any(grown):
            break

    # Карманы ничьих тайлов, отрезанные от основных тел зон: отдаём соседу.
    frontier = [t for t in level if t.zone_index != const.UNASSIGNED_ZONE]
    while frontier:
        next_frontier = []
        for tile in frontier:
            for n in tile.neighbors4:
                if n.zone_index == const.UNASSIGNED_ZONE:
                    n.zone_index = tile.zone_index
                    next_frontier.append(n)
        frontier = next_frontier


def _log_deficits(zones: List[TileZone], label: str) -> None:
    for zone in zones:
        logger.debug("%szone [%s] areaDeficit=%d", label, zone.id, zone.deficit)


def partition_zones(grid: TileGrid, zone_specs: Sequence[ZoneSpec], rng: RandomSource,
                    z: int = 0, tie_threshold: int = const.ZONE_BORDER_TIE_THRESHOLD,
                    deficit_passes=const.DEFICIT_PASSES) -> ZoneAssignment:
    """
    Делит уровень z сетки между зонами.

    Ошибки конфигурации (мало зон, неположительный вес, нулевая сумма весов)
    выбрасываются до любой работы с тайлами. Если зона в итоге потеряла
    своё семя, выбрасывается EmptyZoneError.
    """
    _validate_specs(zone_specs)
    if not 0 <= z < grid.depth:
        raise ConfigurationError(f"Level {z} is outside of the map")

    zones = _make_zones(grid, zone_specs, rng, z)
    total_relative = sum(zone.relative_area for zone in zones)
    area = grid.width * grid.height

    for zone in zones:
        zone.absolute_area = zone.relative_area * area // total_relative
        zone.radius = max(1, int(math.sqrt(zone.absolute_area) / math.pi))
        logger.info("zone [%s] area=%d, radius=%d", zone.id, zone.absolute_area, zone.radius)

    # --- 1. Поле расстояний ---
    grid.reset_zones(z)
    tags = _assign_by_distance_kernel(
        grid.width, grid.height,
        np.array([zone.start_tile.x for zone in zones], dtype=np.int64),
        np.array([zone.start_tile.y for zone in zones], dtype=np.int64),
        np.array([zone.radius for zone in zones], dtype=np.int64),
        const.DISTANCE_BY_RADIUS_SCALE,
        tie_threshold,
    )
    level = grid.level_tiles(z)
    flat = tags.ravel()
    for tile in level:
        tile.zone_index = int(flat[tile.x + tile.y * grid.width])

    # --- 2. Связность от семени ---
    for zone in zones:
        zone.read_from_map()
        logger.debug("zone [%s] areaDeficit=%d", zone.id, zone.deficit)
    grid.reset_zones(z)
    for zone in zones:
        zone.write_to_map()

    # --- 3. Добор дефицита ---
    _log_deficits(zones, "(before optimize) ")
    for threshold, consume in deficit_passes:
        _fill_deficit_pass(zones, level, threshold, consume)
    _log_deficits(zones, "(after optimize) ")

    # --- 4. Добивка ---
    _fill_the_rest(zones, level)
    for zone in zones:
        zone.read_from_map()
        if zone.start_tile.zone_index != zone.index:
            raise EmptyZoneError(f"Zone: {zone.id} lost its center tile {tuple(zone.start_tile.pos)}")

    assignment = ZoneAssignment(grid, zones, z)
    logger.info("Zones partitioned: %s", assignment.areas())
    return assignment
