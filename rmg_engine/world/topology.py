# ==============================================================================
# Файл: rmg_engine/world/topology.py
# Назначение: Починка топологии разбиения: убираем одиночные шипы, тонкие
#             перемычки и эксклавы, пока не получим неподвижную точку.
#             Работает прямо по меткам zone_index на тайлах.
# ==============================================================================
from __future__ import annotations
import logging
from collections import Counter
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Tuple

from ..core import constants as const
from ..core.errors import EmptyZoneError, OrphanTilesError, UnresolvableExclavesError
from .tile_grid import Tile
from .tile_region import outside_edge, split_by_flood_fill
from .zones import ZoneAssignment

logger = logging.getLogger(__name__)

# (tile, old_zone_index, new_zone_index)
_Change = Tuple[Tile, int, int]


@dataclass(frozen=True)
class RepairedAssignment:
    assignment: ZoneAssignment
    iterations: int
    reassigned: int
    affected_zones: FrozenSet[str]


def _check_orphans(assignment: ZoneAssignment) -> None:
    orphans = assignment.unassigned()
    if orphans:
        raise OrphanTilesError(f"All tiles must be zoned! {len(orphans)} orphan(s), first at {tuple(orphans.first().pos)}")


def _check_zones(assignment: ZoneAssignment) -> None:
    """Каждая зона непуста и держит своё семя."""
    regions = assignment.regions()
    for zone in assignment.zones:
        region = regions[zone.id]
        if not region:
            raise EmptyZoneError(f"Zone: {zone.id} has no tiles left after repair")
        if zone.start_tile not in region:
            raise EmptyZoneError(f"Zone: {zone.id} lost its center tile {tuple(zone.start_tile.pos)}")


def _fixed_zone(tile: Tile) -> Optional[int]:
    """Новая зона для тайла по таблице правил или None, если тайл в порядке."""
    zone = tile.zone_index

    # Соседи за краем карты считаются "своими"
    def same(n: Optional[Tile]) -> bool:
        return n is None or n.zone_index == zone

    e_t, e_l, e_r, e_b = same(tile.t), same(tile.l), same(tile.r), same(tile.b)
    matches = e_t + e_l + e_r + e_b

    if matches >= 3:
        return None
    if matches == 2:
        if e_t and e_b:
            return tile.l.zone_index
        if e_l and e_r:
            return tile.t.zone_index
        return None  # угол
    if matches == 1:
        # шип: берём зону соседа напротив единственного совпадения
        if e_t:
            return tile.b.zone_index
        if e_l:
            return tile.r.zone_index
        if e_r:
            return tile.l.zone_index
        return tile.t.zone_index

    # Полностью изолированный тайл
    z_t, z_l, z_r, z_b = tile.t.zone_index, tile.l.zone_index, tile.r.zone_index, tile.b.zone_index
    if z_t == z_l:
        return z_t
    if z_t == z_r:
        return z_t
    if z_b == z_r:
        return z_b
    if z_b == z_l:
        return z_b
    return z_t


def _local_pass(assignment: ZoneAssignment, changes: List[_Change]) -> int:
    fixed = 0
    for tile in assignment.tiles():
        new_zone = _fixed_zone(tile)
        if new_zone is None or new_zone == tile.zone_index:
            continue
        changes.append((tile, tile.zone_index, new_zone))
        tile.zone_index = new_zone
        fixed += 1
    return fixed


def _absorb_exclaves(assignment: ZoneAssignment, changes: List[_Change]) -> int:
    """
    Каждая зона оставляет себе компоненту с семенем (или самую большую),
    остальные компоненты уходят зоне, которой принадлежит большая часть их
    внешнего края.
    """
    fixed = 0
    for zone in assignment.zones:
        components = split_by_flood_fill(assignment.region(zone.id))
        if len(components) <= 1:
            continue

        main = next((c for c in components if zone.start_tile in c), None)
        if main is None:
            main = max(components, key=len)

        for component in components:
            if component is main:
                continue
            owners = Counter(t.zone_index for t in outside_edge(component))
            owners.pop(zone.index, None)
            if not owners:
                continue
            target = min(owners.items(), key=lambda kv: (-kv[1], kv[0]))[0]
            logger.debug("exclave of zone [%s] (%d tiles) -> zone [%s]",
                         zone.id, len(component), assignment.zone_by_index(target).id)
            for tile in component:
                changes.append((tile, tile.zone_index, target))
                tile.zone_index = target
            fixed += len(component)
    return fixed


def repair_topology(assignment: ZoneAssignment,
                    max_iterations: int = const.REPAIR_MAX_ITERATIONS) -> RepairedAssignment:
    """
    Доводит разбиение до неподвижной точки.

    Бросает OrphanTilesError, если есть неразмеченные тайлы, и
    UnresolvableExclavesError, если за max_iterations проходов не сошлось,
    EmptyZoneError, если какая-то зона опустела или лишилась семени.
    Кэш областей зон не трогает: вызывающий сам делает
    assignment.refresh(result.affected_zones).
    """
    _check_orphans(assignment)

    changes: List[_Change] = []
    _local_pass(assignment, changes)

    iterations = 0
    for i in range(max_iterations + 1):
        iterations = i + 1
        fixed = _local_pass(assignment, changes)
        if not fixed:
            fixed = _absorb_exclaves(assignment, changes)
        if not fixed:
            logger.info("exclaves fixed on [%d] iteration", i)
            break
        if i == max_iterations:
            raise UnresolvableExclavesError(f"failed to fix all exclaves after [{i}] iterations!")

    _check_orphans(assignment)
    _check_zones(assignment)

    affected = set()
    for _, old, new in changes:
        affected.add(assignment.zone_by_index(old).id)
        affected.add(assignment.zone_by_index(new).id)

    logger.info("Topology repaired: %d reassignment(s), affected zones: %s",
                len(changes), sorted(affected))
    return RepairedAssignment(
        assignment=assignment,
        iterations=iterations,
        reassigned=len(changes),
        affected_zones=frozenset(affected),
    )
