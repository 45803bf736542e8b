# ==============================================================================
# Файл: rmg_engine/world/template_processor.py
# Назначение: Тонкий последовательный раннер стадий генерации по пресету.
#             Своей алгоритмики не содержит: только порядок вызовов,
#             сиды стадий, тайминги и сбор отчёта.
# ==============================================================================
from __future__ import annotations
import logging
import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional, Union

from ..core.preset.errors import ValidationError
from ..core.preset.model import RmgPreset
from ..core.rules import RulesDatabase, get_possible_count, pick_guard_unit, scale_guard
from ..core.types import Pos, RandomSource, ZoneSpec
from ..core.utils.rng import RNG, init_stage_seeds
from .analytics.zone_analysis import ZoneAnalysis
from .distributor import DistributionResult, distribute_objects
from .kmeans import segment_zone
from .objects import (
    PAYLOAD_TYPES,
    GuardPosition,
    MonsterPayload,
    ObjectFootprint,
    ObjectKind,
    PlayerObjectPayload,
    RewardPayload,
    StructurePayload,
    ZoneObject,
    total_score,
)
from .tile_grid import Tile, TileGrid
from .tile_region import TileRegion
from .topology import RepairedAssignment, repair_topology
from .zones import ZoneAssignment, partition_zones

logger = logging.getLogger(__name__)


class Stage(IntEnum):
    Invalid = 0
    ZoneCenterPlacement = 1
    ZoneTilesInitial = 2
    TopologyRepair = 3
    CellSegmentation = 4
    Rewards = 5
    Guards = 6


@dataclass
class GuardStack:
    zone_id: str
    object_id: str
    tile: Tile
    value: int
    unit_id: Optional[str] = None
    count: int = 0
    joinable: bool = False


@dataclass
class GenerationReport:
    seed: int
    stages_done: List[Stage] = field(default_factory=list)
    timings_ms: Dict[str, float] = field(default_factory=dict)
    zone_specs: List[ZoneSpec] = field(default_factory=list)
    assignment: Optional[ZoneAssignment] = None
    repaired: Optional[RepairedAssignment] = None
    segments: Dict[str, List[TileRegion]] = field(default_factory=dict)
    distributions: Dict[str, DistributionResult] = field(default_factory=dict)
    guards: List[GuardStack] = field(default_factory=list)
    scores: Dict[str, int] = field(default_factory=dict)
    analysis: Dict[str, Any] = field(default_factory=dict)

    @property
    def last_stage(self) -> Stage:
        return self.stages_done[-1] if self.stages_done else Stage.Invalid


def _build_payload(kind: ObjectKind, spec: Dict[str, Any]):
    payload_type = PAYLOAD_TYPES[kind]
    if payload_type is RewardPayload:
        return RewardPayload(item_id=spec.get("item", spec["id"]), amount=int(spec.get("amount", 1)))
    if payload_type is MonsterPayload:
        return MonsterPayload(unit_id=spec.get("unit", spec["id"]), count=int(spec.get("amount", 1)))
    if payload_type is StructurePayload:
        return StructurePayload(def_id=spec.get("def", spec["id"]), faction_id=spec.get("faction"))
    return PlayerObjectPayload(def_id=spec.get("def", spec["id"]), owner=spec.get("owner"))


def build_zone_objects(specs: List[Dict[str, Any]]) -> List[ZoneObject]:
    """Разворачивает описания объектов зоны из пресета (с учётом count)."""
    objects = []
    for spec in specs:
        try:
            kind = ObjectKind(spec["kind"])
        except ValueError:
            raise ValidationError(f"Unknown object kind '{spec['kind']}' for object '{spec['id']}'") from None
        w, h = spec.get("size", (1, 1))
        footprint = ObjectFootprint(
            occupied=tuple(Pos(x, y) for y in range(h) for x in range(w)),
            guard=int(spec.get("guard", 0)),
            guard_position=GuardPosition[spec.get("guard_position", "B")],
            joinable=bool(spec.get("joinable", False)),
            unpassable_reward=bool(spec.get("unpassable", True)),
        )
        payload = _build_payload(kind, spec)
        for n in range(int(spec.get("count", 1))):
            objects.append(ZoneObject(
                id=f"{spec['id']}_{n}",
                kind=kind,
                footprint=footprint,
                score=dict(spec.get("score", {})),
                payload=payload,
            ))
    return objects


class TemplateProcessor:
    def __init__(self, preset: RmgPreset, grid: Optional[TileGrid] = None,
                 rng: Optional[RandomSource] = None, rules: Optional[RulesDatabase] = None):
        self.preset = preset
        self.grid = grid if grid is not None else TileGrid(*preset.size)
        self.rules = rules

        # у каждой стадии свой поток случайности, если общий rng не задан
        if rng is not None:
            self._rngs = {name: rng for name in ("zones", "segmentation", "rewards", "guards")}
        else:
            self._rngs = {name: RNG(seed) for name, seed in init_stage_seeds(preset.seed).items()}

        self.report = GenerationReport(seed=preset.seed)
        self._handlers = {
            Stage.ZoneCenterPlacement: self._run_zone_center_placement,
            Stage.ZoneTilesInitial: self._run_zone_tiles_initial,
            Stage.TopologyRepair: self._run_topology_repair,
            Stage.CellSegmentation: self._run_cell_segmentation,
            Stage.Rewards: self._run_rewards,
            Stage.Guards: self._run_guards,
        }

    def run(self, stop_after: Union[Stage, str, None] = None) -> GenerationReport:
        if isinstance(stop_after, str):
            try:
                stop_after = Stage[stop_after]
            except KeyError:
                raise ValueError(f"Unknown stage '{stop_after}'") from None

        logger.info("--- RMG START: preset '%s', seed %d ---", self.preset.id, self.preset.seed)
        t_total = time.perf_counter()
        for stage, handler in self._handlers.items():
            t0 = time.perf_counter()
            handler()
            dt = (time.perf_counter() - t0) * 1000.0
            self.report.timings_ms[stage.name] = dt
            self.report.stages_done.append(stage)
            logger.info("Stage %s done in %.2f ms", stage.name, dt)
            if stop_after is not None and stage >= stop_after:
                break

        logger.info("--- RMG DONE in %.2f ms ---", (time.perf_counter() - t_total) * 1000.0)
        return self.report

    # --- стадии ---

    def _run_zone_center_placement(self) -> None:
        self.report.zone_specs = self.preset.zone_specs()
        for spec in self.report.zone_specs:
            logger.debug("zone [%s] center=%s relative=%d", spec.id, tuple(spec.center), spec.relative_area)

    def _run_zone_tiles_initial(self) -> None:
        part = self.preset.partition
        self.report.assignment = partition_zones(
            self.grid,
            self.report.zone_specs,
            self._rngs["zones"],
            z=int(part.get("level", 0)),
            tie_threshold=int(part["tie_threshold"]),
            deficit_passes=self.preset.deficit_passes,
        )

    def _run_topology_repair(self) -> None:
        assignment = self.report.assignment
        repaired = repair_topology(assignment, int(self.preset.repair["max_iterations"]))
        assignment.refresh(repaired.affected_zones)
        self.report.repaired = repaired

        analysis = ZoneAnalysis(assignment)
        self.report.analysis = analysis.run()
        analysis.log_report()

    def _run_cell_segmentation(self) -> None:
        seg_cfg = self.preset.segmentation
        rng = self._rngs["segmentation"] if seg_cfg.get("random_seeding", False) else None
        for zone in self.report.assignment.zones:
            parts = segment_zone(
                zone.area.inner_area,
                target_max_area=int(seg_cfg["max_area"]),
                repulse=bool(seg_cfg.get("repulse", False)),
                rng=rng,
            )
            for index, part in enumerate(parts, start=1):
                for tile in part:
                    tile.segment_index = index
            self.report.segments[zone.id] = parts
            logger.debug("zone [%s] split into %d segment(s): %s",
                         zone.id, len(parts), [len(p) for p in parts])

    def _run_rewards(self) -> None:
        if not self.preset.distribution.get("enabled", True):
            logger.info("Rewards distribution disabled by preset")
            return
        for zone in self.report.assignment.zones:
            objects = build_zone_objects(self.preset.zone_objects(zone.id))
            self.report.distributions[zone.id] = distribute_objects(
                self.report.segments.get(zone.id, []),
                objects,
                self._rngs["rewards"],
                zone_id=zone.id,
            )
            # суммарная ценность реально размещённых объектов зоны
            self.report.scores[zone.id] = sum(
                total_score(placed.object) for placed in self.report.distributions[zone.id].placed_objects
            )
        logger.info("Zone scores: %s", self.report.scores)

    def _run_guards(self) -> None:
        percent = int(self.preset.guards["multiply_percent"])
        specs = {spec.id: spec for spec in self.report.zone_specs}
        rng = self._rngs["guards"]
        for zone_id, distribution in self.report.distributions.items():
            spec = specs[zone_id]
            for guard in distribution.guards:
                value = scale_guard(guard.value, percent)
                if spec.guard_max > 0:
                    value = min(max(value, spec.guard_min), spec.guard_max)
                stack = GuardStack(zone_id=zone_id, object_id=guard.object_id, tile=guard.tile,
                                   value=value, joinable=guard.joinable)
                if self.rules is not None:
                    unit = pick_guard_unit(self.rules, value, rng)
                    if unit is not None:
                        stack.unit_id = unit.id
                        stack.count = get_possible_count(unit, value)
                self.report.guards.append(stack)
        logger.info("Guards placed: %d", len(self.report.guards))
