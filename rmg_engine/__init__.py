# ==============================================================================
# Файл: rmg_engine/__init__.py
# Назначение: Публичный API генератора: разбиение на зоны, починка
#             топологии, нарезка на сегменты и расстановка объектов.
# ==============================================================================
from __future__ import annotations

from .core.errors import (
    ConfigurationError,
    ConvergenceError,
    EmptyZoneError,
    NonPositiveZoneWeightError,
    OrphanTilesError,
    RmgError,
    TooFewZonesError,
    UnresolvableExclavesError,
    ZeroTotalWeightError,
)
from .core.types import Pos, ZoneSpec
from .core.utils.rng import RNG
from .world.distributor import DistributionResult, distribute_objects
from .world.kmeans import segment_zone
from .world.objects import GuardPosition, ObjectFootprint, ObjectKind, ZoneObject
from .world.tile_grid import Tile, TileGrid
from .world.tile_region import CollisionResult, TileRegion, collision_shift
from .world.topology import RepairedAssignment, repair_topology
from .world.zones import ZoneAssignment, partition_zones

__all__ = [
    "ConfigurationError",
    "ConvergenceError",
    "EmptyZoneError",
    "NonPositiveZoneWeightError",
    "OrphanTilesError",
    "RmgError",
    "TooFewZonesError",
    "UnresolvableExclavesError",
    "ZeroTotalWeightError",
    "Pos",
    "ZoneSpec",
    "RNG",
    "DistributionResult",
    "distribute_objects",
    "segment_zone",
    "GuardPosition",
    "ObjectFootprint",
    "ObjectKind",
    "ZoneObject",
    "Tile",
    "TileGrid",
    "CollisionResult",
    "TileRegion",
    "collision_shift",
    "RepairedAssignment",
    "repair_topology",
    "ZoneAssignment",
    "partition_zones",
]
