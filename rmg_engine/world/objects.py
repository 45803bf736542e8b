# ==============================================================================
# Файл: rmg_engine/world/objects.py
# Назначение: Объекты, которые расставляются по зоне.
#             ObjectKind + полезная нагрузка конкретного вида (payload),
#             общий для всех видов "отпечаток" на карте и запись о
#             размещении. Общее поведение - свободные функции.
# ==============================================================================
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, Optional, Tuple, Union

from ..core.types import Pos
from .tile_region import TileRegion, outside_edge

if TYPE_CHECKING:
    from .tile_grid import Tile


class ObjectKind(Enum):
    Resource = "resource"
    RandomResource = "random_resource"
    Artifact = "artifact"
    RandomArtifact = "random_artifact"
    Monster = "monster"
    Dwelling = "dwelling"
    Bank = "bank"
    Obstacle = "obstacle"
    Visitable = "visitable"
    Mine = "mine"
    Pandora = "pandora"
    Shrine = "shrine"
    SkillHut = "skill_hut"
    Scholar = "scholar"
    QuestHut = "quest_hut"
    Town = "town"
    Hero = "hero"


class GuardPosition(Enum):
    TL = (-1, -1)
    T = (0, -1)
    TR = (1, -1)
    L = (-1, 0)
    R = (1, 0)
    BL = (-1, 1)
    B = (0, 1)
    BR = (1, 1)

    @property
    def dx(self) -> int:
        return self.value[0]

    @property
    def dy(self) -> int:
        return self.value[1]


# --- Полезная нагрузка по видам ---

@dataclass(frozen=True)
class RewardPayload:
    """Подбираемые награды: ресурсы, артефакты, ящики Пандоры, святилища и т.п."""
    item_id: str = ""
    amount: int = 1


@dataclass(frozen=True)
class MonsterPayload:
    unit_id: str
    count: int


@dataclass(frozen=True)
class StructurePayload:
    """Стационарные постройки: жилища, банки, шахты, декорации."""
    def_id: str
    faction_id: Optional[str] = None


@dataclass(frozen=True)
class PlayerObjectPayload:
    """Города и герои: могут принадлежать игроку."""
    def_id: str
    owner: Optional[int] = None


ObjectPayload = Union[RewardPayload, MonsterPayload, StructurePayload, PlayerObjectPayload]

PAYLOAD_TYPES: Dict[ObjectKind, type] = {
    ObjectKind.Resource: RewardPayload,
    ObjectKind.RandomResource: RewardPayload,
    ObjectKind.Artifact: RewardPayload,
    ObjectKind.RandomArtifact: RewardPayload,
    ObjectKind.Pandora: RewardPayload,
    ObjectKind.Shrine: RewardPayload,
    ObjectKind.SkillHut: RewardPayload,
    ObjectKind.Scholar: RewardPayload,
    ObjectKind.Monster: MonsterPayload,
    ObjectKind.Dwelling: StructurePayload,
    ObjectKind.Bank: StructurePayload,
    ObjectKind.Obstacle: StructurePayload,
    ObjectKind.Visitable: StructurePayload,
    ObjectKind.Mine: StructurePayload,
    ObjectKind.QuestHut: StructurePayload,
    ObjectKind.Town: PlayerObjectPayload,
    ObjectKind.Hero: PlayerObjectPayload,
}


@dataclass(frozen=True)
class ObjectFootprint:
    """Форма объекта относительно якорного тайла."""
    occupied: Tuple[Pos, ...] = (Pos(0, 0),)
    extra_obstacles: Tuple[Pos, ...] = ()
    guard: int = 0
    guard_position: GuardPosition = GuardPosition.B
    joinable: bool = False
    # False - по самой награде можно пройти (подбираемые предметы)
    unpassable_reward: bool = True

    @property
    def estimated_area(self) -> int:
        area = len(set(self.occupied) | set(self.extra_obstacles))
        return area + (1 if self.guard > 0 else 0)


@dataclass
class ZoneObject:
    id: str
    kind: ObjectKind
    footprint: ObjectFootprint = field(default_factory=ObjectFootprint)
    score: Dict[str, int] = field(default_factory=dict)
    payload: Optional[ObjectPayload] = None

    def __post_init__(self):
        if not self.footprint.occupied:
            raise ValueError(f"Object {self.id}: footprint has no occupied tiles")
        expected = PAYLOAD_TYPES[self.kind]
        if self.payload is not None and not isinstance(self.payload, expected):
            raise TypeError(
                f"Object {self.id}: payload {type(self.payload).__name__} "
                f"does not match kind {self.kind.name} (expected {expected.__name__})"
            )

    @property
    def guarded(self) -> bool:
        return self.footprint.guard > 0


@dataclass
class PlacedObject:
    """Запись о размещении одного объекта (или о попытке)."""
    object: ZoneObject
    anchor: Optional["Tile"] = None
    guard_tile: Optional["Tile"] = None

    reward_area: TileRegion = field(default_factory=TileRegion)
    extra_obstacles: TileRegion = field(default_factory=TileRegion)
    unpassable_area: TileRegion = field(default_factory=TileRegion)  # препятствия + [награда]
    occupied_area: TileRegion = field(default_factory=TileRegion)    # награда + препятствия + охрана
    danger_zone: TileRegion = field(default_factory=TileRegion)      # под атакой охраны, но свободно
    occupied_with_danger: TileRegion = field(default_factory=TileRegion)
    pass_around_edge: TileRegion = field(default_factory=TileRegion)
    all_area: TileRegion = field(default_factory=TileRegion)         # всё вышеперечисленное

    segment_index: int = 0
    placed_heat: int = 0
    shifted: bool = False
    valid: bool = False

    @property
    def id(self) -> str:
        return self.object.id

    def __repr__(self) -> str:
        pos = tuple(self.anchor.pos) if self.anchor is not None else None
        return f"PlacedObject({self.object.id!r}, {self.object.kind.name}, anchor={pos}, valid={self.valid})"


def _guard_tile(grid, reward_area: TileRegion, position: GuardPosition):
    top_left, bottom_right = reward_area.bounding_box()
    if position.dx < 0:
        gx = top_left.x - 1
    elif position.dx > 0:
        gx = bottom_right.x + 1
    else:
        gx = (top_left.x + bottom_right.x) // 2
    if position.dy < 0:
        gy = top_left.y - 1
    elif position.dy > 0:
        gy = bottom_right.y + 1
    else:
        gy = (top_left.y + bottom_right.y) // 2
    return grid.get(gx, gy, top_left.z)


def estimate_occupied(placed: PlacedObject, anchor) -> bool:
    """
    Раскладывает отпечаток объекта от якоря anchor и заполняет все области
    записи. Если какой-то обязательный тайл вне карты - False, запись
    помечается невалидной.
    """
    grid = anchor.grid
    footprint = placed.object.footprint
    placed.valid = False
    placed.anchor = anchor

    def _resolve(offsets):
        tiles = []
        for off in offsets:
            tile = grid.get(anchor.pos.x + off.x, anchor.pos.y + off.y, anchor.pos.z)
            if tile is None:
                return None
            tiles.append(tile)
        return TileRegion(tiles)

    reward = _resolve(footprint.occupied)
    extra = _resolve(footprint.extra_obstacles)
    if reward is None or extra is None:
        return False

    occupied = reward | extra
    guard_tile = None
    danger = TileRegion()
    if footprint.guard > 0:
        guard_tile = _guard_tile(grid, reward, footprint.guard_position)
        if guard_tile is None:
            return False
        occupied.insert(guard_tile)
        danger = TileRegion(n for n in guard_tile.neighbors8 if n not in occupied)

    occupied_with_danger = occupied | danger
    pass_around = outside_edge(occupied_with_danger, diagonal=True)

    placed.reward_area = reward
    placed.extra_obstacles = extra
    placed.unpassable_area = (extra | reward) if footprint.unpassable_reward else extra.copy()
    placed.occupied_area = occupied
    placed.guard_tile = guard_tile
    placed.danger_zone = danger
    placed.occupied_with_danger = occupied_with_danger
    placed.pass_around_edge = pass_around
    placed.all_area = occupied_with_danger | pass_around
    placed.valid = True
    return True


def total_score(obj: ZoneObject) -> int:
    return sum(obj.score.values())
