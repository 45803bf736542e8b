# ==============================================================================
# Файл: rmg_engine/world/tile_region.py
# Назначение: Алгебра регионов тайлов. Объединение/разность/пересечение,
#             внутренний и внешний край, разбиение заливкой на связные
#             компоненты, дискретный центроид, сдвиг при коллизии и
#             двухцветный текстовый шаблон "объект/препятствие".
# ==============================================================================
from __future__ import annotations
import math
from enum import Enum
from operator import attrgetter
from typing import TYPE_CHECKING, Iterable, Iterator, List, NamedTuple, Optional, Set, Tuple

import numpy as np

from ..core import constants as const
from ..core.types import Pos

if TYPE_CHECKING:
    from .tile_grid import Tile, TileGrid

_BY_INDEX = attrgetter("index")


class TileRegion:
    """
    Неупорядоченное множество тайлов без дублей.

    Порядок обхода детерминирован (по линейному индексу тайла), поэтому все
    алгоритмы поверх региона воспроизводимы при одинаковом сиде.
    """

    __slots__ = ("_tiles", "_sorted")

    def __init__(self, tiles: Iterable["Tile"] = ()):
        self._tiles: Set["Tile"] = set(tiles)
        self._sorted: Optional[List["Tile"]] = None

    # --- базовые операции множества ---

    def __iter__(self) -> Iterator["Tile"]:
        if self._sorted is None:
            self._sorted = sorted(self._tiles, key=_BY_INDEX)
        return iter(self._sorted)

    def __len__(self) -> int:
        return len(self._tiles)

    def __bool__(self) -> bool:
        return bool(self._tiles)

    def __contains__(self, tile: object) -> bool:
        return tile in self._tiles

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TileRegion):
            return NotImplemented
        return self._tiles == other._tiles

    __hash__ = None  # type: ignore[assignment]

    def __getitem__(self, i: int) -> "Tile":
        if self._sorted is None:
            self._sorted = sorted(self._tiles, key=_BY_INDEX)
        return self._sorted[i]

    def __or__(self, other: "TileRegion") -> "TileRegion":
        return TileRegion(self._tiles | other._tiles)

    def __and__(self, other: "TileRegion") -> "TileRegion":
        return TileRegion(self._tiles & other._tiles)

    def __sub__(self, other: "TileRegion") -> "TileRegion":
        return TileRegion(self._tiles - other._tiles)

    def __repr__(self) -> str:
        return f"TileRegion(size={len(self._tiles)})"

    union = __or__
    intersect_with = __and__
    diff_with = __sub__

    def size(self) -> int:
        return len(self._tiles)

    def contains(self, tile: Optional["Tile"]) -> bool:
        return tile in self._tiles

    def copy(self) -> "TileRegion":
        out = TileRegion()
        out._tiles = set(self._tiles)
        out._sorted = self._sorted
        return out

    @property
    def tiles(self) -> frozenset:
        return frozenset(self._tiles)

    def first(self) -> Optional["Tile"]:
        if not self._tiles:
            return None
        return self[0]

    # --- мутации (инвалидируют порядок) ---

    def insert(self, tile: "Tile") -> None:
        if tile not in self._tiles:
            self._tiles.add(tile)
            self._sorted = None

    def update(self, tiles: Iterable["Tile"]) -> None:
        before = len(self._tiles)
        self._tiles.update(tiles)
        if len(self._tiles) != before:
            self._sorted = None

    def discard(self, tile: "Tile") -> None:
        if tile in self._tiles:
            self._tiles.discard(tile)
            self._sorted = None

    def erase(self, tiles: Iterable["Tile"]) -> None:
        before = len(self._tiles)
        self._tiles.difference_update(tiles)
        if len(self._tiles) != before:
            self._sorted = None

    def clear(self) -> None:
        self._tiles.clear()
        self._sorted = None

    # --- геометрия ---

    def positions(self) -> List[Pos]:
        return [t.pos for t in self]

    def coords(self) -> np.ndarray:
        """Массив (n, 2) координат x, y в порядке обхода."""
        if not self._tiles:
            return np.zeros((0, 2), dtype=np.int64)
        return np.array([(t.pos.x, t.pos.y) for t in self], dtype=np.int64)

    def bounding_box(self) -> Tuple[Pos, Pos]:
        xs = [t.pos.x for t in self._tiles]
        ys = [t.pos.y for t in self._tiles]
        z = next(iter(self._tiles)).pos.z
        return Pos(min(xs), min(ys), z), Pos(max(xs), max(ys), z)


def pos_distance(a: Pos, b: Pos, mult: int = 1) -> int:
    dx = a.x - b.x
    dy = a.y - b.y
    return int(math.sqrt(dx * dx + dy * dy) * mult)


def _distances_to(coords: np.ndarray, pos: Pos, mult: int) -> np.ndarray:
    dx = coords[:, 0] - pos.x
    dy = coords[:, 1] - pos.y
    return np.floor(np.sqrt((dx * dx + dy * dy).astype(np.float64)) * mult).astype(np.int64)


# ==============================================================================
# --- БЛОК 1: КРАЯ ---
# ==============================================================================

def _full_neighbour_count(diagonal: bool) -> int:
    return 8 if diagonal else 4


def inner_edge(region: TileRegion, diagonal: bool = False) -> TileRegion:
    """Тайлы региона, у которых хотя бы один сосед снаружи (край карты тоже 'снаружи')."""
    full = _full_neighbour_count(diagonal)
    result = []
    for tile in region:
        neighbours = tile.neighbors(diagonal)
        if len(neighbours) < full or any(n not in region for n in neighbours):
            result.append(tile)
    return TileRegion(result)


def outside_edge(region: TileRegion, diagonal: bool = False,
                 edge: Optional[TileRegion] = None) -> TileRegion:
    """Все соседи внутреннего края, не входящие в регион."""
    if edge is None:
        edge = inner_edge(region, diagonal)
    result = TileRegion()
    for tile in edge:
        for n in tile.neighbors(diagonal):
            if n not in region:
                result.insert(n)
    return result


# ==============================================================================
# --- БЛОК 2: ЗАЛИВКА ---
# ==============================================================================

def iter_flood_fill(region: TileRegion, diagonal: bool = False,
                    hint: Optional["Tile"] = None) -> Iterator[TileRegion]:
    """
    Выдаёт по одной максимальной связной компоненте за шаг, пока регион
    не исчерпан. Первая компонента растёт от hint, если он задан.
    """
    if hint is not None and hint not in region:
        raise ValueError("Invalid tile hint provided")

    visited: Set["Tile"] = set()
    order = list(region)
    cursor = 0
    while len(visited) < len(order):
        if hint is not None:
            start, hint = hint, None
        else:
            while order[cursor] in visited:
                cursor += 1
            start = order[cursor]

        component = [start]
        visited.add(start)
        frontier = [start]
        while frontier:
            next_frontier = []
            for cell in frontier:
                for n in cell.neighbors(diagonal):
                    if n in visited or n not in region:
                        continue
                    visited.add(n)
                    component.append(n)
                    next_frontier.append(n)
            frontier = next_frontier
        yield TileRegion(component)


def split_by_flood_fill(region: TileRegion, diagonal: bool = False,
                        hint: Optional["Tile"] = None) -> List[TileRegion]:
    return list(iter_flood_fill(region, diagonal, hint))


# ==============================================================================
# --- БЛОК 3: ЦЕНТРОИД ---
# ==============================================================================

def make_centroid(region: TileRegion, ensure_in_bounds: bool = True) -> Optional["Tile"]:
    """
    Дискретное приближение центра масс.

    Среднее арифметическое позиций -> тайл сетки; при ensure_in_bounds
    притягиваем к ближайшему тайлу региона, затем один шаг по 8 соседям
    в сторону меньшей суммы расстояний до всех тайлов региона.
    Для пустого региона возвращает None.
    """
    if not region:
        return None

    mult = const.CENTROID_DISTANCE_MULT
    tiles = list(region)
    grid: "TileGrid" = tiles[0].grid
    z = tiles[0].pos.z
    coords = region.coords()
    mean_x, mean_y = (int(v) for v in coords.sum(axis=0) // len(tiles))

    centroid = grid.get(mean_x, mean_y, z)
    if ensure_in_bounds and centroid not in region:
        nearest = _distances_to(coords, centroid.pos, mult)
        centroid = tiles[int(np.argmin(nearest))]

    best = int(_distances_to(coords, centroid.pos, mult).sum())
    for tile in centroid.neighbors8:
        if ensure_in_bounds and tile not in region:
            continue
        alt = int(_distances_to(coords, tile.pos, mult).sum())
        if alt < best:
            best = alt
            centroid = tile

    return centroid


# ==============================================================================
# --- БЛОК 4: СДВИГ ПРИ КОЛЛИЗИИ ---
# ==============================================================================

class CollisionResult(Enum):
    InvalidInputs = "invalid_inputs"
    NoCollision = "no_collision"
    ImpossibleShift = "impossible_shift"
    HasShift = "has_shift"


class CollisionShift(NamedTuple):
    result: CollisionResult
    shift: Pos = Pos(0, 0)


def collision_shift(obj: TileRegion, obstacle: TileRegion,
                    invert_obstacle: bool = False) -> CollisionShift:
    """
    Считает смещение, уводящее основную массу объекта от препятствия.

    invert_obstacle=True трактует obstacle как разрешённую область: коллизией
    считается всё, что из неё выходит.
    """
    if not obj:
        return CollisionShift(CollisionResult.InvalidInputs)
    if not obstacle and not invert_obstacle:
        return CollisionShift(CollisionResult.NoCollision)

    collision = obj - obstacle if invert_obstacle else obj & obstacle
    if not collision:
        return CollisionShift(CollisionResult.NoCollision)
    if collision == obj:
        return CollisionShift(CollisionResult.ImpossibleShift)

    # Масса объекта считается без всей области коллизии, а не без одного
    # центрального тайла коллизии.
    collision_centroid = make_centroid(collision, ensure_in_bounds=False)
    object_centroid = make_centroid(obj - collision, ensure_in_bounds=False)

    top_left, bottom_right = obj.bounding_box()
    width = bottom_right.x - top_left.x + 1
    height = bottom_right.y - top_left.y + 1
    hor_radius = width // 2  # 1x1 -> 0, 2x2 -> 1, 3x3 -> 1, 4x4 -> 2
    vert_radius = height // 2

    offset = object_centroid.pos - collision_centroid.pos
    cx, cy = offset.x, offset.y
    if cx == 0 and cy == 0:
        return CollisionShift(CollisionResult.ImpossibleShift)

    if cx > 0 and hor_radius > 1:
        cx = hor_radius - cx + 1
    elif cx < 0 and hor_radius > 1:
        cx = -hor_radius - cx - 1
    if cy > 0 and vert_radius > 1:
        cy = vert_radius - cy + 1
    elif cy < 0 and hor_radius > 1:
        # NB: ветка гейтится горизонтальным радиусом, не вертикальным.
        # Поведение сохранено как есть, см. DESIGN.md.
        cy = -vert_radius - cy - 1

    return CollisionShift(CollisionResult.HasShift, Pos(cx, cy))


# ==============================================================================
# --- БЛОК 5: ТЕКСТОВЫЙ ШАБЛОН ---
# ==============================================================================

def compose(grid: "TileGrid", obj: TileRegion, obstacle: TileRegion,
            obstacle_inverted: bool = False, printable: bool = False, z: int = 0) -> str:
    """Кодирует пару регионов строкой: X - оба, O - объект, '-' - препятствие, '.' - пусто."""
    rows = []
    for y in range(grid.height):
        chars = []
        for x in range(grid.width):
            tile = grid.get(x, y, z)
            object_occupied = tile in obj
            obstacle_occupied = (tile not in obstacle) if obstacle_inverted else (tile in obstacle)
            if object_occupied and obstacle_occupied:
                chars.append(const.CHAR_BOTH)
            elif object_occupied:
                chars.append(const.CHAR_OBJECT)
            elif obstacle_occupied:
                chars.append(const.CHAR_OBSTACLE)
            else:
                chars.append(const.CHAR_EMPTY)
        row = "".join(chars)
        rows.append(f'"{row}"\n' if printable else row)
    return "".join(rows)


def decompose(grid: "TileGrid", serialized: str, width: int, height: int,
              z: int = 0) -> Tuple[TileRegion, TileRegion]:
    """Обратное к compose(). Принимает и печатный вариант (кавычки/переводы строк)."""
    data = serialized.replace('"', "").replace("\n", "")
    if len(data) != width * height:
        raise ValueError(f"Serialized pattern has {len(data)} chars, expected {width * height}")

    obj, obstacle = TileRegion(), TileRegion()
    for y in range(height):
        for x in range(width):
            c = data[x + width * y]
            tile = grid.tile_at(Pos(x, y, z))
            if c in (const.CHAR_OBJECT, const.CHAR_BOTH):
                obj.insert(tile)
            if c in (const.CHAR_OBSTACLE, const.CHAR_BOTH):
                obstacle.insert(tile)
    return obj, obstacle
