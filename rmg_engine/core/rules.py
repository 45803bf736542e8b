# ==============================================================================
# Файл: rmg_engine/core/rules.py
# Назначение: Только-для-чтения интерфейс к базе игровых правил (фракции,
#             герои, юниты, артефакты) и вспомогательные расчёты охраны.
#             Ключи - стабильные строковые id, а не идентичность объектов.
# ==============================================================================
from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Collection, Dict, List, Optional, Protocol, Union

from .constants import DEFAULT_GUARD_MULTIPLY_PERCENT
from .types import RandomSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LibraryEntity:
    id: str
    value: int = 0
    faction_id: Optional[str] = None
    level: int = 0
    playable: bool = False


class RulesDatabase(Protocol):
    def factions(self) -> Dict[str, LibraryEntity]: ...

    def heroes(self) -> Dict[str, LibraryEntity]: ...

    def units(self) -> Dict[str, LibraryEntity]: ...

    def artifacts(self) -> Dict[str, LibraryEntity]: ...


class InMemoryRulesDatabase:
    """Простой контейнер, когда данные уже на руках у вызывающего."""

    _SECTIONS = ("factions", "heroes", "units", "artifacts")

    def __init__(self, factions=(), heroes=(), units=(), artifacts=()):
        self._factions = {e.id: e for e in factions}
        self._heroes = {e.id: e for e in heroes}
        self._units = {e.id: e for e in units}
        self._artifacts = {e.id: e for e in artifacts}

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "InMemoryRulesDatabase":
        """
        Каталог вида {"units": {"imp": {"value": 50, "level": 1, ...}}, ...}.
        Отсутствующие секции считаются пустыми.
        """
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        sections = {}
        for name in cls._SECTIONS:
            entries = data.get(name, {})
            sections[name] = [
                LibraryEntity(
                    id=entity_id,
                    value=int(fields.get("value", 0)),
                    faction_id=fields.get("faction"),
                    level=int(fields.get("level", 0)),
                    playable=bool(fields.get("playable", False)),
                )
                for entity_id, fields in entries.items()
            ]
        db = cls(**sections)
        logger.info("Rules database loaded from %s: %s", path,
                    {name: len(sections[name]) for name in cls._SECTIONS})
        return db

    def factions(self) -> Dict[str, LibraryEntity]:
        return dict(self._factions)

    def heroes(self) -> Dict[str, LibraryEntity]:
        return dict(self._heroes)

    def units(self) -> Dict[str, LibraryEntity]:
        return dict(self._units)

    def artifacts(self) -> Dict[str, LibraryEntity]:
        return dict(self._artifacts)


def get_possible_count(unit: LibraryEntity, value: int) -> int:
    """Сколько юнитов помещается в заданную "ценность" охраны (минимум 1)."""
    if unit.value <= 0:
        raise ValueError(f"Unit {unit.id} has nonpositive value")
    return max(1, value // unit.value)


def scale_guard(value: int, percent: int = DEFAULT_GUARD_MULTIPLY_PERCENT) -> int:
    return value * percent // 100


def pick_guard_unit(db: RulesDatabase, value: int, rng: RandomSource) -> Optional[LibraryEntity]:
    """
    Случайный юнит, который влезает в value хотя бы одним экземпляром.
    Если таких нет - самый дешёвый. Пустая база - None.
    """
    units = sorted((u for u in db.units().values() if u.value > 0), key=lambda u: u.id)
    if not units:
        return None
    fitting = [u for u in units if u.value <= value]
    if not fitting:
        return min(units, key=lambda u: (u.value, u.id))
    return fitting[rng.next_int(len(fitting) - 1)]


def get_random_faction(db: RulesDatabase, rng: RandomSource,
                       exclude_ids: Collection[str] = (),
                       playable_only: bool = True) -> Optional[LibraryEntity]:
    candidates: List[LibraryEntity] = sorted(
        (f for f in db.factions().values()
         if f.id not in exclude_ids and (f.playable or not playable_only)),
        key=lambda f: f.id,
    )
    if not candidates:
        return None
    return candidates[rng.next_int(len(candidates) - 1)]
