from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from ..types import Pos, ZoneSpec

PRESET_VERSION = 1


@dataclass(frozen=True)
class RmgPreset:
    id: str
    version: int
    seed: int
    grid: Dict[str, Any]
    zones: List[Dict[str, Any]]
    partition: Dict[str, Any]
    repair: Dict[str, Any]
    segmentation: Dict[str, Any]
    distribution: Dict[str, Any]
    guards: Dict[str, Any]

    raw: Dict[str, Any]

    @property
    def size(self) -> Tuple[int, int, int]:
        return (int(self.grid["width"]), int(self.grid["height"]), int(self.grid.get("depth", 1)))

    @property
    def deficit_passes(self) -> Tuple[Tuple[int, bool], ...]:
        return tuple((int(t), bool(c)) for t, c in self.partition["deficit_passes"])

    def zone_specs(self) -> List[ZoneSpec]:
        level = int(self.partition.get("level", 0))
        specs = []
        for z in self.zones:
            cx, cy = z["center"]
            dx, dy = z.get("center_dispersion", (0, 0))
            specs.append(ZoneSpec(
                id=z["id"],
                center=Pos(int(cx), int(cy), level),
                relative_area=int(z.get("relative_area", 100)),
                center_dispersion=Pos(int(dx), int(dy)),
                relative_area_dispersion=int(z.get("relative_area_dispersion", 0)),
                terrain=z.get("terrain"),
                guard_min=int(z.get("guard_min", 0)),
                guard_max=int(z.get("guard_max", 0)),
            ))
        return specs

    def zone_objects(self, zone_id: str) -> List[Dict[str, Any]]:
        for z in self.zones:
            if z["id"] == zone_id:
                return [dict(o) for o in z.get("objects", [])]
        return []

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "version": self.version,
            "seed": self.seed,
            "grid": dict(self.grid),
            "zones": [dict(z) for z in self.zones],
            "partition": dict(self.partition),
            "repair": dict(self.repair),
            "segmentation": dict(self.segmentation),
            "distribution": dict(self.distribution),
            "guards": dict(self.guards),
        }
