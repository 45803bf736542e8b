# ========================
# file: rmg_engine/core/preset/validators.py
# ========================
from __future__ import annotations
from typing import Any, Dict

from .errors import ValidationError

GUARD_POSITIONS = ("TL", "T", "TR", "L", "R", "BL", "B", "BR")


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ValidationError(msg)


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def validate_dict(cfg: Dict[str, Any]) -> None:
    """Conservative validation of a preset dict.

    Raises ValidationError on the first failing check. The number of zones
    and their weights are left to the partitioner, which reports them with
    its own configuration errors.
    """
    _require(
        isinstance(cfg.get("id"), str) and cfg["id"],
        "Preset.id must be non-empty string",
    )
    _require(_is_int(cfg.get("seed", 0)), "Preset.seed must be an integer")

    # Grid
    grid = dict(cfg.get("grid", {}))
    for key in ("width", "height"):
        _require(_is_int(grid.get(key)) and grid[key] >= 1, f"grid.{key} must be integer >= 1")
    depth = grid.get("depth", 1)
    _require(_is_int(depth) and depth >= 1, "grid.depth must be integer >= 1")

    # Zones
    zones = cfg.get("zones")
    _require(isinstance(zones, list), "zones must be a list")
    seen = set()
    for i, z in enumerate(zones):
        _require(isinstance(z, dict), f"zones[{i}] must be an object")
        zid = z.get("id")
        _require(isinstance(zid, str) and zid, f"zones[{i}].id must be non-empty string")
        _require(zid not in seen, f"zones[{i}].id '{zid}' is duplicated")
        seen.add(zid)

        center = z.get("center")
        _require(
            isinstance(center, (list, tuple)) and len(center) == 2 and all(_is_int(c) for c in center),
            f"zones[{i}].center must be [x, y]",
        )
        _require(
            0 <= center[0] < grid["width"] and 0 <= center[1] < grid["height"],
            f"zones[{i}].center must be inside the grid",
        )
        _require(_is_int(z.get("relative_area", 100)), f"zones[{i}].relative_area must be an integer")

        disp = z.get("center_dispersion", [0, 0])
        _require(
            isinstance(disp, (list, tuple)) and len(disp) == 2 and all(_is_int(d) and d >= 0 for d in disp),
            f"zones[{i}].center_dispersion must be [dx, dy] with dx, dy >= 0",
        )
        rad = z.get("relative_area_dispersion", 0)
        _require(_is_int(rad) and rad >= 0, f"zones[{i}].relative_area_dispersion must be >= 0")

        gmin, gmax = z.get("guard_min", 0), z.get("guard_max", 0)
        _require(_is_int(gmin) and _is_int(gmax) and 0 <= gmin, f"zones[{i}].guard_min must be >= 0")
        _require(gmax == 0 or gmin <= gmax, f"zones[{i}].guard_min must be <= guard_max")

        for k, obj in enumerate(z.get("objects", [])):
            where = f"zones[{i}].objects[{k}]"
            _require(isinstance(obj.get("id"), str) and obj["id"], f"{where}.id must be non-empty string")
            _require(isinstance(obj.get("kind"), str), f"{where}.kind must be a string")
            _require(_is_int(obj.get("count", 1)) and obj.get("count", 1) >= 0, f"{where}.count must be >= 0")
            _require(_is_int(obj.get("guard", 0)) and obj.get("guard", 0) >= 0, f"{where}.guard must be >= 0")
            size = obj.get("size", [1, 1])
            _require(
                isinstance(size, (list, tuple)) and len(size) == 2 and all(_is_int(s) and s >= 1 for s in size),
                f"{where}.size must be [w, h] with w, h >= 1",
            )
            _require(
                obj.get("guard_position", "B") in GUARD_POSITIONS,
                f"{where}.guard_position must be one of {', '.join(GUARD_POSITIONS)}",
            )

    # Partition
    part = dict(cfg.get("partition", {}))
    level = part.get("level", 0)
    _require(_is_int(level) and 0 <= level < depth, "partition.level must be inside grid depth")
    _require(
        _is_int(part.get("tie_threshold")) and part["tie_threshold"] >= 0,
        "partition.tie_threshold must be integer >= 0",
    )
    passes = part.get("deficit_passes")
    _require(isinstance(passes, list) and passes, "partition.deficit_passes must be a non-empty list")
    for i, p in enumerate(passes):
        _require(
            isinstance(p, (list, tuple)) and len(p) == 2 and _is_int(p[0]) and 0 <= p[0] <= 100
            and isinstance(p[1], bool),
            f"partition.deficit_passes[{i}] must be [percent 0..100, consume bool]",
        )

    # Repair
    rep = dict(cfg.get("repair", {}))
    _require(
        _is_int(rep.get("max_iterations")) and rep["max_iterations"] >= 0,
        "repair.max_iterations must be integer >= 0",
    )

    # Segmentation
    seg = dict(cfg.get("segmentation", {}))
    _require(_is_int(seg.get("max_area")) and seg["max_area"] >= 1, "segmentation.max_area must be >= 1")

    # Guards
    g = dict(cfg.get("guards", {}))
    _require(
        _is_int(g.get("multiply_percent")) and g["multiply_percent"] >= 0,
        "guards.multiply_percent must be integer >= 0",
    )
