# ========================
# file: rmg_engine/core/preset/defaults.py
# ========================
from __future__ import annotations
from typing import Any, Dict

from ..constants import (
    DEFAULT_GUARD_MULTIPLY_PERCENT,
    DEFICIT_PASSES,
    REPAIR_MAX_ITERATIONS,
    ZONE_BORDER_TIE_THRESHOLD,
)
from .model import PRESET_VERSION

# Python-dict mirror of the JSON preset format
DEFAULT_RMG_PRESET: Dict[str, Any] = {
    "id": "rmg/two_zones_default",
    "version": PRESET_VERSION,
    "seed": 0,
    "grid": {"width": 36, "height": 36, "depth": 1},
    "zones": [
        {
            "id": "player_1",
            "center": [6, 6],
            "relative_area": 100,
            "terrain": "grass",
            "guard_min": 500,
            "guard_max": 2000,
            "objects": [
                {"id": "gold", "kind": "resource", "count": 2, "score": {"gold": 500}},
                {"id": "artifact", "kind": "random_artifact", "count": 1, "guard": 1000,
                 "guard_position": "B", "score": {"artifact": 1500}},
                {"id": "dwelling", "kind": "dwelling", "count": 1, "size": [2, 2],
                 "guard": 1500, "guard_position": "BR", "score": {"army": 2000}},
            ],
        },
        {
            "id": "player_2",
            "center": [29, 29],
            "relative_area": 100,
            "terrain": "dirt",
            "guard_min": 500,
            "guard_max": 2000,
            "objects": [
                {"id": "ore", "kind": "resource", "count": 2, "score": {"ore": 500}},
                {"id": "shrine", "kind": "shrine", "count": 1, "guard": 800,
                 "guard_position": "T", "score": {"spell": 1000}},
            ],
        },
    ],
    "partition": {
        "level": 0,
        "tie_threshold": ZONE_BORDER_TIE_THRESHOLD,
        "deficit_passes": [[t, c] for t, c in DEFICIT_PASSES],
    },
    "repair": {"max_iterations": REPAIR_MAX_ITERATIONS},
    "segmentation": {"max_area": 150, "repulse": True, "random_seeding": False},
    "distribution": {"enabled": True},
    "guards": {"multiply_percent": DEFAULT_GUARD_MULTIPLY_PERCENT},
}
