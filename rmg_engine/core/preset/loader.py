# ========================
# file: rmg_engine/core/preset/loader.py
# ========================
from __future__ import annotations
import os
import json
import copy
import logging
from typing import Any, Dict, Mapping, Optional, Union

from .defaults import DEFAULT_RMG_PRESET
from .errors import NotFoundError, ValidationError
from .model import PRESET_VERSION, RmgPreset
from .validators import validate_dict

logger = logging.getLogger(__name__)


def deep_merge(base: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursive dict merge. Lists/tuples are replaced, not merged element-wise."""
    out = copy.deepcopy(base)
    for k, v in overrides.items():
        if isinstance(v, Mapping) and isinstance(out.get(k), dict):
            out[k] = deep_merge(out[k], v)
        else:
            out[k] = copy.deepcopy(v)
    return out


def _load_json_file(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Preset file {path} is not valid JSON: {e}") from e


def load_preset(
    source: Union[str, Dict[str, Any], None] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> RmgPreset:
    """Load a preset from a JSON path or a raw dict, merge with defaults and apply overrides.

    Args:
        source: file path to JSON, raw dict, or None for the defaults alone
        overrides: mapping of ad-hoc overrides (last layer)
    Returns:
        RmgPreset (immutable dataclass) ready for use
    """
    if source is None:
        data: Dict[str, Any] = {}
    elif isinstance(source, str):
        if not os.path.isfile(source):
            raise NotFoundError(f"Preset file not found: {source}")
        data = _load_json_file(source)
    elif isinstance(source, dict):
        data = source
    else:
        raise TypeError("source must be str path or dict")

    merged = deep_merge(DEFAULT_RMG_PRESET, data)
    if overrides:
        merged = deep_merge(merged, overrides)
    merged["version"] = PRESET_VERSION

    validate_dict(merged)

    preset = RmgPreset(
        id=merged["id"],
        version=int(merged["version"]),
        seed=int(merged.get("seed", 0)),
        grid=dict(merged["grid"]),
        zones=[dict(z) for z in merged["zones"]],
        partition=dict(merged["partition"]),
        repair=dict(merged["repair"]),
        segmentation=dict(merged["segmentation"]),
        distribution=dict(merged.get("distribution", {})),
        guards=dict(merged["guards"]),
        raw=merged,
    )
    logger.debug("Preset '%s' loaded: grid=%s, zones=%d", preset.id, preset.size, len(preset.zones))
    return preset
