# ========================
# file: rmg_engine/core/preset/__init__.py
# ========================
from .model import RmgPreset, PRESET_VERSION
from .loader import load_preset, deep_merge
from .defaults import DEFAULT_RMG_PRESET
from .errors import PresetError, ValidationError, NotFoundError

__all__ = [
    "PRESET_VERSION",
    "RmgPreset",
    "load_preset",
    "deep_merge",
    "DEFAULT_RMG_PRESET",
    "PresetError",
    "ValidationError",
    "NotFoundError",
]
