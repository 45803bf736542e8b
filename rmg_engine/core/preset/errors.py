# ========================
# file: rmg_engine/core/preset/errors.py
# ========================
from ..errors import ConfigurationError


class PresetError(ConfigurationError):
    """Base error for preset system."""


class ValidationError(PresetError):
    """Raised when a preset fails validation."""


class NotFoundError(PresetError):
    """Raised when a preset path cannot be resolved."""
