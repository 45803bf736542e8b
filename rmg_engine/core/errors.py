# ========================
# file: rmg_engine/core/errors.py
# ========================
class RmgError(Exception):
    """Base error for the map generator core."""


class ConfigurationError(RmgError):
    """Bad input detected before any tile work begins. Never retried."""


class TooFewZonesError(ConfigurationError):
    """Raised when fewer than two zones are configured."""


class NonPositiveZoneWeightError(ConfigurationError):
    """Raised when a zone has a relative area <= 0."""


class ZeroTotalWeightError(ConfigurationError):
    """Raised when the total relative area of all zones is zero."""


class ConvergenceError(RmgError):
    """The run cannot reach a valid state; the caller may retry with another seed."""


class UnresolvableExclavesError(ConvergenceError):
    """Raised when topology repair does not reach a fixed point within the cap."""


class OrphanTilesError(ConvergenceError):
    """Raised when some tile was never assigned to a zone."""


class EmptyZoneError(ConvergenceError):
    """Raised when a zone ends up empty or cut off from its center tile."""
