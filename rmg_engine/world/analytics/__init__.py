from .zone_analysis import ZoneAnalysis

__all__ = ["ZoneAnalysis"]
