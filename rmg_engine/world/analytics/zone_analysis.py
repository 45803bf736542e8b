# Файл: rmg_engine/world/analytics/zone_analysis.py
from __future__ import annotations
import logging
import textwrap
from typing import Any, Dict

import numpy as np
from scipy.ndimage import label

from ..zones import ZoneAssignment

logger = logging.getLogger(__name__)

# 4-связность
_STRUCTURE_4 = np.array([[0, 1, 0], [1, 1, 1], [0, 1, 0]], dtype=bool)


class ZoneAnalysis:
    """Собирает и форматирует отчёт по разбиению уровня на зоны."""

    def __init__(self, assignment: ZoneAssignment):
        self.assignment = assignment
        self.report: Dict[str, Any] = {}

    def run(self) -> Dict[str, Any]:
        """Выполняет все расчёты для отчёта."""
        tags = self.assignment.zone_array()
        total = int(tags.size)
        zones: Dict[str, Dict[str, int]] = {}

        for zone in self.assignment.zones:
            mask = tags == zone.index
            _, components = label(mask, structure=_STRUCTURE_4)
            area = int(mask.sum())
            zones[zone.id] = {
                "area": area,
                "target": int(zone.absolute_area),
                "deficit": int(zone.absolute_area) - area,
                "components": int(components),
            }

        unassigned = int((tags < 0).sum())
        self.report = {
            "zones": zones,
            "total": total,
            "unassigned": unassigned,
            "coverage_pct": (total - unassigned) * 100.0 / total if total else 0.0,
        }
        return self.report

    def format_report(self) -> str:
        if not self.report:
            self.run()
        lines = [
            f"   - {zid:<16} area={z['area']:>6} target={z['target']:>6} "
            f"deficit={z['deficit']:>+6} components={z['components']}"
            for zid, z in self.report["zones"].items()
        ]
        zones_str = "\n".join(lines)
        report_str = f"""
============================================================
ZONE REPORT (level {self.assignment.z}, {self.assignment.grid.width}x{self.assignment.grid.height})
============================================================
1. Zones:
{zones_str}

2. Coverage: {self.report["coverage_pct"]:.1f}% ({self.report["unassigned"]} unassigned)
============================================================
"""
        return textwrap.dedent(report_str)

    def log_report(self) -> None:
        logger.info(self.format_report())
