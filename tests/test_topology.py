# ==============================================================================
# Файл: tests/test_topology.py
# Назначение: Тесты починки топологии по текстовым картам зон.
# ==============================================================================
import unittest

import sys
from pathlib import Path

sys.path.append(str(Path(__file__).parent.parent))

from rmg_engine.core.errors import EmptyZoneError, OrphanTilesError, UnresolvableExclavesError
from rmg_engine.core.types import Pos, ZoneSpec
from rmg_engine.world.analytics import ZoneAnalysis
from rmg_engine.world.tile_grid import TileGrid
from rmg_engine.world.topology import repair_topology
from rmg_engine.world.zones import TileZone, ZoneAssignment


def make_assignment(rows, seeds):
    """
    rows: строки карты, буква = зона, '.' = ничей тайл.
    seeds: {буква: (x, y)} семена зон, порядок задаёт индексы.
    """
    grid = TileGrid(len(rows[0]), len(rows))
    letters = list(seeds)
    for y, row in enumerate(rows):
        for x, ch in enumerate(row):
            grid.get(x, y).zone_index = letters.index(ch) if ch != "." else -1

    zones = []
    for index, letter in enumerate(letters):
        x, y = seeds[letter]
        zones.append(TileZone(index, ZoneSpec(letter, Pos(x, y)), grid.get(x, y), 100))
    return ZoneAssignment(grid, zones)


def render(assignment):
    letters = assignment.zone_ids
    lines = []
    for y in range(assignment.grid.height):
        lines.append("".join(
            letters[assignment.grid.get(x, y).zone_index] for x in range(assignment.grid.width)
        ))
    return lines


class TestLocalRules(unittest.TestCase):
    def test_isolated_tile_joins_surrounding_zone(self):
        assignment = make_assignment(
            ["AAAA",
             "AABA",
             "AAAA",
             "BBBB"],
            {"A": (0, 0), "B": (0, 3)},
        )
        result = repair_topology(assignment)
        self.assertEqual(render(assignment), ["AAAA", "AAAA", "AAAA", "BBBB"])
        self.assertEqual(result.reassigned, 1)
        self.assertEqual(result.iterations, 1)
        self.assertEqual(result.affected_zones, frozenset({"A", "B"}))

    def test_spike_is_cut(self):
        assignment = make_assignment(
            ["AAAAA",
             "AAAAA",
             "BBABB",
             "BBBBB"],
            {"A": (0, 0), "B": (0, 3)},
        )
        repair_topology(assignment)
        self.assertEqual(assignment.grid.get(2, 2).zone_index, 1)
        self.assertEqual(render(assignment)[2], "BBBBB")

    def test_thin_line_is_dissolved(self):
        assignment = make_assignment(
            ["BABAA",
             "BABAA",
             "BABAA"],
            {"A": (3, 0), "B": (0, 0)},
        )
        repair_topology(assignment)
        self.assertEqual(render(assignment), ["BBBAA", "BBBAA", "BBBAA"])

    def test_clean_partition_is_untouched(self):
        assignment = make_assignment(
            ["AAAB",
             "AABB",
             "ABBB"],
            {"A": (0, 0), "B": (3, 2)},
        )
        result = repair_topology(assignment)
        self.assertEqual(result.reassigned, 0)
        self.assertEqual(result.affected_zones, frozenset())
        self.assertEqual(render(assignment), ["AAAB", "AABB", "ABBB"])


class TestExclaves(unittest.TestCase):
    ROWS = [
        "AAAAAAA",
        "AAAAAAA",
        "AABBAAA",
        "AABBAAA",
        "AAAAAAA",
        "AAAAAAA",
        "BBBBBBB",
    ]

    def test_exclave_is_absorbed(self):
        print("\n[TEST] Running test_exclave_is_absorbed...")
        assignment = make_assignment(self.ROWS, {"A": (0, 0), "B": (0, 6)})
        result = repair_topology(assignment)
        self.assertEqual(result.iterations, 2)
        self.assertEqual(result.reassigned, 4)
        self.assertEqual(render(assignment)[2], "AAAAAAA")
        self.assertEqual(render(assignment)[3], "AAAAAAA")

        assignment.refresh(result.affected_zones)
        self.assertEqual(assignment.zone("A").placed_area, 42)
        self.assertEqual(assignment.zone("B").placed_area, 7)
        print("[TEST] test_exclave_is_absorbed: OK")

    def test_zero_iterations_cap_raises(self):
        assignment = make_assignment(self.ROWS, {"A": (0, 0), "B": (0, 6)})
        with self.assertRaises(UnresolvableExclavesError):
            repair_topology(assignment, max_iterations=0)

    def test_repair_does_not_refresh_areas(self):
        assignment = make_assignment(self.ROWS, {"A": (0, 0), "B": (0, 6)})
        repair_topology(assignment)
        # кэш обновляет вызывающий
        self.assertEqual(assignment.zone("A").placed_area, 0)


class TestZonePostConditions(unittest.TestCase):
    def test_dissolved_zone_raises(self):
        # зона целиком из тонкой линии исчезает при починке
        assignment = make_assignment(
            ["BAB",
             "BAB",
             "BAB"],
            {"A": (1, 0), "B": (0, 0)},
        )
        with self.assertRaises(EmptyZoneError):
            repair_topology(assignment)

    def test_lost_seed_raises(self):
        assignment = make_assignment(
            ["AAAA",
             "AABA",
             "AAAA",
             "BBBB"],
            {"A": (0, 0), "B": (2, 1)},
        )
        with self.assertRaises(EmptyZoneError) as ctx:
            repair_topology(assignment)
        self.assertIn("lost its center tile", str(ctx.exception))


class TestOrphans(unittest.TestCase):
    def test_orphan_tile_raises(self):
        assignment = make_assignment(
            ["AAA",
             "A.A",
             "BBB"],
            {"A": (0, 0), "B": (0, 2)},
        )
        with self.assertRaises(OrphanTilesError) as ctx:
            repair_topology(assignment)
        self.assertIn("All tiles must be zoned!", str(ctx.exception))


class TestZoneAnalysis(unittest.TestCase):
    def test_report_counts_components(self):
        assignment = make_assignment(TestExclaves.ROWS, {"A": (0, 0), "B": (0, 6)})
        report = ZoneAnalysis(assignment).run()
        self.assertEqual(report["total"], 49)
        self.assertEqual(report["unassigned"], 0)
        self.assertEqual(report["coverage_pct"], 100.0)
        self.assertEqual(report["zones"]["A"]["area"], 38)
        self.assertEqual(report["zones"]["B"]["components"], 2)
        self.assertEqual(report["zones"]["A"]["components"], 1)

    def test_format_report(self):
        assignment = make_assignment(["AB", "AB"], {"A": (0, 0), "B": (1, 0)})
        text = ZoneAnalysis(assignment).format_report()
        self.assertIn("ZONE REPORT", text)
        self.assertIn("components=1", text)


if __name__ == "__main__":
    unittest.main()
