# ==============================================================================
# Файл: tests/test_zones.py
# Назначение: Тесты разбиения уровня на зоны.
# ==============================================================================
import unittest

import sys
from pathlib import Path

sys.path.append(str(Path(__file__).parent.parent))

import numpy as np

from rmg_engine.core.errors import (
    ConfigurationError,
    NonPositiveZoneWeightError,
    TooFewZonesError,
)
from rmg_engine.core.types import Pos, ZoneSpec
from rmg_engine.core.utils.rng import RNG
from rmg_engine.world.tile_grid import TileGrid
from rmg_engine.world.tile_region import split_by_flood_fill
from rmg_engine.world.topology import repair_topology
from rmg_engine.world.zones import partition_zones


class TestPartitionConfiguration(unittest.TestCase):
    def setUp(self):
        self.grid = TileGrid(10, 10)

    def _assert_untouched(self):
        self.assertTrue(np.all(self.grid.zone_array() == -1))

    def test_single_zone_is_rejected(self):
        with self.assertRaises(TooFewZonesError) as ctx:
            partition_zones(self.grid, [ZoneSpec("a", Pos(5, 5))], RNG(1))
        self.assertIn("need at least two zones", str(ctx.exception))
        self._assert_untouched()

    def test_empty_zone_list_is_rejected(self):
        with self.assertRaises(TooFewZonesError):
            partition_zones(self.grid, [], RNG(1))

    def test_nonpositive_weight(self):
        specs = [ZoneSpec("a", Pos(1, 1), 100), ZoneSpec("b", Pos(8, 8), 0)]
        with self.assertRaises(NonPositiveZoneWeightError):
            partition_zones(self.grid, specs, RNG(1))
        self._assert_untouched()

    def test_errors_are_configuration_errors(self):
        specs = [ZoneSpec("a", Pos(1, 1), -5), ZoneSpec("b", Pos(8, 8))]
        with self.assertRaises(ConfigurationError):
            partition_zones(self.grid, specs, RNG(1))

    def test_duplicate_zone_id(self):
        specs = [ZoneSpec("a", Pos(1, 1)), ZoneSpec("a", Pos(8, 8))]
        with self.assertRaises(ConfigurationError):
            partition_zones(self.grid, specs, RNG(1))

    def test_center_outside_of_map(self):
        specs = [ZoneSpec("a", Pos(1, 1)), ZoneSpec("b", Pos(50, 50))]
        with self.assertRaises(ConfigurationError):
            partition_zones(self.grid, specs, RNG(1))
        self._assert_untouched()

    def test_shared_center(self):
        specs = [ZoneSpec("a", Pos(3, 3)), ZoneSpec("b", Pos(3, 3))]
        with self.assertRaises(ConfigurationError):
            partition_zones(self.grid, specs, RNG(1))

    def test_dispersed_center_is_clamped(self):
        specs = [
            ZoneSpec("a", Pos(0, 0), center_dispersion=Pos(3, 3)),
            ZoneSpec("b", Pos(9, 9)),
        ]
        assignment = partition_zones(self.grid, specs, RNG(5))
        start = assignment.zone("a").start_tile
        self.assertTrue(self.grid.in_bounds(start.pos))
        self.assertFalse(assignment.unassigned())


class TestPartitionTwoZones(unittest.TestCase):
    def setUp(self):
        self.grid = TileGrid(20, 20)
        self.specs = [ZoneSpec("A", Pos(4, 4), 100), ZoneSpec("B", Pos(15, 15), 100)]

    def test_end_to_end_with_repair(self):
        print("\n[TEST] Running test_end_to_end_with_repair...")
        assignment = partition_zones(self.grid, self.specs, RNG(7))
        self.assertEqual(assignment.zone("A").absolute_area, 200)
        self.assertEqual(assignment.zone("A").radius, 4)

        repaired = repair_topology(assignment)
        assignment.refresh(repaired.affected_zones)

        regions = assignment.regions()
        a, b = regions["A"], regions["B"]
        self.assertFalse(a & b)
        self.assertEqual(len(a) + len(b), 400)
        for region in (a, b):
            self.assertTrue(170 <= len(region) <= 230, len(region))
            self.assertEqual(len(split_by_flood_fill(region)), 1)

        # кэш областей совпадает с метками после refresh
        self.assertEqual(assignment.zone("A").area.inner_area, a)
        self.assertEqual(assignment.zone("B").area.inner_area, b)
        print("[TEST] test_end_to_end_with_repair: OK")

    def test_seed_tiles_stay_in_their_zones(self):
        assignment = partition_zones(self.grid, self.specs, RNG(7))
        for zone in assignment.zones:
            self.assertEqual(zone.start_tile.zone_index, zone.index)

    def test_deterministic_for_same_seed(self):
        specs = [
            ZoneSpec("A", Pos(4, 4), 100, center_dispersion=Pos(2, 2)),
            ZoneSpec("B", Pos(15, 15), 100, relative_area_dispersion=20),
        ]
        grid2 = TileGrid(20, 20)
        partition_zones(self.grid, specs, RNG(99))
        partition_zones(grid2, specs, RNG(99))
        self.assertTrue(np.array_equal(self.grid.zone_array(), grid2.zone_array()))

    def test_refresh_subset(self):
        assignment = partition_zones(self.grid, self.specs, RNG(7))
        tile = self.grid.get(0, 0)
        self.assertEqual(tile.zone_index, assignment.zone("A").index)
        tile.zone_index = assignment.zone("B").index
        assignment.refresh(["A"])
        self.assertNotIn(tile, assignment.zone("A").area.inner_area)
        self.assertEqual(assignment.areas()["A"] + assignment.areas()["B"], 400)


def count_spikes(grid, z=0):
    """Тайлы, у которых меньше двух ортогональных соседей своей зоны (край карты - свой)."""
    spikes = 0
    for tile in grid.level_tiles(z):
        same = sum(
            1 for n in (tile.t, tile.l, tile.r, tile.b)
            if n is None or n.zone_index == tile.zone_index
        )
        if same < 2:
            spikes += 1
    return spikes


class TestPartitionCornerSeeds(unittest.TestCase):
    def test_two_equal_zones_near_corners(self):
        print("\n[TEST] Running test_two_equal_zones_near_corners...")
        grid = TileGrid(20, 20)
        specs = [ZoneSpec("A", Pos(2, 2), 100), ZoneSpec("B", Pos(17, 17), 100)]
        assignment = partition_zones(grid, specs, RNG(7))

        repaired = repair_topology(assignment)
        assignment.refresh(repaired.affected_zones)

        regions = assignment.regions()
        a, b = regions["A"], regions["B"]
        self.assertFalse(a & b)
        self.assertEqual(len(a) + len(b), 400)
        for zone in assignment.zones:
            region = regions[zone.id]
            self.assertTrue(190 <= len(region) <= 210, (zone.id, len(region)))
            self.assertEqual(len(split_by_flood_fill(region)), 1)
            self.assertIn(zone.start_tile, region)
            self.assertEqual(zone.area.inner_area, region)
        self.assertEqual(count_spikes(grid), 0)
        print("[TEST] test_two_equal_zones_near_corners: OK")


class TestPartitionManyZones(unittest.TestCase):
    WEIGHTS = [100, 300, 200, 100, 300, 100, 200, 300]

    def setUp(self):
        self.grid = TileGrid(64, 64)
        self.specs = [
            ZoneSpec(f"z{i}", Pos(8 + 16 * (i % 4), 16 + 32 * (i // 4)), weight)
            for i, weight in enumerate(self.WEIGHTS)
        ]

    def test_no_zone_is_starved(self):
        print("\n[TEST] Running test_no_zone_is_starved...")
        assignment = partition_zones(self.grid, self.specs, RNG(21))
        self.assertFalse(assignment.unassigned())
        regions = assignment.regions()
        for zone in assignment.zones:
            self.assertEqual(zone.start_tile.zone_index, zone.index)
            self.assertGreater(zone.placed_area, zone.absolute_area // 4, zone.id)
            self.assertIn(zone.start_tile, regions[zone.id])

        repaired = repair_topology(assignment)
        assignment.refresh(repaired.affected_zones)
        regions = assignment.regions()
        self.assertEqual(sum(len(r) for r in regions.values()), 64 * 64)
        for zone in assignment.zones:
            region = regions[zone.id]
            self.assertTrue(region, zone.id)
            self.assertIn(zone.start_tile, region)
            self.assertEqual(len(split_by_flood_fill(region)), 1, zone.id)
        self.assertEqual(count_spikes(self.grid), 0)
        print("[TEST] test_no_zone_is_starved: OK")

    def test_seed_neighbours_are_not_consumed(self):
        assignment = partition_zones(self.grid, self.specs, RNG(4))
        for zone in assignment.zones:
            for n in zone.start_tile.neighbors4:
                self.assertEqual(n.zone_index, zone.index, zone.id)


class TestPartitionWeighted(unittest.TestCase):
    def test_three_zones_weights(self):
        grid = TileGrid(30, 30)
        specs = [
            ZoneSpec("left", Pos(5, 5), 1),
            ZoneSpec("right", Pos(24, 5), 1),
            ZoneSpec("bottom", Pos(15, 24), 2),
        ]
        assignment = partition_zones(grid, specs, RNG(3))

        targets = {zone.id: zone.absolute_area for zone in assignment.zones}
        self.assertEqual(targets, {"left": 225, "right": 225, "bottom": 450})
        radii = {zone.id: zone.radius for zone in assignment.zones}
        self.assertEqual(radii, {"left": 4, "right": 4, "bottom": 6})

        self.assertFalse(assignment.unassigned())
        self.assertEqual(sum(assignment.areas().values()), 900)
        self.assertTrue(np.all(grid.zone_array() >= 0))


if __name__ == "__main__":
    unittest.main()
