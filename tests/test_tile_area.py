# ==============================================================================
# Файл: tests/test_tile_area.py
# Назначение: Тесты TileArea: кэш краёв, доводка краёв, разбиения.
# ==============================================================================
import unittest

import sys
from pathlib import Path

sys.path.append(str(Path(__file__).parent.parent))

from rmg_engine.world.tile_area import RefineTask, TileArea
from rmg_engine.world.tile_grid import TileGrid
from rmg_engine.world.tile_region import TileRegion


def _block(grid, x0, y0, x1, y1):
    return TileRegion(grid.get(x, y) for y in range(y0, y1 + 1) for x in range(x0, x1 + 1))


class TestTileArea(unittest.TestCase):
    def setUp(self):
        self.grid = TileGrid(8, 8)

    def test_edges_are_built_from_inner_area(self):
        area = TileArea.from_region(_block(self.grid, 1, 1, 3, 3))
        self.assertEqual(len(area.inner_edge), 8)
        self.assertEqual(len(area.outside_edge), 12)
        area.remove_edge_from_inner_area()
        self.assertEqual(area.inner_area, TileRegion([self.grid.get(2, 2)]))

    def test_remove_spikes(self):
        block = _block(self.grid, 1, 1, 3, 3)
        spike = self.grid.get(4, 2)
        spike.segment_index = 1
        area = TileArea.from_region(block | TileRegion([spike]))

        area.refine_edge(RefineTask.RemoveSpikes, self.grid.all, 1)
        self.assertEqual(area.inner_area, block)
        self.assertEqual(spike.segment_index, 0)

    def test_remove_hollows(self):
        hole = self.grid.get(2, 2)
        area = TileArea.from_region(_block(self.grid, 1, 1, 3, 3) - TileRegion([hole]))

        area.refine_edge(RefineTask.RemoveHollows, self.grid.all, 3)
        self.assertIn(hole, area.inner_area)
        self.assertEqual(len(area.inner_area), 9)
        self.assertEqual(hole.segment_index, 3)

    def test_expand_respects_other_segments(self):
        center = self.grid.get(2, 2)
        self.grid.get(3, 2).segment_index = 7
        area = TileArea.from_region(TileRegion([center]))

        area.refine_edge(RefineTask.Expand, self.grid.all, 1)
        self.assertEqual(len(area.inner_area), 4)
        self.assertNotIn(self.grid.get(3, 2), area.inner_area)

    def test_expand_respects_allowed_area(self):
        area = TileArea.from_region(TileRegion([self.grid.get(2, 2)]))
        allowed = TileRegion([self.grid.get(2, 1)])
        area.refine_edge(RefineTask.Expand, allowed, 1)
        self.assertEqual(len(area.inner_area), 2)

    def test_bottom_edge(self):
        area = TileArea.from_region(_block(self.grid, 1, 1, 3, 3))
        bottom = area.get_bottom_edge()
        self.assertEqual(bottom, TileRegion(self.grid.get(x, 3) for x in (1, 2, 3)))

    def test_flood_fill_diagonal_by_inner_edge(self):
        area = TileArea.from_region(_block(self.grid, 1, 1, 4, 4))
        ring = area.flood_fill_diagonal_by_inner_edge(self.grid.get(1, 1))
        self.assertEqual(ring.inner_area, area.inner_edge)

    def test_inner_border_net(self):
        left = TileArea.from_region(_block(self.grid, 0, 0, 1, 1))
        right = TileArea.from_region(_block(self.grid, 2, 0, 3, 1))
        net = TileArea.inner_border_net([left, right])
        self.assertEqual(net.inner_area, TileRegion([self.grid.get(1, 0), self.grid.get(1, 1)]))

    def test_split_by_flood_fill(self):
        region = _block(self.grid, 0, 0, 1, 1) | _block(self.grid, 5, 5, 7, 7)
        parts = TileArea(inner_area=region).split_by_flood_fill()
        self.assertEqual(sorted(len(p) for p in parts), [4, 9])
        # у каждой части свой кэш краёв
        self.assertTrue(all(p.inner_edge for p in parts))

    def test_split_by_k_partitions_area(self):
        area = TileArea.from_region(_block(self.grid, 0, 0, 7, 1))
        parts = area.split_by_k(2)
        self.assertEqual(len(parts), 2)
        union = TileRegion()
        for p in parts:
            self.assertFalse(union & p.inner_area)
            union = union | p.inner_area
        self.assertEqual(union, area.inner_area)

    def test_split_by_max_area(self):
        area = TileArea.from_region(_block(self.grid, 0, 0, 7, 7))
        parts = area.split_by_max_area(20)
        self.assertEqual(sum(len(p) for p in parts), 64)
        self.assertGreater(len(parts), 1)


if __name__ == "__main__":
    unittest.main()
