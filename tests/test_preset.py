# tests/test_preset.py
import json
import os
import tempfile
import unittest

import sys
from pathlib import Path

sys.path.append(str(Path(__file__).parent.parent))

from rmg_engine.core.errors import ConfigurationError
from rmg_engine.core.preset import (
    DEFAULT_RMG_PRESET,
    NotFoundError,
    ValidationError,
    deep_merge,
    load_preset,
)
from rmg_engine.core.types import Pos


class TestLoadPreset(unittest.TestCase):
    def test_defaults(self):
        preset = load_preset()
        self.assertEqual(preset.size, (36, 36, 1))
        self.assertEqual(preset.deficit_passes, ((20, False), (10, True), (0, True)))
        self.assertEqual(preset.repair["max_iterations"], 10)

        specs = preset.zone_specs()
        self.assertEqual([s.id for s in specs], ["player_1", "player_2"])
        self.assertEqual(specs[0].center, Pos(6, 6, 0))
        self.assertEqual(specs[0].guard_max, 2000)
        self.assertEqual(len(preset.zone_objects("player_1")), 3)
        self.assertEqual(preset.zone_objects("nope"), [])

    def test_overrides_are_merged(self):
        preset = load_preset(overrides={"seed": 5, "grid": {"width": 40}})
        self.assertEqual(preset.seed, 5)
        self.assertEqual(preset.size, (40, 36, 1))
        self.assertEqual(len(preset.zones), 2)

    def test_deep_merge_does_not_mutate(self):
        base = {"a": {"b": 1, "c": [1, 2]}}
        merged = deep_merge(base, {"a": {"b": 2, "c": [3]}})
        self.assertEqual(merged, {"a": {"b": 2, "c": [3]}})
        self.assertEqual(base, {"a": {"b": 1, "c": [1, 2]}})
        self.assertEqual(DEFAULT_RMG_PRESET["seed"], 0)

    def test_load_from_json_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "preset.json")
            with open(path, "w", encoding="utf-8") as f:
                json.dump({"id": "rmg/file", "seed": 77}, f)
            preset = load_preset(path)
        self.assertEqual(preset.id, "rmg/file")
        self.assertEqual(preset.seed, 77)
        self.assertEqual(preset.to_dict()["id"], "rmg/file")

    def test_missing_file(self):
        with self.assertRaises(NotFoundError):
            load_preset("/definitely/not/here.json")

    def test_broken_json(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "broken.json")
            with open(path, "w", encoding="utf-8") as f:
                f.write("{not json")
            with self.assertRaises(ValidationError):
                load_preset(path)

    def test_bad_source_type(self):
        with self.assertRaises(TypeError):
            load_preset(42)


class TestValidation(unittest.TestCase):
    def _zones_with(self, **changes):
        zones = [dict(z) for z in DEFAULT_RMG_PRESET["zones"]]
        zones[0].update(changes)
        return {"zones": zones}

    def test_center_outside_grid(self):
        with self.assertRaises(ValidationError):
            load_preset(self._zones_with(center=[100, 3]))

    def test_bad_guard_position(self):
        obj = {"id": "x", "kind": "resource", "guard_position": "CENTER"}
        with self.assertRaises(ValidationError):
            load_preset(self._zones_with(objects=[obj]))

    def test_bad_segmentation(self):
        with self.assertRaises(ValidationError):
            load_preset(overrides={"segmentation": {"max_area": 0}})

    def test_bad_deficit_pass(self):
        with self.assertRaises(ValidationError):
            load_preset(overrides={"partition": {"deficit_passes": [[120, True]]}})

    def test_preset_errors_are_configuration_errors(self):
        with self.assertRaises(ConfigurationError):
            load_preset(overrides={"grid": {"height": 0}})


if __name__ == "__main__":
    unittest.main()
