import json
import tempfile
import unittest
from pathlib import Path

from adola.core.tables import (
    DEFAULT_MULTIPLIERS,
    GameTables,
    TableError,
    default_tables,
    load_tables,
)


class TestGameTables(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def _write(self, payload) -> Path:
        path = self.dir / "GAME-TABLES.json"
        path.write_text(payload if isinstance(payload, str) else json.dumps(payload), encoding="utf-8")
        return path

    def test_defaults_cover_documented_games(self):
        tables = default_tables()
        self.assertEqual(tables.get_multipliers("dice"), (1.8, 2.0, 2.5, 3.0, 4.0))
        self.assertEqual(tables.get_bet_bounds("slots"), (5.0, 100.0))
        self.assertEqual(tables.get_bet_bounds("poker"), (10.0, 1000.0))

    def test_unknown_game_falls_back_to_default(self):
        tables = default_tables()
        self.assertEqual(tables.get_multipliers("ludo"), tuple(DEFAULT_MULTIPLIERS["default"]))
        self.assertEqual(tables.get_bet_bounds("ludo"), (1.0, 1000.0))

    def test_tables_are_read_only(self):
        tables = default_tables()
        with self.assertRaises(TypeError):
            tables.multipliers["dice"] = (9.0,)
        self.assertIsInstance(tables.get_multipliers("dice"), tuple)

    def test_missing_file_uses_defaults(self):
        tables = load_tables(self.dir / "nope.json")
        self.assertEqual(tables.to_dict(), default_tables().to_dict())

    def test_invalid_json_uses_defaults(self):
        tables = load_tables(self._write("{not json"))
        self.assertEqual(tables.to_dict(), default_tables().to_dict())

    def test_file_overrides_named_games_only(self):
        path = self._write({
            "multipliers": {"dice": [1.5, 2.0], "wheel": [1.1, 1.2]},
            "bet_bounds": {"dice": {"min": 2, "max": 50}, "wheel": [1, 10]},
        })
        tables = load_tables(path)
        self.assertEqual(tables.get_multipliers("dice"), (1.5, 2.0))
        self.assertEqual(tables.get_multipliers("wheel"), (1.1, 1.2))
        self.assertEqual(tables.get_bet_bounds("dice"), (2.0, 50.0))
        self.assertEqual(tables.get_bet_bounds("wheel"), (1.0, 10.0))
        # Untouched games keep defaults
        self.assertEqual(tables.get_multipliers("slots"), tuple(DEFAULT_MULTIPLIERS["slots"]))

    def test_descending_multipliers_rejected(self):
        tables = load_tables(self._write({"multipliers": {"dice": [3.0, 2.0]}}))
        self.assertEqual(tables.get_multipliers("dice"), tuple(DEFAULT_MULTIPLIERS["dice"]))

    def test_non_numeric_multiplier_uses_defaults(self):
        tables = load_tables(self._write({"multipliers": {"dice": ["abc"]}}))
        self.assertEqual(tables.to_dict(), default_tables().to_dict())

    def test_top_level_array_uses_defaults(self):
        tables = load_tables(self._write([]))
        self.assertEqual(tables.to_dict(), default_tables().to_dict())

    def test_non_object_sections_use_defaults(self):
        for payload in ({"multipliers": [1.5, 2.0]}, {"bet_bounds": "1-1000"}):
            with self.subTest(payload=payload):
                tables = load_tables(self._write(payload))
                self.assertEqual(tables.to_dict(), default_tables().to_dict())

    def test_malformed_entries_raise_table_error(self):
        bad_multipliers = ({"dice": 5}, {"dice": "2.0"}, {"dice": [1.5, float("nan")]})
        for entry in bad_multipliers:
            with self.subTest(entry=entry):
                with self.assertRaises(TableError):
                    GameTables({**DEFAULT_MULTIPLIERS, **entry}, {"default": [1, 1000]})
        with self.assertRaises(TableError):
            GameTables(DEFAULT_MULTIPLIERS, {"default": [1, float("inf")]})

    def test_inverted_bounds_rejected(self):
        with self.assertRaises(TableError):
            GameTables(DEFAULT_MULTIPLIERS, {"default": [1, 1000], "dice": [50, 10]})

    def test_default_entry_required(self):
        with self.assertRaises(TableError):
            GameTables({"dice": [2.0]}, {"default": [1, 10]})

    def test_to_dict_shape(self):
        data = default_tables().to_dict()
        self.assertEqual(data["bet_bounds"]["slots"], {"min": 5.0, "max": 100.0})
        self.assertEqual(data["multipliers"]["tower"], [1.3, 1.8, 2.5, 4.0, 6.0])


if __name__ == "__main__":
    unittest.main()
