#!/usr/bin/env python3
"""
Tests for row identity resolution
"""

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from tablesync.engine.errors import SerializationError
from tablesync.engine.identity import (
    assign_row_ids, resolve_row_id, serialize_row, stringify_id
)


class TestResolveRowId(unittest.TestCase):

    def test_id_field_ignores_position(self):
        for position in (None, 0, 3, 99):
            self.assertEqual(resolve_row_id({"id": 7}, position), "7")

    def test_underscore_id_field(self):
        self.assertEqual(resolve_row_id({"_id": "abc", "name": "x"}, 1), "abc")

    def test_null_id_falls_through(self):
        self.assertEqual(resolve_row_id({"id": None, "_id": 5}), "5")
        self.assertEqual(resolve_row_id({"id": None, "_id": None}, 2), "row-2")

    def test_zero_is_a_valid_id(self):
        self.assertEqual(resolve_row_id({"id": 0}, 4), "0")

    def test_position(self):
        self.assertEqual(resolve_row_id({"name": "a"}, 3), "row-3")

    def test_content_key_is_deterministic(self):
        first = resolve_row_id({"name": "a", "qty": 2})
        second = resolve_row_id({"name": "a", "qty": 2})
        self.assertEqual(first, second)
        self.assertTrue(first.startswith("row-hash-"))
        self.assertNotEqual(first, resolve_row_id({"name": "b", "qty": 2}))

    def test_cyclic_row_does_not_raise(self):
        row = {"name": "loop"}
        row["self"] = row
        row_id = resolve_row_id(row)
        self.assertTrue(row_id.startswith("row-"))
        self.assertFalse(row_id.startswith("row-hash-"))

    def test_cyclic_row_with_position_is_stable(self):
        row = {"name": "loop"}
        row["self"] = row
        self.assertEqual(resolve_row_id(row, 5), "row-5")


class TestStringify(unittest.TestCase):

    def test_host_conventions(self):
        self.assertEqual(stringify_id(7.0), "7")
        self.assertEqual(stringify_id(7.5), "7.5")
        self.assertEqual(stringify_id(True), "true")
        self.assertEqual(stringify_id("x-1"), "x-1")

    def test_serialize_row(self):
        self.assertEqual(serialize_row({"a": 1}), '{"a":1}')
        row = []
        row.append(row)
        with self.assertRaises(SerializationError):
            serialize_row(row)


class TestAssignRowIds(unittest.TestCase):

    def test_positions_are_used(self):
        rows = [{"name": "a"}, {"id": 10}, {"name": "c"}]
        self.assertEqual(assign_row_ids(rows), ["row-0", "10", "row-2"])

    def test_duplicates_are_disambiguated(self):
        rows = [{"id": 1}, {"id": 1}, {"id": 1}, {"name": "x"}]
        row_ids = assign_row_ids(rows)
        self.assertEqual(row_ids, ["1", "1#1", "1#2", "row-3"])
        self.assertEqual(len(set(row_ids)), len(rows))

    def test_disambiguation_avoids_existing_ids(self):
        rows = [{"id": "1#1"}, {"id": 1}, {"id": 1}]
        row_ids = assign_row_ids(rows)
        self.assertEqual(len(set(row_ids)), 3)
        self.assertEqual(row_ids[:2], ["1#1", "1"])


if __name__ == "__main__":
    unittest.main()
