#!/usr/bin/env python3
"""
Tests for the edit tracker and output channels
"""

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from tablesync.engine.edit_tracker import EditTracker
from tablesync.engine.outputs import OutputChannel, OutputViews


class TestEditTracker(unittest.TestCase):

    def setUp(self):
        self.tracker = EditTracker()
        self.rows = [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}, {"id": 3, "name": "c"}]
        self.id_of = lambda row, index: str(row["id"])

    def test_record_is_idempotent(self):
        for _ in range(5):
            self.tracker.record_edit("2")
        self.assertEqual(len(self.tracker), 1)
        self.assertTrue(self.tracker.is_changed("2"))
        self.assertIn("2", self.tracker)
        self.assertFalse(self.tracker.is_changed("1"))

    def test_reset(self):
        self.tracker.record_edit("1")
        self.tracker.record_edit("3")
        self.tracker.reset()
        self.assertEqual(len(self.tracker), 0)
        self.assertEqual(self.tracker.changed_ids, set())

    def test_snapshot_changed_follows_row_order(self):
        self.tracker.record_edit("3")
        self.tracker.record_edit("1")
        changed = self.tracker.snapshot_changed(self.rows, self.id_of)
        self.assertEqual(changed, [self.rows[0], self.rows[2]])

    def test_snapshot_reflects_current_values(self):
        self.tracker.record_edit("2")
        self.rows[1]["name"] = "B"
        self.rows[1]["extra"] = True
        changed = self.tracker.snapshot_changed(self.rows, self.id_of)
        self.assertEqual(changed, [{"id": 2, "name": "B", "extra": True}])

    def test_snapshot_uses_position_resolver(self):
        self.tracker.record_edit("row-1")
        changed = self.tracker.snapshot_changed(self.rows, lambda row, index: f"row-{index}")
        self.assertEqual(changed, [self.rows[1]])

    def test_snapshot_when_nothing_changed(self):
        self.assertEqual(self.tracker.snapshot_changed(self.rows, self.id_of), [])

    def test_retain_purges_missing_identities(self):
        self.tracker.record_edit("1")
        self.tracker.record_edit("gone")
        self.tracker.retain(["1", "2"])
        self.assertEqual(self.tracker.changed_ids, {"1"})

    def test_changed_ids_is_a_copy(self):
        self.tracker.record_edit("1")
        self.tracker.changed_ids.add("2")
        self.assertEqual(len(self.tracker), 1)


class TestOutputChannels(unittest.TestCase):

    def test_publish_notifies_subscribers(self):
        channel = OutputChannel("selectedRows")
        received = []
        unsubscribe = channel.subscribe(received.append)
        channel.publish([{"id": 1}])
        unsubscribe()
        channel.publish([])
        self.assertEqual(received, [[{"id": 1}]])
        self.assertEqual(channel.value, [])

    def test_failing_subscriber_does_not_block_others(self):
        channel = OutputChannel("editedData")
        received = []

        def broken(rows):
            raise ValueError("host error")

        channel.subscribe(broken)
        channel.subscribe(received.append)
        with self.assertLogs("tablesync.engine.outputs", level="ERROR"):
            channel.publish([1])
        self.assertEqual(received, [[1]])

    def test_value_is_a_copy(self):
        channel = OutputChannel("changedRows")
        channel.publish([1, 2])
        channel.value.append(3)
        self.assertEqual(channel.value, [1, 2])

    def test_rows_are_copied(self):
        channel = OutputChannel("editedData")
        received = []
        channel.subscribe(received.append)
        rows = [{"id": 1, "tags": ["a"]}]
        channel.publish(rows)

        rows[0]["tags"].append("b")
        received[0][0]["id"] = 99
        self.assertEqual(channel.value, [{"id": 1, "tags": ["a"]}])

    def test_reset(self):
        views = OutputViews()
        views.selected_rows.publish([1])
        views.changed_rows.publish([1])
        views.reset([1, 2])
        self.assertEqual(views.selected_rows.value, [])
        self.assertEqual(views.changed_rows.value, [])
        self.assertEqual(views.edited_data.value, [1, 2])
        self.assertEqual([c.name for c in views.channels()],
                         ["selectedRows", "editedData", "changedRows"])


if __name__ == "__main__":
    unittest.main()
