from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from slntree.tree_sync import persistence


class ExpandedStatePersistenceTests(unittest.TestCase):
    def test_round_trip_per_key(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            state_path = Path(tmp) / "state" / "expanded.json"
            with mock.patch("slntree.tree_sync.persistence.STATE_PATH", state_path):
                persistence.save_expanded_tokens("/a.sln", ["t1", "t2"])
                persistence.save_expanded_tokens("/b.sln", ["t3"])

                self.assertEqual(persistence.load_expanded_tokens("/a.sln"), ["t1", "t2"])
                self.assertEqual(persistence.load_expanded_tokens("/b.sln"), ["t3"])
                self.assertEqual(persistence.load_expanded_tokens("/c.sln"), [])

    def test_empty_list_removes_key(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            state_path = Path(tmp) / "expanded.json"
            with mock.patch("slntree.tree_sync.persistence.STATE_PATH", state_path):
                persistence.save_expanded_tokens("/a.sln", ["t1"])
                persistence.save_expanded_tokens("/a.sln", [])

                self.assertEqual(json.loads(state_path.read_text(encoding="utf-8")), {})

    def test_malformed_state_is_sanitized(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            state_path = Path(tmp) / "expanded.json"
            state_path.write_text(json.dumps({"/a.sln": ["ok", 3, "", "ok", None, "fine"], "/b.sln": "bad"}), encoding="utf-8")
            with mock.patch("slntree.tree_sync.persistence.STATE_PATH", state_path):
                self.assertEqual(persistence.load_expanded_tokens("/a.sln"), ["ok", "fine"])
                self.assertEqual(persistence.load_expanded_tokens("/b.sln"), [])

            state_path.write_text("{not json", encoding="utf-8")
            with mock.patch("slntree.tree_sync.persistence.STATE_PATH", state_path):
                self.assertEqual(persistence.load_expanded_tokens("/a.sln"), [])


if __name__ == "__main__":
    unittest.main()
