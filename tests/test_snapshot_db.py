# tests/test_snapshot_db.py

"""Tests for the SQLite monitor / snapshot / change store."""

import shutil
import tempfile
import unittest
from datetime import datetime, timedelta
from pathlib import Path

from pricing_monitor.models.monitor import ChangeRecord, Monitor, Snapshot
from pricing_monitor.models.pricing import NormalizedPricing, Tier
from pricing_monitor.storage.snapshot_db import SnapshotDB


def _snapshot(
    monitor_id: int, amount: float, created_at: datetime,
) -> Snapshot:
    pricing = NormalizedPricing.from_tiers([
        Tier(name="Pro", amount=amount, currency="$", period="monthly",
             raw=f"Pro ${amount} per month", features=["SSO"]),
    ])
    return Snapshot(
        monitor_id=monitor_id,
        url="https://example.com/pricing",
        html="<div>Pro</div>",
        text="Pro",
        pricing=pricing,
        html_hash="h" * 64,
        text_hash="t" * 64,
        pricing_hash=f"{amount}",
        created_at=created_at,
    )


class TestSnapshotDB(unittest.TestCase):
    """Round trips through a temporary database."""

    def setUp(self) -> None:
        """Create a fresh temp DB for each test."""
        self.tmp_dir = tempfile.mkdtemp()
        self.db = SnapshotDB(db_path=Path(self.tmp_dir) / "test.db")
        self.monitor = self.db.add_monitor(Monitor(
            url="https://example.com/pricing",
            name="Example",
            css_hint=".plan-card",
            node_index=2,
            email="ops@example.com",
        ))

    def tearDown(self) -> None:
        """Close the database and remove the temp dir."""
        self.db.close()
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def test_add_and_get_monitor(self) -> None:
        """All monitor fields survive a round trip."""
        assert self.monitor.id is not None
        loaded = self.db.get_monitor(self.monitor.id)
        assert loaded is not None
        self.assertEqual(loaded.url, "https://example.com/pricing")
        self.assertEqual(loaded.css_hint, ".plan-card")
        self.assertEqual(loaded.node_index, 2)
        self.assertTrue(loaded.is_active)
        self.assertIsNone(loaded.last_checked_at)

    def test_unknown_monitor(self) -> None:
        """Missing ids give None."""
        self.assertIsNone(self.db.get_monitor(9999))

    def test_list_active_only(self) -> None:
        """Inactive monitors are filtered on request."""
        self.db.add_monitor(Monitor(url="https://b.example", is_active=False))
        self.assertEqual(len(self.db.list_monitors()), 2)
        active = self.db.list_monitors(active_only=True)
        self.assertEqual([m.name for m in active], ["Example"])

    def test_touch_monitor(self) -> None:
        """last_checked_at is stamped."""
        assert self.monitor.id is not None
        when = datetime(2026, 3, 1, 12, 0, 0)
        self.db.touch_monitor(self.monitor.id, when)
        loaded = self.db.get_monitor(self.monitor.id)
        assert loaded is not None
        self.assertEqual(loaded.last_checked_at, when)

    def test_latest_snapshot(self) -> None:
        """The newest snapshot is returned with its pricing decoded."""
        assert self.monitor.id is not None
        now = datetime.now()
        self.db.save_snapshot(
            _snapshot(self.monitor.id, 29.0, now - timedelta(days=1)),
        )
        newest_id = self.db.save_snapshot(
            _snapshot(self.monitor.id, 39.0, now),
        )
        latest = self.db.latest_snapshot(self.monitor.id)
        assert latest is not None
        self.assertEqual(latest.id, newest_id)
        self.assertEqual(latest.pricing.tiers[0].amount, 39.0)
        self.assertEqual(latest.pricing.tiers[0].features, ["SSO"])
        self.assertEqual(latest.pricing.unit, "per_month")
        self.assertEqual(self.db.count_snapshots(self.monitor.id), 2)

    def test_no_snapshot(self) -> None:
        """A fresh monitor has no latest snapshot."""
        assert self.monitor.id is not None
        self.assertIsNone(self.db.latest_snapshot(self.monitor.id))

    def test_record_and_list_changes(self) -> None:
        """Changes come back newest first with their diff."""
        assert self.monitor.id is not None
        now = datetime.now()
        first = self.db.save_snapshot(
            _snapshot(self.monitor.id, 29.0, now - timedelta(days=1)),
        )
        second = self.db.save_snapshot(
            _snapshot(self.monitor.id, 39.0, now),
        )
        diff = {
            "unit": None,
            "tiers": [{
                "index": 0,
                "change": "modified",
                "amount": {"from": 29.0, "to": 39.0},
            }],
        }
        self.db.record_change(ChangeRecord(
            monitor_id=self.monitor.id,
            prev_snapshot_id=first,
            new_snapshot_id=second,
            summary="tier 0 modified: amount 29.0 -> 39.0",
            diff=diff,
        ))
        changes = self.db.list_changes(self.monitor.id)
        self.assertEqual(len(changes), 1)
        self.assertEqual(changes[0].diff, diff)
        self.assertEqual(changes[0].prev_snapshot_id, first)
        self.assertEqual(changes[0].new_snapshot_id, second)


if __name__ == "__main__":
    unittest.main()
