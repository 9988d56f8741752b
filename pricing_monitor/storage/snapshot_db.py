# pricing_monitor/storage/snapshot_db.py

"""SQLite-backed store for monitors, snapshots and detected changes."""

import json
import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any

from pricing_monitor.config.settings import Settings
from pricing_monitor.models.monitor import ChangeRecord, Monitor, Snapshot
from pricing_monitor.models.pricing import NormalizedPricing

logger = logging.getLogger("pricing_monitor.snapshot_db")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS monitors (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    url             TEXT    NOT NULL,
    name            TEXT,
    region          TEXT,
    css_hint        TEXT,
    node_index      INTEGER,
    email           TEXT,
    chat_webhook    TEXT,
    is_active       INTEGER NOT NULL DEFAULT 1,
    created_at      TEXT    NOT NULL,
    last_checked_at TEXT
);

CREATE TABLE IF NOT EXISTS snapshots (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    monitor_id        INTEGER
                      REFERENCES monitors(id) ON DELETE CASCADE,
    url               TEXT    NOT NULL,
    html              TEXT    NOT NULL,
    text              TEXT    NOT NULL,
    pricing           TEXT    NOT NULL,
    html_hash         TEXT    NOT NULL,
    text_hash         TEXT    NOT NULL,
    pricing_hash      TEXT    NOT NULL,
    visual_hash       TEXT,
    screenshot_sha256 TEXT,
    screenshot_path   TEXT,
    created_at        TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS changes (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    monitor_id       INTEGER NOT NULL
                     REFERENCES monitors(id) ON DELETE CASCADE,
    prev_snapshot_id INTEGER REFERENCES snapshots(id),
    new_snapshot_id  INTEGER NOT NULL REFERENCES snapshots(id),
    summary          TEXT    NOT NULL,
    diff             TEXT    NOT NULL,
    created_at       TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_snapshots_monitor_date
    ON snapshots(monitor_id, created_at);
CREATE INDEX IF NOT EXISTS idx_changes_monitor_date
    ON changes(monitor_id, created_at);
"""

_MONITOR_COLUMNS = (
    "id, url, name, region, css_hint, node_index, email, "
    "chat_webhook, is_active, last_checked_at"
)

_SNAPSHOT_COLUMNS = (
    "id, monitor_id, url, html, text, pricing, html_hash, text_hash, "
    "pricing_hash, visual_hash, screenshot_sha256, screenshot_path, "
    "created_at"
)


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _row_to_monitor(r: tuple[Any, ...]) -> Monitor:
    return Monitor(
        id=r[0],
        url=r[1],
        name=r[2],
        region=r[3],
        css_hint=r[4],
        node_index=r[5],
        email=r[6],
        chat_webhook=r[7],
        is_active=bool(r[8]),
        last_checked_at=_parse_ts(r[9]),
    )


def _row_to_snapshot(r: tuple[Any, ...]) -> Snapshot:
    try:
        pricing_data = json.loads(r[5])
    except (json.JSONDecodeError, TypeError):
        logger.warning("Unreadable pricing JSON in snapshot %s", r[0])
        pricing_data = None
    return Snapshot(
        id=r[0],
        monitor_id=r[1],
        url=r[2],
        html=r[3],
        text=r[4],
        pricing=NormalizedPricing.from_dict(pricing_data),
        html_hash=r[6],
        text_hash=r[7],
        pricing_hash=r[8],
        visual_hash=r[9],
        screenshot_sha256=r[10],
        screenshot_path=r[11],
        created_at=datetime.fromisoformat(r[12]),
    )


class SnapshotDB:
    """SQLite-backed store shared by concurrent checks.

    One connection is shared across worker threads; writes are
    serialised with a lock.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        path = db_path or Settings.PRICING_DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.executescript(_SCHEMA)
        logger.debug("SnapshotDB opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # ── Monitors ─────────────────────────────────────────

    def add_monitor(self, monitor: Monitor) -> Monitor:
        """Insert *monitor* and return it with its new id."""
        now = datetime.now().isoformat()
        with self._lock:
            cur = self._conn.execute(
                "INSERT INTO monitors (url, name, region, css_hint, "
                "node_index, email, chat_webhook, is_active, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    monitor.url,
                    monitor.name,
                    monitor.region,
                    monitor.css_hint,
                    monitor.node_index,
                    monitor.email,
                    monitor.chat_webhook,
                    int(monitor.is_active),
                    now,
                ),
            )
            self._conn.commit()
        monitor.id = cur.lastrowid
        logger.info("Added monitor %d for %s", monitor.id, monitor.url)
        return monitor

    def get_monitor(self, monitor_id: int) -> Monitor | None:
        """Return one monitor, or ``None`` if the id is unknown."""
        row = self._conn.execute(
            f"SELECT {_MONITOR_COLUMNS} FROM monitors WHERE id = ?",
            (monitor_id,),
        ).fetchone()
        return _row_to_monitor(row) if row else None

    def list_monitors(self, active_only: bool = False) -> list[Monitor]:
        """All monitors, oldest first."""
        sql = f"SELECT {_MONITOR_COLUMNS} FROM monitors"
        if active_only:
            sql += " WHERE is_active = 1"
        rows = self._conn.execute(sql + " ORDER BY id ASC").fetchall()
        return [_row_to_monitor(r) for r in rows]

    def touch_monitor(
        self, monitor_id: int, checked_at: datetime | None = None,
    ) -> None:
        """Stamp ``last_checked_at`` on a monitor."""
        ts = (checked_at or datetime.now()).isoformat()
        with self._lock:
            self._conn.execute(
                "UPDATE monitors SET last_checked_at = ? WHERE id = ?",
                (ts, monitor_id),
            )
            self._conn.commit()

    # ── Snapshots ────────────────────────────────────────

    def save_snapshot(self, snapshot: Snapshot) -> int:
        """Persist *snapshot* and return its id."""
        with self._lock:
            cur = self._conn.execute(
                "INSERT INTO snapshots (monitor_id, url, html, text, "
                "pricing, html_hash, text_hash, pricing_hash, visual_hash, "
                "screenshot_sha256, screenshot_path, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    snapshot.monitor_id,
                    snapshot.url,
                    snapshot.html,
                    snapshot.text,
                    json.dumps(
                        snapshot.pricing.to_dict(), ensure_ascii=False,
                    ),
                    snapshot.html_hash,
                    snapshot.text_hash,
                    snapshot.pricing_hash,
                    snapshot.visual_hash,
                    snapshot.screenshot_sha256,
                    snapshot.screenshot_path,
                    snapshot.created_at.isoformat(),
                ),
            )
            self._conn.commit()
        snapshot_id = cur.lastrowid
        assert snapshot_id is not None
        snapshot.id = snapshot_id
        logger.debug(
            "Saved snapshot %d for monitor %s",
            snapshot_id,
            snapshot.monitor_id,
        )
        return snapshot_id

    def latest_snapshot(self, monitor_id: int) -> Snapshot | None:
        """Most recent snapshot of a monitor, or ``None``."""
        row = self._conn.execute(
            f"SELECT {_SNAPSHOT_COLUMNS} FROM snapshots "
            "WHERE monitor_id = ? "
            "ORDER BY created_at DESC, id DESC LIMIT 1",
            (monitor_id,),
        ).fetchone()
        return _row_to_snapshot(row) if row else None

    def count_snapshots(self, monitor_id: int) -> int:
        """Number of snapshots stored for a monitor."""
        row = self._conn.execute(
            "SELECT COUNT(id) FROM snapshots WHERE monitor_id = ?",
            (monitor_id,),
        ).fetchone()
        return int(row[0]) if row else 0

    # ── Changes ──────────────────────────────────────────

    def record_change(self, change: ChangeRecord) -> int:
        """Persist a detected change and return its id."""
        with self._lock:
            cur = self._conn.execute(
                "INSERT INTO changes (monitor_id, prev_snapshot_id, "
                "new_snapshot_id, summary, diff, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    change.monitor_id,
                    change.prev_snapshot_id,
                    change.new_snapshot_id,
                    change.summary,
                    json.dumps(change.diff, ensure_ascii=False),
                    change.created_at.isoformat(),
                ),
            )
            self._conn.commit()
        change_id = cur.lastrowid
        assert change_id is not None
        change.id = change_id
        logger.info(
            "Recorded change %d for monitor %d: %s",
            change_id,
            change.monitor_id,
            change.summary,
        )
        return change_id

    def list_changes(
        self, monitor_id: int, limit: int | None = None,
    ) -> list[ChangeRecord]:
        """Changes of a monitor, newest first."""
        sql = (
            "SELECT id, monitor_id, prev_snapshot_id, new_snapshot_id, "
            "summary, diff, created_at FROM changes "
            "WHERE monitor_id = ? ORDER BY created_at DESC, id DESC"
        )
        params: tuple[Any, ...] = (monitor_id,)
        if limit is not None:
            sql += " LIMIT ?"
            params = (monitor_id, limit)
        rows = self._conn.execute(sql, params).fetchall()
        return [
            ChangeRecord(
                id=r[0],
                monitor_id=r[1],
                prev_snapshot_id=r[2],
                new_snapshot_id=r[3],
                summary=r[4],
                diff=json.loads(r[5]),
                created_at=datetime.fromisoformat(r[6]),
            )
            for r in rows
        ]
