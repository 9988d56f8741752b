# pricing_monitor/models/monitor.py

"""Monitor, snapshot and change records handled by persistence."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pricing_monitor.models.pricing import NormalizedPricing


@dataclass
class Monitor:
    """A pricing page under watch.

    ``css_hint`` and ``node_index`` (1-based) come from the selector
    picker and may be stale by the time a check runs.
    """

    url: str
    id: int | None = None
    name: str | None = None
    region: str | None = None
    css_hint: str | None = None
    node_index: int | None = None
    email: str | None = None
    chat_webhook: str | None = None
    is_active: bool = True
    last_checked_at: datetime | None = None

    @property
    def label(self) -> str:
        """Human-readable name for logs and alerts."""
        return self.name or self.url


@dataclass
class Snapshot:
    """One immutable extraction result for a monitor."""

    monitor_id: int | None
    url: str
    html: str
    text: str
    pricing: NormalizedPricing
    html_hash: str
    text_hash: str
    pricing_hash: str
    visual_hash: str | None = None
    screenshot_sha256: str | None = None
    screenshot_path: str | None = None
    created_at: datetime = field(default_factory=datetime.now)
    id: int | None = None


@dataclass
class ChangeRecord:
    """A material pricing change between two consecutive snapshots."""

    monitor_id: int
    new_snapshot_id: int
    summary: str
    diff: dict[str, Any]
    prev_snapshot_id: int | None = None
    created_at: datetime = field(default_factory=datetime.now)
    id: int | None = None
