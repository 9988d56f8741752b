# pricing_monitor/services/check_orchestrator.py

"""Runs monitor checks: capture, extract, hash, diff, persist, alert."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pricing_monitor.capture.page_capture import PageCapture
from pricing_monitor.config.settings import Settings
from pricing_monitor.detection.content_hasher import (
    ContentFingerprint,
    ContentHasher,
    html_to_text,
)
from pricing_monitor.detection.diff_engine import DiffEngine, DiffResult
from pricing_monitor.errors import CaptureError, NotificationError
from pricing_monitor.extraction.extractor import PricingExtractor
from pricing_monitor.models.monitor import ChangeRecord, Monitor, Snapshot
from pricing_monitor.models.pricing import NormalizedPricing
from pricing_monitor.services.notifier import Notifier
from pricing_monitor.storage.file_manager import FileManager
from pricing_monitor.storage.snapshot_db import SnapshotDB

logger = logging.getLogger("pricing_monitor.orchestrator")


@dataclass
class CheckResult:
    """Outcome of one monitor check.

    ``ok`` is False only when the page could not be captured.  Later
    failures (persistence, alerts) leave the computed pricing and
    hashes in place and are listed in ``errors``.
    """

    monitor_id: int | None
    url: str
    ok: bool = False
    changed: bool = False
    pricing: NormalizedPricing | None = None
    fingerprint: ContentFingerprint | None = None
    diff: DiffResult | None = None
    scope: str | None = None
    mode: str | None = None
    reason: str | None = None
    snapshot_id: int | None = None
    change_id: int | None = None
    screenshot_path: str | None = None
    notified: list[str] = field(
        default_factory=lambda: list[str]()
    )
    errors: list[str] = field(
        default_factory=lambda: list[str]()
    )

    def to_dict(self) -> dict[str, Any]:
        """Plain dict for JSON output and reports."""
        return {
            "monitor_id": self.monitor_id,
            "url": self.url,
            "ok": self.ok,
            "changed": self.changed,
            "scope": self.scope,
            "mode": self.mode,
            "reason": self.reason,
            "pricing": self.pricing.to_dict() if self.pricing else None,
            "hashes": (
                self.fingerprint.to_dict() if self.fingerprint else None
            ),
            "diff": self.diff.to_dict() if self.diff else {},
            "summary": self.diff.summary() if self.diff else None,
            "snapshot_id": self.snapshot_id,
            "change_id": self.change_id,
            "screenshot_path": self.screenshot_path,
            "notified": list(self.notified),
            "errors": list(self.errors),
        }


class CheckOrchestrator:
    """Coordinates one check per monitor across the collaborators.

    Checks of *different* monitors may run concurrently.  Two checks
    of the *same* monitor running at once can both read the same
    previous snapshot, so one change may be recorded and alerted
    twice; callers schedule at most one check per monitor at a time.

    Every check builds its own :class:`PageCapture` through
    *capture_factory*, so sessions and rate-limit delays never carry
    over from one check to another.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        capture_factory: Callable[[], PageCapture] | None = None,
        db: SnapshotDB | None = None,
        notifier: Notifier | None = None,
        file_manager: FileManager | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.capture_factory = capture_factory or (
            lambda: PageCapture(self.settings)
        )
        self.db = db or SnapshotDB(self.settings.PRICING_DB_PATH)
        self.notifier = notifier or Notifier(self.settings)
        self.file_manager = file_manager or FileManager(
            self.settings.RESULTS_DIR, self.settings.SCREENSHOT_DIR,
        )

    # ── Private helpers ──────────────────────────────────

    def _previous_pricing(
        self, monitor: Monitor, result: CheckResult,
    ) -> tuple[NormalizedPricing | None, int | None]:
        """Pricing and id of the latest stored snapshot, if any."""
        if monitor.id is None:
            return None, None
        try:
            previous = self.db.latest_snapshot(monitor.id)
        except Exception as exc:
            logger.error(
                "Could not load previous snapshot for monitor %s: %s",
                monitor.id,
                exc,
                exc_info=True,
            )
            result.errors.append(f"load previous snapshot: {exc}")
            return None, None
        if previous is None:
            return None, None
        return previous.pricing, previous.id

    def _save_screenshot(
        self, monitor: Monitor, data: bytes, result: CheckResult,
    ) -> None:
        try:
            path = self.file_manager.save_screenshot(
                monitor.id if monitor.id is not None else "adhoc", data,
            )
            result.screenshot_path = str(path)
        except OSError as exc:
            logger.error(
                "Could not save screenshot for %s: %s",
                monitor.url,
                exc,
                exc_info=True,
            )
            result.errors.append(f"save screenshot: {exc}")

    def _persist(
        self,
        monitor: Monitor,
        snapshot: Snapshot,
        prev_snapshot_id: int | None,
        result: CheckResult,
    ) -> None:
        """Save the snapshot, then the change record when one exists."""
        try:
            result.snapshot_id = self.db.save_snapshot(snapshot)
        except Exception as exc:
            logger.error(
                "Could not save snapshot for %s: %s",
                monitor.url,
                exc,
                exc_info=True,
            )
            result.errors.append(f"save snapshot: {exc}")
            return

        if (
            not result.changed
            or result.diff is None
            or monitor.id is None
        ):
            return
        change = ChangeRecord(
            monitor_id=monitor.id,
            prev_snapshot_id=prev_snapshot_id,
            new_snapshot_id=result.snapshot_id,
            summary=result.diff.summary(),
            diff=result.diff.to_dict(),
        )
        try:
            result.change_id = self.db.record_change(change)
        except Exception as exc:
            logger.error(
                "Could not record change for %s: %s",
                monitor.url,
                exc,
                exc_info=True,
            )
            result.errors.append(f"record change: {exc}")

    def _touch(self, monitor: Monitor, result: CheckResult) -> None:
        if monitor.id is None:
            return
        try:
            checked_at = datetime.now()
            self.db.touch_monitor(monitor.id, checked_at)
            monitor.last_checked_at = checked_at
        except Exception as exc:
            logger.error(
                "Could not update last_checked_at for monitor %s: %s",
                monitor.id,
                exc,
                exc_info=True,
            )
            result.errors.append(f"touch monitor: {exc}")

    # ── Single check ─────────────────────────────────────

    def run_check(self, monitor: Monitor) -> CheckResult:
        """Check one monitor end to end.

        Never raises for collaborator failures: they are logged and
        listed in ``CheckResult.errors``.
        """
        result = CheckResult(monitor_id=monitor.id, url=monitor.url)

        capture = self.capture_factory()
        try:
            page = capture.capture(monitor.url)
        except CaptureError as exc:
            logger.error(
                "Capture failed for monitor %s: %s",
                monitor.id,
                exc,
                exc_info=True,
            )
            result.errors.append(str(exc))
            self._touch(monitor, result)
            return result
        finally:
            capture.close()
        result.ok = True

        extraction = PricingExtractor.extract(
            page.html, monitor.css_hint, monitor.node_index,
        )
        result.pricing = extraction.pricing
        result.scope = extraction.scope.tag
        result.mode = extraction.mode
        result.reason = extraction.reason

        fingerprint = ContentHasher.fingerprint(
            extraction.scoped_html,
            extraction.pricing,
            page.screenshot_bytes,
        )
        result.fingerprint = fingerprint

        previous, prev_id = self._previous_pricing(monitor, result)
        diff = DiffEngine.diff(extraction.pricing, previous)
        result.diff = diff
        result.changed = diff.changed

        if page.screenshot_bytes:
            self._save_screenshot(monitor, page.screenshot_bytes, result)

        snapshot = Snapshot(
            monitor_id=monitor.id,
            url=monitor.url,
            html=extraction.scoped_html,
            text=html_to_text(extraction.scoped_html),
            pricing=extraction.pricing,
            html_hash=fingerprint.html_hash,
            text_hash=fingerprint.text_hash,
            pricing_hash=fingerprint.pricing_hash,
            visual_hash=fingerprint.visual_hash,
            screenshot_sha256=fingerprint.screenshot_sha256,
            screenshot_path=result.screenshot_path,
        )
        self._persist(monitor, snapshot, prev_id, result)

        if diff.changed:
            try:
                result.notified = self.notifier.notify(monitor, diff)
            except NotificationError as exc:
                logger.error(
                    "Alert delivery failed for monitor %s: %s",
                    monitor.id,
                    exc,
                    exc_info=True,
                )
                result.errors.append(f"notify: {exc}")

        self._touch(monitor, result)
        logger.info(
            "Checked %s: changed=%s tiers=%d errors=%d",
            monitor.url,
            result.changed,
            len(extraction.pricing.tiers),
            len(result.errors),
        )
        return result

    # ── Concurrent checks ────────────────────────────────

    async def check_all(
        self, monitors: list[Monitor],
    ) -> list[CheckResult]:
        """Check monitors concurrently, one worker thread each.

        Results come back in input order.  An unexpected exception in
        one check becomes a failed :class:`CheckResult`; the others
        are unaffected.
        """
        tasks = [
            asyncio.to_thread(self.run_check, m) for m in monitors
        ]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        results: list[CheckResult] = []
        for monitor, outcome in zip(monitors, outcomes):
            if isinstance(outcome, CheckResult):
                results.append(outcome)
            elif isinstance(outcome, Exception):
                logger.error(
                    "Check crashed for monitor %s: %s",
                    monitor.id,
                    outcome,
                    exc_info=outcome,
                )
                results.append(CheckResult(
                    monitor_id=monitor.id,
                    url=monitor.url,
                    errors=[str(outcome)],
                ))
            else:
                raise outcome
        return results
