# pricing_monitor/storage/file_manager.py

"""Handles writing screenshots and check reports to disk."""

import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any

from pricing_monitor.config.settings import Settings

logger = logging.getLogger("pricing_monitor.storage")

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


def safe_name(value: str) -> str:
    """Collapse anything but letters, digits, dot, dash and underscore."""
    cleaned = _UNSAFE_CHARS.sub("_", value).strip("_")
    return cleaned or "unnamed"


class FileManager:
    """Handles writing screenshots and check reports to disk."""

    def __init__(
        self,
        results_dir: Path | None = None,
        screenshot_dir: Path | None = None,
    ) -> None:
        self.results_dir: Path = results_dir or Settings.RESULTS_DIR
        self.screenshot_dir: Path = (
            screenshot_dir or Settings.SCREENSHOT_DIR
        )
        logger.debug(
            "FileManager initialised: results_dir=%s screenshot_dir=%s",
            self.results_dir,
            self.screenshot_dir,
        )

    def save_screenshot(
        self,
        monitor_id: int | str,
        data: bytes,
        taken_at: datetime | None = None,
    ) -> Path:
        """Write PNG bytes to ``<screenshot_dir>/<monitor>/<ts>.png``."""
        ts = (taken_at or datetime.now()).strftime("%Y%m%d_%H%M%S_%f")
        directory = self.screenshot_dir / safe_name(str(monitor_id))
        directory.mkdir(parents=True, exist_ok=True)
        filepath = directory / f"{ts}.png"
        filepath.write_bytes(data)
        logger.info(
            "Saved %d-byte screenshot for monitor %s to %s",
            len(data),
            monitor_id,
            filepath,
        )
        return filepath

    def save_report(self, name: str, payload: Any) -> Path:
        """Save a JSON report to a timestamped file in the results dir."""
        self.results_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filepath = self.results_dir / f"{safe_name(name)}_{timestamp}.json"

        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2, default=str)

        logger.info("Saved report '%s' to %s", name, filepath)
        return filepath
