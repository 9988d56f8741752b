# pricing_monitor/config/settings.py

"""Central configuration for the pricing monitor."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


def _env_path(name: str, default: Path) -> Path:
    """Return a Path from the environment, or *default* when unset."""
    raw = os.getenv(name, "").strip()
    return Path(raw) if raw else default


class Settings:
    """Central configuration for the pricing monitor.

    Instances are passed explicitly to the orchestrator and its
    collaborators; nothing in the engine reads this class directly.
    """

    # --- Capture ---
    REQUEST_DELAY: float = 2.0          # Seconds between requests
    REQUEST_TIMEOUT: int = 20           # Seconds before a request times out
    MAX_RETRIES: int = 3                # Retry count on transient failures
    MAX_DELAY_MULTIPLIER: int = 8       # Cap for adaptive backoff
    CAPTCHA_KEYWORDS: list[str] = [
        "captcha",
        "verify you are human",
        "unusual traffic",
        "automated requests",
    ]

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "sec-ch-ua": (
            '"Google Chrome";v="131", '
            '"Chromium";v="131", '
            '"Not_A Brand";v="24"'
        ),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "sec-fetch-dest": "document",
        "sec-fetch-mode": "navigate",
        "sec-fetch-site": "none",
        "sec-fetch-user": "?1",
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Alerts ---
    SMTP_HOST: str = os.getenv("SMTP_HOST", "localhost")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "25"))
    SMTP_USER: str = os.getenv("SMTP_USER", "")
    SMTP_PASS: str = os.getenv("SMTP_PASS", "")
    SMTP_SSL: bool = os.getenv("SMTP_SSL", "false").lower() == "true"
    ALERTS_FROM_EMAIL: str = os.getenv(
        "ALERTS_FROM_EMAIL", "pricing-monitor@localhost"
    )
    ALERTS_TO_EMAIL: str = os.getenv("ALERTS_TO_EMAIL", "")
    CHAT_WEBHOOK_URL: str = os.getenv("CHAT_WEBHOOK_URL", "")
    WEBHOOK_TIMEOUT: int = 10           # Seconds for webhook delivery

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    PRICING_DB_PATH: Path = _env_path(
        "PRICING_DB_PATH", DATA_DIR / "pricing_monitor.db"
    )
    SCREENSHOT_DIR: Path = _env_path(
        "SCREENSHOT_DIR", DATA_DIR / "screenshots"
    )
    RESULTS_DIR: Path = BASE_DIR / "results"
    LOGS_DIR: Path = BASE_DIR / "logs"
