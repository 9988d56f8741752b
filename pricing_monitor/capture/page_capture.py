# pricing_monitor/capture/page_capture.py

"""Fetch pricing pages with browser-impersonating TLS."""

import logging
import time
from dataclasses import dataclass
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from curl_cffi import requests as curl_requests

from pricing_monitor.config.settings import Settings
from pricing_monitor.errors import CaptureError


@dataclass
class CapturedPage:
    """Raw page content handed to the extraction engine.

    ``screenshot_bytes`` is only set by browser-driven captures; the
    HTTP client in this module always leaves it ``None``.
    """

    url: str
    html: str
    screenshot_bytes: bytes | None = None


class PageCapture:
    """Fetch a page with retries, adaptive delay and a fallback client.

    The primary client is a ``curl_cffi`` session impersonating a real
    browser; when every attempt fails the page is requested once more
    through ``cloudscraper``.  HTTP capture never produces a
    screenshot.
    """

    # Cloudflare challenge page markers (checked before keyword scan)
    _CF_CHALLENGE_MARKERS: list[str] = [
        "challenges.cloudflare.com",
        "cdn-cgi/challenge-platform",
        "just a moment",
        "cf-turnstile",
        "cf_chl_opt",
    ]

    def __init__(self, settings: Settings | None = None) -> None:
        self.logger = logging.getLogger("pricing_monitor.capture")
        self.settings = settings or Settings()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self._current_delay: float = self.settings.REQUEST_DELAY
        self._request_timeout: int = self.settings.REQUEST_TIMEOUT

    def _validate_response(self, text: str) -> bool:
        """Reject Cloudflare challenge pages and CAPTCHA interstitials."""
        lower = text.lower()

        for marker in self._CF_CHALLENGE_MARKERS:
            if marker in lower:
                self.logger.warning(
                    "Cloudflare challenge detected (marker: '%s')",
                    marker,
                )
                return False

        # Real pricing pages can mention "captcha" in a footer.
        has_body_content = "<body" in lower and len(text) > 5000
        if not has_body_content:
            for keyword in self.settings.CAPTCHA_KEYWORDS:
                if keyword in lower:
                    self.logger.warning(
                        "CAPTCHA keyword '%s' detected", keyword,
                    )
                    return False
        return True

    def _escalate_delay(self) -> None:
        """Double the current delay up to the configured max."""
        max_delay = (
            self.settings.REQUEST_DELAY
            * self.settings.MAX_DELAY_MULTIPLIER
        )
        self._current_delay = min(self._current_delay * 2, max_delay)
        self.logger.warning(
            "Rate-limited, delay escalated to %.1fs",
            self._current_delay,
        )

    def _reset_delay(self) -> None:
        self._current_delay = self.settings.REQUEST_DELAY

    def _fetch_get(self, url: str, headers: dict[str, str]) -> str | None:
        """GET with retries and adaptive delay; page text or ``None``."""
        for attempt in range(self.settings.MAX_RETRIES):
            try:
                resp = self.session.get(
                    url,
                    headers=headers,
                    timeout=self._request_timeout,
                )
                if resp.status_code == 200:
                    if not self._validate_response(resp.text):
                        self._escalate_delay()
                        time.sleep(self._current_delay)
                        continue
                    self._reset_delay()
                    return resp.text
                self.logger.warning(
                    "HTTP %d for %s on attempt %d",
                    resp.status_code,
                    url,
                    attempt + 1,
                )
                if resp.status_code in (429, 403):
                    self._escalate_delay()
                    time.sleep(self._current_delay)
            except Exception as exc:
                self.logger.warning(
                    "Request error for %s on attempt %d: %s",
                    url,
                    attempt + 1,
                    exc,
                    exc_info=True,
                )
                time.sleep(self._current_delay * (attempt + 1))
        return None

    def _fetch_fallback(
        self, url: str, headers: dict[str, str],
    ) -> str | None:
        """One cloudscraper attempt (JS challenge solver)."""
        self.logger.info(
            "curl_cffi exhausted for %s, falling back to cloudscraper",
            url,
        )
        try:
            _cs: Any = cloudscraper
            scraper: Any = _cs.create_scraper()
            resp: Any = scraper.get(
                url,
                headers=headers,
                timeout=self._request_timeout,
            )
            if resp.status_code == 200:
                text = str(resp.text)
                if self._validate_response(text):
                    return text
            else:
                self.logger.warning(
                    "cloudscraper got HTTP %d for %s",
                    resp.status_code,
                    url,
                )
        except Exception as e:
            self.logger.error(
                "cloudscraper fallback also failed for %s: %s",
                url,
                e,
                exc_info=True,
            )
        return None

    def capture(self, url: str) -> CapturedPage:
        """Fetch *url* and return its HTML.

        Raises :class:`CaptureError` when both clients fail.
        """
        headers: dict[str, str] = dict(self.settings.DEFAULT_HEADERS)
        html = self._fetch_get(url, headers)
        if html is None:
            html = self._fetch_fallback(url, headers)
        if html is None:
            raise CaptureError(
                url,
                f"no valid response after {self.settings.MAX_RETRIES} "
                "attempts and fallback",
            )
        self.logger.info("Captured %s (%d chars)", url, len(html))
        return CapturedPage(url=url, html=html)

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()
