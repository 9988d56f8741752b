# pricing_monitor/detection/content_hasher.py

"""Content-addressable fingerprints of a check's HTML, text and pricing."""

import hashlib
import json
import re
from dataclasses import asdict, dataclass
from typing import Any

from pricing_monitor.models.pricing import NormalizedPricing

_SCRIPT_RE = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.I | re.S)
_STYLE_RE = re.compile(r"<style\b[^>]*>.*?</style\s*>", re.I | re.S)
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


@dataclass
class ContentFingerprint:
    """The hashes persisted with every snapshot.

    ``visual_hash`` is reserved for a perceptual screenshot hash and
    is always ``None``.
    """

    html_hash: str
    text_hash: str
    pricing_hash: str
    screenshot_sha256: str | None = None
    visual_hash: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        """Plain dict for JSON output."""
        return asdict(self)


def sha256_hex(data: str | bytes) -> str:
    """SHA-256 hex digest of text (UTF-8) or bytes."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def html_to_text(html: str) -> str:
    """Visible-text projection: no tags, no script/style, single spaces."""
    s = _SCRIPT_RE.sub(" ", html or "")
    s = _STYLE_RE.sub(" ", s)
    s = _TAG_RE.sub(" ", s)
    return _WS_RE.sub(" ", s).strip()


def canonical_json(document: Any) -> str:
    """JSON with keys sorted at every level and no insignificant spaces."""
    return json.dumps(
        document,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


class ContentHasher:
    """Deterministic digests; no state, no I/O."""

    @staticmethod
    def html_hash(scoped_html: str) -> str:
        """Digest of the scoped HTML exactly as extracted."""
        return sha256_hex(scoped_html or "")

    @staticmethod
    def text_hash(scoped_html: str) -> str:
        """Digest of the visible text of the scoped HTML."""
        return sha256_hex(html_to_text(scoped_html))

    @staticmethod
    def pricing_hash(
        pricing: NormalizedPricing | dict[str, Any] | None,
    ) -> str:
        """Digest of the canonical pricing document."""
        document = (
            pricing.to_dict()
            if isinstance(pricing, NormalizedPricing)
            else pricing
        )
        return sha256_hex(canonical_json(document))

    @staticmethod
    def screenshot_hash(screenshot: bytes | None) -> str | None:
        """Digest of screenshot bytes, or ``None`` without a screenshot."""
        if not screenshot:
            return None
        return sha256_hex(screenshot)

    @staticmethod
    def fingerprint(
        scoped_html: str,
        pricing: NormalizedPricing,
        screenshot: bytes | None = None,
    ) -> ContentFingerprint:
        """All fingerprints for one check."""
        return ContentFingerprint(
            html_hash=ContentHasher.html_hash(scoped_html),
            text_hash=ContentHasher.text_hash(scoped_html),
            pricing_hash=ContentHasher.pricing_hash(pricing),
            screenshot_sha256=ContentHasher.screenshot_hash(screenshot),
            visual_hash=None,
        )
