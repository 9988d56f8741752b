# pricing_monitor/extraction/signals.py

"""Textual pricing signals: currency, amount, period, CTA, plan names.

Every helper here is a pure function over a string.  Matchers return a
bool or the matched substring and never raise when nothing matches.
"""

import math
import re

# ── Patterns ─────────────────────────────────────────────

_CURRENCY = (
    r"[$€£¥₹]"
    r"|(?<![A-Za-z])(?:USD|EUR|GBP|JPY|SEK|NOK|DKK|INR|CHF|CAD|AUD|kr)"
    r"(?![A-Za-z])\.?"
)

# "1,234.56" / "1.234,56", then "1 234,56" / "1 234 kr", then "29" / "29.99".
# Space grouping needs decimals, a currency or the end of text
# after it, so "$29 100 seats" stays 29.
_AMOUNT = (
    r"(?<![\d.,])"
    r"(?:\d{1,3}(?:[.,]\d{3})+(?:[.,]\d{1,2})?(?!\d)"
    r"|\d{1,3}(?:[\u00a0\u202f ]\d{3})+"
    rf"(?:[.,]\d{1,2}(?!\d)|(?=\s*(?:{_CURRENCY}|$)))"
    r"|\d+(?:[.,]\d{1,2})?(?!\d))"
)

CURRENCY_RE = re.compile(_CURRENCY, re.IGNORECASE)
AMOUNT_RE = re.compile(_AMOUNT)

# Currency-first ("$29", "kr 99") or amount-first ("29 €", "99 kr").
# An amount-first match is rejected when its currency is glued to the
# next number ("5 $29"), which belongs to the currency-first form.
PRICE_RE = re.compile(
    rf"(?P<cur>{_CURRENCY})\s*(?P<amt>{_AMOUNT})"
    rf"|(?P<amt2>{_AMOUNT})\s*(?P<cur2>{_CURRENCY})(?!\d)",
    re.IGNORECASE,
)

_YEARLY = (
    r"\bper\s*year\b|/\s*(?:yr|year)\b|\byearly\b|\bannual(?:ly)?\b"
    r"|\bper\s*annum\b|\bper\s*år\b|\bårsvis\b|\bårligen\b"
    r"|\bpro\s*jahr\b|/\s*jahr\b|\bjährlich\b"
)
_MONTHLY = (
    r"\bper\s*mo(?:nth)?\b|/\s*(?:mo|month)\b|\bmonthly\b"
    r"|\bper\s*månad\b|\bmånadsvis\b|/\s*mån\b"
    r"|\bpro\s*monat\b|/\s*monat\b|\bmonatlich\b"
)

YEARLY_RE = re.compile(_YEARLY, re.IGNORECASE)
MONTHLY_RE = re.compile(_MONTHLY, re.IGNORECASE)
PERIOD_RE = re.compile(rf"{_YEARLY}|{_MONTHLY}", re.IGNORECASE)

PER_SEAT_RE = re.compile(
    r"\bper\s*(?:user|seat|member|editor)s?\b|/\s*(?:user|seat)\b"
    r"|\bper\s*användare\b|\bpro\s*(?:nutzer|benutzer)\b",
    re.IGNORECASE,
)

CTA_RE = re.compile(
    r"\b(?:get started|start|try|buy|subscribe|contact sales|choose"
    r"|select|upgrade|request (?:trial|demo)|get a demo|sign up"
    r"|start deploying|upgrade now|talk to sales)\b",
    re.IGNORECASE,
)

PLAN_RE = re.compile(
    r"\b(?:hobby|free|starter|basic|standard|team|pro|business"
    r"|enterprise|plus|premium|growth)\b",
    re.IGNORECASE,
)

FREE_RE = re.compile(r"\bfree\b", re.IGNORECASE)

# Class/id vocabulary of a pricing card, and the looser set used while
# climbing towards a card boundary.
CARD_VOCAB_RE = re.compile(
    r"\b(?:price|pricing|plan|tier|package|card|panel)\b",
    re.IGNORECASE,
)
CARD_BOUNDARY_RE = re.compile(
    r"\b(?:price|pricing|plan|tier|package|card|panel|hero|grid|column)\b",
    re.IGNORECASE,
)

_CURRENCY_CODES: dict[str, str] = {
    "$": "$",
    "USD": "$",
    "CAD": "$",
    "AUD": "$",
    "€": "€",
    "EUR": "€",
    "£": "£",
    "GBP": "£",
    "¥": "¥",
    "JPY": "¥",
    "KR": "kr",
    "SEK": "kr",
    "NOK": "kr",
    "DKK": "kr",
}


# ── Boolean matchers ─────────────────────────────────────

def has_currency(text: str) -> bool:
    """True when a currency symbol or code appears in *text*."""
    return CURRENCY_RE.search(text) is not None


def has_amount(text: str) -> bool:
    """True when *text* contains a numeric amount token."""
    return AMOUNT_RE.search(text) is not None


def has_price(text: str) -> bool:
    """True when a currency token sits next to an amount."""
    return PRICE_RE.search(text) is not None


def has_period(text: str) -> bool:
    """True when a billing-period phrase appears."""
    return PERIOD_RE.search(text) is not None


def is_per_seat(text: str) -> bool:
    """True for per-user / per-seat pricing language."""
    return PER_SEAT_RE.search(text) is not None


def has_cta(text: str) -> bool:
    """True when a call-to-action verb appears."""
    return CTA_RE.search(text) is not None


def has_plan_name(text: str) -> bool:
    """True when plan-name vocabulary appears."""
    return PLAN_RE.search(text) is not None


def mentions_free(text: str) -> bool:
    """True when the word "free" appears."""
    return FREE_RE.search(text) is not None


def has_card_vocabulary(attrs: str, boundary: bool = False) -> bool:
    """Check class/id text for card vocabulary.

    ``boundary=True`` uses the looser vocabulary that also accepts
    layout words (hero, grid, column) while climbing ancestors.
    """
    pattern = CARD_BOUNDARY_RE if boundary else CARD_VOCAB_RE
    return pattern.search(attrs) is not None


def has_any_signal(text: str) -> bool:
    """(currency AND amount) OR period OR plan name OR CTA."""
    return (
        (has_currency(text) and has_amount(text))
        or has_period(text)
        or has_plan_name(text)
        or has_cta(text)
    )


# ── Substring matchers and parsers ───────────────────────

def match_currency(text: str) -> str | None:
    """Return the first currency token in *text*, if any."""
    m = CURRENCY_RE.search(text)
    return m.group(0) if m else None


def normalize_currency(token: str | None) -> str:
    """Map a currency symbol or code onto the tier currency values."""
    if not token:
        return "unknown"
    key = token.strip().rstrip(".").upper()
    return _CURRENCY_CODES.get(key, "unknown")


def normalize_amount(raw: str) -> float | None:
    """Normalise a localized amount token to a dot-decimal float.

    The last of ``.``/``,`` is the decimal mark when both appear; a
    single separator followed by exactly three digits is a thousands
    separator.  Returns ``None`` for anything unparsable or negative.
    """
    s = re.sub(r"[\s\u00a0\u202f]", "", raw or "")
    if not s:
        return None

    last_dot = s.rfind(".")
    last_comma = s.rfind(",")
    if last_dot >= 0 and last_comma >= 0:
        decimal = "." if last_dot > last_comma else ","
        thousands = "," if decimal == "." else "."
        s = s.replace(thousands, "").replace(decimal, ".")
    elif last_dot >= 0 or last_comma >= 0:
        sep = "," if last_comma >= 0 else "."
        parts = s.split(sep)
        grouped = len(parts[-1]) == 3 and parts[0] not in ("", "0")
        if len(parts) > 2 or grouped:
            s = "".join(parts)
        else:
            s = f"{parts[0]}.{parts[1]}"

    try:
        value = float(s)
    except ValueError:
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


def parse_price(text: str) -> tuple[float | None, str]:
    """Find the first currency+amount pair in *text*.

    Returns ``(amount, currency)``; ``(None, "unknown")`` when no
    price is present.
    """
    m = PRICE_RE.search(text or "")
    if not m:
        return None, "unknown"
    if m.group("cur") is not None:
        token, raw_amount = m.group("cur"), m.group("amt")
    else:
        token, raw_amount = m.group("cur2"), m.group("amt2")
    return normalize_amount(raw_amount), normalize_currency(token)


def detect_period(text: str) -> str:
    """Classify billing period; yearly wins over monthly."""
    if YEARLY_RE.search(text or ""):
        return "yearly"
    if MONTHLY_RE.search(text or ""):
        return "monthly"
    return "unknown"


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace to single spaces and trim."""
    return re.sub(r"\s+", " ", text or "").strip()
