# pricing_monitor/models/pricing.py

"""Canonical pricing records produced by the extraction engine."""

from dataclasses import dataclass, field
from typing import Any

from pricing_monitor.extraction import signals

CURRENCIES: tuple[str, ...] = ("$", "€", "£", "¥", "kr", "unknown")
PERIODS: tuple[str, ...] = ("monthly", "yearly", "unknown")


def _known(value: Any, allowed: tuple[str, ...]) -> str | None:
    """*value* if it is one of *allowed*, ``"unknown"`` otherwise."""
    if value is None:
        return None
    return value if value in allowed else "unknown"


@dataclass
class Tier:
    """One plan/card on a pricing page."""

    name: str | None = None
    amount: float | None = None
    currency: str | None = None
    period: str | None = None
    raw: str | None = None
    features: list[str] = field(
        default_factory=lambda: list[str]()
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialise to JSON types, omitting absent fields."""
        data: dict[str, Any] = {
            "name": self.name,
            "amount": self.amount,
            "currency": self.currency,
            "period": self.period,
            "raw": self.raw,
        }
        result = {k: v for k, v in data.items() if v is not None}
        result["features"] = list(self.features)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Tier":
        """Build a tier from a stored dict, tolerating missing keys."""
        amount = data.get("amount")
        if isinstance(amount, bool) or not isinstance(
            amount, (int, float)
        ):
            amount = None
        features = data.get("features") or []
        return cls(
            name=data.get("name"),
            amount=float(amount) if amount is not None else None,
            currency=_known(data.get("currency"), CURRENCIES),
            period=_known(data.get("period"), PERIODS),
            raw=data.get("raw"),
            features=[str(f) for f in features],
        )


@dataclass
class NormalizedPricing:
    """The comparable pricing state of one page.

    ``unit`` is derived from the tiers; build instances through
    :meth:`from_tiers` so the two never disagree.
    """

    unit: str = "unknown"
    tiers: list[Tier] = field(
        default_factory=lambda: list[Tier]()
    )

    @staticmethod
    def derive_unit(tiers: list[Tier]) -> str:
        """per_seat beats per_month beats unknown."""
        if any(signals.is_per_seat(t.raw or "") for t in tiers):
            return "per_seat"
        if any(
            t.period in ("monthly", "yearly") for t in tiers
        ):
            return "per_month"
        return "unknown"

    @classmethod
    def from_tiers(cls, tiers: list[Tier]) -> "NormalizedPricing":
        """Wrap *tiers* and derive the unit."""
        return cls(unit=cls.derive_unit(tiers), tiers=list(tiers))

    @classmethod
    def empty(cls) -> "NormalizedPricing":
        """Pricing with no tiers and an unknown unit."""
        return cls(unit="unknown", tiers=[])

    def to_dict(self) -> dict[str, Any]:
        """Serialise to plain JSON types."""
        return {
            "unit": self.unit,
            "tiers": [t.to_dict() for t in self.tiers],
        }

    @classmethod
    def from_dict(
        cls, data: dict[str, Any] | None,
    ) -> "NormalizedPricing":
        """Rebuild from a stored dict; ``None`` gives empty pricing.

        Any stored ``unit`` is ignored and derived again from the tiers.
        """
        if not data:
            return cls.empty()
        raw_tiers = data.get("tiers") or []
        tiers = [
            Tier.from_dict(t) for t in raw_tiers if isinstance(t, dict)
        ]
        return cls.from_tiers(tiers)
