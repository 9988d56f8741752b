# pricing_monitor/detection/diff_engine.py

"""Positional, field-level diff between two pricing documents.

Tiers are aligned by index, not by plan name: reordering otherwise
identical tiers shows up as one ``modified`` entry per moved position.
"""

from dataclasses import dataclass, field
from typing import Any

from pricing_monitor.models.pricing import NormalizedPricing, Tier

COMPARED_FIELDS: tuple[str, ...] = ("name", "currency", "period", "amount")


@dataclass
class DiffResult:
    """Unit change plus per-position tier entries."""

    unit: dict[str, str] | None = None
    tiers: list[dict[str, Any]] = field(
        default_factory=lambda: list[dict[str, Any]]()
    )

    @property
    def changed(self) -> bool:
        """False only when nothing material differs."""
        return self.unit is not None or bool(self.tiers)

    def to_dict(self) -> dict[str, Any]:
        """``{}`` for no change, else ``{"unit": ..., "tiers": [...]}``."""
        if not self.changed:
            return {}
        return {"unit": self.unit, "tiers": list(self.tiers)}

    def summary(self) -> str:
        """One-line description for alerts and change records."""
        if not self.changed:
            return "No material pricing change"
        parts: list[str] = []
        if self.unit is not None:
            parts.append(
                f"unit {self.unit['from']} -> {self.unit['to']}"
            )
        for entry in self.tiers:
            idx = entry["index"]
            change = entry["change"]
            if change == "added":
                name = entry["to"].get("name") or f"#{idx}"
                parts.append(f"tier {idx} added ({name})")
            elif change == "removed":
                name = entry["from"].get("name") or f"#{idx}"
                parts.append(f"tier {idx} removed ({name})")
            else:
                fields = ", ".join(
                    f"{f} {entry[f]['from']} -> {entry[f]['to']}"
                    for f in COMPARED_FIELDS
                    if f in entry
                )
                parts.append(f"tier {idx} modified: {fields}")
        return "; ".join(parts)


def _field_value(tier: Tier, name: str) -> Any:
    value = getattr(tier, name)
    if name == "amount" and value is not None:
        return float(value)
    return value


def diff_tiers(
    index: int, current: Tier, previous: Tier,
) -> dict[str, Any] | None:
    """Field changes at one position, or ``None`` when identical."""
    entry: dict[str, Any] = {}
    for name in COMPARED_FIELDS:
        before = _field_value(previous, name)
        after = _field_value(current, name)
        if before != after:
            entry[name] = {"from": before, "to": after}
    if not entry:
        return None
    return {"index": index, "change": "modified", **entry}


class DiffEngine:
    """Compare the current pricing against the previous snapshot."""

    @staticmethod
    def diff(
        current: NormalizedPricing,
        previous: NormalizedPricing | None,
    ) -> DiffResult:
        """Diff *current* against *previous*.

        With no previous document (first check) nothing is reported.
        """
        result = DiffResult()
        if previous is None:
            return result

        if current.unit != previous.unit:
            result.unit = {"from": previous.unit, "to": current.unit}

        longest = max(len(current.tiers), len(previous.tiers))
        for i in range(longest):
            now = current.tiers[i] if i < len(current.tiers) else None
            before = previous.tiers[i] if i < len(previous.tiers) else None
            if now is None and before is not None:
                result.tiers.append({
                    "index": i,
                    "change": "removed",
                    "from": before.to_dict(),
                })
            elif now is not None and before is None:
                result.tiers.append({
                    "index": i,
                    "change": "added",
                    "to": now.to_dict(),
                })
            elif now is not None and before is not None:
                entry = diff_tiers(i, now, before)
                if entry is not None:
                    result.tiers.append(entry)
        return result
