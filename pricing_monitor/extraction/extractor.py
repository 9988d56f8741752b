# pricing_monitor/extraction/extractor.py

"""Single entry point: raw HTML (+ optional scope hint) to pricing.

Two modes share one normalizer.  When the scope resolver pinned one
element (selector plus node index) that element is the sole card;
otherwise the scoped subtrees are scanned, clustered and filtered.
"""

import logging
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Tag

from pricing_monitor.extraction.clusters import ClusterSelector
from pricing_monitor.extraction.dom_arena import DomArena, sanitize_scope
from pricing_monitor.extraction.normalizer import CardNormalizer, PricingCard
from pricing_monitor.extraction.scanner import CandidateScanner
from pricing_monitor.extraction.scope import (
    SCOPE_SELECTOR_MATCHED,
    SCOPE_SELECTOR_NOT_FOUND,
    SCOPE_SELECTOR_PINNED,
    ScopeResolver,
    ScopeResult,
)
from pricing_monitor.models.pricing import NormalizedPricing

logger = logging.getLogger("pricing_monitor.extractor")

REASON_SELECTOR_NOT_FOUND = "selector_not_found"
REASON_NO_CARDS_FOUND = "no_cards_found"

MODE_PINNED = "pinned"
MODE_HEURISTIC = "heuristic"


@dataclass
class Extraction:
    """Outcome of one extraction run.

    ``scoped_html`` is the exact markup of the resolved scope, taken
    before any sanitising, and is what the HTML/text hashes cover.
    """

    pricing: NormalizedPricing
    scope: ScopeResult
    scoped_html: str
    mode: str | None = None
    reason: str | None = None
    cards: list[PricingCard] = field(
        default_factory=lambda: list[PricingCard]()
    )

    @property
    def ok(self) -> bool:
        """True when at least one tier was extracted."""
        return bool(self.pricing.tiers)

    def debug_info(self) -> dict[str, object]:
        """Scope, mode and per-card details for reports."""
        return {
            "scope": self.scope.to_dict(),
            "mode": self.mode,
            "reason": self.reason,
            "cards": [
                {
                    "path": c.path,
                    "score": c.score,
                    "name": c.name,
                    "cta_text": c.cta_text,
                    "cta_href": c.cta_href,
                }
                for c in self.cards
            ],
        }


def scoped_markup(html: str, scope: ScopeResult) -> str:
    """Markup stored and hashed for a check.

    The pinned element, or every match joined by newlines; the full
    document when no selector narrowed the page.
    """
    if scope.tag in (SCOPE_SELECTOR_PINNED, SCOPE_SELECTOR_MATCHED):
        return "\n".join(str(el) for el in scope.elements)
    return html


class PricingExtractor:
    """Stateless extractor; safe to share across threads."""

    @staticmethod
    def parse(html: str) -> BeautifulSoup:
        """Parse HTML with the lxml tree builder."""
        return BeautifulSoup(html or "", "lxml")

    @staticmethod
    def extract(
        html: str,
        selector: str | None = None,
        index: int | None = None,
    ) -> Extraction:
        """Extract normalized pricing from *html*.

        Never raises for bad selectors or unrecognisable pages; the
        returned :class:`Extraction` carries a ``reason`` instead.
        """
        document = PricingExtractor.parse(html)
        scope = ScopeResolver.resolve(document, selector, index)
        scoped_html = scoped_markup(html, scope)

        if scope.tag == SCOPE_SELECTOR_NOT_FOUND:
            return Extraction(
                pricing=NormalizedPricing.empty(),
                scope=scope,
                scoped_html=scoped_html,
                reason=REASON_SELECTOR_NOT_FOUND,
            )

        if scope.pinned:
            cards = PricingExtractor._pinned_cards(scope.elements)
            mode = MODE_PINNED
        else:
            cards = PricingExtractor._heuristic_cards(scope.elements)
            mode = MODE_HEURISTIC

        pricing = CardNormalizer.to_pricing(cards)
        reason = None if cards else REASON_NO_CARDS_FOUND
        logger.info(
            "Extracted %d tiers (mode=%s, scope=%s, unit=%s)",
            len(pricing.tiers),
            mode,
            scope.tag,
            pricing.unit,
        )
        return Extraction(
            pricing=pricing,
            scope=scope,
            scoped_html=scoped_html,
            mode=mode,
            reason=reason,
            cards=cards,
        )

    @staticmethod
    def _pinned_cards(elements: list[Tag]) -> list[PricingCard]:
        """The pinned element is the only card; no scan, no clustering."""
        sanitize_scope(elements)
        arena = DomArena(elements)
        card = CardNormalizer.pinned_card(arena, arena.roots[0])
        return [card] if card is not None else []

    @staticmethod
    def _heuristic_cards(elements: list[Tag]) -> list[PricingCard]:
        """Scan, cluster and gate candidates across the scoped subtrees."""
        sanitize_scope(elements)
        arena = DomArena(elements)
        candidates = CandidateScanner.scan(arena)
        if not candidates:
            return []
        items = ClusterSelector.select(arena, candidates)
        return CardNormalizer.select_cards(arena, items)
