# pricing_monitor/extraction/normalizer.py

"""Score card candidates and turn them into canonical tiers."""

import logging
from dataclasses import dataclass, field

from pricing_monitor.extraction import signals
from pricing_monitor.extraction.dom_arena import DomArena, has_offer_markup
from pricing_monitor.extraction.scanner import card_length_ok
from pricing_monitor.models.pricing import NormalizedPricing, Tier

logger = logging.getLogger("pricing_monitor.normalizer")

MIN_CARD_SCORE = 5
MAX_FEATURES = 50
MAX_FEATURE_CHARS = 160
NAME_FALLBACK_WORDS = 6

_HEADING_TAGS: frozenset[str] = frozenset({"h1", "h2", "h3", "h4"})
_NAME_CLASS_HINTS: tuple[str, ...] = ("plan", "tier")
_EMPHASIS_TAGS: frozenset[str] = frozenset({"strong", "b"})


@dataclass
class PricingCard:
    """A candidate card with its score and the fields read from it."""

    index: int
    path: str
    text: str
    score: int
    name: str | None = None
    amount: float | None = None
    currency: str = "unknown"
    period: str = "unknown"
    features: list[str] = field(
        default_factory=lambda: list[str]()
    )
    cta_text: str | None = None
    cta_href: str | None = None

    @property
    def qualifies(self) -> bool:
        """Score, length and evidence gates for a real pricing card."""
        has_evidence = (
            self.cta_text is not None
            or signals.mentions_free(self.text)
            or self.amount is not None
        )
        return (
            self.score >= MIN_CARD_SCORE
            and card_length_ok(self.text)
            and has_evidence
        )

    def to_tier(self) -> Tier:
        """Project onto the persisted tier record."""
        return Tier(
            name=self.name,
            amount=self.amount,
            currency=self.currency,
            period=self.period,
            raw=self.text,
            features=list(self.features),
        )


def class_signature(arena: DomArena, index: int) -> str:
    """First three class tokens, sorted."""
    return ".".join(sorted(arena[index].classes[:3]))


def has_replicated_siblings(arena: DomArena, index: int) -> bool:
    """At least two siblings share this node's (non-empty) class signature."""
    sig = class_signature(arena, index)
    if not sig:
        return False
    same = sum(
        1 for s in arena.siblings_of(index)
        if class_signature(arena, s) == sig
    )
    return same >= 2


def find_cta(arena: DomArena, index: int) -> int | None:
    """First link/button below *index* whose label is a call to action."""
    for d in arena.descendants(index):
        node = arena[d]
        if node.tag in ("a", "button") and signals.has_cta(node.text):
            return d
    return None


def score_node(arena: DomArena, index: int) -> int:
    """Additive plausibility score of a card candidate."""
    node = arena[index]
    text = node.text
    score = 0
    if signals.has_currency(text) and signals.has_amount(text):
        score += 3
    if signals.has_period(text):
        score += 2
    if signals.mentions_free(text):
        score += 1
    if signals.has_plan_name(text):
        score += 1
    if signals.has_card_vocabulary(node.attr_text):
        score += 2
    if find_cta(arena, index) is not None:
        score += 2
    if node.list_items >= 3:
        score += 1
    if has_replicated_siblings(arena, index):
        score += 2
    if node.offers or has_offer_markup(node.element):
        score += 1
    return score


class CardNormalizer:
    """Build :class:`PricingCard` records and the final pricing document."""

    @staticmethod
    def plan_name(arena: DomArena, index: int) -> str | None:
        """Name of the card at *index*.

        The first h1-h4 or element whose class mentions plan or tier,
        then the first strong/b, then the opening words.
        """
        descendants = arena.descendants(index)
        for d in descendants:
            node = arena[d]
            if not node.text:
                continue
            class_attr = " ".join(node.classes).lower()
            if node.tag in _HEADING_TAGS or any(
                hint in class_attr for hint in _NAME_CLASS_HINTS
            ):
                return node.text
        for d in descendants:
            if arena[d].tag in _EMPHASIS_TAGS and arena[d].text:
                return arena[d].text
        words = arena[index].text.split(" ")
        fallback = " ".join(words[:NAME_FALLBACK_WORDS]).strip()
        return fallback or None

    @staticmethod
    def price_text(arena: DomArena, index: int) -> str:
        """Text of the first price-bearing sub-element, else the card text."""
        for d in arena.descendants(index):
            if signals.has_price(arena[d].text):
                return arena[d].text
        return arena[index].text

    @staticmethod
    def features(arena: DomArena, index: int) -> list[str]:
        """List-item texts, capped in count and length."""
        items: list[str] = []
        for d in arena.descendants(index):
            node = arena[d]
            if node.tag != "li" or not node.text:
                continue
            items.append(node.text[:MAX_FEATURE_CHARS])
            if len(items) >= MAX_FEATURES:
                break
        return items

    @staticmethod
    def build_card(arena: DomArena, index: int) -> PricingCard:
        """Read every tier field and the score from one card root."""
        node = arena[index]
        price_text = CardNormalizer.price_text(arena, index)
        amount, currency = signals.parse_price(price_text)
        if amount is None:
            # "€ on request": keep the currency without an amount
            currency = signals.normalize_currency(
                signals.match_currency(price_text)
            )
        cta = find_cta(arena, index)
        cta_text = arena[cta].text if cta is not None else None
        cta_href = None
        if cta is not None:
            href = str(arena[cta].element.get("href") or "").strip()
            cta_href = href or None
        return PricingCard(
            index=index,
            path=arena.path(index),
            text=node.text,
            score=score_node(arena, index),
            name=CardNormalizer.plan_name(arena, index),
            amount=amount,
            currency=currency,
            period=signals.detect_period(node.text),
            features=CardNormalizer.features(arena, index),
            cta_text=cta_text,
            cta_href=cta_href,
        )

    @staticmethod
    def select_cards(
        arena: DomArena, indices: list[int],
    ) -> list[PricingCard]:
        """Build, filter and rank cards by descending score (stable)."""
        built = [CardNormalizer.build_card(arena, i) for i in indices]
        kept = [c for c in built if c.qualifies]
        dropped = len(built) - len(kept)
        if dropped:
            logger.debug(
                "Dropped %d of %d cards below the card gates",
                dropped,
                len(built),
            )
        return sorted(kept, key=lambda c: c.score, reverse=True)

    @staticmethod
    def pinned_card(arena: DomArena, index: int) -> PricingCard | None:
        """Treat a pinned element as the sole card, without gating.

        Returns ``None`` when it yields neither a name nor an amount.
        """
        card = CardNormalizer.build_card(arena, index)
        if card.name is None and card.amount is None:
            return None
        return card

    @staticmethod
    def to_pricing(cards: list[PricingCard]) -> NormalizedPricing:
        """Aggregate cards, in order, into one pricing document."""
        return NormalizedPricing.from_tiers([c.to_tier() for c in cards])
