# pricing_monitor/extraction/scanner.py

"""Flag pricing signals and climb each hit to its enclosing card."""

import logging

from pricing_monitor.extraction import signals
from pricing_monitor.extraction.dom_arena import NO_PARENT, DomArena

logger = logging.getLogger("pricing_monitor.scanner")

MAX_ASCENT = 6
MIN_CARD_TEXT = 30
MAX_CARD_TEXT = 1200
OVERSIZE_FACTOR = 1.5

# Document-level wrappers are never a card
_PAGE_TAGS: frozenset[str] = frozenset({"html", "body", "main"})


def looks_like_card(arena: DomArena, index: int) -> bool:
    """Card vocabulary, a link/button, or at least three list items."""
    node = arena[index]
    if signals.has_card_vocabulary(node.attr_text, boundary=True):
        return True
    return node.links > 0 or node.list_items >= 3


def card_length_ok(text: str) -> bool:
    """Text length inside the plausible card-body range."""
    return MIN_CARD_TEXT <= len(text) <= MAX_CARD_TEXT


class CandidateScanner:
    """Find card-root candidates in an arena."""

    @staticmethod
    def is_flagged(text: str) -> bool:
        """Whether a node's text trips any pricing signal."""
        return bool(text) and signals.has_any_signal(text)

    @staticmethod
    def ascend_to_card(arena: DomArena, start: int) -> int:
        """Climb from *start* to the highest card-shaped ancestor.

        At most ``MAX_ASCENT`` nodes (including *start*) are examined.
        Climbing stops at a page-level wrapper or once a node's text
        is larger than ``OVERSIZE_FACTOR`` times the card maximum.
        Returns *start* when no node qualifies.
        """
        best = start
        cur = start
        for _ in range(MAX_ASCENT):
            if cur == NO_PARENT:
                break
            node = arena[cur]
            if node.tag in _PAGE_TAGS:
                break
            if looks_like_card(arena, cur) and card_length_ok(node.text):
                best = cur
            if len(node.text) > MAX_CARD_TEXT * OVERSIZE_FACTOR:
                break
            cur = node.parent
        return best

    @staticmethod
    def scan(arena: DomArena) -> list[int]:
        """Return de-duplicated candidate card roots in discovery order."""
        candidates: list[int] = []
        seen_paths: set[str] = set()
        flagged = 0

        for node in arena.nodes:
            if node.tag in _PAGE_TAGS:
                continue
            if not CandidateScanner.is_flagged(node.text):
                continue
            flagged += 1
            root = CandidateScanner.ascend_to_card(arena, node.index)
            if arena[root].tag in _PAGE_TAGS:
                continue
            path = arena.path(root)
            if path in seen_paths:
                continue
            seen_paths.add(path)
            candidates.append(root)

        logger.debug(
            "Scanner flagged %d nodes, %d unique candidates",
            flagged,
            len(candidates),
        )
        return candidates
