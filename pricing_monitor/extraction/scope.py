# pricing_monitor/extraction/scope.py

"""Narrow a parsed document to the region a monitor asked for."""

import logging
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

logger = logging.getLogger("pricing_monitor.scope")

SCOPE_NO_HINT = "no_hint"
SCOPE_SELECTOR_NOT_FOUND = "selector_not_found"
SCOPE_INVALID_SELECTOR = "invalid_selector"
SCOPE_SELECTOR_MATCHED = "selector_matched"
SCOPE_SELECTOR_PINNED = "selector_pinned"


def clamp_index(index: int, match_count: int) -> int:
    """Map a 1-based, possibly stale index onto ``0..match_count-1``.

    Out-of-range values are clamped rather than rejected, so a page
    that gained or lost a matching block since the selector was
    picked still resolves to the nearest match.
    """
    if match_count <= 0:
        return 0
    return min(max(index - 1, 0), match_count - 1)


@dataclass
class ScopeResult:
    """The subtrees the extractor may examine, plus how they were found."""

    tag: str
    elements: list[Tag] = field(
        default_factory=lambda: list[Tag]()
    )
    selector: str | None = None
    match_count: int = 0
    requested_index: int | None = None
    effective_index: int | None = None

    @property
    def pinned(self) -> bool:
        """True when exactly one element was chosen by selector+index."""
        return self.tag == SCOPE_SELECTOR_PINNED

    @property
    def found(self) -> bool:
        """False only for a selector that matched nothing."""
        return self.tag != SCOPE_SELECTOR_NOT_FOUND

    def to_dict(self) -> dict[str, object]:
        """Summary for logs and debug output (elements omitted)."""
        return {
            "tag": self.tag,
            "selector": self.selector,
            "match_count": self.match_count,
            "requested_index": self.requested_index,
            "effective_index": self.effective_index,
        }


class ScopeResolver:
    """Resolve ``(selector, index)`` against a parsed document."""

    @staticmethod
    def document_root(document: BeautifulSoup) -> Tag:
        """The ``<body>`` element, or the document itself without one."""
        body = document.body
        return body if body is not None else document

    @staticmethod
    def resolve(
        document: BeautifulSoup,
        selector: str | None = None,
        index: int | None = None,
    ) -> ScopeResult:
        """Resolve the scope for one check.

        - No selector: the whole body (``no_hint``).
        - Invalid selector syntax: the whole body (``invalid_selector``).
        - No matches: empty scope (``selector_not_found``); callers
          must report this rather than fall back to the whole page.
        - Matches with no index (or index <= 0): every match.
        - Matches with index >= 1: the single clamped match.
        """
        hint = (selector or "").strip()
        if not hint:
            return ScopeResult(
                tag=SCOPE_NO_HINT,
                elements=[ScopeResolver.document_root(document)],
            )

        try:
            matches: list[Tag] = list(document.select(hint))
        except (SelectorSyntaxError, ValueError, NotImplementedError) as exc:
            logger.warning(
                "Invalid selector %r, scanning whole document: %s",
                hint,
                exc,
            )
            return ScopeResult(
                tag=SCOPE_INVALID_SELECTOR,
                elements=[ScopeResolver.document_root(document)],
                selector=hint,
                requested_index=index,
            )

        if not matches:
            logger.info("Selector %r matched no elements", hint)
            return ScopeResult(
                tag=SCOPE_SELECTOR_NOT_FOUND,
                selector=hint,
                requested_index=index,
            )

        if index is None or index <= 0:
            return ScopeResult(
                tag=SCOPE_SELECTOR_MATCHED,
                elements=matches,
                selector=hint,
                match_count=len(matches),
                requested_index=index,
            )

        effective = clamp_index(index, len(matches))
        if effective != index - 1:
            logger.info(
                "node_index %d out of range for %d matches of %r, "
                "clamped to %d",
                index,
                len(matches),
                hint,
                effective + 1,
            )
        return ScopeResult(
            tag=SCOPE_SELECTOR_PINNED,
            elements=[matches[effective]],
            selector=hint,
            match_count=len(matches),
            requested_index=index,
            effective_index=effective,
        )
