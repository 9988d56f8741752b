# tests/test_dom_arena.py

"""Tests for the index-addressed DOM arena and the candidate scanner."""

import unittest

from bs4 import BeautifulSoup, Tag

from pricing_monitor.extraction.dom_arena import (
    NO_PARENT,
    DomArena,
    sanitize_scope,
)
from pricing_monitor.extraction.scanner import (
    CandidateScanner,
    card_length_ok,
)

_FEATURE = "Unlimited dashboards and saved reports item {:02d}"


def _card(name: str, price: str, features: int = 20) -> str:
    items = "".join(
        f"<li>{_FEATURE.format(i)}</li>" for i in range(features)
    )
    return (
        f'<div class="plan-card"><h3>{name}</h3>'
        f'<p class="price">{price}</p><ul>{items}</ul>'
        f'<a href="/signup/{name.lower()}">Get started</a></div>'
    )


def _body(html: str) -> Tag:
    doc = BeautifulSoup(html, "lxml")
    assert doc.body is not None
    return doc.body


class TestDomArena(unittest.TestCase):
    """Pre-order layout and structural queries."""

    def setUp(self) -> None:
        body = _body(
            '<body><div class="grid">'
            '<div class="card"><a href="#">x</a></div>'
            '<div class="card"><ul><li>1</li><li>2</li></ul></div>'
            "</div></body>"
        )
        self.arena = DomArena([body])

    def test_pre_order(self) -> None:
        """Nodes are stored in document order."""
        tags = [n.tag for n in self.arena.nodes]
        self.assertEqual(
            tags, ["body", "div", "div", "a", "div", "ul", "li", "li"],
        )

    def test_parent_and_siblings(self) -> None:
        """The two cards are siblings under the grid."""
        self.assertEqual(self.arena.parent_of(0), NO_PARENT)
        self.assertEqual(self.arena.parent_of(2), 1)
        self.assertEqual(self.arena.siblings_of(2), [4])

    def test_path_includes_positions(self) -> None:
        """Sibling positions keep similar cards distinct."""
        self.assertEqual(self.arena.path(2), "body:0>div.grid:0>div.card:0")
        self.assertEqual(self.arena.path(4), "body:0>div.grid:0>div.card:1")
        self.assertEqual(self.arena.parent_path(0), "")

    def test_descendant_tallies(self) -> None:
        """Link and list-item counts cover all descendants."""
        self.assertEqual(self.arena[1].links, 1)
        self.assertEqual(self.arena[1].list_items, 2)
        self.assertEqual(self.arena[4].list_items, 2)
        self.assertEqual(self.arena[4].links, 0)

    def test_descendants(self) -> None:
        """Descendants are the contiguous deeper run."""
        self.assertEqual(self.arena.descendants(4), [5, 6, 7])
        self.assertEqual(self.arena.descendants(3), [])


class TestSanitizeScope(unittest.TestCase):
    """Non-content and hidden elements are dropped."""

    def test_removes_scripts_and_hidden(self) -> None:
        """Script, style and hidden blocks disappear from the text."""
        body = _body(
            "<body><div>Visible"
            "<script>var price = '$1';</script>"
            "<style>.x{}</style>"
            '<span style="display:none">$999</span>'
            '<span aria-hidden="true">$5</span>'
            "</div></body>"
        )
        removed = sanitize_scope([body])
        self.assertEqual(removed, 4)
        self.assertEqual(DomArena([body])[0].text, "Visible")


class TestCandidateScanner(unittest.TestCase):
    """Flagging, ascent and de-duplication."""

    def test_length_gate(self) -> None:
        """Card bodies must be 30..1200 characters."""
        self.assertFalse(card_length_ok("x" * 29))
        self.assertTrue(card_length_ok("x" * 30))
        self.assertTrue(card_length_ok("x" * 1200))
        self.assertFalse(card_length_ok("x" * 1201))

    def test_signals_climb_to_their_card(self) -> None:
        """Heading, price and CTA of one card collapse to one candidate."""
        body = _body(
            '<body><section class="pricing"><div class="plans">'
            + _card("Starter", "$29 per month")
            + _card("Pro", "$79 per month")
            + "</div></section></body>"
        )
        arena = DomArena([body])
        candidates = CandidateScanner.scan(arena)
        card_paths = [
            arena.path(i) for i in candidates
            if arena[i].classes == ["plan-card"]
        ]
        self.assertEqual(len(card_paths), 2)
        self.assertEqual(len(set(card_paths)), 2)

    def test_page_wrappers_never_candidates(self) -> None:
        """body/main are never returned."""
        body = _body(
            "<body><main>Pro plan $29 per month, get started</main></body>"
        )
        arena = DomArena([body])
        tags = {arena[i].tag for i in CandidateScanner.scan(arena)}
        self.assertNotIn("body", tags)
        self.assertNotIn("main", tags)

    def test_ascent_returns_start_without_card(self) -> None:
        """A lone signal with no card-shaped ancestor stays put."""
        body = _body("<body><div><span>$29</span></div></body>")
        arena = DomArena([body])
        span = next(n.index for n in arena.nodes if n.tag == "span")
        self.assertEqual(CandidateScanner.ascend_to_card(arena, span), span)


if __name__ == "__main__":
    unittest.main()
