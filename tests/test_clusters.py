# tests/test_clusters.py

"""Tests for grouping candidates into card grids."""

import unittest

from bs4 import BeautifulSoup, Tag

from pricing_monitor.extraction.clusters import Cluster, ClusterSelector
from pricing_monitor.extraction.dom_arena import NO_PARENT, DomArena
from pricing_monitor.extraction.scanner import CandidateScanner

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


class TestBestCluster(unittest.TestCase):
    """Density ranking."""

    def test_density_wins_over_size(self) -> None:
        """A dense pair beats a sparse trio; singletons never win."""
        dense = Cluster(
            parent=1, path="a", text_length=600, items=[1, 2], score_sum=12,
        )
        sparse = Cluster(
            parent=2, path="b", text_length=3000, items=[3, 4, 5],
            score_sum=30,
        )
        single = Cluster(
            parent=3, path="c", text_length=10, items=[6], score_sum=99,
        )
        best = ClusterSelector.best_cluster([sparse, single, dense])
        self.assertIs(best, dense)

    def test_small_parent_density_is_floored(self) -> None:
        """Short parents are measured as at least 600 characters."""
        c = Cluster(parent=1, path="a", text_length=60, items=[1, 2], score_sum=6)
        self.assertAlmostEqual(c.density, 0.01)

    def test_no_qualifying_cluster(self) -> None:
        """Only singletons gives None."""
        single = Cluster(parent=1, path="a", text_length=10, items=[1])
        self.assertIsNone(ClusterSelector.best_cluster([single]))


class TestSelect(unittest.TestCase):
    """End-to-end selection over a scanned arena."""

    def test_grid_of_three(self) -> None:
        """Wrapper candidates lose to the three sibling cards."""
        body = _body(
            '<body><section class="pricing"><div class="plans">'
            + _card("Starter", "$29 per month")
            + _card("Pro", "$79 per month")
            + _card("Enterprise", "$199 per month")
            + "</div></section></body>"
        )
        arena = DomArena([body])
        items = ClusterSelector.select(arena, CandidateScanner.scan(arena))
        self.assertEqual(len(items), 3)
        self.assertTrue(
            all(arena[i].classes == ["plan-card"] for i in items),
        )

    def test_repeated_grandchildren(self) -> None:
        """Differently wrapped cards are found one level down."""
        body = _body(
            '<body><div id="row">'
            '<div class="col">' + _card("Starter", "$29 per month") + "</div>"
            '<div class="col-wide">' + _card("Pro", "$79 per month") + "</div>"
            "</div></body>"
        )
        arena = DomArena([body])
        row = next(n.index for n in arena.nodes if n.attr_text == "row")
        repeated = ClusterSelector.repeated_children(arena, row)
        self.assertEqual(len(repeated), 2)
        self.assertTrue(
            all(arena[i].classes == ["plan-card"] for i in repeated),
        )

    def test_scope_roots_form_one_group(self) -> None:
        """Several matched roots share the synthetic root group."""
        doc = BeautifulSoup(
            "<html><body>"
            + _card("Starter", "$29 per month")
            + _card("Pro", "$79 per month")
            + "</body></html>",
            "lxml",
        )
        roots = list(doc.select(".plan-card"))
        arena = DomArena(roots)
        clusters = ClusterSelector.group(arena, list(arena.roots))
        self.assertEqual(len(clusters), 1)
        self.assertEqual(clusters[0].parent, NO_PARENT)
        self.assertEqual(
            clusters[0].text_length,
            sum(len(arena[r].text) for r in arena.roots),
        )

    def test_single_candidate_passes_through(self) -> None:
        """Without a cluster the candidates come back unchanged."""
        body = _body("<body>" + _card("Solo", "$5 per month") + "</body>")
        arena = DomArena([body])
        candidates = CandidateScanner.scan(arena)
        self.assertEqual(
            ClusterSelector.select(arena, candidates), candidates,
        )


if __name__ == "__main__":
    unittest.main()
