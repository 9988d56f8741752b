# tests/test_scope.py

"""Tests for selector scoping and index clamping."""

import unittest

from bs4 import BeautifulSoup

from pricing_monitor.extraction.scope import (
    SCOPE_INVALID_SELECTOR,
    SCOPE_NO_HINT,
    SCOPE_SELECTOR_MATCHED,
    SCOPE_SELECTOR_NOT_FOUND,
    SCOPE_SELECTOR_PINNED,
    ScopeResolver,
    clamp_index,
)

_HTML = """
<html><body>
  <div class="tier">A</div>
  <div class="tier">B</div>
  <div class="tier">C</div>
</body></html>
"""


class TestClampIndex(unittest.TestCase):
    """1-based index clamping."""

    def test_in_range(self) -> None:
        """Index 2 of 3 is position 1."""
        self.assertEqual(clamp_index(2, 3), 1)

    def test_zero_and_negative_clamp_to_first(self) -> None:
        """0 and negative indices map to the first match."""
        self.assertEqual(clamp_index(0, 3), 0)
        self.assertEqual(clamp_index(-5, 3), 0)

    def test_too_large_clamps_to_last(self) -> None:
        """A stale, too-large index maps to the last match."""
        self.assertEqual(clamp_index(999, 3), 2)


class TestScopeResolver(unittest.TestCase):
    """Resolution outcomes for each kind of hint."""

    def setUp(self) -> None:
        self.doc = BeautifulSoup(_HTML, "lxml")

    def test_no_hint_uses_body(self) -> None:
        """Empty or whitespace selector scans the body."""
        for hint in (None, "", "   "):
            scope = ScopeResolver.resolve(self.doc, hint)
            self.assertEqual(scope.tag, SCOPE_NO_HINT)
            self.assertEqual(len(scope.elements), 1)
            self.assertEqual(scope.elements[0].name, "body")

    def test_invalid_selector_falls_back_to_body(self) -> None:
        """Bad syntax never raises."""
        scope = ScopeResolver.resolve(self.doc, "div[", 1)
        self.assertEqual(scope.tag, SCOPE_INVALID_SELECTOR)
        self.assertEqual(scope.elements[0].name, "body")
        self.assertFalse(scope.pinned)

    def test_not_found_has_empty_scope(self) -> None:
        """Zero matches give no elements, not the whole page."""
        scope = ScopeResolver.resolve(self.doc, ".missing", 2)
        self.assertEqual(scope.tag, SCOPE_SELECTOR_NOT_FOUND)
        self.assertEqual(scope.elements, [])
        self.assertFalse(scope.found)

    def test_no_index_returns_all_matches(self) -> None:
        """Without an index every match is in scope."""
        scope = ScopeResolver.resolve(self.doc, ".tier")
        self.assertEqual(scope.tag, SCOPE_SELECTOR_MATCHED)
        self.assertEqual(
            [el.get_text() for el in scope.elements], ["A", "B", "C"],
        )
        self.assertEqual(scope.match_count, 3)

    def test_non_positive_index_returns_all_matches(self) -> None:
        """Index 0 behaves like no index."""
        scope = ScopeResolver.resolve(self.doc, ".tier", 0)
        self.assertEqual(scope.tag, SCOPE_SELECTOR_MATCHED)
        self.assertEqual(len(scope.elements), 3)

    def test_index_pins_one_match(self) -> None:
        """Index 2 pins the second match."""
        scope = ScopeResolver.resolve(self.doc, ".tier", 2)
        self.assertEqual(scope.tag, SCOPE_SELECTOR_PINNED)
        self.assertTrue(scope.pinned)
        self.assertEqual(scope.elements[0].get_text(), "B")
        self.assertEqual(scope.effective_index, 1)

    def test_stale_index_is_clamped(self) -> None:
        """Index 999 pins the last match."""
        scope = ScopeResolver.resolve(self.doc, ".tier", 999)
        self.assertEqual(scope.elements[0].get_text(), "C")
        self.assertEqual(scope.to_dict()["effective_index"], 2)


if __name__ == "__main__":
    unittest.main()
