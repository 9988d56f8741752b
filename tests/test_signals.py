# tests/test_signals.py

"""Tests for the textual pricing-signal helpers."""

import unittest

from pricing_monitor.extraction import signals


class TestParsePrice(unittest.TestCase):
    """Currency + amount parsing across locale formats."""

    def test_us_format(self) -> None:
        """Comma thousands, dot decimal."""
        self.assertEqual(signals.parse_price("$1,234.56"), (1234.56, "$"))

    def test_nordic_format(self) -> None:
        """Dot thousands, comma decimal, trailing kr."""
        self.assertEqual(
            signals.parse_price("1.234,56 kr"), (1234.56, "kr"),
        )

    def test_space_grouped_euro(self) -> None:
        """Space thousands, comma decimal, trailing euro sign."""
        self.assertEqual(
            signals.parse_price("1 234,56 €"), (1234.56, "€"),
        )

    def test_space_before_unrelated_number(self) -> None:
        """A following count is not a thousands group."""
        self.assertEqual(signals.parse_price("$29 100 seats"), (29.0, "$"))

    def test_space_grouped_before_currency(self) -> None:
        """Space grouping is accepted right before the currency."""
        self.assertEqual(signals.parse_price("1 234 kr"), (1234.0, "kr"))
        self.assertEqual(signals.parse_price("€1 299"), (1299.0, "€"))

    def test_simple_monthly_price(self) -> None:
        """'$29/mo' yields 29.0 dollars."""
        self.assertEqual(signals.parse_price("$29/mo"), (29.0, "$"))

    def test_currency_code(self) -> None:
        """ISO codes map onto symbols."""
        self.assertEqual(signals.parse_price("EUR 49"), (49.0, "€"))
        self.assertEqual(signals.parse_price("99 SEK"), (99.0, "kr"))

    def test_unmapped_code_is_unknown(self) -> None:
        """INR is recognised as a currency but not mapped."""
        amount, currency = signals.parse_price("INR 499")
        self.assertEqual(amount, 499.0)
        self.assertEqual(currency, "unknown")

    def test_no_price(self) -> None:
        """Text without a currency gives (None, 'unknown')."""
        self.assertEqual(
            signals.parse_price("Contact us for a quote"),
            (None, "unknown"),
        )

    def test_first_price_wins(self) -> None:
        """The first currency+amount pair is used."""
        amount, _ = signals.parse_price("$29 per month or $290 per year")
        self.assertEqual(amount, 29.0)


class TestNormalizeAmount(unittest.TestCase):
    """Separator disambiguation."""

    def test_three_digit_group_is_thousands(self) -> None:
        """'1.234' is one thousand two hundred thirty-four."""
        self.assertEqual(signals.normalize_amount("1.234"), 1234.0)
        self.assertEqual(signals.normalize_amount("1,234"), 1234.0)

    def test_two_digit_tail_is_decimal(self) -> None:
        """'29,99' and '29.99' are both 29.99."""
        self.assertEqual(signals.normalize_amount("29,99"), 29.99)
        self.assertEqual(signals.normalize_amount("29.99"), 29.99)

    def test_leading_zero_is_decimal(self) -> None:
        """'0.500' is a decimal, not five hundred."""
        self.assertEqual(signals.normalize_amount("0.500"), 0.5)

    def test_multiple_groups(self) -> None:
        """Repeated separators are thousands groups."""
        self.assertEqual(signals.normalize_amount("1,234,567"), 1234567.0)

    def test_garbage(self) -> None:
        """Unparsable input gives None."""
        self.assertIsNone(signals.normalize_amount(""))
        self.assertIsNone(signals.normalize_amount("abc"))


class TestPeriodAndFlags(unittest.TestCase):
    """Period detection and boolean matchers."""

    def test_yearly_beats_monthly(self) -> None:
        """Yearly wording wins when both appear."""
        text = "$29 per month, or $290 billed annually"
        self.assertEqual(signals.detect_period(text), "yearly")

    def test_monthly(self) -> None:
        """Slash and word forms are monthly."""
        self.assertEqual(signals.detect_period("$9 / month"), "monthly")
        self.assertEqual(signals.detect_period("99 kr per månad"), "monthly")
        self.assertEqual(signals.detect_period("9 € pro Monat"), "monthly")

    def test_unknown_period(self) -> None:
        """No period phrase gives 'unknown'."""
        self.assertEqual(signals.detect_period("One-time fee"), "unknown")

    def test_per_seat(self) -> None:
        """Per-user language is detected."""
        self.assertTrue(signals.is_per_seat("$8 per user / month"))
        self.assertFalse(signals.is_per_seat("$8 per month"))

    def test_any_signal(self) -> None:
        """Currency alone is not enough; plan words are."""
        self.assertFalse(signals.has_any_signal("Pay with $"))
        self.assertTrue(signals.has_any_signal("Enterprise"))
        self.assertTrue(signals.has_any_signal("Get started"))
        self.assertFalse(signals.has_any_signal("About our company"))

    def test_card_vocabulary(self) -> None:
        """Layout words only count in boundary mode."""
        self.assertTrue(signals.has_card_vocabulary("plan-card"))
        self.assertFalse(signals.has_card_vocabulary("grid-3"))
        self.assertTrue(
            signals.has_card_vocabulary("grid-3", boundary=True),
        )

    def test_currency_not_inside_words(self) -> None:
        """'kr' inside a word is not a currency."""
        self.assertFalse(signals.has_currency("Kraken"))
        self.assertTrue(signals.has_currency("99 kr"))

    def test_normalize_whitespace(self) -> None:
        """Whitespace runs collapse to single spaces."""
        self.assertEqual(
            signals.normalize_whitespace("  a \n\t b  "), "a b",
        )


if __name__ == "__main__":
    unittest.main()
