"""
Tests for text normalization and the IMEI candidate scanner.
"""

from decimal import Decimal
from datetime import date

from mobile_invoice.normalizer import normalize_text, parse_amount, parse_date
from mobile_invoice.scanner import context_window, scan


class TestNormalizeText:
    """Tests for normalize_text."""

    def test_collapses_whitespace_and_blank_lines(self):
        result = normalize_text("  Invoice   No:\tA1 \n\n\n  Total  500  ")
        assert result.text == "Invoice No: A1\nTotal 500"
        assert result.lines == ["Invoice No: A1", "Total 500"]

    def test_replaces_misread_letters_inside_digit_runs(self):
        result = normalize_text("IMEI: 49O1542O3237518")
        assert result.text == "IMEI: 490154203237518"
        assert result.substitutions == 2

    def test_replaces_l_and_pipe(self):
        assert normalize_text("35693803564380l9").text == "3569380356438019"
        assert normalize_text("4|2").text == "412"

    def test_leaves_words_alone(self):
        result = normalize_text("Color: Ocean Blue, Oppo")
        assert result.text == "Color: Ocean Blue, Oppo"
        assert result.substitutions == 0

    def test_none_and_empty(self):
        assert normalize_text(None).text == ""
        assert normalize_text("").lines == []

    def test_idempotent(self):
        once = normalize_text("IMEI  :  49O154 2O3237518\r\n\r\nTotal")
        twice = normalize_text(once.text)
        assert twice.text == once.text
        assert twice.substitutions == 0

    def test_keeps_raw(self):
        raw = "  a  b  "
        assert normalize_text(raw).raw == raw


class TestParseAmount:
    """Tests for amount parsing."""

    def test_plain(self):
        assert parse_amount("499.00") == Decimal("499.00")

    def test_us_grouping(self):
        assert parse_amount("17,759.00") == Decimal("17759.00")

    def test_indian_grouping(self):
        assert parse_amount("1,17,759.00") == Decimal("117759.00")

    def test_grouping_without_decimals(self):
        assert parse_amount("17,759") == Decimal("17759")

    def test_decimal_comma(self):
        assert parse_amount("257,04") == Decimal("257.04")

    def test_currency_prefix(self):
        assert parse_amount("Rs. 500") == Decimal("500")
        assert parse_amount("₹1,499.50") == Decimal("1499.50")

    def test_invalid(self):
        assert parse_amount(None) is None
        assert parse_amount("") is None
        assert parse_amount("abc") is None


class TestParseDate:
    """Tests for date parsing."""

    def test_month_name(self):
        assert parse_date("12-Oct-2024") == date(2024, 10, 12)

    def test_day_first(self):
        assert parse_date("05/10/2024") == date(2024, 10, 5)

    def test_iso(self):
        assert parse_date("2024-10-12") == date(2024, 10, 12)

    def test_invalid(self):
        assert parse_date("not a date") is None
        assert parse_date("") is None


class TestScan:
    """Tests for the candidate scanner."""

    def test_finds_plain_run(self):
        candidates = scan("IMEI: 490154203237518")
        assert len(candidates) == 1
        candidate = candidates[0]
        assert candidate.clean_digits == "490154203237518"
        assert candidate.raw_match == "490154203237518"
        assert candidate.position == (6, 21)
        assert candidate.confidence == 0.5
        assert candidate.validation.is_valid is True

    def test_finds_separated_run(self):
        candidates = scan("IMEI 490154-203237-518 ok")
        assert len(candidates) == 1
        assert candidates[0].raw_match == "490154-203237-518"
        assert candidates[0].clean_digits == "490154203237518"

    def test_space_separated_groups(self):
        candidates = scan("S/N 4901 5420 3237 518")
        assert [c.clean_digits for c in candidates] == ["490154203237518"]

    def test_invalid_checksum_still_a_candidate(self):
        candidates = scan("490154203237519")
        assert len(candidates) == 1
        assert candidates[0].validation.is_valid is False

    def test_near_misses_dropped(self):
        assert scan("49015420323751") == []
        assert scan("4901542032375181") == []

    def test_short_and_long_runs_ignored(self):
        assert scan("Phone 9876543210 Total 12345") == []
        assert scan("1" * 30) == []

    def test_runs_do_not_cross_lines(self):
        assert scan("4901542\n03237518") == []

    def test_position_order(self):
        candidates = scan("IMEI1: 490154203237518\nIMEI2: 356938035643809")
        assert [c.clean_digits for c in candidates] == ["490154203237518", "356938035643809"]
        assert candidates[0].start < candidates[1].start

    def test_letters_misread_as_digits(self):
        candidates = scan("IMEI: 49O1542O3237518")
        assert [c.clean_digits for c in candidates] == ["490154203237518"]

    def test_context_window(self):
        text = "x" * 50 + "490154203237518" + "y" * 50
        candidate = scan(text)[0]
        assert candidate.context_window == "x" * 40 + "490154203237518" + "y" * 40

    def test_context_window_at_edges(self):
        assert context_window("abc123def", 3, 6, size=2) == "bc123de"
        assert context_window("123", 0, 3, size=40) == "123"
