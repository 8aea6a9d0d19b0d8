"""
Tests for the IMEI detection engine.

These tests cover the documented detection scenarios, the confidence
formula and field-count suggestion.
"""

import pytest

from mobile_invoice.config import RuleKind
from mobile_invoice.detector import (
    detect_imei_fields,
    detect_imeis,
    find_dual_imei_pair,
    high_confidence_imeis,
    suggest_field_count,
    suggestion_for_count,
)
from mobile_invoice.normalizer import normalize_text
from mobile_invoice.rules import Adjustment, ContextRule
from mobile_invoice.schemas import IMEIFieldSuggestion


class TestDetectionScenarios:
    """Literal scenarios the detector must reproduce."""

    def test_dual_imei_labels(self):
        text = "IMEI1: 490154203237518 IMEI2: 490154203237526"
        candidates = detect_imeis(text)

        assert len(candidates) == 2
        assert {c.clean_digits for c in candidates} == {"490154203237518", "490154203237526"}
        assert all(c.validation.is_valid for c in candidates)
        assert all(c.confidence >= 0.7 for c in candidates)
        assert suggest_field_count(text) == IMEIFieldSuggestion.DUAL

    def test_alphanumeric_invoice_hash(self):
        text = "Invoice No: 8b82e27ca657d389a2f5068d53a9c805a3bc216dc2045c"
        assert detect_imeis(text) == []

    def test_all_identical_digits(self):
        assert detect_imeis("111111111111111") == []

    def test_empty_text(self):
        assert detect_imeis("") == []
        assert detect_imeis(None) == []
        assert suggest_field_count("") == IMEIFieldSuggestion.NONE


class TestDetectionProperties:
    """Properties that hold for any input."""

    @pytest.mark.parametrize("digits", [
        "000000000000000",
        "111111111111111",
        "999999999999999",
        "123456789012345",
        "987654321098765",
    ])
    def test_placeholders_never_returned(self, digits):
        for text in (digits, f"IMEI: {digits}", f"IMEI1 Serial {digits}"):
            assert detect_imeis(text) == []

    @pytest.mark.parametrize("label", ["Invoice", "GST", "Phone", "Date"])
    def test_negative_context_capped(self, label):
        for digits in ("490154203237518", "490154203237519"):
            candidates = detect_imeis(f"{label}: {digits}")
            assert all(c.confidence <= 0.4 for c in candidates)

    @pytest.mark.parametrize("label", ["TaxInvoice", "BuyerGSTIN", "MobilePhone", "InvDate"])
    def test_negative_context_glued_to_label(self, label):
        candidates = detect_imeis(f"{label} 490154203237518")
        assert len(candidates) == 1
        assert candidates[0].confidence <= 0.4

    def test_letter_next_to_repeated_digits_rejects_only_that_copy(self):
        candidates = detect_imeis("IMEI 490154203237518 ref A490154203237518")
        assert len(candidates) == 1
        assert candidates[0].start == 5
        assert candidates[0].confidence == 1.0

    def test_deterministic(self):
        text = "IMEI: 490154203237518\nSerial 356938035643809\nPhone 490154203237526"
        assert detect_imeis(text) == detect_imeis(text)

    def test_accepts_normalized_text(self):
        text = "IMEI: 49O154203237518"
        assert detect_imeis(normalize_text(text)) == detect_imeis(text)


class TestConfidence:
    """Tests for the confidence formula and ordering."""

    def test_bare_valid_number(self):
        candidates = detect_imeis("490154203237518")
        assert len(candidates) == 1
        assert candidates[0].confidence == pytest.approx(0.8)
        assert candidates[0].signals == ("checksum:valid",)

    def test_bare_invalid_number(self):
        candidates = detect_imeis("490154203237519")
        assert candidates[0].confidence == pytest.approx(0.2)

    def test_labeled_invalid_number_survives(self):
        candidates = detect_imeis("IMEI: 490154203237519")
        assert candidates[0].confidence == pytest.approx(0.55)
        assert candidates[0].validation.is_valid is False

    def test_clamped_to_one(self):
        candidates = detect_imeis("IMEI1 Serial: 490154203237518")
        assert candidates[0].confidence == 1.0

    def test_below_floor_dropped(self):
        # 0.5 - 0.3 (checksum) - 0.4 (phone) < 0.1
        assert detect_imeis("Phone 490154203237519") == []

    def test_sorted_by_confidence_then_position(self):
        separator = "\n" + "-" * 50 + "\n"
        text = separator.join([
            "490154203237519",
            "356938035643809",
            "IMEI: 490154203237518",
        ])
        candidates = detect_imeis(text)
        assert [c.clean_digits for c in candidates] == [
            "490154203237518",
            "356938035643809",
            "490154203237519",
        ]

    def test_deduplicates_keeping_best(self):
        text = "490154203237518 copy\n" + "x" * 50 + "\nIMEI: 490154203237518"
        candidates = detect_imeis(text)
        assert len(candidates) == 1
        assert candidates[0].confidence == 1.0
        assert candidates[0].start > 50

    def test_dedup_tie_keeps_earliest(self):
        text = "490154203237518\n" + "x" * 50 + "\n490154203237518"
        candidates = detect_imeis(text)
        assert len(candidates) == 1
        assert candidates[0].start == 0

    def test_custom_rules(self):
        rules = [
            ContextRule(
                code="test:boost",
                description="Always boost",
                kind=RuleKind.ADJUSTMENT,
                evaluate=lambda candidate, window: Adjustment(0.25, "boost"),
            )
        ]
        candidates = detect_imeis("490154203237519", rules=rules)
        assert candidates[0].confidence == pytest.approx(0.75)
        assert candidates[0].signals == ("boost",)


class TestFieldSuggestion:
    """Tests for IMEI field-count suggestion."""

    @pytest.mark.parametrize("count,expected", [
        (0, IMEIFieldSuggestion.NONE),
        (1, IMEIFieldSuggestion.SINGLE),
        (2, IMEIFieldSuggestion.DUAL),
        (3, IMEIFieldSuggestion.MULTIPLE),
        (7, IMEIFieldSuggestion.MULTIPLE),
    ])
    def test_suggestion_for_count(self, count, expected):
        assert suggestion_for_count(count) == expected

    def test_single(self):
        assert suggest_field_count("IMEI: 490154203237518") == IMEIFieldSuggestion.SINGLE

    def test_low_confidence_not_counted(self):
        # Invalid checksum without a label stays at 0.2
        assert suggest_field_count("490154203237519") == IMEIFieldSuggestion.NONE

    def test_high_confidence_threshold(self):
        text = "IMEI: 490154203237519\nIMEI: 356938035643809"
        assert [c.clean_digits for c in high_confidence_imeis(text)] == ["356938035643809"]
        assert len(high_confidence_imeis(text, threshold=0.5)) == 2


class TestImeiFields:
    """Tests for mapping candidates onto form fields."""

    def test_dual_pair_in_position_order(self):
        text = "IMEI2: 490154203237526\n" + "-" * 50 + "\nIMEI1: 490154203237518 Serial"
        fields = detect_imei_fields(text)
        assert fields["imei1"].clean_digits == "490154203237526"
        assert fields["imei2"].clean_digits == "490154203237518"

    def test_single(self):
        fields = detect_imei_fields("IMEI: 356938035643809")
        assert list(fields) == ["imei1"]

    def test_none(self):
        assert detect_imei_fields("no numbers here") == {}

    def test_find_pair(self):
        candidates = detect_imeis("IMEI: 356938035643809\nIMEI: 490154203237518\nIMEI: 490154203237526")
        pair = find_dual_imei_pair(candidates)
        assert pair is not None
        assert {c.clean_digits for c in pair} == {"490154203237518", "490154203237526"}

    def test_no_pair(self):
        candidates = detect_imeis("IMEI: 356938035643809\n" + "-" * 50 + "\nIMEI: 490154203237518")
        assert find_dual_imei_pair(candidates) is None
