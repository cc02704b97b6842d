"""Tests for the similarity primitives (amount, date, text)."""

from datetime import date, datetime
from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from travelledger.exceptions import ValidationError
from travelledger.reconciliation.matchers.similarity import (
    amount_closeness,
    amount_difference,
    date_proximity,
    day_distance,
    document_number_found,
    normalize_text,
    text_similarity,
    to_decimal,
)

pytestmark = pytest.mark.unit

amounts = st.decimals(
    min_value=Decimal("-1000000"),
    max_value=Decimal("1000000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)


class TestAmountCloseness:
    """Tiered amount scoring."""

    @pytest.mark.parametrize(
        "a,b,expected",
        [
            (Decimal("245.50"), Decimal("245.50"), 1.0),
            (Decimal("-245.50"), Decimal("245.50"), 1.0),
            (Decimal("100.00"), Decimal("100.01"), 1.0),
            (Decimal("100.00"), Decimal("100.02"), 0.75),
            (Decimal("100.00"), Decimal("101.00"), 0.75),
            (Decimal("1000.00"), Decimal("1015.00"), 0.5),
            (Decimal("1000.00"), Decimal("1020.40"), 0.5),
            (Decimal("1000.00"), Decimal("1030.00"), 0.0),
            (Decimal("-50.00"), Decimal("500.00"), 0.0),
        ],
    )
    def test_tiers(self, a, b, expected):
        """Each difference lands in the expected tier."""
        assert amount_closeness(a, b) == expected

    def test_accepts_strings_and_floats(self):
        """Non-Decimal inputs are coerced without float artefacts."""
        assert amount_closeness("12.30", 12.3) == 1.0

    def test_custom_tolerances(self):
        """Tolerances can be tightened."""
        score = amount_closeness(
            Decimal("100"),
            Decimal("100.50"),
            unit_tolerance=Decimal("0.25"),
            relative_tolerance=Decimal("0"),
        )
        assert score == 0.0

    @given(a=amounts, b=amounts)
    def test_symmetric_and_bounded(self, a, b):
        """Score is symmetric and one of the defined tiers."""
        score = amount_closeness(a, b)
        assert score == amount_closeness(b, a)
        assert score in {0.0, 0.5, 0.75, 1.0}

    @given(a=amounts)
    def test_identical_amounts_score_one(self, a):
        """An amount always matches itself, whatever its sign."""
        assert amount_closeness(a, -a) == 1.0

    def test_difference_ignores_sign(self):
        """Difference is computed on magnitudes."""
        assert amount_difference(Decimal("-245.50"), Decimal("240.00")) == Decimal("5.50")


class TestToDecimal:
    """Monetary value coercion."""

    def test_rejects_garbage(self):
        """Unparsable strings raise ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            to_decimal("twelve euros")
        assert exc_info.value.context["field"] == "amount"

    def test_rejects_non_finite(self):
        """NaN and infinity are not amounts."""
        with pytest.raises(ValidationError):
            to_decimal(float("nan"))
        with pytest.raises(ValidationError):
            to_decimal(Decimal("Infinity"))


class TestDateProximity:
    """Tiered date scoring."""

    @pytest.mark.parametrize(
        "days,expected",
        [(0, 1.0), (1, 0.8), (3, 0.8), (4, 0.5), (7, 0.5), (8, 0.2), (30, 0.2), (31, 0.0)],
    )
    def test_tiers(self, days, expected):
        """Tier boundaries are inclusive."""
        base = date(2024, 1, 1)
        later = date.fromordinal(base.toordinal() + days)
        assert date_proximity(base, later) == expected
        assert date_proximity(later, base) == expected

    def test_missing_date_excludes_signal(self):
        """A missing date yields None, not zero."""
        assert date_proximity(date(2024, 1, 1), None) is None
        assert date_proximity(None, date(2024, 1, 1)) is None
        assert day_distance(None, None) is None

    def test_datetimes_compare_by_day(self):
        """Times of day are ignored."""
        assert day_distance(datetime(2024, 1, 1, 23, 59), date(2024, 1, 2)) == 1


class TestNormalizeText:
    """Shared text normalization."""

    def test_greek_tonos_removed(self):
        """Accented Greek letters lose their tonos."""
        assert normalize_text("Αεροπορία Αιγαίου") == "αεροπορια αιγαιου"

    def test_latin_diacritics_and_punctuation(self):
        """Accents dropped, punctuation becomes whitespace, runs collapse."""
        assert normalize_text("  Café-Hôtel   S.A.  ") == "cafe hotel s a"

    def test_final_sigma_folded(self):
        """Final sigma matches the medial form."""
        assert normalize_text("ΑΚΡΟΠΟΛΙΣ") == normalize_text("ακροπολις")

    def test_empty(self):
        assert normalize_text(None) == ""
        assert normalize_text("   ") == ""


class TestTextSimilarity:
    """Description ↔ counterparty scoring."""

    def test_substring_is_full_match(self):
        """Name contained in the description scores 1.0."""
        assert text_similarity("AEGEAN AIRLINES SA", "Aegean Airlines") == 1.0

    def test_description_contained_in_name(self):
        """Containment works both ways."""
        assert text_similarity("AEGEAN", "Aegean Airlines S.A.") == 1.0

    def test_token_overlap_fraction(self):
        """Partial overlap is the fraction of significant name tokens found."""
        score = text_similarity("POS OLYMPIC 1234", "Olympic Air Services")
        # only "olympic" appears in the description
        assert score == pytest.approx(1 / 3)

    def test_short_tokens_ignored(self):
        """Tokens under three characters do not count."""
        assert text_similarity("PAYMENT ZX", "ZX Co") == 0.0

    def test_greek_accents_insensitive(self):
        """Accented and unaccented Greek compare equal."""
        assert text_similarity("ΠΛΗΡΩΜΗ ΑΕΡΟΠΟΡΙΑ ΑΙΓΑΙΟΥ", "Αεροπορία Αιγαίου") == 1.0

    def test_missing_name_excludes_signal(self):
        """No counterparty means no text signal."""
        assert text_similarity("anything", None) is None
        assert text_similarity("anything", " - ") is None

    def test_empty_description_scores_zero(self):
        assert text_similarity("", "Aegean Airlines") == 0.0

    @given(description=st.text(max_size=40), name=st.text(max_size=40))
    def test_bounded(self, description, name):
        """Score is None or within [0, 1]."""
        score = text_similarity(description, name)
        assert score is None or 0.0 <= score <= 1.0


class TestDocumentNumberFound:
    """Invoice number detection in descriptions."""

    def test_found_with_different_punctuation(self):
        assert document_number_found("TRANSFER INV/2024/031 THANKS", "INV-2024-031")

    def test_not_found(self):
        assert not document_number_found("TRANSFER INV 2024 032", "INV-2024-031")

    def test_too_short_never_matches(self):
        """One- or two-character numbers would match anything."""
        assert not document_number_found("PAYMENT 12 JAN", "12")
        assert not document_number_found("PAYMENT", None)
