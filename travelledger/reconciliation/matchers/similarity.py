"""Similarity primitives used by the candidate scorer.

Three pure functions, each returning a score in [0, 1]:

- amount_closeness: tiered closeness of two magnitudes
- date_proximity: tiered day distance (None when a date is missing)
- text_similarity: substring / token-overlap between a bank description and
  a counterparty name (None when the name is missing)

Normalization (lower-case, diacritics removed, punctuation turned into spaces,
whitespace collapsed) is shared by every text comparison so results are
reproducible for Greek and Latin descriptions alike.
"""

import datetime as dt
import unicodedata
from decimal import Decimal, InvalidOperation

from rapidfuzz.utils import default_process

from ...exceptions import ValidationError

EXACT_AMOUNT_TOLERANCE = Decimal("0.01")
UNIT_AMOUNT_TOLERANCE = Decimal("1.00")
RELATIVE_AMOUNT_TOLERANCE = Decimal("0.02")

# (max day distance, score), checked in order
DATE_TIERS: tuple[tuple[int, float], ...] = (
    (0, 1.0),
    (3, 0.8),
    (7, 0.5),
    (30, 0.2),
)

MIN_TOKEN_LENGTH = 3


def to_decimal(value: Decimal | int | float | str, field: str = "amount") -> Decimal:
    """Coerce a monetary value to Decimal.

    Raises:
        ValidationError: If the value cannot be parsed or is not finite
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as e:
            raise ValidationError(
                f"Cannot parse {field} as a number",
                field=field,
                value=value,
                original_error=e,
            ) from e
    if not result.is_finite():
        raise ValidationError(f"{field} must be finite", field=field, value=value)
    return result


def amount_difference(a: Decimal | int | float | str, b: Decimal | int | float | str) -> Decimal:
    """Absolute difference between the magnitudes of two amounts."""
    return abs(abs(to_decimal(a)) - abs(to_decimal(b)))


def amount_closeness(
    a: Decimal | int | float | str,
    b: Decimal | int | float | str,
    *,
    exact_tolerance: Decimal = EXACT_AMOUNT_TOLERANCE,
    unit_tolerance: Decimal = UNIT_AMOUNT_TOLERANCE,
    relative_tolerance: Decimal = RELATIVE_AMOUNT_TOLERANCE,
) -> float:
    """Score how close two amounts are, ignoring sign.

    Scoring:
    - difference ≤ 0.01 → 1.0
    - difference ≤ 1.00 → 0.75
    - difference ≤ 2% of the larger amount → 0.5
    - otherwise → 0.0

    Args:
        a: First amount (sign ignored)
        b: Second amount (sign ignored)

    Returns:
        Amount score (0.0-1.0)
    """
    first = abs(to_decimal(a))
    second = abs(to_decimal(b))
    diff = abs(first - second)

    if diff <= exact_tolerance:
        return 1.0
    if diff <= unit_tolerance:
        return 0.75
    if diff <= max(first, second) * relative_tolerance:
        return 0.5
    return 0.0


def _as_date(value: dt.date) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    return value


def day_distance(first: dt.date | None, second: dt.date | None) -> int | None:
    """Absolute number of days between two dates, None if either is missing."""
    if first is None or second is None:
        return None
    return abs((_as_date(first) - _as_date(second)).days)


def date_proximity(first: dt.date | None, second: dt.date | None) -> float | None:
    """Score date proximity.

    Scoring:
    - same day → 1.0
    - 1-3 days → 0.8
    - 4-7 days → 0.5
    - 8-30 days → 0.2
    - > 30 days → 0.0

    Returns:
        Date score, or None when either date is missing
    """
    days = day_distance(first, second)
    if days is None:
        return None
    for max_days, score in DATE_TIERS:
        if days <= max_days:
            return score
    return 0.0


def normalize_text(text: str | None) -> str:
    """Normalize text for comparison.

    Steps:
    1. Unicode decomposition and removal of combining marks (ά → α, é → e)
    2. Non-alphanumeric characters become spaces, lower-case (rapidfuzz)
    3. Case folding (final sigma ς → σ)
    4. Whitespace collapsed
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    processed = default_process(stripped).casefold()
    return " ".join(processed.split())


def significant_tokens(text: str) -> list[str]:
    """Tokens of a normalized string that are long enough to carry meaning."""
    return [token for token in text.split() if len(token) >= MIN_TOKEN_LENGTH]


def text_similarity(description: str | None, counterparty: str | None) -> float | None:
    """Score how well a bank description names a counterparty.

    Returns 1.0 when one normalized string contains the other, otherwise the
    fraction of the counterparty's significant tokens found inside the
    description.

    Returns:
        Text score, or None when the counterparty name is missing
    """
    name = normalize_text(counterparty)
    if not name:
        return None

    desc = normalize_text(description)
    if not desc:
        return 0.0

    if name in desc or desc in name:
        return 1.0

    tokens = significant_tokens(name)
    if not tokens:
        return 0.0

    found = sum(1 for token in tokens if token in desc)
    return found / len(tokens)


def document_number_found(description: str | None, document_number: str | None) -> bool:
    """Whether a document number (≥ 3 chars once normalized) appears in a description."""
    number = normalize_text(document_number)
    if len(number) < MIN_TOKEN_LENGTH:
        return False
    return number in normalize_text(description)
