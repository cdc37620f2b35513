"""Description similarity used to reuse categories from past transactions.

Scoring, first rule that applies wins:

1. equal after normalization -> 1.0
2. one description contains the other -> 0.8
3. shared words longer than three characters ->
   ``0.5 + shared / max(len(words_a), len(unique_words_b)) * 0.3``
4. otherwise -> 0.0

The score is not symmetric in general: the token ratio divides by the word
count of ``a`` but the unique word count of ``b``.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from models.transaction import Transaction

EXACT_SCORE = 1.0
CONTAINS_SCORE = 0.8
TOKEN_BASE_SCORE = 0.5
TOKEN_WEIGHT = 0.3

DEFAULT_THRESHOLD = 0.7
EARLY_EXIT_SCORE = 0.95
AMOUNT_TOLERANCE = 0.2
MIN_TOKEN_LENGTH = 4


@dataclass
class Match:
    transaction: Transaction
    score: float


def normalize_description(text: str) -> str:
    return text.lower().strip().replace("'", "")


def _tokens(text: str) -> List[str]:
    return [word for word in text.split() if len(word) >= MIN_TOKEN_LENGTH]


def similarity(a: str, b: str) -> float:
    """Score how alike two descriptions are, in [0, 1]."""
    s1 = normalize_description(a or "")
    s2 = normalize_description(b or "")

    if not s1 or not s2:
        return EXACT_SCORE if s1 == s2 else 0.0

    if s1 == s2:
        return EXACT_SCORE

    if s2 in s1 or s1 in s2:
        return CONTAINS_SCORE

    words1 = _tokens(s1)
    words2 = set(_tokens(s2))
    common = [word for word in words1 if word in words2]

    if common:
        return TOKEN_BASE_SCORE + (
            len(common) / max(len(words1), len(words2))
        ) * TOKEN_WEIGHT

    return 0.0


def filter_by_amount(
    amount: float, pool: Sequence[Transaction], tolerance: float = AMOUNT_TOLERANCE
) -> List[Transaction]:
    """Keep transactions whose amount is within +/- tolerance of ``amount``.

    Bounds are ordered with min/max so negative amounts work.
    """
    low = amount * (1 - tolerance)
    high = amount * (1 + tolerance)
    amount_min, amount_max = min(low, high), max(low, high)
    return [t for t in pool if amount_min <= t.raw_amount <= amount_max]


def find_best_match(
    description: str,
    amount: float,
    pool: Sequence[Transaction],
    threshold: float = DEFAULT_THRESHOLD,
) -> Optional[Match]:
    """Find the categorized transaction whose description best matches.

    The pool is narrowed to similar amounts first; the full pool is used only
    when no transaction falls in the amount window. The search stops at the
    first near-perfect score. Ties keep the first one found.

    Args:
        description: Description of the transaction being categorized.
        amount: Its signed amount.
        pool: Categorized history in the caller's order.
        threshold: Minimum score for a match to be accepted.

    Returns:
        The best Match, or None when nothing reaches the threshold.
    """
    candidates: Iterable[Transaction] = filter_by_amount(amount, pool) or pool

    best: Optional[Match] = None
    for historical in candidates:
        score = similarity(description, historical.raw_description)

        if score >= EARLY_EXIT_SCORE:
            return Match(transaction=historical, score=score)

        if score >= threshold and (best is None or score > best.score):
            best = Match(transaction=historical, score=score)

    return best
