import pytest

from similarity import filter_by_amount, find_best_match, similarity
from tests.helpers import make_transaction


class TestSimilarity:
    """Tests for the similarity score."""

    @pytest.mark.parametrize(
        "a, b",
        [
            ("Starbucks Coffee", "STARBUCKS COFFEE"),
            ("COMPRA CONTINENTE FARO", "continente"),
            ("uber trip lisbon", "uber trip porto"),
            ("abc", "xyz"),
            ("", "anything"),
            ("McDonald's Faro", "mcdonalds faro"),
        ],
    )
    def test_score_in_bounds(self, a, b):
        """Test that every score lies in [0, 1]."""
        assert 0.0 <= similarity(a, b) <= 1.0

    def test_identical_is_one(self):
        """Test that a string is fully similar to itself."""
        assert similarity("Pingo Doce Lagos", "Pingo Doce Lagos") == 1.0

    def test_case_whitespace_and_apostrophes_ignored(self):
        """Test normalization before comparison."""
        assert similarity("  McDonald's  ", "mcdonalds") == 1.0

    def test_containment_scores_point_eight(self):
        """Test that a substring in either direction scores 0.8."""
        assert similarity("COMPRA CONTINENTE FARO", "continente") == 0.8
        assert similarity("continente", "COMPRA CONTINENTE FARO") == 0.8

    def test_token_overlap(self):
        """Test the token overlap formula."""
        # uber, trip shared out of three words on each side
        assert similarity("uber trip lisbon", "uber trip porto") == pytest.approx(0.7)

    def test_token_overlap_is_order_sensitive(self):
        """Test the documented asymmetry: a's word list vs b's unique words."""
        a = "uber trip lisbon"
        b = "uber trip porto porto"
        assert similarity(a, b) == pytest.approx(0.7)
        assert similarity(b, a) == pytest.approx(0.65)

    def test_short_words_ignored(self):
        """Test that words of three characters or fewer do not count."""
        assert similarity("pag mb 123", "pag xyz 456") == 0.0

    def test_no_overlap_is_zero(self):
        """Test unrelated descriptions."""
        assert similarity("netflix", "galp energia") == 0.0

    def test_empty_strings(self):
        """Test empty inputs."""
        assert similarity("", "") == 1.0
        assert similarity("", "netflix") == 0.0
        assert similarity("netflix", "") == 0.0


class TestFilterByAmount:
    """Tests for filter_by_amount."""

    def test_negative_amounts(self):
        """Test that the window works for expenses."""
        pool = [
            make_transaction(amount=-100.0),
            make_transaction(amount=-85.0),
            make_transaction(amount=-121.0),
            make_transaction(amount=100.0),
        ]
        kept = filter_by_amount(-100.0, pool)
        assert [t.raw_amount for t in kept] == [-100.0, -85.0]

    def test_positive_amounts(self):
        """Test the window for income."""
        pool = [make_transaction(amount=1000.0), make_transaction(amount=1300.0)]
        assert [t.raw_amount for t in filter_by_amount(1100.0, pool)] == [1000.0, 1300.0]


class TestFindBestMatch:
    """Tests for find_best_match."""

    def test_returns_none_below_threshold(self):
        """Test that weak matches are rejected."""
        pool = [make_transaction("galp energia", -50.0, major_category="A", category="B")]
        assert find_best_match("netflix", -50.0, pool) is None

    def test_prefers_amount_window(self):
        """Test that candidates outside the amount window are not scored."""
        far = make_transaction("continente faro", -500.0)
        near = make_transaction("compra continente faro loja", -20.0)
        match = find_best_match("continente faro", -21.0, [far, near])

        assert match.transaction is near
        assert match.score == 0.8

    def test_falls_back_to_full_pool(self):
        """Test that an empty amount window means the whole pool is searched."""
        only = make_transaction("continente faro", -500.0)
        match = find_best_match("continente faro", -10.0, [only])

        assert match.transaction is only
        assert match.score == 1.0

    def test_stops_at_near_perfect_score(self):
        """Test early exit: the first exact match wins even if others follow."""
        first = make_transaction("netflix", -10.0)
        second = make_transaction("NETFLIX", -10.0)
        match = find_best_match("netflix", -10.0, [first, second])

        assert match.transaction is first

    def test_first_found_wins_ties(self):
        """Test that equal scores keep the earlier candidate."""
        first = make_transaction("compra continente faro", -20.0)
        second = make_transaction("pagamento continente faro loja", -20.0)
        match = find_best_match("continente faro", -20.0, [first, second])

        assert match.transaction is first
        assert match.score == 0.8

    def test_custom_threshold(self):
        """Test that the threshold is configurable."""
        pool = [make_transaction("uber trip porto", -10.0)]
        assert find_best_match("uber trip lisbon", -10.0, pool, threshold=0.75) is None
        assert find_best_match("uber trip lisbon", -10.0, pool, threshold=0.69) is not None
