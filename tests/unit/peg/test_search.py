"""Tests for the generic root-finders."""

from collections import Counter

from amo.peg.search import find_max_within, find_min_crossing


def _counting(probe):
    calls = Counter()

    def wrapped(amount):
        calls[amount] += 1
        return probe(amount)

    return wrapped, calls


class TestFindMinCrossing:
    """Tests for find_min_crossing."""

    def test_finds_minimal_amount(self):
        """Smallest a with a*a >= 50 is 8."""
        result = find_min_crossing(lambda a: a * a, lambda v: v >= 50, 100)
        assert result.amount == 8
        assert result.value == 64
        assert result.reached

    def test_crossing_at_one(self):
        """A probe that crosses immediately returns 1."""
        result = find_min_crossing(lambda a: a, lambda v: v >= 1, 100)
        assert result.amount == 1
        assert result.reached

    def test_crossing_at_bound(self):
        """Crossing exactly at max_amount is found."""
        result = find_min_crossing(lambda a: a, lambda v: v >= 100, 100)
        assert result.amount == 100
        assert result.reached

    def test_unreachable_returns_bound(self):
        """Never crossing returns max_amount with reached=False."""
        result = find_min_crossing(lambda a: a, lambda v: v >= 1_000, 100)
        assert result.amount == 100
        assert result.value == 100
        assert not result.reached

    def test_zero_bound(self):
        """Nothing to search below 1."""
        result = find_min_crossing(lambda a: a, lambda v: v >= 1, 0)
        assert result.amount == 0
        assert result.value is None
        assert not result.reached

    def test_infeasible_region_stops_search(self):
        """Target beyond the feasible region returns the last feasible amount."""
        result = find_min_crossing(lambda a: a if a <= 30 else None, lambda v: v >= 1_000, 100)
        assert result.amount == 30
        assert result.value == 30
        assert not result.reached

    def test_crossing_before_infeasible_region(self):
        """Infeasible amounts above the crossing do not hide it."""
        result = find_min_crossing(lambda a: a if a <= 30 else None, lambda v: v >= 20, 100)
        assert result.amount == 20
        assert result.reached

    def test_infeasible_from_start(self):
        """An infeasible first amount leaves nothing to return."""
        result = find_min_crossing(lambda a: None, lambda v: True, 100)
        assert result.amount == 0
        assert result.value is None
        assert not result.reached

    def test_each_amount_probed_once(self):
        """Probes are memoized within a search."""
        probe, calls = _counting(lambda a: a * 3)
        find_min_crossing(probe, lambda v: v >= 12_345, 10**9)
        assert calls
        assert max(calls.values()) == 1

    def test_large_bound_is_logarithmic(self):
        """Wei-scale bounds need only a couple hundred probes."""
        probe, calls = _counting(lambda a: a)
        result = find_min_crossing(probe, lambda v: v >= 123_456 * 10**18, 10**30)
        assert result.amount == 123_456 * 10**18
        assert len(calls) < 200


class TestFindMaxWithin:
    """Tests for find_max_within."""

    def test_upper_passes_unconstrained(self):
        """The desired amount is returned unchanged when it passes."""
        result = find_max_within(lambda a: a, lambda v: v <= 42, 40)
        assert result.amount == 40
        assert result.value == 40
        assert not result.constrained

    def test_finds_maximal_amount(self):
        """Largest a with a <= 42 is 42."""
        result = find_max_within(lambda a: a, lambda v: v <= 42, 100)
        assert result.amount == 42
        assert result.value == 42
        assert result.constrained

    def test_nothing_passes(self):
        """No passing amount clamps to zero."""
        result = find_max_within(lambda a: a, lambda v: v <= 0, 100)
        assert result.amount == 0
        assert result.value is None
        assert result.constrained

    def test_infeasible_counts_as_violation(self):
        """None values are treated as outside the constraint."""
        result = find_max_within(lambda a: a if a <= 10 else None, lambda v: True, 100)
        assert result.amount == 10
        assert result.constrained

    def test_zero_upper(self):
        """Nothing to search below 1."""
        result = find_max_within(lambda a: a, lambda v: True, 0)
        assert result.amount == 0
        assert not result.constrained

    def test_each_amount_probed_once(self):
        """Probes are memoized within a search."""
        probe, calls = _counting(lambda a: a * a)
        find_max_within(probe, lambda v: v <= 10**12, 10**9)
        assert max(calls.values()) == 1
