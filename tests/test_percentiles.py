"""
Unit tests for nearest-rank percentile summaries.
"""
import numpy as np
import pytest
from percentiles import calculate_percentiles, spending_percentiles_by_year, percentile_series


class TestCalculatePercentiles:
    """Test order-statistic summaries"""

    def test_median_of_odd_set_is_middle_element(self):
        result = calculate_percentiles([5, 1, 3, 2, 4], [0.5])
        assert result[0.5] == 3
        assert result['min'] == 1
        assert result['max'] == 5

    def test_empty_input_returns_zeros(self):
        """Empty years still render: every value is zero"""
        result = calculate_percentiles([])
        assert result == {0.05: 0.0, 0.5: 0.0, 0.95: 0.0, 'min': 0.0, 'max': 0.0}

    def test_nearest_rank_without_interpolation(self):
        """Index is floor(p * (n - 1)), never an interpolated value"""
        samples = list(range(10, 110, 10))  # 10..100
        result = calculate_percentiles(samples, [0.05, 0.5, 0.95])
        assert result[0.05] == 10   # floor(0.45) = 0
        assert result[0.5] == 50    # floor(4.5) = 4
        assert result[0.95] == 90   # floor(8.55) = 8

    def test_unordered_input(self):
        rng = np.random.default_rng(0)
        samples = rng.permutation(101)
        result = calculate_percentiles(samples, [0.0, 0.25, 1.0])
        assert result[0.0] == 0
        assert result[0.25] == 25
        assert result[1.0] == 100

    def test_out_of_range_fraction_clamped(self):
        result = calculate_percentiles([1, 2, 3], [-0.5, 1.5])
        assert result[-0.5] == 1
        assert result[1.5] == 3

    def test_single_sample(self):
        result = calculate_percentiles([42.0])
        assert result[0.05] == result[0.5] == result[0.95] == 42.0
        assert result['min'] == result['max'] == 42.0

    def test_does_not_mutate_input(self):
        samples = [3, 1, 2]
        calculate_percentiles(samples)
        assert samples == [3, 1, 2]

    def test_accepts_generators(self):
        result = calculate_percentiles((x * 2 for x in range(5)), [0.5])
        assert result[0.5] == 4


class TestSpendingPercentilesByYear:
    """Test per-year application"""

    def test_each_year_independent(self):
        by_year = [[1, 2, 3], [], [10, 30, 20]]
        summaries = spending_percentiles_by_year(by_year, [0.5])
        assert [s[0.5] for s in summaries] == [2, 0, 20]
        assert summaries[1]['max'] == 0

    def test_percentile_series(self):
        summaries = spending_percentiles_by_year([[1, 2, 3], [4, 5, 6]])
        np.testing.assert_array_equal(percentile_series(summaries, 'max'), [3, 6])
        assert percentile_series(summaries, 0.5).dtype == float

    def test_default_fractions(self):
        summary = spending_percentiles_by_year([[1.0]])[0]
        assert set(summary) == {0.05, 0.5, 0.95, 'min', 'max'}
        assert summary[0.95] == pytest.approx(1.0)
