"""
Unit tests for display unit conversion and chart series assembly.
"""
from datetime import date

import numpy as np
import pytest

from simulation import SimulationSettings, YearSample, run_monte_carlo
from percentiles import spending_percentiles_by_year, percentile_series
from display import (
    display_factor, normalize_year_samples, normalize_results_by_year,
    normalize_legacy_outcomes, denormalize_values, build_spending_bands,
    legacy_summary, chart_labels, age_labels
)


SAMPLES = [
    YearSample(lmp_component=12_000, risk_component=30_000),
    YearSample(lmp_component=12_000, risk_component=45_000),
    YearSample(lmp_component=12_000, risk_component=0),
]


class TestDisplayFactor:
    """Test the real-annual to display conversion"""

    def test_identity_when_real_and_annual(self):
        for t in range(5):
            assert display_factor(t, 2.5, nominal=False, monthly=False) == 1.0

    def test_nominal_compounds_inflation(self):
        assert display_factor(0, 3.0, nominal=True) == 1.0
        assert display_factor(10, 3.0, nominal=True) == pytest.approx(1.03 ** 10)

    def test_monthly_divides_by_twelve(self):
        assert display_factor(4, 3.0, monthly=True) == pytest.approx(1 / 12)

    def test_nominal_and_monthly(self):
        assert display_factor(2, 2.0, nominal=True, monthly=True) == pytest.approx(1.02 ** 2 / 12)


class TestNormalizeSamples:
    """Test sample conversion"""

    def test_identity_transform_round_trip(self):
        """Real annual display is the identity, and denormalize undoes it"""
        settings = SimulationSettings()
        converted = normalize_year_samples(SAMPLES, 7, settings)
        risk = [s.risk_component for s in converted]
        assert risk == [30_000, 45_000, 0]
        np.testing.assert_allclose(denormalize_values(risk, 7, settings), risk)

    @pytest.mark.parametrize("nominal,monthly", [(True, False), (False, True), (True, True)])
    def test_round_trip_with_conversion(self, nominal, monthly):
        settings = SimulationSettings(expected_inflation=2.5, display_nominal=nominal,
                                      display_monthly=monthly)
        converted = normalize_year_samples(SAMPLES, 5, settings)
        totals = [s.total_spending for s in converted]
        restored = denormalize_values(totals, 5, settings)
        np.testing.assert_allclose(restored, [42_000, 57_000, 12_000])

    def test_components_stay_additive(self):
        settings = SimulationSettings(expected_inflation=4.0, display_nominal=True, display_monthly=True)
        for sample in normalize_year_samples(SAMPLES, 12, settings):
            assert sample.total_spending == pytest.approx(sample.lmp_component + sample.risk_component)

    def test_year_index_drives_inflation(self):
        settings = SimulationSettings(expected_inflation=2.0, display_nominal=True)
        by_year = normalize_results_by_year([SAMPLES, SAMPLES, SAMPLES], settings)
        assert [year[0].lmp_component for year in by_year] == pytest.approx(
            [12_000, 12_000 * 1.02, 12_000 * 1.02 ** 2])


class TestLegacy:
    """Test legacy conversion"""

    def test_uses_end_of_horizon_factor(self):
        settings = SimulationSettings(horizon_years=20, expected_inflation=2.5, display_nominal=True)
        result = normalize_legacy_outcomes([100_000, 0], settings)
        np.testing.assert_allclose(result, [100_000 * 1.025 ** 20, 0])

    def test_never_monthly(self):
        settings = SimulationSettings(display_monthly=True)
        np.testing.assert_allclose(normalize_legacy_outcomes([120_000], settings), [120_000])

    def test_floored_at_zero(self):
        assert normalize_legacy_outcomes([-5.0], SimulationSettings())[0] == 0

    def test_legacy_summary(self):
        summary = legacy_summary([300, 100, 200], SimulationSettings())
        assert summary[0.5] == 200
        assert summary['min'] == 100


class TestSpendingBands:
    """Test chart series assembly"""

    def test_total_bands(self):
        settings = SimulationSettings(horizon_years=2)
        bands = build_spending_bands([SAMPLES, []], settings)
        assert set(bands) == {'total_p5', 'total_p50', 'total_p95'}
        # totals are 42k, 57k, 12k
        assert bands['total_p5'][0] == 12_000
        assert bands['total_p50'][0] == 42_000
        assert bands['total_p95'][0] == 42_000  # floor(0.95 * 2) = 1
        assert bands['total_p50'][1] == 0

    def test_source_bands(self):
        settings = SimulationSettings(horizon_years=1, show_sources=True, display_monthly=True)
        bands = build_spending_bands([SAMPLES], settings)
        assert set(bands) == {'lmp', 'risk_p5', 'risk_p50', 'risk_p95', 'total_median'}
        assert bands['lmp'][0] == pytest.approx(1_000)
        assert bands['risk_p50'][0] == pytest.approx(2_500)
        assert bands['total_median'][0] == pytest.approx(3_500)

    def test_bands_from_engine_run(self):
        settings = SimulationSettings(horizon_years=6, n_sims=30, random_seed=3)
        results = run_monte_carlo(settings)
        bands = build_spending_bands(results.results_by_year, settings)
        assert len(bands['total_p50']) == 6
        assert np.all(bands['total_p5'] <= bands['total_p50'])
        assert np.all(bands['total_p50'] <= bands['total_p95'])

    def test_bands_are_per_year_percentile_series(self):
        """Each band is the matching per-year percentile of total spending"""
        settings = SimulationSettings(horizon_years=4, n_sims=25, random_seed=8)
        results = run_monte_carlo(settings)
        bands = build_spending_bands(results.results_by_year, settings)
        summaries = spending_percentiles_by_year(results.component_by_year("total"))
        np.testing.assert_allclose(bands['total_p5'], percentile_series(summaries, 0.05))
        np.testing.assert_allclose(bands['total_p95'], percentile_series(summaries, 0.95))


class TestLabels:
    """Test chart labels"""

    def test_real_annual_labels(self):
        labels = chart_labels(SimulationSettings())
        assert labels['title'] == "Annual Spending During Retirement (Real Dollars)"
        assert labels['subtitle'] == "These dollars ARE adjusted for inflation"
        assert labels['legacy_note'] == "Values are in real dollars."

    def test_nominal_monthly_labels(self):
        labels = chart_labels(SimulationSettings(display_nominal=True, display_monthly=True,
                                                 expected_inflation=2.5))
        assert labels['title'] == "Monthly Spending During Retirement (Nominal Dollars)"
        assert "2.5% annual inflation" in labels['subtitle']
        assert labels['dollar_type'] == "Nominal"

    def test_age_labels(self):
        settings = SimulationSettings(horizon_years=3, birth_date=date(1960, 5, 1))
        assert age_labels(settings, today=date(2026, 10, 19)) == ["Age 66", "Age 67", "Age 68"]

    def test_year_labels_without_birth_date(self):
        assert age_labels(SimulationSettings(horizon_years=2)) == ["Year 1", "Year 2"]
