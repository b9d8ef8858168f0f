"""
Tests for chart visualization functions.
Verifies chart generation and structure without testing visual output.
"""
import unittest
import numpy as np

from charts import create_spending_chart, create_legacy_distribution
from display import build_spending_bands, chart_labels, age_labels
from simulation import SimulationSettings, run_monte_carlo


class TestCharts(unittest.TestCase):

    def setUp(self):
        """Set up test data"""
        self.settings = SimulationSettings(horizon_years=10, n_sims=200, random_seed=42)
        self.results = run_monte_carlo(self.settings)
        self.x_labels = age_labels(self.settings)

    def test_spending_chart_totals(self):
        """Range bars plus a median line"""
        bands = build_spending_bands(self.results.results_by_year, self.settings)
        fig = create_spending_chart(bands, chart_labels(self.settings), self.x_labels)

        self.assertEqual(len(fig.data), 2)
        self.assertEqual(fig.data[0].type, 'bar')
        self.assertEqual(fig.data[1].type, 'scatter')
        self.assertIn("Annual Spending During Retirement (Real Dollars)", fig.layout.title.text)
        self.assertEqual(list(fig.data[1].x), self.x_labels)

    def test_spending_chart_sources(self):
        """Stacked sources plus a total median line"""
        settings = SimulationSettings(horizon_years=10, n_sims=200, random_seed=42, lmp_amount=10_000,
                                      show_sources=True, display_nominal=True)
        bands = build_spending_bands(self.results.results_by_year, settings)
        fig = create_spending_chart(bands, chart_labels(settings), self.x_labels)

        self.assertEqual(len(fig.data), 5)
        self.assertEqual(fig.layout.barmode, 'stack')
        self.assertIn("Nominal", fig.data[0].name)
        self.assertTrue(all(v >= 0 for v in fig.data[2].y))

    def test_legacy_distribution(self):
        fig = create_legacy_distribution(self.results.legacy_outcomes, currency_format="nominal")

        self.assertIsNotNone(fig)
        self.assertEqual(fig.data[0].type, 'histogram')
        self.assertIn("Nominal Dollars", fig.layout.title.text)
        # 5th, median and 95th markers
        self.assertEqual(len(fig.layout.shapes), 3)

    def test_legacy_distribution_empty(self):
        fig = create_legacy_distribution(np.array([]))
        self.assertEqual(len(fig.layout.shapes), 3)


if __name__ == '__main__':
    unittest.main()
