"""
Conversion of real annual results into display units (nominal and/or monthly)
and assembly of the spending series shown on the chart.
"""
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence

import numpy as np

from simulation import SimulationSettings, YearSample
from percentiles import (
    calculate_percentiles, spending_percentiles_by_year, percentile_series, DEFAULT_FRACTIONS
)
from config_utils import current_age


@dataclass(frozen=True)
class DisplaySample:
    """A YearSample converted to display dollars"""
    lmp_component: float
    risk_component: float
    total_spending: float


def display_factor(year_index: int, inflation_pct: float,
                   nominal: bool = False, monthly: bool = False) -> float:
    """
    Multiplier from real annual dollars to display dollars.

    Args:
        year_index: 0-based year of the horizon
        inflation_pct: Expected annual inflation in percent
        nominal: Express in future (nominal) dollars
        monthly: Express as a monthly amount

    Returns:
        (1 + inflation) ** year_index if nominal, divided by 12 if monthly
    """
    inflation_factor = (1 + inflation_pct / 100) ** year_index if nominal else 1.0
    divisor = 12 if monthly else 1
    return inflation_factor / divisor


def settings_display_factor(year_index: int, settings: SimulationSettings) -> float:
    return display_factor(year_index, settings.expected_inflation,
                          settings.display_nominal, settings.display_monthly)


def normalize_year_samples(samples: Sequence[YearSample], year_index: int,
                           settings: SimulationSettings) -> List[DisplaySample]:
    """Convert one year's samples, using a single factor so components stay additive"""
    factor = settings_display_factor(year_index, settings)
    return [
        DisplaySample(
            lmp_component=s.lmp_component * factor,
            risk_component=s.risk_component * factor,
            total_spending=(s.lmp_component + s.risk_component) * factor
        )
        for s in samples
    ]


def normalize_results_by_year(results_by_year: Sequence[Sequence[YearSample]],
                              settings: SimulationSettings) -> List[List[DisplaySample]]:
    return [normalize_year_samples(samples, t, settings) for t, samples in enumerate(results_by_year)]


def normalize_legacy_outcomes(legacy_outcomes: Sequence[float],
                              settings: SimulationSettings) -> np.ndarray:
    """
    Convert terminal balances to display dollars.

    Legacy is a lump sum at the end of the horizon: it uses the end-of-horizon
    inflation factor and is never expressed monthly.
    """
    factor = 1.0
    if settings.display_nominal:
        factor = (1 + settings.expected_inflation / 100) ** settings.horizon_years
    values = np.asarray(legacy_outcomes, dtype=float) * factor
    return np.maximum(0.0, values)


def denormalize_values(values: Sequence[float], year_index: int,
                       settings: SimulationSettings) -> np.ndarray:
    """Inverse of the display conversion for one year"""
    return np.asarray(values, dtype=float) / settings_display_factor(year_index, settings)


def build_spending_bands(results_by_year: Sequence[Sequence[YearSample]],
                         settings: SimulationSettings,
                         fractions: Sequence[float] = DEFAULT_FRACTIONS) -> Dict[str, np.ndarray]:
    """
    Per-year spending series in display units.

    With `show_sources` the guaranteed and risk components are kept apart:
    'lmp', 'risk_p5', 'risk_p50', 'risk_p95' and 'total_median'.
    Otherwise total spending: 'total_p5', 'total_p50', 'total_p95'.
    """
    low, mid, high = fractions
    processed = normalize_results_by_year(results_by_year, settings)

    if settings.show_sources:
        lmp = np.array([year[0].lmp_component if year else 0.0 for year in processed], dtype=float)
        risk = spending_percentiles_by_year(
            [[s.risk_component for s in year] for year in processed], fractions)
        risk_mid = percentile_series(risk, mid)
        return {
            'lmp': lmp,
            'risk_p5': percentile_series(risk, low),
            'risk_p50': risk_mid,
            'risk_p95': percentile_series(risk, high),
            'total_median': np.maximum(0.0, lmp + risk_mid)
        }

    total = spending_percentiles_by_year(
        [[s.total_spending for s in year] for year in processed], fractions)
    return {
        'total_p5': percentile_series(total, low),
        'total_p50': percentile_series(total, mid),
        'total_p95': percentile_series(total, high)
    }


def legacy_summary(legacy_outcomes: Sequence[float], settings: SimulationSettings,
                   fractions: Sequence[float] = DEFAULT_FRACTIONS) -> Dict:
    """5th/50th/95th legacy percentiles in display dollars"""
    return calculate_percentiles(normalize_legacy_outcomes(legacy_outcomes, settings), fractions)


def dollar_type(settings: SimulationSettings) -> str:
    return "Nominal" if settings.display_nominal else "Real"


def chart_labels(settings: SimulationSettings) -> Dict[str, str]:
    """Title, subtitle and legacy note matching the display flags"""
    time_unit = "Monthly" if settings.display_monthly else "Annual"
    kind = dollar_type(settings)
    if settings.display_nominal:
        subtitle = (f"Dollars are NOT adjusted for inflation "
                    f"(assuming {settings.expected_inflation:g}% annual inflation)")
    else:
        subtitle = "These dollars ARE adjusted for inflation"
    return {
        'title': f"{time_unit} Spending During Retirement ({kind} Dollars)",
        'subtitle': subtitle,
        'legacy_note': f"Values are in {kind.lower()} dollars.",
        'dollar_type': kind
    }


def age_labels(settings: SimulationSettings, today: Optional[date] = None) -> List[str]:
    """X-axis labels: 'Age N' per year, or 'Year N' when no birth date is known"""
    if settings.birth_date is None:
        return [f"Year {t + 1}" for t in range(settings.horizon_years)]
    start_age = current_age(settings.birth_date, today)
    return [f"Age {start_age + t}" for t in range(settings.horizon_years)]
