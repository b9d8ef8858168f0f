"""
Monte Carlo engine for a guaranteed-income purchase plus an amortized risk portfolio.
Pure functions for simulation logic, decoupled from UI.
"""
import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, List, Optional

import numpy as np

from amortization import purchase_cost, amortized_withdrawal

logger = logging.getLogger(__name__)

SPENDING_PERIODS = ("annual", "monthly")
ALLOCATION_TOLERANCE = 0.1  # percentage points

# Fields that only change how results are shown, never the results themselves
DISPLAY_FIELDS = ("show_sources", "display_monthly", "display_nominal")


@dataclass(frozen=True)
class SimulationSettings:
    """Inputs for one simulation run. Percent-valued fields are in percent (7.0 == 7%)."""
    birth_date: Optional[date] = None
    expected_inflation: float = 2.5

    # Guaranteed-income (LMP) purchase
    lmp_amount: float = 0.0
    lmp_rate: float = 0.0
    lmp_years: int = 30

    # Risk portfolio
    start_balance: float = 1_000_000
    horizon_years: int = 30
    stock_pct: float = 60.0
    bond_pct: float = 40.0
    stock_return: float = 7.0
    stock_sigma: float = 15.0
    bond_return: float = 2.5
    bond_sigma: float = 5.0
    legacy_target: float = 0.0
    n_sims: int = 1000
    random_seed: Optional[int] = None

    # Total spending cap in day-one real dollars
    max_total_spending_value: Optional[float] = None
    max_total_spending_period: str = "annual"

    # Display flags
    show_sources: bool = False
    display_monthly: bool = False
    display_nominal: bool = False


@dataclass(frozen=True)
class DerivedScalars:
    """Values computed once per settings, shared read-only by every path"""
    lmp_cost: float
    risk_start: float
    avg_portfolio_return: float
    initial_withdrawal: float
    annual_spending_cap: Optional[float]


@dataclass
class PathState:
    """Running state of a single path"""
    balance: float
    withdrawal_target: float


@dataclass(frozen=True)
class YearSample:
    """Spending realized by one path in one year (real dollars)"""
    lmp_component: float
    risk_component: float

    @property
    def total(self) -> float:
        return self.lmp_component + self.risk_component


@dataclass(frozen=True)
class PathRecord:
    """One row of the per-path audit log. `year` and `sim` are 1-based."""
    year: int
    sim: int
    start_balance_real: float
    lmp_payment_real: float
    risk_withdrawal_real: float
    total_spending_real: float
    end_balance_real: float
    cumulative_inflation: float


@dataclass
class PathOutcome:
    """Everything one path produces"""
    samples: List[YearSample]
    records: List[PathRecord]
    legacy: float


@dataclass
class SimulationResults:
    """Results from Monte Carlo simulation"""
    settings: SimulationSettings
    derived: DerivedScalars
    results_by_year: List[List[YearSample]]
    path_records: List[PathRecord]
    legacy_outcomes: np.ndarray
    warnings: List[str] = field(default_factory=list)
    completed_paths: int = 0
    cancelled: bool = False

    def component_by_year(self, component: str) -> List[np.ndarray]:
        """
        Per-year arrays of one spending component across paths.

        Args:
            component: "lmp", "risk" or "total"
        """
        if component == "lmp":
            getter = lambda s: s.lmp_component
        elif component == "risk":
            getter = lambda s: s.risk_component
        elif component == "total":
            getter = lambda s: s.total
        else:
            raise ValueError(f"Unknown spending component: {component}")
        return [np.array([getter(s) for s in year], dtype=float) for year in self.results_by_year]


def validate_settings(settings: SimulationSettings) -> None:
    """Reject settings the engine cannot simulate. Raises ValueError."""
    if not isinstance(settings.horizon_years, (int, np.integer)) or settings.horizon_years <= 0:
        raise ValueError(f"horizon_years must be a positive integer, got {settings.horizon_years}")
    if not isinstance(settings.n_sims, (int, np.integer)) or settings.n_sims <= 0:
        raise ValueError(f"n_sims must be a positive integer, got {settings.n_sims}")

    numeric_fields = [
        'expected_inflation', 'lmp_amount', 'lmp_rate', 'lmp_years', 'start_balance',
        'stock_pct', 'bond_pct', 'stock_return', 'stock_sigma', 'bond_return',
        'bond_sigma', 'legacy_target'
    ]
    for name in numeric_fields:
        value = getattr(settings, name)
        if isinstance(value, bool) or not isinstance(value, (int, float, np.number)):
            raise ValueError(f"{name} must be a number, got {value!r}")
        if not math.isfinite(value):
            raise ValueError(f"{name} must be finite, got {value}")

    for name in ('stock_pct', 'bond_pct'):
        value = getattr(settings, name)
        if not 0 <= value <= 100:
            raise ValueError(f"{name} must be between 0 and 100, got {value}")

    for name in ('stock_sigma', 'bond_sigma', 'lmp_years'):
        if getattr(settings, name) < 0:
            raise ValueError(f"{name} must be non-negative, got {getattr(settings, name)}")

    for name in ('expected_inflation', 'lmp_rate', 'stock_return', 'bond_return'):
        if getattr(settings, name) <= -100:
            raise ValueError(f"{name} must be greater than -100%, got {getattr(settings, name)}")

    avg_return = (
        (settings.stock_pct / 100) * (settings.stock_return / 100) +
        (settings.bond_pct / 100) * (settings.bond_return / 100)
    )
    if avg_return <= -1:
        raise ValueError(
            f"allocation-weighted average return must be greater than -100%, got {avg_return * 100:g}%")

    seed = settings.random_seed
    if seed is not None and (isinstance(seed, bool) or not isinstance(seed, (int, np.integer)) or seed < 0):
        raise ValueError(f"random_seed must be a non-negative integer, got {seed!r}")

    if settings.max_total_spending_period not in SPENDING_PERIODS:
        raise ValueError(
            f"max_total_spending_period must be one of {SPENDING_PERIODS}, "
            f"got {settings.max_total_spending_period!r}")

    cap = settings.max_total_spending_value
    if cap is not None and (not math.isfinite(cap) or cap < 0):
        raise ValueError(f"max_total_spending_value must be a non-negative number, got {cap}")


def effective_annual_cap(settings: SimulationSettings) -> Optional[float]:
    """Annual real spending cap, or None when no positive cap is configured"""
    cap = settings.max_total_spending_value
    if cap is None or cap <= 0:
        return None
    if settings.max_total_spending_period == "monthly":
        return cap * 12
    return cap


def derive_scalars(settings: SimulationSettings) -> DerivedScalars:
    """Compute the purchase cost, risk start balance and initial withdrawal"""
    lmp_cost = purchase_cost(
        settings.lmp_amount,
        settings.lmp_rate / 100,
        min(settings.lmp_years, settings.horizon_years)
    )
    risk_start = settings.start_balance - lmp_cost

    avg_portfolio_return = (
        (settings.stock_pct / 100) * (settings.stock_return / 100) +
        (settings.bond_pct / 100) * (settings.bond_return / 100)
    )

    initial_withdrawal = amortized_withdrawal(
        risk_start, avg_portfolio_return, settings.horizon_years, settings.legacy_target)

    return DerivedScalars(
        lmp_cost=lmp_cost,
        risk_start=risk_start,
        avg_portfolio_return=avg_portfolio_return,
        initial_withdrawal=initial_withdrawal,
        annual_spending_cap=effective_annual_cap(settings)
    )


def configuration_warnings(settings: SimulationSettings, derived: DerivedScalars) -> List[str]:
    """Non-fatal problems worth telling the user about"""
    warnings = []
    if derived.risk_start < 0:
        warnings.append(
            "LMP cost exceeds starting portfolio balance. Risk portfolio starts negative. "
            "Results may be unreliable.")
    allocation = settings.stock_pct + settings.bond_pct
    if abs(allocation - 100) > ALLOCATION_TOLERANCE:
        warnings.append(
            f"Stock % ({settings.stock_pct:g}%) + Bond % ({settings.bond_pct:g}%) "
            f"does not equal 100%.")
    return warnings


def apply_spending_cap(lmp_contribution: float, risk_withdrawal: float,
                       annual_cap: Optional[float]) -> float:
    """Reduce the risk withdrawal so total spending stays within the cap. LMP is never reduced."""
    if annual_cap is None:
        return risk_withdrawal
    total = lmp_contribution + risk_withdrawal
    if total > annual_cap:
        excess = total - annual_cap
        return max(0.0, risk_withdrawal - excess)
    return risk_withdrawal


def simulate_path(settings: SimulationSettings, derived: DerivedScalars,
                  rng: np.random.Generator, path_index: int = 0) -> PathOutcome:
    """
    Run one stochastic path through the horizon.

    Args:
        settings: Validated simulation settings
        derived: Scalars from derive_scalars(settings)
        rng: Random generator private to this path
        path_index: 0-based path number, used for the record log

    Returns:
        PathOutcome with one YearSample and one PathRecord per year
    """
    state = PathState(balance=derived.risk_start, withdrawal_target=derived.initial_withdrawal)
    inflation = settings.expected_inflation / 100
    w_stock = settings.stock_pct / 100
    w_bond = settings.bond_pct / 100

    samples = []
    records = []

    for t in range(settings.horizon_years):
        start_balance = state.balance
        cumulative_inflation = (1 + inflation) ** t

        uncapped_withdrawal = state.withdrawal_target
        if state.balance <= 0:
            uncapped_withdrawal = 0.0
        uncapped_withdrawal = min(uncapped_withdrawal, max(0.0, state.balance))

        lmp_contribution = settings.lmp_amount if t < settings.lmp_years else 0.0

        risk_withdrawal = apply_spending_cap(
            lmp_contribution, uncapped_withdrawal, derived.annual_spending_cap)
        risk_withdrawal = max(0.0, min(risk_withdrawal, state.balance))

        r_stock = rng.normal(settings.stock_return / 100, settings.stock_sigma / 100)
        r_bond = rng.normal(settings.bond_return / 100, settings.bond_sigma / 100)
        portfolio_return = w_stock * r_stock + w_bond * r_bond

        balance_after_withdrawal = state.balance - risk_withdrawal
        state.balance = max(0.0, balance_after_withdrawal * (1 + portfolio_return))

        remaining_years = settings.horizon_years - (t + 1)
        state.withdrawal_target = max(0.0, amortized_withdrawal(
            state.balance, derived.avg_portfolio_return, remaining_years, settings.legacy_target))

        samples.append(YearSample(lmp_component=lmp_contribution, risk_component=risk_withdrawal))
        records.append(PathRecord(
            year=t + 1,
            sim=path_index + 1,
            start_balance_real=start_balance,
            lmp_payment_real=lmp_contribution,
            risk_withdrawal_real=risk_withdrawal,
            total_spending_real=lmp_contribution + risk_withdrawal,
            end_balance_real=state.balance,
            cumulative_inflation=cumulative_inflation
        ))

    return PathOutcome(samples=samples, records=records, legacy=state.balance)


class MonteCarloEngine:
    """Runs independent paths and collects per-year samples, records and legacy outcomes"""

    def __init__(self, settings: SimulationSettings, seed: Optional[int] = None,
                 rng_factory: Optional[Callable[[int], np.random.Generator]] = None):
        validate_settings(settings)
        self.settings = settings
        self.seed = seed if seed is not None else settings.random_seed
        self.rng_factory = rng_factory

    def _path_generators(self):
        """Yield one independent generator per path"""
        if self.rng_factory is not None:
            path_index = 0
            while True:
                yield self.rng_factory(path_index)
                path_index += 1
        seed_sequence = np.random.SeedSequence(self.seed)
        while True:
            yield np.random.default_rng(seed_sequence.spawn(1)[0])

    def run(self, should_stop: Optional[Callable[[], bool]] = None,
            progress_callback: Optional[Callable[[int, int], None]] = None) -> SimulationResults:
        """
        Run the simulation.

        Args:
            should_stop: Polled between paths; returning True ends the run early
            progress_callback: Called with (completed_paths, n_sims) after each path

        Returns:
            SimulationResults holding only fully completed paths
        """
        settings = self.settings
        derived = derive_scalars(settings)

        warnings = configuration_warnings(settings, derived)
        for message in warnings:
            logger.warning(message)

        logger.info("Running %d paths over %d years (risk start %.0f, W0 %.0f)",
                    settings.n_sims, settings.horizon_years,
                    derived.risk_start, derived.initial_withdrawal)

        results_by_year = [[] for _ in range(settings.horizon_years)]
        path_records = []
        legacy_outcomes = []
        cancelled = False

        generators = self._path_generators()
        for path_index in range(settings.n_sims):
            if should_stop is not None and should_stop():
                cancelled = True
                logger.info("Run stopped after %d of %d paths", path_index, settings.n_sims)
                break

            outcome = simulate_path(settings, derived, next(generators), path_index)

            for t, sample in enumerate(outcome.samples):
                results_by_year[t].append(sample)
            path_records.extend(outcome.records)
            legacy_outcomes.append(outcome.legacy)

            if progress_callback is not None:
                progress_callback(path_index + 1, settings.n_sims)

        logger.info("Completed %d paths", len(legacy_outcomes))

        return SimulationResults(
            settings=settings,
            derived=derived,
            results_by_year=results_by_year,
            path_records=path_records,
            legacy_outcomes=np.array(legacy_outcomes, dtype=float),
            warnings=warnings,
            completed_paths=len(legacy_outcomes),
            cancelled=cancelled
        )


def run_monte_carlo(settings: SimulationSettings, seed: Optional[int] = None) -> SimulationResults:
    """Convenience wrapper: validate, run all paths, return results"""
    return MonteCarloEngine(settings, seed=seed).run()
