"""
Configuration utilities for the planner form.
Default values, input defaulting and small helpers shared by the UI and tests.
"""
import math
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

from simulation import SimulationSettings


# Values used when a form field is empty or cannot be parsed
DEFAULT_FORM_VALUES = {
    'birth_date': None,
    'expected_inflation': 2.5,
    'lmp_amount': 0.0,
    'lmp_rate': 0.0,
    'lmp_years': 30,
    'start_balance': 0.0,
    'horizon_years': 30,
    'stock_pct': 0.0,
    'bond_pct': 0.0,
    'stock_return': 7.0,
    'stock_sigma': 15.0,
    'bond_return': 2.5,
    'bond_sigma': 5.0,
    'legacy_target': 0.0,
    'n_sims': 1000,
    'random_seed': None,
    'max_total_spending_value': None,
    'max_total_spending_period': 'annual',
    'show_sources': False,
    'display_monthly': False,
    'display_nominal': False,
}

INT_FIELDS = {'lmp_years', 'horizon_years', 'n_sims'}
FLOAT_FIELDS = {
    'expected_inflation', 'lmp_amount', 'lmp_rate', 'start_balance', 'stock_pct',
    'bond_pct', 'stock_return', 'stock_sigma', 'bond_return', 'bond_sigma', 'legacy_target'
}
BOOL_FIELDS = {'show_sources', 'display_monthly', 'display_nominal'}


def parse_float_input(value: Any, default: float = 0.0) -> float:
    """Parse a form value as float, falling back to default when empty or invalid"""
    try:
        parsed = float(value) if value is not None else default
    except (ValueError, TypeError):
        return default
    return default if math.isnan(parsed) else parsed


def parse_int_input(value: Any, default: int = 0) -> int:
    """Parse a form value as int (radix 10, fractional part dropped), with default"""
    if value is None:
        return default
    try:
        return int(value)
    except (ValueError, TypeError):
        pass
    try:
        parsed = float(value)
    except (ValueError, TypeError):
        return default
    if not math.isfinite(parsed):
        return default
    return int(parsed)


def parse_date_input(value: Any) -> Optional[date]:
    """Accept a date, datetime or ISO string; anything else becomes None"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def settings_from_form(form: Dict[str, Any]) -> SimulationSettings:
    """
    Build settings from raw form values, defaulting anything missing or invalid.

    Args:
        form: Mapping of field name to raw (often string) value

    Returns:
        SimulationSettings ready for the engine
    """
    values = {}
    for key, default in DEFAULT_FORM_VALUES.items():
        raw = form.get(key)
        if key in INT_FIELDS:
            values[key] = parse_int_input(raw, default)
        elif key in FLOAT_FIELDS:
            values[key] = parse_float_input(raw, default)
        elif key in BOOL_FIELDS:
            values[key] = bool(raw) if raw is not None else default
        elif key == 'birth_date':
            values[key] = parse_date_input(raw)
        elif key == 'max_total_spending_value':
            # Blank means no cap
            values[key] = None if raw in (None, '') else parse_float_input(raw, 0.0)
        elif key == 'random_seed':
            values[key] = None if raw in (None, '') else parse_int_input(raw, None)
        elif key == 'max_total_spending_period':
            values[key] = raw if raw in ('annual', 'monthly') else default
        else:
            values[key] = raw if raw is not None else default
    return SimulationSettings(**values)


def allocation_sums_to_100(stock_pct: float, bond_pct: float, tolerance: float = 0.1) -> bool:
    return abs(stock_pct + bond_pct - 100) <= tolerance


def complementary_allocation(changed_pct: float, other_pct: float) -> Tuple[float, float]:
    """
    Keep a two-asset allocation at 100% when one side is edited.

    Returns:
        (changed_pct, new_other_pct); the other side is left alone when the
        edited value is outside [0, 100]
    """
    if 0 <= changed_pct <= 100:
        return changed_pct, 100 - changed_pct
    return changed_pct, other_pct


def current_age(birth_date: date, today: Optional[date] = None) -> int:
    """Age as a plain difference of calendar years"""
    today = today or date.today()
    return today.year - birth_date.year
