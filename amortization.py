"""
Amortization math for the guaranteed-income purchase and the risk portfolio.
Pure functions, all values in real dollars and decimal rates.
"""
import math


def purchase_cost(amount: float, rate: float, years: float) -> float:
    """
    Present value of a level annuity paying `amount` per year.

    Args:
        amount: Annual payment (real dollars)
        rate: Periodic discount rate as a decimal
        years: Number of annual payments

    Returns:
        Up-front cost of the annuity
    """
    if years < 0:
        raise ValueError(f"years must be non-negative, got {years}")
    if rate <= -1:
        raise ValueError(f"rate must be greater than -100%, got {rate:.4f}")

    if rate == 0:
        return amount * years
    return amount * (1 - math.pow(1 + rate, -years)) / rate


def amortized_withdrawal(balance: float, rate: float, years: float,
                         legacy_target: float = 0.0) -> float:
    """
    Level annual withdrawal that runs `balance` down to `legacy_target`
    after `years` years of compounding at `rate`.

    Returns 0 when no safe withdrawal exists: no years left, no balance, or
    a balance already smaller than the discounted legacy target.
    """
    if rate <= -1:
        raise ValueError(f"rate must be greater than -100%, got {rate:.4f}")
    if years <= 0:
        return 0.0
    if balance <= 0:
        return 0.0

    growth = math.pow(1 + rate, years)
    adjusted_balance = balance - legacy_target / growth
    if adjusted_balance <= 0:
        return 0.0

    if rate == 0:
        return adjusted_balance / years

    denominator = growth - 1
    if denominator == 0:
        # rate too small to move (1 + rate) ** years off 1.0
        return adjusted_balance / years
    return adjusted_balance * rate * growth / denominator
