"""
Compounding math primitives for corpus projections.

All rates are annual percentages (e.g. 12.0 for 12%). Every function is pure and
treats non-positive years or rates as "no escalation" rather than an error.
"""

from typing import NamedTuple


def future_value(present_value: float, annual_rate_percent: float, years: int) -> float:
    """
    Future value of a lump sum under annual compounding.

    FV = PV x (1 + r)^n

    Args:
        present_value: Amount today
        annual_rate_percent: Annual rate in percent
        years: Number of years to compound

    Returns:
        Compounded value, or the present value unchanged when years <= 0 or
        the rate is not positive
    """
    if years <= 0 or annual_rate_percent <= 0:
        return present_value
    return present_value * (1 + annual_rate_percent / 100) ** years


def sip_future_value(
    monthly_contribution: float, annual_rate_percent: float, years: int
) -> float:
    """
    Future value of a monthly SIP at the monthly-equivalent rate (r / 12).

    Contributions are made at the start of each month:
    FV = P x [((1 + i)^n - 1) / i] x (1 + i)

    Returns 0 for non-positive years or contributions, and the plain sum of
    contributions when the rate is not positive.
    """
    if years <= 0 or monthly_contribution <= 0:
        return 0.0
    months = years * 12
    if annual_rate_percent <= 0:
        return monthly_contribution * months
    monthly_rate = annual_rate_percent / 100 / 12
    growth = (1 + monthly_rate) ** months
    return monthly_contribution * ((growth - 1) / monthly_rate) * (1 + monthly_rate)


def inflated_value(amount: float, annual_inflation_percent: float, years: int) -> float:
    """Inflate a cost in today's money to its value after `years`."""
    return future_value(amount, annual_inflation_percent, years)


def required_monthly_sip(target_amount: float, annual_rate_percent: float, years: int) -> float:
    """
    Level monthly SIP whose future value equals `target_amount` exactly.

    Closed-form inverse of `sip_future_value`. Returns 0 when there is nothing
    to fund or no time left to fund it.
    """
    if target_amount <= 0 or years <= 0:
        return 0.0
    return target_amount / sip_future_value(1.0, annual_rate_percent, years)


def grow_with_sip(balance: float, annual_rate_percent: float, monthly_sip: float) -> float:
    """One projection year: the balance compounds and a year of SIP is added."""
    return future_value(balance, annual_rate_percent, 1) + sip_future_value(
        monthly_sip, annual_rate_percent, 1
    )


class CompoundingStep(NamedTuple):
    """Outcome of `compound_monthly`."""

    balance: float
    withdrawn: float
    shortfall: float


def compound_monthly(
    balance: float,
    annual_rate_percent: float,
    months: int,
    monthly_withdrawal: float = 0.0,
    monthly_contribution: float = 0.0,
    closing_withdrawal: float = 0.0,
) -> CompoundingStep:
    """
    Compound a balance month by month with optional contributions and withdrawals.

    Each month the contribution is added, the balance earns r / 12 and the
    monthly withdrawal is taken at month end. `closing_withdrawal` is taken
    once after the last month. Withdrawals larger than the balance are capped;
    the uncovered part is returned as shortfall. The balance never goes
    negative.

    Args:
        balance: Opening balance
        annual_rate_percent: Annual rate in percent
        months: Number of months to run (non-positive means no compounding)
        monthly_withdrawal: Amount withdrawn at each month end
        monthly_contribution: Amount added at each month start
        closing_withdrawal: Lump withdrawal taken after the final month

    Returns:
        CompoundingStep with closing balance, total withdrawn and shortfall
    """
    monthly_rate = max(annual_rate_percent, 0.0) / 100 / 12
    withdrawn = 0.0
    shortfall = 0.0
    balance = max(balance, 0.0)

    for _ in range(max(months, 0)):
        balance = (balance + monthly_contribution) * (1 + monthly_rate)
        taken = min(monthly_withdrawal, balance)
        balance -= taken
        withdrawn += taken
        shortfall += monthly_withdrawal - taken

    if closing_withdrawal > 0:
        taken = min(closing_withdrawal, balance)
        balance -= taken
        withdrawn += taken
        shortfall += closing_withdrawal - taken

    return CompoundingStep(balance=balance, withdrawn=withdrawn, shortfall=shortfall)
