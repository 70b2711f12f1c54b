"""Core calculation engine for the EMI calculator.

This module implements the financial logic for level-payment (annuity) loans:
the closed-form relations between principal, rate, tenure and installment,
and the month-by-month amortization schedule. All functions are pure.

Invalid or insufficient inputs never raise. They are reported through
sentinel return values instead: ``0`` for "not computable", ``Infinity`` for
"never resolves" and an empty list for "no schedule".
"""

from __future__ import annotations

import math
from datetime import date
from decimal import Decimal, DecimalException
from typing import List, Sequence, Union

from .data_models import ScheduleEntry, ScheduleSummary
from .utils import add_months

Number = Union[Decimal, int, float]

ZERO = Decimal("0")
INFINITY = Decimal("Infinity")

# Anything left on the balance below half a cent is treated as paid off.
RESIDUAL_TOLERANCE = Decimal("0.005")

# Bisection settings for ``compute_rate``.
RATE_BRACKET_HIGH = Decimal("100")
RATE_BRACKET_EXPANSIONS = 8
RATE_TOLERANCE = Decimal("1e-10")
RATE_MAX_ITER = 200


def _dec(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _finite(*values: Decimal) -> bool:
    # NaN cannot be ordered, so this has to run before any comparison.
    return all(v.is_finite() for v in values)


def monthly_rate(annual_rate: Number) -> Decimal:
    """Convert an annual percentage rate into a monthly decimal rate."""
    return _dec(annual_rate) / 12 / 100


def compute_installment(principal: Number, annual_rate: Number, tenure: Number) -> Decimal:
    """Return the level monthly installment (EMI) for a loan.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``. Returns ``0`` if the principal or the
    tenure is not positive, the rate is negative, any input is not finite or
    ``(1 + i)^n`` overflows.
    """
    principal, annual_rate, tenure = _dec(principal), _dec(annual_rate), _dec(tenure)
    if not _finite(principal, annual_rate, tenure):
        return ZERO
    if principal <= 0 or tenure <= 0 or annual_rate < 0:
        return ZERO
    rate = monthly_rate(annual_rate)
    if rate == 0:
        return principal / tenure
    try:
        factor = (1 + rate) ** tenure
        return principal * rate * factor / (factor - 1)
    except DecimalException:
        # (1 + i)^n outside the Decimal range
        return ZERO


def compute_principal(installment: Number, annual_rate: Number, tenure: Number) -> Decimal:
    """Return the principal a given installment pays off over ``tenure`` months.

    This is the inverse of :func:`compute_installment`:

        P = E * ((1 + i)^n - 1) / (i * (1 + i)^n)
    """
    installment, annual_rate, tenure = _dec(installment), _dec(annual_rate), _dec(tenure)
    if not _finite(installment, annual_rate, tenure):
        return ZERO
    if installment <= 0 or tenure <= 0 or annual_rate < 0:
        return ZERO
    rate = monthly_rate(annual_rate)
    if rate == 0:
        return installment * tenure
    try:
        factor = (1 + rate) ** tenure
        return installment * (factor - 1) / (rate * factor)
    except DecimalException:
        return ZERO


def compute_tenure(principal: Number, annual_rate: Number, installment: Number) -> Decimal:
    """Return the (fractional) number of months needed to repay a loan.

    The result is not rounded; callers take the ceiling before using it as a
    period count. If the installment does not exceed the first month's
    interest the loan never amortizes and ``Infinity`` is returned.
    """
    principal, annual_rate, installment = _dec(principal), _dec(annual_rate), _dec(installment)
    if not _finite(principal, annual_rate, installment):
        return ZERO
    if principal <= 0 or installment <= 0 or annual_rate < 0:
        return ZERO
    rate = monthly_rate(annual_rate)
    try:
        if principal * rate >= installment:
            return INFINITY
        if rate == 0:
            return principal / installment
        return (installment / (installment - principal * rate)).ln() / (1 + rate).ln()
    except DecimalException:
        return ZERO


def compute_rate(principal: Number, tenure: Number, installment: Number) -> Decimal:
    """Return the annual rate (percent) at which ``installment`` repays ``principal``.

    There is no closed form, so the rate is found by bisection on
    :func:`compute_installment`, which is increasing in the rate. Returns
    ``0`` when the inputs are not positive or the payments add up to less
    than the principal, and ``Infinity`` when no bracketing rate is found.
    """
    principal, tenure, installment = _dec(principal), _dec(tenure), _dec(installment)
    if not _finite(principal, tenure, installment):
        return ZERO
    if principal <= 0 or tenure <= 0 or installment <= 0:
        return ZERO
    if installment * tenure <= principal:
        return ZERO

    lo, hi = ZERO, RATE_BRACKET_HIGH
    for _ in range(RATE_BRACKET_EXPANSIONS):
        if compute_installment(principal, hi, tenure) >= installment:
            break
        lo, hi = hi, hi * 2
    else:
        return INFINITY

    for _ in range(RATE_MAX_ITER):
        if hi - lo < RATE_TOLERANCE:
            break
        mid = (lo + hi) / 2
        if compute_installment(principal, mid, tenure) < installment:
            lo = mid
        else:
            hi = mid
    return (lo + hi) / 2


def generate_schedule(
    principal: Number,
    annual_rate: Number,
    tenure: Number,
    installment: Number,
    start_period: date,
) -> List[ScheduleEntry]:
    """Build the month-by-month amortization schedule.

    Parameters
    ----------
    principal: Number
        Amount borrowed; must be positive.
    annual_rate: Number
        Annual rate in percent; zero is allowed.
    tenure: Number
        Number of months. Fractional values are rounded up.
    installment: Number
        Monthly installment; must be positive.
    start_period: date
        Month of the first payment.

    Returns
    -------
    List[ScheduleEntry]
        One entry per month, stopping as soon as the balance reaches zero.
        The last payment is adjusted so that it retires the loan exactly,
        including whatever an installment rounded down to cents leaves over
        in the final month. An empty list is returned for invalid inputs.
    """
    principal, annual_rate = _dec(principal), _dec(annual_rate)
    tenure, installment = _dec(tenure), _dec(installment)
    if not _finite(principal, annual_rate, tenure, installment):
        return []
    if principal <= 0 or annual_rate < 0 or installment <= 0 or tenure <= 0:
        return []

    rate = monthly_rate(annual_rate)
    balance = principal
    payment = installment
    periods = math.ceil(tenure)
    schedule: List[ScheduleEntry] = []

    for month in range(1, periods + 1):
        if balance <= 0:
            break
        interest = balance * rate
        principal_part = payment - interest

        # Final payment: pay off exactly what is left.
        if balance < payment:
            principal_part = balance
            payment = balance + interest

        balance -= principal_part
        entry_payment = payment

        # Half-cent residues, and anything still owed in the last month, are
        # paid off with this entry.
        if balance > 0 and (balance < RESIDUAL_TOLERANCE or month == periods):
            principal_part += balance
            entry_payment += balance
            balance = ZERO
        if balance < 0:
            principal_part += balance
            balance = ZERO

        schedule.append(
            ScheduleEntry(
                month=month,
                period=add_months(start_period, month - 1),
                principal=principal_part,
                interest=interest,
                payment=entry_payment,
                balance=balance,
            )
        )

    return schedule


def summarize_schedule(schedule: Sequence[ScheduleEntry], start_period: date) -> ScheduleSummary:
    """Aggregate totals and the end period of a schedule."""
    return ScheduleSummary(
        total_payment=sum((e.payment for e in schedule), ZERO),
        total_interest=sum((e.interest for e in schedule), ZERO),
        total_principal=sum((e.principal for e in schedule), ZERO),
        payments=len(schedule),
        start_period=start_period,
        end_period=schedule[-1].period if schedule else None,
    )
