"""Data models for the EMI calculator.

This module defines dataclasses representing the entities used by the
calculator: the four loan terms, individual schedule entries, the aggregate
summary of a schedule and the complete plan handed to presentation and
export code. Using dataclasses makes it easy to construct, inspect and
serialize these structures.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class LoanField(str, Enum):
    """One of the four loan variables that can be known or derived."""

    PRINCIPAL = "principal"
    RATE = "rate"
    TENURE = "tenure"
    INSTALLMENT = "installment"


@dataclass(frozen=True)
class LoanTerms:
    """A fully resolved set of loan terms.

    Attributes
    ----------
    principal: Decimal
        The amount borrowed.
    rate: Decimal
        Annual nominal interest rate in percent (``9.55`` means 9.55 %).
    tenure: int
        Number of monthly repayment periods.
    installment: Decimal
        The nominal monthly installment (EMI). The last scheduled payment may
        be smaller; this value is never rewritten by the schedule.
    """

    principal: Decimal
    rate: Decimal
    tenure: int
    installment: Decimal


@dataclass(frozen=True)
class ScheduleEntry:
    """An entry in the amortization schedule.

    Each entry corresponds to one month. ``payment`` equals
    ``principal + interest``; ``balance`` is what remains after the payment
    and is never negative.
    """

    month: int
    period: date
    principal: Decimal
    interest: Decimal
    payment: Decimal
    balance: Decimal


@dataclass(frozen=True)
class ScheduleSummary:
    """Aggregate figures derived from a schedule."""

    total_payment: Decimal
    total_interest: Decimal
    total_principal: Decimal
    payments: int
    start_period: date
    end_period: Optional[date]


@dataclass(frozen=True)
class LoanPlan:
    """Resolved terms together with their schedule and summary.

    ``derived`` names the field that was computed from the other three.
    """

    terms: LoanTerms
    derived: LoanField
    schedule: List[ScheduleEntry]
    summary: ScheduleSummary
