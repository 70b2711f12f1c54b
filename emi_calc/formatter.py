"""Output helpers for the EMI calculator.

This module provides simple functions to render resolved loan terms,
amortization schedules and summaries in a tabular text format. We rely only
on built-in printing and string formatting.
"""

from __future__ import annotations

from typing import Iterable

from .data_models import LoanField, LoanPlan, LoanTerms, ScheduleEntry
from .utils import month_label

LABELS = {
    LoanField.PRINCIPAL: "Loan amount",
    LoanField.RATE: "Annual rate",
    LoanField.TENURE: "Tenure",
    LoanField.INSTALLMENT: "Monthly EMI",
}


def _marker(field: LoanField, derived: LoanField | None) -> str:
    return "  (calculated)" if field == derived else ""


def print_terms(terms: LoanTerms, derived: LoanField | None = None) -> None:
    """Print the four loan terms, flagging the one that was calculated."""
    print(f"{LABELS[LoanField.PRINCIPAL]:19s}: {terms.principal:,.2f}{_marker(LoanField.PRINCIPAL, derived)}")
    print(f"{LABELS[LoanField.RATE]:19s}: {terms.rate:.2f}%{_marker(LoanField.RATE, derived)}")
    years = terms.tenure / 12
    print(
        f"{LABELS[LoanField.TENURE]:19s}: {terms.tenure} months ({years:.2f} years)"
        f"{_marker(LoanField.TENURE, derived)}"
    )
    print(f"{LABELS[LoanField.INSTALLMENT]:19s}: {terms.installment:,.2f}{_marker(LoanField.INSTALLMENT, derived)}")


def print_summary(plan: LoanPlan) -> None:
    """Print a summary of loan metrics in a human-readable format."""
    summary = plan.summary
    print("Summary")
    print("-" * 72)
    print_terms(plan.terms, plan.derived)
    print(f"Total interest     : {summary.total_interest:,.2f}")
    print(f"Total payment      : {summary.total_payment:,.2f}")
    print(f"Payments           : {summary.payments}")
    print(f"Start date         : {month_label(summary.start_period)}")
    if summary.end_period:
        print(f"End date           : {month_label(summary.end_period)}")
    print("-" * 72)


def print_schedule(schedule: Iterable[ScheduleEntry]) -> None:
    """Print the amortization schedule as a simple table."""
    headers = ["#", "Date", "Principal", "Interest", "EMI", "Balance"]
    print("\t".join(headers))
    for entry in schedule:
        row = [
            str(entry.month),
            entry.period.strftime("%Y-%m"),
            f"{entry.principal:.2f}",
            f"{entry.interest:.2f}",
            f"{entry.payment:.2f}",
            f"{entry.balance:.2f}",
        ]
        print("\t".join(row))
