"""Command-line interface for the EMI calculator.

This module uses the ``click`` library to implement a multi-command
interface. Users supply any three of principal, rate, tenure and installment;
the fourth is calculated. Results can be printed to the terminal or exported
to JSON/CSV/XLSX files.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Callable, Optional

import click

from .data_models import LoanField, LoanPlan
from .export import export_to_csv, export_to_json, export_to_xlsx, plan_to_dict
from .formatter import print_schedule, print_summary, print_terms
from .solver import LoanInputs, Unresolvable, build_plan, resolve
from .utils import (
    parse_optional_amount,
    parse_optional_decimal,
    parse_year_month,
    years_to_months,
)

MAX_ROWS = 120
FIELD_CHOICES = [f.value for f in LoanField]


def build_inputs_from_options(
    principal: Optional[str],
    rate: Optional[str],
    tenure: Optional[int],
    years: Optional[str],
    installment: Optional[str],
    start_date: Optional[str],
) -> LoanInputs:
    """Parse raw option strings into :class:`LoanInputs`.

    ``tenure`` (months) wins over ``years`` when both are given.
    """
    try:
        principal_value = parse_optional_amount(principal)
        rate_value = parse_optional_decimal(rate)
        installment_value = parse_optional_amount(installment)
        years_value = parse_optional_decimal(years)
        if tenure is None and years_value is not None:
            tenure = years_to_months(years_value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    if start_date:
        try:
            start = parse_year_month(start_date)
        except ValueError as exc:
            raise click.BadParameter(str(exc))
    else:
        start = date.today().replace(day=1)
    return LoanInputs(
        principal=principal_value,
        rate=rate_value,
        tenure=tenure,
        installment=installment_value,
        start_period=start,
    )


def _field(value: Optional[str]) -> Optional[LoanField]:
    return LoanField(value) if value else None


def _plan_or_fail(inputs: LoanInputs, derive: Optional[str], last_edited: Optional[str]) -> LoanPlan:
    result = build_plan(inputs, _field(derive), _field(last_edited))
    if isinstance(result, Unresolvable):
        raise click.ClickException(f"Cannot resolve loan terms: {result.reason}")
    return result


def loan_options(func: Callable) -> Callable:
    """Attach the shared loan term options to a command."""
    options = [
        click.option("--principal", "-p", "principal", help="Loan amount (accepts k/m/l/cr suffixes)"),
        click.option("--rate", "-r", "rate", help="Annual interest rate (percent)"),
        click.option("--tenure", "-t", "tenure", type=int, help="Loan tenure in months"),
        click.option("--years", "-y", "years", help="Loan tenure in years (converted to months)"),
        click.option("--installment", "-e", "installment", help="Monthly installment (EMI)"),
        click.option("--start-date", "-s", "start_date", help="First payment month (YYYY-MM); defaults to this month"),
        click.option(
            "--derive",
            "derive",
            type=click.Choice(FIELD_CHOICES),
            help="Field to calculate; picked automatically when omitted",
        ),
        click.option(
            "--last-edited",
            "last_edited",
            type=click.Choice(FIELD_CHOICES),
            help="Field to keep fixed when picking the calculated field",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """An EMI calculator: give any three loan terms, get the fourth and the schedule."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@loan_options
def solve(
    principal: Optional[str],
    rate: Optional[str],
    tenure: Optional[int],
    years: Optional[str],
    installment: Optional[str],
    start_date: Optional[str],
    derive: Optional[str],
    last_edited: Optional[str],
) -> None:
    """Calculate the missing loan term and print all four."""
    inputs = build_inputs_from_options(principal, rate, tenure, years, installment, start_date)
    result = resolve(inputs, _field(derive), _field(last_edited))
    if isinstance(result, Unresolvable):
        raise click.ClickException(f"Cannot resolve loan terms: {result.reason}")
    print_terms(result.terms, result.derived)


@cli.command()
@loan_options
@click.option("--full", "full", is_flag=True, help="Print every row instead of the first 120")
@click.option("--output", "output", type=str, help="Output file path (.json, .csv or .xlsx)")
@click.option("--currency", "currency", default="₹", show_default=True, help="Currency symbol for .xlsx output")
def schedule(
    principal: Optional[str],
    rate: Optional[str],
    tenure: Optional[int],
    years: Optional[str],
    installment: Optional[str],
    start_date: Optional[str],
    derive: Optional[str],
    last_edited: Optional[str],
    full: bool,
    output: Optional[str],
    currency: str,
) -> None:
    """Compute and print the full amortization schedule."""
    inputs = build_inputs_from_options(principal, rate, tenure, years, installment, start_date)
    plan = _plan_or_fail(inputs, derive, last_edited)
    if output:
        path = Path(output)
        suffix = path.suffix.lower()
        if suffix == ".json":
            export_to_json(path, plan)
        elif suffix == ".csv":
            export_to_csv(path, plan.schedule)
        elif suffix == ".xlsx":
            export_to_xlsx(path, plan, currency)
        else:
            raise click.BadParameter("Unsupported output format; use .json, .csv or .xlsx")
        click.echo(f"Schedule exported to {path}")
        return

    print_summary(plan)
    # Limit schedule length printed to avoid flooding the terminal
    if not full and len(plan.schedule) > MAX_ROWS:
        click.echo(f"Schedule has {len(plan.schedule)} rows; showing first {MAX_ROWS} rows.")
        print_schedule(plan.schedule[:MAX_ROWS])
    else:
        print_schedule(plan.schedule)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(
    principal: Optional[str],
    rate: Optional[str],
    tenure: Optional[int],
    years: Optional[str],
    installment: Optional[str],
    start_date: Optional[str],
    derive: Optional[str],
    last_edited: Optional[str],
    output: Optional[str],
) -> None:
    """Compute and print only the summary metrics for a loan."""
    inputs = build_inputs_from_options(principal, rate, tenure, years, installment, start_date)
    plan = _plan_or_fail(inputs, derive, last_edited)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        data = plan_to_dict(plan)
        data.pop("schedule")
        with path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(plan)


if __name__ == "__main__":
    cli()
