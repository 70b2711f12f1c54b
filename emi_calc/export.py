"""Serialize loan plans to JSON, CSV and Excel files.

JSON and CSV carry the raw schedule. The Excel workbook mirrors what users
download from the web page: a summary block followed by the schedule, with
explicit currency, percentage and date cell formats.
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import IO, Any, Dict, Iterable, List, Union

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font

from .data_models import LoanPlan, ScheduleEntry

logger = logging.getLogger(__name__)

SHEET_TITLE = "Loan Details"
XLSX_FILENAME = "Loan-Details-and-Schedule.xlsx"
PERCENT_FORMAT = "0.00%"
INT_FORMAT = "0"
DATE_FORMAT = "mmm-yy"
COLUMN_WIDTHS = {"A": 25, "B": 20, "C": 15, "D": 15, "E": 15, "F": 18}
TABLE_HEADERS = ["#", "Date", "Principal", "Interest", "EMI", "Balance"]


def _money(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def currency_format(symbol: str) -> str:
    """Return an Excel number format that prefixes ``symbol``."""
    return f'"{symbol}"#,##0.00'


def schedule_to_rows(schedule: Iterable[ScheduleEntry]) -> List[Dict[str, Any]]:
    """Convert schedule entries into JSON-serialisable dictionaries."""
    return [
        {
            "month": e.month,
            "date": e.period.strftime("%Y-%m"),
            "principal": float(e.principal),
            "interest": float(e.interest),
            "payment": float(e.payment),
            "balance": float(e.balance),
        }
        for e in schedule
    ]


def plan_to_dict(plan: LoanPlan) -> Dict[str, Any]:
    """Convert terms, summary and schedule into one serialisable dict."""
    terms, summary = plan.terms, plan.summary
    return {
        "terms": {
            "principal": float(terms.principal),
            "rate": float(terms.rate),
            "tenure": terms.tenure,
            "installment": float(terms.installment),
            "derived": plan.derived.value,
        },
        "summary": {
            "total_payment": float(summary.total_payment),
            "total_interest": float(summary.total_interest),
            "payments": summary.payments,
            "start_date": summary.start_period.strftime("%Y-%m"),
            "end_date": summary.end_period.strftime("%Y-%m") if summary.end_period else None,
        },
        "schedule": schedule_to_rows(plan.schedule),
    }


def export_to_json(path: Path, plan: LoanPlan) -> None:
    """Export terms, summary and schedule to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(plan_to_dict(plan), f, indent=2)


def export_to_csv(path: Path, schedule: Iterable[ScheduleEntry]) -> None:
    """Export schedule to a CSV file."""
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(TABLE_HEADERS)
        for e in schedule:
            writer.writerow(
                [
                    e.month,
                    e.period.strftime("%Y-%m"),
                    float(e.principal),
                    float(e.interest),
                    float(e.payment),
                    float(e.balance),
                ]
            )


def _as_datetime(value):
    return datetime(value.year, value.month, value.day) if value else None


def build_workbook(plan: LoanPlan, currency_symbol: str = "₹") -> Workbook:
    """Lay out the summary block and schedule table on a single sheet.

    Rows 1-2 hold the merged title and a spacer, rows 3-8 the summary, row 9
    is empty and the schedule table starts at row 10.
    """
    money = currency_format(currency_symbol)
    terms, summary = plan.terms, plan.summary

    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE

    ws["A1"] = "Loan Summary"
    ws["A1"].font = Font(bold=True)
    ws["A1"].alignment = Alignment(horizontal="center")
    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(TABLE_HEADERS))

    summary_rows = [
        ("Loan Amount", _money(terms.principal), money),
        # Stored as a fraction so Excel renders 0.0955 as 9.55%.
        ("Annual Interest Rate", float(terms.rate / 100), PERCENT_FORMAT),
        ("Tenure (Months)", terms.tenure, INT_FORMAT),
        ("Monthly EMI", _money(terms.installment), money),
        ("Loan Start Date", _as_datetime(summary.start_period), DATE_FORMAT),
        ("Loan End Date", _as_datetime(summary.end_period), DATE_FORMAT),
    ]
    for offset, (label, value, number_format) in enumerate(summary_rows):
        row = 3 + offset
        ws.cell(row=row, column=1, value=label)
        cell = ws.cell(row=row, column=2, value=value if value is not None else "N/A")
        if value is not None:
            cell.number_format = number_format

    header_row = 3 + len(summary_rows) + 1
    for col, header in enumerate(TABLE_HEADERS, start=1):
        ws.cell(row=header_row, column=col, value=header).font = Font(bold=True)

    for offset, entry in enumerate(plan.schedule, start=1):
        row = header_row + offset
        ws.cell(row=row, column=1, value=entry.month)
        ws.cell(row=row, column=2, value=_as_datetime(entry.period)).number_format = DATE_FORMAT
        for col, value in enumerate(
            (entry.principal, entry.interest, entry.payment, entry.balance), start=3
        ):
            ws.cell(row=row, column=col, value=_money(value)).number_format = money

    for letter, width in COLUMN_WIDTHS.items():
        ws.column_dimensions[letter].width = width

    return wb


def export_to_xlsx(target: Union[Path, IO[bytes]], plan: LoanPlan, currency_symbol: str = "₹") -> None:
    """Write the workbook from :func:`build_workbook` to a path or binary stream."""
    wb = build_workbook(plan, currency_symbol)
    wb.save(target)
    logger.debug("Wrote %d schedule rows to workbook", len(plan.schedule))
