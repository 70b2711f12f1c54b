import io
import logging
import os

from flask import Flask, render_template, request, send_file

from emi_calc.data_models import LoanField
from emi_calc.export import XLSX_FILENAME, export_to_xlsx
from emi_calc.solver import LoanInputs, Unresolvable, build_plan
from emi_calc.utils import (
    month_label,
    parse_optional_amount,
    parse_optional_decimal,
    parse_year_month,
    years_to_months,
)

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["ASSET_VERSION"] = os.environ.get("ASSET_VERSION", "1")
app.config["CURRENCY_SYMBOL"] = os.environ.get("EMI_CALC_CURRENCY_SYMBOL", "₹")
app.config["PREVIEW_ROWS"] = int(os.environ.get("EMI_CALC_PREVIEW_ROWS", "120"))

DEFAULT_FORM = {
    "principal": "2500000",
    "rate": "9.55",
    "tenure_years": "10",
    "tenure_months": "120",
    "installment": "",
    "start_date": "2015-01",
    "derive": "",
    "last_edited": "tenure",
}

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _optional_field(form, name):
    value = form.get(name, "").strip()
    return LoanField(value) if value in {f.value for f in LoanField} else None


def _tenure_from_form(form):
    """Return the tenure in months, keeping the years and months inputs in sync.

    The box the user edited last wins; otherwise months take priority.
    """
    months = form.get("tenure_months", "").strip()
    years = form.get("tenure_years", "").strip()
    if form.get("tenure_source") == "years" and years:
        return years_to_months(parse_optional_decimal(years))
    if months:
        try:
            return int(months)
        except ValueError as exc:
            raise ValueError(f"Invalid tenure: {months}") from exc
    if years:
        return years_to_months(parse_optional_decimal(years))
    return None


def _form_to_inputs(form):
    return LoanInputs(
        principal=parse_optional_amount(form.get("principal")),
        rate=parse_optional_decimal(form.get("rate")),
        tenure=_tenure_from_form(form),
        installment=parse_optional_amount(form.get("installment")),
        start_period=parse_year_month(form.get("start_date", "")),
    )


def _resolve_form(form):
    inputs = _form_to_inputs(form)
    return build_plan(inputs, _optional_field(form, "derive"), _optional_field(form, "last_edited"))


def _form_values(form, plan):
    """Echo the submitted form, overwriting fields with the resolved terms."""
    values = {key: form.get(key, default) for key, default in DEFAULT_FORM.items()}
    if plan is not None:
        terms = plan.terms
        values.update(
            principal=f"{terms.principal:.2f}",
            rate=f"{terms.rate.normalize():f}",
            tenure_months=str(terms.tenure),
            tenure_years=f"{terms.tenure / 12:.2f}",
            installment=f"{terms.installment:.2f}",
        )
    return values


@app.route("/", methods=["GET", "POST"])
def index():
    plan = None
    error = None
    show_full_schedule = False

    if request.method == "POST":
        show_full_schedule = request.form.get("show_full_schedule") == "1"
        try:
            result = _resolve_form(request.form)
        except ValueError as exc:
            logger.warning("Rejected loan form: %s", exc)
            error = str(exc)
        else:
            if isinstance(result, Unresolvable):
                error = f"Cannot resolve loan terms: {result.reason}"
            else:
                plan = result
        form_values = _form_values(request.form, plan)
    else:
        form_values = dict(DEFAULT_FORM)

    schedule = []
    truncated = 0
    if plan is not None:
        schedule = plan.schedule
        if not show_full_schedule and len(schedule) > app.config["PREVIEW_ROWS"]:
            truncated = len(schedule) - app.config["PREVIEW_ROWS"]
            schedule = schedule[: app.config["PREVIEW_ROWS"]]

    return render_template(
        "index.html",
        form=form_values,
        plan=plan,
        schedule=schedule,
        truncated=truncated,
        end_date=month_label(plan.summary.end_period) if plan else None,
        show_full_schedule=show_full_schedule,
        error=error,
        fields=list(LoanField),
        currency_symbol=app.config["CURRENCY_SYMBOL"],
        asset_version=app.config["ASSET_VERSION"],
    )


@app.post("/export")
def export():
    try:
        result = _resolve_form(request.form)
    except ValueError as exc:
        logger.warning("Rejected export request: %s", exc)
        return str(exc), 400
    if isinstance(result, Unresolvable):
        return f"Cannot resolve loan terms: {result.reason}", 400

    buffer = io.BytesIO()
    export_to_xlsx(buffer, result, app.config["CURRENCY_SYMBOL"])
    buffer.seek(0)
    return send_file(buffer, mimetype=XLSX_MIMETYPE, as_attachment=True, download_name=XLSX_FILENAME)


if __name__ == "__main__":
    print("Starting EMI Calculator web app...")
    app.run(host="0.0.0.0", port=8710, debug=True)
