from datetime import date
from decimal import Decimal

import pytest

from emi_calc.data_models import LoanField, LoanPlan
from emi_calc.solver import (
    LoanInputs,
    Resolved,
    Unresolvable,
    build_plan,
    choose_derived_field,
    resolve,
    solve_terms,
)

START = date(2015, 1, 1)
ALL = set(LoanField)


def make_inputs(**overrides):
    values = dict(
        principal=Decimal("2500000"),
        rate=Decimal("9.55"),
        tenure=120,
        installment=None,
        start_period=START,
    )
    values.update(overrides)
    return LoanInputs(**values)


def test_known_fields_accepts_zero_rate_only():
    inputs = LoanInputs(principal=Decimal("0"), rate=Decimal("0"), tenure=0, installment=Decimal("-1"))
    assert inputs.known_fields() == {LoanField.RATE}


def test_choose_derived_field_default_order():
    known = {LoanField.PRINCIPAL, LoanField.RATE, LoanField.TENURE}
    assert choose_derived_field(known) == LoanField.INSTALLMENT


def test_choose_derived_field_respects_last_edited():
    assert choose_derived_field(ALL, LoanField.INSTALLMENT) == LoanField.TENURE
    assert choose_derived_field(ALL, LoanField.TENURE) == LoanField.INSTALLMENT
    known = {LoanField.RATE, LoanField.TENURE, LoanField.INSTALLMENT}
    assert choose_derived_field(known, LoanField.INSTALLMENT) == LoanField.PRINCIPAL
    assert choose_derived_field(known, LoanField.PRINCIPAL) is None


def test_choose_derived_field_rate_is_last_resort():
    known = {LoanField.PRINCIPAL, LoanField.TENURE, LoanField.INSTALLMENT}
    assert choose_derived_field(known) == LoanField.RATE


def test_choose_derived_field_needs_three_inputs():
    assert choose_derived_field({LoanField.PRINCIPAL, LoanField.RATE}) is None


def test_solve_installment_rounds_to_cents():
    result = solve_terms(make_inputs(), LoanField.INSTALLMENT)
    assert isinstance(result, Resolved)
    assert result.terms.installment == Decimal("32417.87")
    assert result.derived == LoanField.INSTALLMENT


def test_solve_tenure_rounds_up_to_whole_months():
    inputs = make_inputs(principal=Decimal("100000"), rate=Decimal("12"), tenure=None, installment=Decimal("5000"))
    result = solve_terms(inputs, LoanField.TENURE)
    assert result.terms.tenure == 23


def test_solve_tenure_round_trip_stays_exact():
    emi = solve_terms(make_inputs(), LoanField.INSTALLMENT).terms.installment
    result = solve_terms(make_inputs(tenure=None, installment=emi), LoanField.TENURE)
    assert result.terms.tenure == 120


def test_solve_tenure_never_amortizes():
    inputs = make_inputs(principal=Decimal("100000"), rate=Decimal("24"), tenure=None, installment=Decimal("100"))
    result = solve_terms(inputs, LoanField.TENURE)
    assert isinstance(result, Unresolvable)
    assert result.field == LoanField.TENURE
    assert "interest" in result.reason


def test_solve_principal():
    inputs = make_inputs(principal=None, installment=Decimal("32417.87"))
    result = solve_terms(inputs, LoanField.PRINCIPAL)
    assert float(result.terms.principal) == pytest.approx(2_500_000, abs=1)
    assert result.terms.principal == result.terms.principal.quantize(Decimal("0.01"))


def test_solve_rate():
    inputs = make_inputs(rate=None, installment=Decimal("32417.87"))
    result = solve_terms(inputs, LoanField.RATE)
    assert result.terms.rate == Decimal("9.5500")


def test_solve_rate_zero_interest():
    inputs = make_inputs(principal=Decimal("12000"), rate=None, tenure=12, installment=Decimal("1000"))
    result = solve_terms(inputs, LoanField.RATE)
    assert result.terms.rate == 0


def test_solve_rate_payments_too_small():
    inputs = make_inputs(principal=Decimal("12000"), rate=None, tenure=12, installment=Decimal("900"))
    result = solve_terms(inputs, LoanField.RATE)
    assert isinstance(result, Unresolvable)


def test_solve_reports_missing_inputs():
    result = solve_terms(make_inputs(principal=None), LoanField.INSTALLMENT)
    assert isinstance(result, Unresolvable)
    assert "principal" in result.reason


def test_resolve_recomputes_installment_when_all_known():
    result = resolve(make_inputs(installment=Decimal("30000")))
    assert result.derived == LoanField.INSTALLMENT
    assert result.terms.installment == Decimal("32417.87")


def test_resolve_never_overwrites_last_edited():
    inputs = make_inputs(principal=None, installment=Decimal("30000"))
    assert isinstance(resolve(inputs, last_edited=LoanField.PRINCIPAL), Unresolvable)


def test_resolve_needs_three_inputs():
    result = resolve(LoanInputs(principal=Decimal("1000"), start_period=START))
    assert isinstance(result, Unresolvable)
    assert result.field is None


def test_build_plan_reference_loan():
    plan = build_plan(make_inputs())
    assert isinstance(plan, LoanPlan)
    assert plan.derived == LoanField.INSTALLMENT
    assert len(plan.schedule) == 120
    assert plan.schedule[-1].balance == 0
    assert plan.summary.end_period == date(2024, 12, 1)
    assert float(plan.summary.total_interest) == pytest.approx(1_390_143.5, abs=5)


def test_build_plan_keeps_nominal_installment():
    inputs = make_inputs(principal=Decimal("100000"), rate=Decimal("12"), tenure=None, installment=Decimal("5000"))
    plan = build_plan(inputs, last_edited=LoanField.INSTALLMENT)
    assert plan.derived == LoanField.TENURE
    assert plan.terms.installment == Decimal("5000")
    assert plan.schedule[-1].payment < plan.terms.installment


def test_build_plan_requires_start_period():
    assert isinstance(build_plan(make_inputs(start_period=None)), Unresolvable)


def test_build_plan_with_explicit_derive():
    inputs = make_inputs(installment=Decimal("40000"))
    plan = build_plan(inputs, derive=LoanField.TENURE)
    assert plan.derived == LoanField.TENURE
    assert plan.terms.tenure < 120


def test_solve_installment_keeps_exact_value_for_schedule():
    inputs = make_inputs(principal=Decimal("1000"), rate=Decimal("0"), tenure=3)
    result = solve_terms(inputs, LoanField.INSTALLMENT)
    assert result.terms.installment == Decimal("333.33")
    assert result.schedule_installment == Decimal(1000) / Decimal(3)


def test_solve_given_installment_is_used_as_is():
    inputs = make_inputs(principal=Decimal("100000"), rate=Decimal("12"), tenure=None, installment=Decimal("5000"))
    result = solve_terms(inputs, LoanField.TENURE)
    assert result.exact_installment is None
    assert result.schedule_installment == Decimal("5000")


@pytest.mark.parametrize(
    "principal, rate, tenure",
    [
        ("1000", "0", 3),  # 333.33 rounds down
        ("100", "0", 3),  # 33.33 rounds down
        ("50000", "0", 7),  # 7142.857142 rounds up
        ("2500000", "9.55", 120),  # 32417.866951 rounds up
        ("750000", "7.25", 360),  # 5116.322100 rounds down
        ("1000000", "11", 240),  # 10321.883924 rounds down
        ("50000", "9", 18),  # 2979.883214 rounds down
    ],
)
def test_build_plan_schedule_retires_loan(principal, rate, tenure):
    inputs = make_inputs(principal=Decimal(principal), rate=Decimal(rate), tenure=tenure)
    plan = build_plan(inputs)

    assert isinstance(plan, LoanPlan)
    assert plan.derived == LoanField.INSTALLMENT
    assert 0 < len(plan.schedule) <= tenure
    assert all(e.balance >= 0 for e in plan.schedule)
    assert plan.schedule[-1].balance == 0
    assert float(plan.summary.total_principal) == pytest.approx(float(principal), abs=1e-6)


def test_build_plan_zero_rate_retires_loan():
    inputs = make_inputs(principal=Decimal("1000"), rate=Decimal("0"), tenure=3)
    plan = build_plan(inputs)

    assert plan.terms.installment == Decimal("333.33")
    assert len(plan.schedule) == 3
    assert plan.schedule[-1].balance == 0
    assert sum(e.principal for e in plan.schedule) == 1000


def test_build_plan_rejects_tenure_over_limit():
    result = build_plan(make_inputs(principal=Decimal("1000"), tenure=999_999_999))
    assert isinstance(result, Unresolvable)
    assert result.field == LoanField.TENURE
    assert "exceeds 1200 months" in result.reason


def test_solve_tenure_over_limit():
    # 1% a month on 100,000 is 1,000; a tenth of a cent more takes ~1,388 months
    inputs = make_inputs(principal=Decimal("100000"), rate=Decimal("12"), tenure=None, installment=Decimal("1000.001"))
    result = solve_terms(inputs, LoanField.TENURE)
    assert isinstance(result, Unresolvable)
    assert "exceeds 1200 months" in result.reason
