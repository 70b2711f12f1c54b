"""Resolve three known loan terms into a complete plan.

The engine only knows formulas. This module decides which of the four loan
variables is derived, runs the matching formula, rounds the result the way it
is presented to users and turns engine sentinels (``0``, ``Infinity``) into an
explicit :class:`Unresolvable` result.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Set, Union

from .data_models import LoanField, LoanPlan, LoanTerms
from .engine import (
    compute_installment,
    compute_principal,
    compute_rate,
    compute_tenure,
    generate_schedule,
    summarize_schedule,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
RATE_QUANTUM = Decimal("0.0001")
# Tenure is rounded to this precision before taking the ceiling so that a
# round trip yielding 120.000000000001 months stays at 120.
TENURE_QUANTUM = Decimal("0.000001")
# Longest loan accepted or derived, in months (100 years).
MAX_TENURE = 1200

# Order in which a derived field is picked, with the fields each one needs.
DERIVATION_ORDER = (
    (LoanField.INSTALLMENT, {LoanField.PRINCIPAL, LoanField.RATE, LoanField.TENURE}),
    (LoanField.TENURE, {LoanField.PRINCIPAL, LoanField.RATE, LoanField.INSTALLMENT}),
    (LoanField.PRINCIPAL, {LoanField.RATE, LoanField.TENURE, LoanField.INSTALLMENT}),
    (LoanField.RATE, {LoanField.PRINCIPAL, LoanField.TENURE, LoanField.INSTALLMENT}),
)


@dataclass
class LoanInputs:
    """Raw loan terms as supplied by a caller; any of them may be missing."""

    principal: Optional[Decimal] = None
    rate: Optional[Decimal] = None
    tenure: Optional[int] = None
    installment: Optional[Decimal] = None
    start_period: Optional[date] = None

    def known_fields(self) -> Set[LoanField]:
        """Return the fields holding a usable value.

        Principal, tenure and installment must be positive; a zero rate is a
        valid interest-free loan.
        """
        known: Set[LoanField] = set()
        if self.principal is not None and self.principal > 0:
            known.add(LoanField.PRINCIPAL)
        if self.rate is not None and self.rate >= 0:
            known.add(LoanField.RATE)
        if self.tenure is not None and self.tenure > 0:
            known.add(LoanField.TENURE)
        if self.installment is not None and self.installment > 0:
            known.add(LoanField.INSTALLMENT)
        return known


@dataclass(frozen=True)
class Resolved:
    """Complete loan terms.

    ``terms`` holds the figures as shown to users. ``exact_installment`` is
    the unrounded installment the schedule is generated from; it differs
    from ``terms.installment`` only when the installment was derived.
    """

    terms: LoanTerms
    derived: LoanField
    exact_installment: Optional[Decimal] = None

    @property
    def schedule_installment(self) -> Decimal:
        if self.exact_installment is None:
            return self.terms.installment
        return self.exact_installment


@dataclass(frozen=True)
class Unresolvable:
    """The inputs do not determine a repayable loan."""

    field: Optional[LoanField]
    reason: str


Resolution = Union[Resolved, Unresolvable]


def choose_derived_field(
    known: Iterable[LoanField], last_edited: Optional[LoanField] = None
) -> Optional[LoanField]:
    """Pick the field to compute from the others.

    The field the user edited last is treated as authoritative and is never
    overwritten. Returns ``None`` if no combination of known fields allows a
    derivation.
    """
    known = set(known)
    for candidate, needs in DERIVATION_ORDER:
        if candidate == last_edited:
            continue
        if needs <= known:
            return candidate
    return None


def _missing(inputs: LoanInputs, derive: LoanField) -> Set[LoanField]:
    needs = dict(DERIVATION_ORDER)[derive]
    return needs - inputs.known_fields()


def solve_terms(inputs: LoanInputs, derive: LoanField) -> Resolution:
    """Compute ``derive`` from the other three terms in ``inputs``."""
    missing = _missing(inputs, derive)
    if missing:
        names = ", ".join(sorted(f.value for f in missing))
        return Unresolvable(derive, f"missing or non-positive input: {names}")

    principal, rate = inputs.principal, inputs.rate
    tenure, installment = inputs.tenure, inputs.installment
    if derive is not LoanField.TENURE and tenure > MAX_TENURE:
        return Unresolvable(LoanField.TENURE, f"tenure exceeds {MAX_TENURE} months")
    exact_installment = None

    if derive is LoanField.INSTALLMENT:
        exact_installment = compute_installment(principal, rate, tenure)
        installment = exact_installment.quantize(CENT, rounding=ROUND_HALF_UP)
        if installment <= 0:
            return Unresolvable(derive, "installment cannot be computed")
    elif derive is LoanField.TENURE:
        value = compute_tenure(principal, rate, installment)
        if not value.is_finite():
            return Unresolvable(derive, "installment does not cover the monthly interest")
        if value <= 0:
            return Unresolvable(derive, "tenure cannot be computed")
        tenure = math.ceil(value.quantize(TENURE_QUANTUM, rounding=ROUND_HALF_UP))
        if tenure > MAX_TENURE:
            return Unresolvable(derive, f"tenure exceeds {MAX_TENURE} months")
    elif derive is LoanField.PRINCIPAL:
        value = compute_principal(installment, rate, tenure)
        if value <= 0:
            return Unresolvable(derive, "principal cannot be computed")
        principal = value.quantize(CENT, rounding=ROUND_HALF_UP)
    else:
        if installment * tenure < principal:
            return Unresolvable(derive, "installments add up to less than the principal")
        value = compute_rate(principal, tenure, installment)
        if not value.is_finite():
            return Unresolvable(derive, "no interest rate matches the installment")
        rate = value.quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)

    terms = LoanTerms(principal=principal, rate=rate, tenure=int(tenure), installment=installment)
    logger.debug("Derived %s: %s", derive.value, terms)
    return Resolved(terms, derive, exact_installment)


def resolve(
    inputs: LoanInputs,
    derive: Optional[LoanField] = None,
    last_edited: Optional[LoanField] = None,
) -> Resolution:
    """Resolve ``inputs`` into complete terms.

    If ``derive`` is not given, the field is picked with
    :func:`choose_derived_field`.
    """
    if derive is None:
        derive = choose_derived_field(inputs.known_fields(), last_edited)
    if derive is None:
        return Unresolvable(None, "at least three of principal, rate, tenure and installment are required")
    return solve_terms(inputs, derive)


def build_plan(
    inputs: LoanInputs,
    derive: Optional[LoanField] = None,
    last_edited: Optional[LoanField] = None,
) -> Union[LoanPlan, Unresolvable]:
    """Resolve the terms and generate the schedule and summary."""
    if inputs.start_period is None:
        return Unresolvable(None, "a start period is required")
    resolution = resolve(inputs, derive, last_edited)
    if isinstance(resolution, Unresolvable):
        logger.info("Loan terms unresolvable (%s): %s", resolution.field, resolution.reason)
        return resolution

    terms = resolution.terms
    schedule = generate_schedule(
        terms.principal, terms.rate, terms.tenure, resolution.schedule_installment, inputs.start_period
    )
    if not schedule:
        return Unresolvable(resolution.derived, "no schedule can be produced for these terms")
    summary = summarize_schedule(schedule, inputs.start_period)
    return LoanPlan(terms=terms, derived=resolution.derived, schedule=schedule, summary=summary)
