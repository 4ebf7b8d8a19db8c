"""Partial-period proration."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from payroll_core.calculators.money import ONE, ZERO, clamp
from payroll_core.calculators.types import ProrationMethod, ProrationResult

# Saturday, Sunday
WEEKEND_DAYS = frozenset({5, 6})

DEFAULT_PRORATION_METHOD = ProrationMethod.CALENDAR_DAYS

_METHOD_CODES = {
    "calendar_days": ProrationMethod.CALENDAR_DAYS,
    "calendar": ProrationMethod.CALENDAR_DAYS,
    "working_days": ProrationMethod.WORKING_DAYS,
    "working": ProrationMethod.WORKING_DAYS,
    "business_days": ProrationMethod.WORKING_DAYS,
    "none": ProrationMethod.NONE,
    "no_proration": ProrationMethod.NONE,
}


def resolve_proration_method(
    code: ProrationMethod | str | None,
    default: ProrationMethod = DEFAULT_PRORATION_METHOD,
) -> ProrationMethod:
    """Resolve an optional proration method code.

    This is the only place a missing or unrecognized method is defaulted.
    """
    if isinstance(code, ProrationMethod):
        return code
    if not code:
        return default
    return _METHOD_CODES.get(str(code).strip().lower(), default)


def count_days(start: date, end: date, method: ProrationMethod) -> int:
    """Inclusive day count between two dates under a counting method."""
    if end < start:
        return 0
    if method != ProrationMethod.WORKING_DAYS:
        return (end - start).days + 1

    total = (end - start).days + 1
    full_weeks, remainder = divmod(total, 7)
    working = full_weeks * 5
    day = start + timedelta(days=full_weeks * 7)
    for _ in range(remainder):
        if day.weekday() not in WEEKEND_DAYS:
            working += 1
        day += timedelta(days=1)
    return working


def calculate_proration(
    period_start: date,
    period_end: date,
    employee_start: date | None = None,
    employee_end: date | None = None,
    method: ProrationMethod | str | None = None,
) -> ProrationResult:
    """Compute the share of a pay period an employee was active.

    Returns factor 1.0 when the employee's dates do not truncate the
    period, 0.0 when they were not active at all, and
    days_worked / total_days otherwise.
    """
    method = resolve_proration_method(method)
    total_days = count_days(period_start, period_end, method)

    starts_before = employee_start is None or employee_start <= period_start
    ends_after = employee_end is None or employee_end >= period_end
    if method == ProrationMethod.NONE or (starts_before and ends_after):
        return ProrationResult(
            is_prorated=False,
            factor=ONE,
            days_worked=total_days,
            total_days=total_days,
            method=method,
        )

    window_start = max(period_start, employee_start or period_start)
    window_end = min(period_end, employee_end or period_end)
    if window_end < window_start:
        return ProrationResult(
            is_prorated=True,
            factor=ZERO,
            days_worked=0,
            total_days=total_days,
            method=method,
        )

    days_worked = count_days(window_start, window_end, method)
    if total_days == 0:
        # Nothing countable in the period (e.g. working days over a weekend)
        factor = ONE
    else:
        factor = clamp(Decimal(days_worked) / Decimal(total_days))

    return ProrationResult(
        is_prorated=factor < ONE,
        factor=factor,
        days_worked=days_worked,
        total_days=total_days,
        method=method,
    )


def apply_proration(amount: Decimal, result: ProrationResult) -> Decimal:
    """Scale an amount by the proration factor."""
    return amount * result.factor
