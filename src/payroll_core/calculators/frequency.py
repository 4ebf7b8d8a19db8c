"""Pay frequency conversion through an annualized intermediate.

The multipliers are a deliberate approximation (a month is 52/12 weeks).
Every component converts with these same constants so year-to-date
figures reconcile.
"""

from __future__ import annotations

from decimal import Decimal

from payroll_core.calculators.money import ZERO
from payroll_core.calculators.types import PayFrequency

FREQUENCY_MULTIPLIERS: dict[PayFrequency, Decimal] = {
    PayFrequency.WEEKLY: Decimal("52"),
    PayFrequency.BIWEEKLY: Decimal("26"),
    PayFrequency.FORTNIGHTLY: Decimal("26"),
    PayFrequency.SEMIMONTHLY: Decimal("24"),
    PayFrequency.MONTHLY: Decimal("12"),
    PayFrequency.ANNUAL: Decimal("1"),
}


def periods_per_year(frequency: PayFrequency | str) -> Decimal:
    return FREQUENCY_MULTIPLIERS.get(PayFrequency.parse(frequency), ZERO)


def annualize(amount: Decimal, frequency: PayFrequency | str) -> Decimal:
    """Convert a per-period amount to an annual amount."""
    return amount * periods_per_year(frequency)


def convert_frequency(
    amount: Decimal,
    source: PayFrequency | str,
    target: PayFrequency | str,
) -> Decimal:
    """Convert an amount paid at one frequency to another."""
    source_freq = PayFrequency.parse(source)
    target_freq = PayFrequency.parse(target)
    if source_freq == target_freq:
        return amount

    target_multiplier = periods_per_year(target_freq)
    if target_multiplier == 0:
        return ZERO
    return annualize(amount, source_freq) / target_multiplier
