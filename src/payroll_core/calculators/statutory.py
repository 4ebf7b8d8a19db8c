"""Statutory deduction calculation from configured rate bands."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace
from decimal import ROUND_HALF_UP, Decimal

from payroll_core.calculators.frequency import convert_frequency
from payroll_core.calculators.matching import find_first
from payroll_core.calculators.money import ZERO, non_negative, to_decimal
from payroll_core.calculators.types import (
    CalculationMethod,
    DeductionRecord,
    OpeningBalance,
    PayFrequency,
    RateBand,
    StatutoryResult,
    StatutoryScheme,
    YtdSnapshot,
)

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def _round(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def sort_bands(bands: Sequence[RateBand]) -> list[RateBand]:
    """Bands in ascending min-amount order; equal mins keep configured order."""
    return sorted(bands, key=lambda b: b.min_amount)


def calculate_cumulative_tax(cumulative_income: Decimal, bands: Sequence[RateBand]) -> Decimal:
    """Progressive tax owed on a cumulative (year-to-date) income.

    Each band taxes the slice of income between its min and its max (or
    the income itself for the open top band) at the employee rate.
    """
    if cumulative_income <= 0:
        return ZERO

    total = ZERO
    for band in sort_bands(bands):
        if cumulative_income < band.min_amount:
            continue
        top = cumulative_income if band.max_amount is None else min(cumulative_income, band.max_amount)
        taxable_in_band = max(ZERO, top - band.min_amount)
        total += taxable_in_band * band.employee_rate
    return total


class StatutoryDeductionCalculator:
    """Calculates statutory deductions per scheme.

    Each scheme is evaluated independently:
    - cumulative_progressive schemes tax year-to-date income through all
      bands and withhold the difference from tax already paid (never
      negative)
    - every other scheme uses the first band matching income and age,
      then applies the band's percentage, fixed or per-unit amounts

    Schemes that produce nothing for the employee are omitted, and a
    jurisdiction without schemes simply yields no deductions.
    """

    def calculate(
        self,
        schemes: Sequence[StatutoryScheme],
        taxable_income: Decimal,
        frequency: PayFrequency,
        recurring_units: Decimal = ZERO,
        age: int | None = None,
        opening_balance: OpeningBalance | None = None,
        jurisdiction: str | None = None,
    ) -> StatutoryResult:
        result = StatutoryResult()
        income = non_negative(taxable_income)
        units = non_negative(recurring_units)

        for scheme in schemes:
            if not scheme.is_active:
                continue
            if jurisdiction and scheme.jurisdiction and scheme.jurisdiction != jurisdiction:
                continue

            if scheme.calculation_method == CalculationMethod.CUMULATIVE_PROGRESSIVE:
                record = self._calculate_cumulative(scheme, income, frequency, opening_balance)
            else:
                record = self._calculate_banded(scheme, income, frequency, units, age, result.warnings)

            if record is not None and (record.employee_amount > 0 or record.employer_amount > 0):
                result.deductions.append(record)

        return result

    def _calculate_cumulative(
        self,
        scheme: StatutoryScheme,
        income: Decimal,
        frequency: PayFrequency,
        opening_balance: OpeningBalance | None,
    ) -> DeductionRecord | None:
        bands = self._bands_for_frequency(scheme.bands, frequency, convert=False)
        if not bands:
            return None

        balance = opening_balance or OpeningBalance()
        taxable_before = to_decimal(balance.ytd_taxable_income)
        tax_before = to_decimal(balance.ytd_tax_paid)
        taxable_after = taxable_before + income

        total_due = calculate_cumulative_tax(taxable_after, bands)
        this_period = _round(max(ZERO, total_due - tax_before))

        return DeductionRecord(
            scheme_id=scheme.id,
            code=scheme.code,
            name=scheme.name or scheme.code,
            employee_amount=this_period,
            employer_amount=ZERO,
            calculation_method=CalculationMethod.CUMULATIVE_PROGRESSIVE,
            ytd=YtdSnapshot(
                taxable_before=taxable_before,
                taxable_after=taxable_after,
                tax_before=tax_before,
                tax_after=tax_before + this_period,
            ),
        )

    def _calculate_banded(
        self,
        scheme: StatutoryScheme,
        income: Decimal,
        frequency: PayFrequency,
        units: Decimal,
        age: int | None,
        warnings: list[str],
    ) -> DeductionRecord | None:
        bands = sort_bands(self._bands_for_frequency(scheme.bands, frequency, convert=True))

        def matches(band: RateBand) -> bool:
            return band.contains_income(income) and band.contains_age(age)

        band = find_first(bands, matches)
        if band is None:
            return None

        def overlaps(other: RateBand) -> bool:
            # Contiguous bands share an endpoint without overlapping
            below_max = band.max_amount is None or other.min_amount < band.max_amount
            above_min = other.max_amount is None or other.max_amount > band.min_amount
            return matches(other) and below_max and above_min

        later = bands[bands.index(band) + 1:]
        if find_first(later, overlaps) is not None:
            message = (
                f"Statutory scheme {scheme.code} has overlapping rate bands at income "
                f"{_round(income)}; the band starting at {band.min_amount} was applied"
            )
            logger.warning(message)
            warnings.append(message)

        method = band.calculation_method or scheme.calculation_method
        if method == CalculationMethod.PER_RECURRING_UNIT:
            employee = band.per_unit_amount * units
            employer = band.employer_per_unit_amount * units
        elif method == CalculationMethod.FIXED:
            employee = band.fixed_amount or band.per_unit_amount
            employer = band.employer_fixed_amount or band.employer_per_unit_amount
        else:
            method = CalculationMethod.PERCENTAGE
            employee = income * band.employee_rate
            employer = income * band.employer_rate

        return DeductionRecord(
            scheme_id=scheme.id,
            code=scheme.code,
            name=scheme.name or scheme.code,
            employee_amount=_round(non_negative(employee)),
            employer_amount=_round(non_negative(employer)),
            calculation_method=method,
        )

    @staticmethod
    def _bands_for_frequency(
        bands: Sequence[RateBand], frequency: PayFrequency, convert: bool
    ) -> list[RateBand]:
        """Bands applicable to the pay frequency.

        Bands without a frequency apply everywhere. When a scheme only has
        bands configured for other frequencies, banded schemes convert the
        first configured frequency's thresholds and amounts to the period
        frequency; cumulative schemes use that frequency's thresholds as
        configured.
        """
        matching = [b for b in bands if b.pay_frequency is None or b.pay_frequency == frequency]
        if matching or not bands:
            return matching

        source = bands[0].pay_frequency
        if not convert:
            return [b for b in bands if b.pay_frequency == source]
        return [
            _convert_band(b, source, frequency)
            for b in bands
            if b.pay_frequency == source
        ]


def _convert_band(band: RateBand, source: PayFrequency, target: PayFrequency) -> RateBand:
    def conv(amount: Decimal) -> Decimal:
        return convert_frequency(amount, source, target)

    return replace(
        band,
        min_amount=conv(band.min_amount),
        max_amount=conv(band.max_amount) if band.max_amount is not None else None,
        fixed_amount=conv(band.fixed_amount),
        employer_fixed_amount=conv(band.employer_fixed_amount),
        pay_frequency=target,
    )
