"""Compensation aggregation into a single period earnings snapshot."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import date
from decimal import Decimal

from payroll_core.calculators.frequency import annualize, convert_frequency
from payroll_core.calculators.matching import find_first
from payroll_core.calculators.money import ZERO, non_negative
from payroll_core.calculators.proration import (
    apply_proration,
    calculate_proration,
    resolve_proration_method,
)
from payroll_core.calculators.types import (
    Allowance,
    CalculationConfig,
    CompensationKind,
    CompensationSource,
    EarningItem,
    Earnings,
    OvertimeRule,
    PayFrequency,
    PayPeriod,
    PositionProration,
    ProrationMethod,
    ProrationResult,
    WorkRecord,
)

logger = logging.getLogger(__name__)

WEEKS_PER_YEAR = Decimal("52")


def _effective_dates(
    source: CompensationSource,
    employee_start: date | None,
    employee_end: date | None,
) -> tuple[date | None, date | None]:
    """Intersect a source's own dates with the employee's employment dates."""
    starts = [d for d in (source.start_date, employee_start) if d is not None]
    ends = [d for d in (source.end_date, employee_end) if d is not None]
    return (max(starts) if starts else None, min(ends) if ends else None)


def _rule_specificity(rule: OvertimeRule) -> int:
    return (2 if rule.company_id else 0) + (1 if rule.jurisdiction else 0)


def resolve_overtime_rule(
    rule_sets: Iterable[OvertimeRule],
    jurisdiction: str | None,
    company_id: str | None,
) -> OvertimeRule | None:
    """Pick the overtime rule set for an employee.

    Company-and-jurisdiction rules are tried first, then company-only,
    then jurisdiction-only, then unscoped rules. Within a level the
    configured order is kept.
    """

    def applies(rule: OvertimeRule) -> bool:
        if rule.company_id is not None and rule.company_id != company_id:
            return False
        if rule.jurisdiction is not None and rule.jurisdiction != jurisdiction:
            return False
        return True

    ordered = sorted(rule_sets, key=lambda r: -_rule_specificity(r))
    return find_first(ordered, applies)


class CompensationAggregator:
    """Merges position and employee compensation into period earnings.

    Pipeline:
    1) Resolve base salary: employee-level base items win over the sum of
       position compensation
    2) Derive the hourly rate from the annualized base (overtime only)
    3) Convert base to the period frequency and prorate it
    4) Add additional compensation, overtime and allowances, none of
       which are prorated here
    """

    def __init__(self, config: CalculationConfig | None = None):
        self.config = config or CalculationConfig()

    def aggregate(
        self,
        period: PayPeriod,
        sources: Sequence[CompensationSource] = (),
        work_records: Sequence[WorkRecord] = (),
        allowances: Sequence[Allowance] = (),
        employee_start: date | None = None,
        employee_end: date | None = None,
        jurisdiction: str | None = None,
        company_id: str | None = None,
        overtime_rules: Sequence[OvertimeRule] = (),
    ) -> Earnings:
        active = [s for s in sources if s.is_active_for(period)]
        employee_base = [
            s for s in active if s.kind == CompensationKind.EMPLOYEE_OVERRIDE and s.is_base
        ]

        earnings = Earnings()
        if employee_base:
            annual_base = self._resolve_employee_base(
                earnings, period, employee_base, employee_start, employee_end
            )
        else:
            positions = [s for s in active if s.kind == CompensationKind.POSITION]
            annual_base = self._resolve_position_base(
                earnings, period, positions, employee_start, employee_end
            )

        earnings.hourly_rate = self.hourly_rate(annual_base)

        earnings.additional_comp = [
            EarningItem(
                name=s.name,
                amount=convert_frequency(non_negative(s.amount), s.frequency, period.frequency),
                base_amount=non_negative(s.amount),
                frequency=s.frequency,
                position_title=s.position_title,
            )
            for s in active
            if s.kind == CompensationKind.EMPLOYEE_OVERRIDE and not s.is_base
        ]

        self._apply_work_records(earnings, work_records, overtime_rules, jurisdiction, company_id)

        earnings.allowances = [replace(a, amount=non_negative(a.amount)) for a in allowances]

        logger.debug(
            "Aggregated earnings: regular=%s overtime=%s additional=%s allowances=%s",
            earnings.regular_pay,
            earnings.overtime_pay,
            earnings.total_additional_comp,
            earnings.total_allowances,
        )
        return earnings

    def hourly_rate(self, annual_base: Decimal) -> Decimal:
        """Annual salary divided by standard hours per year."""
        hours_per_year = self.config.standard_weekly_hours * WEEKS_PER_YEAR
        if hours_per_year <= 0:
            return ZERO
        return annual_base / hours_per_year

    def _resolve_employee_base(
        self,
        earnings: Earnings,
        period: PayPeriod,
        base_items: list[CompensationSource],
        employee_start: date | None,
        employee_end: date | None,
    ) -> Decimal:
        method = resolve_proration_method(
            base_items[0].proration_method, self.config.default_proration_method
        )

        # A salary change inside the period splits it between the items
        regular = ZERO
        for item in base_items:
            start, end = _effective_dates(item, employee_start, employee_end)
            full = convert_frequency(non_negative(item.amount), item.frequency, period.frequency)
            item_proration = calculate_proration(period.start, period.end, start, end, method)
            regular += apply_proration(full, item_proration)

        # The rate in force at the end of the employee's window sets the hourly rate
        window_end = min(period.end, employee_end or period.end)
        current = [
            s
            for s in base_items
            if (s.start_date is None or s.start_date <= window_end)
            and (s.end_date is None or s.end_date >= window_end)
        ] or base_items
        annual = sum(
            (annualize(non_negative(s.amount), s.frequency) for s in current), ZERO
        )

        earnings.base_source = CompensationKind.EMPLOYEE_OVERRIDE
        earnings.currency = base_items[0].currency
        earnings.full_period_base = convert_frequency(annual, PayFrequency.ANNUAL, period.frequency)
        earnings.regular_pay = regular
        earnings.proration = calculate_proration(
            period.start, period.end, employee_start, employee_end, method
        )
        return annual

    def _resolve_position_base(
        self,
        earnings: Earnings,
        period: PayPeriod,
        positions: list[CompensationSource],
        employee_start: date | None,
        employee_end: date | None,
    ) -> Decimal:
        if not positions:
            return ZERO

        annual_total = ZERO
        full_total = ZERO
        prorated_total = ZERO
        for pos in positions:
            amount = non_negative(pos.amount)
            annual_total += annualize(amount, pos.frequency)
            full = convert_frequency(amount, pos.frequency, period.frequency)

            # Each position is prorated by its own assignment dates
            proration = calculate_proration(
                period.start,
                period.end,
                *_effective_dates(pos, employee_start, employee_end),
                ProrationMethod.CALENDAR_DAYS,
            )
            prorated = apply_proration(full, proration)
            full_total += full
            prorated_total += prorated
            earnings.position_prorations.append(
                PositionProration(
                    title=pos.position_title or pos.name,
                    full_amount=full,
                    prorated_amount=prorated,
                    is_prorated=proration.is_prorated,
                    factor=proration.factor,
                    days_worked=proration.days_worked,
                    total_days=proration.total_days,
                )
            )

        earnings.base_source = CompensationKind.POSITION
        earnings.currency = positions[0].currency
        earnings.full_period_base = full_total
        earnings.regular_pay = prorated_total
        earnings.proration = self._summarize_positions(earnings.position_prorations, full_total, prorated_total)
        return annual_total

    @staticmethod
    def _summarize_positions(
        details: list[PositionProration], full_total: Decimal, prorated_total: Decimal
    ) -> ProrationResult | None:
        first = find_first(details, lambda d: d.is_prorated)
        if first is None or full_total <= 0:
            return None
        return ProrationResult(
            is_prorated=True,
            factor=prorated_total / full_total,
            days_worked=first.days_worked,
            total_days=first.total_days,
            method=ProrationMethod.CALENDAR_DAYS,
        )

    def _apply_work_records(
        self,
        earnings: Earnings,
        work_records: Sequence[WorkRecord],
        overtime_rules: Sequence[OvertimeRule],
        jurisdiction: str | None,
        company_id: str | None,
    ) -> None:
        rule_set = resolve_overtime_rule(overtime_rules, jurisdiction, company_id)
        default_multiplier = (
            non_negative(rule_set.overtime_multiplier) if rule_set else self.config.overtime_multiplier
        )
        earnings.overtime_multiplier = default_multiplier

        applied: dict[str, OvertimeRule] = {}
        for record in work_records:
            hours = non_negative(record.overtime_hours)
            earnings.regular_hours += non_negative(record.regular_hours)
            earnings.overtime_hours += hours

            if record.rule is not None:
                multiplier = non_negative(record.rule.overtime_multiplier)
                applied.setdefault(record.rule.name, record.rule)
            else:
                multiplier = default_multiplier
                if rule_set is not None and hours > 0:
                    applied.setdefault(rule_set.name, rule_set)

            earnings.overtime_pay += hours * earnings.hourly_rate * multiplier

        earnings.rules_applied = list(applied.values())
