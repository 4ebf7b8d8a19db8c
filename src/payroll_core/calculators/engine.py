"""Payroll calculation engine - main orchestrator."""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import asdict, dataclass, field, replace
from decimal import Decimal
from uuid import UUID

from payroll_core.calculators.aggregator import CompensationAggregator
from payroll_core.calculators.money import ZERO, non_negative, round_to_cents
from payroll_core.calculators.statutory import StatutoryDeductionCalculator
from payroll_core.calculators.types import (
    Allowance,
    CalculationConfig,
    CompensationSource,
    DeductionKind,
    DeductionRecord,
    Earnings,
    EmployeeProfile,
    EmployerContribution,
    OpeningBalance,
    OvertimeRule,
    PayFrequency,
    PayPeriod,
    PeriodDeduction,
    PositionProration,
    ProrationResult,
    StatutoryScheme,
    WorkRecord,
)
from payroll_core.posting.engine import GLPostingEngine
from payroll_core.posting.types import GLBatch, GLConfiguration, PayrollTotals, PostingContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalculationInputs:
    """Everything one employee's calculation needs, already fetched."""

    employee: EmployeeProfile
    period: PayPeriod | None
    sources: tuple[CompensationSource, ...] = ()
    work_records: tuple[WorkRecord, ...] = ()
    allowances: tuple[Allowance, ...] = ()
    deductions: tuple[PeriodDeduction, ...] = ()
    employer_contributions: tuple[EmployerContribution, ...] = ()
    schemes: tuple[StatutoryScheme, ...] = ()
    opening_balance: OpeningBalance | None = None
    overtime_rules: tuple[OvertimeRule, ...] = ()
    payroll_run_id: str | None = None


@dataclass(frozen=True)
class SalarySummary:
    base_salary: Decimal
    full_period_salary: Decimal
    hourly_rate: Decimal
    currency: str
    frequency: PayFrequency


@dataclass
class DeductionBreakdown:
    """Pre-tax, statutory and post-tax deductions of one simulation."""

    pretax: list[PeriodDeduction] = field(default_factory=list)
    statutory: list[DeductionRecord] = field(default_factory=list)
    posttax: list[PeriodDeduction] = field(default_factory=list)

    @property
    def total_pretax(self) -> Decimal:
        return sum((d.amount for d in self.pretax), ZERO)

    @property
    def total_statutory(self) -> Decimal:
        return sum((d.employee_amount for d in self.statutory), ZERO)

    @property
    def total_employer_statutory(self) -> Decimal:
        return sum((d.employer_amount for d in self.statutory), ZERO)

    @property
    def total_posttax(self) -> Decimal:
        return sum((d.amount for d in self.posttax), ZERO)

    @property
    def total_deductions(self) -> Decimal:
        return self.total_pretax + self.total_statutory + self.total_posttax

    def by_kind(self, kind: DeductionKind) -> Decimal:
        return sum(
            (d.amount for d in (*self.pretax, *self.posttax) if d.deduction_type == kind),
            ZERO,
        )


@dataclass
class SimulationResult:
    """Preview of one employee's pay for human review. Has no side effects."""

    employee: EmployeeProfile
    calculation_id: str
    earnings: Earnings
    deductions: DeductionBreakdown
    gross_pay: Decimal = ZERO
    taxable_income: Decimal = ZERO
    net_pay: Decimal = ZERO
    salary: SalarySummary | None = None
    proration: ProrationResult | None = None
    employer_contributions: list[EmployerContribution] = field(default_factory=list)
    rules_applied: list[OvertimeRule] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    payroll_run_id: str | None = None

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    @property
    def position_prorations(self) -> list[PositionProration]:
        return self.earnings.position_prorations


class PayrollEngine:
    """Main payroll calculation engine.

    Calculation pipeline (stable order per employee):
    1) Aggregate compensation into period earnings (with proration)
    2) Apply pre-tax deductions
    3) Compute taxable income
    4) Compute statutory deductions (employee and employer)
    5) Apply post-tax deductions
    6) Net pay = gross - all employee deductions
    """

    def __init__(self, config: CalculationConfig | None = None):
        self.config = config or CalculationConfig()
        self.aggregator = CompensationAggregator(self.config)
        self.statutory_calculator = StatutoryDeductionCalculator()

    def simulate(self, inputs: CalculationInputs) -> SimulationResult:
        """Calculate one employee's pay without side effects."""
        calculation_id = self._generate_calculation_id(inputs)
        period = inputs.period
        if period is None:
            return self.error_result(inputs, "Pay period bounds are required to calculate pay")

        employee = inputs.employee
        warnings: list[str] = []

        # 1) Earnings
        earnings = self.aggregator.aggregate(
            period,
            sources=inputs.sources,
            work_records=inputs.work_records,
            allowances=inputs.allowances,
            employee_start=employee.start_date,
            employee_end=employee.end_date,
            jurisdiction=employee.jurisdiction,
            company_id=employee.company_id,
            overtime_rules=inputs.overtime_rules,
        )
        gross = round_to_cents(earnings.total_gross)
        if earnings.regular_pay <= 0 and not earnings.additional_comp:
            warnings.append(
                "No base salary configured for this employee. Set up employee "
                "compensation or position compensation."
            )

        # 2) Pre-tax deductions
        period_deductions = [
            replace(d, amount=round_to_cents(non_negative(d.amount))) for d in inputs.deductions
        ]
        breakdown = DeductionBreakdown(
            pretax=[d for d in period_deductions if d.is_pretax and d.amount > 0],
            posttax=[d for d in period_deductions if not d.is_pretax and d.amount > 0],
        )

        # 3) Taxable income
        taxable_income = max(
            ZERO,
            gross - breakdown.total_pretax - round_to_cents(earnings.non_taxable_allowances),
        )

        # 4) Statutory deductions
        applicable = [
            s
            for s in inputs.schemes
            if s.is_active
            and (not employee.jurisdiction or not s.jurisdiction or s.jurisdiction == employee.jurisdiction)
        ]
        if not applicable:
            warnings.append(
                f"No statutory deductions configured for jurisdiction "
                f"{employee.jurisdiction or 'unspecified'}"
            )
        statutory = self.statutory_calculator.calculate(
            applicable,
            taxable_income,
            period.frequency,
            recurring_units=period.recurring_units,
            age=employee.age_on(period.end),
            opening_balance=inputs.opening_balance,
            jurisdiction=employee.jurisdiction,
        )
        breakdown.statutory = statutory.deductions
        warnings.extend(statutory.warnings)

        # 5-6) Post-tax deductions and net
        net = gross - breakdown.total_deductions
        if net < 0:
            warnings.append(f"Net pay is negative: {net}")

        for message in warnings:
            logger.warning("Employee %s: %s", employee.employee_id, message)
        logger.debug(
            "Simulated employee %s: gross=%s taxable=%s net=%s",
            employee.employee_id,
            gross,
            taxable_income,
            net,
        )

        return SimulationResult(
            employee=employee,
            calculation_id=calculation_id,
            earnings=earnings,
            deductions=breakdown,
            gross_pay=gross,
            taxable_income=taxable_income,
            net_pay=net,
            salary=SalarySummary(
                base_salary=round_to_cents(earnings.regular_pay),
                full_period_salary=round_to_cents(earnings.full_period_base),
                hourly_rate=round_to_cents(earnings.hourly_rate),
                currency=earnings.currency,
                frequency=period.frequency,
            ),
            proration=earnings.proration,
            employer_contributions=[
                replace(c, amount=round_to_cents(non_negative(c.amount)))
                for c in inputs.employer_contributions
                if non_negative(c.amount) > 0
            ],
            rules_applied=earnings.rules_applied,
            warnings=warnings,
            payroll_run_id=inputs.payroll_run_id,
        )

    def error_result(self, inputs: CalculationInputs, *errors: str) -> SimulationResult:
        """Build a failed result: no amounts, success is False."""
        return SimulationResult(
            employee=inputs.employee,
            calculation_id=self._generate_calculation_id(inputs),
            earnings=Earnings(),
            deductions=DeductionBreakdown(),
            errors=list(errors),
            payroll_run_id=inputs.payroll_run_id,
        )

    def post(
        self,
        simulation: SimulationResult,
        gl_config: GLConfiguration,
        context: PostingContext | None = None,
    ) -> GLBatch:
        """Build the GL batch for a simulation. Failed simulations post nothing."""
        engine = GLPostingEngine(gl_config, balance_tolerance=self.config.balance_tolerance)
        if not simulation.success:
            batch = engine.post(
                PayrollTotals(),
                context,
                company_id=simulation.employee.company_id,
                payroll_run_id=simulation.payroll_run_id,
                employee_id=simulation.employee.employee_id,
            )
            batch.warnings.append("Calculation failed; no journal entries were posted")
            return batch

        return engine.post(
            PayrollTotals.from_simulation(simulation),
            context,
            company_id=simulation.employee.company_id,
            payroll_run_id=simulation.payroll_run_id,
            employee_id=simulation.employee.employee_id,
        )

    def _generate_calculation_id(self, inputs: CalculationInputs) -> str:
        """Generate deterministic calculation ID."""
        data = {
            "engine_version": self.config.engine_version,
            "inputs_fingerprint": self._compute_inputs_fingerprint(inputs),
        }
        json_str = json.dumps(data, sort_keys=True)
        hash_bytes = hashlib.sha256(json_str.encode()).digest()
        return str(UUID(bytes=hash_bytes[:16]))

    def _compute_inputs_fingerprint(self, inputs: CalculationInputs) -> str:
        """Compute fingerprint of all inputs used in calculation."""
        json_str = json.dumps(asdict(inputs), sort_keys=True, default=str)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]
