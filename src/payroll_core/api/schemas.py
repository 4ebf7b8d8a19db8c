"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from payroll_core.calculators.engine import CalculationInputs
from payroll_core.calculators.proration import resolve_proration_method
from payroll_core.calculators.types import (
    Allowance,
    CalculationMethod,
    CompensationKind,
    CompensationSource,
    ContributionKind,
    DeductionKind,
    EmployeeProfile,
    EmployerContribution,
    OpeningBalance,
    OvertimeRule,
    PayFrequency,
    PayPeriod,
    PeriodDeduction,
    ProrationMethod,
    RateBand,
    StatutoryScheme,
    WorkRecord,
)
from payroll_core.posting import rules as gl_rules
from payroll_core.posting.types import (
    EntryDirection,
    GLAccount,
    GLConfiguration,
    GLMapping,
    GLSegment,
    PayrollTotals,
    PostingContext,
)

ZERO = Decimal("0")


def _known_method(value: str) -> str:
    if value:
        try:
            CalculationMethod.parse(value)
        except ValueError:
            raise ValueError(f"Unknown calculation method '{value}'") from None
    return value


MethodCode = Annotated[str, AfterValidator(_known_method)]


# ============================================================================
# Calculation input schemas
# ============================================================================


class PayPeriodIn(BaseModel):
    """Pay period bounds."""

    start: date
    end: date
    frequency: str = "monthly"
    recurring_unit_count: Decimal | None = None
    anchor_weekday: int = Field(default=0, ge=0, le=6)

    def to_domain(self) -> PayPeriod:
        return PayPeriod(
            start=self.start,
            end=self.end,
            frequency=PayFrequency.parse(self.frequency),
            recurring_unit_count=self.recurring_unit_count,
            anchor_weekday=self.anchor_weekday,
        )


class EmployeeIn(BaseModel):
    employee_id: str
    name: str = ""
    jurisdiction: str | None = None
    company_id: str | None = None
    date_of_birth: date | None = None
    start_date: date | None = None
    end_date: date | None = None
    position_title: str | None = None

    def to_domain(self) -> EmployeeProfile:
        return EmployeeProfile(**self.model_dump())


class CompensationIn(BaseModel):
    """Position or employee-level compensation item."""

    kind: CompensationKind
    amount: Decimal
    frequency: str = "monthly"
    currency: str = "USD"
    proration_method: str | None = None
    is_base: bool = False
    is_active: bool = True
    start_date: date | None = None
    end_date: date | None = None
    name: str = "Compensation"
    position_title: str | None = None

    def to_domain(self) -> CompensationSource:
        return CompensationSource(
            kind=self.kind,
            amount=self.amount,
            frequency=PayFrequency.parse(self.frequency),
            currency=self.currency,
            proration_method=(
                resolve_proration_method(self.proration_method)
                if self.proration_method
                else None
            ),
            is_base=self.is_base,
            is_active=self.is_active,
            start_date=self.start_date,
            end_date=self.end_date,
            name=self.name,
            position_title=self.position_title,
        )


class OvertimeRuleIn(BaseModel):
    name: str
    overtime_multiplier: Decimal = Decimal("1.5")
    rule_type: str = "overtime"
    jurisdiction: str | None = None
    company_id: str | None = None

    def to_domain(self) -> OvertimeRule:
        return OvertimeRule(**self.model_dump())


class WorkRecordIn(BaseModel):
    regular_hours: Decimal = ZERO
    overtime_hours: Decimal = ZERO
    rule: OvertimeRuleIn | None = None

    def to_domain(self) -> WorkRecord:
        return WorkRecord(
            regular_hours=self.regular_hours,
            overtime_hours=self.overtime_hours,
            rule=self.rule.to_domain() if self.rule else None,
        )


class AllowanceIn(BaseModel):
    name: str
    amount: Decimal
    is_taxable: bool = True
    is_benefit_in_kind: bool = False
    currency: str = "USD"

    def to_domain(self) -> Allowance:
        return Allowance(**self.model_dump())


class DeductionIn(BaseModel):
    name: str
    amount: Decimal
    is_pretax: bool = False
    deduction_type: DeductionKind = DeductionKind.OTHER

    def to_domain(self) -> PeriodDeduction:
        return PeriodDeduction(**self.model_dump())


class EmployerContributionIn(BaseModel):
    name: str
    amount: Decimal
    contribution_type: ContributionKind = ContributionKind.BENEFIT

    def to_domain(self) -> EmployerContribution:
        return EmployerContribution(**self.model_dump())


class RateBandIn(BaseModel):
    """Statutory rate band. Rates are fractions (0.10 = 10%)."""

    min_amount: Decimal = ZERO
    max_amount: Decimal | None = None
    employee_rate: Decimal = ZERO
    employer_rate: Decimal = ZERO
    fixed_amount: Decimal = ZERO
    employer_fixed_amount: Decimal = ZERO
    per_unit_amount: Decimal = ZERO
    employer_per_unit_amount: Decimal = ZERO
    min_age: int | None = None
    max_age: int | None = None
    pay_frequency: str | None = None
    calculation_method: MethodCode | None = None

    def to_domain(self) -> RateBand:
        data = self.model_dump(exclude={"pay_frequency", "calculation_method"})
        return RateBand(
            **data,
            pay_frequency=PayFrequency.parse(self.pay_frequency) if self.pay_frequency else None,
            calculation_method=(
                CalculationMethod.parse(self.calculation_method)
                if self.calculation_method
                else None
            ),
        )


class StatutorySchemeIn(BaseModel):
    id: str
    code: str
    calculation_method: MethodCode = "percentage"
    bands: list[RateBandIn] = []
    jurisdiction: str | None = None
    name: str = ""
    is_active: bool = True

    def to_domain(self) -> StatutoryScheme:
        return StatutoryScheme(
            id=self.id,
            code=self.code,
            calculation_method=CalculationMethod.parse(self.calculation_method),
            bands=tuple(b.to_domain() for b in self.bands),
            jurisdiction=self.jurisdiction,
            name=self.name,
            is_active=self.is_active,
        )


class OpeningBalanceIn(BaseModel):
    ytd_taxable_income: Decimal = ZERO
    ytd_tax_paid: Decimal = ZERO
    ytd_gross: Decimal = ZERO
    tax_year: int | None = None

    def to_domain(self) -> OpeningBalance:
        return OpeningBalance(**self.model_dump())


class SimulationRequest(BaseModel):
    """Schema for simulating one employee's pay."""

    employee: EmployeeIn
    period: PayPeriodIn | None = None
    sources: list[CompensationIn] = []
    work_records: list[WorkRecordIn] = []
    allowances: list[AllowanceIn] = []
    deductions: list[DeductionIn] = []
    employer_contributions: list[EmployerContributionIn] = []
    schemes: list[StatutorySchemeIn] = []
    opening_balance: OpeningBalanceIn | None = None
    overtime_rules: list[OvertimeRuleIn] = []
    payroll_run_id: str | None = None

    def to_inputs(self) -> CalculationInputs:
        return CalculationInputs(
            employee=self.employee.to_domain(),
            period=self.period.to_domain() if self.period else None,
            sources=tuple(s.to_domain() for s in self.sources),
            work_records=tuple(w.to_domain() for w in self.work_records),
            allowances=tuple(a.to_domain() for a in self.allowances),
            deductions=tuple(d.to_domain() for d in self.deductions),
            employer_contributions=tuple(c.to_domain() for c in self.employer_contributions),
            schemes=tuple(s.to_domain() for s in self.schemes),
            opening_balance=self.opening_balance.to_domain() if self.opening_balance else None,
            overtime_rules=tuple(r.to_domain() for r in self.overtime_rules),
            payroll_run_id=self.payroll_run_id,
        )


# ============================================================================
# GL configuration schemas
# ============================================================================


class GLAccountIn(BaseModel):
    id: str
    code: str
    name: str = ""
    is_active: bool = True

    def to_domain(self) -> GLAccount:
        return GLAccount(**self.model_dump())


class GLMappingIn(BaseModel):
    mapping_type: str
    debit_account_id: str | None = None
    credit_account_id: str | None = None
    priority: int = 0
    is_active: bool = True
    id: str | None = None

    def to_domain(self) -> GLMapping:
        return GLMapping(**self.model_dump())


class OverrideConditionIn(BaseModel):
    dimension_type: str
    operator: gl_rules.ConditionOperator = gl_rules.ConditionOperator.EQUALS
    value: str | None = None
    values: list[str] = []

    def to_domain(self) -> gl_rules.GLOverrideCondition:
        return gl_rules.GLOverrideCondition(
            dimension_type=self.dimension_type,
            operator=self.operator,
            value=self.value,
            values=tuple(self.values),
        )


class OverrideRuleIn(BaseModel):
    """Override rule; the target fields used depend on override_type."""

    id: str
    override_type: Literal["account", "segment", "full_string"]
    priority: int = 0
    conditions: list[OverrideConditionIn] = []
    account_id: str | None = None
    gl_string: str | None = None
    segments: dict[str, str] = {}
    applies_to_debit: bool = True
    applies_to_credit: bool = True
    is_active: bool = True
    name: str = ""

    def to_domain(self) -> gl_rules.GLOverrideRule:
        target: gl_rules.OverrideTarget
        if self.override_type == "account":
            target = gl_rules.ReplaceAccount(account_id=self.account_id or "")
        elif self.override_type == "full_string":
            target = gl_rules.ReplaceFullString(gl_string=self.gl_string or "")
        else:
            target = gl_rules.SegmentOverrides(segments=dict(self.segments))
        return gl_rules.GLOverrideRule(
            id=self.id,
            target=target,
            priority=self.priority,
            conditions=tuple(c.to_domain() for c in self.conditions),
            applies_to_debit=self.applies_to_debit,
            applies_to_credit=self.applies_to_credit,
            is_active=self.is_active,
            name=self.name,
        )


class GLSegmentIn(BaseModel):
    code: str
    segment_order: int = 0
    name: str = ""
    is_active: bool = True

    def to_domain(self) -> GLSegment:
        return GLSegment(**self.model_dump())


class GLConfigurationIn(BaseModel):
    accounts: list[GLAccountIn] = []
    mappings: list[GLMappingIn] = []
    override_rules: list[OverrideRuleIn] = []
    segments: list[GLSegmentIn] = []
    segment_defaults: dict[str, str] = {}

    def to_domain(self) -> GLConfiguration:
        return GLConfiguration.build(
            accounts=(a.to_domain() for a in self.accounts),
            mappings=(m.to_domain() for m in self.mappings),
            override_rules=(r.to_domain() for r in self.override_rules),
            segments=(s.to_domain() for s in self.segments),
            segment_defaults=self.segment_defaults,
        )


class PostingContextIn(BaseModel):
    """Caller-supplied dimensions; the engine fills mapping_type itself."""

    pay_element: str | None = None
    department: str | None = None
    division: str | None = None
    location: str | None = None
    job: str | None = None
    cost_center: str | None = None
    pay_group: str | None = None

    def to_domain(self) -> PostingContext:
        return PostingContext(**self.model_dump())


class PayrollTotalsIn(BaseModel):
    gross: Decimal = ZERO
    net: Decimal = ZERO
    employee_tax: Decimal = ZERO
    employer_tax: Decimal = ZERO
    benefit_deductions: Decimal = ZERO
    other_deductions: Decimal = ZERO
    employer_benefit: Decimal = ZERO
    employer_retirement: Decimal = ZERO
    employer_savings: Decimal = ZERO

    def to_domain(self) -> PayrollTotals:
        return PayrollTotals(**self.model_dump())


class GLPreviewRequest(BaseModel):
    """Schema for posting precomputed totals."""

    totals: PayrollTotalsIn
    gl_config: GLConfigurationIn
    context: PostingContextIn | None = None
    company_id: str | None = None
    payroll_run_id: str | None = None
    employee_id: str | None = None


class SimulationGLRequest(BaseModel):
    """Schema for simulating one employee and posting the result."""

    simulation: SimulationRequest
    gl_config: GLConfigurationIn
    context: PostingContextIn | None = None


class RunEmployeeIn(BaseModel):
    """One employee of a stored-configuration run; schemes come from the database."""

    employee: EmployeeIn
    period: PayPeriodIn
    sources: list[CompensationIn] = []
    work_records: list[WorkRecordIn] = []
    allowances: list[AllowanceIn] = []
    deductions: list[DeductionIn] = []
    employer_contributions: list[EmployerContributionIn] = []
    overtime_rules: list[OvertimeRuleIn] = []

    def to_inputs(self, payroll_run_id: str | None) -> CalculationInputs:
        return SimulationRequest(
            **self.model_dump(), payroll_run_id=payroll_run_id
        ).to_inputs()


class RunSimulationRequest(BaseModel):
    """Schema for simulating a run against the company's stored configuration."""

    employees: list[RunEmployeeIn]
    jurisdiction: str | None = None
    tax_year: int | None = None
    payroll_run_id: str | None = None
    context: PostingContextIn | None = None
    post: bool = True


# ============================================================================
# Response schemas
# ============================================================================


class _FromAttributes(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class EmployeeResponse(_FromAttributes):
    employee_id: str
    name: str
    jurisdiction: str | None = None
    company_id: str | None = None


class SalaryResponse(_FromAttributes):
    base_salary: Decimal
    full_period_salary: Decimal
    hourly_rate: Decimal
    currency: str
    frequency: PayFrequency


class ProrationResponse(_FromAttributes):
    is_prorated: bool
    factor: Decimal
    days_worked: int
    total_days: int
    method: ProrationMethod


class PositionProrationResponse(_FromAttributes):
    title: str
    full_amount: Decimal
    prorated_amount: Decimal
    is_prorated: bool
    factor: Decimal
    days_worked: int
    total_days: int


class EarningItemResponse(_FromAttributes):
    name: str
    amount: Decimal
    base_amount: Decimal
    frequency: PayFrequency
    position_title: str | None = None


class AllowanceResponse(_FromAttributes):
    name: str
    amount: Decimal
    is_taxable: bool
    is_benefit_in_kind: bool


class EarningsResponse(_FromAttributes):
    regular_pay: Decimal
    overtime_pay: Decimal
    regular_hours: Decimal
    overtime_hours: Decimal
    hourly_rate: Decimal
    overtime_multiplier: Decimal
    additional_comp: list[EarningItemResponse]
    allowances: list[AllowanceResponse]
    total_gross: Decimal


class PeriodDeductionResponse(_FromAttributes):
    name: str
    amount: Decimal
    is_pretax: bool
    deduction_type: DeductionKind


class YtdResponse(_FromAttributes):
    taxable_before: Decimal
    taxable_after: Decimal
    tax_before: Decimal
    tax_after: Decimal


class StatutoryDeductionResponse(_FromAttributes):
    scheme_id: str
    code: str
    name: str
    employee_amount: Decimal
    employer_amount: Decimal
    calculation_method: CalculationMethod
    ytd: YtdResponse | None = None


class DeductionsResponse(_FromAttributes):
    pretax: list[PeriodDeductionResponse]
    statutory: list[StatutoryDeductionResponse]
    posttax: list[PeriodDeductionResponse]
    total_pretax: Decimal
    total_statutory: Decimal
    total_employer_statutory: Decimal
    total_posttax: Decimal
    total_deductions: Decimal


class RuleAppliedResponse(_FromAttributes):
    name: str
    rule_type: str
    overtime_multiplier: Decimal


class SimulationResponse(_FromAttributes):
    """Schema for a simulation result."""

    calculation_id: str
    success: bool
    employee: EmployeeResponse
    salary: SalaryResponse | None = None
    proration: ProrationResponse | None = None
    position_prorations: list[PositionProrationResponse] = []
    earnings: EarningsResponse
    deductions: DeductionsResponse
    gross_pay: Decimal
    taxable_income: Decimal
    net_pay: Decimal
    rules_applied: list[RuleAppliedResponse] = []
    warnings: list[str] = []
    errors: list[str] = []


class JournalEntryResponse(_FromAttributes):
    entry_number: int
    account_code: str
    gl_string: str
    direction: EntryDirection
    debit: Decimal
    credit: Decimal
    description: str
    mapping_type: str
    rule_id: str | None = None


class GLBatchResponse(_FromAttributes):
    """Schema for a GL batch."""

    reference: str
    entries: list[JournalEntryResponse]
    total_debits: Decimal
    total_credits: Decimal
    is_balanced: bool
    warnings: list[str] = []
    company_id: str | None = None
    payroll_run_id: str | None = None
    employee_id: str | None = None
    created_at: datetime | None = None


class SimulationGLResponse(BaseModel):
    simulation: SimulationResponse
    batch: GLBatchResponse


class RunSimulationResponse(BaseModel):
    simulations: list[SimulationResponse]
    batches: list[GLBatchResponse]
    failed: int


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
