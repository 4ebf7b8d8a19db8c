"""Type definitions for the calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any


class UnknownFrequencyError(ValueError):
    """Raised when a pay frequency code cannot be parsed."""

    def __init__(self, code: Any):
        self.code = code
        super().__init__(f"Unknown pay frequency '{code}'")


class InvalidPayPeriodError(ValueError):
    """Raised when a pay period ends before it starts."""

    def __init__(self, start: date, end: date):
        self.start = start
        self.end = end
        super().__init__(f"Pay period end {end} is before start {start}")


class PayFrequency(str, Enum):
    """Pay frequencies supported by the frequency converter."""

    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    FORTNIGHTLY = "fortnightly"
    SEMIMONTHLY = "semimonthly"
    MONTHLY = "monthly"
    ANNUAL = "annual"

    @classmethod
    def parse(cls, value: PayFrequency | str | None, default: PayFrequency | None = None) -> PayFrequency:
        """Parse a frequency code, accepting the common spelling variants."""
        if isinstance(value, PayFrequency):
            return value
        if value is None or value == "":
            if default is None:
                raise UnknownFrequencyError(value)
            return default
        key = str(value).strip().lower().replace("-", "_")
        code = _FREQUENCY_ALIASES.get(key, key)
        try:
            return cls(code)
        except ValueError:
            raise UnknownFrequencyError(value) from None


_FREQUENCY_ALIASES = {
    "bi_weekly": "biweekly",
    "semi_monthly": "semimonthly",
    "annually": "annual",
    "yearly": "annual",
}


class ProrationMethod(str, Enum):
    """How partial periods are counted."""

    CALENDAR_DAYS = "calendar_days"
    WORKING_DAYS = "working_days"
    NONE = "none"


class CalculationMethod(str, Enum):
    """Statutory scheme calculation methods."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"
    PER_RECURRING_UNIT = "per_recurring_unit"
    CUMULATIVE_PROGRESSIVE = "cumulative_progressive"

    @classmethod
    def parse(cls, value: CalculationMethod | str | None) -> CalculationMethod:
        if isinstance(value, CalculationMethod):
            return value
        if not value:
            return cls.PERCENTAGE
        key = str(value).strip().lower()
        return cls(_METHOD_ALIASES.get(key, key))


_METHOD_ALIASES = {
    "per_monday": "per_recurring_unit",
    "per_unit": "per_recurring_unit",
    "cumulative": "cumulative_progressive",
    "progressive": "cumulative_progressive",
}


class CompensationKind(str, Enum):
    """Where a compensation source comes from."""

    POSITION = "position"
    EMPLOYEE_OVERRIDE = "employee_override"


class DeductionKind(str, Enum):
    """Category of a non-statutory period deduction."""

    BENEFIT = "benefit"
    SAVINGS = "savings"
    RETIREMENT = "retirement"
    LOAN = "loan"
    OTHER = "other"


class ContributionKind(str, Enum):
    """Category of an employer contribution."""

    BENEFIT = "benefit"
    RETIREMENT = "retirement"
    SAVINGS = "savings"


# Monday
DEFAULT_ANCHOR_WEEKDAY = 0


def count_weekday(start: date, end: date, weekday: int = DEFAULT_ANCHOR_WEEKDAY) -> int:
    """Count occurrences of a weekday (0=Monday) between two dates inclusive."""
    if end < start:
        return 0
    first = start + timedelta(days=(weekday - start.weekday()) % 7)
    if first > end:
        return 0
    return (end - first).days // 7 + 1


@dataclass(frozen=True)
class PayPeriod:
    """Pay period bounds. Immutable once calculation begins."""

    start: date
    end: date
    frequency: PayFrequency = PayFrequency.MONTHLY
    recurring_unit_count: Decimal | None = None
    anchor_weekday: int = DEFAULT_ANCHOR_WEEKDAY

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise InvalidPayPeriodError(self.start, self.end)

    @property
    def recurring_units(self) -> Decimal:
        """Recurring-unit count, derived from the anchor weekday when not supplied."""
        if self.recurring_unit_count is not None:
            return Decimal(str(self.recurring_unit_count))
        return Decimal(count_weekday(self.start, self.end, self.anchor_weekday))

    @property
    def total_days(self) -> int:
        return (self.end - self.start).days + 1


@dataclass(frozen=True)
class CompensationSource:
    """A position-level or employee-level compensation item."""

    kind: CompensationKind
    amount: Decimal
    frequency: PayFrequency = PayFrequency.MONTHLY
    currency: str = "USD"
    proration_method: ProrationMethod | None = None
    is_base: bool = False
    is_active: bool = True
    start_date: date | None = None
    end_date: date | None = None
    name: str = "Compensation"
    position_title: str | None = None

    def is_active_for(self, period: PayPeriod) -> bool:
        """Inactive sources and those outside the period dates are excluded."""
        if not self.is_active:
            return False
        if self.end_date is not None and self.end_date < period.start:
            return False
        if self.start_date is not None and self.start_date > period.end:
            return False
        return True


@dataclass(frozen=True)
class ProrationResult:
    """Outcome of a proration calculation."""

    is_prorated: bool
    factor: Decimal
    days_worked: int
    total_days: int
    method: ProrationMethod


@dataclass(frozen=True)
class OvertimeRule:
    """Overtime multiplier rule set, optionally scoped to jurisdiction or company."""

    name: str
    overtime_multiplier: Decimal
    rule_type: str = "overtime"
    jurisdiction: str | None = None
    company_id: str | None = None


@dataclass(frozen=True)
class WorkRecord:
    """Hours worked in the period, from time and attendance."""

    regular_hours: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    rule: OvertimeRule | None = None


@dataclass(frozen=True)
class Allowance:
    """A period allowance (already a period actual)."""

    name: str
    amount: Decimal
    is_taxable: bool = True
    is_benefit_in_kind: bool = False
    currency: str = "USD"


@dataclass(frozen=True)
class PeriodDeduction:
    """A non-statutory period deduction."""

    name: str
    amount: Decimal
    is_pretax: bool = False
    deduction_type: DeductionKind = DeductionKind.OTHER


@dataclass(frozen=True)
class EmployerContribution:
    """An employer-paid contribution that is posted to the GL but not deducted."""

    name: str
    amount: Decimal
    contribution_type: ContributionKind = ContributionKind.BENEFIT


@dataclass(frozen=True)
class EmployeeProfile:
    """Employee attributes the calculation needs."""

    employee_id: str
    name: str = ""
    jurisdiction: str | None = None
    company_id: str | None = None
    date_of_birth: date | None = None
    start_date: date | None = None
    end_date: date | None = None
    position_title: str | None = None

    def age_on(self, on: date) -> int | None:
        if self.date_of_birth is None:
            return None
        dob = self.date_of_birth
        age = on.year - dob.year
        if (on.month, on.day) < (dob.month, dob.day):
            age -= 1
        return age


@dataclass(frozen=True)
class RateBand:
    """Income/age band of a statutory scheme.

    Rates are fractions, e.g. 0.10 for 10%. ``max_amount`` of None means
    the band is open-ended.
    """

    min_amount: Decimal = Decimal("0")
    max_amount: Decimal | None = None
    employee_rate: Decimal = Decimal("0")
    employer_rate: Decimal = Decimal("0")
    fixed_amount: Decimal = Decimal("0")
    employer_fixed_amount: Decimal = Decimal("0")
    per_unit_amount: Decimal = Decimal("0")
    employer_per_unit_amount: Decimal = Decimal("0")
    min_age: int | None = None
    max_age: int | None = None
    pay_frequency: PayFrequency | None = None
    calculation_method: CalculationMethod | None = None

    def contains_income(self, income: Decimal) -> bool:
        if income < self.min_amount:
            return False
        return self.max_amount is None or income <= self.max_amount

    def contains_age(self, age: int | None) -> bool:
        if age is None:
            return True
        if self.min_age is not None and age < self.min_age:
            return False
        return self.max_age is None or age <= self.max_age


@dataclass(frozen=True)
class StatutoryScheme:
    """A statutory deduction scheme and its ordered rate bands."""

    id: str
    code: str
    calculation_method: CalculationMethod
    bands: tuple[RateBand, ...] = ()
    jurisdiction: str | None = None
    name: str = ""
    is_active: bool = True


@dataclass(frozen=True)
class OpeningBalance:
    """Year-to-date balances carried into the period. Read-only."""

    ytd_taxable_income: Decimal = Decimal("0")
    ytd_tax_paid: Decimal = Decimal("0")
    ytd_gross: Decimal = Decimal("0")
    tax_year: int | None = None


@dataclass(frozen=True)
class YtdSnapshot:
    """YTD before/after values for audit display."""

    taxable_before: Decimal
    taxable_after: Decimal
    tax_before: Decimal
    tax_after: Decimal


@dataclass(frozen=True)
class DeductionRecord:
    """A statutory deduction produced for one scheme."""

    scheme_id: str
    code: str
    name: str
    employee_amount: Decimal
    employer_amount: Decimal
    calculation_method: CalculationMethod
    ytd: YtdSnapshot | None = None


@dataclass
class StatutoryResult:
    """Deductions for every applicable scheme, plus configuration warnings."""

    deductions: list[DeductionRecord] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def employee_total(self) -> Decimal:
        return sum((d.employee_amount for d in self.deductions), Decimal("0"))

    @property
    def employer_total(self) -> Decimal:
        return sum((d.employer_amount for d in self.deductions), Decimal("0"))


@dataclass(frozen=True)
class EarningItem:
    """An additional compensation line in the earnings breakdown."""

    name: str
    amount: Decimal
    base_amount: Decimal
    frequency: PayFrequency
    position_title: str | None = None


@dataclass(frozen=True)
class PositionProration:
    """Per-position base salary proration detail."""

    title: str
    full_amount: Decimal
    prorated_amount: Decimal
    is_prorated: bool
    factor: Decimal
    days_worked: int
    total_days: int


@dataclass
class Earnings:
    """Period earnings snapshot produced by the aggregator."""

    regular_pay: Decimal = Decimal("0")
    overtime_pay: Decimal = Decimal("0")
    regular_hours: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    hourly_rate: Decimal = Decimal("0")
    overtime_multiplier: Decimal = Decimal("1.5")
    full_period_base: Decimal = Decimal("0")
    additional_comp: list[EarningItem] = field(default_factory=list)
    allowances: list[Allowance] = field(default_factory=list)
    proration: ProrationResult | None = None
    position_prorations: list[PositionProration] = field(default_factory=list)
    rules_applied: list[OvertimeRule] = field(default_factory=list)
    currency: str = "USD"
    base_source: CompensationKind | None = None

    @property
    def total_additional_comp(self) -> Decimal:
        return sum((item.amount for item in self.additional_comp), Decimal("0"))

    @property
    def total_allowances(self) -> Decimal:
        return sum((a.amount for a in self.allowances), Decimal("0"))

    @property
    def non_taxable_allowances(self) -> Decimal:
        return sum((a.amount for a in self.allowances if not a.is_taxable), Decimal("0"))

    @property
    def total_gross(self) -> Decimal:
        return (
            self.regular_pay
            + self.overtime_pay
            + self.total_additional_comp
            + self.total_allowances
        )


@dataclass(frozen=True)
class CalculationConfig:
    """
    Knobs for the pure calculators.

    Passed explicitly to every calculator; the calculators never read the
    environment themselves.

    Attributes:
        standard_weekly_hours: Hours used to derive the hourly rate for
            overtime. Default 40.
        overtime_multiplier: Overtime premium used when no rule set applies.
            Default 1.5.
        balance_tolerance: Largest debit/credit difference still treated as
            balanced. Default 0.01.
        default_proration_method: Method used when a base salary item has
            none configured.
        engine_version: Mixed into calculation ids.
    """

    standard_weekly_hours: Decimal = Decimal("40")
    overtime_multiplier: Decimal = Decimal("1.5")
    balance_tolerance: Decimal = Decimal("0.01")
    default_proration_method: ProrationMethod = ProrationMethod.CALENDAR_DAYS
    engine_version: str = "1.0.0"
