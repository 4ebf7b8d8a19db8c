"""Type definitions for GL posting."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from payroll_core.calculators.money import ZERO, non_negative
from payroll_core.calculators.types import ContributionKind, DeductionKind

if TYPE_CHECKING:
    from payroll_core.calculators.engine import SimulationResult
    from payroll_core.posting.rules import GLOverrideRule


class EntryDirection(str, Enum):
    """Side of the journal an entry posts to."""

    DEBIT = "debit"
    CREDIT = "credit"


@dataclass(frozen=True)
class GLAccount:
    """Chart of accounts entry."""

    id: str
    code: str
    name: str = ""
    is_active: bool = True


@dataclass(frozen=True)
class GLMapping:
    """Links a payroll concept (mapping type) to debit/credit accounts."""

    mapping_type: str
    debit_account_id: str | None = None
    credit_account_id: str | None = None
    priority: int = 0
    is_active: bool = True
    id: str | None = None

    def account_id_for(self, direction: EntryDirection) -> str | None:
        if direction == EntryDirection.DEBIT:
            return self.debit_account_id
        return self.credit_account_id


@dataclass(frozen=True)
class GLSegment:
    """A dimensional segment of the composed GL string."""

    code: str
    segment_order: int = 0
    name: str = ""
    is_active: bool = True


@dataclass(frozen=True)
class GLConfiguration:
    """Company GL setup, read-only for the duration of a run."""

    accounts: tuple[GLAccount, ...] = ()
    mappings: tuple[GLMapping, ...] = ()
    override_rules: tuple[GLOverrideRule, ...] = ()
    segments: tuple[GLSegment, ...] = ()
    segment_defaults: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(
        cls,
        accounts: Iterable[GLAccount] = (),
        mappings: Iterable[GLMapping] = (),
        override_rules: Iterable[GLOverrideRule] = (),
        segments: Iterable[GLSegment] = (),
        segment_defaults: Mapping[str, str] | None = None,
    ) -> GLConfiguration:
        return cls(
            accounts=tuple(accounts),
            mappings=tuple(mappings),
            override_rules=tuple(override_rules),
            segments=tuple(segments),
            segment_defaults=MappingProxyType(dict(segment_defaults or {})),
        )

    def accounts_by_id(self) -> dict[str, GLAccount]:
        return {a.id: a for a in self.accounts}


# Dimensions an override condition can test
DIMENSIONS = (
    "mapping_type",
    "pay_element",
    "department",
    "division",
    "location",
    "job",
    "cost_center",
    "pay_group",
)


@dataclass(frozen=True)
class PostingContext:
    """Dimension values describing the entry being posted.

    Only mapping_type is filled by the engine itself; the rest come from
    the caller and are usually None.
    """

    mapping_type: str | None = None
    pay_element: str | None = None
    department: str | None = None
    division: str | None = None
    location: str | None = None
    job: str | None = None
    cost_center: str | None = None
    pay_group: str | None = None

    def dimension(self, name: str) -> str | None:
        if name not in DIMENSIONS:
            return None
        return getattr(self, name)


@dataclass(frozen=True)
class PayrollTotals:
    """Named monetary totals the GL posting engine consumes."""

    gross: Decimal = ZERO
    net: Decimal = ZERO
    employee_tax: Decimal = ZERO
    employer_tax: Decimal = ZERO
    benefit_deductions: Decimal = ZERO
    other_deductions: Decimal = ZERO
    employer_benefit: Decimal = ZERO
    employer_retirement: Decimal = ZERO
    employer_savings: Decimal = ZERO

    def amount(self, name: str) -> Decimal:
        return non_negative(getattr(self, name))

    @classmethod
    def from_simulation(cls, simulation: SimulationResult) -> PayrollTotals:
        """Derive GL totals from a simulation.

        Benefit-typed deductions post to the benefit liability; every other
        pre-tax or post-tax deduction posts to the general deduction
        liability.
        """
        deductions = simulation.deductions
        benefit = deductions.by_kind(DeductionKind.BENEFIT)
        employer: dict[ContributionKind, Decimal] = {kind: ZERO for kind in ContributionKind}
        for contribution in simulation.employer_contributions:
            employer[contribution.contribution_type] += contribution.amount

        return cls(
            gross=simulation.gross_pay,
            net=simulation.net_pay,
            employee_tax=deductions.total_statutory,
            employer_tax=deductions.total_employer_statutory,
            benefit_deductions=benefit,
            other_deductions=deductions.total_pretax + deductions.total_posttax - benefit,
            employer_benefit=employer[ContributionKind.BENEFIT],
            employer_retirement=employer[ContributionKind.RETIREMENT],
            employer_savings=employer[ContributionKind.SAVINGS],
        )


@dataclass(frozen=True)
class JournalEntry:
    """A single debit or credit line of the GL journal."""

    entry_number: int
    account_code: str
    gl_string: str
    direction: EntryDirection
    amount: Decimal
    description: str
    mapping_type: str
    rule_id: str | None = None

    @property
    def debit(self) -> Decimal:
        return self.amount if self.direction == EntryDirection.DEBIT else ZERO

    @property
    def credit(self) -> Decimal:
        return self.amount if self.direction == EntryDirection.CREDIT else ZERO

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "entry_number": self.entry_number,
            "account_code": self.account_code,
            "gl_string": self.gl_string,
            "direction": self.direction.value,
            "amount": str(self.amount),
            "mapping_type": self.mapping_type,
            "rule_id": self.rule_id,
        }


@dataclass
class GLBatch:
    """Journal entries for one calculation run, handed to the caller to persist."""

    reference: str
    entries: list[JournalEntry]
    total_debits: Decimal
    total_credits: Decimal
    is_balanced: bool
    warnings: list[str] = field(default_factory=list)
    company_id: str | None = None
    payroll_run_id: str | None = None
    employee_id: str | None = None
    created_at: datetime | None = None
