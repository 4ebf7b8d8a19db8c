"""GL posting: mapping resolution, override rules and balanced journals."""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal

from payroll_core.calculators.matching import by_priority_desc, find_first
from payroll_core.calculators.money import ZERO, round_to_cents
from payroll_core.posting.rules import Resolution, select_override_rule
from payroll_core.posting.segments import GLStringComposer
from payroll_core.posting.types import (
    EntryDirection,
    GLBatch,
    GLConfiguration,
    GLMapping,
    JournalEntry,
    PayrollTotals,
    PostingContext,
)

logger = logging.getLogger(__name__)

DEFAULT_BALANCE_TOLERANCE = Decimal("0.01")

# Mapping types tried, in order, for each posting. The first type with a
# configured mapping for the entry's direction wins. Chart-of-accounts
# setups depend on these exact chains.
FALLBACK_CHAINS: dict[str, tuple[str, ...]] = {
    "gross_pay": ("gross_pay", "salaries_expense", "wages_expense"),
    "employer_tax_expense": ("employer_tax_expense", "tax_expense"),
    "employer_benefit_expense": ("employer_benefit_expense", "benefit_expense", "employer_contribution"),
    "employer_retirement_expense": ("retirement_expense", "employer_contribution"),
    "employer_savings_expense": ("savings_employer_contribution", "employer_contribution"),
    "net_pay": ("net_pay", "payroll_clearing"),
    "employee_tax_liability": ("employee_tax_liability", "tax_liability"),
    "employer_tax_liability": ("employer_tax_liability", "tax_liability"),
    "benefit_deduction_liability": ("benefit_liability", "deduction_liability", "employee_deduction"),
    "deduction_liability": ("deduction_liability", "employee_deduction"),
    "employer_benefit_liability": ("employer_benefit_liability", "benefit_liability"),
    "employer_retirement_liability": ("retirement_liability",),
    "employer_savings_liability": ("savings_employer_liability",),
}


@dataclass(frozen=True)
class PostingSpec:
    """One line of the fixed posting plan."""

    mapping_type: str
    direction: EntryDirection
    total: str
    description: str


POSTING_PLAN: tuple[PostingSpec, ...] = (
    PostingSpec("gross_pay", EntryDirection.DEBIT, "gross", "Gross pay"),
    PostingSpec("employer_tax_expense", EntryDirection.DEBIT, "employer_tax", "Employer statutory contributions"),
    PostingSpec("employer_benefit_expense", EntryDirection.DEBIT, "employer_benefit", "Employer benefit contributions"),
    PostingSpec("employer_retirement_expense", EntryDirection.DEBIT, "employer_retirement", "Employer retirement contributions"),
    PostingSpec("employer_savings_expense", EntryDirection.DEBIT, "employer_savings", "Employer savings match"),
    PostingSpec("net_pay", EntryDirection.CREDIT, "net", "Net pay"),
    PostingSpec("employee_tax_liability", EntryDirection.CREDIT, "employee_tax", "Employee statutory withholding"),
    PostingSpec("employer_tax_liability", EntryDirection.CREDIT, "employer_tax", "Employer statutory liability"),
    PostingSpec("benefit_deduction_liability", EntryDirection.CREDIT, "benefit_deductions", "Employee benefit deductions"),
    PostingSpec("deduction_liability", EntryDirection.CREDIT, "other_deductions", "Other employee deductions"),
    PostingSpec("employer_benefit_liability", EntryDirection.CREDIT, "employer_benefit", "Employer benefit liability"),
    PostingSpec("employer_retirement_liability", EntryDirection.CREDIT, "employer_retirement", "Employer retirement liability"),
    PostingSpec("employer_savings_liability", EntryDirection.CREDIT, "employer_savings", "Employer savings liability"),
)


@dataclass
class JournalAccumulator:
    """Entry numbering and running totals for a single posting run."""

    entries: list[JournalEntry] = field(default_factory=list)
    total_debits: Decimal = ZERO
    total_credits: Decimal = ZERO

    @property
    def next_entry_number(self) -> int:
        return len(self.entries) + 1

    def add(
        self,
        resolution: Resolution,
        direction: EntryDirection,
        amount: Decimal,
        description: str,
        mapping_type: str,
        rule_id: str | None = None,
    ) -> JournalEntry:
        entry = JournalEntry(
            entry_number=self.next_entry_number,
            account_code=resolution.account_code,
            gl_string=resolution.gl_string,
            direction=direction,
            amount=amount,
            description=description,
            mapping_type=mapping_type,
            rule_id=rule_id,
        )
        self.entries.append(entry)
        if direction == EntryDirection.DEBIT:
            self.total_debits += amount
        else:
            self.total_credits += amount
        return entry

    def is_balanced(self, tolerance: Decimal = DEFAULT_BALANCE_TOLERANCE) -> bool:
        return abs(self.total_debits - self.total_credits) < tolerance


def resolve_mapping(
    mappings: tuple[GLMapping, ...] | list[GLMapping],
    mapping_type: str,
    direction: EntryDirection,
) -> GLMapping | None:
    """Walk the fallback chain for a posting and return the first usable mapping.

    Within one mapping type, higher-priority mappings are tried first.
    """
    chain = FALLBACK_CHAINS.get(mapping_type, (mapping_type,))
    candidates = [
        mapping
        for link in chain
        for mapping in by_priority_desc(
            (m for m in mappings if m.mapping_type == link), lambda m: m.priority
        )
    ]
    return find_first(
        candidates, lambda m: m.is_active and bool(m.account_id_for(direction))
    )


class GLPostingEngine:
    """Converts payroll totals into a balanced set of journal entries.

    For each posting in the fixed plan:
    1) Skip non-positive amounts
    2) Resolve the mapping through the fallback chain
    3) Look up the mapped account
    4) Apply the first matching override rule, if any
    5) Record the entry on the run's accumulator

    Imbalance and missing accounts are reported as warnings; the engine
    always returns the entries it could build.
    """

    def __init__(
        self,
        config: GLConfiguration,
        balance_tolerance: Decimal = DEFAULT_BALANCE_TOLERANCE,
    ):
        self.config = config
        self.balance_tolerance = balance_tolerance
        self.composer = GLStringComposer(config.segments, config.segment_defaults)
        self._accounts = config.accounts_by_id()

    def post(
        self,
        totals: PayrollTotals,
        context: PostingContext | None = None,
        company_id: str | None = None,
        payroll_run_id: str | None = None,
        employee_id: str | None = None,
    ) -> GLBatch:
        context = context or PostingContext()
        journal = JournalAccumulator()
        warnings: list[str] = []

        for spec in POSTING_PLAN:
            amount = round_to_cents(totals.amount(spec.total))
            if amount <= 0:
                continue

            mapping = resolve_mapping(self.config.mappings, spec.mapping_type, spec.direction)
            if mapping is None:
                continue

            account_id = mapping.account_id_for(spec.direction)
            account = self._accounts.get(account_id)
            if account is None or not account.is_active:
                state = "was not found" if account is None else "is inactive"
                message = (
                    f"GL account {account_id} mapped for {mapping.mapping_type} "
                    f"({spec.direction.value}) {state}"
                )
                logger.warning(message)
                warnings.append(message)
                continue

            entry_context = replace(context, mapping_type=mapping.mapping_type)
            rule = select_override_rule(self.config.override_rules, spec.direction, entry_context)
            if rule is None:
                resolution = Resolution(
                    account_code=account.code,
                    gl_string=self.composer.compose(account.code),
                )
            else:
                resolution = rule.target.apply(account, self._accounts, self.composer)
                if resolution.warning:
                    logger.warning(resolution.warning)
                    warnings.append(resolution.warning)

            journal.add(
                resolution,
                spec.direction,
                amount,
                spec.description,
                mapping.mapping_type,
                rule.id if rule else None,
            )

        balanced = journal.is_balanced(self.balance_tolerance)
        if not balanced:
            message = (
                f"Journal is not balanced: debits {journal.total_debits} "
                f"!= credits {journal.total_credits}"
            )
            logger.warning(message)
            warnings.append(message)

        return GLBatch(
            reference=self._batch_reference(journal.entries, company_id, payroll_run_id, employee_id),
            entries=journal.entries,
            total_debits=journal.total_debits,
            total_credits=journal.total_credits,
            is_balanced=balanced,
            warnings=warnings,
            company_id=company_id,
            payroll_run_id=payroll_run_id,
            employee_id=employee_id,
            created_at=datetime.now(timezone.utc),
        )

    @staticmethod
    def _batch_reference(
        entries: list[JournalEntry],
        company_id: str | None,
        payroll_run_id: str | None,
        employee_id: str | None,
    ) -> str:
        """Deterministic reference so callers can detect double posting."""
        canonical = {
            "company_id": company_id,
            "payroll_run_id": payroll_run_id,
            "employee_id": employee_id,
            "entries": [e.to_canonical_dict() for e in entries],
        }
        json_str = json.dumps(canonical, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]
