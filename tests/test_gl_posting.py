"""Unit tests for GL posting."""

import csv
import io
from dataclasses import replace
from decimal import Decimal

import pytest
from hypothesis import given, strategies as st

from payroll_core.posting.engine import GLPostingEngine, JournalAccumulator, resolve_mapping
from payroll_core.posting.export import export_batch_csv
from payroll_core.posting.rules import (
    ConditionOperator,
    GLOverrideCondition,
    GLOverrideRule,
    ReplaceAccount,
    ReplaceFullString,
    Resolution,
    SegmentOverrides,
)
from payroll_core.posting.segments import GLStringComposer
from payroll_core.posting.types import (
    EntryDirection,
    GLAccount,
    GLConfiguration,
    GLMapping,
    GLSegment,
    PayrollTotals,
    PostingContext,
)

TOTALS = PayrollTotals(
    gross=Decimal("5000"),
    net=Decimal("4000"),
    employee_tax=Decimal("800"),
    employer_tax=Decimal("300"),
    benefit_deductions=Decimal("200"),
)


CENTS = st.decimals(min_value=0, max_value=1_000_000, places=2)


def with_rules(config: GLConfiguration, *rules: GLOverrideRule) -> GLConfiguration:
    return replace(config, override_rules=tuple(rules))


def entry_for(batch, mapping_type: str):
    return next(e for e in batch.entries if e.mapping_type == mapping_type)


class TestBalancedPosting:
    """Test the fixed posting plan against a generic chart of accounts."""

    def test_entries_and_balance(self, gl_config):
        """Every positive total posts and the journal balances."""
        batch = GLPostingEngine(gl_config).post(TOTALS)

        assert [(e.account_code, e.direction, e.amount) for e in batch.entries] == [
            ("5000", EntryDirection.DEBIT, Decimal("5000.00")),
            ("5100", EntryDirection.DEBIT, Decimal("300.00")),
            ("2100", EntryDirection.CREDIT, Decimal("4000.00")),
            ("2200", EntryDirection.CREDIT, Decimal("800.00")),
            ("2200", EntryDirection.CREDIT, Decimal("300.00")),
            ("2300", EntryDirection.CREDIT, Decimal("200.00")),
        ]
        assert [e.entry_number for e in batch.entries] == [1, 2, 3, 4, 5, 6]
        assert batch.total_debits == Decimal("5300.00")
        assert batch.total_credits == Decimal("5300.00")
        assert batch.is_balanced is True
        assert batch.warnings == []

    def test_gross_pay_falls_back_to_wages_expense(self, gl_config):
        """Without gross_pay or salaries_expense mappings, gross posts to wages_expense."""
        batch = GLPostingEngine(gl_config).post(TOTALS)

        gross = batch.entries[0]
        assert gross.mapping_type == "wages_expense"
        assert gross.account_code == "5000"

    def test_fallback_chain_order(self, gl_config):
        """salaries_expense is tried before wages_expense."""
        config = replace(
            gl_config,
            accounts=gl_config.accounts + (GLAccount(id="acc-sal", code="5010"),),
            mappings=gl_config.mappings
            + (GLMapping(mapping_type="salaries_expense", debit_account_id="acc-sal"),),
        )
        batch = GLPostingEngine(config).post(TOTALS)
        assert batch.entries[0].account_code == "5010"

    def test_mapping_without_account_for_direction_is_skipped(self, gl_config):
        """A gross_pay mapping with only a credit account does not stop the fallback."""
        config = replace(
            gl_config,
            mappings=(GLMapping(mapping_type="gross_pay", credit_account_id="acc-net"),)
            + gl_config.mappings,
        )
        batch = GLPostingEngine(config).post(TOTALS)
        assert batch.entries[0].mapping_type == "wages_expense"

    def test_zero_amounts_not_posted(self, gl_config):
        """Zero and negative totals produce no entries."""
        batch = GLPostingEngine(gl_config).post(
            PayrollTotals(gross=Decimal("100"), net=Decimal("100"), employee_tax=Decimal("-5"))
        )
        assert len(batch.entries) == 2
        assert batch.is_balanced is True

    def test_amounts_rounded_to_cents(self, gl_config):
        """Posted amounts are rounded half-up to cents."""
        batch = GLPostingEngine(gl_config).post(
            PayrollTotals(gross=Decimal("100.005"), net=Decimal("100.005"))
        )
        assert batch.entries[0].amount == Decimal("100.01")


class TestMappingResolution:
    """Test mapping lookup details."""

    def test_priority_within_type(self):
        """The higher-priority mapping of a type wins."""
        mappings = [
            GLMapping(mapping_type="net_pay", credit_account_id="low", priority=1),
            GLMapping(mapping_type="net_pay", credit_account_id="high", priority=5),
        ]
        mapping = resolve_mapping(mappings, "net_pay", EntryDirection.CREDIT)
        assert mapping.credit_account_id == "high"

    def test_inactive_mapping_ignored(self):
        """Inactive mappings are skipped in favor of the next link."""
        mappings = [
            GLMapping(mapping_type="net_pay", credit_account_id="a", is_active=False),
            GLMapping(mapping_type="payroll_clearing", credit_account_id="b"),
        ]
        mapping = resolve_mapping(mappings, "net_pay", EntryDirection.CREDIT)
        assert mapping.mapping_type == "payroll_clearing"

    def test_unmapped_type_returns_none(self):
        assert resolve_mapping([], "employer_savings_liability", EntryDirection.CREDIT) is None


class TestPostingWarnings:
    """Test data-integrity warnings."""

    def test_missing_account_warns_and_skips(self, gl_config):
        """A mapping to an unknown account is reported and not posted."""
        config = replace(
            gl_config,
            mappings=tuple(
                replace(m, credit_account_id="acc-gone") if m.mapping_type == "net_pay" else m
                for m in gl_config.mappings
            ),
        )
        batch = GLPostingEngine(config).post(TOTALS)

        assert all(e.mapping_type != "net_pay" for e in batch.entries)
        assert any("acc-gone" in w for w in batch.warnings)
        assert batch.is_balanced is False
        assert any("not balanced" in w for w in batch.warnings)

    def test_inactive_account_warns_and_skips(self, gl_config):
        """A mapping to an inactive account is reported and not posted."""
        config = replace(
            gl_config,
            accounts=tuple(
                replace(a, is_active=False) if a.id == "acc-net" else a
                for a in gl_config.accounts
            ),
        )
        batch = GLPostingEngine(config).post(TOTALS)

        assert all(e.mapping_type != "net_pay" for e in batch.entries)
        assert any("acc-net" in w and "inactive" in w for w in batch.warnings)
        assert batch.is_balanced is False

    def test_unmapped_posting_unbalances(self):
        """Postings with no mapping are skipped and the imbalance is reported."""
        config = GLConfiguration.build(
            accounts=[GLAccount(id="acc-wages", code="5000")],
            mappings=[GLMapping(mapping_type="wages_expense", debit_account_id="acc-wages")],
        )
        batch = GLPostingEngine(config).post(TOTALS)

        assert len(batch.entries) == 1
        assert batch.is_balanced is False

    def test_accumulator_tolerance(self):
        """A one-cent difference is not balanced; anything smaller is."""
        journal = JournalAccumulator()
        resolution = Resolution(account_code="1", gl_string="1")
        journal.add(resolution, EntryDirection.DEBIT, Decimal("100.00"), "d", "x")
        journal.add(resolution, EntryDirection.CREDIT, Decimal("99.99"), "c", "y")
        assert journal.is_balanced() is False
        assert journal.is_balanced(Decimal("0.02")) is True
        assert journal.next_entry_number == 3


class TestOverrideRules:
    """Test conditional account and GL string overrides."""

    def test_account_override(self, gl_config):
        """A matching rule redirects the entry to another account."""
        config = replace(
            gl_config,
            accounts=gl_config.accounts + (GLAccount(id="acc-bank", code="1010"),),
        )
        rule = GLOverrideRule(
            id="r1",
            target=ReplaceAccount(account_id="acc-bank"),
            conditions=(GLOverrideCondition("mapping_type", ConditionOperator.EQUALS, "net_pay"),),
        )
        batch = GLPostingEngine(with_rules(config, rule)).post(TOTALS)

        net = entry_for(batch, "net_pay")
        assert net.account_code == "1010"
        assert net.rule_id == "r1"
        assert entry_for(batch, "wages_expense").rule_id is None

    def test_highest_priority_rule_wins(self, gl_config):
        """Among matching rules the highest priority applies."""
        low = GLOverrideRule(id="low", target=ReplaceFullString("LOW"), priority=1)
        high = GLOverrideRule(id="high", target=ReplaceFullString("HIGH"), priority=10)
        batch = GLPostingEngine(with_rules(gl_config, low, high)).post(TOTALS)
        assert {e.gl_string for e in batch.entries} == {"HIGH"}

    def test_direction_filter(self, gl_config):
        """Rules limited to credits leave debits alone."""
        rule = GLOverrideRule(
            id="credits", target=ReplaceFullString("CR"), applies_to_debit=False
        )
        batch = GLPostingEngine(with_rules(gl_config, rule)).post(TOTALS)

        assert entry_for(batch, "wages_expense").gl_string == "5000"
        assert entry_for(batch, "net_pay").gl_string == "CR"

    def test_inactive_rule_ignored(self, gl_config):
        rule = GLOverrideRule(id="off", target=ReplaceFullString("X"), is_active=False)
        batch = GLPostingEngine(with_rules(gl_config, rule)).post(TOTALS)
        assert all(e.rule_id is None for e in batch.entries)

    def test_conditions_are_anded(self, gl_config):
        """Every condition must match the context."""
        rule = GLOverrideRule(
            id="sales-net",
            target=ReplaceFullString("SALES-2100"),
            conditions=(
                GLOverrideCondition("mapping_type", ConditionOperator.EQUALS, "net_pay"),
                GLOverrideCondition("department", ConditionOperator.IN, values=("SALES", "MKT")),
            ),
        )
        engine = GLPostingEngine(with_rules(gl_config, rule))

        sales = engine.post(TOTALS, PostingContext(department="SALES"))
        ops = engine.post(TOTALS, PostingContext(department="OPS"))

        assert entry_for(sales, "net_pay").gl_string == "SALES-2100"
        assert entry_for(ops, "net_pay").gl_string == "2100"

    def test_condition_operators(self):
        """not_equals matches missing values; any always matches."""
        context = PostingContext(mapping_type="net_pay")
        assert GLOverrideCondition("department", ConditionOperator.NOT_EQUALS, "OPS").matches(context)
        assert GLOverrideCondition("department", ConditionOperator.ANY).matches(context)
        assert not GLOverrideCondition("department", ConditionOperator.EQUALS, "OPS").matches(context)
        assert not GLOverrideCondition("department", ConditionOperator.IN, values=("OPS",)).matches(context)

    def test_missing_override_account_keeps_original(self, gl_config):
        """An override to an unknown account warns and keeps the mapped account."""
        rule = GLOverrideRule(id="bad", target=ReplaceAccount(account_id="nowhere"))
        batch = GLPostingEngine(with_rules(gl_config, rule)).post(TOTALS)

        assert entry_for(batch, "wages_expense").account_code == "5000"
        assert any("nowhere" in w for w in batch.warnings)

    def test_inactive_override_account_keeps_original(self, gl_config):
        """An override to an inactive account warns and keeps the mapped account."""
        config = replace(
            gl_config,
            accounts=gl_config.accounts
            + (GLAccount(id="acc-old-bank", code="1000", is_active=False),),
        )
        rule = GLOverrideRule(
            id="old-bank",
            target=ReplaceAccount(account_id="acc-old-bank"),
            conditions=(GLOverrideCondition("mapping_type", ConditionOperator.EQUALS, "net_pay"),),
        )
        batch = GLPostingEngine(with_rules(config, rule)).post(TOTALS)

        assert entry_for(batch, "net_pay").account_code == "2100"
        assert any("acc-old-bank" in w and "inactive" in w for w in batch.warnings)


class TestGLStrings:
    """Test dimensional GL string composition."""

    @pytest.fixture
    def segmented(self, gl_config) -> GLConfiguration:
        return replace(
            gl_config,
            segments=(
                GLSegment(code="dept", segment_order=2),
                GLSegment(code="company", segment_order=1),
                GLSegment(code="legacy", segment_order=3, is_active=False),
            ),
            segment_defaults={"company": "100", "dept": "4500", "legacy": "ZZ"},
        )

    def test_segments_in_order_then_account(self, segmented):
        """Active segments in order, then the account code."""
        batch = GLPostingEngine(segmented).post(TOTALS)
        assert batch.entries[0].gl_string == "100-4500-5000"

    def test_segment_override(self, segmented):
        """Segment overrides overlay the defaults."""
        rule = GLOverrideRule(id="seg", target=SegmentOverrides(segments={"dept": "9999"}))
        batch = GLPostingEngine(with_rules(segmented, rule)).post(TOTALS)
        assert batch.entries[0].gl_string == "100-9999-5000"

    def test_empty_values_dropped(self):
        """Segments with no value are left out."""
        composer = GLStringComposer([GLSegment(code="a", segment_order=1), GLSegment(code="b", segment_order=2)], {"b": "20"})
        assert composer.compose("6000") == "20-6000"

    def test_no_segments(self):
        assert GLStringComposer().compose("6000") == "6000"


class TestDeterminismAndExport:
    """Test repeatability and CSV export."""

    def test_same_inputs_same_batch(self, gl_config):
        """Posting twice yields identical entries and reference."""
        engine = GLPostingEngine(gl_config)
        first = engine.post(TOTALS, company_id="c1", payroll_run_id="run-1", employee_id="e1")
        second = engine.post(TOTALS, company_id="c1", payroll_run_id="run-1", employee_id="e1")

        assert first.entries == second.entries
        assert first.reference == second.reference
        assert len(first.reference) == 32

    def test_reference_depends_on_run(self, gl_config):
        engine = GLPostingEngine(gl_config)
        assert (
            engine.post(TOTALS, payroll_run_id="run-1").reference
            != engine.post(TOTALS, payroll_run_id="run-2").reference
        )

    def test_csv_export(self, gl_config):
        """CSV has a header and one row per entry with debit or credit filled."""
        batch = GLPostingEngine(gl_config).post(TOTALS)
        rows = list(csv.reader(io.StringIO(export_batch_csv(batch))))

        assert rows[0] == ["Entry", "Account", "GL String", "Debit", "Credit", "Description", "Reference"]
        assert len(rows) == len(batch.entries) + 1
        assert rows[1][:5] == ["1", "5000", "5000", "5000.00", ""]
        assert rows[3][:5] == ["3", "2100", "2100", "", "4000.00"]
        assert all(row[6] == batch.reference for row in rows[1:])


class TestPostingProperties:
    """Property-based tests for journal balance."""

    @given(
        net=CENTS,
        employee_tax=CENTS,
        benefit=CENTS,
        other=CENTS,
        employer_tax=CENTS,
        employer_benefit=CENTS,
    )
    def test_consistent_totals_always_balance(
        self, net, employee_tax, benefit, other, employer_tax, employer_benefit
    ):
        """Gross equal to net plus withholdings and deductions posts a balanced journal."""
        config = GLConfiguration.build(
            accounts=[
                GLAccount(id="acc-wages", code="5000"),
                GLAccount(id="acc-er", code="5100"),
                GLAccount(id="acc-net", code="2100"),
                GLAccount(id="acc-tax", code="2200"),
                GLAccount(id="acc-ded", code="2300"),
                GLAccount(id="acc-ben", code="2400"),
            ],
            mappings=[
                GLMapping(mapping_type="wages_expense", debit_account_id="acc-wages"),
                GLMapping(mapping_type="tax_expense", debit_account_id="acc-er"),
                GLMapping(mapping_type="employer_contribution", debit_account_id="acc-er"),
                GLMapping(mapping_type="net_pay", credit_account_id="acc-net"),
                GLMapping(mapping_type="tax_liability", credit_account_id="acc-tax"),
                GLMapping(mapping_type="deduction_liability", credit_account_id="acc-ded"),
                GLMapping(mapping_type="benefit_liability", credit_account_id="acc-ben"),
            ],
        )
        totals = PayrollTotals(
            gross=net + employee_tax + benefit + other,
            net=net,
            employee_tax=employee_tax,
            employer_tax=employer_tax,
            benefit_deductions=benefit,
            other_deductions=other,
            employer_benefit=employer_benefit,
        )
        batch = GLPostingEngine(config).post(totals)

        assert batch.is_balanced is True
        assert batch.total_debits == batch.total_credits
