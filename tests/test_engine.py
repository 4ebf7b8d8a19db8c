"""Unit tests for PayrollEngine.

Exercises the full per-employee pipeline: earnings, deductions, net pay
and GL posting of the result.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from payroll_core.calculators.engine import CalculationInputs, PayrollEngine
from payroll_core.calculators.types import (
    Allowance,
    CalculationMethod,
    CompensationKind,
    CompensationSource,
    ContributionKind,
    DeductionKind,
    EmployerContribution,
    InvalidPayPeriodError,
    OpeningBalance,
    PayPeriod,
    PeriodDeduction,
    RateBand,
    StatutoryScheme,
)
from payroll_core.posting.types import GLAccount, GLMapping, PayrollTotals


@pytest.fixture
def engine() -> PayrollEngine:
    return PayrollEngine()


@pytest.fixture
def mid_month_inputs(employee, january, monthly_position, paye_scheme, nis_scheme) -> CalculationInputs:
    """Starts Jan 16 on 5000/month, PAYE and NIS over 4 recurring units."""
    return CalculationInputs(
        employee=replace(employee, start_date=date(2024, 1, 16)),
        period=replace(january, recurring_unit_count=Decimal("4")),
        sources=(monthly_position,),
        schemes=(paye_scheme, nis_scheme),
        payroll_run_id="run-2024-01",
    )


def flat_tax(rate: str, jurisdiction: str = "TT") -> StatutoryScheme:
    return StatutoryScheme(
        id="flat",
        code="FLAT",
        jurisdiction=jurisdiction,
        calculation_method=CalculationMethod.PERCENTAGE,
        bands=(RateBand(employee_rate=Decimal(rate)),),
    )


class TestSimulation:
    """Test a complete simulation."""

    def test_mid_month_starter(self, engine, mid_month_inputs):
        """Prorated salary, cumulative tax and per-unit insurance produce net pay."""
        result = engine.simulate(mid_month_inputs)

        assert result.success is True
        assert result.gross_pay == Decimal("2580.65")
        assert result.taxable_income == Decimal("2580.65")
        assert result.proration.days_worked == 16
        assert result.proration.total_days == 31
        assert result.salary.full_period_salary == Decimal("5000.00")

        paye, nis = result.deductions.statutory
        # 1000 at 0%, 1000 at 10%, 580.65 at 20%
        assert paye.employee_amount == Decimal("216.13")
        assert nis.employee_amount == Decimal("100.00")
        assert nis.employer_amount == Decimal("40.00")
        assert result.net_pay == Decimal("2264.52")
        assert result.warnings == []

    def test_recurring_units_derived_from_mondays(self, engine, employee, january, monthly_position, nis_scheme):
        """Without an explicit count, the period's Mondays are counted."""
        result = engine.simulate(
            CalculationInputs(
                employee=employee,
                period=january,
                sources=(monthly_position,),
                schemes=(nis_scheme,),
            )
        )
        assert result.deductions.statutory[0].employee_amount == Decimal("125.00")

    def test_opening_balance_feeds_cumulative_tax(self, engine, mid_month_inputs):
        """Year-to-date tax paid reduces this period's withholding."""
        result = engine.simulate(
            replace(
                mid_month_inputs,
                opening_balance=OpeningBalance(
                    ytd_taxable_income=Decimal("0"), ytd_tax_paid=Decimal("16.13")
                ),
            )
        )
        paye = result.deductions.statutory[0]
        assert paye.employee_amount == Decimal("200.00")
        assert paye.ytd.tax_after == Decimal("216.13")

    def test_pretax_posttax_and_allowances(self, engine, employee, january):
        """Pre-tax deductions and non-taxable allowances reduce taxable income only."""
        result = engine.simulate(
            CalculationInputs(
                employee=employee,
                period=january,
                sources=(
                    CompensationSource(kind=CompensationKind.POSITION, amount=Decimal("4000")),
                ),
                allowances=(
                    Allowance(name="Travel", amount=Decimal("200"), is_taxable=False),
                    Allowance(name="Meal", amount=Decimal("100")),
                ),
                deductions=(
                    PeriodDeduction(
                        name="Pension",
                        amount=Decimal("300"),
                        is_pretax=True,
                        deduction_type=DeductionKind.RETIREMENT,
                    ),
                    PeriodDeduction(name="Loan", amount=Decimal("50"), deduction_type=DeductionKind.LOAN),
                ),
                schemes=(flat_tax("0.10"),),
            )
        )

        assert result.gross_pay == Decimal("4300.00")
        assert result.taxable_income == Decimal("3800.00")
        assert result.deductions.total_statutory == Decimal("380.00")
        assert result.deductions.total_pretax == Decimal("300.00")
        assert result.deductions.total_posttax == Decimal("50.00")
        assert result.net_pay == Decimal("3570.00")

    def test_age_from_date_of_birth(self, engine, employee, january, monthly_position):
        """Age is taken at the period end and selects the age band."""
        scheme = StatutoryScheme(
            id="nis",
            code="NIS",
            calculation_method=CalculationMethod.PERCENTAGE,
            bands=(
                RateBand(max_age=59, employee_rate=Decimal("0.05")),
                RateBand(min_age=60, employee_rate=Decimal("0.01")),
            ),
        )
        inputs = CalculationInputs(
            employee=replace(employee, date_of_birth=date(1964, 1, 31)),
            period=january,
            sources=(monthly_position,),
            schemes=(scheme,),
        )
        result = engine.simulate(inputs)
        assert result.deductions.statutory[0].employee_amount == Decimal("50.00")

    def test_zero_net_is_success(self, engine, employee, january):
        """Deductions consuming all pay still succeed with zero net."""
        result = engine.simulate(
            CalculationInputs(
                employee=employee,
                period=january,
                sources=(CompensationSource(kind=CompensationKind.POSITION, amount=Decimal("100")),),
                deductions=(PeriodDeduction(name="Advance", amount=Decimal("100")),),
                schemes=(flat_tax("0"),),
            )
        )
        assert result.success is True
        assert result.net_pay == Decimal("0.00")


class TestSimulationWarnings:
    """Test configuration warnings and hard failures."""

    def test_missing_period_fails(self, engine, employee, monthly_position):
        """No pay period is a hard failure, distinct from zero pay."""
        result = engine.simulate(CalculationInputs(employee=employee, period=None, sources=(monthly_position,)))

        assert result.success is False
        assert result.errors
        assert result.net_pay == Decimal("0")

    def test_no_statutory_schemes_warns(self, engine, employee, january, monthly_position):
        """A jurisdiction without schemes yields no deductions and a warning."""
        result = engine.simulate(
            CalculationInputs(
                employee=employee,
                period=january,
                sources=(monthly_position,),
                schemes=(flat_tax("0.1", jurisdiction="JM"),),
            )
        )

        assert result.success is True
        assert result.deductions.statutory == []
        assert "No statutory deductions configured for jurisdiction TT" in result.warnings
        assert result.net_pay == Decimal("5000.00")

    def test_no_base_salary_warns(self, engine, employee, january):
        """No compensation at all is reported."""
        result = engine.simulate(
            CalculationInputs(employee=employee, period=january, schemes=(flat_tax("0.1"),))
        )
        assert result.success is True
        assert any("No base salary" in w for w in result.warnings)

    def test_invalid_period_rejected(self):
        """A period ending before it starts cannot be constructed."""
        with pytest.raises(InvalidPayPeriodError):
            PayPeriod(start=date(2024, 1, 31), end=date(2024, 1, 1))


class TestCalculationId:
    """Test deterministic calculation ids."""

    def test_same_inputs_same_id(self, engine, mid_month_inputs):
        assert engine.simulate(mid_month_inputs).calculation_id == engine.simulate(mid_month_inputs).calculation_id

    def test_different_inputs_different_id(self, engine, mid_month_inputs):
        other = replace(mid_month_inputs, payroll_run_id="run-2024-02")
        assert engine.simulate(mid_month_inputs).calculation_id != engine.simulate(other).calculation_id


class TestPosting:
    """Test GL posting of simulation results."""

    def test_totals_from_simulation(self, engine, mid_month_inputs):
        """Statutory amounts become tax totals; deductions split by type."""
        inputs = replace(
            mid_month_inputs,
            deductions=(
                PeriodDeduction(name="Health", amount=Decimal("80"), is_pretax=True, deduction_type=DeductionKind.BENEFIT),
                PeriodDeduction(name="Union", amount=Decimal("20")),
            ),
            employer_contributions=(
                EmployerContribution(name="Health", amount=Decimal("120")),
                EmployerContribution(
                    name="Pension", amount=Decimal("60"), contribution_type=ContributionKind.RETIREMENT
                ),
            ),
        )
        totals = PayrollTotals.from_simulation(engine.simulate(inputs))

        assert totals.benefit_deductions == Decimal("80.00")
        assert totals.other_deductions == Decimal("20.00")
        assert totals.employer_tax == Decimal("40.00")
        assert totals.employer_benefit == Decimal("120.00")
        assert totals.employer_retirement == Decimal("60.00")
        assert totals.employer_savings == Decimal("0")
        assert totals.gross == totals.net + totals.employee_tax + totals.benefit_deductions + totals.other_deductions

    def test_post_balanced(self, engine, mid_month_inputs, gl_config):
        """A simulated employee posts a balanced journal."""
        batch = engine.post(engine.simulate(mid_month_inputs), gl_config)

        assert batch.is_balanced is True
        assert batch.total_debits == Decimal("2620.65")
        assert batch.payroll_run_id == "run-2024-01"
        assert batch.employee_id == "emp-1"

    def test_employer_contributions_need_mappings(self, engine, mid_month_inputs, gl_config):
        """Employer benefit posts to both expense and liability when mapped."""
        config = replace(
            gl_config,
            accounts=gl_config.accounts
            + (GLAccount(id="acc-ben-exp", code="5200"), GLAccount(id="acc-ben-liab", code="2400")),
            mappings=gl_config.mappings
            + (
                GLMapping(mapping_type="benefit_expense", debit_account_id="acc-ben-exp"),
                GLMapping(mapping_type="benefit_liability", credit_account_id="acc-ben-liab"),
            ),
        )
        inputs = replace(
            mid_month_inputs,
            employer_contributions=(EmployerContribution(name="Health", amount=Decimal("120")),),
        )
        batch = engine.post(engine.simulate(inputs), config)

        codes = {(e.account_code, e.direction.value) for e in batch.entries}
        assert ("5200", "debit") in codes
        assert ("2400", "credit") in codes
        assert batch.is_balanced is True

    def test_failed_simulation_posts_nothing(self, engine, employee, gl_config):
        """A failed calculation produces an empty batch with a warning."""
        batch = engine.post(engine.simulate(CalculationInputs(employee=employee, period=None)), gl_config)

        assert batch.entries == []
        assert batch.warnings
