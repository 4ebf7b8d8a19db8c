"""Pytest fixtures for payroll core tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from payroll_core.calculators.types import (
    CalculationMethod,
    CompensationKind,
    CompensationSource,
    EmployeeProfile,
    PayFrequency,
    PayPeriod,
    RateBand,
    StatutoryScheme,
)
from payroll_core.database import create_schema, create_session_factory
from payroll_core.posting.types import GLAccount, GLConfiguration, GLMapping

COMPANY_ID = "company-1"
JURISDICTION = "TT"


# ============================================================================
# Database
# ============================================================================


@pytest_asyncio.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite so concurrent loader sessions see the same data."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'payroll.db'}", echo=False)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(db_engine)


# ============================================================================
# Calculation inputs
# ============================================================================


@pytest.fixture
def january() -> PayPeriod:
    """Jan 2024: 31 days, 5 Mondays, 23 working days."""
    return PayPeriod(start=date(2024, 1, 1), end=date(2024, 1, 31), frequency=PayFrequency.MONTHLY)


@pytest.fixture
def employee() -> EmployeeProfile:
    return EmployeeProfile(
        employee_id="emp-1",
        name="Dana Reyes",
        jurisdiction=JURISDICTION,
        company_id=COMPANY_ID,
        date_of_birth=date(1990, 5, 1),
    )


@pytest.fixture
def monthly_position() -> CompensationSource:
    return CompensationSource(
        kind=CompensationKind.POSITION,
        amount=Decimal("5000"),
        frequency=PayFrequency.MONTHLY,
        position_title="Analyst",
    )


@pytest.fixture
def paye_scheme() -> StatutoryScheme:
    """Cumulative income tax: 0% to 1000, 10% to 2000, 20% above."""
    return StatutoryScheme(
        id="paye",
        code="PAYE",
        name="Income Tax",
        jurisdiction=JURISDICTION,
        calculation_method=CalculationMethod.CUMULATIVE_PROGRESSIVE,
        bands=(
            RateBand(min_amount=Decimal("0"), max_amount=Decimal("1000"), employee_rate=Decimal("0")),
            RateBand(
                min_amount=Decimal("1000"), max_amount=Decimal("2000"), employee_rate=Decimal("0.10")
            ),
            RateBand(min_amount=Decimal("2000"), employee_rate=Decimal("0.20")),
        ),
    )


@pytest.fixture
def nis_scheme() -> StatutoryScheme:
    """Weekly social insurance: 25 employee and 10 employer per Monday."""
    return StatutoryScheme(
        id="nis",
        code="NIS",
        name="National Insurance",
        jurisdiction=JURISDICTION,
        calculation_method=CalculationMethod.PER_RECURRING_UNIT,
        bands=(
            RateBand(per_unit_amount=Decimal("25"), employer_per_unit_amount=Decimal("10")),
        ),
    )


# ============================================================================
# GL configuration
# ============================================================================


@pytest.fixture
def gl_config() -> GLConfiguration:
    """Minimal chart of accounts using only the generic mapping types."""
    return GLConfiguration.build(
        accounts=[
            GLAccount(id="acc-wages", code="5000", name="Wages expense"),
            GLAccount(id="acc-er-tax", code="5100", name="Employer tax expense"),
            GLAccount(id="acc-net", code="2100", name="Net pay payable"),
            GLAccount(id="acc-tax", code="2200", name="Statutory deductions payable"),
            GLAccount(id="acc-ded", code="2300", name="Employee deductions payable"),
        ],
        mappings=[
            GLMapping(mapping_type="wages_expense", debit_account_id="acc-wages"),
            GLMapping(mapping_type="tax_expense", debit_account_id="acc-er-tax"),
            GLMapping(mapping_type="net_pay", credit_account_id="acc-net"),
            GLMapping(mapping_type="tax_liability", credit_account_id="acc-tax"),
            GLMapping(mapping_type="deduction_liability", credit_account_id="acc-ded"),
        ],
    )
