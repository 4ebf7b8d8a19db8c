"""Employee year-to-date balance models."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payroll_core.calculators.money import to_decimal
from payroll_core.calculators.types import OpeningBalance
from payroll_core.models.base import Base, TimestampMixin


class EmployeeOpeningBalance(Base, TimestampMixin):
    """Year-to-date totals carried in from earlier periods or a prior system."""

    __tablename__ = "employee_opening_balance"

    employee_opening_balance_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[str] = mapped_column(String, nullable=False)
    company_id: Mapped[str | None] = mapped_column(String, nullable=True)
    tax_year: Mapped[int] = mapped_column(Integer, nullable=False)
    ytd_gross: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    ytd_taxable_income: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    ytd_tax_paid: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("employee_id", "tax_year", name="employee_opening_balance_year_uq"),
    )

    def to_domain(self) -> OpeningBalance:
        return OpeningBalance(
            ytd_taxable_income=to_decimal(self.ytd_taxable_income),
            ytd_tax_paid=to_decimal(self.ytd_tax_paid),
            ytd_gross=to_decimal(self.ytd_gross),
            tax_year=self.tax_year,
        )
