"""Statutory deduction configuration models."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_core.calculators.money import to_decimal
from payroll_core.calculators.types import (
    CalculationMethod,
    PayFrequency,
    RateBand,
    StatutoryScheme,
)
from payroll_core.models.base import Base, TimestampMixin


class StatutoryDeductionType(Base, TimestampMixin):
    """A statutory scheme (income tax, social insurance, levy...) for a jurisdiction."""

    __tablename__ = "statutory_deduction_type"

    statutory_deduction_type_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    code: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False, default="")
    jurisdiction: Mapped[str | None] = mapped_column(String, nullable=True)
    calculation_method: Mapped[str] = mapped_column(String, nullable=False, default="percentage")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            "calculation_method IN ('percentage', 'fixed', 'per_monday', "
            "'per_recurring_unit', 'cumulative', 'cumulative_progressive')",
            name="calculation_method",
        ),
    )

    # Relationships
    bands: Mapped[list[StatutoryRateBand]] = relationship(
        back_populates="deduction_type",
        order_by="StatutoryRateBand.min_amount",
        lazy="selectin",
    )

    def to_domain(self) -> StatutoryScheme:
        return StatutoryScheme(
            id=str(self.statutory_deduction_type_id),
            code=self.code,
            name=self.name,
            calculation_method=CalculationMethod.parse(self.calculation_method),
            bands=tuple(band.to_domain() for band in self.bands),
            jurisdiction=self.jurisdiction,
            is_active=self.is_active,
        )


class StatutoryRateBand(Base, TimestampMixin):
    """Income/age band of a statutory scheme. Rates are stored as fractions."""

    __tablename__ = "statutory_rate_band"

    statutory_rate_band_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    statutory_deduction_type_id: Mapped[UUID] = mapped_column(
        ForeignKey("statutory_deduction_type.statutory_deduction_type_id", ondelete="CASCADE"),
        nullable=False,
    )
    min_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    max_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    employee_rate: Mapped[Decimal] = mapped_column(Numeric(9, 6), nullable=False, default=0)
    employer_rate: Mapped[Decimal] = mapped_column(Numeric(9, 6), nullable=False, default=0)
    fixed_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    employer_fixed_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    per_unit_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    employer_per_unit_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=0
    )
    min_age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    pay_frequency: Mapped[str | None] = mapped_column(String, nullable=True)
    calculation_method: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint("min_amount >= 0", name="min_amount"),
        CheckConstraint(
            "max_amount IS NULL OR max_amount >= min_amount",
            name="amount_range",
        ),
    )

    # Relationships
    deduction_type: Mapped[StatutoryDeductionType] = relationship(back_populates="bands")

    def to_domain(self) -> RateBand:
        return RateBand(
            min_amount=to_decimal(self.min_amount),
            max_amount=to_decimal(self.max_amount) if self.max_amount is not None else None,
            employee_rate=to_decimal(self.employee_rate),
            employer_rate=to_decimal(self.employer_rate),
            fixed_amount=to_decimal(self.fixed_amount),
            employer_fixed_amount=to_decimal(self.employer_fixed_amount),
            per_unit_amount=to_decimal(self.per_unit_amount),
            employer_per_unit_amount=to_decimal(self.employer_per_unit_amount),
            min_age=self.min_age,
            max_age=self.max_age,
            pay_frequency=PayFrequency.parse(self.pay_frequency) if self.pay_frequency else None,
            calculation_method=(
                CalculationMethod.parse(self.calculation_method)
                if self.calculation_method
                else None
            ),
        )
