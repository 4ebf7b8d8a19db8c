"""SQLAlchemy read models for payroll reference data."""

from payroll_core.models.base import Base, CompanyScopedMixin, TimestampMixin
from payroll_core.models.employee import EmployeeOpeningBalance
from payroll_core.models.gl import (
    GLAccount,
    GLAccountMapping,
    GLOverrideCondition,
    GLOverrideRule,
    GLSegment,
)
from payroll_core.models.statutory import StatutoryDeductionType, StatutoryRateBand

__all__ = [
    "Base",
    "CompanyScopedMixin",
    "EmployeeOpeningBalance",
    "GLAccount",
    "GLAccountMapping",
    "GLOverrideCondition",
    "GLOverrideRule",
    "GLSegment",
    "StatutoryDeductionType",
    "StatutoryRateBand",
    "TimestampMixin",
]
