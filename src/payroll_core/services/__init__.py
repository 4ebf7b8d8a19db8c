"""Payroll core services."""

from payroll_core.services.payroll_service import PayrollCalculationService, RunSimulation
from payroll_core.services.reference_data import ReferenceData, ReferenceDataLoader

__all__ = [
    "PayrollCalculationService",
    "ReferenceData",
    "ReferenceDataLoader",
    "RunSimulation",
]
