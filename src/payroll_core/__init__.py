"""Payroll core: salary aggregation, statutory deductions and GL posting."""

__version__ = "1.0.0"
