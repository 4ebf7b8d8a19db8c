"""Pure payroll calculators.

The orchestrating engine lives in ``payroll_core.calculators.engine`` and
is imported from there; it depends on GL posting, which itself builds on
these calculators.
"""

from payroll_core.calculators.aggregator import CompensationAggregator, resolve_overtime_rule
from payroll_core.calculators.frequency import annualize, convert_frequency, periods_per_year
from payroll_core.calculators.matching import by_priority_desc, find_first
from payroll_core.calculators.proration import (
    apply_proration,
    calculate_proration,
    resolve_proration_method,
)
from payroll_core.calculators.statutory import (
    StatutoryDeductionCalculator,
    calculate_cumulative_tax,
)
from payroll_core.calculators.types import (
    CalculationConfig,
    InvalidPayPeriodError,
    PayFrequency,
    PayPeriod,
    UnknownFrequencyError,
)

__all__ = [
    "CalculationConfig",
    "CompensationAggregator",
    "InvalidPayPeriodError",
    "PayFrequency",
    "PayPeriod",
    "StatutoryDeductionCalculator",
    "UnknownFrequencyError",
    "annualize",
    "apply_proration",
    "by_priority_desc",
    "calculate_cumulative_tax",
    "calculate_proration",
    "convert_frequency",
    "find_first",
    "periods_per_year",
    "resolve_overtime_rule",
    "resolve_proration_method",
]
