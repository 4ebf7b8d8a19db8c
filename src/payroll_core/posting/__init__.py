"""GL posting engine."""

from payroll_core.posting.engine import GLPostingEngine, JournalAccumulator
from payroll_core.posting.export import export_batch_csv
from payroll_core.posting.rules import (
    ConditionOperator,
    GLOverrideCondition,
    GLOverrideRule,
    ReplaceAccount,
    ReplaceFullString,
    SegmentOverrides,
)
from payroll_core.posting.segments import GLStringComposer
from payroll_core.posting.types import (
    EntryDirection,
    GLAccount,
    GLBatch,
    GLConfiguration,
    GLMapping,
    GLSegment,
    JournalEntry,
    PayrollTotals,
    PostingContext,
)

__all__ = [
    "ConditionOperator",
    "EntryDirection",
    "GLAccount",
    "GLBatch",
    "GLConfiguration",
    "GLMapping",
    "GLOverrideCondition",
    "GLOverrideRule",
    "GLPostingEngine",
    "GLSegment",
    "GLStringComposer",
    "JournalAccumulator",
    "JournalEntry",
    "PayrollTotals",
    "PostingContext",
    "ReplaceAccount",
    "ReplaceFullString",
    "SegmentOverrides",
    "export_batch_csv",
]
