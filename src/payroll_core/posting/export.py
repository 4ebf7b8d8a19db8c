"""CSV export of GL batches."""

from __future__ import annotations

import csv
import io

from payroll_core.posting.types import GLBatch


def export_batch_csv(batch: GLBatch) -> str:
    """Export a GL batch to CSV format.

    Returns CSV content as a string.
    """
    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow([
        "Entry",
        "Account",
        "GL String",
        "Debit",
        "Credit",
        "Description",
        "Reference",
    ])

    for entry in batch.entries:
        writer.writerow([
            entry.entry_number,
            entry.account_code,
            entry.gl_string,
            str(entry.debit) if entry.debit > 0 else "",
            str(entry.credit) if entry.credit > 0 else "",
            entry.description,
            batch.reference,
        ])

    return output.getvalue()
