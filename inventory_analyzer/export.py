"""CSV export of enriched analysis results."""

from __future__ import annotations

import csv
import io
import re
from datetime import date
from typing import Iterable, Optional

from .models import ExportRow
from .rules import DEFAULT_DISPOSITION

EXPORT_HEADERS = [
    "Application Name",
    "Category",
    "Deployment Type",
    "Disposition",
    "Hub Standard Replacement",
    "Description",
    "Original Entries",
    "Total Devices",
    "Notes",
]


def _cell(value) -> str:
    return "" if value is None else str(value)


def export_filename(agency: Optional[str], today: Optional[date] = None) -> str:
    today = today or date.today()
    prefix = re.sub(r"[^a-z0-9]", "_", agency, flags=re.IGNORECASE) + "_" if agency else ""
    return f"software_analysis_{prefix}{today.isoformat()}.csv"


def export_csv(rows: Iterable[ExportRow], agency: Optional[str] = None, today: Optional[date] = None) -> str:
    """
    Render rows as CSV text.

    With an agency, a two-line preamble and a blank line precede the header.
    Every data cell is quoted.
    """
    today = today or date.today()
    out = io.StringIO(newline="")

    if agency:
        out.write(f"Agency: {agency}\nExport Date: {today.isoformat()}\n\n")

    out.write(",".join(EXPORT_HEADERS) + "\n")
    writer = csv.writer(out, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for row in rows:
        writer.writerow(
            [
                _cell(row.canonical_name),
                _cell(row.category),
                _cell(row.deployment_type),
                _cell(row.disposition or DEFAULT_DISPOSITION),
                _cell(row.replacement_name),
                _cell(row.description),
                _cell(row.original_count),
                _cell(row.total_devices),
                _cell(row.disposition_notes),
            ]
        )
    return out.getvalue()
