"""
Upload ingestion.

Turns an uploaded software inventory export (CSV or Excel workbook) into
InventoryEntry rows the engine can classify.

Responsibilities:
- CSV: encoding detection (charset-normalizer) with deterministic fallbacks
  and delimiter detection
- workbooks: sheet selection (first sheet named like "software", else the
  first sheet) via pandas
- column auto-detection for name, publisher and device count
- agency name detection from customer columns (any sheet) or the upload filename
"""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd
from charset_normalizer import from_bytes

from .errors import IngestError
from .models import InventoryEntry

logger = logging.getLogger(__name__)

NAME_COLUMNS = ["software name", "name", "application", "app name", "program"]
PUBLISHER_COLUMNS = ["publisher", "software publisher", "vendor", "manufacturer"]
DEVICE_COUNT_COLUMNS = ["number of devices", "device count", "count", "devices", "quantity"]
AGENCY_COLUMNS = [
    "customer name",
    "customer",
    "client name",
    "client",
    "agency name",
    "agency",
    "company",
    "organization",
    "account name",
    "account",
]

_FILENAME_AGENCY = re.compile(r"^(.+?)[\s_-]*[-_][\s_-]*(Software|Inventory|Report|devices)", re.IGNORECASE)
_DELIMITERS = [",", ";", "\t", "|"]
_WORKBOOK_ENGINES = {".xlsx": "openpyxl", ".xls": "xlrd"}


@dataclass
class ParsedInventory:
    entries: List[InventoryEntry] = field(default_factory=list)
    agency: Optional[str] = None
    encoding: Optional[str] = None
    delimiter: Optional[str] = None
    sheet: Optional[str] = None


def decode_bytes(raw: bytes) -> tuple[str, str]:
    """
    Decode an upload to text.

    Rules:
    - Use the charset-normalizer best guess when there is one, else UTF-8.
    - A UTF-8 BOM is stripped.
    - If the guess fails to decode, try UTF-8, then decode with replacement.
    Returns (text, encoding_used).
    """
    match = from_bytes(raw).best()
    decode_used = match.encoding if match is not None else "utf-8"

    if raw.startswith(b"\xef\xbb\xbf") and decode_used.lower().replace("-", "_") in ("utf_8", "utf8"):
        decode_used = "utf-8-sig"

    try:
        return raw.decode(decode_used), decode_used
    except (UnicodeDecodeError, LookupError):
        pass

    try:
        return raw.decode("utf-8-sig"), "utf-8-sig"
    except UnicodeDecodeError:
        logger.warning("Upload is not valid %s or UTF-8; decoding with replacement", decode_used)
        return raw.decode("utf-8", errors="replace"), "utf-8"


def sniff_delimiter(text: str) -> str:
    """Sniff among , ; tab |. A guess absent from the header line falls back to comma."""
    header = text.split("\n", 1)[0]
    try:
        delimiter = csv.Sniffer().sniff(text[:4096], delimiters="".join(_DELIMITERS)).delimiter
    except csv.Error:
        return ","
    return delimiter if delimiter in header else ","


def find_column(row: Dict[str, str], candidates: Sequence[str]) -> Optional[str]:
    """
    Return the first non-empty value whose header matches a candidate.

    For each candidate in order, an exact (case-insensitive) header wins over
    a header that merely contains the candidate.
    """
    keys = [k for k in row.keys() if k is not None]
    for candidate in candidates:
        wanted = candidate.lower()
        exact = next((k for k in keys if k.strip().lower() == wanted), None)
        if exact is not None and _present(row.get(exact)):
            return row[exact]
        partial = next((k for k in keys if wanted in k.lower()), None)
        if partial is not None and _present(row.get(partial)):
            return row[partial]
    return None


def _present(value) -> bool:
    return value is not None and str(value).strip() != ""


def _first_value(row: Dict[str, str]) -> Optional[str]:
    for key, value in row.items():
        if key is None:
            continue
        return value
    return None


def agency_from_filename(filename: str) -> Optional[str]:
    """Extract "Fenner Esler" from "Fenner-Esler_-_Software_Inventory.xlsx"."""
    m = _FILENAME_AGENCY.match(filename or "")
    if not m:
        return None
    agency = re.sub(r"[_-]", " ", m.group(1)).strip()
    return agency or None


def _entries_from_rows(rows: Sequence[Dict[str, str]]) -> List[InventoryEntry]:
    # Whitespace-only names are kept here so they count as input;
    # the engine skips them before classification.
    entries: List[InventoryEntry] = []
    for row in rows:
        name = find_column(row, NAME_COLUMNS) or _first_value(row)
        if name is None or str(name) == "":
            continue
        entries.append(
            InventoryEntry(
                name=str(name),
                publisher=find_column(row, PUBLISHER_COLUMNS) or "",
                device_count=find_column(row, DEVICE_COUNT_COLUMNS) or 1,
            )
        )
    return entries


def _resolve_agency(agency: Optional[str], sheets: Iterable[Sequence[Dict[str, str]]], filename: str) -> Optional[str]:
    """Explicit value, else the first row of the first sheet naming a customer, else the filename."""
    if agency and agency.strip():
        return agency.strip()
    for rows in sheets:
        if not rows:
            continue
        value = find_column(rows[0], AGENCY_COLUMNS)
        if value:
            return str(value).strip()
    return agency_from_filename(filename)


def parse_inventory_csv(raw: bytes, filename: str = "", agency: Optional[str] = None) -> ParsedInventory:
    """
    Parse CSV bytes into inventory entries.

    Raises:
        IngestError: when the upload has no header row
    """
    text, encoding = decode_bytes(raw)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    delimiter = sniff_delimiter(text)

    reader = csv.DictReader(io.StringIO(text, newline=""), delimiter=delimiter)
    if not reader.fieldnames:
        raise IngestError("CSV upload has no header row")

    rows = list(reader)
    entries = _entries_from_rows(rows)
    detected = _resolve_agency(agency, [rows], filename)

    logger.info(
        "Parsed %d inventory rows from %r (encoding=%s, delimiter=%r, agency=%r)",
        len(entries),
        filename,
        encoding,
        delimiter,
        detected,
    )
    return ParsedInventory(entries=entries, agency=detected, encoding=encoding, delimiter=delimiter)


def choose_sheet(sheet_names: Sequence[str]) -> str:
    """The first sheet whose name mentions "software", else the first sheet."""
    return next((s for s in sheet_names if "software" in s.lower()), sheet_names[0])


def _sheet_rows(frame: pd.DataFrame) -> List[Dict[str, str]]:
    # Empty cells are left out of the row, as if the column were absent.
    rows = []
    for record in frame.to_dict(orient="records"):
        rows.append({str(k).strip(): str(v) for k, v in record.items() if not pd.isna(v)})
    return rows


def parse_inventory_workbook(raw: bytes, filename: str = "", agency: Optional[str] = None) -> ParsedInventory:
    """
    Parse an .xlsx/.xls workbook into inventory entries.

    Every sheet is read so the agency can be found on any of them; entries
    come from the sheet picked by choose_sheet.

    Raises:
        IngestError: when the workbook cannot be read or has no sheets
    """
    engine = _WORKBOOK_ENGINES.get(Path(filename).suffix.lower(), "openpyxl")
    try:
        frames = pd.read_excel(io.BytesIO(raw), sheet_name=None, dtype=str, engine=engine)
    except Exception as exc:  # reader errors differ per engine
        raise IngestError(f"Workbook could not be read: {exc}") from exc
    if not frames:
        raise IngestError("Workbook has no sheets")

    sheets = {name: _sheet_rows(frame) for name, frame in frames.items()}
    sheet = choose_sheet(list(sheets))
    entries = _entries_from_rows(sheets[sheet])
    detected = _resolve_agency(agency, sheets.values(), filename)

    logger.info(
        "Parsed %d inventory rows from %r (sheet=%r, agency=%r)",
        len(entries),
        filename,
        sheet,
        detected,
    )
    return ParsedInventory(entries=entries, agency=detected, sheet=sheet)


def parse_inventory(raw: bytes, filename: str = "", agency: Optional[str] = None) -> ParsedInventory:
    """Dispatch on the upload extension: workbooks through pandas, everything else as CSV."""
    if filename.lower().endswith(tuple(_WORKBOOK_ENGINES)):
        return parse_inventory_workbook(raw, filename=filename, agency=agency)
    return parse_inventory_csv(raw, filename=filename, agency=agency)
