import io

import pandas as pd
import pytest

from inventory_analyzer.errors import IngestError
from inventory_analyzer.ingest import (
    agency_from_filename,
    choose_sheet,
    find_column,
    parse_inventory,
    parse_inventory_csv,
)


def _workbook(sheets):
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        for name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=name, index=False)
    return buf.getvalue()


def test_columns_detected_by_header_names():
    raw = b"Software Name,Publisher,Number of Devices\nGoogle Chrome,Google LLC,12\n7-Zip,Igor Pavlov,\n"
    parsed = parse_inventory_csv(raw, filename="export.csv")

    assert [(e.name, e.publisher, e.device_count) for e in parsed.entries] == [
        ("Google Chrome", "Google LLC", "12"),
        ("7-Zip", "Igor Pavlov", 1),
    ]


def test_exact_header_preferred_over_partial():
    row = {"Display Name": "wrong", "Name": "right"}
    assert find_column(row, ["name"]) == "right"


def test_empty_values_are_skipped_in_column_detection():
    row = {"Application": "", "Program": "Notepad++"}
    assert find_column(row, ["application", "program"]) == "Notepad++"


def test_first_column_used_when_no_name_header():
    parsed = parse_inventory_csv(b"Title,Vendor\nAnyDesk,philandro\n,nobody\n")
    assert [e.name for e in parsed.entries] == ["AnyDesk"]
    assert parsed.entries[0].publisher == "philandro"


def test_semicolon_delimited_latin1_upload():
    raw = (
        "Name;Publisher;Devices\n"
        "Logiciel Comptabilité;Éditions Générales;3\n"
        "Gestion des dépenses;Société Fiduciaire;2\n"
        "Télécharger facilement;Réseau Québécois;1\n"
    ).encode("latin-1")
    parsed = parse_inventory_csv(raw)

    assert parsed.delimiter == ";"
    assert parsed.entries[0].name == "Logiciel Comptabilité"
    assert parsed.entries[0].device_count == "3"


def test_agency_from_customer_column_in_first_row():
    raw = b"Customer Name,Software Name\nAcme Insurance,Dropbox\n"
    parsed = parse_inventory_csv(raw, filename="Other_-_Software.csv")
    assert parsed.agency == "Acme Insurance"


def test_explicit_agency_wins():
    raw = b"Customer Name,Software Name\nAcme Insurance,Dropbox\n"
    assert parse_inventory_csv(raw, agency="Override Co").agency == "Override Co"


@pytest.mark.parametrize(
    "filename, expected",
    [
        ("Fenner-Esler_-_Software_Inventory.xlsx", "Fenner Esler"),
        ("Smith Agency - Inventory.csv", "Smith Agency"),
        ("random.csv", None),
    ],
)
def test_agency_from_filename(filename, expected):
    assert agency_from_filename(filename) == expected


def test_empty_upload_is_rejected():
    with pytest.raises(IngestError):
        parse_inventory_csv(b"")


def test_whitespace_only_names_still_count_as_input():
    parsed = parse_inventory_csv(b"Software Name,Publisher\n   ,Acme\nDropbox,Dropbox\n")
    assert [e.name for e in parsed.entries] == ["   ", "Dropbox"]


@pytest.mark.parametrize(
    "names, expected",
    [
        (["Summary", "Software List", "Devices"], "Software List"),
        (["Summary", "Devices"], "Summary"),
        (["SOFTWARE"], "SOFTWARE"),
    ],
)
def test_choose_sheet(names, expected):
    assert choose_sheet(names) == expected


def test_workbook_reads_software_sheet_and_finds_agency_on_another():
    raw = _workbook(
        {
            "Summary": [{"Customer Name": "Acme Insurance", "Devices": "40"}],
            "Software List": [
                {"Software Name": "Google Chrome", "Publisher": "Google LLC", "Number of Devices": "12"},
                {"Software Name": "7-Zip", "Publisher": None, "Number of Devices": None},
            ],
        }
    )
    parsed = parse_inventory(raw, filename="export.xlsx")

    assert parsed.sheet == "Software List"
    assert parsed.agency == "Acme Insurance"
    assert [(e.name, e.publisher, e.device_count) for e in parsed.entries] == [
        ("Google Chrome", "Google LLC", "12"),
        ("7-Zip", "", 1),
    ]


def test_workbook_without_software_sheet_uses_first_sheet():
    raw = _workbook({"Apps": [{"Name": "Zoom"}], "Other": [{"Name": "Slack"}]})
    parsed = parse_inventory(raw, filename="Smith Agency - Inventory.xlsx")

    assert parsed.sheet == "Apps"
    assert [e.name for e in parsed.entries] == ["Zoom"]
    assert parsed.agency == "Smith Agency"


def test_unreadable_workbook_is_rejected():
    with pytest.raises(IngestError):
        parse_inventory(b"PK\x03\x04 not really a zip", filename="broken.xlsx")


def test_csv_extension_goes_through_csv_parser():
    parsed = parse_inventory(b"Name\nZoom\n", filename="inv.csv")
    assert parsed.delimiter == ","
    assert parsed.sheet is None
