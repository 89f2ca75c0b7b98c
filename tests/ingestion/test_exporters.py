import pandas as pd
import pytest

from lead_harvester.ingestion.exporters import (
    export_dnc,
    export_filename,
    export_instantly,
    export_leads,
    extract_first_name,
    instantly_to_dataframe,
    leads_to_dataframe,
    protect_cell,
)
from lead_harvester.models import DNCEntry, Lead


def _lead(**overrides) -> Lead:
    values = dict(
        id="lead-1",
        name="John's Plumbing",
        phone="5145550001",
        campaign_id="c1",
        campaign_name="Plateau",
        imported_at="2024-01-31T12:00:00.000Z",
        website="johnsplumbing.ca",
        address="1 Main St",
        rating=4.8,
        reviews_count=42,
        category="Plumber",
        neighborhood="Plateau",
        email="info@johnsplumbing.ca",
    )
    values.update(overrides)
    return Lead(**values)


@pytest.mark.parametrize(
    "company, expected",
    [
        ("John's Plumbing", "John"),
        ("Marco Pizzeria", "Marco"),
        ("The Garage", ""),
        ("Salon Belle", ""),
        ("ABC Cleaning", ""),
        ("Al Bakery", ""),
        (None, ""),
    ],
)
def test_extract_first_name(company, expected) -> None:
    assert extract_first_name(company) == expected


def test_protect_cell() -> None:
    assert protect_cell("=HYPERLINK(\"x\")") == "'=HYPERLINK(\"x\")"
    assert protect_cell("+15145550001") == "'+15145550001"
    assert protect_cell(None) == ""
    assert protect_cell(4.5) == 4.5


def test_leads_to_dataframe_formats_phone() -> None:
    dataframe = leads_to_dataframe([_lead()])

    row = dataframe.iloc[0]
    assert row["Company Name"] == "John's Plumbing"
    assert row["Phone"] == "(514) 555-0001"
    assert row["Campaign"] == "Plateau"
    assert row["Status"] == "New"


def test_instantly_sheet_skips_leads_without_email() -> None:
    leads = [_lead(), _lead(id="lead-2", name="Quiet Co", email=None)]

    assert len(instantly_to_dataframe(leads)) == 1
    everything = instantly_to_dataframe(leads, only_with_email=False)
    assert list(everything["company_name"]) == ["John's Plumbing", "Quiet Co"]
    assert everything.iloc[0]["first_name"] == "John"
    assert everything.iloc[0]["custom1"] == "Plumber"


def test_csv_export_is_quoted_with_bom(tmp_path) -> None:
    output_path = export_leads([_lead(name="=cmd|' /C calc'!A0")], tmp_path / "leads.csv")

    raw = output_path.read_bytes()
    assert raw.startswith(b"\xef\xbb\xbf")
    text = raw.decode("utf-8-sig")
    assert text.splitlines()[0].startswith('"Company Name","Phone"')
    assert "\"'=cmd" in text


def test_dnc_export_accepts_mapping(tmp_path) -> None:
    entry = DNCEntry("5145550001", "514-555-0001", "Customer declined", "call_outcome", "2024-01-31T00:00:00.000Z")

    output_path = export_dnc({"5145550001": entry}, tmp_path / "dnc.csv")

    dataframe = pd.read_csv(output_path, encoding="utf-8-sig")
    assert list(dataframe.columns) == ["Phone", "Reason", "Source", "Added Date"]
    assert dataframe.iloc[0]["Phone"] == "(514) 555-0001"


def test_excel_export(tmp_path) -> None:
    pytest.importorskip("openpyxl")

    output_path = export_instantly([_lead()], tmp_path / "instantly.xlsx")

    dataframe = pd.read_excel(output_path, sheet_name="Instantly", engine="openpyxl")
    assert dataframe.iloc[0]["email"] == "info@johnsplumbing.ca"


def test_unsupported_export_extension(tmp_path) -> None:
    with pytest.raises(ValueError):
        export_leads([_lead()], tmp_path / "leads.pdf")


def test_export_filename() -> None:
    assert export_filename("leads", "Plateau Mont-Royal", "2024-01-31") == "leads-Plateau-Mont-Royal-2024-01-31.csv"
    assert export_filename("dnc", None, "2024-01-31") == "dnc-all-2024-01-31.csv"
