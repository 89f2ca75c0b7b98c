"""Export leads and the DNC list to CSV or Excel."""
from __future__ import annotations

import csv
import re
from pathlib import Path
from typing import Any, Iterable, List, Mapping, MutableMapping, Optional, Sequence, Union

import pandas as pd

from ..models import DNCEntry, Lead
from ..phone import format_phone_for_excel

PathLike = Union[str, Path]

LEAD_COLUMNS = (
    "Company Name",
    "Phone",
    "Website",
    "Address",
    "Rating",
    "Reviews",
    "Category",
    "Neighborhood",
    "Campaign",
    "Status",
    "Scraped Date",
)

DNC_COLUMNS = ("Phone", "Reason", "Source", "Added Date")

INSTANTLY_COLUMNS = (
    "email",
    "first_name",
    "company_name",
    "website",
    "phone",
    "custom1",
    "custom2",
    "custom3",
    "custom4",
    "custom5",
)

_FORMULA_START = re.compile(r"^[=+\-@]")
_NAME_CHARS = "a-zéèêëàâäùûüôöîïç-"
_POSSESSIVE_NAME = re.compile(rf"^([A-Z][{_NAME_CHARS}]+)'s\s", re.IGNORECASE)
_NAME_WORD = re.compile(rf"^[A-Z][{_NAME_CHARS}]+$")
_WORD_SPLIT = re.compile(r"[\s,]+")

BUSINESS_WORDS = frozenset(
    {
        "the",
        "les",
        "la",
        "le",
        "service",
        "services",
        "enterprise",
        "entreprise",
        "group",
        "groupe",
        "solutions",
        "pro",
        "expert",
        "centre",
        "center",
        "clinic",
        "clinique",
        "restaurant",
        "cafe",
        "hotel",
        "salon",
        "spa",
        "gym",
        "studio",
        "shop",
        "store",
        "boutique",
        "garage",
        "auto",
        "dental",
        "medical",
    }
)


def extract_first_name(company_name: Optional[str]) -> str:
    """Guess a personal first name from a business name for mail merges.

    ``"John's Plumbing"`` gives ``"John"`` and ``"Marco Pizzeria"`` gives
    ``"Marco"``.  Generic business words are never returned.
    """

    if not company_name:
        return ""
    possessive = _POSSESSIVE_NAME.match(company_name)
    if possessive:
        return possessive.group(1)
    first_word = _WORD_SPLIT.split(company_name)[0]
    if (
        first_word
        and _NAME_WORD.match(first_word)
        and 3 <= len(first_word) <= 15
        and first_word.lower() not in BUSINESS_WORDS
    ):
        return first_word
    return ""


def protect_cell(value: Any) -> Any:
    """Prefix text that a spreadsheet would evaluate as a formula with ``'``."""

    if value is None:
        return ""
    if isinstance(value, str) and _FORMULA_START.match(value):
        return f"'{value}"
    return value


def leads_to_dataframe(leads: Iterable[Lead]) -> pd.DataFrame:
    rows = [
        {
            "Company Name": lead.name,
            "Phone": format_phone_for_excel(lead.phone),
            "Website": lead.website,
            "Address": lead.address,
            "Rating": lead.rating or "",
            "Reviews": lead.reviews_count or "",
            "Category": lead.category or lead.search_category,
            "Neighborhood": lead.neighborhood,
            "Campaign": lead.campaign_name,
            "Status": lead.status or "New",
            "Scraped Date": lead.imported_at,
        }
        for lead in leads
    ]
    return pd.DataFrame(rows, columns=list(LEAD_COLUMNS))


def dnc_to_dataframe(entries: Iterable[DNCEntry]) -> pd.DataFrame:
    rows = [
        {
            "Phone": format_phone_for_excel(entry.original_phone),
            "Reason": entry.reason,
            "Source": entry.source,
            "Added Date": entry.added_at,
        }
        for entry in entries
    ]
    return pd.DataFrame(rows, columns=list(DNC_COLUMNS))


def instantly_to_dataframe(leads: Iterable[Lead], *, only_with_email: bool = True) -> pd.DataFrame:
    """Build the cold-email import sheet; custom1-5 carry category, address, rating, area, campaign."""

    rows = [
        {
            "email": lead.email or "",
            "first_name": extract_first_name(lead.name),
            "company_name": lead.name or "",
            "website": lead.website or "",
            "phone": format_phone_for_excel(lead.phone),
            "custom1": lead.category or lead.search_category or "",
            "custom2": lead.address or "",
            "custom3": lead.rating or "",
            "custom4": lead.neighborhood or "",
            "custom5": lead.campaign_name or "",
        }
        for lead in leads
        if lead.email or not only_with_email
    ]
    return pd.DataFrame(rows, columns=list(INSTANTLY_COLUMNS))


def export_leads(leads: Sequence[Lead], path: PathLike, **kwargs: Any) -> Path:
    return write_table(leads_to_dataframe(leads), path, sheet_name="Leads", **kwargs)


def export_dnc(entries: Iterable[DNCEntry] | Mapping[str, DNCEntry], path: PathLike, **kwargs: Any) -> Path:
    if isinstance(entries, Mapping):
        entries = entries.values()
    return write_table(dnc_to_dataframe(entries), path, sheet_name="DNC", **kwargs)


def export_instantly(
    leads: Sequence[Lead],
    path: PathLike,
    *,
    only_with_email: bool = True,
    **kwargs: Any,
) -> Path:
    return write_table(
        instantly_to_dataframe(leads, only_with_email=only_with_email),
        path,
        sheet_name="Instantly",
        **kwargs,
    )


def write_table(
    dataframe: pd.DataFrame,
    path: PathLike,
    *,
    sheet_name: str = "Sheet1",
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write ``dataframe`` as CSV (BOM, every field quoted) or as an Excel sheet."""

    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    exporter_kwargs = dict(exporter_kwargs or {})
    suffix = output_path.suffix.lower()
    protected = dataframe.apply(lambda column: column.map(protect_cell)) if not dataframe.empty else dataframe

    if suffix in {".csv", ".tsv"}:
        if suffix == ".tsv":
            exporter_kwargs.setdefault("sep", "\t")
        exporter_kwargs.setdefault("encoding", "utf-8-sig")
        exporter_kwargs.setdefault("quoting", csv.QUOTE_ALL)
        protected.to_csv(output_path, index=False, **exporter_kwargs)
        return output_path

    if suffix in {".xlsx", ".xlsm"}:
        engine = exporter_kwargs.pop("engine", None) or "openpyxl"
        protected.to_excel(output_path, index=False, sheet_name=sheet_name, engine=engine, **exporter_kwargs)
        return output_path

    raise ValueError(f"Unsupported export file extension: {suffix}")


def export_filename(prefix: str, label: Optional[str], date: str) -> str:
    """Return a download-friendly file name such as ``leads-plateau-2024-01-31.csv``."""

    safe_label = re.sub(r"[^a-z0-9]", "-", label or "all", flags=re.IGNORECASE)
    return f"{prefix}-{safe_label}-{date}.csv"


__all__: List[str] = [
    "BUSINESS_WORDS",
    "dnc_to_dataframe",
    "export_dnc",
    "export_filename",
    "export_instantly",
    "export_leads",
    "extract_first_name",
    "instantly_to_dataframe",
    "leads_to_dataframe",
    "protect_cell",
    "write_table",
]
