"""Utilities for loading business lists from spreadsheets."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, List, Mapping, MutableMapping, Optional, Sequence, Union

import pandas as pd

from ..models import BusinessListing

PathLike = Union[str, Path]

_FIELD_SYNONYMS: Mapping[str, Sequence[str]] = {
    "id": ("id", "place_id", "record_id"),
    "name": ("name", "company", "company_name", "business", "business_name", "title"),
    "phone": ("phone", "phone_number", "telephone", "tel"),
    "address": ("address", "street_address", "full_address"),
    "website": ("website", "url", "site", "domain"),
    "rating": ("rating", "stars"),
    "reviews_count": ("reviews_count", "reviewscount", "reviews", "review_count"),
    "category": ("category", "industry", "type"),
    "neighborhood": ("neighborhood", "neighbourhood", "area"),
}


class UnsupportedFileTypeError(ValueError):
    """Raised when an unsupported file format is passed to the loader."""


def load_businesses(
    path: PathLike,
    *,
    column_mapping: Optional[Mapping[str, str]] = None,
    sheet_name: Union[str, int, None] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> List[BusinessListing]:
    """Load business records from a spreadsheet.

    Parameters
    ----------
    path:
        Path to the CSV/TSV/XLSX file to be loaded.
    column_mapping:
        Optional mapping of :class:`BusinessListing` field names to column
        names. Fields that are not mapped are matched against common column
        name synonyms, case-insensitively.
    sheet_name:
        Sheet selector passed to :func:`pandas.read_excel` when loading an Excel
        file. Ignored for CSV files.
    loader_kwargs:
        Extra keyword arguments forwarded to :func:`pandas.read_csv` or
        :func:`pandas.read_excel`.
    """

    dataframe = _read_dataframe(path, sheet_name=sheet_name, loader_kwargs=loader_kwargs)
    mapping = dict(column_mapping or {})
    resolved = {field: _resolve_column(field, dataframe.columns, mapping) for field in _FIELD_SYNONYMS}
    listings: List[BusinessListing] = []

    for _, row in dataframe.iterrows():
        if _row_is_empty(row):
            continue
        listings.append(_row_to_listing(row, resolved))

    return listings


def _read_dataframe(
    path: PathLike,
    *,
    sheet_name: Union[str, int, None] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> pd.DataFrame:
    loader_kwargs = dict(loader_kwargs or {})
    path_obj = Path(path)
    suffix = path_obj.suffix.lower()

    if suffix in {".csv", ".tsv"}:
        if suffix == ".tsv":
            loader_kwargs.setdefault("sep", "\t")
        # Phone numbers must stay text; a numeric column would drop leading characters.
        loader_kwargs.setdefault("dtype", str)
        loader_kwargs.setdefault("encoding", "utf-8-sig")
        return pd.read_csv(path_obj, **loader_kwargs)

    if suffix in {".xlsx", ".xlsm"}:
        loader_kwargs.setdefault("dtype", str)
        engine = loader_kwargs.pop("engine", None) or "openpyxl"
        return pd.read_excel(path_obj, sheet_name=sheet_name, engine=engine, **loader_kwargs)

    raise UnsupportedFileTypeError(f"Unsupported file extension: {path_obj.suffix}")


def _row_is_empty(row: pd.Series) -> bool:
    return all(pd.isna(value) or (isinstance(value, str) and not value.strip()) for value in row.values)


def _resolve_column(field: str, available_columns: Iterable[str], mapping: Mapping[str, str]) -> Optional[str]:
    if field in mapping:
        return mapping[field]

    columns = list(available_columns)
    for synonym in _FIELD_SYNONYMS.get(field, (field,)):
        for column in columns:
            normalised = str(column).strip().lower().replace(" ", "_")
            if normalised == synonym:
                return column
    return None


def _row_to_listing(row: pd.Series, columns: Mapping[str, Optional[str]]) -> BusinessListing:
    values = {field: _extract(row, column) for field, column in columns.items()}
    return BusinessListing(
        id=values["id"],
        name=values["name"],
        phone=values["phone"],
        address=values["address"],
        website=values["website"],
        rating=_to_float(values["rating"]),
        reviews_count=_to_int(values["reviews_count"]),
        category=values["category"],
        neighborhood=values["neighborhood"],
    )


def _extract(row: pd.Series, column: Optional[str]) -> Optional[str]:
    if column is None or column not in row:
        return None
    return _clean_text(row[column])


def _clean_text(value: Any) -> Optional[str]:
    if pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def _to_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value.replace(",", "."))
    except ValueError:
        return None


def _to_int(value: Optional[str]) -> Optional[int]:
    number = _to_float(value)
    return int(number) if number is not None else None


__all__ = ["load_businesses", "UnsupportedFileTypeError"]
