"""Spreadsheet import and export helpers."""

from .exporters import (  # noqa: F401
    export_dnc,
    export_filename,
    export_instantly,
    export_leads,
    extract_first_name,
    leads_to_dataframe,
)
from .loaders import UnsupportedFileTypeError, load_businesses  # noqa: F401

__all__ = [
    "UnsupportedFileTypeError",
    "export_dnc",
    "export_filename",
    "export_instantly",
    "export_leads",
    "extract_first_name",
    "leads_to_dataframe",
    "load_businesses",
]
