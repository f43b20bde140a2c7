"""Spreadsheet cell value normalization."""

from datetime import date, datetime, time
from typing import Any, Optional, Union

from openpyxl.cell.rich_text import CellRichText, TextBlock

CellValue = Optional[Union[str, datetime, date, time]]


def normalize_cell(value: Any) -> CellValue:
    """
    Reduce a raw cell value to None, a native date/time, or a string.

    Formula wrappers are replaced by their computed result and rich text by the
    concatenation of its runs. Integral floats lose their ".0" so train numbers
    stored as numbers read the same as typed ones.
    """
    if value is None:
        return None
    if isinstance(value, (datetime, date, time)):
        return value
    if hasattr(value, "result"):
        return normalize_cell(value.result)
    if isinstance(value, CellRichText):
        return "".join(run.text if isinstance(run, TextBlock) else str(run) for run in value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
