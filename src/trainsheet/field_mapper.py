"""Header-driven mapping of raw spreadsheet rows to canonical fields."""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .cells import CellValue, normalize_cell
from .config import REQUIRED_HEADERS

logger = logging.getLogger(__name__)


class MappingsNotLoadedError(RuntimeError):
    """Raised when an import is attempted without a field mapping."""


class FieldMapper:
    """Translates human-authored column headers into canonical field names."""

    def __init__(
        self,
        mappings: Optional[Mapping[str, str]],
        required_headers: Sequence[str] = REQUIRED_HEADERS,
    ):
        """
        Initialize the mapper.

        Args:
            mappings: Flat {raw header: canonical field} dictionary.
            required_headers: Raw headers every sheet must carry.

        Raises:
            MappingsNotLoadedError: If the mapping is missing or empty.
        """
        if not mappings:
            raise MappingsNotLoadedError("Field mappings are not loaded")
        self.mappings: Dict[str, str] = dict(mappings)
        self.required_headers = tuple(required_headers)

    @staticmethod
    def clean_headers(raw_headers: Sequence[Any]) -> List[Optional[str]]:
        """Strip header cells; empty ones become None."""
        headers = []
        for value in raw_headers:
            value = normalize_cell(value)
            text = str(value).strip() if value is not None else ""
            headers.append(text or None)
        return headers

    def missing_required(self, headers: Sequence[Optional[str]]) -> List[str]:
        """Return the mandatory headers absent from a header row."""
        present = set(h for h in headers if h)
        return [h for h in self.required_headers if h not in present]

    def map_row(
        self, headers: Sequence[Optional[str]], values: Sequence[Any]
    ) -> Dict[str, CellValue]:
        """
        Build a canonical row from one data row.

        Cells under unmapped or empty headers are dropped. Every kept value has
        already been through normalize_cell().
        """
        row: Dict[str, CellValue] = {}
        for header, value in zip(headers, values):
            if not header:
                continue
            field_name = self.mappings.get(header)
            if field_name:
                row[field_name] = normalize_cell(value)
        return row

    def validate_headers(self, headers: Sequence[Optional[str]]) -> Dict[str, Any]:
        """
        Compare a header row against every known mapping.

        Returns:
            {"valid": bool, "missing": [...], "extra": [...]}
        """
        header_set = set(h for h in headers if h)
        missing = [h for h in self.mappings if h not in header_set]
        extra = [h for h in headers if h and h not in self.mappings]
        return {"valid": not missing, "missing": missing, "extra": extra}
