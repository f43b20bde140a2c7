"""Depot sheet merging and duplicate row detection."""

import re
from datetime import date, time
from typing import Any, Mapping, Set

_DEPOT_SUFFIX_RE = re.compile(r"[+-]D$")

DEDUPE_FIELDS = (
    "validityIn",
    "validityOut",
    "trainNoIn",
    "trainNoOut",
    "arrival",
    "departure",
    "vehicleNoIn",
    "vehicleNoOut",
)


def normalize_depot_code(sheet_name: str) -> str:
    """LTE+D and LTE-D both become LTE.D; other names pass through."""
    return _DEPOT_SUFFIX_RE.sub(".D", sheet_name)


def is_depot_sheet(sheet_name: str) -> bool:
    return bool(_DEPOT_SUFFIX_RE.search(sheet_name))


def _key_part(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value)


def dedupe_key(row: Mapping[str, Any]) -> str:
    return "|".join(_key_part(row.get(name)) for name in DEDUPE_FIELDS)


class Deduplicator:
    """Remembers depot rows already seen during one import."""

    def __init__(self):
        self._seen: Set[str] = set()
        self.duplicates = 0

    def is_duplicate(self, row: Mapping[str, Any]) -> bool:
        """Record the row and report whether an identical one came before."""
        key = dedupe_key(row)
        if key in self._seen:
            self.duplicates += 1
            return True
        self._seen.add(key)
        return False
