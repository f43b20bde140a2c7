"""Snapshot export of an imported model."""

import json
import logging
from dataclasses import asdict
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import pandas as pd

from .models import ImportResult

logger = logging.getLogger(__name__)

SNAPSHOT_FORMAT = "trainsheet-snapshot"
SNAPSHOT_VERSION = 1


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def build_snapshot(result: ImportResult, exported_at: Optional[datetime] = None) -> Dict[str, Any]:
    """Aggregate model as a plain dictionary ready for JSON encoding."""
    return {
        "format": SNAPSHOT_FORMAT,
        "version": SNAPSHOT_VERSION,
        "exported_at": (exported_at or datetime.now()).isoformat(),
        "file_name": result.file_name,
        "stations": [asdict(s) for s in result.stations],
        "vehicles": [asdict(v) for v in result.vehicles],
        "vehicle_workings": [asdict(w) for w in result.vehicle_workings],
        "staff": [asdict(s) for s in result.staff],
        "duties": [asdict(d) for d in result.duties],
        "trains": {day: [asdict(t) for t in trains] for day, trains in result.trains.items()},
    }


def snapshot_json(result: ImportResult, exported_at: Optional[datetime] = None) -> str:
    snapshot = build_snapshot(result, exported_at)
    return json.dumps(snapshot, default=_json_default, ensure_ascii=False, indent=2)


def write_snapshot(result: ImportResult, path: Optional[Union[str, Path]] = None) -> Path:
    """
    Write the snapshot to disk.

    Args:
        result: Imported model.
        path: Target file; defaults to trainsheet-export-YYYY-MM-DD.json in
            the working directory.

    Returns:
        The written path.
    """
    exported_at = datetime.now()
    if path is None:
        path = f"trainsheet-export-{exported_at.strftime('%Y-%m-%d')}.json"
    path = Path(path)
    with open(path, "w", encoding="utf-8") as f:
        f.write(snapshot_json(result, exported_at))
    logger.info(f"Exported {len(result.stations)} stations to {path}")
    return path


def records_frame(records: List[Mapping[str, Any]]) -> pd.DataFrame:
    """Raw import records as a DataFrame ordered by arrival, then departure."""
    frame = pd.DataFrame.from_records(list(records))
    if frame.empty:
        return frame
    sort_by = [c for c in ("arrivalDecimal", "departureDecimal") if c in frame.columns]
    if sort_by:
        frame = frame.sort_values(sort_by, na_position="last", kind="stable").reset_index(drop=True)
    return frame
