"""Clipboard (tab-delimited) import of locomotive movements."""

import csv
import io
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .config import TAB_TEXT_HEADERS, TAB_TEXT_REQUIRED_HEADERS, TRACK_ASSIGNMENTS_PATH
from .events import EventLog
from .models import TabRecord
from .timeparse import is_time_in_range, time_to_decimal

logger = logging.getLogger(__name__)

TrackAssignments = Dict[str, Dict[str, Optional[str]]]  # record id -> {"targetTrack": ...}

# "2025-12-16 8:48", "2025-12-16 08:48:00"
_INSTANT_FORMATS = ("%Y-%m-%d %H:%M", "%Y-%m-%d %H:%M:%S")


class InMemoryTrackStore:
    """Track assignment store that lives as long as the process."""

    def __init__(self, assignments: Optional[TrackAssignments] = None):
        self._assignments: TrackAssignments = dict(assignments or {})

    def save(self, assignments: TrackAssignments) -> None:
        self._assignments = {k: dict(v) for k, v in assignments.items()}

    def load(self) -> TrackAssignments:
        return {k: dict(v) for k, v in self._assignments.items()}


class JsonFileTrackStore:
    """Track assignment store persisted as a JSON file."""

    def __init__(self, path: Union[str, Path] = TRACK_ASSIGNMENTS_PATH):
        self.path = Path(path)

    def save(self, assignments: TrackAssignments) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(assignments, f, ensure_ascii=False, indent=2)

    def load(self) -> TrackAssignments:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}


def generate_record_id(fields: Mapping[str, str]) -> str:
    """Working designation + departure date + trip number, dashes removed."""
    parts = [
        fields.get("vehicleWorkingDesignation") or "",
        fields.get("departureDate") or fields.get("date") or "",
        fields.get("departureTripNumber")
        or fields.get("departureTrainNumber")
        or fields.get("departureNetworkTrainNumber")
        or "",
    ]
    return "".join(parts).replace("-", "")


def _combine(day: Optional[str], planned: Optional[str]) -> Optional[datetime]:
    if not day or not planned:
        return None
    for fmt in _INSTANT_FORMATS:
        try:
            return datetime.strptime(f"{day} {planned}", fmt)
        except ValueError:
            continue
    return None


def parse_tab_text(
    text: str,
    depot_seed: Iterable[str] = (),
    date_seed: Iterable[str] = (),
    headers_map: Mapping[str, str] = TAB_TEXT_HEADERS,
    required_headers: Sequence[str] = TAB_TEXT_REQUIRED_HEADERS,
) -> Tuple[List[TabRecord], List[str], List[str]]:
    """
    Parse a pasted tab-delimited block.

    Args:
        text: First line headers, one movement per following line.
        depot_seed: Depot codes known from earlier imports.
        date_seed: Dates known from earlier imports.

    Returns:
        (records, depot list, sorted date list). Records is empty when a
        required header is missing.
    """
    depots = list(dict.fromkeys(d for d in depot_seed if d))
    dates = set(date_seed)

    reader = csv.reader(io.StringIO(text), delimiter="\t", quoting=csv.QUOTE_NONE)
    try:
        headers = [h.strip() for h in next(reader)]
    except StopIteration:
        return [], depots, sorted(dates)

    missing = [h for h in required_headers if h not in headers]
    if missing:
        logger.warning(f"Tab text rejected, missing headers: {missing}")
        return [], depots, sorted(dates)

    records = []
    for line_number, values in enumerate(reader, start=2):
        if not values or not "".join(values).strip():
            continue
        if len(values) != len(headers):
            logger.debug(f"Line {line_number}: {len(values)} columns, expected {len(headers)}")
            continue

        fields = {}
        for header, value in zip(headers, values):
            name = headers_map.get(header)
            if name:
                fields[name] = value.strip()

        departure_date = fields.get("departureDate") or fields.get("date")
        arrival_date = fields.get("arrivalDate") or fields.get("date")
        departure = _combine(departure_date, fields.get("departurePlanned"))
        arrival = _combine(arrival_date, fields.get("arrivalPlanned"))
        if departure is None and arrival is None:
            continue

        record = TabRecord(
            id=generate_record_id(fields),
            fields=fields,
            departure_datetime=departure,
            arrival_datetime=arrival,
            departure_decimal=time_to_decimal(departure),
            arrival_decimal=time_to_decimal(arrival),
        )
        if arrival is not None:
            dates.add(arrival_date)
        if departure is not None:
            dates.add(departure_date)
        for depot in (record.starting_location, record.end_location):
            if depot and depot not in depots:
                depots.append(depot)
        records.append(record)

    return records, depots, sorted(dates)


class TabTextImporter:
    """
    Holds clipboard-imported records and keeps user track assignments across
    re-imports of the same data.
    """

    def __init__(self, track_store=None, events: Optional[EventLog] = None):
        """
        Initialize the importer.

        Args:
            track_store: Object with save(assignments) and load(); defaults to
                an in-memory store.
            events: Diagnostic and notification sinks.
        """
        self.track_store = track_store if track_store is not None else InMemoryTrackStore()
        self.events = events or EventLog(component="clipImporter")
        self.records: List[TabRecord] = []
        self.depot_list: List[str] = []
        self.date_list: List[str] = []
        self.last_imported: Optional[datetime] = None

    @property
    def available_depots(self) -> List[str]:
        return sorted(self.depot_list)

    @property
    def available_dates(self) -> List[str]:
        return sorted(self.date_list)

    def import_text(self, text: str) -> int:
        """
        Replace the records with a pasted block.

        Returns:
            Number of imported records (0 when the block is rejected).
        """
        if not text or not isinstance(text, str):
            return 0

        try:
            saved = self._save_track_assignments()
            self.records = []

            rows, self.depot_list, self.date_list = parse_tab_text(
                text, self.depot_list, self.date_list
            )
            if not rows:
                self.events.warning(
                    "Tab text import produced no records", action="clipboard_import_empty"
                )
                self.events.notify("Import failed: unsupported data format", "warning")
                return 0

            self.add_records(rows)
            self._restore_track_assignments(saved)
            self.last_imported = datetime.now()

            self.events.info(
                "Clipboard data imported", action="clipboard_import", recordCount=len(rows)
            )
            return len(rows)

        except Exception as e:
            self.events.error(
                "Clipboard import failed",
                exc_info=True,
                action="clipboard_import_error",
                error=str(e),
            )
            self.events.notify(f"Import failed: {e}", "error")
            return 0

    def _save_track_assignments(self) -> Optional[TrackAssignments]:
        """
        Snapshot the current assignments and write them to the store.

        Returns:
            The snapshot, or None when no records are loaded yet (the stored
            snapshot is then left as it is).
        """
        if not self.records:
            return None
        assignments = {
            record.id: {"targetTrack": record.target_track}
            for record in self.records
            if record.target_track
        }
        # Written even when empty: a cleared track must not be restored
        try:
            self.track_store.save(assignments)
            self.events.info(
                "Track assignments saved",
                action="save_track_assignments",
                count=len(assignments),
            )
        except (OSError, TypeError, ValueError) as e:
            self.events.error(
                "Track assignments could not be saved",
                action="save_track_assignments_error",
                error=str(e),
            )
        return assignments

    def _restore_track_assignments(self, saved: Optional[TrackAssignments]) -> int:
        if saved is not None:
            assignments = saved
        else:
            try:
                assignments = self.track_store.load()
            except (OSError, ValueError) as e:
                self.events.error(
                    "Track assignments could not be read",
                    action="load_track_assignments_error",
                    error=str(e),
                )
                assignments = {}
        if not assignments:
            return 0

        restored = 0
        for record in self.records:
            track = (assignments.get(record.id) or {}).get("targetTrack")
            if track:
                record.target_track = track
                restored += 1

        if restored:
            self.events.info(
                "Track assignments restored", action="restore_track_assignments", total=restored
            )
            self.events.notify(f"Restored {restored} track assignments", "info")
        return restored

    def add_records(self, records: Iterable[TabRecord]) -> None:
        for record in records:
            self.add_record(record)

    def add_record(self, record: TabRecord) -> bool:
        """Insert a record, or merge it into the one with the same ID."""
        if not isinstance(record, TabRecord):
            return False
        if not record.id:
            record.id = generate_record_id(record.fields)

        now = datetime.now()
        existing = self.get_record(record.id)
        if existing is None:
            record.created_at = record.created_at or now
            record.updated_at = now
            self.records.append(record)
            return True

        existing.fields.update(record.fields)
        for name in (
            "departure_datetime",
            "arrival_datetime",
            "departure_decimal",
            "arrival_decimal",
        ):
            value = getattr(record, name)
            if value is not None:
                setattr(existing, name, value)
        existing.updated_at = now
        return True

    def get_record(self, record_id: str) -> Optional[TabRecord]:
        return next((r for r in self.records if r.id == record_id), None)

    def update_record(self, record_id: str, **changes: Any) -> bool:
        """
        Change record attributes (target_track, starting_track, ...); unknown
        names are stored as fields.
        """
        record = self.get_record(record_id)
        if record is None:
            return False
        for name, value in changes.items():
            if name in ("id", "fields", "created_at", "updated_at") or not hasattr(record, name):
                record.fields[name] = value
            else:
                setattr(record, name, value)
        record.updated_at = datetime.now()
        self.events.info(
            "Record updated", action="update_record", recordId=record_id, changes=list(changes)
        )
        return True

    def delete_record(self, record_id: str) -> bool:
        record = self.get_record(record_id)
        if record is None:
            return False
        self.records.remove(record)
        self.events.info("Record deleted", action="delete_record", recordId=record_id)
        return True

    def filtered_records(
        self, depot: str, date: str, time_range: str = "all"
    ) -> Dict[str, List[TabRecord]]:
        """
        Arrivals at and departures from a depot, sorted by decimal time.

        Returns:
            {"intime_arrivals", "intime_departures", "arrivals", "departures"}
            where the intime lists only hold movements inside the time range
            of the selected date.
        """
        result = {"intime_arrivals": [], "intime_departures": [], "arrivals": [], "departures": []}
        for record in self.records:
            if record.end_location == depot:
                result["arrivals"].append(record)
                if is_time_in_range(record.arrival_decimal, time_range, date):
                    result["intime_arrivals"].append(record)
            if record.starting_location == depot:
                result["departures"].append(record)
                if is_time_in_range(record.departure_decimal, time_range, date):
                    result["intime_departures"].append(record)

        for key in ("intime_arrivals", "arrivals"):
            result[key].sort(key=lambda r: _sort_value(r.arrival_decimal))
        for key in ("intime_departures", "departures"):
            result[key].sort(key=lambda r: _sort_value(r.departure_decimal))
        return result

    def vehicle_pairs(self, depot: str) -> List[Dict[str, Any]]:
        """
        Pair each vehicle's arrival at a depot with its next departure.

        Departures with no earlier arrival are returned with arrival None.
        """
        groups: Dict[str, Dict[str, List[TabRecord]]] = {}
        for record in self.records:
            vehicle = record.vehicle
            if not vehicle:
                continue
            if record.starting_location != depot and record.end_location != depot:
                continue
            group = groups.setdefault(vehicle, {"arrivals": [], "departures": []})
            if record.end_location == depot:
                group["arrivals"].append(record)
            if record.starting_location == depot:
                group["departures"].append(record)

        pairs = []
        for vehicle, group in groups.items():
            arrivals = sorted(group["arrivals"], key=lambda r: _sort_value(r.arrival_decimal))
            departures = sorted(group["departures"], key=lambda r: _sort_value(r.departure_decimal))
            for arrival in arrivals:
                departure = next(
                    (
                        d for d in departures
                        if d.departure_decimal is not None
                        and arrival.arrival_decimal is not None
                        and d.departure_decimal > arrival.arrival_decimal
                    ),
                    None,
                )
                if departure is not None:
                    departures.remove(departure)
                pairs.append({"vehicle": vehicle, "arrival": arrival, "departure": departure})
            for departure in departures:
                pairs.append({"vehicle": vehicle, "arrival": None, "departure": departure})

        pairs.sort(key=lambda p: _sort_value(
            p["arrival"].arrival_decimal if p["arrival"] else p["departure"].departure_decimal
        ))
        return pairs


def _sort_value(decimal: Optional[int]) -> float:
    return decimal if decimal is not None else float("inf")
