"""Workbook import pipeline for train movement exports."""

import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Mapping, Optional, Sequence, Union

from openpyxl import load_workbook

from .aggregator import Aggregator, train_sort_key
from .config import PLACEHOLDER_SHEET_NAME, REQUIRED_HEADERS
from .depots import Deduplicator, is_depot_sheet, normalize_depot_code
from .events import EventLog
from .field_mapper import FieldMapper, MappingsNotLoadedError
from .mapping_client import FieldMappingClient, load_field_mappings
from .models import ImportResult, StaffMember, Station, Train, Vehicle

logger = logging.getLogger(__name__)

WorkbookSource = Union[bytes, bytearray, BinaryIO, str, Path]

# Errors a malformed row can raise while being parsed
ROW_ERRORS = (ValueError, TypeError, AttributeError, IndexError, KeyError)


class WorkbookReadError(RuntimeError):
    """Raised when the workbook buffer cannot be opened."""


def _is_blank(values: Sequence[Any]) -> bool:
    return all(v is None or (isinstance(v, str) and not v.strip()) for v in values)


class WorkbookImporter:
    """
    Imports multi-sheet movement workbooks and holds the resulting model.

    Each import replaces the whole model. Imports must not overlap; the
    importer refuses to start while another import is running.
    """

    def __init__(
        self,
        field_mappings: Optional[Mapping[str, str]] = None,
        events: Optional[EventLog] = None,
        required_headers: Sequence[str] = REQUIRED_HEADERS,
    ):
        """
        Initialize the importer.

        Args:
            field_mappings: {raw header: canonical field}. May be loaded later
                with load_mappings().
            events: Diagnostic and notification sinks.
            required_headers: Raw headers a sheet must have to be imported.
        """
        self.field_mappings = dict(field_mappings) if field_mappings else None
        self.events = events or EventLog(component="workbookImporter")
        self.required_headers = tuple(required_headers)
        self.result = ImportResult()
        self.is_loading = False

    @property
    def has_field_mappings(self) -> bool:
        return bool(self.field_mappings)

    def load_mappings(
        self, client: Optional[FieldMappingClient] = None, use_fallback: bool = True
    ) -> bool:
        """Fetch field mappings; returns True if a mapping is now available."""
        self.field_mappings = load_field_mappings(
            client, use_fallback=use_fallback, events=self.events
        )
        return self.has_field_mappings

    def import_workbook(
        self,
        source: WorkbookSource,
        file_name: Optional[str] = None,
        strict: bool = False,
    ) -> ImportResult:
        """
        Import a workbook, replacing the current model.

        Args:
            source: Workbook bytes, a binary stream or a file path.
            file_name: Name recorded in the result; defaults to the path name.
            strict: Re-raise catastrophic failures instead of reporting them.

        Returns:
            The new ImportResult. On failure records_processed is 0 and
            error holds the message.
        """
        if self.is_loading:
            raise RuntimeError("An import is already in progress")

        if file_name is None and isinstance(source, (str, Path)):
            file_name = Path(source).name

        try:
            mapper = FieldMapper(self.field_mappings, self.required_headers)
        except MappingsNotLoadedError as e:
            self.events.error(
                "Import attempted without field mappings", action="import_without_mappings"
            )
            self.events.notify("Field mappings are not loaded yet. Try again.", "warning")
            return ImportResult(file_name=file_name, error=str(e))

        self.is_loading = True
        try:
            workbook = self._open(source)
            self.events.info(
                "Workbook read",
                action="excel_read",
                fileName=file_name,
                sheetsCount=len(workbook.worksheets),
            )
            self.clear()
            result = self._import_sheets(workbook, mapper)
        except Exception as e:
            self.clear()
            self.events.error(
                "Workbook import failed",
                exc_info=True,
                action="import_error",
                fileName=file_name,
                error=str(e),
            )
            self.events.notify(f"Import failed: {e}", "error")
            if strict:
                raise
            self.result = ImportResult(file_name=file_name, error=str(e))
            return self.result
        finally:
            self.is_loading = False

        result.file_name = file_name
        result.imported_at = datetime.now()
        self.result = result

        self.events.info(
            "Workbook imported",
            action="import_success",
            fileName=file_name,
            stationsCount=len(result.stations),
            vehiclesCount=len(result.vehicles),
            staffCount=len(result.staff),
            trainsCount=sum(len(t) for t in result.trains.values()),
            recordsCount=result.records_processed,
            skippedSheets=result.skipped_sheets,
            duplicatesSkipped=result.duplicates_skipped,
            failedRows=result.failed_rows,
        )
        self.events.notify(
            f"Imported {result.records_processed} records, "
            f"{len(result.stations)} stations, {len(result.vehicles)} vehicles",
            "success",
        )
        return result

    @staticmethod
    def _open(source: WorkbookSource):
        try:
            if isinstance(source, (bytes, bytearray)):
                source = io.BytesIO(source)
            elif hasattr(source, "seek"):
                source.seek(0)
            return load_workbook(source, data_only=True, rich_text=True)
        except Exception as e:
            raise WorkbookReadError(f"Cannot read workbook: {e}") from e

    def _import_sheets(self, workbook, mapper: FieldMapper) -> ImportResult:
        aggregator = Aggregator()
        deduplicator = Deduplicator()
        result = ImportResult()

        for index, worksheet in enumerate(workbook.worksheets):
            sheet_name = worksheet.title
            rows = list(worksheet.iter_rows(values_only=True))

            if index == 0 and sheet_name == PLACEHOLDER_SHEET_NAME and len(rows) <= 1:
                logger.debug(f"Skipping placeholder sheet {sheet_name}")
                result.skipped_sheets += 1
                continue
            if len(rows) < 2:
                logger.debug(f"Skipping sheet {sheet_name} without data rows")
                result.skipped_sheets += 1
                continue

            headers = mapper.clean_headers(rows[0])
            missing = mapper.missing_required(headers)
            if missing:
                self.events.warning(
                    f"Sheet {sheet_name}: unsupported format",
                    action="sheet_skipped",
                    sheet=sheet_name,
                    missingFields=missing,
                )
                result.skipped_sheets += 1
                continue

            station_code = normalize_depot_code(sheet_name)
            depot = is_depot_sheet(sheet_name)

            for row_number, values in enumerate(rows[1:], start=2):
                if _is_blank(values):
                    continue
                try:
                    row = mapper.map_row(headers, values)
                    if depot and deduplicator.is_duplicate(row):
                        continue
                    aggregator.add_row(row, station_code, sheet_name, row_number)
                except ROW_ERRORS as e:
                    result.failed_rows += 1
                    self.events.error(
                        f"Sheet {sheet_name}: row {row_number} skipped",
                        exc_info=True,
                        action="row_error",
                        sheet=sheet_name,
                        rowNumber=row_number,
                        row=[str(v) for v in values],
                        error=str(e),
                    )

            if station_code not in result.sheets:
                result.sheets.append(station_code)

        result.duplicates_skipped = deduplicator.duplicates
        if deduplicator.duplicates:
            self.events.info(
                "Duplicate depot rows skipped",
                action="duplicates_skipped",
                count=deduplicator.duplicates,
            )
        return aggregator.build(result)

    def clear(self) -> None:
        """Drop all imported data."""
        self.result = ImportResult()

    @property
    def stations(self) -> List[Station]:
        return self.result.stations

    @property
    def available_sheets(self) -> List[str]:
        return sorted(s.code for s in self.result.stations)

    @property
    def available_dates(self) -> List[str]:
        dates = set()
        for station in self.result.stations:
            dates.update(r.date for r in station.arrivals if r.date)
            dates.update(r.date for r in station.departures if r.date)
        return sorted(dates)

    @property
    def all_train_numbers(self) -> List[str]:
        numbers = set(t.no for day in self.result.trains.values() for t in day)
        return sorted(numbers, key=train_sort_key)

    def trains_for_date(self, date: str) -> List[Train]:
        return self.result.trains.get(date, [])

    def get_train(self, train_no: str, date: str) -> Optional[Train]:
        return next((t for t in self.trains_for_date(date) if t.no == str(train_no)), None)

    def get_station_by_code(self, code: str) -> Optional[Station]:
        return next((s for s in self.result.stations if s.code == code), None)

    def get_station(self, code: str) -> Station:
        """
        Get a station by code.

        Raises:
            ValueError: If no station has this code.
        """
        station = self.get_station_by_code(code)
        if station is None:
            raise ValueError(f"Station {code} not found")
        return station

    def get_vehicle_by_name(self, name: str) -> Optional[Vehicle]:
        return next((v for v in self.result.vehicles if v.name == name), None)

    def get_staff_by_id(self, personnel_id: str) -> Optional[StaffMember]:
        return next((s for s in self.result.staff if s.personnel_id == personnel_id), None)

    def filtered_records(
        self, sheet: Optional[str] = None, date: Optional[str] = None
    ) -> List[Station]:
        """Stations (optionally one) with arrivals/departures limited to a date."""
        filtered = []
        for station in self.result.stations:
            if sheet and station.code != sheet:
                continue
            filtered.append(
                Station(
                    code=station.code,
                    network_point_name=station.network_point_name,
                    arrivals=[r for r in station.arrivals if not date or r.date == date],
                    departures=[r for r in station.departures if not date or r.date == date],
                )
            )
        return filtered

    def update_record(self, record_id: str, **changes: Any) -> bool:
        """
        Update an arrival or departure record in place, e.g. target_track="3".

        Returns:
            True if a record with this ID was found.
        """
        if not record_id or not changes:
            return False
        for station in self.result.stations:
            for record in station.arrivals + station.departures:
                if record.id == record_id:
                    for name, value in changes.items():
                        if not hasattr(record, name):
                            raise ValueError(f"Unknown record field {name}")
                        setattr(record, name, value)
                    return True
        return False

    def statistics(self) -> Dict[str, int]:
        result = self.result
        return {
            "stations": len(result.stations),
            "vehicles": len(result.vehicles),
            "vehicleWorkings": len(result.vehicle_workings),
            "staff": len(result.staff),
            "duties": len(result.duties),
            "arrivals": sum(len(s.arrivals) for s in result.stations),
            "departures": sum(len(s.departures) for s in result.stations),
            "records": len(result.records),
            "trains": sum(len(t) for t in result.trains.values()),
            "dates": len(self.available_dates),
        }
