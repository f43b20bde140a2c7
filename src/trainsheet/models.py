"""Data models for imported train movement data."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime


@dataclass
class StaffAssignment:
    """One crew member as listed on a single row and direction."""
    name: str
    personnel_id: Optional[str] = None
    phone: Optional[str] = None
    occupation: Optional[str] = None  # "M" machinist, "K" conductor
    duty: str = ""
    duty_starting_time: Optional[datetime] = None
    duty_end_time: Optional[datetime] = None


@dataclass
class _MovementRecord:
    id: str
    row_id: int
    train_no: Optional[str]
    date: Optional[str]  # Validity date, YYYY-MM-DD
    time: Optional[datetime]
    decimal_minutes: Optional[int]
    planned: Optional[str]  # HH:MM
    vehicle: Optional[str]
    vehicle_working: Optional[str]
    staff: List[StaffAssignment] = field(default_factory=list)
    driver_personnel_number: Optional[str] = None
    linked_train_no: Optional[str] = None  # Train number of the opposite direction
    starting_location: Optional[str] = None
    end_location: Optional[str] = None


@dataclass
class ArrivalRecord(_MovementRecord):
    """An inbound train or vehicle at a station."""
    target_track: Optional[str] = None


@dataclass
class DepartureRecord(_MovementRecord):
    """An outbound train or vehicle at a station."""
    starting_track: Optional[str] = None


@dataclass
class Station:
    """A network point (one worksheet, depot sheets merged)."""
    code: str
    network_point_name: str
    arrivals: List[ArrivalRecord] = field(default_factory=list)
    departures: List[DepartureRecord] = field(default_factory=list)


@dataclass
class Vehicle:
    """Rolling stock unit under its derived name."""
    name: str
    vehicle_no: List[str] = field(default_factory=list)
    vehicle_reg_no: List[str] = field(default_factory=list)
    vehicle_workings: List[str] = field(default_factory=list)


@dataclass
class VehicleWorking:
    working_id: str
    starting_time: Optional[datetime]
    starting_location: Optional[str]
    ending_time: Optional[datetime]
    end_location: Optional[str]


@dataclass
class StaffMember:
    """Aggregated crew member, keyed by personnel ID."""
    personnel_id: str
    occupation: Optional[str]
    name: str
    phone: Optional[str]
    duties: List[str] = field(default_factory=list)  # "YYYY-MM-DD:CODE"
    dates: List[str] = field(default_factory=list)


@dataclass
class Duty:
    duty_code: str
    date: Optional[str]
    starting_time: Optional[datetime]
    end_time: Optional[datetime]
    trains: List[str] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.date}:{self.duty_code}"


@dataclass
class Stop:
    station: str  # Network point name
    code: str
    arrival: Optional[datetime] = None
    departure: Optional[datetime] = None


@dataclass
class Train:
    """A train on one operating date with its stops and crew."""
    no: str
    starting_location: Optional[str] = None
    end_location: Optional[str] = None
    staff: List[StaffAssignment] = field(default_factory=list)
    stops: List[Stop] = field(default_factory=list)


@dataclass
class ImportResult:
    """Complete replacement model produced by one workbook import."""
    records_processed: int = 0
    stations: List[Station] = field(default_factory=list)
    vehicles: List[Vehicle] = field(default_factory=list)
    vehicle_workings: List[VehicleWorking] = field(default_factory=list)
    staff: List[StaffMember] = field(default_factory=list)
    duties: List[Duty] = field(default_factory=list)
    trains: Dict[str, List[Train]] = field(default_factory=dict)  # {date: [Train, ...]}
    records: List[Dict[str, Any]] = field(default_factory=list)
    sheets: List[str] = field(default_factory=list)
    skipped_sheets: int = 0
    duplicates_skipped: int = 0
    failed_rows: int = 0
    file_name: Optional[str] = None
    imported_at: Optional[datetime] = None
    error: Optional[str] = None


@dataclass
class TabRecord:
    """One movement row pasted from a tab-delimited export."""
    id: str
    fields: Dict[str, str]
    departure_datetime: Optional[datetime] = None
    arrival_datetime: Optional[datetime] = None
    departure_decimal: Optional[int] = None
    arrival_decimal: Optional[int] = None
    target_track: Optional[str] = None
    starting_track: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def starting_location(self) -> Optional[str]:
        return self.fields.get("startingLocation") or self.fields.get("departureDepot") or None

    @property
    def end_location(self) -> Optional[str]:
        return self.fields.get("endLocation") or self.fields.get("arrivalDepot") or None

    @property
    def vehicle(self) -> Optional[str]:
        return self.fields.get("vehicle") or self.fields.get("vehicleName") or None
