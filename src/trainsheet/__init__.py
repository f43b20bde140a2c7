"""trainsheet - import and normalization of railway movement exports."""

__version__ = "0.1.0"

from .models import (
    ArrivalRecord,
    DepartureRecord,
    Duty,
    ImportResult,
    StaffAssignment,
    StaffMember,
    Station,
    Stop,
    TabRecord,
    Train,
    Vehicle,
    VehicleWorking,
)
from .events import EventLog
from .field_mapper import FieldMapper, MappingsNotLoadedError
from .mapping_client import FieldMappingClient, load_field_mappings
from .workbook_importer import WorkbookImporter, WorkbookReadError
from .clip_importer import InMemoryTrackStore, JsonFileTrackStore, TabTextImporter

__all__ = [
    "WorkbookImporter",
    "WorkbookReadError",
    "TabTextImporter",
    "InMemoryTrackStore",
    "JsonFileTrackStore",
    "FieldMapper",
    "MappingsNotLoadedError",
    "FieldMappingClient",
    "load_field_mappings",
    "EventLog",
    "ArrivalRecord",
    "DepartureRecord",
    "Duty",
    "ImportResult",
    "StaffAssignment",
    "StaffMember",
    "Station",
    "Stop",
    "TabRecord",
    "Train",
    "Vehicle",
    "VehicleWorking",
]
