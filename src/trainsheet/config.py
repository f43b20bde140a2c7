"""Configuration constants for the trainsheet importers."""

import os
from datetime import datetime
from pathlib import Path

# Field mapping service (flat {raw header: canonical field} JSON)
FIELD_MAPPINGS_URL = os.environ.get(
    "TRAINSHEET_FIELD_MAPPINGS_URL",
    "http://localhost:8080/api/antras-field-mappings/map",
)
FIELD_MAPPINGS_TIMEOUT = 10  # seconds

# Used when the mapping service is unreachable
DEFAULT_FIELD_MAPPINGS = {
    "Network point name": "networkPointName",
    "Technical vehicle type.in": "technicalVehicleTypeIn",
    "Technical vehicle type.out": "technicalVehicleTypeOut",
    "Vehicle no.in": "vehicleNoIn",
    "Vehicle no.out": "vehicleNoOut",
    "Train No.in": "trainNoIn",
    "Train No.out": "trainNoOut",
    "Arrival": "arrival",
    "Departure": "departure",
    "Duty.in": "dutyIn",
    "Duty.out": "dutyOut",
    "Driver.in": "driverIn",
    "Phone.in": "phoneIn",
    "Driver.out": "driverOut",
    "Phone.out": "phoneOut",
    "Driver.PersonnelNumber.in": "driverPersonnelNumberIn",
    "Driver.PersonnelNumber.out": "driverPersonnelNumberOut",
    "Duty.StartingTime.in": "dutyStartingTimeIn",
    "Duty.StartingTime.out": "dutyStartingTimeOut",
    "Duty.EndTime.in": "dutyEndTimeIn",
    "Duty.EndTime.out": "dutyEndTimeOut",
    "Validity.in": "validityIn",
    "Validity.out": "validityOut",
    "Starting location.in": "startingLocationIn",
    "Starting location.out": "startingLocationOut",
    "Starting time.in": "startingTimeIn",
    "Starting time.out": "startingTimeOut",
    "End location.in": "endLocationIn",
    "End location.out": "endLocationOut",
    "Ending time.in": "endingTimeIn",
    "Ending time.out": "endingTimeOut",
    "Vehicle working.in": "vehicleWorkingIn",
    "Vehicle working.out": "vehicleWorkingOut",
    "Vehicle reg. no.in": "vehicleRegNoIn",
    "Vehicle reg. no.out": "vehicleRegNoOut",
    "Train length.in": "trainLengthIn",
    "Train length.out": "trainLengthOut",
}

# A sheet missing any of these raw headers is skipped
REQUIRED_HEADERS = ("Network point name", "Arrival", "Departure")

# Empty first sheet that spreadsheet exporters add by default
PLACEHOLDER_SHEET_NAME = "Sheet1"

# Decimal time is whole minutes since this instant
DECIMAL_EPOCH = datetime(2025, 1, 1)

# Day zero of spreadsheet serial dates
SPREADSHEET_EPOCH = datetime(1899, 12, 30)

# Clipboard (tab-delimited) export: raw header -> canonical field
TAB_TEXT_HEADERS = {
    "Vehicle working designation": "vehicleWorkingDesignation",
    "Vehicle": "vehicleName",
    "Date": "date",
    "Departure date": "departureDate",
    "Departure planned": "departurePlanned",
    "Departure train number": "departureTrainNumber",
    "Departure trip number": "departureTripNumber",
    "Starting location": "startingLocation",
    "Arrival date": "arrivalDate",
    "Arrival planned": "arrivalPlanned",
    "Arrival train number": "arrivalTrainNumber",
    "End location": "endLocation",
    "Employee 1 departure": "departureEmployee1",
    "Employee 1 arrival": "arrivalEmployee1",
}
TAB_TEXT_REQUIRED_HEADERS = tuple(TAB_TEXT_HEADERS)

TRACK_ASSIGNMENTS_PATH = Path(
    os.environ.get(
        "TRAINSHEET_TRACK_STORE",
        str(Path.home() / ".trainsheet" / "track_assignments.json"),
    )
)

# (start minute, end minute) offsets from midnight of the selected date
TIME_RANGES = {
    "day": (6 * 60, 20 * 60),
    "night": (18 * 60, 32 * 60),
    "all": (0, 24 * 60),
}
