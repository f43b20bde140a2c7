"""Folds per-row arrival/departure facts into stations, vehicles, staff and trains."""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from .models import (
    ArrivalRecord,
    DepartureRecord,
    Duty,
    ImportResult,
    StaffAssignment,
    StaffMember,
    Station,
    Stop,
    Train,
    Vehicle,
    VehicleWorking,
)
from .staff import extract_staff
from .timeparse import (
    base_date_for,
    format_planned,
    parse_time_with_offset,
    parse_validity_date,
    time_to_decimal,
)
from .vehicles import resolve_vehicle_name

logger = logging.getLogger(__name__)


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def train_sort_key(train_no: str):
    """Numeric train numbers first, in numeric order, then the rest alphabetically."""
    try:
        return (0, int(train_no), "")
    except (TypeError, ValueError):
        return (1, 0, str(train_no))


@dataclass
class _Direction:
    """Everything derived for one direction (In or Out) of a row."""
    suffix: str
    train_no: Optional[str]
    validity_date: Optional[str]
    base_date: datetime
    time: Optional[datetime]
    decimal: Optional[int]
    vehicle: Optional[str]
    staff: List[StaffAssignment]


class Aggregator:
    """
    Aggregate state for one import.

    A fresh Aggregator is created per import; the caller owns it and turns it
    into an ImportResult with build().
    """

    def __init__(self):
        self.stations: Dict[str, Station] = {}
        self.vehicles: Dict[str, Vehicle] = {}
        self.vehicle_workings: Dict[str, VehicleWorking] = {}
        self.staff: Dict[str, StaffMember] = {}
        self.duties: Dict[str, Duty] = {}
        self.trains: Dict[str, Dict[str, Train]] = {}  # date -> {train no -> Train}
        self.records: List[Dict[str, Any]] = []
        self._row_id = 0

    def _derive(self, row: Mapping[str, Any], suffix: str, time_field: str) -> _Direction:
        validity_date = parse_validity_date(row.get(f"validity{suffix}"))
        base_date = base_date_for(validity_date)
        instant = parse_time_with_offset(row.get(time_field), base_date)
        return _Direction(
            suffix=suffix,
            train_no=_text(row.get(f"trainNo{suffix}")),
            validity_date=validity_date,
            base_date=base_date,
            time=instant,
            decimal=time_to_decimal(instant),
            vehicle=resolve_vehicle_name(
                _text(row.get(f"technicalVehicleType{suffix}")),
                _text(row.get(f"vehicleNo{suffix}")),
            ),
            staff=extract_staff(row, suffix, base_date),
        )

    def add_row(
        self, row: Mapping[str, Any], station_code: str, sheet_name: str, row_number: int
    ) -> int:
        """
        Fold one retained row into every aggregate.

        All parsing happens before the first mutation, so a row that fails to
        parse leaves the aggregates untouched.

        Returns:
            The row identifier assigned to this row.
        """
        inbound = self._derive(row, "In", "arrival")
        outbound = self._derive(row, "Out", "departure")

        self._row_id += 1
        row_id = self._row_id

        point_name = _text(row.get("networkPointName")) or station_code
        station = self.stations.get(station_code)
        if station is None:
            station = Station(code=station_code, network_point_name=point_name)
            self.stations[station_code] = station

        if inbound.train_no or inbound.vehicle:
            fields = self._record_fields(row, inbound, "arr", station_code, row_id)
            station.arrivals.append(ArrivalRecord(linked_train_no=outbound.train_no, **fields))
        if outbound.train_no or outbound.vehicle:
            fields = self._record_fields(row, outbound, "dep", station_code, row_id)
            station.departures.append(DepartureRecord(linked_train_no=inbound.train_no, **fields))

        for direction, other in ((inbound, outbound), (outbound, inbound)):
            if direction.train_no and direction.validity_date:
                self._collect_train(row, direction, station_code, point_name)
            self._collect_vehicle(row, direction)
            self._collect_staff(direction, direction.train_no or other.train_no)

        record = dict(row)
        record.update(
            id=f"rec-{row_id}",
            sheetName=station_code,
            originalSheet=sheet_name,
            rowNumber=row_number,
            vehicleIn=inbound.vehicle,
            vehicleOut=outbound.vehicle,
            arrivalTime=inbound.time,
            arrivalDecimal=inbound.decimal,
            arrivalDate=inbound.validity_date,
            departureTime=outbound.time,
            departureDecimal=outbound.decimal,
            departureDate=outbound.validity_date,
        )
        self.records.append(record)
        return row_id

    @staticmethod
    def _record_fields(
        row: Mapping[str, Any], direction: _Direction, prefix: str, station_code: str, row_id: int
    ) -> Dict[str, Any]:
        suffix = direction.suffix
        return dict(
            id=f"{prefix}.{station_code}---{row_id}",
            row_id=row_id,
            train_no=direction.train_no,
            date=direction.validity_date,
            time=direction.time,
            decimal_minutes=direction.decimal,
            planned=format_planned(direction.time),
            vehicle=direction.vehicle,
            vehicle_working=_text(row.get(f"vehicleWorking{suffix}")),
            staff=direction.staff,
            driver_personnel_number=direction.staff[0].personnel_id if direction.staff else None,
            starting_location=_text(row.get(f"startingLocation{suffix}")),
            end_location=_text(row.get(f"endLocation{suffix}")),
        )

    def _collect_train(
        self, row: Mapping[str, Any], direction: _Direction, station_code: str, point_name: str
    ) -> None:
        day_trains = self.trains.setdefault(direction.validity_date, {})
        train = day_trains.get(direction.train_no)
        if train is None:
            train = Train(no=direction.train_no)
            day_trains[direction.train_no] = train

        start = _text(row.get(f"startingLocation{direction.suffix}"))
        end = _text(row.get(f"endLocation{direction.suffix}"))
        if start and not train.starting_location:
            train.starting_location = start
        if end:
            train.end_location = end

        is_arrival = direction.suffix == "In"
        stop = next((s for s in train.stops if s.code == station_code), None)
        if stop is None:
            train.stops.append(
                Stop(
                    station=point_name,
                    code=station_code,
                    arrival=direction.time if is_arrival else None,
                    departure=None if is_arrival else direction.time,
                )
            )
        elif is_arrival and stop.arrival is None:
            stop.arrival = direction.time
        elif not is_arrival and stop.departure is None:
            stop.departure = direction.time

        known = set(s.personnel_id for s in train.staff)
        for person in direction.staff:
            if person.personnel_id and person.personnel_id not in known:
                train.staff.append(replace(person))
                known.add(person.personnel_id)

    def _collect_vehicle(self, row: Mapping[str, Any], direction: _Direction) -> None:
        if not direction.vehicle:
            return
        suffix = direction.suffix
        vehicle = self.vehicles.get(direction.vehicle)
        if vehicle is None:
            vehicle = Vehicle(name=direction.vehicle)
            self.vehicles[direction.vehicle] = vehicle

        for number in (_text(row.get(f"vehicleNo{suffix}")) or "").split(","):
            number = number.strip()
            if number and number not in vehicle.vehicle_no:
                vehicle.vehicle_no.append(number)
        for reg_no in (_text(row.get(f"vehicleRegNo{suffix}")) or "").split(","):
            reg_no = reg_no.strip()
            if reg_no and reg_no not in vehicle.vehicle_reg_no:
                vehicle.vehicle_reg_no.append(reg_no)

        working_id = _text(row.get(f"vehicleWorking{suffix}"))
        if not working_id or working_id in vehicle.vehicle_workings:
            return
        vehicle.vehicle_workings.append(working_id)
        if working_id not in self.vehicle_workings:
            base_date = direction.base_date
            self.vehicle_workings[working_id] = VehicleWorking(
                working_id=working_id,
                starting_time=parse_time_with_offset(row.get(f"startingTime{suffix}"), base_date),
                starting_location=_text(row.get(f"startingLocation{suffix}")),
                ending_time=parse_time_with_offset(row.get(f"endingTime{suffix}"), base_date),
                end_location=_text(row.get(f"endLocation{suffix}")),
            )

    def _collect_staff(self, direction: _Direction, train_no: Optional[str]) -> None:
        date = direction.validity_date
        for person in direction.staff:
            if not person.personnel_id:
                continue
            member = self.staff.get(person.personnel_id)
            if member is None:
                member = StaffMember(
                    personnel_id=person.personnel_id,
                    occupation=person.occupation,
                    name=person.name,
                    phone=person.phone,
                )
                self.staff[person.personnel_id] = member
            if not member.phone and person.phone:
                member.phone = person.phone
            if not member.occupation and person.occupation:
                member.occupation = person.occupation

            if not person.duty:
                continue
            duty_key = f"{date}:{person.duty}"
            if duty_key not in member.duties:
                member.duties.append(duty_key)
            if date and date not in member.dates:
                member.dates.append(date)

            duty = self.duties.get(duty_key)
            if duty is None:
                duty = Duty(
                    duty_code=person.duty,
                    date=date,
                    starting_time=person.duty_starting_time,
                    end_time=person.duty_end_time,
                )
                self.duties[duty_key] = duty
            if train_no and train_no not in duty.trains:
                duty.trains.append(train_no)

    def build(self, result: Optional[ImportResult] = None) -> ImportResult:
        """Copy the aggregates into an ImportResult (a new one unless given)."""
        result = result or ImportResult()
        result.stations = list(self.stations.values())
        result.vehicles = list(self.vehicles.values())
        result.vehicle_workings = list(self.vehicle_workings.values())
        result.staff = list(self.staff.values())
        result.duties = list(self.duties.values())
        result.trains = {
            date: sorted(day_trains.values(), key=lambda t: train_sort_key(t.no))
            for date, day_trains in self.trains.items()
        }
        result.records = list(self.records)
        result.records_processed = len(self.records)
        logger.debug(f"Built {len(result.stations)} stations and {len(result.records)} records")
        return result
