"""Vehicle name derivation from technical type and vehicle number codes."""

import re
from dataclasses import dataclass
from typing import Callable, List, Optional

# DR1AM, DR1A m, DR1AMv: a trailing m marker, optionally followed by one letter
_MOTOR_CAR_RE = re.compile(r"m[^c]?$", re.IGNORECASE)


def _split(codes: str) -> List[str]:
    return [code.strip() for code in codes.split(",")]


def _first_with_prefix(vehicles: List[str], prefix: str) -> Optional[str]:
    return next((v for v in vehicles if v.startswith(prefix)), None)


def _unit_by_lead_car(lead_prefix: str, unit_label: str) -> Callable[[List[str], List[str]], str]:
    """Name a multiple unit after the number of its lead car, e.g. 731-004 -> 730ML-004."""

    def resolve(types: List[str], vehicles: List[str]) -> str:
        lead = _first_with_prefix(vehicles, lead_prefix)
        if lead is None:
            return vehicles[0]
        return f"{unit_label}-{lead.split('-')[1]}"

    return resolve


def _single_unit(types: List[str], vehicles: List[str]) -> str:
    return vehicles[0]


def _passenger_cars(types: List[str], vehicles: List[str]) -> str:
    return f"{len(types)} vag. {vehicles[0].split('-')[0]}"


def _dr1a(types: List[str], vehicles: List[str]) -> str:
    index = next((i for i, t in enumerate(types) if _MOTOR_CAR_RE.search(t) or " m" in t), None)
    if index is None:
        return f"{types[0]} {vehicles[0]}"
    motor_type = types[index]
    if " " in motor_type:
        base = motor_type.split(" ")[0]
    else:
        base = motor_type[:-1] if motor_type.endswith("m") else motor_type
    vehicle = vehicles[index] if index < len(vehicles) else vehicles[0]
    return f"{base} {vehicle}"


def _ra2(types: List[str], vehicles: List[str]) -> str:
    head = next((v for v in vehicles if v.endswith("-01")), None)
    if head is None:
        return vehicles[0]
    return f"{types[0].split(' ')[0]}-{head.split('-')[0]}"


@dataclass(frozen=True)
class VehicleRule:
    """Matches on the first type code and derives the vehicle name."""
    name: str
    matches: Callable[[str], bool]
    resolve: Callable[[List[str], List[str]], str]


# Checked in order; the first rule whose predicate matches wins.
VEHICLE_RULES = (
    VehicleRule("single unit", lambda t: t in ("620M", "Siemens"), _single_unit),
    VehicleRule("passenger cars", lambda t: t in ("Seat", "Coupe"), _passenger_cars),
    VehicleRule("630 series", lambda t: t.startswith("630"), _unit_by_lead_car("631-", "630MiL")),
    VehicleRule("730 series", lambda t: t.startswith("730"), _unit_by_lead_car("731-", "730ML")),
    VehicleRule("EJ575", lambda t: t.startswith("EJ575"), _unit_by_lead_car("211-", "EJ575")),
    VehicleRule("DR1A", lambda t: t.startswith("DR1A"), _dr1a),
    VehicleRule("RA-2", lambda t: t.startswith("RA-2"), _ra2),
)


def match_rule(technical_type: str) -> Optional[VehicleRule]:
    """Return the rule that applies to a first type code, or None for the default."""
    for rule in VEHICLE_RULES:
        if rule.matches(technical_type):
            return rule
    return None


def resolve_vehicle_name(
    technical_types: Optional[str], vehicle_numbers: Optional[str]
) -> Optional[str]:
    """
    Derive one vehicle designation from comma-separated type and number codes.

    Args:
        technical_types: e.g. "620M", "*Seat,*Seat,*Coupe", "DR1A,DR1AM m"
        vehicle_numbers: Position-aligned numbers, e.g. "731-004,733-004"

    Returns:
        The vehicle name, or None if either side is empty.
    """
    if not technical_types or not vehicle_numbers:
        return None

    types = [t[1:] if t.startswith("*") else t for t in _split(str(technical_types))]
    vehicles = _split(str(vehicle_numbers))

    rule = match_rule(types[0])
    if rule is None:
        return vehicles[0]
    return rule.resolve(types, vehicles)
