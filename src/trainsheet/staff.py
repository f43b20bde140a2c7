"""Crew extraction from comma-aligned staff columns."""

from typing import Any, List, Mapping, Optional

from .models import StaffAssignment
from .timeparse import DateLike, parse_time_with_offset

MACHINIST = "M"
CONDUCTOR = "K"
RESERVE = "R"


def occupation_from_duty(duty: Optional[str]) -> Optional[str]:
    """
    Infer occupation from a duty code: M123 -> "M", K7 -> "K".

    Reserve duties (R...) carry the occupation in their second letter.
    """
    code = (duty or "").strip().upper()
    letter = code[1:2] if code.startswith(RESERVE) else code[:1]
    return letter if letter in (MACHINIST, CONDUCTOR) else None


def _column(row: Mapping[str, Any], name: str) -> List[str]:
    value = row.get(name)
    if value is None:
        return []
    return [part.strip() for part in str(value).split(",")]


def _at(values: List[str], index: int) -> str:
    return values[index] if index < len(values) else ""


def extract_staff(
    row: Mapping[str, Any], suffix: str, base_date: Optional[DateLike]
) -> List[StaffAssignment]:
    """
    Split the staff columns of one direction into individual assignments.

    Args:
        row: Canonical row (driverIn, phoneIn, dutyIn, ...).
        suffix: "In" or "Out".
        base_date: Validity date the duty times belong to.

    Returns:
        One StaffAssignment per non-empty driver name, position-aligned with
        the phone, personnel number, duty and duty time columns.
    """
    names = _column(row, f"driver{suffix}")
    phones = _column(row, f"phone{suffix}")
    personnel_numbers = _column(row, f"driverPersonnelNumber{suffix}")
    duties = _column(row, f"duty{suffix}")
    starting_times = _column(row, f"dutyStartingTime{suffix}")
    end_times = _column(row, f"dutyEndTime{suffix}")

    staff = []
    for i, name in enumerate(names):
        if not name:
            continue
        duty = _at(duties, i)
        staff.append(
            StaffAssignment(
                name=name,
                personnel_id=_at(personnel_numbers, i) or None,
                phone=_at(phones, i) or None,
                occupation=occupation_from_duty(duty),
                duty=duty,
                duty_starting_time=parse_time_with_offset(_at(starting_times, i), base_date),
                duty_end_time=parse_time_with_offset(_at(end_times, i), base_date),
            )
        )
    return staff
