"""Tests for the parsing rules: cells, vehicles, times, staff and depots."""

import unittest
from datetime import date, datetime, time, timedelta
import sys
from pathlib import Path

# Add src to path so we can import trainsheet
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from openpyxl.cell.rich_text import CellRichText, TextBlock
from openpyxl.cell.text import InlineFont

from trainsheet.cells import normalize_cell
from trainsheet.depots import Deduplicator, dedupe_key, is_depot_sheet, normalize_depot_code
from trainsheet.staff import extract_staff, occupation_from_duty
from trainsheet.timeparse import (
    is_time_in_range,
    parse_time_with_offset,
    parse_validity_date,
    time_to_decimal,
)
from trainsheet.vehicles import VEHICLE_RULES, match_rule, resolve_vehicle_name


class TestCellNormalizer(unittest.TestCase):
    """Test conversion of raw cell values."""

    def test_none_stays_none(self):
        self.assertIsNone(normalize_cell(None))

    def test_native_dates_pass_through(self):
        moment = datetime(2025, 12, 16, 8, 48)
        self.assertIs(normalize_cell(moment), moment)
        self.assertEqual(normalize_cell(date(2025, 12, 16)), date(2025, 12, 16))
        self.assertEqual(normalize_cell(time(8, 48)), time(8, 48))

    def test_formula_result_is_used(self):
        """Test that wrapper objects exposing a computed result are unwrapped."""

        class Formula:
            result = 101.0

        self.assertEqual(normalize_cell(Formula()), "101")

    def test_rich_text_runs_are_concatenated(self):
        value = CellRichText(["Train ", TextBlock(InlineFont(b=True), "101")])
        self.assertEqual(normalize_cell(value), "Train 101")

    def test_numbers_become_strings(self):
        self.assertEqual(normalize_cell(101.0), "101")
        self.assertEqual(normalize_cell(7), "7")
        self.assertEqual(normalize_cell(2.5), "2.5")


class TestVehicleNameResolver(unittest.TestCase):
    """Test the ordered vehicle naming rules."""

    def test_empty_input_gives_none(self):
        self.assertIsNone(resolve_vehicle_name("", "620-010"))
        self.assertIsNone(resolve_vehicle_name("620M", None))

    def test_single_units(self):
        self.assertEqual(resolve_vehicle_name("620M", "620-010"), "620-010")
        self.assertEqual(resolve_vehicle_name("Siemens", "ER20-012, ER20-013"), "ER20-012")

    def test_passenger_cars_counted(self):
        """Test that passenger cars are named by car count and base number."""
        result = resolve_vehicle_name("*Seat,*Seat,*Coupe", "5101-001,5101-002,5101-003")
        self.assertEqual(result, "3 vag. 5101")

    def test_630_series_uses_lead_car(self):
        self.assertEqual(resolve_vehicle_name("630M,631M", "630-001,631-007"), "630MiL-007")
        self.assertEqual(resolve_vehicle_name("630M", "630-001"), "630-001")

    def test_730_series_uses_lead_car(self):
        result = resolve_vehicle_name("*730ML m,731ML,733ML", "730-004, 731-004, 733-004")
        self.assertEqual(result, "730ML-004")
        self.assertEqual(resolve_vehicle_name("730ML", "730-004"), "730-004")

    def test_ej575_uses_lead_car(self):
        self.assertEqual(resolve_vehicle_name("EJ575,EJ575", "111-005,211-005"), "EJ575-005")
        self.assertEqual(resolve_vehicle_name("EJ575", "111-005"), "111-005")

    def test_dr1a_motor_car_marker(self):
        """Test that DR1A sets are named after the car carrying the m marker."""
        self.assertEqual(resolve_vehicle_name("DR1A,DR1Am", "100,101"), "DR1A 101")
        self.assertEqual(resolve_vehicle_name("DR1A,DR1AM m", "3246,3245"), "DR1AM 3245")
        self.assertEqual(resolve_vehicle_name("DR1A,DR1AMv", "3246,3245"), "DR1AMv 3245")

    def test_dr1a_without_marker(self):
        self.assertEqual(resolve_vehicle_name("DR1A,DR1A", "3246,3247"), "DR1A 3246")

    def test_ra2_head_car(self):
        self.assertEqual(resolve_vehicle_name("RA-2 3,RA-2 3", "001-02,001-01"), "RA-2-001")
        self.assertEqual(resolve_vehicle_name("RA-2", "001-02"), "001-02")

    def test_default_first_number(self):
        self.assertEqual(resolve_vehicle_name("ER9M", "ER9M-501,ER9M-502"), "ER9M-501")

    def test_first_matching_rule_wins(self):
        self.assertEqual(match_rule("620M").name, "single unit")
        self.assertEqual(match_rule("Coupe").name, "passenger cars")
        self.assertEqual(match_rule("DR1AM").name, "DR1A")
        self.assertIsNone(match_rule("620MX"))
        self.assertEqual([r.name for r in VEHICLE_RULES][0], "single unit")

    def test_resolution_is_deterministic(self):
        cases = [
            ("630M,631M", "630-001,631-007"),
            ("730ML,731ML", "730-004,731-004"),
            ("EJ575", "211-002"),
            ("DR1A,DR1Am", "100,101"),
            ("RA-2 3", "004-01"),
        ]
        for types, numbers in cases:
            first = resolve_vehicle_name(types, numbers)
            self.assertEqual(first, resolve_vehicle_name(types, numbers))
            self.assertTrue(first)


class TestTimeResolver(unittest.TestCase):
    """Test validity date and time-of-day parsing."""

    def test_positive_day_offset(self):
        result = parse_time_with_offset("23:59 (+1)", "2025-12-16")
        self.assertEqual(result, datetime(2025, 12, 17, 23, 59))

    def test_negative_day_offset(self):
        result = parse_time_with_offset("00:24 (-1)", datetime(2025, 12, 16))
        self.assertEqual(result, datetime(2025, 12, 15, 0, 24))

    def test_plain_time(self):
        result = parse_time_with_offset("8:48", date(2025, 12, 16))
        self.assertEqual(result, datetime(2025, 12, 16, 8, 48))

    def test_invalid_time_or_missing_base(self):
        self.assertIsNone(parse_time_with_offset("0848", "2025-12-16"))
        self.assertIsNone(parse_time_with_offset("08", "2025-12-16"))
        self.assertIsNone(parse_time_with_offset("25:10", "2025-12-16"))
        self.assertIsNone(parse_time_with_offset("08:48", None))
        self.assertIsNone(parse_time_with_offset("", "2025-12-16"))

    def test_native_values(self):
        moment = datetime(2025, 12, 16, 7, 5)
        self.assertIs(parse_time_with_offset(moment, "2025-01-01"), moment)
        self.assertEqual(parse_time_with_offset(time(7, 5), "2025-12-16"), moment)

    def test_validity_from_iso_string(self):
        self.assertEqual(parse_validity_date("2025-12-16T00:00:00Z"), "2025-12-16")
        self.assertEqual(parse_validity_date("2025-12-16"), "2025-12-16")

    def test_validity_from_serial_matches_native_date(self):
        native = datetime(1899, 12, 30) + timedelta(days=46003)
        self.assertEqual(parse_validity_date(46003), parse_validity_date(native))
        self.assertEqual(parse_validity_date(46003), "2025-12-12")
        self.assertEqual(parse_validity_date("46003"), "2025-12-12")

    def test_validity_rejects_other_values(self):
        self.assertIsNone(parse_validity_date(None))
        self.assertIsNone(parse_validity_date(""))
        self.assertIsNone(parse_validity_date("16.12.2025"))

    def test_out_of_range_values_are_unparseable(self):
        self.assertIsNone(parse_validity_date("20251216"))
        self.assertIsNone(parse_validity_date(10**12))
        self.assertIsNone(parse_time_with_offset("09:00 (+9999999)", "2025-12-16"))
        self.assertIsNone(parse_time_with_offset("09:00 (-9999999)", "2025-12-16"))

    def test_time_to_decimal(self):
        self.assertEqual(time_to_decimal(datetime(2025, 1, 1, 1, 30)), 90)
        self.assertEqual(time_to_decimal(datetime(2025, 1, 2)), 1440)
        self.assertIsNone(time_to_decimal(None))
        earlier = time_to_decimal(parse_time_with_offset("23:59", "2025-12-16"))
        later = time_to_decimal(parse_time_with_offset("00:10 (+1)", "2025-12-16"))
        self.assertLess(earlier, later)

    def test_time_ranges(self):
        morning = time_to_decimal(datetime(2025, 1, 2, 7, 0))
        next_morning = time_to_decimal(datetime(2025, 1, 3, 7, 0))
        self.assertTrue(is_time_in_range(morning, "day", "2025-01-02"))
        self.assertTrue(is_time_in_range(morning, "all", "2025-01-02"))
        self.assertFalse(is_time_in_range(morning, "night", "2025-01-02"))
        self.assertTrue(is_time_in_range(next_morning, "night", "2025-01-02"))
        self.assertFalse(is_time_in_range(None, "all", "2025-01-02"))
        self.assertFalse(is_time_in_range(morning, "week", "2025-01-02"))


class TestStaffExtractor(unittest.TestCase):
    """Test crew extraction and occupation inference."""

    def test_occupation_from_duty(self):
        self.assertEqual(occupation_from_duty("M123"), "M")
        self.assertEqual(occupation_from_duty("K7"), "K")
        self.assertEqual(occupation_from_duty("RM4"), "M")
        self.assertEqual(occupation_from_duty("RK2"), "K")
        self.assertIsNone(occupation_from_duty("X9"))
        self.assertIsNone(occupation_from_duty(""))

    def test_extract_aligned_staff(self):
        row = {
            "driverIn": "Jonas Jonaitis, Petras Petraitis",
            "phoneIn": "+37060000001,",
            "driverPersonnelNumberIn": "111,222",
            "dutyIn": "M123,K7",
            "dutyStartingTimeIn": "07:00,07:30",
            "dutyEndTimeIn": "01:00 (+1),16:00",
        }
        staff = extract_staff(row, "In", "2025-12-16")

        self.assertEqual(len(staff), 2)
        self.assertEqual(staff[0].name, "Jonas Jonaitis")
        self.assertEqual(staff[0].personnel_id, "111")
        self.assertEqual(staff[0].phone, "+37060000001")
        self.assertEqual(staff[0].occupation, "M")
        self.assertEqual(staff[0].duty_starting_time, datetime(2025, 12, 16, 7, 0))
        self.assertEqual(staff[0].duty_end_time, datetime(2025, 12, 17, 1, 0))
        self.assertIsNone(staff[1].phone)
        self.assertEqual(staff[1].occupation, "K")

    def test_empty_names_keep_alignment(self):
        row = {"driverOut": "A,,C", "driverPersonnelNumberOut": "1,2,3", "dutyOut": "M1,M2,X3"}
        staff = extract_staff(row, "Out", "2025-12-16")

        self.assertEqual([s.name for s in staff], ["A", "C"])
        self.assertEqual([s.personnel_id for s in staff], ["1", "3"])
        self.assertIsNone(staff[1].occupation)

    def test_no_staff_columns(self):
        self.assertEqual(extract_staff({}, "In", "2025-12-16"), [])


class TestDepotMerger(unittest.TestCase):
    """Test depot sheet naming and duplicate detection."""

    def test_normalize_depot_code(self):
        self.assertEqual(normalize_depot_code("LTE+D"), "LTE.D")
        self.assertEqual(normalize_depot_code("LTE-D"), "LTE.D")
        self.assertEqual(normalize_depot_code("VLN"), "VLN")
        self.assertEqual(normalize_depot_code("D-VLN"), "D-VLN")

    def test_is_depot_sheet(self):
        self.assertTrue(is_depot_sheet("LTE+D"))
        self.assertTrue(is_depot_sheet("LTE-D"))
        self.assertFalse(is_depot_sheet("LTE.D"))
        self.assertFalse(is_depot_sheet("KNS"))

    def test_deduplicator(self):
        row = {"trainNoIn": "101", "arrival": "08:00", "validityIn": datetime(2025, 12, 16)}
        dedup = Deduplicator()

        self.assertFalse(dedup.is_duplicate(row))
        self.assertTrue(dedup.is_duplicate(dict(row)))
        self.assertFalse(dedup.is_duplicate(dict(row, arrival="08:05")))
        self.assertEqual(dedup.duplicates, 1)

    def test_dedupe_key_ignores_other_fields(self):
        base = {"trainNoIn": "101", "arrival": "08:00"}
        self.assertEqual(dedupe_key(base), dedupe_key(dict(base, driverIn="Someone")))


if __name__ == "__main__":
    unittest.main()
