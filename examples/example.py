"""Example usage of WorkbookImporter."""

import logging
import sys
from pathlib import Path

# Add src to path so we can import trainsheet
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from trainsheet import EventLog, WorkbookImporter
from trainsheet.export import write_snapshot

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def print_import(workbook_path: str):
    """
    Import a movement workbook and display trains per date.

    Args:
        workbook_path: Path to the .xlsx export.
    """
    print(f"\n{'='*70}")
    print(f"Importing: {workbook_path}")
    print(f"{'='*70}\n")

    events = EventLog(notification_sink=lambda message, kind: print(f"[{kind}] {message}"))
    importer = WorkbookImporter(events=events)
    if not importer.load_mappings():
        return

    result = importer.import_workbook(workbook_path)
    if result.error:
        return

    for date in sorted(result.trains):
        print(f"\n{date}:")
        for train in result.trains[date]:
            route = " -> ".join(stop.code for stop in train.stops)
            crew = ", ".join(s.name for s in train.staff) or "no crew"
            print(f"  Train {train.no}: {route} ({crew})")

    print("\nSTATISTICS:")
    print("-" * 70)
    for name, value in importer.statistics().items():
        print(f"  {name}: {value}")

    path = write_snapshot(result)
    print(f"\nSnapshot written to {path}")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python example.py <workbook.xlsx>")
        sys.exit(1)
    print_import(sys.argv[1])
