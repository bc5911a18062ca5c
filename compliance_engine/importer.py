"""
Schedule Importer

Turns an uploaded CSV schedule into ShiftRecords. Bad rows are collected as
parse errors and never stop the import.

Expected columns: Employee Name, Role, Date, Start Time, End Time, Hours,
[Employee ID], [Unit]
"""

import csv
import io
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from .models import Role, ShiftRecord

MIN_COLUMNS = 6
DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y")


@dataclass
class ImportResult:
    shifts: List[ShiftRecord] = field(default_factory=list)
    parse_errors: List[str] = field(default_factory=list)


def parse_date(value: str) -> date:
    """Parse a schedule date (ISO or US month/day/year)"""
    text = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f'Invalid date "{value}"')


def _optional(columns: List[str], index: int) -> Optional[str]:
    if len(columns) > index and columns[index]:
        return columns[index]
    return None


def parse_row(columns: List[str], row_number: int) -> ShiftRecord:
    """Build a ShiftRecord from one CSV row, raising ValueError on bad data"""
    if len(columns) < MIN_COLUMNS:
        raise ValueError(
            "Insufficient columns (expected: Employee Name, Role, Date, Start Time, End Time, Hours)"
        )

    role = Role.parse(columns[1])
    shift_date = parse_date(columns[2])

    try:
        hours = float(columns[5])
    except ValueError:
        raise ValueError(f'Invalid hours "{columns[5]}"')
    if not math.isfinite(hours):
        raise ValueError(f'Invalid hours "{columns[5]}"')
    if hours <= 0:
        raise ValueError(f"Hours must be positive, got {columns[5]}")

    return ShiftRecord(
        employee_name=columns[0],
        role=role,
        date=shift_date,
        start_time=columns[3],
        end_time=columns[4],
        hours=hours,
        employee_id=_optional(columns, 6),
        unit=_optional(columns, 7),
        shift_id=f"row-{row_number}",
    )


def import_schedule_csv(text: str) -> ImportResult:
    """Parse CSV text into shifts and row-level parse errors"""
    result = ImportResult()
    rows = list(csv.reader(io.StringIO(text)))
    if not rows:
        return result

    # Row numbers are 1-based and count the header line
    start = 0
    if rows[0] and 'employee' in ','.join(rows[0]).lower():
        start = 1

    for index in range(start, len(rows)):
        row_number = index + 1
        columns = [col.strip().replace('"', '') for col in rows[index]]
        if not any(columns):
            continue

        try:
            result.shifts.append(parse_row(columns, row_number))
        except ValueError as e:
            result.parse_errors.append(f"Row {row_number}: {e}")

    return result


def import_schedule_file(path: str) -> ImportResult:
    """Read and parse a CSV schedule file"""
    with open(path, 'r', encoding='utf-8-sig', newline='') as f:
        return import_schedule_csv(f.read())
