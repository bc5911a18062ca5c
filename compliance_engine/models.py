"""
Staffing Compliance - Data Model

Shift records come in (already normalized by the importer), compliance issues
go out. Everything here is immutable once built so the analyzers can share
the same objects across worker threads.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Tuple, Any


MINUTES_PER_DAY = 24 * 60
HOURS_PER_DAY = 24

_TIME_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})(?::(\d{2}))?$')


class NoValidShiftsError(ValueError):
    """Raised when a run is requested with no valid shifts to analyze"""


class Role(str, Enum):
    RN = "RN"
    LPN = "LPN"
    CNA = "CNA"
    UNIT_MANAGER = "Unit Manager"
    OTHER = "Other"

    @classmethod
    def parse(cls, value) -> "Role":
        """Parse a role token as written in an uploaded schedule"""
        if isinstance(value, Role):
            return value
        token = str(value).strip().upper().replace('_', ' ')
        for role in cls:
            if role.value.upper() == token:
                return role
        raise ValueError(f'Invalid role "{value}" (must be RN, LPN, CNA, Unit Manager, or Other)')

    @property
    def is_nursing(self) -> bool:
        return self in (Role.RN, Role.LPN, Role.CNA)


class IssueType(str, Enum):
    STAFFING_RATIO = "staffing_ratio"
    OVERTIME_VIOLATION = "overtime_violation"
    COVERAGE_GAP = "coverage_gap"
    DOUBLE_BOOKING = "double_booking"
    LICENSE_REQUIREMENT = "license_requirement"
    DATA_QUALITY = "data_quality"


class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class IssueSource(str, Enum):
    ENGINE = "engine"
    ADVISORY = "advisory"


def parse_time_of_day(value: str, allow_end_of_day: bool = False) -> int:
    """
    Convert "HH:MM" (or "HH:MM:SS") into minutes since midnight.

    "24:00" is only accepted when allow_end_of_day is set, so a shift can
    run to the end of the day without being read as an overnight shift.
    """
    if value is None:
        raise ValueError("Missing time value")
    match = _TIME_PATTERN.match(str(value).strip())
    if not match:
        raise ValueError(f"Invalid time '{value}' (expected HH:MM)")

    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3) or 0)

    if minute > 59 or second > 59:
        raise ValueError(f"Invalid time '{value}'")
    if hour == 24 and minute == 0 and second == 0 and allow_end_of_day:
        return MINUTES_PER_DAY
    if hour > 23:
        raise ValueError(f"Invalid time '{value}'")

    return hour * 60 + minute


def format_minutes(minutes: int) -> str:
    """Format minutes since midnight as HH:MM"""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True)
class ShiftRecord:
    """One validated shift assignment from an uploaded schedule"""
    employee_name: str
    role: Role
    date: date
    start_time: str
    end_time: str
    hours: float
    employee_id: Optional[str] = None
    unit: Optional[str] = None
    shift_id: Optional[str] = None

    def __post_init__(self):
        if not self.employee_name or not str(self.employee_name).strip():
            raise ValueError("employee_name is required")
        if not isinstance(self.role, Role):
            object.__setattr__(self, 'role', Role.parse(self.role))
        if self.date is None:
            raise ValueError("date is required")
        if self.hours is None or not math.isfinite(self.hours) or self.hours <= 0:
            raise ValueError(f"hours must be positive, got {self.hours}")

    @property
    def is_overtime(self) -> bool:
        # Informational only; weekly overtime is decided by OvertimeAnalyzer
        return self.hours > 8

    @property
    def employee_key(self) -> str:
        return self.employee_name.strip().lower()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'employee_name': self.employee_name,
            'employee_id': self.employee_id,
            'role': self.role.value,
            'date': self.date.isoformat(),
            'start_time': self.start_time,
            'end_time': self.end_time,
            'hours': self.hours,
            'unit': self.unit,
            'overtime': self.is_overtime,
        }


@dataclass(frozen=True)
class ShiftReference:
    """Pointer back to the shift an issue was raised for"""
    employee_name: str
    date: date
    start_time: str
    end_time: str
    shift_id: Optional[str] = None

    @classmethod
    def from_shift(cls, shift: ShiftRecord) -> "ShiftReference":
        return cls(
            employee_name=shift.employee_name,
            date=shift.date,
            start_time=shift.start_time,
            end_time=shift.end_time,
            shift_id=shift.shift_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'shift_id': self.shift_id,
            'employee_name': self.employee_name,
            'date': self.date.isoformat(),
            'start_time': self.start_time,
            'end_time': self.end_time,
        }


@dataclass(frozen=True)
class ComplianceIssue:
    """A single finding. Never mutated after the analyzer creates it."""
    type: IssueType
    severity: Severity
    message: str
    suggestions: Tuple[str, ...] = ()
    shift_references: Tuple[ShiftReference, ...] = ()
    source: IssueSource = IssueSource.ENGINE
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def with_source(self, source: IssueSource) -> "ComplianceIssue":
        return ComplianceIssue(
            type=self.type,
            severity=self.severity,
            message=self.message,
            suggestions=self.suggestions,
            shift_references=self.shift_references,
            source=source,
            metadata=dict(self.metadata),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'type': self.type.value,
            'severity': self.severity.value,
            'message': self.message,
            'suggestions': list(self.suggestions),
            'source': self.source.value,
        }
        if self.shift_references:
            data['shift_references'] = [ref.to_dict() for ref in self.shift_references]
        if self.metadata:
            data['metadata'] = dict(self.metadata)
        return data


@dataclass
class HourSlot:
    hour: int
    has_rn: bool = False
    has_lpn: bool = False
    has_cna: bool = False
    total_staff: int = 0


class DailyCoverage:
    """Hour-by-hour staffing model for one calendar date"""

    def __init__(self, day: date):
        self.date = day
        self.slots: List[HourSlot] = [HourSlot(hour=h) for h in range(HOURS_PER_DAY)]

    def apply(self, role: Role, start_hour: int, end_hour: int):
        """Mark hours [start_hour, end_hour) as staffed by role"""
        for hour in range(max(0, start_hour), min(HOURS_PER_DAY, end_hour)):
            slot = self.slots[hour]
            slot.total_staff += 1
            if role == Role.RN:
                slot.has_rn = True
            elif role == Role.LPN:
                slot.has_lpn = True
            elif role == Role.CNA:
                slot.has_cna = True

    def rn_hours(self) -> List[int]:
        return [slot.hour for slot in self.slots if slot.has_rn]

    def __getitem__(self, hour: int) -> HourSlot:
        return self.slots[hour]


@dataclass(frozen=True)
class FacilityProfile:
    """Facility context passed to the advisory reviewer"""
    name: str = "Facility"
    state: Optional[str] = None


@dataclass
class ComplianceReport:
    """Result of one engine run"""
    total_shifts: int
    compliance_issues: List[ComplianceIssue]
    parse_errors: List[str] = field(default_factory=list)
    advisory_used: bool = False

    def _count(self, severity: Severity) -> int:
        return sum(1 for issue in self.compliance_issues if issue.severity == severity)

    @property
    def critical_issues(self) -> int:
        return self._count(Severity.CRITICAL)

    @property
    def warnings(self) -> int:
        return self._count(Severity.WARNING)

    @property
    def info(self) -> int:
        return self._count(Severity.INFO)

    def issues_of_type(self, issue_type: IssueType) -> List[ComplianceIssue]:
        return [issue for issue in self.compliance_issues if issue.type == issue_type]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'summary': {
                'total_shifts': self.total_shifts,
                'parse_errors': len(self.parse_errors),
                'compliance_issues': len(self.compliance_issues),
                'critical_issues': self.critical_issues,
                'warnings': self.warnings,
            },
            'total_shifts': self.total_shifts,
            'compliance_issues': [issue.to_dict() for issue in self.compliance_issues],
            'critical_issues': self.critical_issues,
            'warnings': self.warnings,
            'parse_errors': list(self.parse_errors),
            'advisory_used': self.advisory_used,
        }
