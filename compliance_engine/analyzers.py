"""
Staffing Compliance - Analyzer Implementations

Pure checks over an immutable shift set:

1. DailyAggregator - Partitions shifts by calendar date, preserving input order
2. RatioAnalyzer - Nursing hours per patient day (total and RN) against census
3. CoverageAnalyzer - 24-slot hourly model per date: RN absence and thin staffing
4. OverlapDetector - Double-booked employees within a date, including overnight spill-over
5. OvertimeAnalyzer - Weekly hours per employee across the whole schedule

Every analyzer takes (shifts, thresholds) and returns a list of ComplianceIssue.
None of them hold state between calls, so the engine can run them concurrently.
"""

import math
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from .config import ThresholdsConfig, OVERNIGHT_ATTRIBUTIONS
from .models import (
    ComplianceIssue, DailyCoverage, IssueType, Role, Severity, ShiftRecord,
    ShiftReference, MINUTES_PER_DAY, format_minutes, parse_time_of_day,
)


class DailyAggregator:
    """Groups shifts by calendar date"""

    def aggregate(self, shifts: List[ShiftRecord]) -> Dict[date, List[ShiftRecord]]:
        """Return {date: [shifts]} keeping input order inside each bucket"""
        by_date = defaultdict(list)
        for shift in shifts:
            by_date[shift.date].append(shift)
        return dict(by_date)


def parse_shift_span(shift: ShiftRecord) -> Tuple[int, int]:
    """
    Return (start, end) in minutes since midnight of the shift's date.

    Overnight shifts (end at or before start) get end + 24h, so a
    22:00-06:00 shift is (1320, 1800).
    """
    start = parse_time_of_day(shift.start_time)
    end = parse_time_of_day(shift.end_time, allow_end_of_day=True)
    if end <= start:
        end += MINUTES_PER_DAY
    return start, end


def data_quality_issue(shift: ShiftRecord, error: Exception) -> ComplianceIssue:
    """Build the issue reported for a shift whose times cannot be read"""
    return ComplianceIssue(
        type=IssueType.DATA_QUALITY,
        severity=Severity.WARNING,
        message=(
            f"{shift.date.isoformat()}: Shift for {shift.employee_name} has unreadable times "
            f"({shift.start_time}-{shift.end_time}); excluded from coverage and overlap checks"
        ),
        suggestions=(
            'Correct the start and end times (24-hour HH:MM)',
            'Re-upload the schedule after fixing the row',
        ),
        shift_references=(ShiftReference.from_shift(shift),),
        metadata={'error': str(error)},
    )


def split_valid_shifts(shifts: List[ShiftRecord]) -> Tuple[List[Tuple[ShiftRecord, int, int]], List[ComplianceIssue]]:
    """Parse spans, separating unreadable shifts into data quality issues"""
    valid = []
    issues = []
    for shift in shifts:
        try:
            start, end = parse_shift_span(shift)
        except ValueError as e:
            issues.append(data_quality_issue(shift, e))
            continue
        valid.append((shift, start, end))
    return valid, issues


class RatioAnalyzer:
    """
    Nursing hours per patient day (PPD) for one date.

    Census is estimated from bed capacity; when capacity is unknown (0) the
    configured fallback census is used and the issue says so.
    """

    def __init__(self, thresholds: Optional[ThresholdsConfig] = None):
        self.thresholds = thresholds or ThresholdsConfig()

    def estimate_census(self, facility_capacity: int) -> Tuple[float, bool]:
        """Return (census, is_fallback)"""
        if facility_capacity and facility_capacity > 0:
            return facility_capacity * self.thresholds.census_capacity_factor, False
        return self.thresholds.fallback_census, True

    def calculate(self, shifts: List[ShiftRecord], facility_capacity: int) -> Dict:
        """Compute role hours and PPD metrics for a list of shifts"""
        hours_by_role = defaultdict(float)
        for shift in shifts:
            hours_by_role[shift.role] += shift.hours

        rn_hours = hours_by_role[Role.RN]
        lpn_hours = hours_by_role[Role.LPN]
        cna_hours = hours_by_role[Role.CNA]
        total_nursing_hours = rn_hours + lpn_hours + cna_hours

        census, estimated = self.estimate_census(facility_capacity)

        return {
            'rn_hours': rn_hours,
            'lpn_hours': lpn_hours,
            'cna_hours': cna_hours,
            'total_nursing_hours': total_nursing_hours,
            'census': census,
            'census_estimated': estimated,
            'total_ppd': total_nursing_hours / census,
            'rn_ppd': rn_hours / census,
        }

    def analyze(self, day: date, shifts: List[ShiftRecord], facility_capacity: int = 0) -> List[ComplianceIssue]:
        """Check total and RN PPD for one date"""
        issues = []
        metrics = self.calculate(shifts, facility_capacity)

        if metrics['census_estimated']:
            census_note = f"census estimated at {metrics['census']:g} residents, facility capacity unknown"
        else:
            census_note = f"census {metrics['census']:g} from capacity {facility_capacity}"

        base_metadata = {
            'census': metrics['census'],
            'census_estimated': metrics['census_estimated'],
            'total_nursing_hours': metrics['total_nursing_hours'],
            'rn_hours': metrics['rn_hours'],
        }

        if metrics['total_ppd'] < self.thresholds.min_total_ppd:
            issues.append(ComplianceIssue(
                type=IssueType.STAFFING_RATIO,
                severity=Severity.CRITICAL,
                message=(
                    f"{day.isoformat()}: Total nursing PPD ({metrics['total_ppd']:.2f}) below minimum "
                    f"({self.thresholds.min_total_ppd}); {census_note}"
                ),
                suggestions=(
                    'Add additional nursing hours to meet minimum requirements',
                    'Consider adjusting staff assignments or schedules',
                    'Review census projections for accuracy',
                ),
                metadata=dict(base_metadata, metric='total_ppd', value=metrics['total_ppd'],
                              threshold=self.thresholds.min_total_ppd),
            ))

        if metrics['rn_ppd'] < self.thresholds.min_rn_ppd:
            issues.append(ComplianceIssue(
                type=IssueType.STAFFING_RATIO,
                severity=Severity.CRITICAL,
                message=(
                    f"{day.isoformat()}: RN PPD ({metrics['rn_ppd']:.2f}) below minimum "
                    f"({self.thresholds.min_rn_ppd}); {census_note}"
                ),
                suggestions=(
                    'Increase RN staffing hours',
                    'Consider converting some LPN hours to RN hours',
                    'Review census projections for accuracy',
                ),
                metadata=dict(base_metadata, metric='rn_ppd', value=metrics['rn_ppd'],
                              threshold=self.thresholds.min_rn_ppd),
            ))

        return issues


class CoverageAnalyzer:
    """
    Hourly coverage model for one date.

    Emits one issue per offending hour: a critical gap for every hour without
    an RN, and a warning for every hour below the minimum head count.
    """

    def __init__(self, thresholds: Optional[ThresholdsConfig] = None,
                 overnight_attribution: str = "split"):
        if overnight_attribution not in OVERNIGHT_ATTRIBUTIONS:
            raise ValueError(f"Unknown overnight attribution: {overnight_attribution}")
        self.thresholds = thresholds or ThresholdsConfig()
        self.overnight_attribution = overnight_attribution

    @staticmethod
    def hour_range(start: int, end: int) -> Tuple[int, int]:
        """
        Hour slots [start hour, end hour) for the minute interval [start, end).

        The hour a shift ends in is not covered: an RN leaving at 07:01 leaves
        hour 7 without RN coverage.
        """
        return start // 60, end // 60

    def build_coverage(self, day: date, shifts: List[ShiftRecord],
                       carried_in: Optional[List[ShiftRecord]] = None) -> Tuple[DailyCoverage, List[ComplianceIssue]]:
        """
        Build the 24-slot model for day.

        carried_in holds the previous date's shifts; only the post-midnight
        part of its overnight shifts is applied here (split attribution).
        """
        coverage = DailyCoverage(day)
        valid, issues = split_valid_shifts(shifts)

        for shift, start, end in valid:
            if end <= MINUTES_PER_DAY:
                coverage.apply(shift.role, *self.hour_range(start, end))
                continue

            # Overnight shift
            coverage.apply(shift.role, *self.hour_range(start, MINUTES_PER_DAY))
            if self.overnight_attribution == "same_day":
                coverage.apply(shift.role, *self.hour_range(0, end - MINUTES_PER_DAY))

        if self.overnight_attribution == "split":
            for shift in carried_in or []:
                try:
                    start, end = parse_shift_span(shift)
                except ValueError:
                    # Already reported on the shift's own date
                    continue
                if end > MINUTES_PER_DAY:
                    coverage.apply(shift.role, *self.hour_range(0, end - MINUTES_PER_DAY))

        return coverage, issues

    def analyze(self, day: date, shifts: List[ShiftRecord],
                carried_in: Optional[List[ShiftRecord]] = None) -> List[ComplianceIssue]:
        """Return coverage gap issues (plus data quality issues) for one date"""
        coverage, issues = self.build_coverage(day, shifts, carried_in)
        issues = list(issues)
        day_label = day.isoformat()

        for slot in coverage.slots:
            if not slot.has_rn:
                issues.append(ComplianceIssue(
                    type=IssueType.COVERAGE_GAP,
                    severity=Severity.CRITICAL,
                    message=f"{day_label} Hour {slot.hour:02d}:00: No RN coverage (24/7 RN presence required)",
                    suggestions=(
                        'Schedule an RN for this time period',
                        'Extend existing RN shift to cover gap',
                        'Consider on-call RN coverage',
                    ),
                    metadata={'hour': slot.hour, 'has_rn': False, 'total_staff': slot.total_staff},
                ))

            if slot.total_staff < self.thresholds.min_staff_per_hour:
                issues.append(ComplianceIssue(
                    type=IssueType.COVERAGE_GAP,
                    severity=Severity.WARNING,
                    message=f"{day_label} Hour {slot.hour:02d}:00: Minimal staffing ({slot.total_staff} staff member(s))",
                    suggestions=(
                        'Consider additional staffing for resident safety',
                        'Review acuity levels for this time period',
                    ),
                    metadata={'hour': slot.hour, 'has_rn': slot.has_rn, 'total_staff': slot.total_staff},
                ))

        return issues


class OverlapDetector:
    """
    Finds employees assigned to overlapping shifts on the same date.

    The post-midnight part of the previous date's overnight shifts
    (carried_in) is also checked against the date's own shifts, so a
    Monday 22:00-06:00 shift conflicts with a Tuesday 05:00-13:00 one.
    """

    def analyze(self, day: date, shifts: List[ShiftRecord],
                carried_in: Optional[List[ShiftRecord]] = None) -> List[ComplianceIssue]:
        """Report each overlapping pair exactly once"""
        issues = []
        valid, _ = split_valid_shifts(shifts)

        by_employee = defaultdict(list)
        for entry in valid:
            by_employee[entry[0].employee_key].append(entry)

        for employee_shifts in by_employee.values():
            if len(employee_shifts) < 2:
                continue

            for i in range(len(employee_shifts)):
                for j in range(i + 1, len(employee_shifts)):
                    first, second = sorted(
                        (employee_shifts[i], employee_shifts[j]),
                        key=lambda entry: (entry[1], entry[2], entry[0].start_time, entry[0].end_time)
                    )
                    issue = self._overlap_issue(day, first, second)
                    if issue:
                        issues.append(issue)

        # Overnight tails from the day before, shifted onto this date's clock
        carried_valid, _ = split_valid_shifts(carried_in or [])
        for shift, start, end in carried_valid:
            if end <= MINUTES_PER_DAY:
                continue
            tail = (shift, start - MINUTES_PER_DAY, end - MINUTES_PER_DAY)
            for entry in by_employee.get(shift.employee_key, []):
                issue = self._overlap_issue(day, tail, entry, previous_date=shift.date)
                if issue:
                    issues.append(issue)

        return issues

    def _overlap_issue(self, day: date, first: Tuple[ShiftRecord, int, int],
                       second: Tuple[ShiftRecord, int, int],
                       previous_date: Optional[date] = None) -> Optional[ComplianceIssue]:
        shift1, start1, end1 = first
        shift2, start2, end2 = second
        if not (start1 < end2 and start2 < end1):
            return None

        first_label = f"{shift1.start_time}-{shift1.end_time}"
        if previous_date is not None:
            first_label = f"{previous_date.isoformat()} {first_label}"

        return ComplianceIssue(
            type=IssueType.DOUBLE_BOOKING,
            severity=Severity.CRITICAL,
            message=(
                f"{day.isoformat()}: {shift1.employee_name.strip()} has overlapping shifts: "
                f"{first_label} and {shift2.start_time}-{shift2.end_time}"
            ),
            suggestions=(
                'Adjust shift times to eliminate overlap',
                'Assign one shift to different employee',
                'Verify employee availability',
            ),
            shift_references=(
                ShiftReference.from_shift(shift1),
                ShiftReference.from_shift(shift2),
            ),
            metadata={
                'overlap_minutes': min(end1, end2) - max(start1, start2),
                'overlap_start': format_minutes(max(start1, start2) % MINUTES_PER_DAY),
            },
        )


class OvertimeAnalyzer:
    """Weekly overtime across the full schedule window"""

    def __init__(self, thresholds: Optional[ThresholdsConfig] = None):
        self.thresholds = thresholds or ThresholdsConfig()

    def total_hours(self, shifts: List[ShiftRecord]) -> Dict[str, Tuple[str, float]]:
        """Return {employee_key: (display_name, total_hours)} in first-seen order"""
        names = {}
        hours = defaultdict(list)
        for shift in shifts:
            key = shift.employee_key
            names.setdefault(key, shift.employee_name.strip())
            hours[key].append(shift.hours)
        return {key: (names[key], round(math.fsum(values), 6)) for key, values in hours.items()}

    def analyze(self, shifts: List[ShiftRecord]) -> List[ComplianceIssue]:
        issues = []
        limit = self.thresholds.weekly_overtime_hours

        for key, (name, total) in self.total_hours(shifts).items():
            if total <= limit:
                continue

            overtime_hours = round(total - limit, 6)
            severity = (Severity.CRITICAL if overtime_hours > self.thresholds.critical_overtime_hours
                        else Severity.WARNING)

            issues.append(ComplianceIssue(
                type=IssueType.OVERTIME_VIOLATION,
                severity=severity,
                message=f"{name} scheduled for {total:g} hours ({overtime_hours:g} overtime hours)",
                suggestions=(
                    'Review if overtime is necessary and approved',
                    'Consider redistributing hours to other staff',
                    'Ensure compliance with labor regulations',
                ),
                shift_references=tuple(
                    ShiftReference.from_shift(s) for s in shifts if s.employee_key == key
                ),
                metadata={'total_hours': total, 'overtime_hours': overtime_hours},
            ))

        return issues


def previous_day_shifts(by_date: Dict[date, List[ShiftRecord]], day: date) -> List[ShiftRecord]:
    """Shifts on the day before, for carrying overnight coverage forward"""
    return by_date.get(day - timedelta(days=1), [])


# Wrapper functions

def group_by_date(shifts: List[ShiftRecord]) -> Dict[date, List[ShiftRecord]]:
    """Wrapper: Partition shifts by calendar date."""
    return DailyAggregator().aggregate(shifts)


def analyze_ratios(day: date, shifts: List[ShiftRecord], facility_capacity: int = 0,
                   thresholds: Optional[ThresholdsConfig] = None) -> List[ComplianceIssue]:
    """Wrapper: PPD checks for one date."""
    return RatioAnalyzer(thresholds).analyze(day, shifts, facility_capacity)


def analyze_coverage(day: date, shifts: List[ShiftRecord],
                     carried_in: Optional[List[ShiftRecord]] = None,
                     thresholds: Optional[ThresholdsConfig] = None,
                     overnight_attribution: str = "split") -> List[ComplianceIssue]:
    """Wrapper: Hourly coverage checks for one date."""
    return CoverageAnalyzer(thresholds, overnight_attribution).analyze(day, shifts, carried_in)


def detect_overlaps(day: date, shifts: List[ShiftRecord],
                    carried_in: Optional[List[ShiftRecord]] = None) -> List[ComplianceIssue]:
    """Wrapper: Double booking checks for one date."""
    return OverlapDetector().analyze(day, shifts, carried_in)


def analyze_overtime(shifts: List[ShiftRecord],
                     thresholds: Optional[ThresholdsConfig] = None) -> List[ComplianceIssue]:
    """Wrapper: Weekly overtime checks for the whole schedule."""
    return OvertimeAnalyzer(thresholds).analyze(shifts)
