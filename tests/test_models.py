"""
Tests for the data model and time parsing.
"""

import unittest
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from compliance_engine.models import (
    ComplianceIssue, ComplianceReport, DailyCoverage, IssueSource, IssueType,
    Role, Severity, ShiftRecord, format_minutes, parse_time_of_day,
)
from tests.fixtures import MONDAY, make_shift


class TestTimeParsing(unittest.TestCase):
    """Test cases for minutes-since-midnight parsing."""

    def test_parse_basic_times(self):
        """Test parsing of HH:MM times."""
        self.assertEqual(parse_time_of_day("00:00"), 0)
        self.assertEqual(parse_time_of_day("07:30"), 450)
        self.assertEqual(parse_time_of_day("9:05"), 545)
        self.assertEqual(parse_time_of_day("23:59"), 1439)
        self.assertEqual(parse_time_of_day(" 16:00:00 "), 960)

    def test_end_of_day_only_when_allowed(self):
        """Test that 24:00 is accepted only as an end time."""
        self.assertEqual(parse_time_of_day("24:00", allow_end_of_day=True), 1440)
        with self.assertRaises(ValueError):
            parse_time_of_day("24:00")

    def test_invalid_times(self):
        """Test rejection of invalid times."""
        for value in ["", "7", "25:00", "12:60", "ab:cd", "24:30", None]:
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    parse_time_of_day(value, allow_end_of_day=True)

    def test_numeric_not_lexicographic(self):
        """'9:00' sorts after '10:00' as text but is earlier in the day."""
        self.assertLess(parse_time_of_day("9:00"), parse_time_of_day("10:00"))

    def test_format_minutes(self):
        """Test formatting of minutes as HH:MM."""
        self.assertEqual(format_minutes(0), "00:00")
        self.assertEqual(format_minutes(545), "09:05")


class TestRole(unittest.TestCase):

    def test_parse_tokens(self):
        """Test role parsing."""
        self.assertEqual(Role.parse("rn"), Role.RN)
        self.assertEqual(Role.parse(" LPN "), Role.LPN)
        self.assertEqual(Role.parse("UNIT MANAGER"), Role.UNIT_MANAGER)
        self.assertEqual(Role.parse("Other"), Role.OTHER)

    def test_parse_invalid(self):
        """Test rejection of unknown roles."""
        with self.assertRaises(ValueError):
            Role.parse("Doctor")

    def test_nursing_roles(self):
        """Test which roles count as nursing."""
        self.assertTrue(Role.CNA.is_nursing)
        self.assertFalse(Role.UNIT_MANAGER.is_nursing)


class TestShiftRecord(unittest.TestCase):

    def test_hours_must_be_positive(self):
        """Test rejection of zero and negative hours."""
        with self.assertRaises(ValueError):
            make_shift("Alice", "RN", MONDAY, "07:00", "15:00", hours=0)
        with self.assertRaises(ValueError):
            make_shift("Alice", "RN", MONDAY, "07:00", "15:00", hours=-1)

    def test_hours_must_be_finite(self):
        """Test that NaN and infinite hours are rejected."""
        for hours in (float("nan"), float("inf"), float("-inf")):
            with self.assertRaises(ValueError):
                make_shift("Alice", "RN", MONDAY, "07:00", "15:00", hours=hours)

    def test_name_required(self):
        """Test that an employee name is required."""
        with self.assertRaises(ValueError):
            make_shift("  ", "RN", MONDAY, "07:00", "15:00")

    def test_role_string_is_coerced(self):
        """Test role coercion from strings."""
        shift = ShiftRecord("Alice", "cna", MONDAY, "07:00", "15:00", 8)
        self.assertEqual(shift.role, Role.CNA)

    def test_is_overtime_flag(self):
        """Test the per-shift overtime flag."""
        self.assertFalse(make_shift("Alice", "RN", MONDAY, "07:00", "15:00", hours=8).is_overtime)
        self.assertTrue(make_shift("Alice", "RN", MONDAY, "07:00", "19:00", hours=12).is_overtime)

    def test_employee_key_normalized(self):
        """Test employee name normalization."""
        shift = make_shift("  Alice JOHNSON ", "RN", MONDAY, "07:00", "15:00")
        self.assertEqual(shift.employee_key, "alice johnson")

    def test_immutable(self):
        """Test that shifts are immutable."""
        shift = make_shift("Alice", "RN", MONDAY, "07:00", "15:00")
        with self.assertRaises(AttributeError):
            shift.hours = 12

    def test_to_dict(self):
        """Test shift serialization."""
        data = make_shift("Alice", "RN", MONDAY, "07:00", "19:00", hours=12, unit="East").to_dict()
        self.assertEqual(data['date'], "2025-03-03")
        self.assertEqual(data['role'], "RN")
        self.assertTrue(data['overtime'])
        self.assertEqual(data['unit'], "East")


class TestDailyCoverage(unittest.TestCase):

    def test_apply_marks_roles_and_counts(self):
        """Test marking hour slots by role."""
        coverage = DailyCoverage(MONDAY)
        coverage.apply(Role.RN, 8, 10)
        coverage.apply(Role.CNA, 9, 11)
        coverage.apply(Role.UNIT_MANAGER, 9, 10)

        self.assertTrue(coverage[8].has_rn)
        self.assertEqual(coverage[8].total_staff, 1)
        self.assertEqual(coverage[9].total_staff, 3)
        self.assertTrue(coverage[10].has_cna)
        self.assertFalse(coverage[10].has_rn)
        self.assertEqual(coverage.rn_hours(), [8, 9])

    def test_apply_is_clamped_to_day(self):
        """Test that hour ranges are clamped to the day."""
        coverage = DailyCoverage(MONDAY)
        coverage.apply(Role.LPN, 22, 30)
        self.assertTrue(coverage[23].has_lpn)
        self.assertEqual(len(coverage.slots), 24)


class TestComplianceReport(unittest.TestCase):

    def _issue(self, severity, issue_type=IssueType.COVERAGE_GAP):
        return ComplianceIssue(type=issue_type, severity=severity, message=f"{severity.value} issue")

    def test_summary_counts(self):
        """Test report summary counts."""
        report = ComplianceReport(
            total_shifts=3,
            compliance_issues=[
                self._issue(Severity.CRITICAL),
                self._issue(Severity.CRITICAL, IssueType.DOUBLE_BOOKING),
                self._issue(Severity.WARNING),
                self._issue(Severity.INFO),
            ],
            parse_errors=["Row 4: Invalid role"],
        )
        self.assertEqual(report.critical_issues, 2)
        self.assertEqual(report.warnings, 1)
        self.assertEqual(report.info, 1)
        self.assertEqual(len(report.issues_of_type(IssueType.COVERAGE_GAP)), 3)

        data = report.to_dict()
        self.assertEqual(data['summary']['critical_issues'], 2)
        self.assertEqual(data['summary']['parse_errors'], 1)
        self.assertEqual(data['compliance_issues'][0]['type'], 'coverage_gap')
        self.assertEqual(data['compliance_issues'][0]['source'], 'engine')

    def test_with_source_copies_issue(self):
        """Test retagging an issue with a new source."""
        issue = self._issue(Severity.INFO)
        advisory = issue.with_source(IssueSource.ADVISORY)
        self.assertEqual(advisory.source, IssueSource.ADVISORY)
        self.assertEqual(issue.source, IssueSource.ENGINE)
        self.assertEqual(advisory.message, issue.message)


if __name__ == '__main__':
    unittest.main()
