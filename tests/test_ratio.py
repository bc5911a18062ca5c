"""
Tests for the DailyAggregator and RatioAnalyzer classes.
"""

import unittest
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from compliance_engine.analyzers import DailyAggregator, RatioAnalyzer, analyze_ratios, group_by_date
from compliance_engine.config import ThresholdsConfig
from compliance_engine.models import IssueType, Severity
from tests.fixtures import MONDAY, TUESDAY, make_shift


def hours_block(role, count, hours, day=MONDAY, prefix=None):
    prefix = prefix or role
    return [make_shift(f"{prefix} {i}", role, day, "07:00", "15:00", hours=hours) for i in range(count)]


class TestDailyAggregator(unittest.TestCase):
    """Test cases for DailyAggregator."""

    def test_groups_by_date_preserving_order(self):
        """Test grouping by date."""
        first = make_shift("Alice", "RN", MONDAY, "07:00", "15:00")
        second = make_shift("Bob", "CNA", TUESDAY, "07:00", "15:00")
        third = make_shift("Carol", "LPN", MONDAY, "15:00", "23:00")

        grouped = DailyAggregator().aggregate([first, second, third])

        self.assertEqual(set(grouped), {MONDAY, TUESDAY})
        self.assertEqual(grouped[MONDAY], [first, third])
        self.assertEqual(grouped[TUESDAY], [second])

    def test_empty_input(self):
        """Test grouping of an empty shift list."""
        self.assertEqual(group_by_date([]), {})


class TestRatioAnalyzer(unittest.TestCase):
    """Test cases for RatioAnalyzer."""

    def setUp(self):
        self.analyzer = RatioAnalyzer(ThresholdsConfig())

    def test_capacity_based_census(self):
        """Capacity 100, 300 nursing hours (50 RN): only the RN check fires."""
        shifts = (hours_block("RN", 5, 10) +
                  hours_block("LPN", 5, 10) +
                  hours_block("CNA", 20, 10))

        metrics = self.analyzer.calculate(shifts, facility_capacity=100)
        self.assertAlmostEqual(metrics['census'], 85.0)
        self.assertAlmostEqual(metrics['total_nursing_hours'], 300.0)
        self.assertAlmostEqual(metrics['total_ppd'], 300 / 85, places=6)
        self.assertAlmostEqual(metrics['rn_ppd'], 50 / 85, places=6)

        issues = self.analyzer.analyze(MONDAY, shifts, facility_capacity=100)
        self.assertEqual(len(issues), 1)
        issue = issues[0]
        self.assertEqual(issue.type, IssueType.STAFFING_RATIO)
        self.assertEqual(issue.severity, Severity.CRITICAL)
        self.assertEqual(issue.metadata['metric'], 'rn_ppd')
        self.assertIn("2025-03-03", issue.message)
        self.assertIn("RN PPD (0.59)", issue.message)
        self.assertFalse(issue.metadata['census_estimated'])

    def test_both_checks_fire_independently(self):
        """Test that total and RN checks both fire."""
        shifts = hours_block("CNA", 2, 8)
        issues = self.analyzer.analyze(MONDAY, shifts, facility_capacity=50)

        self.assertEqual(len(issues), 2)
        self.assertEqual([i.metadata['metric'] for i in issues], ['total_ppd', 'rn_ppd'])
        self.assertTrue(all(i.severity == Severity.CRITICAL for i in issues))

    def test_fallback_census_is_visible(self):
        """Test that the fallback census is flagged."""
        shifts = hours_block("RN", 2, 8)
        issues = self.analyzer.analyze(MONDAY, shifts, facility_capacity=0)

        self.assertTrue(issues)
        for issue in issues:
            self.assertTrue(issue.metadata['census_estimated'])
            self.assertEqual(issue.metadata['census'], 45.0)
            self.assertIn("estimated", issue.message)

    def test_configurable_fallback_census(self):
        """Test a custom fallback census."""
        analyzer = RatioAnalyzer(ThresholdsConfig(fallback_census=10))
        census, estimated = analyzer.estimate_census(0)
        self.assertEqual(census, 10)
        self.assertTrue(estimated)

    def test_fallback_census_cannot_be_zero(self):
        """Test rejection of a zero fallback census."""
        with self.assertRaises(ValueError):
            ThresholdsConfig(fallback_census=0)

    def test_well_staffed_day_has_no_issues(self):
        """Test a well staffed day."""
        # Capacity 47 -> census 39.95; 40 RN hours + 100 CNA hours
        shifts = hours_block("RN", 5, 8) + hours_block("CNA", 10, 10)
        self.assertEqual(analyze_ratios(MONDAY, shifts, 47), [])

    def test_non_nursing_roles_not_counted(self):
        """Test that non-nursing roles are excluded."""
        shifts = hours_block("Unit Manager", 3, 8) + hours_block("Other", 3, 8)
        metrics = self.analyzer.calculate(shifts, facility_capacity=10)
        self.assertEqual(metrics['total_nursing_hours'], 0)

    def test_custom_thresholds(self):
        """Test custom PPD thresholds."""
        analyzer = RatioAnalyzer(ThresholdsConfig(min_total_ppd=1.0, min_rn_ppd=0.1))
        shifts = hours_block("RN", 1, 8) + hours_block("CNA", 4, 8)
        # census 8.5, total 40h -> 4.7 PPD, RN 0.94 PPD
        self.assertEqual(analyzer.analyze(MONDAY, shifts, facility_capacity=10), [])


if __name__ == '__main__':
    unittest.main()
