"""
Staffing Schedule Compliance Engine

Runs the analyzers over one uploaded schedule:

    shifts -> DailyAggregator -> {RatioAnalyzer, CoverageAnalyzer, OverlapDetector} per date
           -> OvertimeAnalyzer once over the whole set
           -> IssueClassifier -> ComplianceReport

The per-date analyzers and the overtime analyzer are independent, so they are
dispatched on a thread pool. The optional advisory review is started first
and collected last, bounded by its own timeout.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from .advisory import AdvisoryReviewer
from .analyzers import (
    CoverageAnalyzer, DailyAggregator, OverlapDetector, OvertimeAnalyzer,
    RatioAnalyzer, previous_day_shifts,
)
from .classifier import IssueClassifier
from .config import ComplianceConfig
from .models import (
    ComplianceIssue, ComplianceReport, FacilityProfile, NoValidShiftsError, ShiftRecord,
)
from .monitoring import RunMonitor

logger = logging.getLogger(__name__)


class ComplianceEngine:
    """
    Stateless compliance checker for staff shift schedules.

    The engine keeps no state between runs; check() can be called repeatedly
    and concurrently with different shift sets.
    """

    def __init__(self, config: Optional[ComplianceConfig] = None,
                 reviewer: Optional[AdvisoryReviewer] = None,
                 monitor: Optional[RunMonitor] = None):
        """
        Args:
            config: Configuration object (loaded from file/env if omitted)
            reviewer: Advisory reviewer (built from config when advisory is enabled)
            monitor: Optional run monitor
        """
        if config is None:
            from .config import ConfigManager
            config = ConfigManager().config

        self.config = config
        thresholds = config.thresholds

        self.aggregator = DailyAggregator()
        self.ratio_analyzer = RatioAnalyzer(thresholds)
        self.coverage_analyzer = CoverageAnalyzer(thresholds, config.engine.overnight_attribution)
        self.overlap_detector = OverlapDetector()
        self.overtime_analyzer = OvertimeAnalyzer(thresholds)
        self.classifier = IssueClassifier()

        if reviewer is None and config.advisory.enabled:
            reviewer = AdvisoryReviewer(config.advisory)
        self.reviewer = reviewer
        self.monitor = monitor

    def check(self, shifts: Iterable[ShiftRecord], facility_capacity: int = 0,
              facility: Optional[FacilityProfile] = None,
              parse_errors: Optional[List[str]] = None) -> ComplianceReport:
        """
        Analyze a schedule.

        Args:
            shifts: Validated shift records
            facility_capacity: Licensed beds, 0 when unknown
            facility: Facility context for the advisory review
            parse_errors: Row errors from the importer, passed through to the report

        Raises:
            NoValidShiftsError: if there are no shifts to analyze
        """
        shifts = list(shifts)
        if not shifts:
            raise NoValidShiftsError("No valid shifts found in uploaded schedule")

        facility_capacity = max(0, int(facility_capacity or 0))
        start_time = self.monitor.start_timer() if self.monitor else None

        pending = None
        if self.reviewer is not None:
            pending = self.reviewer.start(shifts, facility_capacity, facility)

        try:
            by_date = self.aggregator.aggregate(shifts)
            if self.config.engine.parallel:
                daily_issues, overtime_issues = self._run_parallel(by_date, shifts, facility_capacity)
            else:
                daily_issues, overtime_issues = self._run_serial(by_date, shifts, facility_capacity)
        except BaseException:
            if pending is not None:
                pending.cancel()
            raise

        advisory_issues = pending.result() if pending is not None else []

        issues = self.classifier.merge(daily_issues, overtime_issues, advisory_issues)
        report = ComplianceReport(
            total_shifts=len(shifts),
            compliance_issues=issues,
            parse_errors=list(parse_errors or []),
            advisory_used=pending is not None and bool(pending.dispatched),
        )

        logger.info(
            "Analyzed %d shifts over %d dates: %d issues (%d critical, %d warnings)",
            report.total_shifts, len(by_date), len(issues), report.critical_issues, report.warnings
        )

        if self.monitor:
            duration = self.monitor.end_timer(start_time)
            self.monitor.record_run(report, duration, len(by_date))

        return report

    def _analyze_date(self, day: date, day_shifts: List[ShiftRecord],
                      carried_in: List[ShiftRecord], facility_capacity: int) -> List[ComplianceIssue]:
        issues = []
        issues.extend(self.ratio_analyzer.analyze(day, day_shifts, facility_capacity))
        issues.extend(self.coverage_analyzer.analyze(day, day_shifts, carried_in))
        issues.extend(self.overlap_detector.analyze(day, day_shifts, carried_in))
        return issues

    def _run_serial(self, by_date: Dict[date, List[ShiftRecord]], shifts: List[ShiftRecord],
                    facility_capacity: int) -> Tuple[Dict[date, List[ComplianceIssue]], List[ComplianceIssue]]:
        daily_issues = {
            day: self._analyze_date(day, day_shifts, previous_day_shifts(by_date, day), facility_capacity)
            for day, day_shifts in by_date.items()
        }
        return daily_issues, self.overtime_analyzer.analyze(shifts)

    def _run_parallel(self, by_date: Dict[date, List[ShiftRecord]], shifts: List[ShiftRecord],
                      facility_capacity: int) -> Tuple[Dict[date, List[ComplianceIssue]], List[ComplianceIssue]]:
        with ThreadPoolExecutor(max_workers=self.config.engine.max_workers,
                                thread_name_prefix="compliance") as executor:
            overtime_future = executor.submit(self.overtime_analyzer.analyze, shifts)

            futures = {}
            for day, day_shifts in by_date.items():
                carried_in = previous_day_shifts(by_date, day)
                futures[day] = (
                    executor.submit(self.ratio_analyzer.analyze, day, day_shifts, facility_capacity),
                    executor.submit(self.coverage_analyzer.analyze, day, day_shifts, carried_in),
                    executor.submit(self.overlap_detector.analyze, day, day_shifts, carried_in),
                )

            # result() re-raises analyzer errors, failing the whole run
            daily_issues = {
                day: [issue for future in day_futures for issue in future.result()]
                for day, day_futures in futures.items()
            }
            overtime_issues = overtime_future.result()

        return daily_issues, overtime_issues


def check_schedule_compliance(shifts: Iterable[ShiftRecord], facility_capacity: int = 0,
                              config: Optional[ComplianceConfig] = None,
                              facility: Optional[FacilityProfile] = None,
                              parse_errors: Optional[List[str]] = None) -> ComplianceReport:
    """Wrapper: Run the compliance engine once."""
    engine = ComplianceEngine(config or ComplianceConfig())
    return engine.check(shifts, facility_capacity, facility, parse_errors)
