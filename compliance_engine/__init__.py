"""
Staffing Schedule Compliance Engine

Checks uploaded care-facility shift schedules against staffing rules:
nursing hours per patient day, 24/7 RN coverage, double bookings and
weekly overtime, with an optional Gemini advisory review.
"""

__version__ = "1.0.0"

from .models import (
    ComplianceIssue,
    ComplianceReport,
    FacilityProfile,
    IssueSource,
    IssueType,
    NoValidShiftsError,
    Role,
    Severity,
    ShiftRecord,
)
from .analyzers import (
    CoverageAnalyzer,
    DailyAggregator,
    OverlapDetector,
    OvertimeAnalyzer,
    RatioAnalyzer,
)
from .classifier import IssueClassifier
from .config import ComplianceConfig, ThresholdsConfig, load_config
from .engine import ComplianceEngine, check_schedule_compliance

__all__ = [
    "ComplianceEngine",
    "check_schedule_compliance",
    "ComplianceConfig",
    "ThresholdsConfig",
    "load_config",
    "DailyAggregator",
    "RatioAnalyzer",
    "CoverageAnalyzer",
    "OverlapDetector",
    "OvertimeAnalyzer",
    "IssueClassifier",
    "ComplianceIssue",
    "ComplianceReport",
    "FacilityProfile",
    "IssueSource",
    "IssueType",
    "NoValidShiftsError",
    "Role",
    "Severity",
    "ShiftRecord",
]
