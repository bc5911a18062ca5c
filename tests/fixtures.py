"""
Test fixtures and utilities for compliance engine tests.
"""

from datetime import date, timedelta
from typing import List, Optional

from compliance_engine.config import ComplianceConfig, EngineConfig, ThresholdsConfig
from compliance_engine.models import Role, ShiftRecord


MONDAY = date(2025, 3, 3)
TUESDAY = MONDAY + timedelta(days=1)
WEDNESDAY = MONDAY + timedelta(days=2)


def make_shift(name: str, role, day: date, start: str, end: str,
               hours: Optional[float] = 8.0, **kwargs) -> ShiftRecord:
    """Build a ShiftRecord with sensible defaults."""
    return ShiftRecord(
        employee_name=name,
        role=Role.parse(role),
        date=day,
        start_time=start,
        end_time=end,
        hours=hours,
        **kwargs
    )


def round_the_clock_rns(day: date) -> List[ShiftRecord]:
    """Three 8-hour RN shifts covering the whole day."""
    return [
        make_shift("Alice Johnson", "RN", day, "00:00", "08:00"),
        make_shift("Bob Smith", "RN", day, "08:00", "16:00"),
        make_shift("Carol Davis", "RN", day, "16:00", "24:00"),
    ]


def round_the_clock_cnas(day: date) -> List[ShiftRecord]:
    """Three 8-hour CNA shifts covering the whole day."""
    return [
        make_shift("Dan Lee", "CNA", day, "00:00", "08:00"),
        make_shift("Eve Clark", "CNA", day, "08:00", "16:00"),
        make_shift("Fay Lewis", "CNA", day, "16:00", "24:00"),
    ]


def fully_staffed_day(day: date) -> List[ShiftRecord]:
    """A day with continuous RN coverage and two staff every hour."""
    return round_the_clock_rns(day) + round_the_clock_cnas(day)


# Uploaded CSV with a header, two good rows and four bad ones
SAMPLE_CSV = """Employee Name,Role,Date,Start Time,End Time,Hours,Employee ID,Unit
Alice Johnson,RN,2025-03-03,07:00,15:00,8,E001,East Wing
Bob Smith,unit manager,03/03/2025,08:00,16:00,8,,
Carol Davis,RN,2025-03-03,07:00
Dan Lee,Doctor,2025-03-03,07:00,15:00,8
Eve Clark,CNA,not-a-date,07:00,15:00,8
Fay Lewis,CNA,2025-03-03,07:00,15:00,0
"""


def create_test_config(parallel: bool = True, **threshold_overrides) -> ComplianceConfig:
    """Create a configuration with advisory disabled."""
    config = ComplianceConfig(
        thresholds=ThresholdsConfig(**threshold_overrides),
        engine=EngineConfig(parallel=parallel, max_workers=4),
    )
    config.advisory.enabled = False
    return config


def mock_llm_response(content: str = "[]"):
    """Create a mock LLM response object."""
    class MockResponse:
        def __init__(self, content):
            self.content = content

    return MockResponse(content)
