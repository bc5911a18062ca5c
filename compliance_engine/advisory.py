"""
Advisory Compliance Review

Optional LangChain + Google Gemini pass that looks for patterns the
deterministic analyzers do not cover (skill mix, continuity of care,
weekend adequacy, state-specific rules). Its findings are supplementary:
they are tagged as advisory, and any failure (missing key, timeout,
transport error, malformed response) is logged and yields no findings.
"""

import json
import logging
import os
import re
import time
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FuturesTimeout
from typing import List, Optional

from dotenv import load_dotenv
from langchain_core.prompts import ChatPromptTemplate
from langchain_google_genai import ChatGoogleGenerativeAI
from pydantic import BaseModel, Field, ValidationError

from .config import AdvisoryConfig
from .models import (
    ComplianceIssue, FacilityProfile, IssueSource, IssueType, Severity, ShiftRecord,
)

load_dotenv()

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r'^\s*```(?:json)?\s*|\s*```\s*$', re.IGNORECASE)

SYSTEM_PROMPT = """You are a staffing compliance analyst for skilled nursing facilities.
Analyze the provided staff schedule for potential compliance issues beyond basic PPD calculations.

Look for:
1. Patterns that might indicate staffing problems
2. Skill mix issues (appropriate balance of RN/LPN/CNA)
3. Continuity of care concerns
4. State-specific requirements for {facility_state}
5. Experience level distribution
6. Weekend/holiday staffing adequacy

Return a JSON array of compliance issues with this format:
[{{
  "type": "staffing_ratio|overtime_violation|coverage_gap|license_requirement|double_booking",
  "severity": "critical|warning|info",
  "message": "Description of the issue, naming the date and/or employee",
  "suggestions": ["Suggestion 1", "Suggestion 2"]
}}]

Only return issues that aren't already covered by basic PPD, hourly coverage, double booking and weekly overtime checks.
Return an empty array if there is nothing to add. Return JSON only."""

HUMAN_PROMPT = """Facility: {facility_name} ({facility_state})
Capacity: {facility_capacity} beds

Schedule Data ({shift_count} shifts{truncation_note}):
{schedule_json}

Please analyze this schedule for advanced compliance issues."""


class RateLimiter:
    """Rate limiter for advisory API calls"""
    def __init__(self, calls_per_minute=9):
        self.calls_per_minute = calls_per_minute
        self.call_times = deque()

    def wait_if_needed(self):
        """Wait if we're approaching rate limit"""
        now = time.time()

        # Remove calls older than 60 seconds
        while self.call_times and now - self.call_times[0] > 60:
            self.call_times.popleft()

        if len(self.call_times) >= self.calls_per_minute:
            sleep_time = 60 - (now - self.call_times[0]) + 1
            if sleep_time > 0:
                logger.info("Advisory rate limit: waiting %.1fs", sleep_time)
                time.sleep(sleep_time)
                self.call_times.clear()

        self.call_times.append(time.time())


class AdvisoryFinding(BaseModel):
    """One issue as returned by the model"""
    type: IssueType
    severity: Severity = Severity.INFO
    message: str = Field(min_length=1)
    suggestions: List[str] = Field(default_factory=list)


class PendingReview:
    """Handle on an advisory call running in the background"""

    def __init__(self, future: Future, deadline: float, executor: Optional[ThreadPoolExecutor] = None,
                 dispatched: bool = True):
        self.future = future
        self.deadline = deadline
        self.executor = executor
        # False when the review was skipped without calling the model
        self.dispatched = dispatched

    def result(self) -> List[ComplianceIssue]:
        """Wait at most until the deadline; an expired call yields no findings"""
        remaining = max(0.0, self.deadline - time.monotonic())
        try:
            return self.future.result(timeout=remaining)
        except FuturesTimeout:
            logger.warning("Advisory review timed out; continuing without advisory findings")
            self.future.cancel()
            return []
        finally:
            if self.executor is not None:
                self.executor.shutdown(wait=False)

    def cancel(self):
        """Abandon the call without waiting for it"""
        self.future.cancel()
        if self.executor is not None:
            self.executor.shutdown(wait=False)


class AdvisoryReviewer:
    """Runs the advisory prompt against Gemini and converts the reply into issues"""

    def __init__(self, config: Optional[AdvisoryConfig] = None,
                 api_key: Optional[str] = None, llm=None):
        self.config = config or AdvisoryConfig()
        self.api_key = api_key or os.getenv("GEMINI_API_KEY")
        self._llm = llm
        self.rate_limiter = RateLimiter(calls_per_minute=self.config.calls_per_minute)
        self.prompt = ChatPromptTemplate.from_messages([
            ("system", SYSTEM_PROMPT),
            ("human", HUMAN_PROMPT),
        ])

    @property
    def available(self) -> bool:
        return self._llm is not None or bool(self.api_key)

    @property
    def llm(self):
        if self._llm is None:
            self._llm = ChatGoogleGenerativeAI(
                model=self.config.model_name,
                temperature=self.config.temperature,
                google_api_key=self.api_key,
                timeout=self.config.timeout_seconds,
                max_retries=self.config.max_retries,
            )
        return self._llm

    def build_messages(self, shifts: List[ShiftRecord], facility_capacity: int = 0,
                       facility: Optional[FacilityProfile] = None):
        """Format the prompt for a shift set"""
        facility = facility or FacilityProfile()
        limit = self.config.max_shifts_in_prompt
        included = shifts[:limit]
        truncation_note = f", first {limit} shown" if len(shifts) > limit else ""

        return self.prompt.format_messages(
            facility_name=facility.name,
            facility_state=facility.state or "unspecified state",
            facility_capacity=facility_capacity or "unknown",
            shift_count=len(shifts),
            truncation_note=truncation_note,
            schedule_json=json.dumps([s.to_dict() for s in included], indent=2),
        )

    def parse_response(self, content) -> List[ComplianceIssue]:
        """Convert model output into advisory issues, dropping anything malformed"""
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part) for part in content
            )
        if not content or not str(content).strip():
            return []

        text = _FENCE_PATTERN.sub("", str(content).strip())
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("Failed to parse advisory compliance analysis: %s", e)
            return []

        if isinstance(payload, dict):
            payload = payload.get("issues", [])
        if not isinstance(payload, list):
            logger.warning("Advisory response was not a list of issues")
            return []

        issues = []
        for item in payload:
            try:
                finding = AdvisoryFinding.model_validate(item)
            except ValidationError as e:
                logger.debug("Dropping malformed advisory finding %r: %s", item, e)
                continue
            issues.append(ComplianceIssue(
                type=finding.type,
                severity=finding.severity,
                message=finding.message,
                suggestions=tuple(finding.suggestions),
                source=IssueSource.ADVISORY,
                metadata={'model': self.config.model_name},
            ))
        return issues

    def _call(self, shifts: List[ShiftRecord], facility_capacity: int,
              facility: Optional[FacilityProfile]) -> List[ComplianceIssue]:
        try:
            self.rate_limiter.wait_if_needed()
            messages = self.build_messages(shifts, facility_capacity, facility)
            response = self.llm.invoke(messages)
            return self.parse_response(response.content)
        except Exception as e:
            logger.warning("Advisory compliance analysis failed: %s", e)
            return []

    def start(self, shifts: List[ShiftRecord], facility_capacity: int = 0,
              facility: Optional[FacilityProfile] = None) -> PendingReview:
        """Start the advisory call in the background and return immediately"""
        deadline = time.monotonic() + self.config.timeout_seconds

        if not self.available:
            logger.info("GEMINI_API_KEY not found - skipping advisory review")
            future = Future()
            future.set_result([])
            return PendingReview(future, deadline, dispatched=False)

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="advisory")
        future = executor.submit(self._call, list(shifts), facility_capacity, facility)
        return PendingReview(future, deadline, executor)

    def review(self, shifts: List[ShiftRecord], facility_capacity: int = 0,
               facility: Optional[FacilityProfile] = None) -> List[ComplianceIssue]:
        """Blocking advisory review bounded by the configured timeout"""
        return self.start(shifts, facility_capacity, facility).result()
