"""
Issue Classifier - merges analyzer output into one ordered issue list.
"""

from datetime import date
from typing import Dict, List, Optional

from .models import ComplianceIssue, IssueSource, IssueType, Severity

# Order of issue kinds inside one date's block
DAILY_TYPE_ORDER = {
    IssueType.STAFFING_RATIO: 0,
    IssueType.COVERAGE_GAP: 1,
    IssueType.DOUBLE_BOOKING: 2,
    IssueType.DATA_QUALITY: 3,
}


class IssueClassifier:
    """
    Concatenates per-date issues (dates in calendar order), then the global
    overtime issues, then any advisory findings tagged as advisory.

    Each deterministic analyzer owns a distinct issue type, so no
    deduplication happens between them. Advisory findings that repeat an
    engine issue verbatim are dropped.
    """

    def merge(self, daily_issues: Dict[date, List[ComplianceIssue]],
              overtime_issues: List[ComplianceIssue],
              advisory_issues: Optional[List[ComplianceIssue]] = None) -> List[ComplianceIssue]:
        merged = []

        for day in sorted(daily_issues):
            block = daily_issues[day]
            merged.extend(sorted(block, key=lambda issue: DAILY_TYPE_ORDER.get(issue.type, len(DAILY_TYPE_ORDER))))

        merged.extend(overtime_issues)

        if advisory_issues:
            seen = {(issue.type, issue.message) for issue in merged}
            for issue in advisory_issues:
                if (issue.type, issue.message) in seen:
                    continue
                seen.add((issue.type, issue.message))
                if issue.source != IssueSource.ADVISORY:
                    issue = issue.with_source(IssueSource.ADVISORY)
                merged.append(issue)

        return merged

    def summarize(self, issues: List[ComplianceIssue]) -> Dict[str, int]:
        """Severity and source counts for a merged list"""
        return {
            'compliance_issues': len(issues),
            'critical_issues': sum(1 for i in issues if i.severity == Severity.CRITICAL),
            'warnings': sum(1 for i in issues if i.severity == Severity.WARNING),
            'info': sum(1 for i in issues if i.severity == Severity.INFO),
            'advisory_issues': sum(1 for i in issues if i.source == IssueSource.ADVISORY),
        }
