"""
Run Monitoring for the Compliance Engine

Tracks per-run timings and issue counts across a session.
"""

import json
import os
import time
from datetime import datetime
from typing import Dict, List, Optional

from .models import ComplianceReport, IssueSource


class RunMonitor:
    """Monitors and logs engine runs"""

    def __init__(self, log_dir: str = "logs"):
        self.log_dir = log_dir
        self.session_start = datetime.now()
        self.runs: List[Dict] = []
        self.metrics = {
            'analysis_times': [],
            'advisory_calls': 0,
            'advisory_findings': 0,
            'shifts_analyzed': 0,
        }

    def start_timer(self) -> float:
        """Start timing an operation"""
        return time.monotonic()

    def end_timer(self, start_time: float) -> float:
        """End timing and record analysis duration"""
        duration = time.monotonic() - start_time
        self.metrics['analysis_times'].append(duration)
        return duration

    def record_run(self, report: ComplianceReport, duration: float, dates: int):
        """Record a finished run"""
        advisory_findings = sum(1 for i in report.compliance_issues if i.source == IssueSource.ADVISORY)

        self.metrics['shifts_analyzed'] += report.total_shifts
        if report.advisory_used:
            self.metrics['advisory_calls'] += 1
            self.metrics['advisory_findings'] += advisory_findings

        self.runs.append({
            'timestamp': datetime.now().isoformat(),
            'duration_seconds': round(duration, 4),
            'total_shifts': report.total_shifts,
            'dates': dates,
            'compliance_issues': len(report.compliance_issues),
            'critical_issues': report.critical_issues,
            'warnings': report.warnings,
            'advisory_findings': advisory_findings,
        })

    def get_summary(self) -> Dict:
        """Get performance summary"""
        session_duration = (datetime.now() - self.session_start).total_seconds()
        times = self.metrics['analysis_times']

        return {
            'session_duration_seconds': round(session_duration, 2),
            'runs': len(self.runs),
            'shifts_analyzed': self.metrics['shifts_analyzed'],
            'avg_analysis_time_seconds': round(sum(times) / len(times), 4) if times else 0,
            'max_analysis_time_seconds': round(max(times), 4) if times else 0,
            'advisory_calls': self.metrics['advisory_calls'],
            'advisory_findings': self.metrics['advisory_findings'],
            'total_critical_issues': sum(r['critical_issues'] for r in self.runs),
            'total_warnings': sum(r['warnings'] for r in self.runs),
        }

    def save_session_log(self, filename: Optional[str] = None) -> str:
        """Save session metrics to file"""
        os.makedirs(self.log_dir, exist_ok=True)
        if not filename:
            timestamp = self.session_start.strftime("%Y%m%d_%H%M%S")
            filename = os.path.join(self.log_dir, f"compliance_runs_{timestamp}.json")

        summary = self.get_summary()
        summary['session_start'] = self.session_start.isoformat()
        summary['session_end'] = datetime.now().isoformat()
        summary['history'] = self.runs

        with open(filename, 'w') as f:
            json.dump(summary, f, indent=2)

        return filename
