"""
Staffing Compliance Check - command line entry point

Run: python -m compliance_engine.cli schedule.csv --capacity 120
"""

import argparse
import json
import logging
import os
import sys
from datetime import datetime

from .config import ConfigManager
from .engine import ComplianceEngine
from .importer import import_schedule_file
from .models import FacilityProfile, IssueSource, NoValidShiftsError, Severity
from .monitoring import RunMonitor


class TeeLogger:
    """Logs to both console and file"""
    def __init__(self, filename):
        self.terminal = sys.stdout
        self.log = open(filename, 'w', encoding='utf-8')

    def write(self, message):
        self.terminal.write(message)
        self.log.write(message)

    def flush(self):
        self.terminal.flush()
        self.log.flush()

    def close(self):
        self.log.close()


SEVERITY_ICONS = {
    Severity.CRITICAL: "🚨",
    Severity.WARNING: "⚠️ ",
    Severity.INFO: "ℹ️ ",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Check a staff schedule against staffing compliance rules')
    parser.add_argument('schedule', help='CSV schedule file')
    parser.add_argument('--capacity', type=int, default=0,
                        help='Facility bed capacity (0 = unknown, fallback census is used)')
    parser.add_argument('--config', type=str, default=None, help='JSON configuration file')
    parser.add_argument('--advisory', action='store_true', help='Run the Gemini advisory review')
    parser.add_argument('--facility-name', type=str, default='Facility')
    parser.add_argument('--state', type=str, default=None, help='Facility state (advisory context)')
    parser.add_argument('--output', type=str, default=None, help='Where to write the JSON report')
    parser.add_argument('--max-issues', type=int, default=50, help='Issues to print (report keeps all)')
    parser.add_argument('--verbose', action='store_true')
    return parser


def print_report(report, max_issues: int):
    print("\n" + "="*80)
    print("COMPLIANCE SUMMARY")
    print("="*80)
    print(f"  Shifts analyzed: {report.total_shifts}")
    print(f"  Parse errors: {len(report.parse_errors)}")
    print(f"  Compliance issues: {len(report.compliance_issues)}")
    print(f"  🚨 Critical: {report.critical_issues}")
    print(f"  ⚠️  Warnings: {report.warnings}")

    if report.parse_errors:
        print("\nPARSE ERRORS:")
        for error in report.parse_errors:
            print(f"  - {error}")

    if report.compliance_issues:
        print("\nISSUES:")
        for issue in report.compliance_issues[:max_issues]:
            tag = " [advisory]" if issue.source == IssueSource.ADVISORY else ""
            print(f"  {SEVERITY_ICONS[issue.severity]} {issue.type.value}{tag}: {issue.message}")
        hidden = len(report.compliance_issues) - max_issues
        if hidden > 0:
            print(f"  ... {hidden} more (see JSON report)")
    print("="*80)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    manager = ConfigManager(args.config)
    config = manager.config
    if args.advisory:
        config.advisory.enabled = True

    os.makedirs(config.monitoring.log_directory, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(config.monitoring.log_directory, f"compliance_run_{timestamp}.txt")
    tee = TeeLogger(log_file)
    sys.stdout = tee

    try:
        print(f"Checking schedule: {args.schedule}")
        print(f"Logging to: {log_file}")

        imported = import_schedule_file(args.schedule)
        print(f"Imported {len(imported.shifts)} shifts ({len(imported.parse_errors)} parse errors)")

        monitor = RunMonitor(config.monitoring.log_directory) if config.monitoring.enable_monitoring else None
        engine = ComplianceEngine(config, monitor=monitor)

        try:
            report = engine.check(
                imported.shifts,
                facility_capacity=args.capacity,
                facility=FacilityProfile(name=args.facility_name, state=args.state),
                parse_errors=imported.parse_errors,
            )
        except NoValidShiftsError as e:
            print(f"\n❌ {e}")
            for error in imported.parse_errors:
                print(f"  - {error}")
            return 2

        print_report(report, args.max_issues)

        output = args.output
        if not output:
            os.makedirs("reports", exist_ok=True)
            output = os.path.join("reports", f"compliance_{timestamp}.json")
        with open(output, 'w') as f:
            json.dump({
                'schedule_file': args.schedule,
                'facility_capacity': args.capacity,
                'timestamp': timestamp,
                'shifts': [s.to_dict() for s in imported.shifts],
                **report.to_dict(),
            }, f, indent=2)
        print(f"✓ Report saved to: {output}")

        if monitor and config.monitoring.save_session_logs:
            print(f"✓ Run metrics saved to: {monitor.save_session_log()}")

        return 1 if report.critical_issues else 0

    finally:
        sys.stdout = tee.terminal
        tee.close()


if __name__ == "__main__":
    sys.exit(main())
