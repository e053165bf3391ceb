#!/usr/bin/env python3
"""
Command-line script to print the stage status report.

Usage:
    python app/scripts/status_report.py [--reference-date YYYY-MM-DD] [--status active] [--summary-only]

Options:
    --reference-date YYYY-MM-DD  Reference date for classification (defaults to today)
    --status STATUS              Only include projects with this status (active, on_hold, done)
    --summary-only               Show only the per-category counts
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app import create_app
from app.tracking.report import run_report_script
import argparse


def main():
    parser = argparse.ArgumentParser(
        description='Print stage status counts and the stages that need attention'
    )
    parser.add_argument(
        '--reference-date',
        type=str,
        help='Reference date for classification (YYYY-MM-DD format, defaults to today)'
    )
    parser.add_argument(
        '--status',
        type=str,
        help='Only include projects with this status (active, on_hold, done)'
    )
    parser.add_argument(
        '--summary-only',
        action='store_true',
        help='Show only summary counts, not the attention list'
    )

    args = parser.parse_args()

    app = create_app()

    with app.app_context():
        try:
            run_report_script(
                reference_date_str=args.reference_date,
                project_status=args.status,
                detailed=not args.summary_only
            )
            sys.exit(0)
        except Exception as e:
            print(f"\nFatal error: {e}", file=sys.stderr)
            sys.exit(1)


if __name__ == '__main__':
    main()
