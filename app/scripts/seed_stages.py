#!/usr/bin/env python3
"""
Command-line script to load stage definitions.

Usage:
    python app/scripts/seed_stages.py --file stages.json [--dry-run]

The JSON file holds a list of {"id": "1", "name": "...", "sort_order": 1}
objects. Existing stages are updated in place, new ones are inserted.
"""

import json
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app import create_app
from app.errors import ValidationError
from app.models import db
from app.tracking.service import StageTrackingService
import argparse


def main():
    parser = argparse.ArgumentParser(description='Insert or update stage definitions from a JSON file')
    parser.add_argument('--file', required=True, help='Path to a JSON list of stage definitions')
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Validate and report without committing'
    )
    args = parser.parse_args()

    try:
        with open(args.file, encoding='utf-8') as fh:
            definitions = json.load(fh)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Could not read {args.file}: {e}", file=sys.stderr)
        sys.exit(1)

    app = create_app()

    with app.app_context():
        db.create_all()
        try:
            result = StageTrackingService.upsert_stages(definitions, commit=not args.dry_run)
        except ValidationError as e:
            print(f"Invalid stage definitions: {e}", file=sys.stderr)
            sys.exit(1)

        if args.dry_run:
            db.session.rollback()
            print(f"Dry run: would create {result['created']} and update {result['updated']} stages")
        else:
            print(f"Created {result['created']} and updated {result['updated']} stages")


if __name__ == '__main__':
    main()
