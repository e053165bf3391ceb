"""
Status report for the command line.

Builds the same grid as the /tracking/dashboard endpoint for a reference
date and prints per-category totals plus the stages that need attention.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from app.datetime_utils import format_datetime_local, to_day, today_local
from app.logging_config import get_logger
from app.tracking.service import StageTrackingService
from app.tracking.status import StatusCategory

logger = get_logger(__name__)

# Categories listed individually in the detailed report
ATTENTION_CATEGORIES = (
    StatusCategory.OVERDUE.value,
    StatusCategory.DUE_TODAY.value,
    StatusCategory.PENDING_APPROVAL.value,
    StatusCategory.MISSING.value,
)


def collect_attention_items(dashboard: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Flatten the dashboard grid into the (project, stage) pairs that need attention.

    Returns:
        list: Items ordered by project then stage order, each with project_code,
              stage_id, stage_name, status and plan_date
    """
    stage_names = {stage['id']: stage['name'] for stage in dashboard.get('stages', [])}
    stage_order = [stage['id'] for stage in dashboard.get('stages', [])]

    items = []
    for row in dashboard.get('rows', []):
        for stage_id in stage_order:
            cell = row['stages'].get(stage_id)
            if cell is None or cell['status'] not in ATTENTION_CATEGORIES:
                continue
            items.append({
                'project_code': row['project_code'],
                'project_name': row['name'],
                'stage_id': stage_id,
                'stage_name': stage_names.get(stage_id),
                'status': cell['status'],
                'plan_date': cell['plan_date'],
            })
    return items


def build_status_report(reference_date: Optional[date] = None, project_status: Optional[str] = None) -> Dict[str, Any]:
    """
    Build the dashboard for a reference date (defaults to today in the configured timezone).
    Must run inside an app context.
    """
    settings = StageTrackingService.settings()
    if reference_date is None:
        reference_date = today_local(settings['timezone'])

    classifier = StageTrackingService.get_classifier(settings)
    stages = StageTrackingService.list_stages()
    projects = StageTrackingService.list_projects(project_status)
    records = StageTrackingService.load_records([p.id for p in projects])

    dashboard = StageTrackingService.build_dashboard(projects, stages, records, reference_date, classifier)
    dashboard['attention'] = collect_attention_items(dashboard)
    dashboard['generated_at'] = format_datetime_local(datetime.now(timezone.utc), settings['timezone'])
    return dashboard


def print_report(report: Dict[str, Any], detailed: bool = True):
    """
    Print a formatted status report.

    Args:
        report: Result of build_status_report()
        detailed: If True, list every stage that needs attention
    """
    print("\n" + "=" * 80)
    print("STAGE STATUS REPORT")
    print("=" * 80)

    print(f"\nReference Date: {report.get('today')}")
    if report.get('generated_at'):
        print(f"Generated: {report['generated_at']}")
    print(f"Rule Set: {report.get('rule_set')}")
    print(f"Projects: {len(report.get('rows', []))}")
    print(f"Stages: {len(report.get('stages', []))}")

    print("\nStatus Counts:")
    for category, count in report.get('counts', {}).items():
        print(f"  {category:<18} {count}")

    attention = report.get('attention', [])
    if not detailed or not attention:
        print("\n" + "=" * 80)
        return

    print("\n" + "=" * 80)
    print("NEEDS ATTENTION")
    print("=" * 80)

    for item in attention:
        plan = item['plan_date'] or '-'
        print(f"  {item['project_code']:<12} {item['stage_id']:>4}. {item['stage_name'] or '':<24} "
              f"{item['status']:<18} plan={plan}")

    print("\n" + "=" * 80)


def run_report_script(reference_date_str: Optional[str] = None, project_status: Optional[str] = None,
                      detailed: bool = True):
    """
    Run the status report from the command line.

    Args:
        reference_date_str: Optional ISO date string (YYYY-MM-DD)
        project_status: Optional project status filter
        detailed: List every stage that needs attention
    """
    reference_date = to_day(reference_date_str, 'reference_date')

    try:
        report = build_status_report(reference_date, project_status)
        print_report(report, detailed=detailed)
        return report
    except Exception as e:
        logger.error("Error in status report script", error=str(e), exc_info=True)
        print(f"\nError: {e}")
        raise
