"""
Status classification for stage records.

Pure functions over a StageRecord snapshot and a caller-supplied "today".
Rules are evaluated top to bottom and the first match wins; the order is
the business rule.

Rule sets (one per deployment):
- assignee:  Completed > Undetermined/Missing (by assignee) > OnTrack/DueToday/Overdue
- simple:    Completed > Missing > OnTrack/DueToday/Overdue
- milestone: Completed > PendingApproval > Overdue (plan day reached, no actual) > OnTrack/Missing
"""
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

from app.datetime_utils import to_day
from app.errors import ValidationError
from app.tracking.config import TrackingConfig
from app.tracking.records import StageRecord


class StatusCategory(Enum):
    """Closed set of status categories, in precedence order."""
    COMPLETED = "completed"
    PENDING_APPROVAL = "pending_approval"
    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    ON_TRACK = "on_track"
    UNDETERMINED = "undetermined"
    MISSING = "missing"


class StatusRuleSet(Enum):
    ASSIGNEE = "assignee"
    SIMPLE = "simple"
    MILESTONE = "milestone"

    @classmethod
    def parse(cls, value) -> 'StatusRuleSet':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ', '.join(r.value for r in cls)
            raise ValidationError('rule_set', f"must be one of: {valid}")


# Categories each rule set can emit
RULE_SET_CATEGORIES = {
    StatusRuleSet.ASSIGNEE: (
        StatusCategory.COMPLETED,
        StatusCategory.OVERDUE,
        StatusCategory.DUE_TODAY,
        StatusCategory.ON_TRACK,
        StatusCategory.UNDETERMINED,
        StatusCategory.MISSING,
    ),
    StatusRuleSet.SIMPLE: (
        StatusCategory.COMPLETED,
        StatusCategory.OVERDUE,
        StatusCategory.DUE_TODAY,
        StatusCategory.ON_TRACK,
        StatusCategory.MISSING,
    ),
    StatusRuleSet.MILESTONE: (
        StatusCategory.COMPLETED,
        StatusCategory.PENDING_APPROVAL,
        StatusCategory.OVERDUE,
        StatusCategory.ON_TRACK,
        StatusCategory.MISSING,
    ),
}


def is_not_applicable(assignee: Optional[str], sentinel: str) -> bool:
    return assignee is not None and assignee.strip() == sentinel


def compare_to_plan(plan_date: date, today: date) -> StatusCategory:
    if today < plan_date:
        return StatusCategory.ON_TRACK
    if today == plan_date:
        return StatusCategory.DUE_TODAY
    return StatusCategory.OVERDUE


def classify(
    record: Optional[StageRecord],
    today,
    rule_set=StatusRuleSet.ASSIGNEE,
    not_applicable: str = TrackingConfig.NOT_APPLICABLE_ASSIGNEE,
) -> StatusCategory:
    """
    Classify a stage record.

    Args:
        record: Stage record, or None when nothing is stored for the pair
        today: Reference date (date, datetime or ISO string)
        rule_set: StatusRuleSet or its name
        not_applicable: Assignee marker for stages that do not apply

    Returns:
        StatusCategory: Exactly one category

    Raises:
        ValidationError: If today is missing or malformed, or rule_set is unknown
    """
    today = to_day(today, 'today')
    if today is None:
        raise ValidationError('today', "is required")
    rule_set = StatusRuleSet.parse(rule_set)

    if record is None:
        plan_date = actual_date = approve_date = assignee = None
    else:
        plan_date = record.plan_date
        actual_date = record.actual_date
        approve_date = record.approve_date
        assignee = record.assignee

    if approve_date is not None:
        return StatusCategory.COMPLETED

    if rule_set is StatusRuleSet.MILESTONE:
        if actual_date is not None:
            return StatusCategory.PENDING_APPROVAL
        # A stage is late from the start of its plan day until something is recorded
        if plan_date is not None and plan_date <= today:
            return StatusCategory.OVERDUE

    if plan_date is None:
        if rule_set is StatusRuleSet.ASSIGNEE and is_not_applicable(assignee, not_applicable):
            return StatusCategory.UNDETERMINED
        return StatusCategory.MISSING

    return compare_to_plan(plan_date, today)


@dataclass(frozen=True)
class StatusClassifier:
    """A classifier bound to one deployment's rule set."""
    rule_set: StatusRuleSet = StatusRuleSet.ASSIGNEE
    not_applicable: str = TrackingConfig.NOT_APPLICABLE_ASSIGNEE

    @classmethod
    def from_settings(cls, settings: dict) -> 'StatusClassifier':
        return cls(
            rule_set=StatusRuleSet.parse(settings['rule_set']),
            not_applicable=settings['not_applicable'],
        )

    @property
    def categories(self):
        return RULE_SET_CATEGORIES[self.rule_set]

    def classify(self, record: Optional[StageRecord], today) -> StatusCategory:
        return classify(record, today, self.rule_set, self.not_applicable)
