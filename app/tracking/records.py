"""
Value objects for per-stage milestone records.
Contains no database dependencies - the service layer converts to and from models.
"""
from dataclasses import dataclass, field, fields, replace
from datetime import date
from typing import Any, Dict, Iterable, Mapping, Optional

from app.datetime_utils import format_date, to_day
from app.errors import ValidationError

MILESTONE_FIELDS = ('plan_date', 'actual_date', 'approve_date')


def _clean_text(value: Any, field_name: str) -> Optional[str]:
    """Empty strings become None; other text is kept verbatim."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(field_name, f"must be text, got {value!r}")
    return value if value != '' else None


@dataclass(frozen=True)
class StageExtras:
    """Stage-specific auxiliary fields (remarks on 7-1, vendors on 8)."""
    remark_design_work: bool = False
    remark_outsource_design: bool = False
    vendor_assembly: Optional[str] = None
    vendor_install: Optional[str] = None
    vendor_control: Optional[str] = None
    vendor_program: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'StageExtras':
        return cls(
            remark_design_work=bool(data.get('remark_design_work')),
            remark_outsource_design=bool(data.get('remark_outsource_design')),
            vendor_assembly=_clean_text(data.get('vendor_assembly'), 'vendor_assembly'),
            vendor_install=_clean_text(data.get('vendor_install'), 'vendor_install'),
            vendor_control=_clean_text(data.get('vendor_control'), 'vendor_control'),
            vendor_program=_clean_text(data.get('vendor_program'), 'vendor_program'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class StageRecord:
    """
    Milestones and metadata for one (project, stage) pair.

    Immutable: edits produce new records via ``with_plan_date`` or
    ``dataclasses.replace``.
    """
    project_id: str
    stage_id: str
    plan_date: Optional[date] = None
    actual_date: Optional[date] = None
    approve_date: Optional[date] = None
    assignee: Optional[str] = None
    memo: Optional[str] = None
    extras: StageExtras = field(default_factory=StageExtras)

    @classmethod
    def empty(cls, project_id: str, stage_id: str) -> 'StageRecord':
        """The all-absent default used when no record has been stored yet."""
        return cls(project_id=project_id, stage_id=stage_id)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], project_id: Optional[str] = None) -> 'StageRecord':
        """
        Build a record from loose input (request JSON or a stored row).

        Args:
            data: Mapping with stage_id, milestone dates and optional metadata
            project_id: Overrides data['project_id'] when given

        Raises:
            ValidationError: On a missing key or a malformed field
        """
        if not isinstance(data, Mapping):
            raise ValidationError(None, f"stage record must be an object, got {data!r}")

        project_id = project_id if project_id is not None else data.get('project_id')
        if not project_id:
            raise ValidationError('project_id', "is required")

        stage_id = data.get('stage_id')
        if stage_id is None or str(stage_id).strip() == '':
            raise ValidationError('stage_id', "is required")

        return cls(
            project_id=str(project_id),
            stage_id=str(stage_id),
            plan_date=to_day(data.get('plan_date'), 'plan_date'),
            actual_date=to_day(data.get('actual_date'), 'actual_date'),
            approve_date=to_day(data.get('approve_date'), 'approve_date'),
            assignee=_clean_text(data.get('assignee'), 'assignee'),
            memo=_clean_text(data.get('memo'), 'memo'),
            extras=StageExtras.from_dict(data),
        )

    def with_plan_date(self, plan_date: Optional[date]) -> 'StageRecord':
        return replace(self, plan_date=plan_date)

    def to_dict(self) -> Dict[str, Any]:
        """Flat, JSON-friendly form (dates as ISO strings)."""
        return {
            'project_id': self.project_id,
            'stage_id': self.stage_id,
            'assignee': self.assignee,
            'plan_date': format_date(self.plan_date),
            'actual_date': format_date(self.actual_date),
            'approve_date': format_date(self.approve_date),
            **self.extras.to_dict(),
            'memo': self.memo,
        }


def fill_defaults(project_id: str, stage_ids: Iterable[str],
                  stored: Optional[Mapping[str, StageRecord]] = None) -> Dict[str, StageRecord]:
    """
    Return a snapshot with one record per stage.

    Stored records win; every other stage gets the empty default, so
    "no record" and "empty record" look the same to callers.
    """
    stored = stored or {}
    return {
        stage_id: stored.get(stage_id) or StageRecord.empty(project_id, stage_id)
        for stage_id in stage_ids
    }
