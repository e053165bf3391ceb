"""
Service layer for stage tracking.

Reads stages, projects and stage records from the database, hands plain
StageRecord snapshots to the engine (status.py, cascade.py) and writes
results back with an upsert keyed by (project_id, stage_id).
"""
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from flask import current_app

from app.datetime_utils import format_date, to_day
from app.errors import ValidationError
from app.logging_config import EditContext, get_logger
from app.models import Project, ProjectStatus, Stage, StageUpdate, db
from app.tracking.cascade import ScheduleCascader
from app.tracking.config import tracking_settings
from app.tracking.records import StageExtras, StageRecord, fill_defaults
from app.tracking.status import StatusClassifier

logger = get_logger(__name__)

# Stage record columns a payload may submit
RECORD_FIELDS = (
    'assignee',
    'plan_date',
    'actual_date',
    'approve_date',
    'remark_design_work',
    'remark_outsource_design',
    'vendor_assembly',
    'vendor_install',
    'vendor_control',
    'vendor_program',
    'memo',
)


def record_from_model(row: StageUpdate) -> StageRecord:
    """Convert a stored row to a StageRecord."""
    return StageRecord(
        project_id=row.project_id,
        stage_id=row.stage_id,
        plan_date=row.plan_date,
        actual_date=row.actual_date,
        approve_date=row.approve_date,
        assignee=row.assignee,
        memo=row.memo,
        extras=StageExtras(
            remark_design_work=bool(row.remark_design_work),
            remark_outsource_design=bool(row.remark_outsource_design),
            vendor_assembly=row.vendor_assembly,
            vendor_install=row.vendor_install,
            vendor_control=row.vendor_control,
            vendor_program=row.vendor_program,
        ),
    )


def record_values(record: StageRecord) -> Dict[str, Any]:
    """Column values for a record, keyed like RECORD_FIELDS."""
    return {
        'assignee': record.assignee,
        'plan_date': record.plan_date,
        'actual_date': record.actual_date,
        'approve_date': record.approve_date,
        'memo': record.memo,
        **record.extras.to_dict(),
    }


def apply_record_to_model(row: StageUpdate, record: StageRecord, fields: Optional[Iterable[str]] = None):
    """
    Copy record fields onto a row.

    Only the listed fields are written (all of them when fields is None);
    columns that were not submitted keep their stored value.
    """
    values = record_values(record)
    for key in (RECORD_FIELDS if fields is None else fields):
        setattr(row, key, values[key])


class StageTrackingService:
    """Service for stage tracking operations."""

    @staticmethod
    def settings() -> dict:
        return tracking_settings(current_app.config)

    @staticmethod
    def get_classifier(settings: Optional[dict] = None) -> StatusClassifier:
        return StatusClassifier.from_settings(settings or StageTrackingService.settings())

    @staticmethod
    def get_cascader(stage_ids: Iterable[str], settings: Optional[dict] = None) -> ScheduleCascader:
        settings = settings or StageTrackingService.settings()
        return ScheduleCascader(
            anchor_stage_id=settings['anchor_stage_id'],
            offsets=settings['offsets'],
            stage_ids=stage_ids,
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    @staticmethod
    def list_stages() -> List[Stage]:
        """All stage definitions ordered by sort_order."""
        return Stage.query.order_by(Stage.sort_order, Stage.id).all()

    @staticmethod
    def upsert_stages(definitions, commit: bool = True) -> Dict[str, int]:
        """
        Insert or update stage definitions.

        Args:
            definitions: List of {"id", "name", "sort_order"} mappings. sort_order
                         defaults to the position in the list.

        Returns:
            dict: Counts of created and updated stages

        Raises:
            ValidationError: On a malformed or duplicated definition
        """
        if not isinstance(definitions, list):
            raise ValidationError('stages', "must be a list of stage definitions")

        parsed = []
        seen = set()
        for position, item in enumerate(definitions, start=1):
            if not isinstance(item, Mapping):
                raise ValidationError('stages', f"stage definition must be an object, got {item!r}")
            stage_id = str(item.get('id') or '').strip()
            if not stage_id:
                raise ValidationError('id', "is required")
            if stage_id in seen:
                raise ValidationError('id', f"stage {stage_id!r} is defined more than once")
            name = StageTrackingService._optional_text(item.get('name'))
            if not name:
                raise ValidationError('name', f"is required for stage {stage_id!r}")
            sort_order = item.get('sort_order', position)
            if isinstance(sort_order, bool) or not isinstance(sort_order, int):
                raise ValidationError('sort_order', f"must be an integer for stage {stage_id!r}")
            seen.add(stage_id)
            parsed.append((stage_id, name, sort_order))

        created = updated = 0
        for stage_id, name, sort_order in parsed:
            stage = db.session.get(Stage, stage_id)
            if stage is None:
                db.session.add(Stage(id=stage_id, name=name, sort_order=sort_order))
                created += 1
            else:
                stage.name = name
                stage.sort_order = sort_order
                updated += 1

        if commit:
            db.session.commit()
        logger.info("Stages upserted", created=created, updated=updated)
        return {'created': created, 'updated': updated}

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    @staticmethod
    def parse_project_status(status) -> ProjectStatus:
        if isinstance(status, ProjectStatus):
            return status
        try:
            return ProjectStatus(str(status).strip().lower())
        except ValueError:
            valid = ', '.join(s.value for s in ProjectStatus)
            raise ValidationError('status', f"must be one of: {valid}")

    @staticmethod
    def list_projects(status=None) -> List[Project]:
        """Projects ordered by code, optionally filtered by lifecycle status."""
        query = Project.query
        if status:
            query = query.filter(Project.status == StageTrackingService.parse_project_status(status))
        return query.order_by(Project.project_code).all()

    @staticmethod
    def get_project(project_id: str) -> Optional[Project]:
        return db.session.get(Project, project_id)

    @staticmethod
    def _optional_text(value) -> Optional[str]:
        if value is None:
            return None
        cleaned = str(value).strip()
        return cleaned if cleaned else None

    @staticmethod
    def _apply_project_fields(project: Project, data: Mapping[str, Any]):
        name = StageTrackingService._optional_text(data.get('name'))
        if not name:
            raise ValidationError('name', "is required")

        order_date = to_day(data.get('order_date'), 'order_date')
        due_date = to_day(data.get('due_date'), 'due_date')
        status = StageTrackingService.parse_project_status(data.get('status') or ProjectStatus.ACTIVE)

        project.name = name
        project.customer = StageTrackingService._optional_text(data.get('customer'))
        project.install_location = StageTrackingService._optional_text(data.get('install_location'))
        project.order_date = order_date
        project.due_date = due_date
        project.status = status
        project.pm_email = StageTrackingService._optional_text(data.get('pm_email'))

    @staticmethod
    def create_project(data: Mapping[str, Any]) -> Project:
        """
        Create a project (not committed).

        Raises:
            ValidationError: Missing code/name, duplicate code, bad date or status
        """
        code = StageTrackingService._optional_text(data.get('project_code'))
        if not code:
            raise ValidationError('project_code', "is required")

        if Project.query.filter_by(project_code=code).first() is not None:
            raise ValidationError('project_code', f"project code {code!r} already exists")

        project = Project(project_code=code)
        StageTrackingService._apply_project_fields(project, data)
        db.session.add(project)
        db.session.flush()

        logger.info("Project created", project_id=project.id, project_code=code)
        return project

    @staticmethod
    def update_project(project: Project, data: Mapping[str, Any]) -> Project:
        """
        Update a project's descriptive fields (not committed).

        The project code is fixed at creation; a differing code is rejected.
        """
        code = data.get('project_code')
        if code is not None and str(code).strip() != project.project_code:
            raise ValidationError('project_code', "cannot be changed")

        StageTrackingService._apply_project_fields(project, data)
        logger.info("Project updated", project_id=project.id, project_code=project.project_code)
        return project

    # ------------------------------------------------------------------
    # Stage records
    # ------------------------------------------------------------------

    @staticmethod
    def load_records(project_ids: Iterable[str]) -> Dict[str, Dict[str, StageRecord]]:
        """Stored records grouped as project_id -> stage_id -> StageRecord."""
        project_ids = list(project_ids)
        grouped: Dict[str, Dict[str, StageRecord]] = {pid: {} for pid in project_ids}
        if not project_ids:
            return grouped

        rows = StageUpdate.query.filter(StageUpdate.project_id.in_(project_ids)).all()
        for row in rows:
            grouped.setdefault(row.project_id, {})[row.stage_id] = record_from_model(row)
        return grouped

    @staticmethod
    def records_for_project(project_id: str, stage_ids: Iterable[str]) -> Dict[str, StageRecord]:
        """One record per stage for a project, empty defaults where nothing is stored."""
        stored = StageTrackingService.load_records([project_id]).get(project_id, {})
        return fill_defaults(project_id, stage_ids, stored)

    @staticmethod
    def parse_records(project_id: str, payloads, stage_ids: Iterable[str]) -> List[StageRecord]:
        """
        Validate a batch of record payloads before anything is written.

        Raises:
            ValidationError: Not a list, unknown stage, duplicate stage or bad field
        """
        if not isinstance(payloads, list):
            raise ValidationError('updates', "must be a list of stage records")

        known = set(stage_ids)
        records = []
        seen = set()
        for payload in payloads:
            record = StageRecord.from_dict(payload, project_id=project_id)
            if record.stage_id not in known:
                raise ValidationError('stage_id', f"unknown stage {record.stage_id!r}")
            if record.stage_id in seen:
                raise ValidationError('stage_id', f"stage {record.stage_id!r} appears more than once")
            seen.add(record.stage_id)
            records.append(record)
        return records

    @staticmethod
    def upsert_records(records: List[StageRecord], fields_by_stage: Optional[Mapping[str, Iterable[str]]] = None,
                       commit: bool = True) -> int:
        """
        Insert or replace stage records keyed by (project_id, stage_id).

        On a conflict the submitted fields are overwritten wholesale (last write
        wins) and fields that were not submitted keep their stored value. New
        rows get every field.

        Args:
            records: Validated records
            fields_by_stage: stage id -> submitted field names. None writes every field.

        Returns:
            int: Number of newly inserted rows
        """
        if not records:
            return 0

        project_ids = {r.project_id for r in records}
        stage_ids = {r.stage_id for r in records}
        existing = {
            (row.project_id, row.stage_id): row
            for row in StageUpdate.query.filter(
                StageUpdate.project_id.in_(project_ids),
                StageUpdate.stage_id.in_(stage_ids),
            ).all()
        }

        now = datetime.utcnow()
        inserted = 0
        for record in records:
            row = existing.get((record.project_id, record.stage_id))
            if row is None:
                row = StageUpdate(project_id=record.project_id, stage_id=record.stage_id)
                db.session.add(row)
                inserted += 1
                apply_record_to_model(row, record)
            else:
                fields = fields_by_stage.get(record.stage_id) if fields_by_stage is not None else None
                apply_record_to_model(row, record, fields)
            row.updated_at = now

        if commit:
            db.session.commit()
        return inserted

    @staticmethod
    def save_records(project_id: str, payloads, stage_ids: Iterable[str]) -> List[StageRecord]:
        """Validate and upsert a project's batch of stage records."""
        stage_ids = list(stage_ids)
        with EditContext("save_stage_records", project_id=project_id):
            records = StageTrackingService.parse_records(project_id, payloads, stage_ids)
            fields_by_stage = {
                str(payload['stage_id']): [key for key in RECORD_FIELDS if key in payload]
                for payload in payloads
            }
            inserted = StageTrackingService.upsert_records(records, fields_by_stage, commit=False)
            db.session.commit()
            logger.info(
                "Stage records saved",
                project_id=project_id,
                records=len(records),
                inserted=inserted,
            )
        return records

    # ------------------------------------------------------------------
    # Read models
    # ------------------------------------------------------------------

    @staticmethod
    def describe_record(record: StageRecord, today: date, classifier: StatusClassifier,
                        derived_stage_ids: Iterable[str] = ()) -> Dict[str, Any]:
        """Record as a dict plus its status and whether its plan date is derived from the anchor."""
        data = record.to_dict()
        data['status'] = classifier.classify(record, today).value
        data['plan_date_derived'] = record.stage_id in derived_stage_ids
        return data

    @staticmethod
    def build_dashboard(
        projects: List[Project],
        stages: List[Stage],
        records: Mapping[str, Mapping[str, StageRecord]],
        today: date,
        classifier: StatusClassifier,
    ) -> Dict[str, Any]:
        """
        Build the project x stage status grid.

        Returns:
            dict: stages, rows (one per project with per-stage milestones and
                  status) and counts per status category
        """
        counts = {category.value: 0 for category in classifier.categories}
        rows = []
        for project in projects:
            stored = records.get(project.id, {})
            cells = {}
            for stage in stages:
                record = stored.get(stage.id) or StageRecord.empty(project.id, stage.id)
                category = classifier.classify(record, today)
                counts[category.value] += 1
                cells[stage.id] = {
                    'plan_date': format_date(record.plan_date),
                    'actual_date': format_date(record.actual_date),
                    'approve_date': format_date(record.approve_date),
                    'status': category.value,
                }
            rows.append({
                'project_id': project.id,
                'project_code': project.project_code,
                'name': project.name,
                'status': project.status.value if project.status else None,
                'stages': cells,
            })

        return {
            'today': today.isoformat(),
            'rule_set': classifier.rule_set.value,
            'stages': [stage.to_dict() for stage in stages],
            'rows': rows,
            'counts': counts,
        }
