from flask import jsonify, request

from app.datetime_utils import to_day, today_local
from app.errors import ValidationError
from app.logging_config import get_logger
from app.models import db
from app.tracking import tracking_bp
from app.tracking.config import TrackingConfig
from app.tracking.records import fill_defaults
from app.tracking.service import StageTrackingService

logger = get_logger(__name__)


def resolve_today(settings):
    """?today=YYYY-MM-DD overrides the clock; otherwise today in the configured timezone."""
    today = to_day(request.args.get('today'), 'today')
    return today or today_local(settings['timezone'])


def validation_error_response(exc: ValidationError):
    return jsonify(exc.to_dict()), 400


@tracking_bp.route('/stages')
def list_stages():
    """Return stage definitions ordered by sort_order, with the auxiliary fields each stage shows"""
    try:
        stages = StageTrackingService.list_stages()
        return jsonify({"stages": [
            {**stage.to_dict(), "extra_fields": list(TrackingConfig.get_stage_extra_fields(stage.id))}
            for stage in stages
        ]}), 200
    except Exception as exc:
        logger.error("Error listing stages", error=str(exc))
        return jsonify({
            "error": "Failed to list stages",
            "details": str(exc)
        }), 500


@tracking_bp.route('/projects')
def list_projects():
    """Return projects, optionally filtered by ?status=active|on_hold|done"""
    try:
        projects = StageTrackingService.list_projects(request.args.get('status'))
        return jsonify({"projects": [project.to_dict() for project in projects]}), 200
    except ValidationError as exc:
        return validation_error_response(exc)
    except Exception as exc:
        logger.error("Error listing projects", error=str(exc))
        return jsonify({
            "error": "Failed to list projects",
            "details": str(exc)
        }), 500


@tracking_bp.route('/projects', methods=['POST'])
def create_project():
    """Create a project. project_code and name are required; the code must be unique."""
    try:
        data = request.get_json(silent=True) or {}
        project = StageTrackingService.create_project(data)
        db.session.commit()
        return jsonify({"success": True, "project": project.to_dict()}), 201
    except ValidationError as exc:
        db.session.rollback()
        return validation_error_response(exc)
    except Exception as exc:
        logger.error("Error creating project", error=str(exc))
        db.session.rollback()
        return jsonify({
            "error": "Failed to create project",
            "details": str(exc)
        }), 500


@tracking_bp.route('/projects/<project_id>', methods=['PUT'])
def update_project(project_id):
    """Update a project's descriptive fields. The project code cannot change."""
    try:
        project = StageTrackingService.get_project(project_id)
        if project is None:
            return jsonify({"error": "Project not found"}), 404

        data = request.get_json(silent=True) or {}
        StageTrackingService.update_project(project, data)
        db.session.commit()
        return jsonify({"success": True, "project": project.to_dict()}), 200
    except ValidationError as exc:
        db.session.rollback()
        return validation_error_response(exc)
    except Exception as exc:
        logger.error("Error updating project", project_id=project_id, error=str(exc))
        db.session.rollback()
        return jsonify({
            "error": "Failed to update project",
            "details": str(exc)
        }), 500


@tracking_bp.route('/projects/<project_id>/stage-updates')
def get_stage_updates(project_id):
    """Return one record per stage for the project, with its status category"""
    try:
        project = StageTrackingService.get_project(project_id)
        if project is None:
            return jsonify({"error": "Project not found"}), 404

        settings = StageTrackingService.settings()
        today = resolve_today(settings)
        stage_ids = [stage.id for stage in StageTrackingService.list_stages()]
        classifier = StageTrackingService.get_classifier(settings)
        derived = set(settings['offsets']) - {settings['anchor_stage_id']}

        records = StageTrackingService.records_for_project(project_id, stage_ids)
        return jsonify({
            "project": project.to_dict(),
            "today": today.isoformat(),
            "records": [
                StageTrackingService.describe_record(records[sid], today, classifier, derived)
                for sid in stage_ids
            ],
        }), 200
    except ValidationError as exc:
        return validation_error_response(exc)
    except Exception as exc:
        logger.error("Error getting stage updates", project_id=project_id, error=str(exc))
        return jsonify({
            "error": "Failed to get stage updates",
            "details": str(exc)
        }), 500


@tracking_bp.route('/projects/<project_id>/stage-updates', methods=['PUT'])
def save_stage_updates(project_id):
    """
    Upsert the project's stage records.

    Body: {"updates": [{stage_id, assignee, plan_date, ...}, ...]}
    Submitted fields overwrite the stored values; omitted fields are kept.
    The batch is validated as a whole and nothing is written if any record is invalid.
    """
    try:
        project = StageTrackingService.get_project(project_id)
        if project is None:
            return jsonify({"error": "Project not found"}), 404

        data = request.get_json(silent=True) or {}
        stage_ids = [stage.id for stage in StageTrackingService.list_stages()]
        records = StageTrackingService.save_records(project_id, data.get('updates'), stage_ids)

        return jsonify({
            "success": True,
            "project_id": project_id,
            "saved": len(records),
        }), 200
    except ValidationError as exc:
        db.session.rollback()
        return validation_error_response(exc)
    except Exception as exc:
        logger.error("Error saving stage updates", project_id=project_id, error=str(exc))
        db.session.rollback()
        return jsonify({
            "error": "Failed to save stage updates",
            "details": str(exc)
        }), 500


@tracking_bp.route('/projects/<project_id>/plan-date', methods=['POST'])
def change_plan_date(project_id):
    """
    Apply a plan-date edit and return the resulting records (nothing is saved).

    Body: {"stage_id": "1", "plan_date": "2025-01-01" | null, "records": [...]?}
    When "records" is given it is the caller's unsaved snapshot; otherwise
    the stored records are used.
    """
    try:
        project = StageTrackingService.get_project(project_id)
        if project is None:
            return jsonify({"error": "Project not found"}), 404

        data = request.get_json(silent=True) or {}
        stage_id = data.get('stage_id')
        if not stage_id:
            raise ValidationError('stage_id', "is required")
        stage_id = str(stage_id)

        settings = StageTrackingService.settings()
        today = resolve_today(settings)
        stage_ids = [stage.id for stage in StageTrackingService.list_stages()]
        classifier = StageTrackingService.get_classifier(settings)
        cascader = StageTrackingService.get_cascader(stage_ids, settings)

        if data.get('records') is not None:
            submitted = StageTrackingService.parse_records(project_id, data['records'], stage_ids)
            snapshot = fill_defaults(project_id, stage_ids, {r.stage_id: r for r in submitted})
        else:
            snapshot = StageTrackingService.records_for_project(project_id, stage_ids)

        updated = cascader.apply(snapshot, stage_id, data.get('plan_date'), project_id=project_id)
        changed = [sid for sid in stage_ids if updated[sid] != snapshot[sid]]

        return jsonify({
            "project_id": project_id,
            "stage_id": stage_id,
            "cascaded": stage_id == cascader.anchor_stage_id,
            "changed": changed,
            "records": [
                StageTrackingService.describe_record(updated[sid], today, classifier, cascader.dependent_stage_ids)
                for sid in stage_ids
            ],
        }), 200
    except ValidationError as exc:
        return validation_error_response(exc)
    except Exception as exc:
        logger.error("Error applying plan date", project_id=project_id, error=str(exc))
        return jsonify({
            "error": "Failed to apply plan date",
            "details": str(exc)
        }), 500


@tracking_bp.route('/dashboard')
def dashboard():
    """Return the project x stage status grid, optionally filtered by ?status="""
    try:
        settings = StageTrackingService.settings()
        today = resolve_today(settings)
        classifier = StageTrackingService.get_classifier(settings)

        stages = StageTrackingService.list_stages()
        projects = StageTrackingService.list_projects(request.args.get('status'))
        records = StageTrackingService.load_records([p.id for p in projects])

        return jsonify(
            StageTrackingService.build_dashboard(projects, stages, records, today, classifier)
        ), 200
    except ValidationError as exc:
        return validation_error_response(exc)
    except Exception as exc:
        logger.error("Error building dashboard", error=str(exc))
        return jsonify({
            "error": "Failed to build dashboard",
            "details": str(exc)
        }), 500
