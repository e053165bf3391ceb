from flask_sqlalchemy import SQLAlchemy
from datetime import datetime
from enum import Enum
import uuid

db = SQLAlchemy()


class ProjectStatus(Enum):
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    DONE = "done"


class Stage(db.Model):
    """Workflow step shared by every project."""
    __tablename__ = "stages"

    id = db.Column(db.String(16), primary_key=True)  # "1".."8", "7-1"
    name = db.Column(db.String(128), nullable=False)
    sort_order = db.Column(db.Integer, nullable=False, default=0, index=True)

    def __repr__(self):
        return f"<Stage {self.id} - {self.name}>"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'sort_order': self.sort_order,
        }


class Project(db.Model):
    """Independently tracked work item."""
    __tablename__ = "projects"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    project_code = db.Column(db.String(32), unique=True, nullable=False, index=True)
    name = db.Column(db.String(256), nullable=False)
    customer = db.Column(db.String(256), nullable=True)
    install_location = db.Column(db.String(256), nullable=True)
    order_date = db.Column(db.Date, nullable=True)
    due_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.Enum(ProjectStatus), nullable=False, default=ProjectStatus.ACTIVE, index=True)
    pm_email = db.Column(db.String(256), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<Project {self.project_code} - {self.name}>"

    def to_dict(self):
        return {
            'id': self.id,
            'project_code': self.project_code,
            'name': self.name,
            'customer': self.customer,
            'install_location': self.install_location,
            'order_date': self.order_date.isoformat() if self.order_date else None,
            'due_date': self.due_date.isoformat() if self.due_date else None,
            'status': self.status.value if self.status else None,
            'pm_email': self.pm_email,
        }


class StageUpdate(db.Model):
    """Milestones and metadata for one (project, stage) pair."""
    __tablename__ = "stage_updates"

    project_id = db.Column(db.String(36), db.ForeignKey("projects.id"), primary_key=True)
    stage_id = db.Column(db.String(16), db.ForeignKey("stages.id"), primary_key=True)

    assignee = db.Column(db.String(64), nullable=True)  # "N/A" marks a stage that does not apply
    plan_date = db.Column(db.Date, nullable=True)
    actual_date = db.Column(db.Date, nullable=True)
    approve_date = db.Column(db.Date, nullable=True)  # Set by quality control

    # Stage 7-1 remarks
    remark_design_work = db.Column(db.Boolean, nullable=False, default=False)
    remark_outsource_design = db.Column(db.Boolean, nullable=False, default=False)

    # Stage 8 vendors
    vendor_assembly = db.Column(db.String(128), nullable=True)
    vendor_install = db.Column(db.String(128), nullable=True)
    vendor_control = db.Column(db.String(128), nullable=True)
    vendor_program = db.Column(db.String(128), nullable=True)

    memo = db.Column(db.Text, nullable=True)

    updated_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.Index('idx_stage_updates_project', 'project_id'),
    )

    def __repr__(self):
        return f"<StageUpdate {self.project_id}/{self.stage_id}>"
