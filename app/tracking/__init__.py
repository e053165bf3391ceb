"""
Stage Tracking Module
Flask Blueprint for project stage milestones.

Provides routes for maintaining projects and their per-stage plan, actual
and approval dates, for cascading the anchor stage's plan date, and for the
status dashboard that flags on-track, due, overdue and completed stages.
"""
from flask import Blueprint

tracking_bp = Blueprint("tracking", __name__, url_prefix="/tracking")

from app.tracking import routes
