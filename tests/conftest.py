"""
Shared fixtures for database-backed tests.
"""
import pytest

from app import create_app
from app.models import db
from app.tracking.service import StageTrackingService

STAGE_DEFINITIONS = [
    {'id': '1', 'name': 'Kickoff'},
    {'id': '2', 'name': 'Design'},
    {'id': '3', 'name': 'Design Review'},
    {'id': '4', 'name': 'Purchasing'},
    {'id': '5', 'name': 'Manufacturing'},
    {'id': '6', 'name': 'Assembly'},
    {'id': '7', 'name': 'Wiring'},
    {'id': '7-1', 'name': 'Design Change'},
    {'id': '8', 'name': 'Installation'},
]


@pytest.fixture
def app():
    """Create Flask application backed by an in-memory database."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SECRET_KEY': 'test-secret-key',
        'TRACKING_STATUS_RULES': 'assignee',
        'TRACKING_ANCHOR_STAGE': '1',
        'TRACKING_PLAN_OFFSETS': '2:7,3:10,4:12,5:14',
        'TRACKING_NOT_APPLICABLE': 'N/A',
        'TRACKING_TIMEZONE': 'UTC',
    })

    with app.app_context():
        db.create_all()
        StageTrackingService.upsert_stages([dict(d) for d in STAGE_DEFINITIONS])
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def stage_ids():
    return [d['id'] for d in STAGE_DEFINITIONS]


@pytest.fixture
def make_project(app):
    """Factory for committed projects."""
    def _make(code='P-001', name='Line 1 retrofit', **fields):
        project = StageTrackingService.create_project({'project_code': code, 'name': name, **fields})
        db.session.commit()
        return project
    return _make
