import pytest
import os
import tempfile
from datetime import timedelta
from unittest.mock import patch

# Set test environment variables
os.environ["TESTING"] = "true"
os.environ["TRUSTGRAPH_LOG_JSON"] = "false"

from trustgraph.models.trust import utcnow


@pytest.fixture
def app():
    """Create and configure a new app instance for each test."""
    db_fd, db_path = tempfile.mkstemp()
    with patch.dict(os.environ, {
        "DATABASE_URL": f"sqlite:///{db_path}",
        "TRUSTGRAPH_PUBLIC_BASE_URL": "https://trust.example.com/",
    }):
        from trustgraph.factory import create_app
        from trustgraph.database import db
        app = create_app()
        with app.app_context():
            db.create_all()
            yield app
            db.session.remove()
            db.drop_all()
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def session(app):
    """The app-scoped SQLAlchemy session."""
    from trustgraph.database import db
    return db.session


def event_payload(subject='agent-a', **overrides):
    """A valid ingest payload, one hour old unless overridden."""
    data = {
        'subject_agent_id': subject,
        'source': 'taskmint',
        'event_type': 'task_completed',
        'outcome': 'success',
        'severity': 100,
        'occurred_at': utcnow() - timedelta(hours=1),
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_event():
    return event_payload
