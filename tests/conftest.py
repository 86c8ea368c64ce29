"""
Shared pytest fixtures for the Workboard test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - dispatcher: RecordingDispatcher installed as the notification sink
    - work_area / make_task / add_member: hierarchy builders that bypass
      the service layer (no notifications, no audit rows)
"""

import pytest

from workboard import create_app
from workboard.models import db as _db
from workboard.models.work import MEMBER_ACTIVE, TaskMember, WorkArea, WorkTask
from workboard.services.notification import EXTENSION_KEY


class RecordingDispatcher:
    """Notification sink that keeps every message it receives.

    ``fail_for`` holds user ids whose delivery raises, to exercise the
    per-recipient error isolation of the dispatch loop.
    """

    def __init__(self):
        self.messages = []
        self.fail_for = set()

    def send_notification(self, message):
        if message.user_id in self.fail_for:
            raise RuntimeError(f"delivery to {message.user_id} failed")
        self.messages.append(message)

    @property
    def recipients(self):
        return [m.user_id for m in self.messages]

    @property
    def titles(self):
        return [m.title for m in self.messages]

    def clear(self):
        self.messages.clear()


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def dispatcher(app):
    """Swap the configured dispatcher for a RecordingDispatcher."""
    previous = app.extensions[EXTENSION_KEY]
    recorder = RecordingDispatcher()
    app.extensions[EXTENSION_KEY] = recorder
    yield recorder
    app.extensions[EXTENSION_KEY] = previous


# ── Hierarchy builders ───────────────────────────────────────────────────


@pytest.fixture()
def work_area():
    area = WorkArea(project_id="proj-1", name="Finance Rollout", created_by_user_id="owner")
    _db.session.add(area)
    _db.session.commit()
    return area


def _add_member(task, user_id, user_name=None, email=None, status=MEMBER_ACTIVE):
    member = TaskMember(
        user_id=user_id,
        user_name=user_name or user_id.upper(),
        user_email=email if email is not None else f"{user_id}@example.com",
        status=status,
    )
    task.members.append(member)
    _db.session.commit()
    return member


def _make_task(area, title="Configure ledger", members=(), **fields):
    task = WorkTask(work_area_id=area.id, title=title, **fields)
    _db.session.add(task)
    _db.session.commit()
    for user_id in members:
        _add_member(task, user_id)
    return task


@pytest.fixture()
def make_task():
    return _make_task


@pytest.fixture()
def add_member():
    return _add_member
