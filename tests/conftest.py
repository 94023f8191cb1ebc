import os
import tempfile
from datetime import datetime, timedelta

import pytest

# Configure before app.py is imported: it reads the environment at import time.
_tmpdir = tempfile.mkdtemp(prefix="wiki-rewards-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_tmpdir, "test.db")
os.environ["RATE_LIMIT_ENABLED"] = "0"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ADMIN_WALLET"] = "0x" + "a" * 40
os.environ["REDIS_URL"] = ""
os.environ["USE_SERVER_SIDE_SESSIONS"] = "0"

from app import app as flask_app  # noqa: E402
from extensions import db  # noqa: E402
from leaderboard import get_leaderboard_cache  # noqa: E402
from models_wiki import Comment, Page, Revision, User  # noqa: E402


ADMIN_WALLET = os.environ["ADMIN_WALLET"]
NOW = datetime(2025, 6, 1, 12, 0, 0)


@pytest.fixture()
def app():
    flask_app.config["TESTING"] = True
    with flask_app.app_context():
        db.drop_all()
        db.create_all()
        get_leaderboard_cache().invalidate()
        yield flask_app
        db.session.remove()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def admin_client(app):
    c = app.test_client()
    with c.session_transaction() as sess:
        sess["wallet"] = ADMIN_WALLET
    return c


@pytest.fixture()
def make_user(app):
    counter = {"n": 0}

    def _make(display_name=None, created_at=None, wallet=None):
        counter["n"] += 1
        user = User(
            wallet_address=wallet or "0x" + format(counter["n"], "040x"),
            display_name=display_name,
            created_at=created_at or datetime.utcnow(),
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture()
def make_page(app):
    def _make(author, created_at=None):
        page = Page(author_id=author.id, title="page", created_at=created_at or datetime.utcnow())
        db.session.add(page)
        db.session.commit()
        return page

    return _make


@pytest.fixture()
def add_revision(app):
    def _add(author, page, created_at):
        db.session.add(Revision(author_id=author.id, page_id=page.id, created_at=created_at))
        db.session.commit()

    return _add


@pytest.fixture()
def add_comment(app):
    def _add(author, page, created_at):
        db.session.add(Comment(author_id=author.id, page_id=page.id, created_at=created_at))
        db.session.commit()

    return _add


def days_ago(days, hours=0):
    return datetime.utcnow() - timedelta(days=days, hours=hours)
