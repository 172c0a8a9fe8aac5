"""Shared fixtures: an app on in-memory SQLite, users, teams and logged-in clients."""
from datetime import datetime, timedelta

import pytest

from weighttrack import create_app
from weighttrack.extensions import db as _db
from weighttrack.models import User, WeightEntry
from weighttrack.services import teams as team_service
from domain.achievements.catalog import ACHIEVEMENT_RULES
from domain.achievements.ledger import seed_catalog
from domain.challenges.services import create_challenge

PASSWORD = "secret123"


@pytest.fixture
def app(tmp_path):
    app = create_app("testing")
    app.config["UPLOAD_FOLDER"] = str(tmp_path / "uploads")

    with app.app_context():
        _db.create_all()
        seed_catalog(_db.session, ACHIEVEMENT_RULES)
        _db.session.commit()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def session(app):
    return _db.session


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(session):
    """Factory for committed users. Every user shares ``PASSWORD``."""
    def _make_user(username, **fields):
        user = User(email=f"{username}@example.com", username=username, **fields)
        user.set_password(PASSWORD)
        session.add(user)
        session.commit()
        return user
    return _make_user


@pytest.fixture
def alice(make_user):
    return make_user("alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob")


@pytest.fixture
def login(app):
    """Returns a fresh test client carrying ``user``'s JWT cookie."""
    def _login(user):
        client = app.test_client()
        response = client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
        assert response.status_code == 200, response.get_json()
        return client
    return _login


@pytest.fixture
def team(session, alice):
    team = team_service.create_team(session, alice, "Weekend Warriors", "Losing it together")
    session.commit()
    return team


@pytest.fixture
def now():
    return datetime(2024, 3, 15, 12, 0)


@pytest.fixture
def make_challenge(session, team, now):
    def _make_challenge(**fields):
        team_id = fields.pop("team_id", team.id)
        data = {
            "name": "Spring Cut",
            "description": "Lose five percent before summer",
            "type": "WEIGHT_LOSS_PERCENTAGE",
            "start_date": now - timedelta(days=7),
            "end_date": now + timedelta(days=21),
            "target_value": 5,
        }
        data.update(fields)
        challenge = create_challenge(session, team_id, data, now)
        session.commit()
        return challenge
    return _make_challenge


@pytest.fixture
def log_weight(session):
    def _log_weight(user, weight, recorded_at, **fields):
        entry = WeightEntry(user_id=user.id, weight=weight, recorded_at=recorded_at, **fields)
        session.add(entry)
        session.commit()
        return entry
    return _log_weight
