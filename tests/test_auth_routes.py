"""Tests for registration, login and the JWT cookie flow."""
from datetime import datetime, timedelta

from weighttrack.models import User

from .conftest import PASSWORD


class TestRegister:

    def test_register_sets_cookie(self, client):
        response = client.post("/api/auth/register", json={
            "username": "dana", "email": "Dana@Example.com", "password": "lighter42",
        })
        assert response.status_code == 201
        assert response.get_json()["user"]["username"] == "dana"
        assert client.get_cookie("access_token_cookie") is not None
        assert User.query.filter_by(email="dana@example.com").count() == 1

    def test_register_awards_early_adopter(self, client):
        client.post("/api/auth/register", json={
            "username": "dana", "email": "dana@example.com", "password": "lighter42",
        })
        data = client.get("/api/achievements").get_json()["data"]
        assert "Early Adopter" in [ua["achievement"]["name"] for ua in data["unlocked"]]

    def test_duplicate_email(self, client, alice):
        response = client.post("/api/auth/register", json={
            "username": "alice2", "email": alice.email, "password": "lighter42",
        })
        assert response.status_code == 400

    def test_weak_password(self, client):
        response = client.post("/api/auth/register", json={
            "username": "dana", "email": "dana@example.com", "password": "onlyletters",
        })
        assert response.status_code == 400
        assert "number" in response.get_json()["msg"]

    def test_bad_username(self, client):
        response = client.post("/api/auth/register", json={
            "username": "a b", "email": "dana@example.com", "password": "lighter42",
        })
        assert response.status_code == 400


class TestLogin:

    def test_login_with_username(self, client, alice):
        response = client.post("/api/auth/login", json={"username": "alice", "password": PASSWORD})
        assert response.status_code == 200
        assert client.get_cookie("access_token_cookie") is not None

    def test_wrong_password(self, client, alice):
        response = client.post("/api/auth/login", json={"email": alice.email, "password": "nope12345"})
        assert response.status_code == 401

    def test_disabled_account(self, client, make_user):
        user = make_user("ghost", is_active=False)
        response = client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
        assert response.status_code == 403

    def test_form_login_redirects(self, client, alice):
        response = client.post("/api/auth/login", data={"email": alice.email, "password": PASSWORD})
        assert response.status_code == 302
        assert response.headers["Location"].endswith("/dashboard")


class TestProtectedRoutes:

    def test_api_without_cookie_is_401(self, client):
        response = client.get("/api/achievements")
        assert response.status_code == 401
        assert response.get_json()["success"] is False

    def test_page_without_cookie_redirects_to_login(self, client):
        response = client.get("/dashboard")
        assert response.status_code == 302
        assert "/api/auth/login" in response.headers["Location"]

    def test_dashboard_renders(self, login, alice):
        response = login(alice).get("/dashboard")
        assert response.status_code == 200
        assert b"Welcome back, alice" in response.data

    def test_dashboard_shows_current_streak(self, login, alice, log_weight):
        today = datetime.utcnow().replace(hour=0, minute=5, second=0, microsecond=0)
        for days in (2, 1, 0):
            log_weight(alice, 180.0 + days, today - timedelta(days=days))

        response = login(alice).get("/dashboard")
        assert b"Streak: 3 day(s)" in response.data

    def test_logout_clears_cookie(self, login, alice):
        client = login(alice)
        assert client.post("/api/auth/logout", json={}).status_code == 200
        assert client.get("/api/achievements").status_code == 401
