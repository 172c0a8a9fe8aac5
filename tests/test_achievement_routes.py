"""Tests for the achievement pages, the JSON API and profile-driven unlocks."""
import pytest


@pytest.fixture
def alice_client(login, alice):
    return login(alice)


class TestAchievementApi:

    def test_check_is_idempotent(self, alice_client):
        first = alice_client.post("/api/achievements/check").get_json()
        assert "Early Adopter" in [a["name"] for a in first["unlocked"]]

        second = alice_client.post("/api/achievements/check").get_json()
        assert second["unlocked"] == []

    def test_summary_shape(self, alice_client):
        alice_client.post("/api/achievements/check")

        data = alice_client.get("/api/achievements").get_json()["data"]

        unlocked = [ua["achievement"]["name"] for ua in data["unlocked"]]
        locked = [item["achievement"]["name"] for item in data["locked"]]
        assert unlocked == ["Early Adopter"]
        assert data["total_points"] == 500
        assert "Night Owl" not in locked
        assert all(0 <= item["progress"] <= 100 for item in data["locked"])
        progress = [item["progress"] for item in data["locked"]]
        assert progress == sorted(progress, reverse=True)


class TestAchievementPages:

    def test_index_and_leaderboard(self, alice_client):
        alice_client.post("/api/achievements/check")
        assert alice_client.get("/achievements/").status_code == 200

        board = alice_client.get("/achievements/leaderboard")
        assert board.status_code == 200
        assert b"alice" in board.data

    @pytest.mark.parametrize("limit", ["-1", "0", "500"])
    def test_leaderboard_limit_is_clamped(self, alice_client, limit):
        alice_client.post("/api/achievements/check")
        board = alice_client.get(f"/achievements/leaderboard?limit={limit}")
        assert board.status_code == 200
        assert b"alice" in board.data

    def test_private_profile(self, session, alice_client, bob):
        assert alice_client.get(f"/achievements/user/{bob.id}").status_code == 200
        bob.profile_public = False
        session.commit()
        assert alice_client.get(f"/achievements/user/{bob.id}").status_code == 403


class TestProfile:

    def test_complete_profile_unlocks(self, alice_client, alice):
        response = alice_client.post("/settings/profile", json={
            "display_name": "Alice A.",
            "bio": "Training for a 10k",
            "avatar_url": "https://example.com/alice.png",
            "unit_system": "metric",
            "goal_weight": "65",
            "height": "168",
            "profile_public": True,
        })

        data = response.get_json()
        assert response.status_code == 200
        assert "Complete Profile" in data["achievements"]
        assert data["user"]["name"] == "Alice A."
        assert alice.weight_unit == "kg"

    def test_invalid_profile(self, alice_client):
        response = alice_client.post("/settings/profile", json={"goal_weight": "-3", "avatar_url": "ftp://x"})
        assert response.status_code == 400
        assert set(response.get_json()["errors"]) == {"goal_weight", "avatar_url"}

    def test_profile_page_renders(self, alice_client):
        assert alice_client.get("/settings/profile").status_code == 200
