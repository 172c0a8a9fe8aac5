"""Tests for team creation, membership and management."""
import pytest

from weighttrack.models import Team, TeamMember


@pytest.fixture
def alice_client(login, alice):
    return login(alice)


@pytest.fixture
def bob_client(login, bob):
    return login(bob)


def _create(client, **fields):
    payload = {"name": "Morning Walkers", "description": "Steps before coffee"}
    payload.update(fields)
    return client.post("/teams/new", json=payload)


class TestCreateTeam:

    def test_creator_becomes_owner(self, session, alice_client, alice):
        response = _create(alice_client)

        assert response.status_code == 201
        team = session.get(Team, response.get_json()["team_id"])
        assert team.owner_id == alice.id
        assert team.membership_for(alice.id).role == "OWNER"
        assert len(team.invite_code) > 0

    def test_form_create_redirects_to_team(self, alice_client):
        response = alice_client.post("/teams/new", data={"name": "Lunch Lifters", "description": "Noon sets"})

        assert response.status_code == 302
        team = Team.query.filter_by(name="Lunch Lifters").one()
        assert response.headers["Location"].endswith(f"/teams/{team.id}")

    def test_name_must_be_unique(self, alice_client, bob_client):
        _create(alice_client)
        response = _create(bob_client)
        assert response.status_code == 400
        assert response.get_json()["reason"] == "name taken"

    def test_name_length(self, alice_client):
        response = _create(alice_client, name="ab")
        assert response.status_code == 400
        assert "name" in response.get_json()["errors"]


class TestJoinTeam:

    def test_join_public_team_once(self, bob_client, team, bob):
        assert bob_client.post(f"/teams/{team.id}/join", json={}).status_code == 200
        assert team.membership_for(bob.id).role == "MEMBER"

        again = bob_client.post(f"/teams/{team.id}/join", json={})
        assert again.status_code == 400
        assert again.get_json()["reason"] == "already a member"

    def test_private_team_needs_code(self, session, bob_client, team, bob):
        team.is_public = False
        session.commit()

        response = bob_client.post(f"/teams/{team.id}/join", json={})
        assert response.status_code == 403
        assert response.get_json()["reason"] == "private team"

        page = bob_client.get(f"/teams/join/{team.invite_code}")
        assert page.status_code == 200
        assert bob_client.post(f"/teams/join/{team.invite_code}", json={}).status_code == 200
        assert team.membership_for(bob.id) is not None

    def test_unknown_invite_code(self, bob_client):
        response = bob_client.post("/teams/join/not-a-code", json={})
        assert response.status_code == 404

    def test_full_team(self, session, login, team, bob, make_user):
        team.max_members = 2
        session.commit()
        login(bob).post(f"/teams/{team.id}/join", json={})

        response = login(make_user("carol")).post(f"/teams/{team.id}/join", json={})
        assert response.status_code == 400
        assert response.get_json()["reason"] == "team full"


class TestMembership:

    @pytest.fixture
    def joined(self, bob_client, team):
        bob_client.post(f"/teams/{team.id}/join", json={})
        return team

    def test_owner_cannot_leave(self, alice_client, team):
        response = alice_client.post(f"/teams/{team.id}/leave", json={})
        assert response.status_code == 400
        assert response.get_json()["reason"] == "owner cannot leave"

    def test_member_can_leave(self, bob_client, joined, bob):
        assert bob_client.post(f"/teams/{joined.id}/leave", json={}).status_code == 200
        assert joined.membership_for(bob.id) is None

    def test_owner_promotes_member(self, alice_client, joined, bob):
        response = alice_client.post(f"/teams/{joined.id}/members/{bob.id}/role", json={"role": "admin"})
        assert response.status_code == 200
        assert joined.membership_for(bob.id).role == "ADMIN"

    def test_cannot_promote_to_owner(self, alice_client, joined, bob):
        response = alice_client.post(f"/teams/{joined.id}/members/{bob.id}/role", json={"role": "OWNER"})
        assert response.status_code == 400

    def test_member_cannot_remove(self, bob_client, joined, alice):
        response = bob_client.post(f"/teams/{joined.id}/members/{alice.id}/remove", json={})
        assert response.status_code == 403

    def test_owner_removes_member(self, alice_client, joined, bob):
        assert alice_client.post(f"/teams/{joined.id}/members/{bob.id}/remove", json={}).status_code == 200
        assert TeamMember.query.filter_by(team_id=joined.id, user_id=bob.id).count() == 0

    def test_regenerate_invite(self, alice_client, joined):
        old_code = joined.invite_code
        response = alice_client.post(f"/teams/{joined.id}/invite/regenerate", json={})
        assert response.status_code == 200
        assert response.get_json()["invite_code"] != old_code

    def test_only_owner_deletes(self, alice_client, bob_client, joined):
        assert bob_client.post(f"/teams/{joined.id}/delete", json={}).status_code == 403
        assert alice_client.post(f"/teams/{joined.id}/delete", json={}).status_code == 200
        assert Team.query.count() == 0


class TestTeamPages:

    def test_member_sees_team(self, alice_client, team):
        response = alice_client.get(f"/teams/{team.id}")
        assert response.status_code == 200
        assert b"Weekend Warriors" in response.data

    def test_outsider_is_forbidden(self, bob_client, team):
        assert bob_client.get(f"/teams/{team.id}").status_code == 403

    def test_index_lists_public_teams(self, bob_client, team):
        response = bob_client.get("/teams/")
        assert response.status_code == 200
        assert b"Weekend Warriors" in response.data
