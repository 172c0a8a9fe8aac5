"""Tests for challenge creation, joining, progress and closing."""
from datetime import timedelta

import pytest

from weighttrack.models import ChallengeParticipant
from weighttrack.services import teams as team_service
from domain.challenges import services
from domain.challenges.schemas import ChallengeStatus
from domain.errors import Conflict, InvalidState, NotFound, PermissionDenied, ValidationError


@pytest.fixture
def member(session, team, bob):
    team_service.join_team(session, team, bob.id)
    session.commit()
    return bob


class TestCreateChallenge:

    def test_status_follows_dates(self, make_challenge, now):
        assert make_challenge().status == "ACTIVE"
        upcoming = make_challenge(name="Later", start_date=now + timedelta(days=1))
        assert upcoming.status == "UPCOMING"

    def test_end_before_start_is_rejected(self, make_challenge, now):
        with pytest.raises(ValidationError) as exc_info:
            make_challenge(start_date=now, end_date=now - timedelta(days=1))
        assert "__all__" in exc_info.value.errors

    def test_short_name_and_negative_target(self, make_challenge):
        with pytest.raises(ValidationError) as exc_info:
            make_challenge(name="ab", target_value=-1)
        assert set(exc_info.value.errors) >= {"name", "target_value"}

    def test_aware_dates_are_stored_as_utc(self, session, team, now):
        data = {
            "name": "Timezones",
            "description": "Dates arrive with an offset",
            "type": "CONSISTENCY",
            "start_date": "2024-03-10T10:00:00+02:00",
            "end_date": "2024-03-30T10:00:00+02:00",
        }
        challenge = services.create_challenge(session, team.id, data, now)
        assert challenge.start_date.tzinfo is None
        assert challenge.start_date.hour == 8


class TestJoinChallenge:

    def test_member_can_join_once(self, session, make_challenge, member, now):
        challenge = make_challenge()
        participant = services.join_challenge(session, challenge.id, member.id, now)
        session.commit()
        assert participant.progress == 0.0

        with pytest.raises(Conflict) as exc_info:
            services.join_challenge(session, challenge.id, member.id, now)
        assert exc_info.value.reason == "already participating"
        assert ChallengeParticipant.query.filter_by(challenge_id=challenge.id).count() == 1

    def test_non_member_is_denied(self, session, make_challenge, make_user, now):
        outsider = make_user("outsider")
        with pytest.raises(PermissionDenied) as exc_info:
            services.join_challenge(session, make_challenge().id, outsider.id, now)
        assert exc_info.value.reason == "not a team member"

    def test_upcoming_challenge_accepts_participants(self, session, make_challenge, member, now):
        challenge = make_challenge(start_date=now + timedelta(days=2))
        services.join_challenge(session, challenge.id, member.id, now)

    def test_ended_challenge_is_closed(self, session, make_challenge, member, now):
        challenge = make_challenge()
        with pytest.raises(InvalidState) as exc_info:
            services.join_challenge(session, challenge.id, member.id, now + timedelta(days=30))
        assert exc_info.value.reason == "no longer accepting"
        assert challenge.status == "COMPLETED"

    def test_cancelled_challenge_is_closed(self, session, make_challenge, member, now):
        challenge = make_challenge()
        services.cancel_challenge(session, challenge.id, now)
        with pytest.raises(InvalidState):
            services.join_challenge(session, challenge.id, member.id, now)

    def test_completed_challenge_is_closed(self, session, make_challenge, member, now):
        challenge = make_challenge()
        services.complete_challenge(session, challenge.id, now)
        with pytest.raises(InvalidState) as exc_info:
            services.join_challenge(session, challenge.id, member.id, now)
        assert exc_info.value.reason == "no longer accepting"

    def test_unknown_challenge(self, session, member, now):
        with pytest.raises(NotFound) as exc_info:
            services.join_challenge(session, 999, member.id, now)
        assert exc_info.value.reason == "challenge not found"


class TestLeaveChallenge:

    def test_leave_without_joining(self, session, make_challenge, member):
        with pytest.raises(NotFound) as exc_info:
            services.leave_challenge(session, make_challenge().id, member.id)
        assert exc_info.value.reason == "not participating"

    def test_leave_removes_participation(self, session, make_challenge, member, now):
        challenge = make_challenge()
        services.join_challenge(session, challenge.id, member.id, now)
        services.leave_challenge(session, challenge.id, member.id)
        assert challenge.participants.count() == 0


class TestUpdateProgress:

    def test_progress_uses_entries_inside_window(self, session, make_challenge, member, log_weight, now):
        challenge = make_challenge(target_value=10)
        log_weight(member, 250.0, now - timedelta(days=20))
        log_weight(member, 200.0, now - timedelta(days=6))
        log_weight(member, 194.0, now - timedelta(days=1))
        services.join_challenge(session, challenge.id, member.id, now)

        completed = services.update_progress(session, challenge.id, member.id, now)

        participant = challenge.participants.first()
        assert completed == []
        assert participant.progress == pytest.approx(3.0)
        assert participant.completed is False

    def test_completion_is_latched(self, session, make_challenge, member, log_weight, now):
        challenge = make_challenge(target_value=5)
        log_weight(member, 200.0, now - timedelta(days=6))
        log_weight(member, 188.0, now - timedelta(days=1))
        services.join_challenge(session, challenge.id, member.id, now)

        completed = services.update_progress(session, challenge.id, member.id, now)
        participant = completed[0]
        first_completed_at = participant.completed_at
        assert participant.progress == pytest.approx(6.0)
        assert participant.completed is True
        assert first_completed_at == now

        # Regaining weight drops progress but keeps the completion
        log_weight(member, 199.0, now + timedelta(hours=1))
        later = now + timedelta(days=1)
        assert services.update_progress(session, challenge.id, member.id, later) == []
        assert participant.progress == pytest.approx(0.5)
        assert participant.completed is True
        assert participant.completed_at == first_completed_at

    def test_zero_target_never_completes(self, session, make_challenge, member, now):
        challenge = make_challenge(target_value=0)
        services.join_challenge(session, challenge.id, member.id, now)

        completed = services.update_progress(session, challenge.id, member.id, now)

        participant = challenge.participants.first()
        assert completed == []
        assert participant.progress == 0.0
        assert participant.completed is False
        assert participant.completed_at is None

    def test_manager_refresh_covers_everyone(self, session, make_challenge, member, alice, log_weight, now):
        challenge = make_challenge(type="CONSISTENCY", target_value=2)
        for user in (alice, member):
            services.join_challenge(session, challenge.id, user.id, now)
        log_weight(alice, 180.0, now - timedelta(days=2))
        log_weight(alice, 179.0, now - timedelta(days=1))
        log_weight(member, 220.0, now - timedelta(days=1))

        completed = services.update_progress(session, challenge.id, None, now)

        assert [p.user_id for p in completed] == [alice.id]
        progress = {p.user_id: p.progress for p in challenge.participants}
        assert progress == {alice.id: 2.0, member.id: 1.0}

    def test_non_participant(self, session, make_challenge, member, now):
        with pytest.raises(NotFound):
            services.update_progress(session, make_challenge().id, member.id, now)

    def test_cancelled_challenge_rejects_updates(self, session, make_challenge, now):
        challenge = make_challenge()
        services.cancel_challenge(session, challenge.id, now)
        with pytest.raises(InvalidState) as exc_info:
            services.update_progress(session, challenge.id, None, now)
        assert exc_info.value.reason == "cancelled"

    def test_refresh_user_challenges_skips_upcoming(self, session, make_challenge, member, log_weight, now):
        active = make_challenge(type="CONSISTENCY")
        upcoming = make_challenge(name="Later", type="CONSISTENCY", start_date=now + timedelta(days=3))
        services.join_challenge(session, active.id, member.id, now)
        services.join_challenge(session, upcoming.id, member.id, now)
        log_weight(member, 200.0, now - timedelta(hours=2))

        services.refresh_user_challenges(session, member.id, now)

        assert active.participants.first().progress == 1.0
        assert upcoming.participants.first().progress == 0.0


class TestFinishChallenge:

    def test_complete_recomputes_then_closes(self, session, make_challenge, member, log_weight, now):
        challenge = make_challenge(type="TOTAL_WEIGHT_LOSS", target_value=4)
        services.join_challenge(session, challenge.id, member.id, now)
        log_weight(member, 200.0, now - timedelta(days=5))
        log_weight(member, 195.0, now - timedelta(days=1))

        services.complete_challenge(session, challenge.id, now)

        participant = challenge.participants.first()
        assert challenge.status == "COMPLETED"
        assert participant.progress == pytest.approx(5.0)
        assert participant.completed is True

    def test_cannot_finish_twice(self, session, make_challenge, now):
        challenge = make_challenge()
        services.complete_challenge(session, challenge.id, now)
        with pytest.raises(InvalidState) as exc_info:
            services.cancel_challenge(session, challenge.id, now)
        assert exc_info.value.reason == "already finished"

    def test_stored_terminal_status_wins_over_dates(self, session, make_challenge, now):
        challenge = make_challenge()
        services.cancel_challenge(session, challenge.id, now)
        assert services.effective_status(challenge, now) == ChallengeStatus.CANCELLED

    def test_can_manage(self, session, make_challenge, alice, member):
        challenge = make_challenge()
        assert services.can_manage_challenge(session, challenge, alice) is True
        assert services.can_manage_challenge(session, challenge, member) is False
