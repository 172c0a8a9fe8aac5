"""Tests for awarding, seeding and summarising achievements."""
from datetime import timedelta

from weighttrack.models import Achievement, Donation, Post, PostLike, UserAchievement
from domain.achievements.catalog import ACHIEVEMENT_RULES
from domain.achievements.facts import build_facts
from domain.achievements.ledger import (
    AwardOutcome,
    award,
    evaluate_achievements,
    held_names,
    leaderboard,
    seed_catalog,
    total_points,
    user_achievements,
)


def _achievement(name):
    return Achievement.query.filter_by(name=name).one()


class TestSeedCatalog:

    def test_seeding_is_idempotent(self, session):
        created, skipped = seed_catalog(session, ACHIEVEMENT_RULES)
        assert created == 0
        assert skipped == len(ACHIEVEMENT_RULES)
        assert Achievement.query.count() == len(ACHIEVEMENT_RULES)

    def test_hidden_flag_is_copied(self, session):
        assert _achievement("Night Owl").is_hidden is True
        assert _achievement("First Weigh-In").is_hidden is False


class TestAward:

    def test_award_once(self, session, alice, now):
        achievement = _achievement("Team Player")
        assert award(session, alice.id, achievement, now) is AwardOutcome.GRANTED
        assert award(session, alice.id, achievement, now) is AwardOutcome.ALREADY_HELD
        session.commit()

        rows = UserAchievement.query.filter_by(user_id=alice.id, achievement_id=achievement.id).all()
        assert len(rows) == 1
        assert rows[0].unlocked_at == now

    def test_total_points(self, session, alice, now):
        award(session, alice.id, _achievement("Team Player"), now)
        award(session, alice.id, _achievement("Social Butterfly"), now)
        assert total_points(session, alice.id) == 75


class TestEvaluateAchievements:

    def test_first_entry_unlocks_once(self, session, alice, log_weight, now):
        log_weight(alice, 200.0, now)

        granted = {a.name for a in evaluate_achievements(session, alice.id, ACHIEVEMENT_RULES, now)}
        session.commit()

        assert {"First Weigh-In", "Early Adopter"} <= granted
        assert evaluate_achievements(session, alice.id, ACHIEVEMENT_RULES, now) == []

    def test_team_owner_is_a_team_player(self, session, team, alice, now):
        evaluate_achievements(session, alice.id, ACHIEVEMENT_RULES, now)
        assert "Team Player" in held_names(session, alice.id)

    def test_missing_catalog_row_is_skipped(self, session, alice, log_weight, now):
        session.delete(_achievement("First Weigh-In"))
        session.commit()
        log_weight(alice, 200.0, now)

        granted = {a.name for a in evaluate_achievements(session, alice.id, ACHIEVEMENT_RULES, now)}
        assert "First Weigh-In" not in granted
        assert "Early Adopter" in granted


class TestFactsFromDatabase:

    def test_social_and_donation_counts(self, session, team, alice, bob, now):
        post = Post(team_id=team.id, author_id=alice.id, content="Down two pounds!")
        session.add(post)
        session.flush()
        session.add(PostLike(post_id=post.id, user_id=bob.id))
        session.add(Donation(user_id=alice.id, amount=5, type="MONTHLY", status="COMPLETED"))
        session.add(Donation(user_id=alice.id, amount=5, type="ONE_TIME", status="FAILED"))
        session.commit()

        facts = build_facts(session, alice.id, now)

        assert facts.team_count == 1
        assert facts.post_count == 1
        assert facts.likes_received == 1
        assert facts.max_post_likes == 1
        assert facts.donation_count == 1
        assert facts.monthly_donation_count == 1

    def test_signup_rank(self, session, alice, bob, now):
        assert build_facts(session, alice.id, now).signup_rank == 1
        assert build_facts(session, bob.id, now).signup_rank == 2

    def test_unknown_user(self, session, now):
        assert build_facts(session, 12345, now).entry_count == 0


class TestUserAchievements:

    def test_locked_list_hides_hidden_rules(self, session, alice, log_weight, now):
        log_weight(alice, 200.0, now - timedelta(days=1))
        log_weight(alice, 197.0, now)
        evaluate_achievements(session, alice.id, ACHIEVEMENT_RULES, now)
        session.commit()

        summary = user_achievements(session, alice.id, ACHIEVEMENT_RULES, now)

        unlocked = {ua.achievement.name for ua in summary["unlocked"]}
        locked = {item["achievement"].name: item for item in summary["locked"]}
        assert "First Weigh-In" in unlocked
        assert "Night Owl" not in locked
        assert locked["5 lbs Lost"]["progress"] == 60
        assert summary["total_points"] == sum(ua.achievement.points for ua in summary["unlocked"])


class TestLeaderboard:

    def test_ordered_by_points(self, session, alice, bob, make_user, now):
        carol = make_user("carol", is_active=False)
        award(session, alice.id, _achievement("Social Butterfly"), now)
        award(session, bob.id, _achievement("Team Player"), now)
        award(session, bob.id, _achievement("Challenger"), now)
        award(session, carol.id, _achievement("Goal Reached"), now)
        session.commit()

        rows = leaderboard(session, limit=10)

        assert [(user.username, points, count) for user, points, count in rows] == [
            ("bob", 100, 2),
            ("alice", 25, 1),
        ]
