import enum
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from weighttrack.models import Achievement, User, UserAchievement
from .catalog import AchievementRule
from .evaluator import evaluate, rule_progress
from .facts import build_facts

logger = logging.getLogger(__name__)


class AwardOutcome(enum.Enum):
    GRANTED = "granted"
    ALREADY_HELD = "already_held"


def _held_row(session: Session, user_id: int, achievement_id: int) -> Optional[UserAchievement]:
    stmt = select(UserAchievement).where(
        UserAchievement.user_id == user_id,
        UserAchievement.achievement_id == achievement_id,
    )
    return session.scalars(stmt).first()


def award(session: Session, user_id: int, achievement: Achievement, now: Optional[datetime] = None) -> AwardOutcome:
    """Grant ``achievement`` once. A second award, racing or not, is a no-op."""
    if _held_row(session, user_id, achievement.id) is not None:
        return AwardOutcome.ALREADY_HELD

    try:
        with session.begin_nested():
            session.add(UserAchievement(
                user_id=user_id,
                achievement_id=achievement.id,
                unlocked_at=now or datetime.utcnow(),
            ))
    except IntegrityError:
        logger.debug("Concurrent award of %r to user %s", achievement.name, user_id)
        return AwardOutcome.ALREADY_HELD

    logger.info("Achievement unlocked for user %s: %s", user_id, achievement.name)
    return AwardOutcome.GRANTED


def seed_catalog(session: Session, rules: Iterable[AchievementRule]):
    """Insert catalog rows that are missing. Returns (created, skipped)."""
    existing = set(session.scalars(select(Achievement.name)))
    created = skipped = 0
    for rule in rules:
        if rule.name in existing:
            skipped += 1
            continue
        session.add(Achievement(
            name=rule.name,
            description=rule.description,
            icon=rule.icon,
            points=rule.points,
            is_hidden=rule.hidden,
        ))
        existing.add(rule.name)
        created += 1
    session.flush()
    return created, skipped


def held_names(session: Session, user_id: int) -> List[str]:
    stmt = (
        select(Achievement.name)
        .join(UserAchievement, UserAchievement.achievement_id == Achievement.id)
        .where(UserAchievement.user_id == user_id)
    )
    return list(session.scalars(stmt))


def evaluate_achievements(session: Session, user_id: int, rules: Iterable[AchievementRule],
                          now: Optional[datetime] = None) -> List[Achievement]:
    """Award every rule the user now satisfies. Returns the newly granted rows."""
    rules = list(rules)
    now = now or datetime.utcnow()
    facts = build_facts(session, user_id, now)
    names = evaluate(facts, rules, held_names(session, user_id))
    if not names:
        return []

    rows = {a.name: a for a in session.scalars(select(Achievement).where(Achievement.name.in_(names)))}
    granted = []
    for name in names:
        achievement = rows.get(name)
        if achievement is None:
            logger.warning("Achievement not found in catalog table: %s", name)
            continue
        if award(session, user_id, achievement, now) is AwardOutcome.GRANTED:
            granted.append(achievement)
    return granted


def user_achievements(session: Session, user_id: int, rules: Iterable[AchievementRule],
                      now: Optional[datetime] = None) -> dict:
    """Unlocked achievements, locked ones with progress, and total points.

    Hidden achievements are left out of the locked list.
    """
    rules_by_name = {rule.name: rule for rule in rules}
    stmt = (
        select(UserAchievement)
        .where(UserAchievement.user_id == user_id)
        .order_by(desc(UserAchievement.unlocked_at), desc(UserAchievement.id))
    )
    unlocked = list(session.scalars(stmt))
    unlocked_ids = {ua.achievement_id for ua in unlocked}

    facts = build_facts(session, user_id, now)
    locked = []
    for achievement in session.scalars(select(Achievement).order_by(Achievement.id)):
        if achievement.id in unlocked_ids or achievement.is_hidden:
            continue
        rule = rules_by_name.get(achievement.name)
        if rule is None:
            current, target, percentage = 0.0, 1.0, 0
        else:
            current, target, percentage = rule_progress(rule, facts)
        locked.append({
            "achievement": achievement,
            "current": current,
            "target": target,
            "progress": percentage,
        })

    return {
        "unlocked": unlocked,
        "locked": locked,
        "total_points": sum(ua.achievement.points for ua in unlocked),
    }


def total_points(session: Session, user_id: int) -> int:
    stmt = (
        select(func.coalesce(func.sum(Achievement.points), 0))
        .join(UserAchievement, UserAchievement.achievement_id == Achievement.id)
        .where(UserAchievement.user_id == user_id)
    )
    return session.scalar(stmt) or 0


def leaderboard(session: Session, limit: int = 20):
    """[(user, points, achievement_count)] ordered by points, ties broken by user id."""
    points = func.coalesce(func.sum(Achievement.points), 0).label("points")
    count = func.count(UserAchievement.id).label("achievements")
    stmt = (
        select(User, points, count)
        .join(UserAchievement, UserAchievement.user_id == User.id)
        .join(Achievement, Achievement.id == UserAchievement.achievement_id)
        .where(User.is_active.is_(True))
        .group_by(User.id)
        .order_by(desc("points"), User.id)
        .limit(limit)
    )
    return [(user, pts, n) for user, pts, n in session.execute(stmt)]
