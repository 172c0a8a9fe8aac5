"""Snapshot of everything the achievement rules look at.

The snapshot is built once per evaluation so that every rule sees the same
numbers, then handed to the pure rule predicates in ``catalog``.
"""
import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from weighttrack.models import (
    ChallengeParticipant,
    Comment,
    Donation,
    Post,
    PostLike,
    ProgressPhoto,
    TeamMember,
    User,
    WeightEntry,
)
from domain.weights.history import all_entries

EARLY_ADOPTER_LIMIT = 100
MAINTENANCE_TOLERANCE = 2.0
HYDRATION_THRESHOLD = 60.0


@dataclass
class AchievementFacts:
    user_id: int
    now: datetime = field(default_factory=datetime.utcnow)

    # Weight history
    entry_count: int = 0
    start_weight: Optional[float] = None
    current_weight: Optional[float] = None
    goal_weight: Optional[float] = None
    weight_lost: float = 0.0
    goal_reached: bool = False
    perfect_week: bool = False
    maintained_goal: bool = False
    last_gap_days: float = 0.0
    current_streak: int = 0
    longest_streak: int = 0
    entries_last_28_days: int = 0
    max_entries_in_week: int = 0
    full_months_logged: int = 0
    loss_after_gains: bool = False

    # Body composition
    body_fat_lost: float = 0.0
    muscle_gained: float = 0.0
    hydration_days: int = 0

    # Social
    team_count: int = 0
    post_count: int = 0
    comment_count: int = 0
    likes_received: int = 0
    max_post_likes: int = 0
    photo_count: int = 0
    challenges_joined: int = 0
    challenges_completed: int = 0
    profile_complete: bool = False

    # Special
    signup_rank: Optional[int] = None
    donation_count: int = 0
    monthly_donation_count: int = 0

    # Latest log (by creation time)
    latest_logged_at: Optional[datetime] = None
    latest_logged_weight: Optional[float] = None

    @property
    def early_adopter(self):
        return self.signup_rank is not None and self.signup_rank <= EARLY_ADOPTER_LIMIT


def _day_runs(days: Sequence[date]) -> List[int]:
    """Lengths of runs of consecutive calendar days in a sorted, distinct list."""
    runs = []
    for day in days:
        if runs and (day - previous).days == 1:
            runs[-1] += 1
        else:
            runs.append(1)
        previous = day
    return runs


def _current_streak(days: Sequence[date], today: date) -> int:
    if not days or (today - days[-1]).days > 1:
        return 0
    streak = 1
    for newer, older in zip(reversed(days), list(reversed(days))[1:]):
        if (newer - older).days != 1:
            break
        streak += 1
    return streak


def _strictly_decreasing(weights: Sequence[float]) -> bool:
    return all(later < earlier for earlier, later in zip(weights, weights[1:]))


def _full_months(days: Sequence[date]) -> int:
    per_month = {}
    for day in days:
        per_month.setdefault((day.year, day.month), set()).add(day.day)
    return sum(
        1 for (year, month), logged in per_month.items()
        if len(logged) == calendar.monthrange(year, month)[1]
    )


def _max_per_week(entries) -> int:
    per_week = {}
    for entry in entries:
        key = entry.recorded_at.isocalendar()[:2]
        per_week[key] = per_week.get(key, 0) + 1
    return max(per_week.values(), default=0)


def apply_weight_history(facts: AchievementFacts, entries, goal_weight=None, current_weight=None):
    """Fill the weight related facts from chronologically ordered entries."""
    facts.entry_count = len(entries)
    facts.goal_weight = goal_weight
    if not entries:
        return facts

    weights = [entry.weight for entry in entries]
    facts.start_weight = weights[0]
    facts.current_weight = current_weight if current_weight is not None else weights[-1]
    facts.weight_lost = facts.start_weight - facts.current_weight
    facts.goal_reached = goal_weight is not None and facts.current_weight <= goal_weight

    if len(weights) >= 7:
        facts.perfect_week = _strictly_decreasing(weights[-7:])

    if len(entries) >= 2:
        gap = entries[-1].recorded_at - entries[-2].recorded_at
        facts.last_gap_days = gap.total_seconds() / 86400

    if len(weights) >= 5:
        w = weights[-5:]
        facts.loss_after_gains = w[0] < w[1] < w[2] < w[3] and w[4] < w[3]

    days = sorted({entry.recorded_at.date() for entry in entries})
    facts.longest_streak = max(_day_runs(days), default=0)
    facts.current_streak = _current_streak(days, facts.now.date())
    facts.full_months_logged = _full_months(days)
    facts.max_entries_in_week = _max_per_week(entries)

    four_weeks_ago = facts.now - timedelta(days=28)
    facts.entries_last_28_days = sum(1 for entry in entries if entry.recorded_at >= four_weeks_ago)

    if goal_weight is not None and len(entries) >= 90:
        ninety_days_ago = facts.now - timedelta(days=90)
        recent = [entry.weight for entry in entries if entry.recorded_at >= ninety_days_ago]
        facts.maintained_goal = len(recent) >= 60 and all(
            abs(weight - goal_weight) <= MAINTENANCE_TOLERANCE for weight in recent
        )

    body_fat = [entry.body_fat_percentage for entry in entries if entry.body_fat_percentage is not None]
    if len(body_fat) >= 2:
        facts.body_fat_lost = body_fat[0] - body_fat[-1]
    muscle = [entry.muscle_mass for entry in entries if entry.muscle_mass is not None]
    if len(muscle) >= 2:
        facts.muscle_gained = muscle[-1] - muscle[0]
    facts.hydration_days = len({
        entry.recorded_at.date() for entry in entries
        if entry.water_percentage is not None and entry.water_percentage >= HYDRATION_THRESHOLD
    })

    latest = max(entries, key=lambda entry: (entry.created_at or entry.recorded_at, entry.id or 0))
    facts.latest_logged_at = latest.recorded_at
    facts.latest_logged_weight = latest.weight
    return facts


def _count(session: Session, stmt) -> int:
    return session.scalar(stmt) or 0


def build_facts(session: Session, user_id: int, now: Optional[datetime] = None) -> AchievementFacts:
    now = now or datetime.utcnow()
    user = session.get(User, user_id)
    facts = AchievementFacts(user_id=user_id, now=now)
    if user is None:
        return facts

    apply_weight_history(facts, all_entries(session, user_id), user.goal_weight, user.current_weight)
    facts.profile_complete = user.profile_complete

    facts.team_count = _count(session, select(func.count(TeamMember.id)).where(TeamMember.user_id == user_id))
    facts.post_count = _count(session, select(func.count(Post.id)).where(
        Post.author_id == user_id, Post.deleted_at.is_(None)))
    facts.comment_count = _count(session, select(func.count(Comment.id)).where(
        Comment.author_id == user_id, Comment.deleted_at.is_(None)))
    facts.likes_received = _count(session, select(func.count(PostLike.id)).join(Post).where(
        Post.author_id == user_id))

    per_post = (
        select(func.count(PostLike.id).label("likes"))
        .join(Post)
        .where(Post.author_id == user_id)
        .group_by(PostLike.post_id)
        .subquery()
    )
    facts.max_post_likes = _count(session, select(func.max(per_post.c.likes)))

    facts.photo_count = _count(session, select(func.count(ProgressPhoto.id)).join(WeightEntry).where(
        WeightEntry.user_id == user_id))
    facts.challenges_joined = _count(session, select(func.count(ChallengeParticipant.id)).where(
        ChallengeParticipant.user_id == user_id))
    facts.challenges_completed = _count(session, select(func.count(ChallengeParticipant.id)).where(
        ChallengeParticipant.user_id == user_id, ChallengeParticipant.completed.is_(True)))

    if user.created_at is not None:
        facts.signup_rank = _count(session, select(func.count(User.id)).where(
            (User.created_at < user.created_at)
            | ((User.created_at == user.created_at) & (User.id <= user.id))
        ))

    facts.donation_count = _count(session, select(func.count(Donation.id)).where(
        Donation.user_id == user_id, Donation.status == "COMPLETED"))
    facts.monthly_donation_count = _count(session, select(func.count(Donation.id)).where(
        Donation.user_id == user_id, Donation.status == "COMPLETED", Donation.type == "MONTHLY"))
    return facts
