from datetime import datetime

from flask import Blueprint, render_template
from flask_jwt_extended import jwt_required, current_user

from weighttrack.extensions import db
from weighttrack.models import Challenge, ChallengeParticipant, TeamMember, UserAchievement
from domain.achievements.facts import build_facts
from domain.achievements.ledger import total_points
from domain.challenges.services import effective_status
from domain.challenges.schemas import ChallengeStatus
from domain.weights.history import all_entries

dashboard_bp = Blueprint("dashboard", __name__)


@dashboard_bp.route("/dashboard")
@jwt_required()
def dashboard():
    now = datetime.utcnow()
    entries = all_entries(db.session, current_user.id)
    facts = build_facts(db.session, current_user.id, now)

    memberships = (
        TeamMember.query.filter_by(user_id=current_user.id)
        .order_by(TeamMember.joined_at.desc())
        .all()
    )
    participations = (
        ChallengeParticipant.query.join(Challenge)
        .filter(ChallengeParticipant.user_id == current_user.id)
        .order_by(Challenge.end_date.asc())
        .all()
    )
    active = [p for p in participations if effective_status(p.challenge, now) == ChallengeStatus.ACTIVE]

    recent_achievements = (
        UserAchievement.query.filter_by(user_id=current_user.id)
        .order_by(UserAchievement.unlocked_at.desc())
        .limit(5)
        .all()
    )

    return render_template(
        "dashboard.html",
        recent_entries=list(reversed(entries[-5:])),
        facts=facts,
        memberships=memberships,
        active_participations=active,
        recent_achievements=recent_achievements,
        points=total_points(db.session, current_user.id),
    )
