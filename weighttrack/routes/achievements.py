from datetime import datetime

from flask import Blueprint, abort, jsonify, render_template, request
from flask_jwt_extended import jwt_required, current_user

from weighttrack.extensions import db
from weighttrack.models import User
from weighttrack.schemas import AchievementSchema, UserAchievementSchema
from weighttrack.services.achievements import check_achievements
from domain.achievements.catalog import ACHIEVEMENT_RULES
from domain.achievements.ledger import leaderboard as points_leaderboard, user_achievements

achievements_bp = Blueprint("achievements", __name__)
achievements_api_bp = Blueprint("achievements_api", __name__)

achievement_schema = AchievementSchema()
unlocked_schema = UserAchievementSchema(many=True)


def _summary(user_id):
    summary = user_achievements(db.session, user_id, ACHIEVEMENT_RULES, datetime.utcnow())
    summary["locked"].sort(key=lambda item: item["progress"], reverse=True)
    return summary


@achievements_bp.route("/", methods=["GET"])
@jwt_required()
def index():
    summary = _summary(current_user.id)
    return render_template(
        "achievements/index.html",
        unlocked=summary["unlocked"],
        locked=summary["locked"],
        total_points=summary["total_points"],
        unlocked_count=len(summary["unlocked"]),
        total_count=len(summary["unlocked"]) + len(summary["locked"]),
    )


@achievements_bp.route("/user/<int:user_id>", methods=["GET"])
@jwt_required()
def user_page(user_id):
    profile_user = db.session.get(User, user_id)
    if profile_user is None or not profile_user.is_active:
        abort(404)
    if not profile_user.profile_public and profile_user.id != current_user.id:
        abort(403)
    summary = _summary(user_id)
    return render_template(
        "achievements/user.html",
        profile_user=profile_user,
        unlocked=summary["unlocked"],
        total_points=summary["total_points"],
    )


@achievements_bp.route("/leaderboard", methods=["GET"])
@jwt_required()
def leaderboard():
    limit = max(1, min(request.args.get("limit", 20, type=int), 100))
    rows = points_leaderboard(db.session, limit)
    return render_template("achievements/leaderboard.html", rows=rows)


@achievements_api_bp.route("", methods=["GET"])
@jwt_required()
def list_achievements():
    summary = _summary(current_user.id)
    return jsonify({
        "success": True,
        "data": {
            "unlocked": unlocked_schema.dump(summary["unlocked"]),
            "locked": [
                {
                    "achievement": achievement_schema.dump(item["achievement"]),
                    "current": item["current"],
                    "target": item["target"],
                    "progress": item["progress"],
                }
                for item in summary["locked"]
            ],
            "total_points": summary["total_points"],
        },
    })


@achievements_api_bp.route("/check", methods=["POST"])
@jwt_required()
def check():
    unlocked = check_achievements(current_user.id)
    return jsonify({
        "success": True,
        "msg": f"Checked achievements. Unlocked {len(unlocked)} new achievements.",
        "unlocked": [achievement_schema.dump(a) for a in unlocked],
    })
