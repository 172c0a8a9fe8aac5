from datetime import datetime

from flask import Blueprint, abort, current_app, flash, jsonify, redirect, render_template, url_for
from flask_jwt_extended import jwt_required, current_user

from weighttrack.extensions import db
from weighttrack.models import Challenge, ChallengeParticipant
from weighttrack.schemas import ChallengeParticipantSchema, ChallengeSchema
from weighttrack.services.achievements import check_achievements
from weighttrack.utils.decorators import request_data, team_member_required, wants_json
from domain.challenges import services as challenge_service
from domain.challenges.schemas import ChallengeStatus, ChallengeType

challenges_bp = Blueprint("challenges", __name__)
challenge_schema = ChallengeSchema()
participants_schema = ChallengeParticipantSchema(many=True)

TYPE_LABELS = {
    ChallengeType.WEIGHT_LOSS_PERCENTAGE.value: "Weight loss (%)",
    ChallengeType.TOTAL_WEIGHT_LOSS.value: "Total weight loss",
    ChallengeType.CONSISTENCY.value: "Consistency (days logged)",
    ChallengeType.ACTIVITY_BASED.value: "Activity",
}


def _done(msg, challenge_id, http_status=200, **payload):
    if wants_json():
        return jsonify({"success": True, "msg": msg, **payload}), http_status
    flash(msg, 'success')
    return redirect(url_for('challenges.show', challenge_id=challenge_id))


def _leaderboard(challenge):
    return (
        challenge.participants
        .order_by(ChallengeParticipant.completed.desc(), ChallengeParticipant.progress.desc(),
                  ChallengeParticipant.joined_at)
        .all()
    )


def _challenge_for_member(challenge_id):
    challenge = db.get_or_404(Challenge, challenge_id)
    membership = challenge.team.membership_for(current_user.id)
    if membership is None and not current_user.is_admin:
        abort(403)
    return challenge, membership


@challenges_bp.route("/teams/<int:team_id>/challenges", methods=["GET"])
@team_member_required
def team_challenges(team, membership):
    now = datetime.utcnow()
    challenges = team.challenges.order_by(Challenge.start_date.desc()).all()
    grouped = {status: [] for status in ChallengeStatus}
    for challenge in challenges:
        grouped[challenge_service.effective_status(challenge, now)].append(challenge)
    can_create = current_user.is_admin or (membership is not None and membership.can_manage)
    return render_template(
        "challenges/list.html", team=team, grouped=grouped, can_create=can_create, type_labels=TYPE_LABELS,
    )


@challenges_bp.route("/teams/<int:team_id>/challenges/new", methods=["GET"])
@team_member_required
def new(team, membership):
    if not (current_user.is_admin or membership.can_manage):
        abort(403)
    return render_template("challenges/new.html", team=team, types=TYPE_LABELS, errors={}, form={})


@challenges_bp.route("/teams/<int:team_id>/challenges", methods=["POST"])
@team_member_required
def create(team, membership):
    if not (current_user.is_admin or membership.can_manage):
        abort(403)
    data = request_data()
    if data.get("reward_points") in (None, ""):
        data["reward_points"] = 0
    challenge = challenge_service.create_challenge(db.session, team.id, data, datetime.utcnow())
    db.session.commit()
    current_app.logger.info("User %s created challenge %s", current_user.id, challenge.id)
    return _done("Challenge created successfully!", challenge.id, 201, challenge=challenge_schema.dump(challenge))


@challenges_bp.route("/challenges/<int:challenge_id>", methods=["GET"])
@jwt_required()
def show(challenge_id):
    challenge, membership = _challenge_for_member(challenge_id)
    now = datetime.utcnow()
    status = challenge_service.effective_status(challenge, now)
    participants = _leaderboard(challenge)
    mine = next((p for p in participants if p.user_id == current_user.id), None)
    can_manage = current_user.is_admin or (membership is not None and membership.can_manage)

    if wants_json():
        return jsonify({
            "challenge": {**challenge_schema.dump(challenge), "status": status.value},
            "participants": participants_schema.dump(participants),
        })
    return render_template(
        "challenges/show.html",
        challenge=challenge,
        status=status,
        participants=participants,
        participation=mine,
        can_manage=can_manage,
        type_labels=TYPE_LABELS,
    )


@challenges_bp.route("/challenges/<int:challenge_id>/join", methods=["POST"])
@jwt_required()
def join(challenge_id):
    now = datetime.utcnow()
    participant = challenge_service.join_challenge(db.session, challenge_id, current_user.id, now)
    # Entries already inside the window count straight away
    if challenge_service.effective_status(participant.challenge, now) == ChallengeStatus.ACTIVE:
        challenge_service.update_progress(db.session, challenge_id, current_user.id, now)
    db.session.commit()
    check_achievements(current_user.id)
    return _done("You have joined the challenge!", challenge_id)


@challenges_bp.route("/challenges/<int:challenge_id>/leave", methods=["POST"])
@jwt_required()
def leave(challenge_id):
    challenge_service.leave_challenge(db.session, challenge_id, current_user.id)
    db.session.commit()
    return _done("You have left the challenge.", challenge_id)


@challenges_bp.route("/challenges/<int:challenge_id>/update-progress", methods=["POST"])
@jwt_required()
def update_progress(challenge_id):
    challenge, membership = _challenge_for_member(challenge_id)
    can_manage = current_user.is_admin or (membership is not None and membership.can_manage)
    # Managers refresh the whole board, members only themselves
    user_id = None if can_manage else current_user.id
    completed = challenge_service.update_progress(db.session, challenge.id, user_id, datetime.utcnow())
    db.session.commit()
    for participant in completed:
        check_achievements(participant.user_id)

    return _done(
        "Progress updated", challenge.id,
        participants=participants_schema.dump(_leaderboard(challenge)),
        completed=[p.user_id for p in completed],
    )


@challenges_bp.route("/challenges/<int:challenge_id>/cancel", methods=["POST"])
@jwt_required()
def cancel(challenge_id):
    challenge, _ = _challenge_for_member(challenge_id)
    if not challenge_service.can_manage_challenge(db.session, challenge, current_user):
        abort(403)
    challenge_service.cancel_challenge(db.session, challenge.id)
    db.session.commit()
    return _done("Challenge cancelled", challenge.id, challenge_status=ChallengeStatus.CANCELLED.value)


@challenges_bp.route("/challenges/<int:challenge_id>/complete", methods=["POST"])
@jwt_required()
def complete(challenge_id):
    challenge, _ = _challenge_for_member(challenge_id)
    if not challenge_service.can_manage_challenge(db.session, challenge, current_user):
        abort(403)
    challenge_service.complete_challenge(db.session, challenge.id)
    db.session.commit()
    for participant in challenge.participants.filter_by(completed=True):
        check_achievements(participant.user_id)
    return _done("Challenge completed", challenge.id, challenge_status=ChallengeStatus.COMPLETED.value)
