from datetime import datetime

from flask import Blueprint, flash, jsonify, redirect, render_template, url_for
from flask_jwt_extended import jwt_required, current_user

from weighttrack.extensions import db
from weighttrack.models import Challenge, Post, Team, TeamMember
from weighttrack.services import teams as team_service
from weighttrack.services.achievements import check_achievements
from weighttrack.utils.decorators import request_data, team_member_required, wants_json
from domain.challenges.services import effective_status

teams_bp = Blueprint("teams", __name__)


def _done(msg, redirect_team_id=None, status=200, **payload):
    if wants_json():
        return jsonify({"success": True, "msg": msg, **payload}), status
    flash(msg, 'success')
    if redirect_team_id is None:
        return redirect(url_for('teams.index'))
    return redirect(url_for('teams.show', team_id=redirect_team_id))


@teams_bp.route("/", methods=["GET"])
@jwt_required()
def index():
    my_team_ids = [m.team_id for m in TeamMember.query.filter_by(user_id=current_user.id)]
    my_teams = Team.query.filter(Team.id.in_(my_team_ids)).order_by(Team.name).all() if my_team_ids else []
    public_teams = (
        Team.query.filter(Team.is_public.is_(True), Team.id.notin_(my_team_ids))
        .order_by(Team.created_at.desc())
        .limit(50)
        .all()
    )
    return render_template("teams/index.html", my_teams=my_teams, public_teams=public_teams)


@teams_bp.route("/new", methods=["GET"])
@jwt_required()
def new():
    return render_template("teams/new.html", form={})


@teams_bp.route("/new", methods=["POST"])
@jwt_required()
def create():
    data = request_data()
    is_public = str(data.get("is_public", "true")).lower() in ("1", "true", "on", "yes")
    try:
        max_members = int(data.get("max_members") or 50)
    except ValueError:
        max_members = 50

    team = team_service.create_team(
        db.session, current_user, data.get("name"), data.get("description"),
        is_public=is_public, max_members=max(2, min(max_members, 500)),
    )
    db.session.commit()
    check_achievements(current_user.id)
    return _done("Team created successfully!", team.id, 201, team_id=team.id)


@teams_bp.route("/<int:team_id>", methods=["GET"])
@team_member_required
def show(team, membership):
    now = datetime.utcnow()
    challenges = team.challenges.order_by(Challenge.start_date.desc()).all()
    posts = (
        team.posts.filter(Post.deleted_at.is_(None))
        .order_by(Post.created_at.desc())
        .limit(20)
        .all()
    )
    members = team.members.order_by(TeamMember.joined_at).all()
    return render_template(
        "teams/show.html",
        team=team,
        membership=membership,
        members=members,
        challenges=[(c, effective_status(c, now)) for c in challenges],
        posts=posts,
    )


@teams_bp.route("/<int:team_id>/join", methods=["POST"])
@jwt_required()
def join(team_id):
    team = db.get_or_404(Team, team_id)
    team_service.join_team(db.session, team, current_user.id)
    db.session.commit()
    check_achievements(current_user.id)
    return _done("You have joined the team!", team.id)


@teams_bp.route("/join/<code>", methods=["GET"])
@jwt_required()
def join_via_code(code):
    team = team_service.find_by_invite_code(db.session, code)
    if team.membership_for(current_user.id) is not None:
        return redirect(url_for('teams.show', team_id=team.id))
    return render_template("teams/join.html", team=team, code=code)


@teams_bp.route("/join/<code>", methods=["POST"])
@jwt_required()
def confirm_join_via_code(code):
    team = team_service.find_by_invite_code(db.session, code)
    team_service.join_team(db.session, team, current_user.id, via_code=True)
    db.session.commit()
    check_achievements(current_user.id)
    return _done("You have joined the team!", team.id)


@teams_bp.route("/<int:team_id>/leave", methods=["POST"])
@jwt_required()
def leave(team_id):
    team = db.get_or_404(Team, team_id)
    team_service.leave_team(db.session, team, current_user.id)
    db.session.commit()
    return _done("You have left the team.")


@teams_bp.route("/<int:team_id>/members/<int:user_id>/role", methods=["POST"])
@jwt_required()
def update_member_role(team_id, user_id):
    team = db.get_or_404(Team, team_id)
    role = (request_data().get("role") or "").upper()
    team_service.change_role(db.session, team, current_user, user_id, role)
    db.session.commit()
    return _done("Role updated", team.id, role=role)


@teams_bp.route("/<int:team_id>/members/<int:user_id>/remove", methods=["POST"])
@jwt_required()
def remove_member(team_id, user_id):
    team = db.get_or_404(Team, team_id)
    team_service.remove_member(db.session, team, current_user, user_id)
    db.session.commit()
    return _done("Member removed successfully.", team.id)


@teams_bp.route("/<int:team_id>/invite/regenerate", methods=["POST"])
@jwt_required()
def regenerate_invite(team_id):
    team = db.get_or_404(Team, team_id)
    code = team_service.regenerate_invite(db.session, team, current_user)
    db.session.commit()
    return _done("Invite link regenerated", team.id, invite_code=code,
                 invite_url=url_for('teams.join_via_code', code=code, _external=True))


@teams_bp.route("/<int:team_id>/delete", methods=["POST"])
@jwt_required()
def delete(team_id):
    team = db.get_or_404(Team, team_id)
    team_service.delete_team(db.session, team, current_user)
    db.session.commit()
    return _done("Team deleted successfully.")
