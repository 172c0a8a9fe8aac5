import logging

from sqlalchemy.exc import IntegrityError

from weighttrack.models import Team, TeamMember
from weighttrack.models.team import generate_invite_code
from weighttrack.models.team_member import TEAM_ROLES
from domain.errors import Conflict, InvalidState, NotFound, PermissionDenied, ValidationError

logger = logging.getLogger(__name__)


def create_team(session, owner, name, description=None, is_public=True, max_members=50):
    name = (name or "").strip()
    if not 3 <= len(name) <= 100:
        raise ValidationError("Team name must be 3-100 characters", errors={"name": ["3-100 characters"]})
    if session.query(Team).filter_by(name=name).first():
        raise Conflict("A team with this name already exists", reason="name taken")

    team = Team(
        name=name,
        description=(description or "").strip() or None,
        is_public=is_public,
        max_members=max_members,
        owner_id=owner.id,
    )
    team.members.append(TeamMember(user_id=owner.id, role="OWNER"))
    session.add(team)
    session.flush()
    logger.info("Team %s created by user %s", team.id, owner.id)
    return team


def join_team(session, team, user_id, via_code=False):
    """Add ``user_id`` as a MEMBER. Private teams need ``via_code``."""
    if not team.is_public and not via_code:
        raise PermissionDenied("This team is private. You need an invite code to join.", reason="private team")
    if team.membership_for(user_id) is not None:
        raise Conflict("You are already a member of this team", reason="already a member")
    if team.members.count() >= team.max_members:
        raise InvalidState("This team is full", reason="team full")

    membership = TeamMember(team_id=team.id, user_id=user_id, role="MEMBER")
    try:
        with session.begin_nested():
            session.add(membership)
    except IntegrityError as exc:
        raise Conflict("You are already a member of this team", reason="already a member") from exc
    return membership


def find_by_invite_code(session, code):
    team = session.query(Team).filter_by(invite_code=code).first()
    if team is None:
        raise NotFound("Invalid or expired invite code", reason="invalid invite code")
    return team


def leave_team(session, team, user_id):
    membership = team.membership_for(user_id)
    if membership is None:
        raise NotFound("You are not a member of this team", reason="not a member")
    if membership.role == "OWNER":
        raise InvalidState("The owner cannot leave the team. Delete it instead.", reason="owner cannot leave")
    session.delete(membership)
    session.flush()


def _require_manager(team, actor):
    if actor.is_admin:
        return
    membership = team.membership_for(actor.id)
    if membership is None or not membership.can_manage:
        raise PermissionDenied("You don't have permission to manage this team", reason="not a team admin")


def change_role(session, team, actor, user_id, role):
    _require_manager(team, actor)
    if role not in TEAM_ROLES or role == "OWNER":
        raise ValidationError("Invalid role", errors={"role": ["must be ADMIN or MEMBER"]})
    membership = team.membership_for(user_id)
    if membership is None:
        raise NotFound("Member not found", reason="member not found")
    if membership.role == "OWNER":
        raise InvalidState("Cannot change the owner's role", reason="owner role fixed")
    membership.role = role
    session.flush()
    return membership


def remove_member(session, team, actor, user_id):
    _require_manager(team, actor)
    membership = team.membership_for(user_id)
    if membership is None:
        raise NotFound("Member not found", reason="member not found")
    if membership.role == "OWNER":
        raise InvalidState("Cannot remove the team owner", reason="owner cannot be removed")
    actor_membership = team.membership_for(actor.id)
    if membership.role == "ADMIN" and not actor.is_admin and actor_membership.role != "OWNER":
        raise PermissionDenied("Only the owner can remove an admin", reason="not team owner")
    session.delete(membership)
    session.flush()


def regenerate_invite(session, team, actor):
    _require_manager(team, actor)
    team.invite_code = generate_invite_code()
    session.flush()
    return team.invite_code


def delete_team(session, team, actor):
    if team.owner_id != actor.id and not actor.is_admin:
        raise PermissionDenied("Only the owner can delete the team", reason="not team owner")
    session.delete(team)
    session.flush()
