import logging
from datetime import datetime
from typing import List, Optional

import pydantic
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from weighttrack.models import Challenge, ChallengeParticipant, TeamMember
from domain.errors import Conflict, InvalidState, NotFound, PermissionDenied, ValidationError
from domain.weights.history import entries_between
from .progress import compute_progress, progress_window
from .schemas import ChallengeCreate, ChallengeStatus, JOINABLE_STATUSES, TERMINAL_STATUSES

logger = logging.getLogger(__name__)


def status_for_dates(start_date: datetime, end_date: datetime, now: datetime) -> ChallengeStatus:
    if now < start_date:
        return ChallengeStatus.UPCOMING
    if now > end_date:
        return ChallengeStatus.COMPLETED
    return ChallengeStatus.ACTIVE


def effective_status(challenge: Challenge, now: datetime) -> ChallengeStatus:
    """Stored terminal statuses win, anything else follows the clock."""
    stored = ChallengeStatus(challenge.status)
    if stored in TERMINAL_STATUSES:
        return stored
    return status_for_dates(challenge.start_date, challenge.end_date, now)


def refresh_status(challenge: Challenge, now: datetime) -> ChallengeStatus:
    status = effective_status(challenge, now)
    if challenge.status != status.value:
        challenge.status = status.value
    return status


def get_challenge(session: Session, challenge_id: int) -> Challenge:
    challenge = session.get(Challenge, challenge_id)
    if challenge is None:
        raise NotFound("Challenge not found", reason="challenge not found")
    return challenge


def _membership(session: Session, team_id: int, user_id: int) -> Optional[TeamMember]:
    stmt = select(TeamMember).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
    return session.scalars(stmt).first()


def _participant(session: Session, challenge_id: int, user_id: int) -> Optional[ChallengeParticipant]:
    stmt = select(ChallengeParticipant).where(
        ChallengeParticipant.challenge_id == challenge_id,
        ChallengeParticipant.user_id == user_id,
    )
    return session.scalars(stmt).first()


def create_challenge(session: Session, team_id: int, data, now: datetime) -> Challenge:
    """Validate ``data`` (a ChallengeCreate or a plain mapping) and store it."""
    if not isinstance(data, ChallengeCreate):
        try:
            data = ChallengeCreate.model_validate(data)
        except pydantic.ValidationError as exc:
            errors = {}
            for err in exc.errors():
                field = ".".join(str(part) for part in err["loc"]) or "__all__"
                errors.setdefault(field, []).append(err["msg"])
            raise ValidationError("Invalid challenge", errors=errors) from exc

    status = status_for_dates(data.start_date, data.end_date, now)
    challenge = Challenge(
        team_id=team_id,
        name=data.name,
        description=data.description,
        type=data.type.value,
        status=status.value,
        start_date=data.start_date,
        end_date=data.end_date,
        target_value=data.target_value,
        reward_points=data.reward_points,
    )
    session.add(challenge)
    session.flush()
    logger.info("Challenge %s created for team %s (%s)", challenge.id, team_id, status.value)
    return challenge


def join_challenge(session: Session, challenge_id: int, user_id: int, now: datetime) -> ChallengeParticipant:
    challenge = get_challenge(session, challenge_id)

    if _membership(session, challenge.team_id, user_id) is None:
        raise PermissionDenied("You must be a team member to join this challenge", reason="not a team member")

    status = refresh_status(challenge, now)
    if status not in JOINABLE_STATUSES:
        raise InvalidState("Challenge is no longer accepting participants", reason="no longer accepting")

    if _participant(session, challenge_id, user_id) is not None:
        raise Conflict("Already participating in this challenge", reason="already participating")

    participant = ChallengeParticipant(challenge_id=challenge_id, user_id=user_id, progress=0.0)
    try:
        with session.begin_nested():
            session.add(participant)
    except IntegrityError as exc:
        raise Conflict("Already participating in this challenge", reason="already participating") from exc
    return participant


def leave_challenge(session: Session, challenge_id: int, user_id: int) -> None:
    participant = _participant(session, challenge_id, user_id)
    if participant is None:
        raise NotFound("Not participating in this challenge", reason="not participating")
    session.delete(participant)
    session.flush()


def _recompute(session: Session, challenge: Challenge, participant: ChallengeParticipant, now: datetime) -> bool:
    """Recompute one participant. Returns True when it just completed."""
    start, end = progress_window(challenge, now)
    entries = entries_between(session, participant.user_id, start, end)
    participant.progress = compute_progress(challenge, entries)

    if participant.completed or not challenge.target_value:
        return False
    if participant.progress >= challenge.target_value:
        participant.completed = True
        participant.completed_at = now
        logger.info("User %s completed challenge %s", participant.user_id, challenge.id)
        return True
    return False


def update_progress(session: Session, challenge_id: int, user_id: Optional[int] = None,
                    now: Optional[datetime] = None) -> List[ChallengeParticipant]:
    """Recompute progress for every participant, or only ``user_id``.

    Returns the participants that completed during this call.
    """
    now = now or datetime.utcnow()
    challenge = get_challenge(session, challenge_id)
    if refresh_status(challenge, now) == ChallengeStatus.CANCELLED:
        raise InvalidState("Challenge has been cancelled", reason="cancelled")

    if user_id is not None:
        participant = _participant(session, challenge_id, user_id)
        if participant is None:
            raise NotFound("Not participating in this challenge", reason="not participating")
        participants = [participant]
    else:
        participants = list(challenge.participants)

    newly_completed = [p for p in participants if _recompute(session, challenge, p, now)]
    session.flush()
    return newly_completed


def refresh_user_challenges(session: Session, user_id: int, now: Optional[datetime] = None) -> List[ChallengeParticipant]:
    """Recompute the user's progress in each challenge that is currently running."""
    now = now or datetime.utcnow()
    stmt = (
        select(ChallengeParticipant)
        .join(Challenge, Challenge.id == ChallengeParticipant.challenge_id)
        .where(ChallengeParticipant.user_id == user_id)
        .where(Challenge.status.notin_([s.value for s in TERMINAL_STATUSES]))
    )
    newly_completed = []
    for participant in session.scalars(stmt).all():
        challenge = participant.challenge
        if refresh_status(challenge, now) != ChallengeStatus.ACTIVE:
            continue
        if _recompute(session, challenge, participant, now):
            newly_completed.append(participant)
    session.flush()
    return newly_completed


def _finish(session: Session, challenge_id: int, status: ChallengeStatus, now: datetime) -> Challenge:
    challenge = get_challenge(session, challenge_id)
    stored = ChallengeStatus(challenge.status)
    if stored in TERMINAL_STATUSES:
        raise InvalidState("Challenge is already %s" % stored.value.lower(), reason="already finished")
    challenge.status = status.value
    session.flush()
    logger.info("Challenge %s marked %s", challenge_id, status.value)
    return challenge


def cancel_challenge(session: Session, challenge_id: int, now: Optional[datetime] = None) -> Challenge:
    return _finish(session, challenge_id, ChallengeStatus.CANCELLED, now or datetime.utcnow())


def complete_challenge(session: Session, challenge_id: int, now: Optional[datetime] = None) -> Challenge:
    """Close a challenge, recomputing every participant one last time first."""
    now = now or datetime.utcnow()
    challenge = get_challenge(session, challenge_id)
    if ChallengeStatus(challenge.status) not in TERMINAL_STATUSES:
        for participant in challenge.participants:
            _recompute(session, challenge, participant, now)
    return _finish(session, challenge_id, ChallengeStatus.COMPLETED, now)


def can_manage_challenge(session: Session, challenge: Challenge, user) -> bool:
    if getattr(user, "is_admin", False):
        return True
    membership = _membership(session, challenge.team_id, user.id)
    return membership is not None and membership.can_manage
