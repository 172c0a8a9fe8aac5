from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from weighttrack.models import WeightEntry


def entries_between(session: Session, user_id: int, start: Optional[datetime] = None,
                    end: Optional[datetime] = None) -> List[WeightEntry]:
    """Chronological weight entries of a user, both bounds inclusive.

    Entries sharing a timestamp keep insertion order.
    """
    stmt = select(WeightEntry).where(WeightEntry.user_id == user_id)
    if start is not None:
        stmt = stmt.where(WeightEntry.recorded_at >= start)
    if end is not None:
        stmt = stmt.where(WeightEntry.recorded_at <= end)
    stmt = stmt.order_by(WeightEntry.recorded_at.asc(), WeightEntry.id.asc())
    return list(session.scalars(stmt))


def all_entries(session: Session, user_id: int) -> List[WeightEntry]:
    return entries_between(session, user_id)


def latest_entry(session: Session, user_id: int) -> Optional[WeightEntry]:
    stmt = (
        select(WeightEntry)
        .where(WeightEntry.user_id == user_id)
        .order_by(WeightEntry.recorded_at.desc(), WeightEntry.id.desc())
        .limit(1)
    )
    return session.scalars(stmt).first()


def sync_current_weight(session: Session, user) -> None:
    """Mirror the latest entry's weight onto the user row."""
    latest = latest_entry(session, user.id)
    user.current_weight = latest.weight if latest else None
