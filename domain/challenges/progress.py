from datetime import datetime
from typing import Sequence, Tuple

from .schemas import ChallengeType


def progress_window(challenge, now: datetime) -> Tuple[datetime, datetime]:
    """Entries count towards a challenge from its start until now or its end."""
    return challenge.start_date, min(now, challenge.end_date)


def compute_progress(challenge, entries: Sequence) -> float:
    """Progress of one participant given their entries inside the window.

    ``entries`` must already be ordered by ``recorded_at``. Gains give a
    negative result for the weight based types.
    """
    if not entries:
        return 0.0

    kind = challenge.type
    if kind == ChallengeType.WEIGHT_LOSS_PERCENTAGE:
        if len(entries) < 2:
            return 0.0
        first, last = entries[0].weight, entries[-1].weight
        if not first:
            return 0.0
        return (first - last) * 100 / first

    if kind == ChallengeType.TOTAL_WEIGHT_LOSS:
        if len(entries) < 2:
            return 0.0
        return entries[0].weight - entries[-1].weight

    if kind == ChallengeType.CONSISTENCY:
        return float(len({entry.recorded_at.date() for entry in entries}))

    if kind == ChallengeType.ACTIVITY_BASED:
        return float(sum(1 for entry in entries if entry.activity_logged))

    return 0.0
