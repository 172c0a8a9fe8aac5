from datetime import datetime

from weighttrack.extensions import db
from weighttrack.services.notifications import announce_achievements
from domain.achievements.catalog import ACHIEVEMENT_RULES
from domain.achievements.ledger import evaluate_achievements


def check_achievements(user_id, now=None):
    """Evaluate the catalog for ``user_id``, commit, then push what unlocked.

    Returns the newly granted Achievement rows.
    """
    granted = evaluate_achievements(db.session, user_id, ACHIEVEMENT_RULES, now or datetime.utcnow())
    db.session.commit()
    if granted:
        announce_achievements(user_id, granted)
    return granted
