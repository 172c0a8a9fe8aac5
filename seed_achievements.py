from weighttrack import create_app
from weighttrack.extensions import db
from domain.achievements.catalog import ACHIEVEMENT_RULES
from domain.achievements.ledger import seed_catalog

app = create_app()

with app.app_context():
    created, skipped = seed_catalog(db.session, ACHIEVEMENT_RULES)
    db.session.commit()
    app.logger.info("Seeded achievements: %s created, %s already present", created, skipped)
    print(f"Achievements seeded: {created} created, {skipped} skipped")
