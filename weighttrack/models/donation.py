from datetime import datetime
from weighttrack.extensions import db


class Donation(db.Model):
    """A donation recorded by the payment integration.

    Only read here, to unlock the supporter achievements.
    """
    __tablename__ = "donations"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    amount = db.Column(db.Float, nullable=False)
    currency = db.Column(db.String(3), default="USD", nullable=False)
    type = db.Column(
        db.String(10),
        db.CheckConstraint("type IN ('ONE_TIME','MONTHLY','YEARLY')"),
        nullable=False,
    )
    status = db.Column(
        db.String(10),
        db.CheckConstraint("status IN ('PENDING','COMPLETED','FAILED','REFUNDED','CANCELLED')"),
        default="PENDING",
        nullable=False,
        index=True,
    )
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship("User", back_populates="donations")
