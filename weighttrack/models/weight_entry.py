from datetime import datetime
from weighttrack.extensions import db

VISIBILITY_CHOICES = ("PRIVATE", "TEAM", "PUBLIC")


class WeightEntry(db.Model):
    __tablename__ = "weight_entries"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    weight = db.Column(db.Float, db.CheckConstraint("weight > 0"), nullable=False)

    # Body composition (optional)
    body_fat_percentage = db.Column(db.Float, nullable=True)
    muscle_mass = db.Column(db.Float, nullable=True)
    water_percentage = db.Column(db.Float, nullable=True)

    notes = db.Column(db.Text, nullable=True)
    activity_logged = db.Column(db.Boolean, default=False, nullable=False)
    visibility = db.Column(
        db.String(10),
        db.CheckConstraint("visibility IN ('PRIVATE','TEAM','PUBLIC')"),
        default="PRIVATE",
        nullable=False,
    )
    recorded_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship("User", back_populates="weight_entries")
    photos = db.relationship(
        "ProgressPhoto",
        back_populates="entry",
        order_by="ProgressPhoto.sort_order",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        db.Index("idx_weight_entries_user_recorded", "user_id", "recorded_at"),
    )
