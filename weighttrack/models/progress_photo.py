from datetime import datetime
from weighttrack.extensions import db


class ProgressPhoto(db.Model):
    __tablename__ = "progress_photos"

    id = db.Column(db.Integer, primary_key=True)
    entry_id = db.Column(db.Integer, db.ForeignKey("weight_entries.id", ondelete="CASCADE"), nullable=False, index=True)
    url = db.Column(db.String(255), nullable=False)
    file_path = db.Column(db.String(255), nullable=True)
    visibility = db.Column(
        db.String(10),
        db.CheckConstraint("visibility IN ('PRIVATE','TEAM','PUBLIC')"),
        default="PRIVATE",
        nullable=False,
        index=True,
    )
    sort_order = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    entry = db.relationship("WeightEntry", back_populates="photos")
