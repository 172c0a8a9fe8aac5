from datetime import datetime
from weighttrack.extensions import db


class ChallengeParticipant(db.Model):
    __tablename__ = "challenge_participants"

    id = db.Column(db.Integer, primary_key=True)
    challenge_id = db.Column(db.Integer, db.ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    progress = db.Column(db.Float, default=0.0, nullable=False)
    completed = db.Column(db.Boolean, default=False, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)
    joined_at = db.Column(db.DateTime, default=datetime.utcnow)

    challenge = db.relationship("Challenge", back_populates="participants")
    user = db.relationship("User", back_populates="challenge_participations")

    __table_args__ = (
        db.UniqueConstraint("challenge_id", "user_id", name="uq_challenge_participants_challenge_user"),
    )
