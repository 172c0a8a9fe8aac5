from datetime import datetime
from weighttrack.extensions import db


class Challenge(db.Model):
    __tablename__ = "challenges"

    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    type = db.Column(
        db.String(30),
        db.CheckConstraint(
            "type IN ('WEIGHT_LOSS_PERCENTAGE','TOTAL_WEIGHT_LOSS','CONSISTENCY','ACTIVITY_BASED')"
        ),
        nullable=False,
    )
    status = db.Column(
        db.String(20),
        db.CheckConstraint("status IN ('UPCOMING','ACTIVE','COMPLETED','CANCELLED')"),
        default="UPCOMING",
        nullable=False,
        index=True,
    )
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)
    target_value = db.Column(db.Float, nullable=True)
    reward_points = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    team = db.relationship("Team", back_populates="challenges")
    participants = db.relationship(
        "ChallengeParticipant",
        back_populates="challenge",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        db.CheckConstraint("end_date > start_date", name="ck_challenges_dates"),
        db.Index("idx_challenge_team_status", "team_id", "status"),
    )
