from datetime import datetime
from weighttrack.extensions import db


class Achievement(db.Model):
    __tablename__ = "achievements"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.String(255), nullable=False)
    icon = db.Column(db.String(16), nullable=True)
    points = db.Column(db.Integer, default=0, nullable=False)
    is_hidden = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    holders = db.relationship("UserAchievement", back_populates="achievement", lazy="dynamic", cascade="all, delete-orphan")


class UserAchievement(db.Model):
    __tablename__ = "user_achievements"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    achievement_id = db.Column(db.Integer, db.ForeignKey("achievements.id", ondelete="CASCADE"), nullable=False)
    unlocked_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    user = db.relationship("User", back_populates="achievements")
    achievement = db.relationship("Achievement", back_populates="holders")

    __table_args__ = (
        db.UniqueConstraint("user_id", "achievement_id", name="uq_user_achievements_user_achievement"),
    )
