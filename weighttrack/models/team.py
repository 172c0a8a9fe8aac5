import secrets
from datetime import datetime
from weighttrack.extensions import db


def generate_invite_code():
    return secrets.token_urlsafe(8)


class Team(db.Model):
    __tablename__ = "teams"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.Text)
    is_public = db.Column(db.Boolean, default=True, nullable=False)
    max_members = db.Column(db.Integer, default=50, nullable=False)
    invite_code = db.Column(db.String(32), unique=True, nullable=False, default=generate_invite_code)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    owner = db.relationship("User", foreign_keys=[owner_id])
    members = db.relationship("TeamMember", back_populates="team", lazy="dynamic", cascade="all, delete-orphan")
    challenges = db.relationship("Challenge", back_populates="team", lazy="dynamic", cascade="all, delete-orphan")
    posts = db.relationship("Post", back_populates="team", lazy="dynamic", cascade="all, delete-orphan")

    def membership_for(self, user_id):
        return self.members.filter_by(user_id=user_id).first()
