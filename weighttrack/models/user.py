from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from weighttrack.extensions import db

USERS_TABLE = "users"


class User(db.Model):
    __tablename__ = USERS_TABLE

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    username = db.Column(db.String(50), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    display_name = db.Column(db.String(150), nullable=True)
    bio = db.Column(db.Text, nullable=True)
    avatar_url = db.Column(db.String(255), nullable=True)
    unit_system = db.Column(
        db.String(10),
        db.CheckConstraint("unit_system IN ('IMPERIAL','METRIC')"),
        default="IMPERIAL",
        nullable=False,
    )

    # Body stats
    current_weight = db.Column(db.Float, nullable=True)
    goal_weight = db.Column(db.Float, nullable=True)
    height = db.Column(db.Float, nullable=True)

    profile_public = db.Column(db.Boolean, default=True, nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False, index=True)
    last_active = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    weight_entries = db.relationship("WeightEntry", back_populates="user", lazy="dynamic", cascade="all, delete-orphan")
    team_memberships = db.relationship("TeamMember", back_populates="user", lazy="dynamic", cascade="all, delete-orphan")
    challenge_participations = db.relationship("ChallengeParticipant", back_populates="user", lazy="dynamic", cascade="all, delete-orphan")
    achievements = db.relationship("UserAchievement", back_populates="user", lazy="dynamic", cascade="all, delete-orphan")
    posts = db.relationship("Post", back_populates="author", lazy="dynamic", cascade="all, delete-orphan")
    comments = db.relationship("Comment", back_populates="author", lazy="dynamic", cascade="all, delete-orphan")
    donations = db.relationship("Donation", back_populates="user", lazy="dynamic")

    # Messaging
    sent_messages = db.relationship("Message", foreign_keys="[Message.sender_id]", back_populates="sender", lazy="dynamic", cascade="all, delete-orphan")
    received_messages = db.relationship("Message", foreign_keys="[Message.receiver_id]", back_populates="receiver", lazy="dynamic", cascade="all, delete-orphan")

    # Helpers
    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    __table_args__ = (
        db.Index("idx_users_email", "email"),
        db.Index("idx_users_username", "username"),
    )

    # ------- helper properties -------
    @property
    def name(self):
        return self.display_name or self.username

    @property
    def weight_unit(self):
        return "kg" if self.unit_system == "METRIC" else "lbs"

    @property
    def profile_complete(self):
        return bool(self.display_name and self.bio and self.avatar_url and self.goal_weight and self.height)
