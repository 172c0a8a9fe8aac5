from datetime import datetime
from weighttrack.extensions import db

TEAM_ROLES = ("OWNER", "ADMIN", "MEMBER")
MANAGER_ROLES = ("OWNER", "ADMIN")


class TeamMember(db.Model):
    __tablename__ = "team_members"

    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = db.Column(
        db.String(10),
        db.CheckConstraint("role IN ('OWNER','ADMIN','MEMBER')"),
        default="MEMBER",
        nullable=False,
    )
    joined_at = db.Column(db.DateTime, default=datetime.utcnow)

    team = db.relationship("Team", back_populates="members")
    user = db.relationship("User", back_populates="team_memberships")

    __table_args__ = (
        db.UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),
    )

    @property
    def can_manage(self):
        return self.role in MANAGER_ROLES
