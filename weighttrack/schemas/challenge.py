from weighttrack.extensions import ma
from weighttrack.models import Challenge, ChallengeParticipant
from .user import UserSchema


class ChallengeSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = Challenge
        include_fk = True


class ChallengeParticipantSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = ChallengeParticipant
        include_fk = True

    user = ma.Nested(UserSchema, only=("id", "username", "name", "avatar_url"), dump_only=True)
