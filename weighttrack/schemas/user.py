from weighttrack.extensions import ma
from weighttrack.models import User


class UserSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = User
        exclude = ("password_hash", "email", "is_admin")

    name = ma.String(dump_only=True)
