from weighttrack.extensions import ma
from weighttrack.models import Message


class MessageSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = Message
        include_fk = True
