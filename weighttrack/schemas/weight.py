from weighttrack.extensions import ma
from weighttrack.models import ProgressPhoto, WeightEntry


class ProgressPhotoSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = ProgressPhoto
        exclude = ("file_path",)


class WeightEntrySchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = WeightEntry
        include_fk = True

    photos = ma.Nested(ProgressPhotoSchema, many=True, dump_only=True)
