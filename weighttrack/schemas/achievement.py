from weighttrack.extensions import ma
from weighttrack.models import Achievement, UserAchievement


class AchievementSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = Achievement
        exclude = ("created_at",)


class UserAchievementSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = UserAchievement
        include_fk = True

    achievement = ma.Nested(AchievementSchema, dump_only=True)
