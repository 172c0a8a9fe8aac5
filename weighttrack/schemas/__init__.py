from .user import UserSchema
from .weight import WeightEntrySchema, ProgressPhotoSchema
from .challenge import ChallengeSchema, ChallengeParticipantSchema
from .achievement import AchievementSchema, UserAchievementSchema
from .message import MessageSchema
