from .user import User
from .weight_entry import WeightEntry
from .progress_photo import ProgressPhoto

from .team import Team
from .team_member import TeamMember

from .challenge import Challenge
from .challenge_participant import ChallengeParticipant
from .achievement import Achievement, UserAchievement

from .post import Post, Comment, PostLike
from .message import Message
from .donation import Donation

__all__ = [
    "User", "WeightEntry", "ProgressPhoto",
    "Team", "TeamMember",
    "Challenge", "ChallengeParticipant", "Achievement", "UserAchievement",
    "Post", "Comment", "PostLike",
    "Message", "Donation",
]
