from dataclasses import dataclass
from typing import Callable, Tuple

from .facts import AchievementFacts


@dataclass(frozen=True)
class AchievementRule:
    """A catalog entry: the rule matches once ``metric(facts) >= target``."""
    name: str
    description: str
    icon: str
    points: int
    metric: Callable[[AchievementFacts], float]
    target: float = 1
    hidden: bool = False

    def matches(self, facts: AchievementFacts) -> bool:
        return self.metric(facts) >= self.target


def _flag(attr):
    return lambda facts: 1 if getattr(facts, attr) else 0


def _logged_at(predicate):
    def metric(facts):
        logged_at = facts.latest_logged_at
        return 1 if logged_at is not None and predicate(logged_at) else 0
    return metric


def _logged_weight(predicate):
    def metric(facts):
        weight = facts.latest_logged_weight
        return 1 if weight is not None and predicate(round(weight, 2)) else 0
    return metric


def _weight_lost(facts):
    return max(0.0, facts.weight_lost)


ACHIEVEMENT_RULES: Tuple[AchievementRule, ...] = (
    # Weight loss milestones
    AchievementRule("First Weigh-In", "Logged your first weight entry", "⚖️", 10,
                    lambda f: f.entry_count),
    AchievementRule("5 lbs Lost", "Lost 5 pounds from your starting weight", "🎯", 50, _weight_lost, 5),
    AchievementRule("10 lbs Lost", "Lost 10 pounds from your starting weight", "🏆", 100, _weight_lost, 10),
    AchievementRule("25 lbs Lost", "Lost 25 pounds from your starting weight", "⭐", 250, _weight_lost, 25),
    AchievementRule("50 lbs Lost", "Lost 50 pounds from your starting weight", "🌟", 500, _weight_lost, 50),
    AchievementRule("100 lbs Lost", "Lost 100 pounds from your starting weight", "💎", 1000, _weight_lost, 100),
    AchievementRule("Goal Reached", "Reached your goal weight", "🎉", 500, _flag("goal_reached")),

    # Consistency
    AchievementRule("Week Warrior", "Logged weight 7 days in a row", "🔥", 100,
                    lambda f: f.longest_streak, 7),
    AchievementRule("Monthly Consistent", "Logged weight at least once per week for 4 weeks", "📅", 200,
                    lambda f: f.entries_last_28_days, 4),
    AchievementRule("100 Day Streak", "Logged weight 100 days in a row", "💯", 500,
                    lambda f: f.longest_streak, 100),
    AchievementRule("Year of Progress", "Logged weight for 365 days", "🗓️", 1000,
                    lambda f: f.entry_count, 365),

    # Engagement
    AchievementRule("Team Player", "Joined your first team", "👥", 50, lambda f: f.team_count),
    AchievementRule("Social Butterfly", "Created your first post", "🦋", 25, lambda f: f.post_count),
    AchievementRule("Challenger", "Joined your first challenge", "🏅", 50, lambda f: f.challenges_joined),
    AchievementRule("Motivator", "Received 10 likes on your posts", "❤️", 100,
                    lambda f: f.likes_received, 10),
    AchievementRule("Helpful", "Made 25 comments to support others", "💬", 150,
                    lambda f: f.comment_count, 25),
    AchievementRule("Popular Post", "Had a post receive 50 likes", "🔥", 200,
                    lambda f: f.max_post_likes, 50),

    # Body composition
    AchievementRule("Body Fat Champion", "Reduced body fat percentage by 5%", "💪", 300,
                    lambda f: f.body_fat_lost, 5),
    AchievementRule("Muscle Builder", "Increased muscle mass by 10 lbs", "🏋️", 300,
                    lambda f: f.muscle_gained, 10),
    AchievementRule("Hydration Hero", "Maintained 60%+ water percentage for 30 days", "💧", 200,
                    lambda f: f.hydration_days, 30),

    # Special
    AchievementRule("Early Adopter", "One of the first 100 users", "🚀", 500, _flag("early_adopter")),
    AchievementRule("Supporter", "Made a donation to support the platform", "💝", 250,
                    lambda f: f.donation_count),
    AchievementRule("Monthly Supporter", "Active monthly donation subscription", "🌈", 500,
                    lambda f: f.monthly_donation_count),
    AchievementRule("Progress Photo Pro", "Uploaded 10 progress photos", "📸", 100,
                    lambda f: f.photo_count, 10),
    AchievementRule("Complete Profile", "Filled out all profile information", "✅", 50,
                    _flag("profile_complete")),
    AchievementRule("Challenge Champion", "Won your first challenge", "🥇", 300,
                    lambda f: f.challenges_completed),
    AchievementRule("Comeback Kid", "Logged weight after 30+ day gap", "🔄", 100,
                    lambda f: f.last_gap_days, 30),
    AchievementRule("Perfect Week", "Lost weight 7 days in a row", "📉", 200, _flag("perfect_week")),
    AchievementRule("Maintenance Master", "Maintained goal weight for 90 days", "🎯", 400,
                    _flag("maintained_goal")),

    # Hidden
    AchievementRule("Night Owl", "Logged weight between midnight and 4 AM", "🦉", 50,
                    _logged_at(lambda at: 0 <= at.hour < 4), hidden=True),
    AchievementRule("Early Bird", "Logged weight between 5 AM and 6 AM", "🐦", 50,
                    _logged_at(lambda at: at.hour == 5), hidden=True),
    AchievementRule("New Year Resolution", "Logged weight on January 1st", "🎆", 100,
                    _logged_at(lambda at: (at.month, at.day) == (1, 1)), hidden=True),
    AchievementRule("Holiday Spirit", "Logged weight on December 25th", "🎄", 100,
                    _logged_at(lambda at: (at.month, at.day) == (12, 25)), hidden=True),
    AchievementRule("Leap of Faith", "Logged weight on February 29th", "🐸", 200,
                    _logged_at(lambda at: (at.month, at.day) == (2, 29)), hidden=True),
    AchievementRule("Precision Master", "Logged a weight that ends in .00", "🎯", 25,
                    _logged_weight(lambda weight: weight == int(weight)), hidden=True),
    AchievementRule("Lucky Number", "Logged weight 7 times in a single week", "🍀", 75,
                    lambda f: f.max_entries_in_week, 7, hidden=True),
    AchievementRule("Dedication", "Logged weight every day for a full month", "📆", 300,
                    lambda f: f.full_months_logged, hidden=True),
    AchievementRule("Milestone Marker", "Reached exactly a 10 lb milestone (180, 170, 160, etc.)", "🏁", 50,
                    _logged_weight(lambda weight: weight == int(weight) and int(weight) % 10 == 0),
                    hidden=True),
    AchievementRule("Underdog", "Lost weight after gaining for 3 consecutive days", "🐕", 75,
                    _flag("loss_after_gains"), hidden=True),
)

RULES_BY_NAME = {rule.name: rule for rule in ACHIEVEMENT_RULES}
