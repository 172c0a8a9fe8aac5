from typing import Iterable, List, Tuple

from .catalog import AchievementRule
from .facts import AchievementFacts


def evaluate(facts: AchievementFacts, rules: Iterable[AchievementRule], held: Iterable[str]) -> List[str]:
    """Names of the rules that match ``facts`` and are not held yet, in catalog order."""
    held = set(held)
    return [rule.name for rule in rules if rule.name not in held and rule.matches(facts)]


def rule_progress(rule: AchievementRule, facts: AchievementFacts) -> Tuple[float, float, int]:
    """(current, target, percentage) towards a locked rule, percentage clamped to 0-100."""
    current = max(0.0, float(rule.metric(facts)))
    target = float(rule.target) or 1.0
    percentage = min(100, int(round(current * 100 / target)))
    return current, target, percentage
