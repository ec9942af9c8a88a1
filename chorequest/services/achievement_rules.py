"""Achievement unlock rules.

Pure functions with no storage access: callers pass in the user's completion
timestamps (already converted to the household's local time) and point total,
and get back the names of achievements the user qualifies for. Awarding is
idempotent, so returning an already-held achievement is harmless.

Volume rules match on exact counts, so they must be evaluated after every
completion to fire reliably.
"""

from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Sequence

FIRST_CHORE = 'First Chore'
CHORE_MASTER = 'Chore Master'
EARLY_BIRD = 'Early Bird'
STREAK_MASTER = 'Streak Master'
POINT_COLLECTOR = 'Point Collector'

# name -> completed chore count that unlocks it
VOLUME_THRESHOLDS = {
    FIRST_CHORE: 1,
    CHORE_MASTER: 10,
}
MORNING_CUTOFF_HOUR = 12
EARLY_BIRD_THRESHOLD = 5
STREAK_DAYS = 3
POINT_COLLECTOR_THRESHOLD = 250

# Seeded into an empty catalog at startup
DEFAULT_ACHIEVEMENTS = [
    {
        'name': FIRST_CHORE,
        'description': 'Complete your first chore',
        'icon': 'ri-award-line',
        'background_color': '#FFD700',
    },
    {
        'name': CHORE_MASTER,
        'description': 'Complete 10 chores',
        'icon': 'ri-trophy-line',
        'background_color': '#C0C0C0',
    },
    {
        'name': EARLY_BIRD,
        'description': f'Complete {EARLY_BIRD_THRESHOLD} chores before noon',
        'icon': 'ri-sun-line',
        'background_color': '#87CEEB',
    },
    {
        'name': STREAK_MASTER,
        'description': f'Complete chores {STREAK_DAYS} days in a row',
        'icon': 'ri-calendar-check-line',
        'background_color': '#CD7F32',
    },
    {
        'name': POINT_COLLECTOR,
        'description': f'Earn {POINT_COLLECTOR_THRESHOLD}+ points',
        'icon': 'ri-coin-line',
        'background_color': '#9932CC',
    },
]


def volume_achievements(completed_count: int) -> List[str]:
    """Achievements whose completion count equals the current total."""
    return [name for name, threshold in VOLUME_THRESHOLDS.items() if completed_count == threshold]


def count_morning_completions(completion_times: Iterable[datetime]) -> int:
    return sum(1 for completed_at in completion_times if completed_at.hour < MORNING_CUTOFF_HOUR)


def early_bird_achievements(completion_times: Sequence[datetime]) -> List[str]:
    if count_morning_completions(completion_times) >= EARLY_BIRD_THRESHOLD:
        return [EARLY_BIRD]
    return []


def has_streak(completion_times: Iterable[datetime], today: date, days: int = STREAK_DAYS) -> bool:
    """True if there is at least one completion on each of the last `days` days, ending today."""
    completed_dates = {completed_at.date() for completed_at in completion_times}
    return all(today - timedelta(days=offset) in completed_dates for offset in range(days))


def streak_achievements(completion_times: Sequence[datetime], today: date) -> List[str]:
    if has_streak(completion_times, today):
        return [STREAK_MASTER]
    return []


def points_achievements(points: int) -> List[str]:
    if points >= POINT_COLLECTOR_THRESHOLD:
        return [POINT_COLLECTOR]
    return []


def evaluate_completion(completion_times: Sequence[datetime], today: date,
                        points: Optional[int] = None) -> List[str]:
    """Evaluate every chore-completion rule (and the points rule when points is given).

    Args:
        completion_times: Local completion times of all the user's completed chores
        today: Today's local date
        points: The user's current point total

    Returns:
        Names of the achievements the user qualifies for, in rule order
    """
    earned = []
    earned.extend(volume_achievements(len(completion_times)))
    earned.extend(early_bird_achievements(completion_times))
    earned.extend(streak_achievements(completion_times, today))
    if points is not None:
        earned.extend(points_achievements(points))
    return earned
