"""Achievement service.

Runs the unlock rules from achievement_rules against a user's history and
awards the results. Evaluation is best-effort: a failure is logged and never
propagates into the chore completion or point change that triggered it.
"""

import logging
from datetime import date
from typing import List, Optional, Tuple

from auth import Identity, ensure_same_family
from errors import NotFoundError
from models import Achievement, User, UserAchievement
from repository import Repository
from services import achievement_rules
from utils.timezone import local_today, to_local

logger = logging.getLogger(__name__)


class AchievementService:
    """Service for the achievement catalog and awards."""

    def __init__(self, repo: Repository):
        self.repo = repo

    def list_catalog(self) -> List[Achievement]:
        return self.repo.list_achievements()

    def list_for_user(self, user_id: int, identity: Identity) -> List[Tuple[Achievement, object]]:
        user = self.repo.get_user(user_id)
        ensure_same_family(identity, user.family_id if user else None,
                           'You can only view achievements of users from your own family')
        return self.repo.list_user_achievements(user_id)

    def award_by_name(self, user_id: int, name: str) -> Optional[UserAchievement]:
        """Award a catalog achievement by name. Missing catalog entries are skipped."""
        achievement = self.repo.get_achievement_by_name(name)
        if achievement is None:
            logger.warning(f"Achievement {name!r} is not in the catalog, skipping award to user {user_id}")
            return None

        record, created = self.repo.award_achievement(user_id, achievement.id)
        if created:
            logger.info(f"User {user_id} earned achievement {name!r}")
        return record

    def award_manually(self, user_id: int, achievement_id: int, identity: Identity) -> UserAchievement:
        """Parent awards a catalog achievement to a member of their family."""
        user = self.repo.get_user(user_id)
        ensure_same_family(identity, user.family_id if user else None,
                           'You can only award achievements to users from your own family')

        if self.repo.get_achievement(achievement_id) is None:
            raise NotFoundError(f'Achievement {achievement_id} not found')

        record, created = self.repo.award_achievement(user_id, achievement_id)
        if created:
            logger.info(f"Parent {identity.user_id} awarded achievement {achievement_id} to user {user_id}")
        return record

    def evaluate_after_completion(self, user_id: int, today: Optional[date] = None) -> List[str]:
        """Evaluate the chore-completion rules for a user. Returns the names awarded or already held."""
        try:
            completed = self.repo.list_chores_for_user(user_id, completed=True)
            completion_times = [to_local(chore.completed_at) for chore in completed if chore.completed_at]
            names = achievement_rules.evaluate_completion(completion_times, today or local_today())
            return self._award_all(user_id, names)
        except Exception as e:
            self.repo.rollback()
            logger.error(f"Achievement evaluation failed for user {user_id}: {e}", exc_info=True)
            return []

    def evaluate_points(self, user: User) -> List[str]:
        """Evaluate the points-threshold rule after a point change."""
        try:
            names = achievement_rules.points_achievements(user.points)
            return self._award_all(user.id, names)
        except Exception as e:
            self.repo.rollback()
            logger.error(f"Points achievement evaluation failed for user {user.id}: {e}", exc_info=True)
            return []

    def _award_all(self, user_id: int, names: List[str]) -> List[str]:
        awarded = []
        for name in names:
            if self.award_by_name(user_id, name) is not None:
                awarded.append(name)
        return awarded
