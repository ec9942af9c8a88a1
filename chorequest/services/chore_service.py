"""Chore service.

This module contains the business logic for chore operations:
- Listing chores (parents see the family, children see their own)
- Creating chores (parent only, family forced to the caller's)
- Completing chores (self-completion only, awards points)
- The API-key surface used by external integrations

Routes should delegate to this service and handle HTTP responses.
"""

import logging
from datetime import datetime
from typing import List, Optional

from auth import Identity, FamilyIdentity, require_parent, ensure_same_family
from errors import NotFoundError, AuthorizationError, AlreadyCompletedError
from models import Chore, User
from repository import Repository
from services.achievement_service import AchievementService
from services.user_service import UserService
from utils.timezone import utc_now

logger = logging.getLogger(__name__)

DEFAULT_CHORE_ICON = 'ri-task-line'


class ChoreService:
    """Service for creating and completing chores."""

    def __init__(self, repo: Repository):
        self.repo = repo
        self.users = UserService(repo)
        self.achievements = AchievementService(repo)

    def list_chores(self, identity: Identity, completed: Optional[bool] = None) -> List[Chore]:
        """Parents see every chore in their family. Children only see their own."""
        if identity.is_parent:
            chores = self.repo.list_chores_for_family(identity.family_id)
            if completed is not None:
                chores = [c for c in chores if c.is_completed == completed]
            return chores
        return self.repo.list_chores_for_user(identity.user_id, completed=completed)

    def get_chore(self, chore_id: int, identity) -> Chore:
        """Load a chore that must belong to the caller's family."""
        chore = self.repo.get_chore(chore_id)
        if chore is None:
            raise NotFoundError(f'Chore {chore_id} not found')
        ensure_same_family(identity, chore.family_id)
        return chore

    def create_chore(self, identity: Identity, name: str, points: int, due_date: datetime,
                     assigned_to_id: int, description: Optional[str] = None,
                     icon: Optional[str] = None) -> Chore:
        """
        Create a chore assigned to a member of the caller's family.

        Raises:
            AuthorizationError: Caller is not a parent
            CrossFamilyError: Assignee is missing or belongs to another family
        """
        require_parent(identity)

        assignee = self.repo.get_user(assigned_to_id)
        ensure_same_family(identity, assignee.family_id if assignee else None,
                           'You can only assign chores to members of your own family')

        chore = self.repo.create_chore(
            name=name,
            points=points,
            icon=icon or DEFAULT_CHORE_ICON,
            due_date=due_date,
            assigned_to_id=assignee.id,
            family_id=identity.family_id,
            description=description,
            created_by=identity.user_id
        )
        logger.info(f"Chore {chore.id} ({chore.name}, {chore.points} pts) assigned to user {assignee.id}")
        return chore

    def complete_chore(self, chore_id: int, identity: Identity) -> Chore:
        """
        Complete a chore as the authenticated user.

        Only the assignee may complete a chore. Points are awarded once the
        completion is stored, then achievements are evaluated best-effort.

        Raises:
            NotFoundError: Chore not found
            CrossFamilyError: Chore belongs to another family
            AuthorizationError: Chore is assigned to someone else
            AlreadyCompletedError: Chore was completed already
        """
        chore = self.get_chore(chore_id, identity)
        return self._complete(chore, identity.user_id)

    def list_chores_external(self, family_identity: FamilyIdentity,
                             child_id: Optional[int] = None) -> List[Chore]:
        """List a family's chores for an API-key caller, optionally for one child."""
        if child_id is None:
            return self.repo.list_chores_for_family(family_identity.family_id)

        child = self._get_family_child(child_id, family_identity)
        return self.repo.list_chores_for_user(child.id)

    def complete_chore_external(self, chore_id: int, child_id: int,
                                family_identity: FamilyIdentity) -> Chore:
        """Complete a chore on behalf of the child it is assigned to."""
        child = self._get_family_child(child_id, family_identity)

        chore = self.repo.get_chore(chore_id)
        if chore is None:
            raise NotFoundError(f'Chore {chore_id} not found')
        ensure_same_family(family_identity, chore.family_id)

        return self._complete(chore, child.id)

    def _get_family_child(self, child_id: int, family_identity: FamilyIdentity) -> User:
        child = self.repo.get_user(child_id)
        ensure_same_family(family_identity, child.family_id if child else None)
        return child

    def _complete(self, chore: Chore, user_id: int) -> Chore:
        if chore.assigned_to_id != user_id:
            logger.warning(f"User {user_id} tried to complete chore {chore.id} assigned to user {chore.assigned_to_id}")
            raise AuthorizationError('You can only complete chores assigned to you')

        if chore.is_completed:
            raise AlreadyCompletedError(chore.id)

        completed = self.repo.mark_chore_completed(chore.id, user_id, utc_now())
        if completed is None:
            # Lost the race against a concurrent completion
            raise AlreadyCompletedError(chore.id)

        user = self.users.award_points(user_id, completed.points)
        logger.info(f"Chore {completed.id} completed by user {user_id}, "
                    f"awarded {completed.points} pts (balance {user.points})")

        self.achievements.evaluate_after_completion(user_id)
        return completed
