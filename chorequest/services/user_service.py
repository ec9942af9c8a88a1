"""Family and member service.

This module contains the business logic for:
- Creating families (with a freshly generated API key)
- Registering family members (bootstrap and parent-added)
- Awarding and debiting points (recomputing level)

Routes should delegate to this service and handle HTTP responses.
"""

import logging
from typing import List, Optional

from auth import Identity, ensure_same_family
from errors import NotFoundError, AuthorizationError, ConflictError, InsufficientPointsError
from models import Family, User, Role
from repository import Repository
from services.achievement_service import AchievementService
from utils.security import generate_api_key

logger = logging.getLogger(__name__)

DEFAULT_AVATAR_COLOR = 'blue'


class UserService:
    """Service for families, members and point balances."""

    def __init__(self, repo: Repository):
        self.repo = repo
        self.achievements = AchievementService(repo)

    def create_family(self, name: str) -> Family:
        """Create a family. The API key is generated here and never changes."""
        family = self.repo.create_family(name=name, api_key=generate_api_key())
        logger.info(f"Created family {family.id} ({family.name})")
        return family

    def get_family(self, family_id: int, identity: Identity) -> Family:
        ensure_same_family(identity, family_id)
        family = self.repo.get_family(family_id)
        if family is None:
            raise NotFoundError(f'Family {family_id} not found')
        return family

    def list_members(self, family_id: int, identity: Identity) -> List[User]:
        ensure_same_family(identity, family_id)
        return self.repo.list_family_members(family_id)

    def register_user(self, username: str, password: str, display_name: str, role: Role,
                      family_id: int, avatar_color: Optional[str] = None,
                      identity: Optional[Identity] = None) -> User:
        """
        Add a member to a family.

        The first member of a newly created family may be registered without
        a session (signup bootstrap). After that, only a parent of the same
        family can add members.

        Raises:
            AuthorizationError: Family unknown, or caller may not add members to it
            ConflictError: Username already taken
        """
        family = self.repo.get_family(family_id)
        if family is None:
            raise AuthorizationError('You can only add members to your own family')

        if self.repo.count_family_members(family_id) > 0:
            if identity is None or identity.family_id != family_id or not identity.is_parent:
                logger.warning(f"Rejected member registration for family {family_id}")
                raise AuthorizationError('You can only add members to your own family')

        if self.repo.get_user_by_username(username) is not None:
            raise ConflictError(f'Username "{username}" is already taken')

        user = self.repo.create_user(
            username=username,
            password=password,
            display_name=display_name,
            role=Role.parse(role),
            family_id=family_id,
            avatar_color=avatar_color or DEFAULT_AVATAR_COLOR
        )
        logger.info(f"Registered {user.role_type} {user.username} in family {family_id}")
        return user

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """Return the user for valid credentials, else None."""
        user = self.repo.get_user_by_username(username)
        if user is None or not user.check_password(password):
            return None
        return user

    def award_points(self, user_id: int, delta: int) -> User:
        """
        Add delta (which may be negative) to a user's points and recompute level.

        Internal primitive used by chore completion and reward redemption. A
        debit that would take the balance below zero is refused without
        changing anything.

        Raises:
            NotFoundError: User not found
            InsufficientPointsError: Debit larger than the balance
        """
        user = self.repo.apply_points(user_id, delta, require_sufficient=delta < 0)
        if user is None:
            current = self.repo.get_user(user_id)
            if current is None:
                raise NotFoundError(f'User {user_id} not found')
            raise InsufficientPointsError(required=-delta, current=current.points)

        logger.info(f"Points for user {user_id} changed by {delta:+} to {user.points} (level {user.level})")
        self.achievements.evaluate_points(user)
        return user
