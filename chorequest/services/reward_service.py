"""Reward redemption service.

This module contains the business logic for reward operations:
- Managing the family reward catalog (parent only)
- Redeeming rewards (deducting points at redemption time)
- Approving redemptions (parent of the same family)

There is no reject or refund path: a redemption stays pending until a
parent approves it.

Routes should delegate to this service and handle HTTP responses.
"""

import logging
from typing import List, Optional

from auth import Identity, require_parent, ensure_same_family
from errors import NotFoundError, BusinessRuleError, InsufficientPointsError, ValidationError
from models import Reward, Redemption
from repository import Repository
from services.user_service import UserService
from utils.timezone import utc_now

logger = logging.getLogger(__name__)

DEFAULT_REWARD_ICON = 'ri-gift-line'


class RewardService:
    """Service for the reward catalog and redemptions."""

    def __init__(self, repo: Repository):
        self.repo = repo
        self.users = UserService(repo)

    def list_rewards(self, identity: Identity, include_unavailable: bool = False) -> List[Reward]:
        """List the caller's family rewards. Only parents may see unavailable ones."""
        available_only = not (include_unavailable and identity.is_parent)
        return self.repo.list_rewards_for_family(identity.family_id, available_only=available_only)

    def get_reward(self, reward_id: int, identity) -> Reward:
        """Load a reward that must belong to the caller's family."""
        reward = self.repo.get_reward(reward_id)
        if reward is None:
            raise NotFoundError(f'Reward {reward_id} not found')
        ensure_same_family(identity, reward.family_id)
        return reward

    def create_reward(self, identity: Identity, name: str, points_cost: int,
                      description: Optional[str] = None, icon: Optional[str] = None) -> Reward:
        require_parent(identity)
        reward = self.repo.create_reward(
            name=name,
            points_cost=points_cost,
            icon=icon or DEFAULT_REWARD_ICON,
            family_id=identity.family_id,
            description=description
        )
        logger.info(f"Reward {reward.id} ({reward.name}, {reward.points_cost} pts) created in family {identity.family_id}")
        return reward

    def update_reward(self, reward_id: int, identity: Identity, **changes) -> Reward:
        """Update reward fields. Past redemptions keep their points snapshot."""
        require_parent(identity)
        self.get_reward(reward_id, identity)

        if 'points_cost' in changes and changes['points_cost'] is not None and changes['points_cost'] < 1:
            raise ValidationError('Validation failed', [
                {'field': 'points_cost', 'message': 'points_cost must be greater than 0'}
            ])

        changes = {k: v for k, v in changes.items() if v is not None}
        reward = self.repo.update_reward(reward_id, **changes)
        logger.info(f"Reward {reward_id} updated: {sorted(changes)}")
        return reward

    def redeem_reward(self, user_id: int, reward_id: int) -> Redemption:
        """
        Redeem a reward for a user, deducting its cost immediately.

        The deduction is a conditional update, so two concurrent redemptions
        can never take the balance below zero. The redemption records the
        cost at this moment; later price changes do not affect it.

        Raises:
            NotFoundError: User or reward not found
            CrossFamilyError: Reward belongs to another family
            BusinessRuleError: Reward is not available
            InsufficientPointsError: Balance lower than the cost
        """
        user = self.repo.get_user(user_id)
        if user is None:
            raise NotFoundError(f'User {user_id} not found')

        reward = self.repo.get_reward(reward_id)
        if reward is None:
            raise NotFoundError(f'Reward {reward_id} not found')
        ensure_same_family(user, reward.family_id,
                           'You can only redeem rewards from your own family')

        if not reward.is_available:
            raise BusinessRuleError(f'Reward "{reward.name}" is not available')

        if user.points < reward.points_cost:
            raise InsufficientPointsError(required=reward.points_cost, current=user.points)

        cost = reward.points_cost
        user = self.users.award_points(user_id, -cost)

        try:
            redemption = self.repo.create_redemption(user_id=user_id, reward_id=reward.id, points_spent=cost)
        except Exception:
            logger.error(f"Failed to record redemption of reward {reward.id} by user {user_id}, refunding {cost} pts")
            self.repo.rollback()
            self.users.award_points(user_id, cost)
            raise

        logger.info(f"User {user_id} redeemed reward {reward.id} for {cost} pts (balance {user.points})")
        return redemption

    def approve_redemption(self, redemption_id: int, identity: Identity) -> Redemption:
        """
        Approve a pending redemption. Points were already deducted.

        Raises:
            AuthorizationError: Caller is not a parent
            NotFoundError: Redemption not found
            CrossFamilyError: Redemption belongs to another family
            BusinessRuleError: Redemption was approved already
        """
        require_parent(identity)

        redemption = self.repo.get_redemption(redemption_id)
        if redemption is None:
            raise NotFoundError(f'Redemption {redemption_id} not found')

        owner = self.repo.get_user(redemption.user_id)
        ensure_same_family(identity, owner.family_id if owner else None)

        if redemption.is_approved:
            raise BusinessRuleError(f'Redemption {redemption_id} is already approved')

        approved = self.repo.mark_redemption_approved(redemption_id, identity.user_id, utc_now())
        if approved is None:
            raise BusinessRuleError(f'Redemption {redemption_id} is already approved')

        logger.info(f"Redemption {redemption_id} approved by parent {identity.user_id}")
        return approved

    def list_redemptions(self, identity: Identity, scope: Optional[str] = None) -> List[Redemption]:
        """The caller's own redemptions, or the whole family's for a parent with scope='family'."""
        if scope == 'family':
            require_parent(identity)
            return self.repo.list_redemptions_for_family(identity.family_id)
        return self.repo.list_redemptions_for_user(identity.user_id)
