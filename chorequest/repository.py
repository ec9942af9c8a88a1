"""Domain repository for ChoreQuest.

The repository is the sole owner of durable state. Services talk to the
abstract ``Repository`` interface; two backends satisfy it:

- ``SQLAlchemyRepository``: Flask-SQLAlchemy models, one commit per write
- ``InMemoryRepository``: dict-backed, guarded by a lock, for tests and demos

Single-entity lookups return None when the entity does not exist. Only
storage failures raise.
"""

import itertools
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, List, Tuple

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from errors import ConflictError
from models import (
    db, Family, User, Chore, Reward, Redemption, Achievement, UserAchievement,
    Role, level_for_points
)
from utils.timezone import utc_now

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'chorequest.repository'

# Fields a parent may change on an existing reward
REWARD_UPDATABLE_FIELDS = ('name', 'description', 'points_cost', 'icon', 'is_available')


class Repository(ABC):
    """Persistence contract for every ChoreQuest entity."""

    # Families

    @abstractmethod
    def create_family(self, name: str, api_key: str) -> Family:
        ...

    @abstractmethod
    def get_family(self, family_id: int) -> Optional[Family]:
        ...

    @abstractmethod
    def get_family_by_api_key(self, api_key: str) -> Optional[Family]:
        ...

    # Users

    @abstractmethod
    def create_user(self, username: str, password: str, display_name: str, role: Role,
                    family_id: int, avatar_color: str) -> User:
        """Create a user with zero points at level 1. Raises ConflictError on a taken username."""

    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]:
        ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]:
        ...

    @abstractmethod
    def list_family_members(self, family_id: int) -> List[User]:
        ...

    def count_family_members(self, family_id: int) -> int:
        return len(self.list_family_members(family_id))

    @abstractmethod
    def apply_points(self, user_id: int, delta: int, require_sufficient: bool = False) -> Optional[User]:
        """Add delta to a user's points and recompute the level.

        With require_sufficient, the update only applies when the resulting
        balance is non-negative; otherwise None is returned and nothing changes.
        Returns None as well when the user does not exist.
        """

    # Chores

    @abstractmethod
    def create_chore(self, name: str, points: int, icon: str, due_date: datetime, assigned_to_id: int,
                     family_id: int, description: Optional[str] = None,
                     created_by: Optional[int] = None) -> Chore:
        ...

    @abstractmethod
    def get_chore(self, chore_id: int) -> Optional[Chore]:
        ...

    @abstractmethod
    def list_chores_for_user(self, user_id: int, completed: Optional[bool] = None) -> List[Chore]:
        ...

    @abstractmethod
    def list_chores_for_family(self, family_id: int) -> List[Chore]:
        ...

    @abstractmethod
    def mark_chore_completed(self, chore_id: int, user_id: int, completed_at: datetime) -> Optional[Chore]:
        """Atomically move a pending chore assigned to user_id to completed.

        Returns the updated chore, or None if no pending chore matched (it
        does not exist, belongs to someone else, or was completed already).
        """

    # Rewards

    @abstractmethod
    def create_reward(self, name: str, points_cost: int, icon: str, family_id: int,
                      description: Optional[str] = None) -> Reward:
        ...

    @abstractmethod
    def get_reward(self, reward_id: int) -> Optional[Reward]:
        ...

    @abstractmethod
    def list_rewards_for_family(self, family_id: int, available_only: bool = True) -> List[Reward]:
        ...

    @abstractmethod
    def update_reward(self, reward_id: int, **changes) -> Optional[Reward]:
        ...

    # Redemptions

    @abstractmethod
    def create_redemption(self, user_id: int, reward_id: int, points_spent: int) -> Redemption:
        ...

    @abstractmethod
    def get_redemption(self, redemption_id: int) -> Optional[Redemption]:
        ...

    @abstractmethod
    def list_redemptions_for_user(self, user_id: int) -> List[Redemption]:
        ...

    @abstractmethod
    def list_redemptions_for_family(self, family_id: int) -> List[Redemption]:
        ...

    @abstractmethod
    def mark_redemption_approved(self, redemption_id: int, approved_by: int,
                                 approved_at: datetime) -> Optional[Redemption]:
        """Atomically approve a pending redemption. None if it was not pending."""

    # Achievements

    @abstractmethod
    def create_achievement(self, name: str, description: str, icon: str, background_color: str) -> Achievement:
        ...

    @abstractmethod
    def list_achievements(self) -> List[Achievement]:
        ...

    @abstractmethod
    def get_achievement(self, achievement_id: int) -> Optional[Achievement]:
        ...

    @abstractmethod
    def get_achievement_by_name(self, name: str) -> Optional[Achievement]:
        ...

    @abstractmethod
    def list_user_achievements(self, user_id: int) -> List[Tuple[Achievement, datetime]]:
        """Achievements held by a user, paired with when each was earned."""

    @abstractmethod
    def award_achievement(self, user_id: int, achievement_id: int) -> Tuple[UserAchievement, bool]:
        """Idempotently award an achievement.

        Returns (record, created). Awarding an already-held achievement
        returns the existing record with created=False.
        """

    def ping(self) -> bool:
        """Check that the storage backend is reachable."""
        return True

    def rollback(self) -> None:
        """Discard a failed unit of work. Nothing to do for backends without transactions."""


class SQLAlchemyRepository(Repository):
    """Durable repository backed by Flask-SQLAlchemy. Requires an app context."""

    def _add(self, obj):
        db.session.add(obj)
        db.session.commit()
        return obj

    # Families

    def create_family(self, name: str, api_key: str) -> Family:
        return self._add(Family(name=name, api_key=api_key))

    def get_family(self, family_id: int) -> Optional[Family]:
        return db.session.get(Family, family_id)

    def get_family_by_api_key(self, api_key: str) -> Optional[Family]:
        return Family.query.filter_by(api_key=api_key).first()

    # Users

    def create_user(self, username, password, display_name, role, family_id, avatar_color) -> User:
        user = User(
            username=username,
            display_name=display_name,
            role_type=Role.parse(role).value,
            family_id=family_id,
            avatar_color=avatar_color,
            points=0,
            level=1
        )
        user.set_password(password)
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError:
            # Race condition - another request took the username first
            db.session.rollback()
            raise ConflictError(f'Username "{username}" is already taken')
        return user

    def get_user(self, user_id: int) -> Optional[User]:
        return db.session.get(User, user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return User.query.filter_by(username=username).first()

    def list_family_members(self, family_id: int) -> List[User]:
        return User.query.filter_by(family_id=family_id).order_by(User.id).all()

    def count_family_members(self, family_id: int) -> int:
        return User.query.filter_by(family_id=family_id).count()

    def apply_points(self, user_id: int, delta: int, require_sufficient: bool = False) -> Optional[User]:
        query = User.query.filter(User.id == user_id)
        if require_sufficient:
            query = query.filter(User.points + delta >= 0)

        updated = query.update({User.points: User.points + delta}, synchronize_session=False)
        if not updated:
            db.session.rollback()
            return None

        user = db.session.get(User, user_id, populate_existing=True)
        user.level = level_for_points(user.points)
        db.session.commit()
        return user

    # Chores

    def create_chore(self, name, points, icon, due_date, assigned_to_id, family_id,
                     description=None, created_by=None) -> Chore:
        return self._add(Chore(
            name=name,
            description=description,
            points=points,
            icon=icon,
            due_date=due_date,
            assigned_to_id=assigned_to_id,
            family_id=family_id,
            created_by=created_by,
            is_completed=False,
            completed_at=None
        ))

    def get_chore(self, chore_id: int) -> Optional[Chore]:
        return db.session.get(Chore, chore_id)

    def list_chores_for_user(self, user_id: int, completed: Optional[bool] = None) -> List[Chore]:
        query = Chore.query.filter_by(assigned_to_id=user_id)
        if completed is not None:
            query = query.filter_by(is_completed=completed)
        return query.order_by(Chore.due_date, Chore.id).all()

    def list_chores_for_family(self, family_id: int) -> List[Chore]:
        return Chore.query.filter_by(family_id=family_id).order_by(Chore.due_date, Chore.id).all()

    def mark_chore_completed(self, chore_id: int, user_id: int, completed_at: datetime) -> Optional[Chore]:
        updated = Chore.query.filter_by(
            id=chore_id,
            assigned_to_id=user_id,
            is_completed=False
        ).update({
            Chore.is_completed: True,
            Chore.completed_at: completed_at
        }, synchronize_session=False)
        db.session.commit()

        if not updated:
            return None
        return db.session.get(Chore, chore_id, populate_existing=True)

    # Rewards

    def create_reward(self, name, points_cost, icon, family_id, description=None) -> Reward:
        return self._add(Reward(
            name=name,
            description=description,
            points_cost=points_cost,
            icon=icon,
            family_id=family_id,
            is_available=True
        ))

    def get_reward(self, reward_id: int) -> Optional[Reward]:
        return db.session.get(Reward, reward_id)

    def list_rewards_for_family(self, family_id: int, available_only: bool = True) -> List[Reward]:
        query = Reward.query.filter_by(family_id=family_id)
        if available_only:
            query = query.filter_by(is_available=True)
        return query.order_by(Reward.points_cost, Reward.id).all()

    def update_reward(self, reward_id: int, **changes) -> Optional[Reward]:
        reward = db.session.get(Reward, reward_id)
        if reward is None:
            return None
        for field in REWARD_UPDATABLE_FIELDS:
            if field in changes:
                setattr(reward, field, changes[field])
        db.session.commit()
        return reward

    # Redemptions

    def create_redemption(self, user_id: int, reward_id: int, points_spent: int) -> Redemption:
        return self._add(Redemption(
            user_id=user_id,
            reward_id=reward_id,
            points_spent=points_spent,
            redeemed_at=utc_now(),
            is_approved=False
        ))

    def get_redemption(self, redemption_id: int) -> Optional[Redemption]:
        return db.session.get(Redemption, redemption_id)

    def list_redemptions_for_user(self, user_id: int) -> List[Redemption]:
        return Redemption.query.filter_by(user_id=user_id).order_by(Redemption.redeemed_at.desc()).all()

    def list_redemptions_for_family(self, family_id: int) -> List[Redemption]:
        return (Redemption.query
                .join(User, User.id == Redemption.user_id)
                .filter(User.family_id == family_id)
                .order_by(Redemption.redeemed_at.desc())
                .all())

    def mark_redemption_approved(self, redemption_id, approved_by, approved_at) -> Optional[Redemption]:
        updated = Redemption.query.filter_by(id=redemption_id, is_approved=False).update({
            Redemption.is_approved: True,
            Redemption.approved_by: approved_by,
            Redemption.approved_at: approved_at
        }, synchronize_session=False)
        db.session.commit()

        if not updated:
            return None
        return db.session.get(Redemption, redemption_id, populate_existing=True)

    # Achievements

    def create_achievement(self, name, description, icon, background_color) -> Achievement:
        return self._add(Achievement(
            name=name,
            description=description,
            icon=icon,
            background_color=background_color
        ))

    def list_achievements(self) -> List[Achievement]:
        return Achievement.query.order_by(Achievement.id).all()

    def get_achievement(self, achievement_id: int) -> Optional[Achievement]:
        return db.session.get(Achievement, achievement_id)

    def get_achievement_by_name(self, name: str) -> Optional[Achievement]:
        return Achievement.query.filter_by(name=name).first()

    def list_user_achievements(self, user_id: int) -> List[Tuple[Achievement, datetime]]:
        rows = (db.session.query(Achievement, UserAchievement.earned_at)
                .join(UserAchievement, UserAchievement.achievement_id == Achievement.id)
                .filter(UserAchievement.user_id == user_id)
                .order_by(UserAchievement.earned_at.desc(), UserAchievement.id.desc())
                .all())
        return [(achievement, earned_at) for achievement, earned_at in rows]

    def award_achievement(self, user_id: int, achievement_id: int) -> Tuple[UserAchievement, bool]:
        existing = UserAchievement.query.filter_by(user_id=user_id, achievement_id=achievement_id).first()
        if existing:
            return existing, False

        record = UserAchievement(user_id=user_id, achievement_id=achievement_id, earned_at=utc_now())
        db.session.add(record)
        try:
            db.session.commit()
        except IntegrityError:
            # Race condition - a concurrent evaluation awarded it first
            db.session.rollback()
            existing = UserAchievement.query.filter_by(user_id=user_id, achievement_id=achievement_id).first()
            return existing, False
        return record, True

    def ping(self) -> bool:
        db.session.execute(text('SELECT 1'))
        return True

    def rollback(self) -> None:
        db.session.rollback()


class InMemoryRepository(Repository):
    """Dict-backed repository. All state lives on the instance."""

    def __init__(self):
        self._lock = threading.RLock()
        self._families = {}
        self._users = {}
        self._chores = {}
        self._rewards = {}
        self._redemptions = {}
        self._achievements = {}
        self._user_achievements = {}
        self._ids = {name: itertools.count(1) for name in (
            'families', 'users', 'chores', 'rewards', 'redemptions', 'achievements', 'user_achievements'
        )}

    def _next_id(self, table: str) -> int:
        return next(self._ids[table])

    def _snapshot(self, rows: dict) -> list:
        # Readers iterate a copy so concurrent inserts cannot resize the dict under them
        with self._lock:
            return list(rows.values())

    # Families

    def create_family(self, name: str, api_key: str) -> Family:
        with self._lock:
            if any(f.api_key == api_key for f in self._snapshot(self._families)):
                raise ConflictError('API key already in use')
            family = Family(id=self._next_id('families'), name=name, api_key=api_key, created_at=utc_now())
            self._families[family.id] = family
            return family

    def get_family(self, family_id: int) -> Optional[Family]:
        return self._families.get(family_id)

    def get_family_by_api_key(self, api_key: str) -> Optional[Family]:
        return next((f for f in self._snapshot(self._families) if f.api_key == api_key), None)

    # Users

    def create_user(self, username, password, display_name, role, family_id, avatar_color) -> User:
        with self._lock:
            if self.get_user_by_username(username) is not None:
                raise ConflictError(f'Username "{username}" is already taken')
            user = User(
                id=self._next_id('users'),
                username=username,
                display_name=display_name,
                role_type=Role.parse(role).value,
                family_id=family_id,
                avatar_color=avatar_color,
                points=0,
                level=1,
                created_at=utc_now()
            )
            user.set_password(password)
            self._users[user.id] = user
            return user

    def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self._snapshot(self._users) if u.username == username), None)

    def list_family_members(self, family_id: int) -> List[User]:
        return [u for u in self._snapshot(self._users) if u.family_id == family_id]

    def apply_points(self, user_id: int, delta: int, require_sufficient: bool = False) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            new_points = user.points + delta
            if require_sufficient and new_points < 0:
                return None
            user.points = new_points
            user.level = level_for_points(new_points)
            return user

    # Chores

    def create_chore(self, name, points, icon, due_date, assigned_to_id, family_id,
                     description=None, created_by=None) -> Chore:
        with self._lock:
            chore = Chore(
                id=self._next_id('chores'),
                name=name,
                description=description,
                points=points,
                icon=icon,
                due_date=due_date,
                assigned_to_id=assigned_to_id,
                family_id=family_id,
                created_by=created_by,
                is_completed=False,
                completed_at=None,
                created_at=utc_now()
            )
            self._chores[chore.id] = chore
            return chore

    def get_chore(self, chore_id: int) -> Optional[Chore]:
        return self._chores.get(chore_id)

    def list_chores_for_user(self, user_id: int, completed: Optional[bool] = None) -> List[Chore]:
        chores = [c for c in self._snapshot(self._chores) if c.assigned_to_id == user_id]
        if completed is not None:
            chores = [c for c in chores if c.is_completed == completed]
        return sorted(chores, key=lambda c: (c.due_date, c.id))

    def list_chores_for_family(self, family_id: int) -> List[Chore]:
        chores = [c for c in self._snapshot(self._chores) if c.family_id == family_id]
        return sorted(chores, key=lambda c: (c.due_date, c.id))

    def mark_chore_completed(self, chore_id: int, user_id: int, completed_at: datetime) -> Optional[Chore]:
        with self._lock:
            chore = self._chores.get(chore_id)
            if chore is None or chore.is_completed or chore.assigned_to_id != user_id:
                return None
            chore.is_completed = True
            chore.completed_at = completed_at
            return chore

    # Rewards

    def create_reward(self, name, points_cost, icon, family_id, description=None) -> Reward:
        with self._lock:
            reward = Reward(
                id=self._next_id('rewards'),
                name=name,
                description=description,
                points_cost=points_cost,
                icon=icon,
                family_id=family_id,
                is_available=True,
                created_at=utc_now()
            )
            self._rewards[reward.id] = reward
            return reward

    def get_reward(self, reward_id: int) -> Optional[Reward]:
        return self._rewards.get(reward_id)

    def list_rewards_for_family(self, family_id: int, available_only: bool = True) -> List[Reward]:
        rewards = [r for r in self._snapshot(self._rewards) if r.family_id == family_id]
        if available_only:
            rewards = [r for r in rewards if r.is_available]
        return sorted(rewards, key=lambda r: (r.points_cost, r.id))

    def update_reward(self, reward_id: int, **changes) -> Optional[Reward]:
        with self._lock:
            reward = self._rewards.get(reward_id)
            if reward is None:
                return None
            for field in REWARD_UPDATABLE_FIELDS:
                if field in changes:
                    setattr(reward, field, changes[field])
            return reward

    # Redemptions

    def create_redemption(self, user_id: int, reward_id: int, points_spent: int) -> Redemption:
        with self._lock:
            redemption = Redemption(
                id=self._next_id('redemptions'),
                user_id=user_id,
                reward_id=reward_id,
                points_spent=points_spent,
                redeemed_at=utc_now(),
                is_approved=False,
                approved_by=None,
                approved_at=None
            )
            self._redemptions[redemption.id] = redemption
            return redemption

    def get_redemption(self, redemption_id: int) -> Optional[Redemption]:
        return self._redemptions.get(redemption_id)

    def list_redemptions_for_user(self, user_id: int) -> List[Redemption]:
        redemptions = [r for r in self._snapshot(self._redemptions) if r.user_id == user_id]
        return sorted(redemptions, key=lambda r: (r.redeemed_at, r.id), reverse=True)

    def list_redemptions_for_family(self, family_id: int) -> List[Redemption]:
        member_ids = {u.id for u in self.list_family_members(family_id)}
        redemptions = [r for r in self._snapshot(self._redemptions) if r.user_id in member_ids]
        return sorted(redemptions, key=lambda r: (r.redeemed_at, r.id), reverse=True)

    def mark_redemption_approved(self, redemption_id, approved_by, approved_at) -> Optional[Redemption]:
        with self._lock:
            redemption = self._redemptions.get(redemption_id)
            if redemption is None or redemption.is_approved:
                return None
            redemption.is_approved = True
            redemption.approved_by = approved_by
            redemption.approved_at = approved_at
            return redemption

    # Achievements

    def create_achievement(self, name, description, icon, background_color) -> Achievement:
        with self._lock:
            achievement = Achievement(
                id=self._next_id('achievements'),
                name=name,
                description=description,
                icon=icon,
                background_color=background_color
            )
            self._achievements[achievement.id] = achievement
            return achievement

    def list_achievements(self) -> List[Achievement]:
        return sorted(self._snapshot(self._achievements), key=lambda a: a.id)

    def get_achievement(self, achievement_id: int) -> Optional[Achievement]:
        return self._achievements.get(achievement_id)

    def get_achievement_by_name(self, name: str) -> Optional[Achievement]:
        return next((a for a in self._snapshot(self._achievements) if a.name == name), None)

    def list_user_achievements(self, user_id: int) -> List[Tuple[Achievement, datetime]]:
        records = [ua for ua in self._snapshot(self._user_achievements) if ua.user_id == user_id]
        records.sort(key=lambda ua: (ua.earned_at, ua.id), reverse=True)
        return [(self._achievements[ua.achievement_id], ua.earned_at) for ua in records]

    def award_achievement(self, user_id: int, achievement_id: int) -> Tuple[UserAchievement, bool]:
        with self._lock:
            existing = next((ua for ua in self._snapshot(self._user_achievements)
                             if ua.user_id == user_id and ua.achievement_id == achievement_id), None)
            if existing:
                return existing, False
            record = UserAchievement(
                id=self._next_id('user_achievements'),
                user_id=user_id,
                achievement_id=achievement_id,
                earned_at=utc_now()
            )
            self._user_achievements[record.id] = record
            return record, True


BACKENDS = {
    'sqlalchemy': SQLAlchemyRepository,
    'memory': InMemoryRepository,
}


def init_repository(app) -> Repository:
    """Create the configured repository backend and attach it to the app."""
    backend = app.config.get('REPOSITORY_BACKEND', 'sqlalchemy')
    try:
        repository_class = BACKENDS[backend]
    except KeyError:
        raise ValueError(f'Unknown REPOSITORY_BACKEND {backend!r}, expected one of {sorted(BACKENDS)}')

    repo = repository_class()
    app.extensions[EXTENSION_KEY] = repo
    logger.info(f"Using {repository_class.__name__} for storage")
    return repo


def get_repository() -> Repository:
    """Return the repository attached to the current app."""
    return current_app.extensions[EXTENSION_KEY]
