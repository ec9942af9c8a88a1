"""
SQLAlchemy models for ChoreQuest.

This module defines the database models for the family chore tracker.
Uses Flask-SQLAlchemy for ORM integration with Flask. The models are also
used as plain entity objects by the in-memory repository, so serialization
only reads column attributes, never relationships.
"""

import enum
from datetime import datetime
from typing import Optional

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import CheckConstraint, UniqueConstraint, Index

from utils.security import hash_password, verify_password
from utils.timezone import utc_now, isoformat

db = SQLAlchemy()

POINTS_PER_LEVEL = 100


class Role(str, enum.Enum):
    """The two kinds of family member."""

    PARENT = 'parent'
    CHILD = 'child'

    @classmethod
    def parse(cls, value) -> 'Role':
        if isinstance(value, cls):
            return value
        return cls(value)


def level_for_points(points: int) -> int:
    """Level is derived from points: 1 + floor(points / 100)."""
    return 1 + points // POINTS_PER_LEVEL


class Family(db.Model):
    """A household. The tenant boundary for users, chores and rewards."""

    __tablename__ = 'families'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(255), nullable=False)
    api_key = db.Column(db.String(255), unique=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    def __repr__(self):
        return f'<Family {self.name}>'

    def to_dict(self, include_api_key: bool = False) -> dict:
        """Serialize Family. The API key is only exposed to its own members."""
        data = {
            'id': self.id,
            'name': self.name,
            'created_at': isoformat(self.created_at)
        }
        if include_api_key:
            data['api_key'] = self.api_key
        return data


class User(db.Model):
    """User model representing both parents and children in a family."""

    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    username = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    display_name = db.Column(db.String(255), nullable=False)
    role_type = db.Column(db.String(20), nullable=False)
    family_id = db.Column(db.Integer, db.ForeignKey('families.id'), nullable=False, index=True)
    points = db.Column(db.Integer, default=0, nullable=False)
    level = db.Column(db.Integer, default=1, nullable=False)
    avatar_color = db.Column(db.String(50), nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        CheckConstraint("role_type IN ('parent', 'child')", name='check_user_role_type'),
        CheckConstraint('points >= 0', name='check_user_points_non_negative'),
    )

    def __repr__(self):
        return f'<User {self.username} ({self.role_type})>'

    @property
    def role(self) -> Role:
        return Role.parse(self.role_type)

    @property
    def is_parent(self) -> bool:
        return self.role is Role.PARENT

    def set_password(self, password: str) -> None:
        """Set password hash from plaintext password."""
        self.password_hash = hash_password(password)

    def check_password(self, password: str) -> bool:
        """Check if provided password matches the stored hash."""
        return verify_password(password, self.password_hash)

    def to_dict(self) -> dict:
        """Serialize User to dictionary for JSON responses."""
        return {
            'id': self.id,
            'username': self.username,
            'display_name': self.display_name,
            'role_type': self.role_type,
            'family_id': self.family_id,
            'points': self.points,
            'level': self.level,
            'avatar_color': self.avatar_color,
            'created_at': isoformat(self.created_at)
        }


class Chore(db.Model):
    """A one-shot task assigned to a family member, worth a number of points."""

    __tablename__ = 'chores'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    points = db.Column(db.Integer, nullable=False)
    icon = db.Column(db.String(100), nullable=False)
    due_date = db.Column(db.DateTime, nullable=False)
    is_completed = db.Column(db.Boolean, default=False, nullable=False)
    assigned_to_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    family_id = db.Column(db.Integer, db.ForeignKey('families.id'), nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        CheckConstraint('points > 0', name='check_chore_points_positive'),
        Index('idx_chores_family', 'family_id'),
        Index('idx_chores_assigned_to', 'assigned_to_id'),
    )

    def __repr__(self):
        return f'<Chore {self.name} completed={self.is_completed}>'

    @property
    def status(self) -> str:
        return 'completed' if self.is_completed else 'pending'

    def to_dict(self) -> dict:
        """Serialize Chore to dictionary for JSON responses."""
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'points': self.points,
            'icon': self.icon,
            'due_date': isoformat(self.due_date),
            'is_completed': self.is_completed,
            'status': self.status,
            'assigned_to_id': self.assigned_to_id,
            'family_id': self.family_id,
            'completed_at': isoformat(self.completed_at),
            'created_by': self.created_by,
            'created_at': isoformat(self.created_at)
        }


class Reward(db.Model):
    """A family catalog item that can be redeemed for points."""

    __tablename__ = 'rewards'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    points_cost = db.Column(db.Integer, nullable=False)
    icon = db.Column(db.String(100), nullable=False)
    family_id = db.Column(db.Integer, db.ForeignKey('families.id'), nullable=False, index=True)
    is_available = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        CheckConstraint('points_cost > 0', name='check_reward_points_cost_positive'),
    )

    def __repr__(self):
        return f'<Reward {self.name} ({self.points_cost} pts)>'

    def to_dict(self) -> dict:
        """Serialize Reward to dictionary for JSON responses."""
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'points_cost': self.points_cost,
            'icon': self.icon,
            'family_id': self.family_id,
            'is_available': self.is_available,
            'created_at': isoformat(self.created_at)
        }


class Redemption(db.Model):
    """A user's spend of points on a reward, pending until a parent approves."""

    __tablename__ = 'redemptions'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    reward_id = db.Column(db.Integer, db.ForeignKey('rewards.id'), nullable=False)
    points_spent = db.Column(db.Integer, nullable=False)  # Snapshot of reward cost
    redeemed_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    is_approved = db.Column(db.Boolean, default=False, nullable=False)
    approved_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        Index('idx_redemptions_user', 'user_id'),
    )

    def __repr__(self):
        return f'<Redemption user_id={self.user_id} reward_id={self.reward_id} approved={self.is_approved}>'

    @property
    def status(self) -> str:
        return 'approved' if self.is_approved else 'pending'

    def to_dict(self) -> dict:
        """Serialize Redemption to dictionary for JSON responses."""
        return {
            'id': self.id,
            'user_id': self.user_id,
            'reward_id': self.reward_id,
            'points_spent': self.points_spent,
            'redeemed_at': isoformat(self.redeemed_at),
            'is_approved': self.is_approved,
            'status': self.status,
            'approved_by': self.approved_by,
            'approved_at': isoformat(self.approved_at)
        }


class Achievement(db.Model):
    """Global badge definition, shared by every family."""

    __tablename__ = 'achievements'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(255), unique=True, nullable=False)
    description = db.Column(db.Text, nullable=False)
    icon = db.Column(db.String(100), nullable=False)
    background_color = db.Column(db.String(50), nullable=False)

    def __repr__(self):
        return f'<Achievement {self.name}>'

    def to_dict(self, earned_at: Optional[datetime] = None) -> dict:
        """Serialize Achievement, optionally with the time a user earned it."""
        data = {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'icon': self.icon,
            'background_color': self.background_color
        }
        if earned_at is not None:
            data['earned_at'] = isoformat(earned_at)
        return data


class UserAchievement(db.Model):
    """One user's earning of one achievement."""

    __tablename__ = 'user_achievements'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    achievement_id = db.Column(db.Integer, db.ForeignKey('achievements.id'), nullable=False)
    earned_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'achievement_id', name='unique_user_achievement'),
    )

    def __repr__(self):
        return f'<UserAchievement user_id={self.user_id} achievement_id={self.achievement_id}>'

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'achievement_id': self.achievement_id,
            'earned_at': isoformat(self.earned_at)
        }
