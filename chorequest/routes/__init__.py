"""Routes package for ChoreQuest API."""

from .auth_routes import auth_bp
from .families import families_bp
from .users import users_bp
from .chores import chores_bp
from .rewards import rewards_bp
from .redemptions import redemptions_bp
from .achievements import achievements_bp
from .external import external_bp

__all__ = [
    'auth_bp', 'families_bp', 'users_bp', 'chores_bp', 'rewards_bp',
    'redemptions_bp', 'achievements_bp', 'external_bp'
]
