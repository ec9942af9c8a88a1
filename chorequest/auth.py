"""Authentication and authorization gate for ChoreQuest.

Every check is stateless and re-evaluated on each request:

1. Authenticated: the session names an existing user (401 otherwise)
2. Role-gated: parent-only operations require a parent (403 otherwise)
3. Tenant-scoped: the targeted resource must belong to the caller's family
   (403 otherwise, with one fixed message that reveals nothing about the
   resource)

The gate produces an explicit identity value that views receive as the
``identity`` keyword argument and pass on to services. The external
integration surface uses a family API key instead and receives a
``family_identity``.
"""

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Optional

from flask import session, request

from errors import AuthenticationError, AuthorizationError, CrossFamilyError
from models import Role, User
from repository import get_repository
from utils.security import api_keys_match

logger = logging.getLogger(__name__)

API_KEY_HEADER = 'X-API-Key'


@dataclass(frozen=True)
class Identity:
    """An authenticated family member."""

    user_id: int
    family_id: int
    role: Role

    @classmethod
    def from_user(cls, user: User) -> 'Identity':
        return cls(user_id=user.id, family_id=user.family_id, role=user.role)

    @property
    def is_parent(self) -> bool:
        return self.role is Role.PARENT


@dataclass(frozen=True)
class FamilyIdentity:
    """Service account for a family's API key. May only read and complete chores."""

    family_id: int


def login_user(user: User) -> None:
    """Log in a user by setting their session."""
    session.clear()
    session['user_id'] = user.id
    session.permanent = True  # Use permanent session with configured lifetime


def logout_user() -> None:
    """Log out the current user by clearing session."""
    session.pop('user_id', None)


def get_session_user_id() -> Optional[int]:
    return session.get('user_id')


def resolve_identity() -> Identity:
    """Resolve the session to an Identity or raise AuthenticationError."""
    user_id = get_session_user_id()
    if user_id is None:
        raise AuthenticationError('Authentication required')

    user = get_repository().get_user(user_id)
    if user is None:
        # Session outlived the user record
        logout_user()
        raise AuthenticationError('Authentication required')

    return Identity.from_user(user)


def get_optional_identity() -> Optional[Identity]:
    """Resolve the session if there is one. Used by endpoints open to anonymous callers."""
    if get_session_user_id() is None:
        return None
    return resolve_identity()


def require_parent(identity: Identity) -> None:
    if not identity.is_parent:
        logger.warning(f"User {identity.user_id} denied parent-only access")
        raise AuthorizationError('Parent access required')


def ensure_same_family(identity, family_id: Optional[int], message: Optional[str] = None) -> None:
    """Tenant check: raise CrossFamilyError unless family_id is the caller's family.

    Works for both Identity and FamilyIdentity. A missing resource should be
    passed as family_id=None, which is denied the same way as another
    family's resource.
    """
    if family_id is None or family_id != identity.family_id:
        logger.warning(f"Cross-family access denied for family {identity.family_id}")
        if message:
            raise CrossFamilyError(message)
        raise CrossFamilyError()


def login_required(f):
    """Decorator to ensure the request carries a valid session.

    Injects the caller's Identity as the ``identity`` keyword argument.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        kwargs['identity'] = resolve_identity()
        return f(*args, **kwargs)
    return decorated_function


def parent_required(f):
    """Decorator to ensure the caller is an authenticated parent."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        identity = resolve_identity()
        require_parent(identity)
        kwargs['identity'] = identity
        return f(*args, **kwargs)
    return decorated_function


def extract_api_key() -> Optional[str]:
    """Read an API key from `Authorization: Bearer <key>` or the X-API-Key header."""
    auth_header = request.headers.get('Authorization', '')
    if auth_header.startswith('Bearer '):
        token = auth_header[7:].strip()  # Remove 'Bearer ' prefix
        if token:
            return token
    return request.headers.get(API_KEY_HEADER) or None


def resolve_family_identity() -> FamilyIdentity:
    """Resolve the request's API key to a FamilyIdentity or raise AuthenticationError."""
    api_key = extract_api_key()
    if not api_key:
        raise AuthenticationError(
            'API key required',
            details={'hint': "Provide the API key as 'Authorization: Bearer <key>' or in the X-API-Key header"}
        )

    family = get_repository().get_family_by_api_key(api_key)
    # Use constant-time comparison to prevent timing attacks
    if family is None or not api_keys_match(api_key, family.api_key):
        logger.warning(f"Rejected invalid API key on {request.path}")
        raise AuthenticationError('Invalid API key')

    return FamilyIdentity(family_id=family.id)


def api_key_required(f):
    """Decorator for the external surface. Injects ``family_identity``."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        kwargs['family_identity'] = resolve_family_identity()
        return f(*args, **kwargs)
    return decorated_function
