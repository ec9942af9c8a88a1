"""Credential hashing and API key helpers.

Passwords are hashed with werkzeug, which stores the method, a freshly
generated salt and the digest together in one string and compares digests in
constant time.
"""

import secrets

from werkzeug.security import generate_password_hash, check_password_hash

API_KEY_PREFIX = 'fam_'


def hash_password(password: str) -> str:
    """Return a salted one-way hash of the plaintext password."""
    return generate_password_hash(password)


def verify_password(password: str, stored_hash: str) -> bool:
    """Check a plaintext password against a stored hash."""
    if not stored_hash:
        return False
    return check_password_hash(stored_hash, password)


def generate_api_key() -> str:
    """Generate a new family API key (prefix + 32 random bytes, URL-safe)."""
    return f'{API_KEY_PREFIX}{secrets.token_urlsafe(32)}'


def api_keys_match(supplied: str, stored: str) -> bool:
    """Constant-time comparison of two API keys."""
    if not supplied or not stored:
        return False
    return secrets.compare_digest(supplied.encode(), stored.encode())
