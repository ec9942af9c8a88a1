"""Session authentication endpoints for ChoreQuest."""

import logging

from flask import Blueprint, jsonify, request

from auth import login_user, logout_user, login_required
from errors import AuthenticationError, NotFoundError
from repository import get_repository
from schemas import validate_payload, LOGIN_SCHEMA
from services.user_service import UserService

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@auth_bp.route('/login', methods=['POST'])
def login():
    """Log in with username and password."""
    data = validate_payload(request.get_json(silent=True), LOGIN_SCHEMA)

    user = UserService(get_repository()).authenticate(data['username'].strip(), data['password'])
    if user is None:
        logger.warning(f"Failed login attempt for {data['username']!r}")
        raise AuthenticationError('Invalid username or password')

    login_user(user)
    logger.info(f"User {user.id} logged in")
    return jsonify({
        'data': user.to_dict(),
        'message': f'Welcome back, {user.display_name}!'
    })


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Log out the current session."""
    logout_user()
    return jsonify({'success': True, 'message': 'Logged out'})


@auth_bp.route('/me', methods=['GET'])
@login_required
def me(identity):
    """Get the logged-in user."""
    user = get_repository().get_user(identity.user_id)
    if user is None:
        raise NotFoundError(f'User {identity.user_id} not found')
    return jsonify({'data': user.to_dict()})
