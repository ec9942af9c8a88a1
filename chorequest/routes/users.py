"""User management API endpoints."""

from flask import Blueprint, jsonify, request

from auth import login_required, parent_required, get_optional_identity
from repository import get_repository
from schemas import validate_payload, USER_CREATE_SCHEMA, AWARD_ACHIEVEMENT_SCHEMA
from services.achievement_service import AchievementService
from services.user_service import UserService

users_bp = Blueprint('users', __name__, url_prefix='/api/users')


@users_bp.route('', methods=['POST'])
def create_user():
    """
    Add a member to a family.

    Open to anonymous callers only while the family has no members, so a
    new family can register its first parent. After that the caller must
    be a parent of the family.
    """
    identity = get_optional_identity()
    data = validate_payload(request.get_json(silent=True), USER_CREATE_SCHEMA)

    user = UserService(get_repository()).register_user(
        username=data['username'].strip(),
        password=data['password'],
        display_name=data['display_name'].strip(),
        role=data['role_type'],
        family_id=data['family_id'],
        avatar_color=data.get('avatar_color'),
        identity=identity
    )

    return jsonify({
        'data': user.to_dict(),
        'message': 'User created successfully'
    }), 201


@users_bp.route('', methods=['GET'])
@login_required
def list_users(identity):
    """List the members of the caller's family."""
    members = UserService(get_repository()).list_members(identity.family_id, identity)
    return jsonify({
        'data': [member.to_dict() for member in members],
        'message': f'Found {len(members)} users'
    })


@users_bp.route('/<int:user_id>/achievements', methods=['GET'])
@login_required
def list_user_achievements(user_id, identity):
    """Achievements earned by a member of the caller's family, newest first."""
    earned = AchievementService(get_repository()).list_for_user(user_id, identity)
    return jsonify({
        'data': [achievement.to_dict(earned_at=earned_at) for achievement, earned_at in earned],
        'message': f'Found {len(earned)} achievements'
    })


@users_bp.route('/<int:user_id>/achievements', methods=['POST'])
@parent_required
def award_achievement(user_id, identity):
    """Manually award a catalog achievement. Awarding twice returns the original record."""
    data = validate_payload(request.get_json(silent=True), AWARD_ACHIEVEMENT_SCHEMA)

    record = AchievementService(get_repository()).award_manually(user_id, data['achievement_id'], identity)

    return jsonify({
        'data': record.to_dict(),
        'message': 'Achievement awarded'
    }), 201
