"""Family API endpoints."""

from flask import Blueprint, jsonify, request

from auth import login_required
from repository import get_repository
from schemas import validate_payload, FAMILY_CREATE_SCHEMA
from services.user_service import UserService

families_bp = Blueprint('families', __name__, url_prefix='/api/families')


@families_bp.route('', methods=['POST'])
def create_family():
    """Create a family. Unauthenticated: this is the first step of signing up."""
    data = validate_payload(request.get_json(silent=True), FAMILY_CREATE_SCHEMA)

    family = UserService(get_repository()).create_family(data['name'].strip())

    return jsonify({
        'data': family.to_dict(include_api_key=True),
        'message': 'Family created successfully'
    }), 201


@families_bp.route('/<int:family_id>', methods=['GET'])
@login_required
def get_family(family_id, identity):
    """Get the caller's family, including its API key."""
    family = UserService(get_repository()).get_family(family_id, identity)
    return jsonify({'data': family.to_dict(include_api_key=True)})


@families_bp.route('/<int:family_id>/members', methods=['GET'])
@login_required
def list_members(family_id, identity):
    """List the members of the caller's family."""
    members = UserService(get_repository()).list_members(family_id, identity)
    return jsonify({
        'data': [member.to_dict() for member in members],
        'message': f'Found {len(members)} members'
    })
