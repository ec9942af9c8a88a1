"""Chore API endpoints for ChoreQuest."""

from flask import Blueprint, jsonify, request

from auth import login_required, parent_required
from repository import get_repository
from schemas import validate_payload, parse_datetime, CHORE_CREATE_SCHEMA
from services.chore_service import ChoreService

chores_bp = Blueprint('chores', __name__, url_prefix='/api/chores')


def _parse_bool(value):
    """Parse a boolean query parameter. Returns None when absent."""
    if value is None or value == '':
        return None
    return value.lower() in ('true', '1', 'yes')


@chores_bp.route('', methods=['GET'])
@login_required
def list_chores(identity):
    """
    List chores.

    Parents see every chore in the family, children only the chores
    assigned to them.

    Query params:
        completed: true/false to filter by completion
    """
    completed = _parse_bool(request.args.get('completed'))
    chores = ChoreService(get_repository()).list_chores(identity, completed=completed)

    return jsonify({
        'data': [chore.to_dict() for chore in chores],
        'message': f'Found {len(chores)} chores'
    })


@chores_bp.route('', methods=['POST'])
@parent_required
def create_chore(identity):
    """Create a chore for a member of the caller's family."""
    data = validate_payload(request.get_json(silent=True), CHORE_CREATE_SCHEMA)

    chore = ChoreService(get_repository()).create_chore(
        identity,
        name=data['name'].strip(),
        points=data['points'],
        due_date=parse_datetime(data['due_date'], 'due_date'),
        assigned_to_id=data['assigned_to_id'],
        description=data.get('description'),
        icon=data.get('icon')
    )

    return jsonify({
        'data': chore.to_dict(),
        'message': 'Chore created successfully'
    }), 201


@chores_bp.route('/<int:chore_id>', methods=['GET'])
@login_required
def get_chore(chore_id, identity):
    """Get a chore from the caller's family."""
    chore = ChoreService(get_repository()).get_chore(chore_id, identity)
    return jsonify({'data': chore.to_dict()})


@chores_bp.route('/<int:chore_id>/complete', methods=['POST'])
@login_required
def complete_chore(chore_id, identity):
    """Complete a chore assigned to the caller and award its points."""
    chore = ChoreService(get_repository()).complete_chore(chore_id, identity)
    return jsonify({
        'data': chore.to_dict(),
        'message': f'Chore completed! +{chore.points} points'
    })
