"""External integration endpoints, authenticated with a family API key.

The key may be sent as ``Authorization: Bearer <key>`` or in the
``X-API-Key`` header. It grants read and complete access to the family's
chores and nothing else.
"""

from flask import Blueprint, jsonify, request

from auth import api_key_required
from errors import ValidationError
from repository import get_repository
from schemas import validate_payload, EXTERNAL_COMPLETE_SCHEMA
from services.chore_service import ChoreService

external_bp = Blueprint('external', __name__, url_prefix='/api/external')


@external_bp.route('/chores', methods=['GET'])
@api_key_required
def list_chores(family_identity):
    """
    List the family's chores.

    Query params:
        child_id: Only chores assigned to this family member
    """
    child_id = request.args.get('child_id')
    if child_id is not None:
        try:
            child_id = int(child_id)
        except ValueError:
            raise ValidationError('Invalid request data', [
                {'field': 'child_id', 'message': 'child_id must be an integer'}
            ])

    chores = ChoreService(get_repository()).list_chores_external(family_identity, child_id=child_id)
    return jsonify({
        'data': [chore.to_dict() for chore in chores],
        'message': f'Found {len(chores)} chores'
    })


@external_bp.route('/chores/<int:chore_id>/complete', methods=['POST'])
@api_key_required
def complete_chore(chore_id, family_identity):
    """Complete a chore for the child it is assigned to."""
    data = validate_payload(request.get_json(silent=True), EXTERNAL_COMPLETE_SCHEMA)

    chore = ChoreService(get_repository()).complete_chore_external(chore_id, data['child_id'], family_identity)
    return jsonify({
        'data': chore.to_dict(),
        'message': f'Chore completed! +{chore.points} points'
    })
