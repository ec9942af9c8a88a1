"""Redemption API endpoints for ChoreQuest."""

from flask import Blueprint, jsonify, request

from auth import login_required, parent_required
from errors import AuthorizationError
from repository import get_repository
from schemas import validate_payload, REDEMPTION_CREATE_SCHEMA
from services.reward_service import RewardService

redemptions_bp = Blueprint('redemptions', __name__, url_prefix='/api/redemptions')


@redemptions_bp.route('', methods=['GET'])
@login_required
def list_redemptions(identity):
    """
    List redemptions, newest first.

    Query params:
        scope: 'family' to list every member's redemptions (parents only)
    """
    redemptions = RewardService(get_repository()).list_redemptions(identity, scope=request.args.get('scope'))
    return jsonify({
        'data': [redemption.to_dict() for redemption in redemptions],
        'message': f'Found {len(redemptions)} redemptions'
    })


@redemptions_bp.route('', methods=['POST'])
@login_required
def create_redemption(identity):
    """
    Redeem a reward for the caller.

    The cost is always taken from the reward; a client-supplied points_spent
    is ignored.
    """
    data = validate_payload(request.get_json(silent=True), REDEMPTION_CREATE_SCHEMA)

    if data.get('user_id') is not None and data['user_id'] != identity.user_id:
        raise AuthorizationError('You can only redeem rewards for yourself')

    redemption = RewardService(get_repository()).redeem_reward(identity.user_id, data['reward_id'])

    return jsonify({
        'data': redemption.to_dict(),
        'message': 'Reward redeemed! Waiting for parent approval'
    }), 201


@redemptions_bp.route('/<int:redemption_id>/approve', methods=['POST'])
@parent_required
def approve_redemption(redemption_id, identity):
    """Approve a pending redemption from the caller's family."""
    redemption = RewardService(get_repository()).approve_redemption(redemption_id, identity)
    return jsonify({
        'data': redemption.to_dict(),
        'message': 'Redemption approved'
    })
