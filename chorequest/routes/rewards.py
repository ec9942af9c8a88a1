"""Reward catalog API endpoints for ChoreQuest."""

from flask import Blueprint, jsonify, request

from auth import login_required, parent_required
from repository import get_repository
from schemas import validate_payload, REWARD_CREATE_SCHEMA, REWARD_UPDATE_SCHEMA
from services.reward_service import RewardService

rewards_bp = Blueprint('rewards', __name__, url_prefix='/api/rewards')


@rewards_bp.route('', methods=['GET'])
@login_required
def list_rewards(identity):
    """
    List the family's rewards, cheapest first.

    Query params:
        include_unavailable: true to include hidden rewards (parents only)
    """
    include_unavailable = request.args.get('include_unavailable', '').lower() in ('true', '1', 'yes')
    rewards = RewardService(get_repository()).list_rewards(identity, include_unavailable=include_unavailable)

    return jsonify({
        'data': [reward.to_dict() for reward in rewards],
        'message': f'Found {len(rewards)} rewards'
    })


@rewards_bp.route('', methods=['POST'])
@parent_required
def create_reward(identity):
    """Create a new reward in the caller's family."""
    data = validate_payload(request.get_json(silent=True), REWARD_CREATE_SCHEMA)

    reward = RewardService(get_repository()).create_reward(
        identity,
        name=data['name'].strip(),
        points_cost=data['points_cost'],
        description=data.get('description'),
        icon=data.get('icon')
    )

    return jsonify({
        'data': reward.to_dict(),
        'message': 'Reward created successfully'
    }), 201


@rewards_bp.route('/<int:reward_id>', methods=['GET'])
@login_required
def get_reward(reward_id, identity):
    """Get a reward from the caller's family."""
    reward = RewardService(get_repository()).get_reward(reward_id, identity)
    return jsonify({'data': reward.to_dict()})


@rewards_bp.route('/<int:reward_id>', methods=['PUT'])
@parent_required
def update_reward(reward_id, identity):
    """Update a reward. Existing redemptions keep the cost they were redeemed at."""
    data = validate_payload(request.get_json(silent=True), REWARD_UPDATE_SCHEMA)

    reward = RewardService(get_repository()).update_reward(reward_id, identity, **{
        field: data[field]
        for field in ('name', 'description', 'points_cost', 'icon', 'is_available')
        if field in data
    })

    return jsonify({
        'data': reward.to_dict(),
        'message': 'Reward updated successfully'
    })
