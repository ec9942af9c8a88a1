"""Achievement catalog API endpoint."""

from flask import Blueprint, jsonify

from auth import login_required
from repository import get_repository
from services.achievement_service import AchievementService

achievements_bp = Blueprint('achievements', __name__, url_prefix='/api/achievements')


@achievements_bp.route('', methods=['GET'])
@login_required
def list_achievements(identity):
    """List the global achievement catalog."""
    achievements = AchievementService(get_repository()).list_catalog()
    return jsonify({
        'data': [achievement.to_dict() for achievement in achievements],
        'message': f'Found {len(achievements)} achievements'
    })
