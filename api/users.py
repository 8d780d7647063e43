import logging
import datetime
from flask import Blueprint, request, jsonify

from levels import get_level, get_next_level, get_level_progress
from .auth import token_required
from .config import get_persistence
from .error_utils import handle_exception
from .pydantic_models import (
    ActionHistoryResponse, ActionLogEntry, FcmTokenUpdateRequest, LevelResponse, ProfileResponse,
)

users_bp = Blueprint('users_bp', __name__)


@users_bp.route('/me', methods=['GET'])
@token_required
def get_my_profile(user_id):
    """Profile with the point total derived from the ledger and the wizard level for it."""
    try:
        persistence = get_persistence()
        profile = persistence.fetch_profile(user_id) or {}
        total_points = persistence.total_points(user_id)

        next_level = get_next_level(total_points)
        response = ProfileResponse(
            userId=user_id,
            wizardName=profile.get('wizardName') or 'Apprentice',
            avatarUrl=profile.get('avatarUrl'),
            totalPoints=total_points,
            level=LevelResponse.from_level(get_level(total_points)),
            nextLevel=LevelResponse.from_level(next_level) if next_level else None,
            levelProgress=get_level_progress(total_points),
        )
        return jsonify(response.model_dump()), 200
    except Exception as e:
        return handle_exception(e, "get_my_profile endpoint")


@users_bp.route('/me/actions', methods=['GET'])
@token_required
def get_my_actions(user_id):
    try:
        entries = []
        for data in get_persistence().recent_actions(user_id, limit=20):
            timestamp = data.get('timestamp')
            # Convert datetime objects to ISO 8601 string format for JSON
            if isinstance(timestamp, datetime.datetime):
                timestamp = timestamp.isoformat() + "Z"
            entries.append(ActionLogEntry(
                actionId=data['actionId'],
                type=data.get('type', 'unknown'),
                pointsAwarded=data.get('pointsAwarded', 0),
                details=data.get('details') or {},
                imagePath=data.get('imagePath'),
                timestamp=timestamp,
            ))
        return jsonify(ActionHistoryResponse(actions=entries).model_dump()), 200
    except Exception as e:
        return handle_exception(e, "get_my_actions endpoint")


@users_bp.route('/me/fcm-token', methods=['PUT'])
@token_required
def update_fcm_token(user_id):
    req_data = FcmTokenUpdateRequest.model_validate(request.get_json())
    try:
        get_persistence().update_fcm_token(user_id, req_data.fcmToken)
        logging.info(f"Updated FCM token for user {user_id}")
        return jsonify({"message": "FCM token updated"}), 200
    except Exception as e:
        return handle_exception(e, "update_fcm_token endpoint")
