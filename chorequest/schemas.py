"""
JSON schemas and request validation for ChoreQuest.

Request bodies are validated with jsonschema. Every violation is collected
into a field-level error list so clients can show all problems at once.
The original web client sends camelCase keys; they are normalized to the
snake_case names used throughout the API before validation.
"""

from datetime import datetime, date, timezone
from typing import Any, Dict, List, Optional

from jsonschema import Draft7Validator

from errors import ValidationError

CAMEL_TO_SNAKE = {
    'displayName': 'display_name',
    'roleType': 'role_type',
    'familyId': 'family_id',
    'avatarColor': 'avatar_color',
    'assignedToId': 'assigned_to_id',
    'dueDate': 'due_date',
    'pointsCost': 'points_cost',
    'isAvailable': 'is_available',
    'rewardId': 'reward_id',
    'userId': 'user_id',
    'pointsSpent': 'points_spent',
    'achievementId': 'achievement_id',
    'childId': 'child_id',
}

# Integer fields that may arrive as numeric strings from HTML forms
INTEGER_FIELDS = (
    'family_id', 'assigned_to_id', 'points', 'points_cost', 'reward_id',
    'user_id', 'points_spent', 'achievement_id', 'child_id',
)

NON_EMPTY_STRING = {'type': 'string', 'minLength': 1, 'maxLength': 255}
POSITIVE_INTEGER = {'type': 'integer', 'minimum': 1}
ID = {'type': 'integer', 'minimum': 1}

LOGIN_SCHEMA = {
    'type': 'object',
    'properties': {
        'username': NON_EMPTY_STRING,
        'password': {'type': 'string', 'minLength': 1},
    },
    'required': ['username', 'password'],
}

FAMILY_CREATE_SCHEMA = {
    'type': 'object',
    'properties': {
        'name': NON_EMPTY_STRING,
    },
    'required': ['name'],
}

USER_CREATE_SCHEMA = {
    'type': 'object',
    'properties': {
        'username': {'type': 'string', 'minLength': 3, 'maxLength': 255},
        'password': {'type': 'string', 'minLength': 6},
        'display_name': NON_EMPTY_STRING,
        'role_type': {'type': 'string', 'enum': ['parent', 'child']},
        'family_id': ID,
        'avatar_color': NON_EMPTY_STRING,
    },
    'required': ['username', 'password', 'display_name', 'role_type', 'family_id'],
}

CHORE_CREATE_SCHEMA = {
    'type': 'object',
    'properties': {
        'name': NON_EMPTY_STRING,
        'description': {'type': ['string', 'null']},
        'points': POSITIVE_INTEGER,
        'icon': NON_EMPTY_STRING,
        'due_date': {'type': 'string', 'minLength': 1},
        'assigned_to_id': ID,
    },
    'required': ['name', 'points', 'due_date', 'assigned_to_id'],
}

REWARD_CREATE_SCHEMA = {
    'type': 'object',
    'properties': {
        'name': NON_EMPTY_STRING,
        'description': {'type': ['string', 'null']},
        'points_cost': POSITIVE_INTEGER,
        'icon': NON_EMPTY_STRING,
    },
    'required': ['name', 'points_cost'],
}

REWARD_UPDATE_SCHEMA = {
    'type': 'object',
    'properties': {
        'name': NON_EMPTY_STRING,
        'description': {'type': ['string', 'null']},
        'points_cost': POSITIVE_INTEGER,
        'icon': NON_EMPTY_STRING,
        'is_available': {'type': 'boolean'},
    },
    'minProperties': 1,
}

REDEMPTION_CREATE_SCHEMA = {
    'type': 'object',
    'properties': {
        'reward_id': ID,
        'user_id': ID,
        'points_spent': {'type': 'integer', 'minimum': 0},
    },
    'required': ['reward_id'],
}

AWARD_ACHIEVEMENT_SCHEMA = {
    'type': 'object',
    'properties': {
        'achievement_id': ID,
    },
    'required': ['achievement_id'],
}

EXTERNAL_COMPLETE_SCHEMA = {
    'type': 'object',
    'properties': {
        'child_id': ID,
    },
    'required': ['child_id'],
}


def normalize_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    """Map camelCase keys to snake_case and coerce id/points fields to int where lossless.

    Numeric strings and whole-number floats (JSON `5.0`) become ints. Anything
    else is left as sent for the schema to reject.
    """
    normalized = {}
    for key, value in data.items():
        key = CAMEL_TO_SNAKE.get(key, key)
        if key in INTEGER_FIELDS:
            value = _coerce_integer(value)
        normalized[key] = value
    return normalized


def _coerce_integer(value: Any) -> Any:
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _field_errors(validator: Draft7Validator, data: Any) -> List[dict]:
    errors = []
    missing = set()
    for error in sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path)):
        if error.validator == 'required' and isinstance(error.instance, dict):
            for field in error.validator_value:
                if field not in error.instance and field not in missing:
                    missing.add(field)
                    errors.append({'field': field, 'message': f'{field} is required'})
            continue

        field = '.'.join(str(part) for part in error.absolute_path) or '(body)'
        errors.append({'field': field, 'message': error.message})
    return errors


def validate_payload(data: Optional[Any], schema: dict) -> Dict[str, Any]:
    """
    Validate a request body against a JSON schema.

    Args:
        data: Parsed JSON body (may be None when the body is missing)
        schema: One of the schemas defined in this module

    Returns:
        The normalized payload

    Raises:
        ValidationError: With one entry per invalid or missing field
    """
    if data is None:
        raise ValidationError('Request body is required', [{'field': '(body)', 'message': 'Request body is required'}])
    if not isinstance(data, dict):
        raise ValidationError('Invalid request data', [{'field': '(body)', 'message': 'Request body must be a JSON object'}])

    payload = normalize_payload(data)
    errors = _field_errors(Draft7Validator(schema), payload)
    if errors:
        raise ValidationError('Invalid request data', errors)
    return payload


def parse_datetime(value: str, field: str) -> datetime:
    """
    Parse an ISO 8601 date or datetime into a naive UTC datetime.

    Accepts '2026-10-19', '2026-10-19T18:00:00', '2026-10-19T18:00:00Z' and
    offsets such as '+02:00'.
    """
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed_date = date.fromisoformat(text)
        except ValueError:
            raise ValidationError('Invalid request data', [
                {'field': field, 'message': f'{field} must be an ISO 8601 date or datetime'}
            ])
        parsed = datetime(parsed_date.year, parsed_date.month, parsed_date.day)

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
