"""Error taxonomy for ChoreQuest.

Services raise these typed errors; the HTTP layer renders every one of them
through a single error handler (see app.register_error_handlers) so no
endpoint invents its own error shape.
"""

from typing import Optional


class ChoreQuestError(Exception):
    """Base exception for all domain and gate errors."""

    status_code = 500
    error_name = 'InternalError'

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[dict] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Serialize the error to the common response payload."""
        return {
            'error': self.error_name,
            'message': self.message,
            'details': self.details
        }


class ValidationError(ChoreQuestError):
    """Malformed or missing input. Carries a list of field errors."""

    status_code = 400
    error_name = 'ValidationError'

    def __init__(self, message: str, field_errors: Optional[list] = None):
        super().__init__(message, details={'fields': field_errors or []})
        self.field_errors = field_errors or []


class AuthenticationError(ChoreQuestError):
    status_code = 401
    error_name = 'AuthenticationError'


class AuthorizationError(ChoreQuestError):
    status_code = 403
    error_name = 'AuthorizationError'


class CrossFamilyError(AuthorizationError):
    """Resource belongs to another family. Never reveals whether it exists."""

    def __init__(self, message: str = 'Access denied: you can only access data from your own family'):
        super().__init__(message)


class NotFoundError(ChoreQuestError):
    status_code = 404
    error_name = 'NotFoundError'


class BusinessRuleError(ChoreQuestError):
    status_code = 400
    error_name = 'BusinessRuleError'


class InsufficientPointsError(BusinessRuleError):
    def __init__(self, required: int, current: int):
        super().__init__(
            'Not enough points',
            details={'required': required, 'current': current}
        )


class AlreadyCompletedError(BusinessRuleError):
    def __init__(self, chore_id: int):
        super().__init__(f'Chore {chore_id} is already completed')


class ConflictError(ChoreQuestError):
    """Unique key already taken (e.g. username)."""

    status_code = 409
    error_name = 'ConflictError'


class InternalError(ChoreQuestError):
    status_code = 500
    error_name = 'InternalError'
