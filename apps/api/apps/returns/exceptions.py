"""
Returns engine errors.

Input problems are django ValidationError (HTTP 400). The other kinds
map to 404 / 409 / 503 in the API layer via ``http_status``.
"""
from django.core.exceptions import ValidationError


class OverReturnError(ValidationError):
    """Raised when a line asks for more units than remain returnable."""

    def __init__(self, message, code='over_return', params=None):
        super().__init__(message, code=code, params=params)


class ReturnsError(Exception):
    """Base class for non-validation engine errors."""

    code = 'returns_error'
    http_status = 500
    default_message = 'Return operation failed.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(ReturnsError):
    """Referenced return, product, counterparty or transaction is outside the tenant."""

    code = 'not_found'
    http_status = 404
    default_message = 'Not found.'


class AlreadyDecidedError(ReturnsError):
    """Approve/reject/delete attempted on a return that is no longer pending."""

    code = 'already_decided'
    http_status = 409

    def __init__(self, current_status, message=None):
        self.current_status = current_status
        super().__init__(message or f'Return has already been {current_status}.')


class InvalidTransitionError(ReturnsError):
    """Status change not allowed from the current status."""

    code = 'invalid_transition'
    http_status = 409

    def __init__(self, current_status, target_status, message=None):
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            message or f'Cannot move from {current_status} to {target_status}.'
        )


class StorageError(ReturnsError):
    """
    The transaction could not commit. Safe to retry with the same request.

    The driver message is kept on ``__cause__`` only, never in ``message``.
    """

    code = 'storage_error'
    http_status = 503
    default_message = 'The operation could not be saved. Please retry.'
