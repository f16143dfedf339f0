"""
Error taxonomy for EcoFinds.

Services raise these; the handlers installed by
``ecofinds.middleware.setup_error_handlers`` turn them into
``{"error": <message>, "code": <code>}`` JSON responses.
"""


class EcoFindsError(Exception):
    """Base exception for EcoFinds errors."""

    code = 'INTERNAL_ERROR'
    status_code = 500
    default_message = 'Internal server error'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


class Unauthenticated(EcoFindsError):
    """Missing, malformed, expired or otherwise unusable credential."""

    code = 'UNAUTHENTICATED'
    status_code = 401
    default_message = 'Access token required'


class Forbidden(EcoFindsError):
    """Authenticated, but not the owner of the resource."""

    code = 'FORBIDDEN'
    status_code = 403
    default_message = 'Access denied'


class NotFound(EcoFindsError):
    """Resource absent, or hidden from the caller."""

    code = 'NOT_FOUND'
    status_code = 404
    default_message = 'Resource not found'


class InvalidArgument(EcoFindsError):
    """Malformed input: missing field, non-positive number, unknown enum."""

    code = 'INVALID_ARGUMENT'
    status_code = 400
    default_message = 'Invalid argument'


class Conflict(EcoFindsError):
    """Duplicate username or email."""

    code = 'CONFLICT'
    status_code = 400
    default_message = 'Resource already exists'


class InvalidOperation(EcoFindsError):
    """Well-formed request that the current state does not allow."""

    code = 'INVALID_OPERATION'
    status_code = 400
    default_message = 'Operation not allowed'


class EmptyCart(EcoFindsError):
    code = 'EMPTY_CART'
    status_code = 400
    default_message = 'Cart is empty'


class InternalError(EcoFindsError):
    pass
