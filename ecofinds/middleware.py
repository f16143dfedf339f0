from flask import g, jsonify, request
from flask_login import current_user
from werkzeug.exceptions import HTTPException
from ecofinds.errors import EcoFindsError, InternalError, Unauthenticated
from ecofinds.extensions import db, identity, login_manager
from ecofinds.services.identity_service import bearer_token
import logging
import re

logger = logging.getLogger(__name__)

# Exact paths that never require a token
LOGIN_WHITELIST = [
    '/api/auth/login',
    '/api/auth/register',
    '/api/messages/chatbot',
    '/api/health',
]

PUBLIC_USER_PATH = re.compile(r'^/api/users/(\d+(/public)?|search/.+)$')


def is_public_browse_path(path: str) -> bool:
    if path == '/api/products' or path.startswith('/api/products/'):
        return True
    if PUBLIC_USER_PATH.match(path):
        return True
    return False


def setup_auth_middleware(app):

    @login_manager.request_loader
    def load_user_from_request(req):
        token = bearer_token(req)
        if not token:
            g.auth_error = 'Access token required'
            return None
        try:
            return identity.resolve_caller(token)
        except Unauthenticated as e:
            g.auth_error = e.message
            return None

    @login_manager.unauthorized_handler
    def unauthorized():
        raise Unauthenticated(g.get('auth_error'))

    @app.before_request
    def require_login():
        path = request.path
        method = request.method.upper()

        if not path.startswith('/api/'):
            return None

        if path in LOGIN_WHITELIST:
            return None

        # Anonymous browsing for safe methods
        if method in ('GET', 'HEAD', 'OPTIONS') \
                and is_public_browse_path(path):
            return None

        if not current_user.is_authenticated:
            raise Unauthenticated(g.get('auth_error'))

        return None


def setup_error_handlers(app):

    @app.errorhandler(EcoFindsError)
    def handle_ecofinds_error(error):
        db.session.rollback()
        if error.status_code >= 500:
            logger.error(
                "%s on %s %s: %s",
                error.code, request.method, request.path, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        db.session.rollback()
        code = (error.name or 'HTTP_ERROR').upper().replace(' ', '_')
        return jsonify({
            'error': error.description or error.name,
            'code': code,
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        db.session.rollback()
        logger.error(
            "Unhandled error on %s %s",
            request.method,
            request.path,
            exc_info=error,
        )
        internal = InternalError()
        return jsonify(internal.to_dict()), internal.status_code
