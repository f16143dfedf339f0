"""
Identity & access for EcoFinds.

Issues and verifies bearer tokens (HS256 JWTs), resolves the acting user
from storage on every call, and checks ownership of the resources a user
may mutate.
"""
from datetime import datetime, timedelta, timezone
import enum
import logging

import jwt

from ecofinds.errors import Forbidden, NotFound, Unauthenticated

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_LIFETIME = timedelta(days=7)


class OwnedResource(enum.Enum):
    """Resource kinds that carry an owning user, and the field holding it."""

    PRODUCT = ('Product', 'seller_id')
    ORDER = ('Order', 'seller_id')
    CART_ITEM = ('CartItem', 'user_id')
    MESSAGE = ('Message', 'sender_id')

    @property
    def model(self):
        from ecofinds import models
        return getattr(models, self.value[0])

    @property
    def owner_field(self):
        return self.value[1]

    @property
    def label(self):
        return self.name.replace('_', ' ').capitalize()


def bearer_token(request):
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    header = request.headers.get('Authorization', '') or ''
    parts = header.split(None, 1)
    if len(parts) != 2 or parts[0].lower() != 'bearer':
        return None
    return parts[1].strip() or None


class IdentityService:
    """Token issuing and caller resolution.

    Configuration is explicit: pass ``secret_key`` (and optionally
    ``algorithm`` / ``token_lifetime``) to the constructor, or call
    ``init_app`` to read ``JWT_SECRET_KEY``, ``JWT_ALGORITHM`` and
    ``TOKEN_EXPIRES_DAYS`` from a Flask app's config.
    """

    def __init__(self, secret_key=None, algorithm='HS256',
                 token_lifetime=DEFAULT_TOKEN_LIFETIME):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.token_lifetime = token_lifetime

    def init_app(self, app):
        self.secret_key = (
            app.config.get('JWT_SECRET_KEY') or app.config['SECRET_KEY']
        )
        self.algorithm = app.config.get('JWT_ALGORITHM', self.algorithm)
        days = app.config.get('TOKEN_EXPIRES_DAYS')
        if days is not None:
            self.token_lifetime = timedelta(days=int(days))
        app.extensions['ecofinds_identity'] = self

    def _require_secret(self):
        if not self.secret_key:
            raise RuntimeError('IdentityService has no signing key configured')
        return self.secret_key

    def issue_credential(self, user_id, now=None):
        now = now or datetime.now(timezone.utc)
        payload = {
            'user_id': int(user_id),
            'iat': now,
            'exp': now + self.token_lifetime,
        }
        return jwt.encode(
            payload, self._require_secret(), algorithm=self.algorithm)

    def _decode(self, token):
        if not token:
            raise Unauthenticated('Access token required')
        try:
            payload = jwt.decode(
                token,
                self._require_secret(),
                algorithms=[self.algorithm],
                options={'require': ['exp', 'user_id']},
            )
        except jwt.ExpiredSignatureError:
            raise Unauthenticated('Token expired')
        except jwt.InvalidTokenError:
            raise Unauthenticated('Invalid token')
        except Exception:
            logger.exception("Token verification failed")
            raise Unauthenticated('Token verification failed')

        user_id = payload.get('user_id')
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise Unauthenticated('Invalid token')
        return user_id

    def resolve_caller(self, token):
        """Verify ``token`` and re-fetch the user it names.

        Raises ``Unauthenticated`` when the token is missing, malformed,
        expired, or names a user that no longer exists.
        """
        from ecofinds.extensions import db
        from ecofinds.models import User

        user_id = self._decode(token)
        user = db.session.get(User, user_id)
        if user is None:
            raise Unauthenticated('User not found')
        return user

    def resolve_caller_optional(self, token):
        """Like ``resolve_caller`` but returns None instead of raising."""
        if not token:
            return None
        try:
            return self.resolve_caller(token)
        except Unauthenticated:
            return None

    def authorize_ownership(self, kind, resource_id, caller):
        """Load a resource and check that ``caller`` owns it.

        NotFound wins over Forbidden: a missing id never reports an
        ownership failure.
        """
        from ecofinds.extensions import db

        resource = db.session.get(kind.model, resource_id)
        if resource is None:
            raise NotFound(f'{kind.label} not found')

        owner_id = getattr(resource, kind.owner_field)
        if caller is None or owner_id != caller.id:
            logger.warning(
                "User %s attempted to modify %s %s owned by %s",
                getattr(caller, 'id', None),
                kind.name,
                resource_id,
                owner_id,
            )
            raise Forbidden('Access denied')
        return resource
