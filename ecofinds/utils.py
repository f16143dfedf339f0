from decimal import Decimal, ROUND_HALF_UP
from functools import wraps
from flask import current_app, request
from flask_login import current_user
from ecofinds.errors import InvalidArgument
from ecofinds.extensions import identity
from ecofinds.services.identity_service import bearer_token
import logging

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


def ownership_required(kind, id_param='id'):
    """Route decorator: load the resource named by ``id_param`` and require
    the current user to own it. The loaded object is passed as ``resource``.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            resource_id = kwargs.get(id_param)
            if resource_id is None:
                raise InvalidArgument('Resource ID missing')

            caller = current_user if current_user.is_authenticated else None
            kwargs['resource'] = identity.authorize_ownership(
                kind, resource_id, caller)
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def get_json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidArgument('Request body must be a JSON object')
    return data


def parse_int(value, field):
    if isinstance(value, bool):
        raise InvalidArgument(f'{field} must be an integer')
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidArgument(f'{field} must be an integer')
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidArgument(f'{field} must be an integer')


def parse_str(value, field, strip=True):
    """Optional text field; None becomes ''."""
    if value is None:
        return ''
    if not isinstance(value, str):
        raise InvalidArgument(f'{field} must be a string')
    return value.strip() if strip else value


def parse_price(value):
    if isinstance(value, bool) or value is None:
        raise InvalidArgument('Price must be a number')
    try:
        price = Decimal(str(value))
    except ArithmeticError:
        raise InvalidArgument('Price must be a number')
    if not price.is_finite():
        raise InvalidArgument('Price must be a number')
    if price <= 0:
        raise InvalidArgument('Price must be greater than 0')
    return price.quantize(CENT, rounding=ROUND_HALF_UP)


def to_money(value):
    if value is None:
        return 0.0
    return float(Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


def isoformat(value):
    return value.isoformat() if value else None


def user_summary(user):
    return {
        'id': user.id,
        'username': user.username,
        'email': user.email,
    }


def page_args(default_per_page=None):
    default_per_page = (
        default_per_page or current_app.config.get('ITEMS_PER_PAGE', 12)
    )
    max_per_page = current_app.config.get('MAX_PER_PAGE', 50)
    page = max(1, request.args.get('page', 1, type=int))
    per_page = request.args.get('limit', default_per_page, type=int)
    if per_page < 1:
        per_page = default_per_page
    if per_page > max_per_page:
        per_page = max_per_page
    return page, per_page


def paginate_query(query, page=1, per_page=20):
    pagination = query.paginate(
        page=page,
        per_page=per_page,
        error_out=False
    )
    return {
        'items': pagination.items,
        'pagination': {
            'page': pagination.page,
            'limit': pagination.per_page,
            'total': pagination.total,
            'pages': pagination.pages,
        },
    }


def optional_caller():
    """The user named by the request's bearer token, or None."""
    return identity.resolve_caller_optional(bearer_token(request))
