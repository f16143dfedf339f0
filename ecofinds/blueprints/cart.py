from flask import Blueprint, jsonify
from flask_login import login_required, current_user
from ecofinds.errors import InvalidArgument
from ecofinds.services import cart_service
from ecofinds.services.audit_service import log_audit
from ecofinds.utils import get_json_body, isoformat
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('cart', __name__)


def _cart_item_payload(item):
    return {
        'id': item.id,
        'product_id': item.product_id,
        'quantity': item.quantity,
        'created_at': isoformat(item.created_at),
    }


@bp.route('/api/cart', methods=['GET'])
@login_required
def get_cart():
    return jsonify(cart_service.view(current_user))


@bp.route('/api/cart/add', methods=['POST'])
@login_required
def add_cart_item():
    data = get_json_body()
    product_id = data.get('product_id')
    quantity = data.get('quantity', 1)

    if product_id in (None, ''):
        raise InvalidArgument('Product ID is required')

    item = cart_service.add_item(current_user, product_id, quantity)
    return jsonify({
        'message': 'Item added to cart',
        'cartItem': _cart_item_payload(item),
    })


@bp.route('/api/cart/<int:product_id>', methods=['PUT'])
@login_required
def update_cart_item(product_id):
    data = get_json_body()
    quantity = data.get('quantity')
    if quantity is None:
        raise InvalidArgument('Quantity is required')

    item = cart_service.set_quantity(current_user, product_id, quantity)
    return jsonify({
        'message': 'Cart updated successfully',
        'cartItem': _cart_item_payload(item),
    })


@bp.route('/api/cart/<int:product_id>', methods=['DELETE'])
@login_required
def remove_cart_item(product_id):
    cart_service.remove_item(current_user, product_id)
    return jsonify({'message': 'Item removed from cart'})


@bp.route('/api/cart', methods=['DELETE'])
@login_required
def clear_cart():
    removed = cart_service.clear(current_user)
    return jsonify({'message': 'Cart cleared successfully', 'removed': removed})


@bp.route('/api/cart/checkout', methods=['POST'])
@login_required
def checkout():
    result = cart_service.checkout(current_user)
    orders = result['orders']

    log_audit(
        actor_id=current_user.id,
        action='ORDER_CHECKOUT',
        target_type='ORDER',
        target_id=orders[0]['order_id'] if orders else None,
        payload={
            'order_ids': [o['order_id'] for o in orders],
            'errors': result['errors'],
        }
    )

    payload = {
        'message': f'Checkout completed. {len(orders)} orders created.',
        'orders': orders,
    }
    if result['errors']:
        payload['errors'] = result['errors']
    return jsonify(payload)
