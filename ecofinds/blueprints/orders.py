from flask import Blueprint, current_app, jsonify
from flask_login import login_required, current_user
from ecofinds.errors import InvalidArgument
from ecofinds.services import order_service
from ecofinds.services.audit_service import log_audit
from ecofinds.utils import get_json_body, page_args
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('orders', __name__)


def _orders_page_args():
    return page_args(current_app.config.get('ORDERS_PER_PAGE', 10))


@bp.route('/api/orders', methods=['POST'])
@login_required
def create_order():
    data = get_json_body()
    product_id = data.get('product_id')
    if product_id in (None, ''):
        raise InvalidArgument('Product ID is required')

    order = order_service.create_order(
        current_user, product_id, data.get('quantity', 1))

    log_audit(
        actor_id=current_user.id,
        action='ORDER_CREATE',
        target_type='ORDER',
        target_id=order.id,
        payload={
            'product_id': order.product_id,
            'quantity': order.quantity,
            'total_price': str(order.total_price),
        }
    )

    return jsonify({
        'message': 'Order created successfully',
        'order': order_service.serialize_order(order),
    }), 201


@bp.route('/api/orders/purchases', methods=['GET'])
@login_required
def list_purchases():
    page, per_page = _orders_page_args()
    return jsonify(order_service.list_for_buyer(
        current_user, page=page, per_page=per_page))


@bp.route('/api/orders/sales', methods=['GET'])
@login_required
def list_sales():
    page, per_page = _orders_page_args()
    return jsonify(order_service.list_for_seller(
        current_user, page=page, per_page=per_page))


@bp.route('/api/orders/<int:order_id>', methods=['GET'])
@login_required
def get_order(order_id):
    order = order_service.get_by_id(current_user, order_id)
    return jsonify({'order': order_service.serialize_order(order)})


@bp.route('/api/orders/<int:order_id>/status', methods=['PUT'])
@login_required
def update_order_status(order_id):
    data = get_json_body()
    order = order_service.update_status(
        current_user, order_id, data.get('status'))

    log_audit(
        actor_id=current_user.id,
        action='ORDER_STATUS_UPDATE',
        target_type='ORDER',
        target_id=order.id,
        payload={'status': order.status.value}
    )

    return jsonify({
        'message': 'Order status updated successfully',
        'order': order_service.serialize_order(order),
    })
