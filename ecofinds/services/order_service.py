"""
Order lifecycle: single-item purchase, seller-driven status changes and
buyer/seller listings.

Statuses form a flat set; any of them may be set by the seller at any
time.
"""
from datetime import datetime
from decimal import Decimal
import logging

from sqlalchemy import or_
from sqlalchemy.orm import aliased

from ecofinds.errors import InvalidArgument, InvalidOperation, NotFound
from ecofinds.extensions import db, identity
from ecofinds.models import Order, OrderStatus, Product, ProductStatus, User
from ecofinds.services.identity_service import OwnedResource
from ecofinds.utils import (
    CENT,
    isoformat,
    paginate_query,
    parse_int,
    to_money,
)

logger = logging.getLogger(__name__)

VALID_STATUSES = [s.value for s in OrderStatus]


def parse_status(value):
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidArgument(
            'Invalid status. Must be one of: ' + ', '.join(VALID_STATUSES))


def serialize_order(order, product=None, buyer=None, seller=None):
    product = product or order.product
    buyer = buyer or order.buyer
    seller = seller or order.seller
    return {
        'id': order.id,
        'buyer_id': order.buyer_id,
        'seller_id': order.seller_id,
        'product_id': order.product_id,
        'quantity': order.quantity,
        'total_price': to_money(order.total_price),
        'status': order.status.value,
        'created_at': isoformat(order.created_at),
        'updated_at': isoformat(order.updated_at),
        'product_title': product.title,
        'product_description': product.description,
        'product_price': to_money(product.price),
        'product_image': product.image_url,
        'buyer_name': buyer.username,
        'buyer_email': buyer.email,
        'seller_name': seller.username,
        'seller_email': seller.email,
    }


def create_order(buyer, product_id, quantity=1):
    """Buy a single product now, bypassing the cart.

    ``total_price`` is frozen from the product's current price.
    """
    quantity = parse_int(quantity, 'Quantity')
    if quantity <= 0:
        raise InvalidArgument('Quantity must be greater than 0')

    product = Product.query.filter_by(
        id=product_id,
        status=ProductStatus.ACTIVE
    ).first()
    if not product:
        raise NotFound('Product not found or not available')

    if product.seller_id == buyer.id:
        raise InvalidOperation('You cannot buy your own product')

    order = Order(
        buyer_id=buyer.id,
        seller_id=product.seller_id,
        product_id=product.id,
        quantity=quantity,
        total_price=(Decimal(product.price) * quantity).quantize(CENT),
        status=OrderStatus.PENDING
    )
    db.session.add(order)
    db.session.commit()

    logger.info(
        "Order %s created: buyer=%s seller=%s product=%s qty=%s",
        order.id, buyer.id, product.seller_id, product.id, quantity)
    return order


def update_status(caller, order_id, new_status):
    """Seller-only status change. Checks run NotFound, Forbidden, then
    status validity."""
    order = identity.authorize_ownership(OwnedResource.ORDER, order_id, caller)
    status = parse_status(new_status)

    previous = order.status
    order.status = status
    order.updated_at = datetime.utcnow()
    db.session.commit()

    logger.info(
        "Order %s status %s -> %s by seller %s",
        order.id, previous.value, status.value, caller.id)
    return order


def get_by_id(caller, order_id):
    """Visible to the order's buyer and seller only; everyone else gets
    NotFound."""
    order = Order.query.filter(
        Order.id == order_id,
        or_(Order.buyer_id == caller.id, Order.seller_id == caller.id)
    ).first()
    if not order:
        raise NotFound('Order not found')
    return order


def _list_orders(party_column, counterparty_column, user_id, page, per_page,
                 counterparty_role):
    counterparty = aliased(User)
    query = db.session.query(Order, Product, counterparty).join(
        Product, Order.product_id == Product.id
    ).join(
        counterparty, counterparty_column == counterparty.id
    ).filter(
        party_column == user_id
    ).order_by(Order.created_at.desc(), Order.id.desc())

    result = paginate_query(query, page=page, per_page=per_page)

    orders = []
    for order, product, other in result['items']:
        orders.append({
            'id': order.id,
            'buyer_id': order.buyer_id,
            'seller_id': order.seller_id,
            'product_id': order.product_id,
            'quantity': order.quantity,
            'total_price': to_money(order.total_price),
            'status': order.status.value,
            'created_at': isoformat(order.created_at),
            'updated_at': isoformat(order.updated_at),
            'product_title': product.title,
            'product_description': product.description,
            'product_image': product.image_url,
            f'{counterparty_role}_name': other.username,
            f'{counterparty_role}_email': other.email,
        })
    return {'orders': orders, 'pagination': result['pagination']}


def list_for_buyer(buyer, page=1, per_page=10):
    """Purchases, newest first, with the seller's contact details."""
    return _list_orders(
        Order.buyer_id, Order.seller_id, buyer.id, page, per_page, 'seller')


def list_for_seller(seller, page=1, per_page=10):
    """Sales, newest first, with the buyer's contact details."""
    return _list_orders(
        Order.seller_id, Order.buyer_id, seller.id, page, per_page, 'buyer')
