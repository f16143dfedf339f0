"""
Cart & checkout.

A cart is the set of ``CartItem`` rows owned by a buyer. ``checkout``
turns the active ones into pending ``Order`` rows inside one transaction.
"""
from decimal import Decimal
import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import aliased

from ecofinds.errors import (
    EmptyCart,
    InvalidArgument,
    InvalidOperation,
    NotFound,
)
from ecofinds.extensions import db
from ecofinds.models import (
    CartItem,
    Category,
    Order,
    OrderStatus,
    Product,
    ProductStatus,
    User,
)
from ecofinds.utils import CENT, isoformat, parse_int, to_money

logger = logging.getLogger(__name__)


def _positive_quantity(quantity):
    quantity = parse_int(quantity, 'Quantity')
    if quantity <= 0:
        raise InvalidArgument('Quantity must be greater than 0')
    return quantity


def _increment(user_id, product_id, quantity):
    result = db.session.execute(
        update(CartItem)
        .where(
            CartItem.user_id == user_id,
            CartItem.product_id == product_id,
        )
        .values(quantity=CartItem.quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0


def _get_item(buyer, product_id):
    return CartItem.query.filter_by(
        user_id=buyer.id,
        product_id=product_id
    ).first()


def add_item(buyer, product_id, quantity=1):
    """Add ``quantity`` of a product to the buyer's cart.

    Re-adding a product accumulates quantity on the existing row.
    """
    quantity = _positive_quantity(quantity)

    product = Product.query.filter_by(
        id=product_id,
        status=ProductStatus.ACTIVE
    ).first()
    if not product:
        raise NotFound('Product not found or not available')

    if product.seller_id == buyer.id:
        raise InvalidOperation('You cannot add your own product to cart')

    # Conditional update first, insert only when no row exists yet.
    if not _increment(buyer.id, product.id, quantity):
        try:
            db.session.add(CartItem(
                user_id=buyer.id,
                product_id=product.id,
                quantity=quantity
            ))
            db.session.commit()
        except IntegrityError:
            # A concurrent add inserted the row first.
            db.session.rollback()
            logger.info(
                "Cart insert raced for user %s product %s, retrying as "
                "update", buyer.id, product.id)
            if not _increment(buyer.id, product.id, quantity):
                raise
            db.session.commit()
    else:
        db.session.commit()

    return _get_item(buyer, product.id)


def set_quantity(buyer, product_id, quantity):
    """Overwrite the quantity of an existing cart row.

    Zero or negative quantities are rejected, never treated as removal.
    """
    quantity = _positive_quantity(quantity)

    item = _get_item(buyer, product_id)
    if not item:
        raise NotFound('Item not found in cart')

    item.quantity = quantity
    db.session.commit()
    return item


def remove_item(buyer, product_id):
    item = _get_item(buyer, product_id)
    if not item:
        raise NotFound('Item not found in cart')

    db.session.delete(item)
    db.session.commit()


def clear(buyer):
    removed = CartItem.query.filter_by(user_id=buyer.id).delete()
    db.session.commit()
    return removed


def view(buyer):
    """Cart rows joined with current product data, plus the current total.

    The total uses today's prices, so a seller's price change shows up
    here before checkout.
    """
    seller = aliased(User)
    rows = db.session.query(CartItem, Product, Category, seller).join(
        Product, CartItem.product_id == Product.id
    ).join(
        Category, Product.category_id == Category.id
    ).join(
        seller, Product.seller_id == seller.id
    ).filter(
        CartItem.user_id == buyer.id
    ).order_by(CartItem.created_at.desc(), CartItem.id.desc()).all()

    items = []
    total = Decimal('0')
    for item, product, category, product_seller in rows:
        total += Decimal(product.price) * item.quantity
        items.append({
            'id': item.id,
            'user_id': item.user_id,
            'product_id': item.product_id,
            'quantity': item.quantity,
            'created_at': isoformat(item.created_at),
            'title': product.title,
            'description': product.description,
            'price': to_money(product.price),
            'image_url': product.image_url,
            'product_status': product.status.value,
            'category_name': category.name,
            'seller_id': product.seller_id,
            'seller_name': product_seller.username,
        })

    return {
        'cartItems': items,
        'total': to_money(total),
    }


def checkout(buyer):
    """Convert the buyer's active cart rows into pending orders.

    Rows whose product is no longer active are skipped silently and stay
    in the cart. Self-owned products are reported in ``errors`` and
    skipped. Each order insert runs in its own savepoint, so one failed
    item does not stop the rest. When at least one order is created, all
    checked-out rows (self-owned ones included) are removed from the cart
    in the same transaction. Nothing is persisted until the final commit.
    """
    rows = db.session.query(CartItem, Product).join(
        Product, CartItem.product_id == Product.id
    ).filter(
        CartItem.user_id == buyer.id,
        Product.status == ProductStatus.ACTIVE
    ).order_by(CartItem.created_at.asc(), CartItem.id.asc()).all()

    if not rows:
        raise EmptyCart('Cart is empty')

    created = []
    errors = []

    for item, product in rows:
        if product.seller_id == buyer.id:
            errors.append(f'Cannot buy your own product: {product.title}')
            continue

        total_price = (Decimal(product.price) * item.quantity).quantize(CENT)
        try:
            with db.session.begin_nested():
                order = Order(
                    buyer_id=buyer.id,
                    seller_id=product.seller_id,
                    product_id=product.id,
                    quantity=item.quantity,
                    total_price=total_price,
                    status=OrderStatus.PENDING
                )
                db.session.add(order)
        except SQLAlchemyError:
            logger.exception(
                "Checkout failed to create order for user %s product %s",
                buyer.id,
                product.id,
            )
            errors.append(f'Failed to create order for {product.title}')
            continue

        created.append((order, product))

    if created:
        checked_out_ids = [item.id for item, _ in rows]
        CartItem.query.filter(
            CartItem.user_id == buyer.id,
            CartItem.id.in_(checked_out_ids)
        ).delete(synchronize_session=False)

    db.session.commit()

    logger.info(
        "Checkout for user %s: %s orders created, %s errors",
        buyer.id,
        len(created),
        len(errors),
    )

    return {
        'orders': [{
            'order_id': order.id,
            'product_id': product.id,
            'product_title': product.title,
            'quantity': order.quantity,
            'total_price': to_money(order.total_price),
            'status': order.status.value,
        } for order, product in created],
        'errors': errors,
    }
