"""
Unit tests for the cart and checkout service.
"""

from decimal import Decimal

import pytest
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError

from ecofinds.errors import EmptyCart, InvalidArgument, InvalidOperation, NotFound
from ecofinds.extensions import db
from ecofinds.models import CartItem, Order, OrderStatus, Product, ProductStatus
from ecofinds.services import cart_service
from tests.conftest import make_category, make_user


@pytest.fixture
def people(app_ctx):
    seller = make_user('seller')
    buyer = make_user('buyer')
    category = make_category()
    return seller, buyer, category


def make_product(seller, category, price='10.00', title='Lamp',
                 status=ProductStatus.ACTIVE):
    product = Product(
        seller_id=seller.id,
        category_id=category.id,
        title=title,
        description=f'{title} description',
        price=Decimal(price),
        status=status
    )
    db.session.add(product)
    db.session.commit()
    return product


def cart_rows(user):
    return CartItem.query.filter_by(user_id=user.id).all()


class TestAddItem:
    """Tests for adding products to a cart."""

    def test_add_creates_row(self, people):
        seller, buyer, category = people
        product = make_product(seller, category)

        item = cart_service.add_item(buyer, product.id, 2)

        assert item.quantity == 2
        assert len(cart_rows(buyer)) == 1

    def test_repeated_add_merges_quantity(self, people):
        seller, buyer, category = people
        product = make_product(seller, category)

        cart_service.add_item(buyer, product.id, 2)
        item = cart_service.add_item(buyer, product.id, 3)

        assert item.quantity == 5
        assert len(cart_rows(buyer)) == 1

    def test_default_quantity_is_one(self, people):
        seller, buyer, category = people
        product = make_product(seller, category)

        assert cart_service.add_item(buyer, product.id).quantity == 1

    def test_own_product_is_rejected(self, people):
        seller, _, category = people
        product = make_product(seller, category)

        with pytest.raises(InvalidOperation):
            cart_service.add_item(seller, product.id, 1)
        assert cart_rows(seller) == []

    @pytest.mark.parametrize(
        'status', [ProductStatus.SOLD, ProductStatus.INACTIVE])
    def test_unavailable_product_is_not_found(self, people, status):
        seller, buyer, category = people
        product = make_product(seller, category, status=status)

        with pytest.raises(NotFound):
            cart_service.add_item(buyer, product.id, 1)

    def test_missing_product_is_not_found(self, people):
        _, buyer, _ = people
        with pytest.raises(NotFound):
            cart_service.add_item(buyer, 12345, 1)

    @pytest.mark.parametrize('quantity', [0, -1, 'abc', 1.5])
    def test_bad_quantity_is_rejected(self, people, quantity):
        seller, buyer, category = people
        product = make_product(seller, category)

        with pytest.raises(InvalidArgument):
            cart_service.add_item(buyer, product.id, quantity)
        assert cart_rows(buyer) == []


class TestEditCart:
    """Tests for set_quantity / remove_item / clear."""

    def test_set_quantity_overwrites(self, people):
        seller, buyer, category = people
        product = make_product(seller, category)
        cart_service.add_item(buyer, product.id, 4)

        item = cart_service.set_quantity(buyer, product.id, 1)

        assert item.quantity == 1

    @pytest.mark.parametrize('quantity', [0, -3])
    def test_set_quantity_non_positive_leaves_row(self, people, quantity):
        seller, buyer, category = people
        product = make_product(seller, category)
        cart_service.add_item(buyer, product.id, 2)

        with pytest.raises(InvalidArgument):
            cart_service.set_quantity(buyer, product.id, quantity)

        rows = cart_rows(buyer)
        assert len(rows) == 1
        assert rows[0].quantity == 2

    def test_set_quantity_missing_row(self, people):
        seller, buyer, category = people
        product = make_product(seller, category)

        with pytest.raises(NotFound):
            cart_service.set_quantity(buyer, product.id, 1)

    def test_remove_item(self, people):
        seller, buyer, category = people
        product = make_product(seller, category)
        cart_service.add_item(buyer, product.id, 1)

        cart_service.remove_item(buyer, product.id)

        assert cart_rows(buyer) == []
        with pytest.raises(NotFound):
            cart_service.remove_item(buyer, product.id)

    def test_clear_is_idempotent(self, people):
        seller, buyer, category = people
        cart_service.add_item(buyer, make_product(seller, category).id, 1)

        assert cart_service.clear(buyer) == 1
        assert cart_service.clear(buyer) == 0


class TestView:
    """Tests for the cart view."""

    def test_total_uses_current_price(self, people):
        seller, buyer, category = people
        product = make_product(seller, category, price='10.00')
        cart_service.add_item(buyer, product.id, 3)

        assert cart_service.view(buyer)['total'] == 30.0

        product.price = Decimal('12.50')
        db.session.commit()

        view = cart_service.view(buyer)
        assert view['total'] == 37.5
        item = view['cartItems'][0]
        assert item['seller_name'] == 'seller'
        assert item['category_name'] == category.name
        assert item['quantity'] == 3


class TestCheckout:
    """Tests for turning a cart into orders."""

    def test_all_valid_items_become_orders(self, people):
        seller, buyer, category = people
        lamp = make_product(seller, category, price='10.00', title='Lamp')
        desk = make_product(seller, category, price='25.50', title='Desk')
        cart_service.add_item(buyer, lamp.id, 3)
        cart_service.add_item(buyer, desk.id, 2)

        result = cart_service.checkout(buyer)

        assert len(result['orders']) == 2
        assert result['errors'] == []
        totals = {o['product_title']: o['total_price']
                  for o in result['orders']}
        assert totals == {'Lamp': 30.0, 'Desk': 51.0}
        assert all(o['status'] == 'pending' for o in result['orders'])
        assert cart_rows(buyer) == []

    def test_empty_cart_raises(self, people):
        _, buyer, _ = people
        with pytest.raises(EmptyCart):
            cart_service.checkout(buyer)
        assert Order.query.count() == 0

    def test_only_inactive_items_raises_and_keeps_cart(self, people):
        seller, buyer, category = people
        product = make_product(seller, category)
        cart_service.add_item(buyer, product.id, 1)
        product.status = ProductStatus.SOLD
        db.session.commit()

        with pytest.raises(EmptyCart):
            cart_service.checkout(buyer)
        assert len(cart_rows(buyer)) == 1
        assert Order.query.count() == 0

    def test_self_owned_item_is_reported_and_cleared(self, people):
        seller, buyer, category = people
        own = make_product(buyer, category, title='Own Chair')
        other = make_product(seller, category, title='Kettle')
        # add_item refuses self-owned products, so seed the row directly.
        db.session.add(CartItem(user_id=buyer.id, product_id=own.id,
                                quantity=1))
        db.session.commit()
        cart_service.add_item(buyer, other.id, 1)

        result = cart_service.checkout(buyer)

        assert [o['product_title'] for o in result['orders']] == ['Kettle']
        assert result['errors'] == [
            'Cannot buy your own product: Own Chair']
        assert cart_rows(buyer) == []

    def test_inactive_items_are_skipped_and_kept(self, people):
        seller, buyer, category = people
        active = make_product(seller, category, title='Active')
        stale = make_product(seller, category, title='Stale')
        cart_service.add_item(buyer, active.id, 1)
        cart_service.add_item(buyer, stale.id, 1)
        stale.status = ProductStatus.INACTIVE
        db.session.commit()

        result = cart_service.checkout(buyer)

        assert len(result['orders']) == 1
        assert result['errors'] == []
        remaining = cart_rows(buyer)
        assert [r.product_id for r in remaining] == [stale.id]

    def test_order_total_frozen_after_price_change(self, people):
        seller, buyer, category = people
        product = make_product(seller, category, price='10.00')
        cart_service.add_item(buyer, product.id, 3)
        order_id = cart_service.checkout(buyer)['orders'][0]['order_id']

        product.price = Decimal('99.00')
        db.session.commit()

        order = db.session.get(Order, order_id)
        assert order.total_price == Decimal('30.00')
        assert order.status == OrderStatus.PENDING
        with pytest.raises(ValueError):
            order.total_price = Decimal('1.00')

    def test_failed_item_is_reported_and_rest_checked_out(self, people):
        seller, buyer, category = people
        lamp = make_product(seller, category, title='Lamp')
        broken = make_product(seller, category, title='Broken Vase')
        desk = make_product(seller, category, title='Desk')
        broken_id = broken.id
        for product in (lamp, broken, desk):
            cart_service.add_item(buyer, product.id, 1)

        def reject_broken(mapper, connection, target):
            if target.product_id == broken_id:
                raise SQLAlchemyError('insert rejected')

        event.listen(Order, 'before_insert', reject_broken)
        try:
            result = cart_service.checkout(buyer)
        finally:
            event.remove(Order, 'before_insert', reject_broken)

        assert [o['product_title'] for o in result['orders']] == [
            'Lamp', 'Desk']
        assert result['errors'] == [
            'Failed to create order for Broken Vase']
        assert Order.query.count() == 2
        assert cart_rows(buyer) == []

    def test_failed_commit_leaves_no_orders(self, people, monkeypatch):
        seller, buyer, category = people
        lamp = make_product(seller, category, title='Lamp')
        desk = make_product(seller, category, title='Desk')
        cart_service.add_item(buyer, lamp.id, 1)
        cart_service.add_item(buyer, desk.id, 2)

        def failing_commit():
            raise SQLAlchemyError('commit failed')

        monkeypatch.setattr(db.session, 'commit', failing_commit)
        with pytest.raises(SQLAlchemyError):
            cart_service.checkout(buyer)
        monkeypatch.undo()
        db.session.rollback()

        assert Order.query.count() == 0
        assert len(cart_rows(buyer)) == 2
