"""
Unit tests for the order lifecycle service.
"""

from decimal import Decimal

import pytest

from ecofinds.errors import (
    Forbidden,
    InvalidArgument,
    InvalidOperation,
    NotFound,
)
from ecofinds.extensions import db
from ecofinds.models import OrderStatus, Product, ProductStatus
from ecofinds.services import order_service
from tests.conftest import make_category, make_user


@pytest.fixture
def listing(app_ctx):
    seller = make_user('seller')
    buyer = make_user('buyer')
    category = make_category()
    product = Product(
        seller_id=seller.id,
        category_id=category.id,
        title='Bicycle',
        description='City bike, recently serviced',
        price=Decimal('80.00')
    )
    db.session.add(product)
    db.session.commit()
    return seller, buyer, product


class TestCreateOrder:

    def test_creates_pending_order_with_frozen_total(self, listing):
        seller, buyer, product = listing

        order = order_service.create_order(buyer, product.id, 2)

        assert order.status == OrderStatus.PENDING
        assert order.total_price == Decimal('160.00')
        assert order.seller_id == seller.id
        assert order.buyer_id == buyer.id

    def test_default_quantity(self, listing):
        _, buyer, product = listing
        assert order_service.create_order(buyer, product.id).quantity == 1

    def test_self_purchase_rejected(self, listing):
        seller, _, product = listing
        with pytest.raises(InvalidOperation):
            order_service.create_order(seller, product.id, 1)

    def test_unavailable_product(self, listing):
        _, buyer, product = listing
        product.status = ProductStatus.SOLD
        db.session.commit()

        with pytest.raises(NotFound):
            order_service.create_order(buyer, product.id, 1)

    def test_non_positive_quantity(self, listing):
        _, buyer, product = listing
        with pytest.raises(InvalidArgument):
            order_service.create_order(buyer, product.id, 0)


class TestUpdateStatus:

    def test_seller_can_set_any_status(self, listing):
        seller, buyer, product = listing
        order = order_service.create_order(buyer, product.id, 1)

        # No transition graph: pending may jump straight to delivered.
        updated = order_service.update_status(seller, order.id, 'delivered')
        assert updated.status == OrderStatus.DELIVERED

        updated = order_service.update_status(seller, order.id, 'pending')
        assert updated.status == OrderStatus.PENDING

    @pytest.mark.parametrize('status', order_service.VALID_STATUSES)
    def test_buyer_is_forbidden(self, listing, status):
        _, buyer, product = listing
        order = order_service.create_order(buyer, product.id, 1)

        with pytest.raises(Forbidden):
            order_service.update_status(buyer, order.id, status)

    def test_forbidden_wins_over_invalid_status(self, listing):
        _, buyer, product = listing
        order = order_service.create_order(buyer, product.id, 1)

        with pytest.raises(Forbidden):
            order_service.update_status(buyer, order.id, 'teleported')

    def test_invalid_status(self, listing):
        seller, buyer, product = listing
        order = order_service.create_order(buyer, product.id, 1)

        with pytest.raises(InvalidArgument):
            order_service.update_status(seller, order.id, 'teleported')

    def test_missing_order(self, listing):
        seller, _, _ = listing
        with pytest.raises(NotFound):
            order_service.update_status(seller, 4242, 'shipped')

    def test_total_price_unchanged_by_status_update(self, listing):
        seller, buyer, product = listing
        order = order_service.create_order(buyer, product.id, 1)
        product.price = Decimal('5.00')
        db.session.commit()

        updated = order_service.update_status(seller, order.id, 'shipped')

        assert updated.total_price == Decimal('80.00')


class TestReadOrders:

    def test_parties_can_read_order(self, listing):
        seller, buyer, product = listing
        order = order_service.create_order(buyer, product.id, 1)

        assert order_service.get_by_id(buyer, order.id).id == order.id
        assert order_service.get_by_id(seller, order.id).id == order.id

    def test_stranger_gets_not_found(self, listing):
        _, buyer, product = listing
        stranger = make_user('stranger')
        order = order_service.create_order(buyer, product.id, 1)

        with pytest.raises(NotFound):
            order_service.get_by_id(stranger, order.id)

    def test_purchase_and_sale_listings(self, listing):
        seller, buyer, product = listing
        first = order_service.create_order(buyer, product.id, 1)
        second = order_service.create_order(buyer, product.id, 2)

        purchases = order_service.list_for_buyer(buyer, page=1, per_page=10)
        sales = order_service.list_for_seller(seller, page=1, per_page=10)

        assert [o['id'] for o in purchases['orders']] == [second.id, first.id]
        assert purchases['orders'][0]['seller_name'] == 'seller'
        assert sales['orders'][0]['buyer_name'] == 'buyer'
        assert sales['pagination']['total'] == 2
        assert order_service.list_for_seller(
            buyer, page=1, per_page=10)['orders'] == []

    def test_listing_pagination(self, listing):
        _, buyer, product = listing
        for _ in range(3):
            order_service.create_order(buyer, product.id, 1)

        page = order_service.list_for_buyer(buyer, page=2, per_page=2)

        assert len(page['orders']) == 1
        assert page['pagination'] == {
            'page': 2, 'limit': 2, 'total': 3, 'pages': 2}
