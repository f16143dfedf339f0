from flask import Blueprint, jsonify
from flask_login import login_required, current_user
from sqlalchemy import case, func, or_
from ecofinds.errors import NotFound
from ecofinds.extensions import db
from ecofinds.models import (
    Category,
    Order,
    OrderStatus,
    Product,
    ProductStatus,
    User,
)
from ecofinds.utils import isoformat, page_args, paginate_query, to_money
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('users', __name__)


def _get_user_or_404(user_id):
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound('User not found')
    return user


def _count_when(condition):
    return func.count(case((condition, 1)))


@bp.route('/api/users/<int:user_id>', methods=['GET'])
def get_user(user_id):
    user = _get_user_or_404(user_id)

    product_count = Product.query.filter_by(
        seller_id=user.id,
        status=ProductStatus.ACTIVE
    ).count()
    order_count = Order.query.filter_by(buyer_id=user.id).count()

    return jsonify({
        'user': {
            'id': user.id,
            'username': user.username,
            'email': user.email,
            'created_at': isoformat(user.created_at),
            'productCount': product_count,
            'orderCount': order_count,
        }
    })


@bp.route('/api/users/<int:user_id>/public', methods=['GET'])
def get_public_profile(user_id):
    user = _get_user_or_404(user_id)

    rows = db.session.query(Product, Category.name).join(
        Category, Product.category_id == Category.id
    ).filter(
        Product.seller_id == user.id,
        Product.status == ProductStatus.ACTIVE
    ).order_by(Product.created_at.desc(), Product.id.desc()).limit(6).all()

    products = [{
        'id': p.id,
        'title': p.title,
        'price': to_money(p.price),
        'image_url': p.image_url,
        'created_at': isoformat(p.created_at),
        'category_name': category_name,
    } for p, category_name in rows]

    return jsonify({
        'user': {
            'id': user.id,
            'username': user.username,
            'memberSince': isoformat(user.created_at),
        },
        'products': products,
        'stats': {
            'totalProducts': len(products),
        },
    })


@bp.route('/api/users/search/<username>', methods=['GET'])
def search_users(username):
    page, per_page = page_args(10)

    product_count = func.count(Product.id).label('product_count')
    query = db.session.query(User, product_count).outerjoin(
        Product,
        (Product.seller_id == User.id)
        & (Product.status == ProductStatus.ACTIVE)
    ).filter(
        User.username.ilike(f'%{username}%')
    ).group_by(User.id).order_by(User.username.asc())

    result = paginate_query(query, page=page, per_page=per_page)

    return jsonify({
        'users': [{
            'id': user.id,
            'username': user.username,
            'created_at': isoformat(user.created_at),
            'product_count': count,
        } for user, count in result['items']],
        'pagination': result['pagination'],
    })


@bp.route('/api/users/dashboard/stats', methods=['GET'])
@login_required
def dashboard_stats():
    user_id = current_user.id

    total_products, active_products, sold_products = db.session.query(
        func.count(Product.id),
        _count_when(Product.status == ProductStatus.ACTIVE),
        _count_when(Product.status == ProductStatus.SOLD),
    ).filter(Product.seller_id == user_id).one()

    total_orders, completed_orders, total_spent = db.session.query(
        func.count(Order.id),
        _count_when(Order.status == OrderStatus.DELIVERED),
        func.sum(Order.total_price),
    ).filter(Order.buyer_id == user_id).one()

    total_sales, completed_sales, total_earned = db.session.query(
        func.count(Order.id),
        _count_when(Order.status == OrderStatus.DELIVERED),
        func.sum(Order.total_price),
    ).filter(Order.seller_id == user_id).one()

    recent_products = Product.query.filter_by(seller_id=user_id).order_by(
        Product.created_at.desc(), Product.id.desc()).limit(5).all()

    recent_orders = db.session.query(Order, Product.title).join(
        Product, Order.product_id == Product.id
    ).filter(
        or_(Order.buyer_id == user_id, Order.seller_id == user_id)
    ).order_by(Order.created_at.desc(), Order.id.desc()).limit(5).all()

    return jsonify({
        'productStats': {
            'total_products': total_products,
            'active_products': active_products,
            'sold_products': sold_products,
        },
        'buyerStats': {
            'total_orders': total_orders,
            'completed_orders': completed_orders,
            'total_spent': to_money(total_spent),
        },
        'sellerStats': {
            'total_sales': total_sales,
            'completed_sales': completed_sales,
            'total_earned': to_money(total_earned),
        },
        'recentActivity': {
            'products': [{
                'id': p.id,
                'title': p.title,
                'price': to_money(p.price),
                'status': p.status.value,
                'created_at': isoformat(p.created_at),
            } for p in recent_products],
            'orders': [{
                'id': o.id,
                'status': o.status.value,
                'total_price': to_money(o.total_price),
                'created_at': isoformat(o.created_at),
                'product_title': title,
            } for o, title in recent_orders],
        },
    })
