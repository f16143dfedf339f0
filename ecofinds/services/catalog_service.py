from ecofinds.errors import InvalidArgument, InvalidOperation, NotFound
from ecofinds.extensions import db
from ecofinds.models import (
    CartItem,
    Category,
    Order,
    Product,
    ProductStatus,
)
from ecofinds.utils import (
    isoformat,
    paginate_query,
    parse_int,
    parse_price,
    parse_str,
    to_money,
)
from sqlalchemy import or_
from datetime import datetime
import re
import logging

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    'created_at': Product.created_at,
    'price': Product.price,
    'title': Product.title,
}
SORT_ORDERS = ('ASC', 'DESC')


def _sanitize_query(query):
    if not query:
        return None
    q = str(query).replace('\x00', '').strip()
    if not q:
        return None
    q = re.sub(r'(--|/\*|\*/|;|["\'`\\#])', ' ', q)
    q = re.sub(r'\s+', ' ', q).strip()
    return q[:80] if len(q) > 80 else q


def parse_product_status(value):
    try:
        return ProductStatus(value)
    except ValueError:
        raise InvalidArgument(
            'Invalid status. Must be one of: '
            + ', '.join(s.value for s in ProductStatus))


def serialize_product(product, viewer=None):
    payload = {
        'id': product.id,
        'title': product.title,
        'description': product.description,
        'price': to_money(product.price),
        'category_id': product.category_id,
        'category_name': product.category.name,
        'seller_id': product.seller_id,
        'seller_name': product.seller.username,
        'seller_email': product.seller.email,
        'image_url': product.image_url,
        'status': product.status.value,
        'created_at': isoformat(product.created_at),
        'updated_at': isoformat(product.updated_at),
    }
    if viewer is not None:
        payload['is_owner'] = product.seller_id == viewer.id
    return payload


def search_products(
        query=None,
        category=None,
        sort_by='created_at',
        order='DESC',
        page=1,
        per_page=12):
    """Active products, optionally filtered by category name and a
    title/description substring."""
    base_query = Product.query.filter(
        Product.status == ProductStatus.ACTIVE
    ).join(Category, Product.category_id == Category.id)

    if category:
        base_query = base_query.filter(Category.name == category)

    query_safe = _sanitize_query(query)
    if query_safe:
        pattern = f'%{query_safe}%'
        base_query = base_query.filter(
            or_(
                Product.title.ilike(pattern),
                Product.description.ilike(pattern)
            )
        )

    direction = (order or '').upper()
    column = SORT_COLUMNS.get(sort_by)
    if column is None or direction not in SORT_ORDERS:
        column, direction = Product.created_at, 'DESC'
    ordering = column.asc() if direction == 'ASC' else column.desc()
    base_query = base_query.order_by(ordering, Product.id.desc())

    return paginate_query(base_query, page=page, per_page=per_page)


def get_active_product(product_id):
    product = Product.query.filter_by(
        id=product_id,
        status=ProductStatus.ACTIVE
    ).first()
    if not product:
        raise NotFound('Product not found')
    return product


def _require_category(category_id):
    category_id = parse_int(category_id, 'Category')
    category = db.session.get(Category, category_id)
    if not category:
        raise InvalidArgument('Invalid category')
    return category


def create_product(seller, data):
    title = parse_str(data.get('title'), 'Title')
    description = parse_str(data.get('description'), 'Description')
    price = data.get('price')
    category_id = data.get('category_id')

    if not title or not description or price in (None, '') \
            or category_id in (None, ''):
        raise InvalidArgument(
            'Title, description, price, and category are required')

    price = parse_price(price)
    category = _require_category(category_id)

    product = Product(
        seller_id=seller.id,
        category_id=category.id,
        title=title,
        description=description,
        price=price,
        image_url=parse_str(data.get('image_url'), 'Image URL') or None,
        status=ProductStatus.ACTIVE
    )
    db.session.add(product)
    db.session.commit()
    return product


def update_product(product, data):
    """Partial update of an already ownership-checked product."""
    changed = False

    if 'title' in data:
        title = parse_str(data['title'], 'Title')
        if not title:
            raise InvalidArgument('Title cannot be empty')
        product.title = title
        changed = True
    if 'description' in data:
        product.description = parse_str(data['description'], 'Description')
        changed = True
    if 'price' in data:
        product.price = parse_price(data['price'])
        changed = True
    if 'category_id' in data:
        product.category_id = _require_category(data['category_id']).id
        changed = True
    if 'image_url' in data:
        product.image_url = parse_str(data['image_url'], 'Image URL') or None
        changed = True
    if 'status' in data:
        product.status = parse_product_status(data['status'])
        changed = True

    if not changed:
        raise InvalidArgument('No updates provided')

    product.updated_at = datetime.utcnow()
    db.session.commit()
    return product


def delete_product(product):
    """Hard delete; refused while any order references the product."""
    if Order.query.filter_by(product_id=product.id).first():
        raise InvalidOperation(
            'Cannot delete product with existing orders. '
            'Mark as inactive instead.')

    CartItem.query.filter_by(product_id=product.id).delete()
    db.session.delete(product)
    db.session.commit()


def list_seller_products(user_id, page=1, per_page=12):
    query = Product.query.filter_by(seller_id=user_id).order_by(
        Product.created_at.desc(), Product.id.desc())
    return paginate_query(query, page=page, per_page=per_page)


def list_categories():
    return Category.query.order_by(Category.name.asc()).all()
