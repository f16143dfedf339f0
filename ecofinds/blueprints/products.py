from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required
from ecofinds.services import catalog_service
from ecofinds.services.audit_service import log_audit
from ecofinds.services.identity_service import OwnedResource
from ecofinds.utils import (
    get_json_body,
    optional_caller,
    ownership_required,
    page_args,
)
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('products', __name__)


@bp.route('/api/products', methods=['GET'])
def list_products():
    viewer = optional_caller()
    page, per_page = page_args(current_app.config.get('ITEMS_PER_PAGE', 12))

    result = catalog_service.search_products(
        query=request.args.get('search'),
        category=request.args.get('category') or None,
        sort_by=request.args.get('sort', 'created_at'),
        order=request.args.get('order', 'DESC'),
        page=page,
        per_page=per_page
    )

    return jsonify({
        'products': [
            catalog_service.serialize_product(p, viewer)
            for p in result['items']
        ],
        'pagination': result['pagination'],
    })


@bp.route('/api/products/<int:id>', methods=['GET'])
def get_product(id):
    viewer = optional_caller()
    product = catalog_service.get_active_product(id)
    return jsonify(catalog_service.serialize_product(product, viewer))


@bp.route('/api/products', methods=['POST'])
@login_required
def create_product():
    data = get_json_body()
    product = catalog_service.create_product(current_user, data)

    log_audit(
        actor_id=current_user.id,
        action='PRODUCT_CREATE',
        target_type='PRODUCT',
        target_id=product.id,
        payload={'title': product.title, 'price': str(product.price)}
    )

    return jsonify({
        'message': 'Product created successfully',
        'product': catalog_service.serialize_product(product, current_user),
    }), 201


@bp.route('/api/products/<int:id>', methods=['PUT'])
@login_required
@ownership_required(OwnedResource.PRODUCT)
def update_product(id, resource):
    data = get_json_body()
    product = catalog_service.update_product(resource, data)

    log_audit(
        actor_id=current_user.id,
        action='PRODUCT_UPDATE',
        target_type='PRODUCT',
        target_id=product.id,
        payload={'fields': sorted(data.keys())}
    )

    return jsonify({
        'message': 'Product updated successfully',
        'product': catalog_service.serialize_product(product, current_user),
    })


@bp.route('/api/products/<int:id>', methods=['DELETE'])
@login_required
@ownership_required(OwnedResource.PRODUCT)
def delete_product(id, resource):
    title = resource.title
    catalog_service.delete_product(resource)

    log_audit(
        actor_id=current_user.id,
        action='PRODUCT_DELETE',
        target_type='PRODUCT',
        target_id=id,
        payload={'title': title}
    )

    return jsonify({'message': 'Product deleted successfully'})


@bp.route('/api/products/user/<int:user_id>', methods=['GET'])
def list_user_products(user_id):
    viewer = optional_caller()
    page, per_page = page_args(current_app.config.get('ITEMS_PER_PAGE', 12))
    result = catalog_service.list_seller_products(
        user_id, page=page, per_page=per_page)

    return jsonify({
        'products': [
            catalog_service.serialize_product(p, viewer)
            for p in result['items']
        ],
        'pagination': result['pagination'],
    })


@bp.route('/api/products/categories/list', methods=['GET'])
def list_categories():
    categories = catalog_service.list_categories()
    return jsonify([{
        'id': c.id,
        'name': c.name,
        'description': c.description,
    } for c in categories])
