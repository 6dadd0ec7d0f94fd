"""
Catalog Routes

FLOW OVERVIEW
- /api/products [GET]
  • Approved + active products, optional category/brand/store/search filters,
    limit/offset paging, each with a signed image URL.
- /api/products/<id> [GET]
  • One approved + active product with its variants.
- /api/categories, /api/brands, /api/announcements [GET]
  • Active rows; announcements only inside their date window.
- /api/brands [POST]
  • Admin-only brand creation (400 missing name/slug, 409 duplicate slug).
- /api/storage/signed-url [GET]
  • ?path=...&long=1 → signed URL (or placeholder) for a stored image.
"""

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from ..models import db, Announcement, Brand, Category, Product
from ..models.utils import get_or_none, paginate_query
from ..utils.api_utils import request_validator, error_response
from ..utils.auth_utils import admin_required
from ..utils.storage import LONG_EXPIRY, SHORT_EXPIRY, resolve_signed_url
from ..utils.validators import sanitize_input, validate_slug

catalog_bp = Blueprint('catalog', __name__)


def serialize_product(product, include_variants=False):
    data = product.to_dict()
    data['signed_image_url'] = resolve_signed_url(product.image_url)
    if include_variants:
        data['variants'] = [variant.to_dict() for variant in product.variants]
    return data


@catalog_bp.route('/products')
def list_products():
    query = Product.query.filter(Product.is_approved.is_(True), Product.is_active.is_(True))

    for arg in ('category_id', 'brand_id', 'store_id'):
        value = request.args.get(arg)
        if value:
            query = query.filter(getattr(Product, arg) == value)

    search = sanitize_input(request.args.get('q', ''), 100)
    if search:
        query = query.filter(Product.name.ilike(f'%{search}%'))

    try:
        products, total = paginate_query(
            query.order_by(Product.created_at.desc()),
            request.args.get('limit', 20, type=int),
            request.args.get('offset', 0, type=int),
        )
    except SQLAlchemyError as e:
        current_app.logger.error(f"Product listing failed: {str(e)}", exc_info=True)
        return error_response('Ürünler alınırken bir hata oluştu', 500)

    return jsonify({
        'success': True,
        'products': [serialize_product(p) for p in products],
        'total': total,
    })


@catalog_bp.route('/products/<product_id>')
def get_product(product_id):
    product = get_or_none(Product, product_id, is_approved=True, is_active=True)
    if product is None:
        return error_response('Ürün bulunamadı', 404)
    return jsonify({'success': True, 'product': serialize_product(product, include_variants=True)})


@catalog_bp.route('/categories')
def list_categories():
    categories = Category.query.filter_by(is_active=True).order_by(Category.name).all()
    return jsonify({'success': True, 'categories': [c.to_dict() for c in categories]})


@catalog_bp.route('/brands', methods=['GET'])
def list_brands():
    brands = Brand.query.filter_by(is_active=True).order_by(Brand.name).all()
    return jsonify({'success': True, 'brands': [b.to_dict() for b in brands]})


@catalog_bp.route('/brands', methods=['POST'])
@admin_required
def create_brand():
    ok, data, err = request_validator.validate_json_request()
    if not ok:
        return jsonify(err), 400

    missing = request_validator.require_fields(data, ('name', 'slug'))
    if missing:
        return error_response('Name and slug are required', 400)

    slug_validation = validate_slug(data['slug'])
    if not slug_validation.is_valid:
        return error_response(slug_validation.error_message, 400)

    if Brand.query.filter_by(slug=slug_validation.sanitized_value).first():
        return error_response('A brand with this slug already exists', 409)

    brand = Brand(
        name=sanitize_input(data['name'], 255),
        slug=slug_validation.sanitized_value,
        description=data.get('description'),
        logo_url=data.get('logo_url'),
        is_active=bool(data.get('is_active', True)),
    )
    try:
        db.session.add(brand)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating brand: {str(e)}", exc_info=True)
        return error_response('Failed to create brand', 500)

    return jsonify({'success': True, 'brand': brand.to_dict()}), 201


@catalog_bp.route('/announcements')
def list_announcements():
    announcements = Announcement.visible_query().all()
    return jsonify({'success': True, 'announcements': [a.to_dict() for a in announcements]})


@catalog_bp.route('/storage/signed-url')
def signed_url():
    path = request.args.get('path', '')
    if not path:
        return error_response('path is required', 400)

    expires_in = LONG_EXPIRY if request.args.get('long') in ('1', 'true') else SHORT_EXPIRY
    return jsonify({'success': True, 'url': resolve_signed_url(path, expires_in), 'expiresIn': expires_in})
