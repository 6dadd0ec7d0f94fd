"""
Admin Routes

Every route here requires an admin profile.

FLOW OVERVIEW
- /api/admin/products [GET, POST], /api/admin/products/<id> [GET, PATCH, DELETE]
  • Product CRUD; new products start unapproved.
- /api/admin/products/<id>/approve, /reject [POST]
  • Moderation; the owning seller gets a notification.
- /api/admin/categories [GET, POST, DELETE ?id=]
  • Deletion is refused while the category has subcategories or products.
- /api/admin/announcements [POST], /api/admin/announcements/<id> [PATCH, DELETE]
- /api/admin/banka-hesaplari [GET, POST], /api/admin/banka-hesaplari/<id> [GET, PUT, DELETE]
  • Marketplace-managed bank accounts (IBAN validated).
- /api/admin/users [GET], /api/admin/update-user-role [POST]
"""

from datetime import datetime

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from ..models import (
    db, Announcement, Category, ManagedBankAccount, Notification, Product, Profile
)
from ..models.profile import ROLES
from ..models.utils import apply_updates, get_or_none, paginate_query
from ..utils.api_utils import request_validator, error_response
from ..utils.auth_utils import admin_required
from ..utils.validators import sanitize_input, validate_iban, validate_reject_reason, validate_slug

admin_bp = Blueprint('admin', __name__)


def _commit(action):
    """Commit the session; returns an error response on failure, else None"""
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Admin {action} failed: {str(e)}", exc_info=True)
        return error_response(f'Failed to {action}', 500)
    return None


def _parse_datetime(value):
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace('Z', '+00:00')).replace(tzinfo=None)


def _notify_seller(product, title, content, notification_type, action_url):
    if product.store is None:
        return None
    return Notification.create(
        user_id=product.store.user_id,
        title=title,
        content=content,
        type=notification_type,
        reference_id=product.id,
        action_url=action_url,
    )


# Products

@admin_bp.route('/products', methods=['GET'])
@admin_required
def list_products():
    query = Product.query
    status = request.args.get('status')
    if status == 'pending':
        query = query.filter(Product.is_approved.is_(False), Product.reject_reason.is_(None))
    elif status == 'approved':
        query = query.filter(Product.is_approved.is_(True))
    elif status == 'rejected':
        query = query.filter(Product.reject_reason.isnot(None))

    products, total = paginate_query(
        query.order_by(Product.created_at.desc()),
        request.args.get('limit', 50, type=int),
        request.args.get('offset', 0, type=int),
        max_limit=200,
    )
    return jsonify({'products': [p.to_dict() for p in products], 'total': total})


@admin_bp.route('/products', methods=['POST'])
@admin_required
def create_product():
    ok, data, err = request_validator.validate_json_request()
    if not ok:
        return jsonify(err), 400

    if request_validator.require_fields(data, ('name',)):
        return error_response('Product name is required', 400)

    try:
        price = float(data.get('price', 0))
        stock = int(data.get('stock', 0))
    except (TypeError, ValueError):
        return error_response('Price and stock must be numeric', 400)
    if price < 0 or stock < 0:
        return error_response('Price and stock cannot be negative', 400)

    product = Product(
        name=sanitize_input(data['name'], 255),
        description=data.get('description'),
        price=price,
        stock=stock,
        image_url=data.get('image_url'),
        store_id=data.get('store_id'),
        category_id=data.get('category_id'),
        brand_id=data.get('brand_id'),
        is_approved=False,
        is_active=False,
    )
    db.session.add(product)
    failure = _commit('create product')
    if failure:
        return failure

    return jsonify({'success': True, 'product': product.to_dict()}), 201


@admin_bp.route('/products/<product_id>', methods=['GET'])
@admin_required
def get_product(product_id):
    product = get_or_none(Product, product_id)
    if product is None:
        return error_response('Product not found', 404)
    data = product.to_dict()
    data['variants'] = [v.to_dict() for v in product.variants]
    return jsonify({'product': data})


@admin_bp.route('/products/<product_id>', methods=['PATCH'])
@admin_required
def update_product(product_id):
    ok, data, err = request_validator.validate_json_request()
    if not ok:
        return jsonify(err), 400

    product = get_or_none(Product, product_id)
    if product is None:
        return error_response('Product not found', 404)

    try:
        if 'price' in data:
            data['price'] = float(data['price'])
        if 'stock' in data:
            data['stock'] = int(data['stock'])
    except (TypeError, ValueError):
        return error_response('Price and stock must be numeric', 400)
    if data.get('price', 0) < 0 or data.get('stock', 0) < 0:
        return error_response('Price and stock cannot be negative', 400)

    changed = apply_updates(product, data, Product.EDITABLE_FIELDS)
    if not changed:
        return error_response('No fields to update', 400)
    product.updated_at = datetime.utcnow()

    failure = _commit('update product')
    if failure:
        return failure

    return jsonify({'success': True, 'product': product.to_dict(), 'updated': changed})


@admin_bp.route('/products/<product_id>', methods=['DELETE'])
@admin_required
def delete_product(product_id):
    product = get_or_none(Product, product_id)
    if product is None:
        return error_response('Product not found', 404)

    db.session.delete(product)
    failure = _commit('delete product')
    if failure:
        return failure

    return jsonify({'success': True})


@admin_bp.route('/products/<product_id>/approve', methods=['POST'])
@admin_required
def approve_product(product_id):
    product = get_or_none(Product, product_id)
    if product is None:
        return error_response('Product not found', 404)

    product.approve(g.profile.id)
    _notify_seller(
        product,
        'Ürününüz Onaylandı!',
        f'Tebrikler! "{product.name}" adlı ürününüz yönetici tarafından onaylandı ve yayına alındı.',
        'product_approved',
        f'/urun/{product.id}',
    )

    failure = _commit('approve product')
    if failure:
        return failure

    current_app.logger.info(f"Product {product.id} approved by {g.profile.id}")
    return jsonify({'success': True, 'message': 'Product approved successfully', 'product': product.to_dict()})


@admin_bp.route('/products/<product_id>/reject', methods=['POST'])
@admin_required
def reject_product(product_id):
    ok, data, err = request_validator.validate_json_request()
    if not ok:
        return error_response('Invalid request body. Rejection reason missing or malformed.', 400)

    reason = validate_reject_reason(data.get('reject_reason'))
    if not reason.is_valid:
        return error_response(reason.error_message, 400)

    product = get_or_none(Product, product_id)
    if product is None:
        return error_response('Product not found', 404)

    product.reject(reason.sanitized_value)
    _notify_seller(
        product,
        'Ürününüz Reddedildi',
        f'Üzgünüz, "{product.name}" adlı ürününüz yönetici tarafından reddedildi. Sebep: {reason.sanitized_value}',
        'product_rejected',
        f'/seller/products/{product.id}/edit',
    )

    failure = _commit('reject product')
    if failure:
        return failure

    current_app.logger.info(f"Product {product.id} rejected by {g.profile.id}")
    return jsonify({'success': True, 'message': 'Product rejected successfully', 'product': product.to_dict()})


# Categories

@admin_bp.route('/categories', methods=['GET'])
@admin_required
def list_categories():
    categories = Category.query.order_by(Category.name).all()
    return jsonify({'categories': [c.to_dict() for c in categories]})


@admin_bp.route('/categories', methods=['POST'])
@admin_required
def create_category():
    ok, data, err = request_validator.validate_json_request()
    if not ok:
        return jsonify(err), 400

    if request_validator.require_fields(data, ('name', 'slug')):
        return error_response('Name and slug are required', 400)

    slug = validate_slug(data['slug'])
    if not slug.is_valid:
        return error_response(slug.error_message, 400)

    parent_id = data.get('parent_id') or None
    if parent_id and get_or_none(Category, parent_id) is None:
        return error_response('Parent category not found', 404)

    if Category.query.filter_by(slug=slug.sanitized_value).first():
        return error_response('A category with this slug already exists', 409)

    category = Category(
        name=sanitize_input(data['name'], 255),
        slug=slug.sanitized_value,
        parent_id=parent_id,
        is_active=bool(data.get('is_active', True)),
    )
    db.session.add(category)
    failure = _commit('create category')
    if failure:
        return failure

    return jsonify({'success': True, 'category': category.to_dict()}), 201


@admin_bp.route('/categories', methods=['DELETE'])
@admin_required
def delete_category():
    category_id = request.args.get('id')
    if not category_id:
        return error_response('Category ID is required', 400)

    category = get_or_none(Category, category_id)
    if category is None:
        return error_response('Category not found', 404)

    if Category.query.filter_by(parent_id=category.id).first():
        return error_response('Cannot delete category with subcategories. Please delete subcategories first.', 400)

    if Product.query.filter_by(category_id=category.id).first():
        return error_response('Cannot delete category with products. Please remove or reassign products first.', 400)

    db.session.delete(category)
    failure = _commit('delete category')
    if failure:
        return failure

    return jsonify({'success': True})


# Announcements

@admin_bp.route('/announcements', methods=['POST'])
@admin_required
def create_announcement():
    ok, data, err = request_validator.validate_json_request()
    if not ok:
        return jsonify(err), 400

    if request_validator.require_fields(data, ('title', 'content')):
        return error_response('Title and content are required', 400)

    try:
        start_date = _parse_datetime(data.get('start_date')) or datetime.utcnow()
        end_date = _parse_datetime(data.get('end_date'))
    except ValueError:
        return error_response('Dates must be ISO 8601', 400)
    if end_date and end_date <= start_date:
        return error_response('end_date must be after start_date', 400)

    announcement = Announcement(
        title=sanitize_input(data['title'], 255),
        content=sanitize_input(data['content'], 5000),
        is_active=bool(data.get('is_active', True)),
        start_date=start_date,
        end_date=end_date,
    )
    db.session.add(announcement)
    failure = _commit('create announcement')
    if failure:
        return failure

    return jsonify({'success': True, 'announcement': announcement.to_dict()}), 201


@admin_bp.route('/announcements/<announcement_id>', methods=['PATCH'])
@admin_required
def update_announcement(announcement_id):
    ok, data, err = request_validator.validate_json_request()
    if not ok:
        return jsonify(err), 400

    announcement = get_or_none(Announcement, announcement_id)
    if announcement is None:
        return error_response('Announcement not found', 404)

    try:
        for field in ('start_date', 'end_date'):
            if field in data:
                data[field] = _parse_datetime(data[field])
    except ValueError:
        return error_response('Dates must be ISO 8601', 400)
    if 'start_date' in data and data['start_date'] is None:
        return error_response('start_date cannot be empty', 400)

    start_date = data.get('start_date', announcement.start_date)
    end_date = data.get('end_date', announcement.end_date)
    if start_date and end_date and end_date <= start_date:
        return error_response('end_date must be after start_date', 400)

    changed = apply_updates(announcement, data, Announcement.EDITABLE_FIELDS)
    if not changed:
        return error_response('No fields to update', 400)

    failure = _commit('update announcement')
    if failure:
        return failure

    return jsonify({'success': True, 'announcement': announcement.to_dict()})


@admin_bp.route('/announcements/<announcement_id>', methods=['DELETE'])
@admin_required
def delete_announcement(announcement_id):
    announcement = get_or_none(Announcement, announcement_id)
    if announcement is None:
        return error_response('Announcement not found', 404)

    db.session.delete(announcement)
    failure = _commit('delete announcement')
    if failure:
        return failure

    return jsonify({'success': True})


# Managed bank accounts

@admin_bp.route('/banka-hesaplari', methods=['GET'])
@admin_required
def list_bank_accounts():
    accounts = ManagedBankAccount.query.order_by(ManagedBankAccount.created_at.desc()).all()
    return jsonify({'accounts': [a.to_dict() for a in accounts]})


@admin_bp.route('/banka-hesaplari', methods=['POST'])
@admin_required
def create_bank_account():
    ok, data, err = request_validator.validate_json_request()
    if not ok:
        return jsonify(err), 400

    if request_validator.require_fields(data, ('bank_name', 'account_holder', 'iban')):
        return error_response('Banka adı, hesap sahibi ve IBAN zorunludur.', 400)

    iban = validate_iban(data['iban'])
    if not iban.is_valid:
        return error_response(iban.error_message, 400)

    if ManagedBankAccount.query.filter_by(iban=iban.sanitized_value).first():
        return error_response('Bu IBAN zaten kayıtlı.', 409)

    account = ManagedBankAccount(
        bank_name=sanitize_input(data['bank_name'], 255),
        account_holder=sanitize_input(data['account_holder'], 255),
        iban=iban.sanitized_value,
        branch_name=sanitize_input(data.get('branch_name') or '', 255) or None,
        currency=data.get('currency') or 'TRY',
        is_active=bool(data.get('is_active', True)),
    )
    db.session.add(account)
    failure = _commit('create bank account')
    if failure:
        return failure

    return jsonify({'success': True, 'account': account.to_dict()}), 201


@admin_bp.route('/banka-hesaplari/<account_id>', methods=['GET'])
@admin_required
def get_bank_account(account_id):
    account = get_or_none(ManagedBankAccount, account_id)
    if account is None:
        return error_response('Hesap bulunamadı.', 404)
    return jsonify({'account': account.to_dict()})


@admin_bp.route('/banka-hesaplari/<account_id>', methods=['PUT'])
@admin_required
def update_bank_account(account_id):
    ok, data, err = request_validator.validate_json_request()
    if not ok:
        return jsonify(err), 400

    account = get_or_none(ManagedBankAccount, account_id)
    if account is None:
        return error_response('Hesap bulunamadı.', 404)

    if 'iban' in data:
        iban = validate_iban(data['iban'])
        if not iban.is_valid:
            return error_response(iban.error_message, 400)
        duplicate = ManagedBankAccount.query.filter(
            ManagedBankAccount.iban == iban.sanitized_value,
            ManagedBankAccount.id != account.id,
        ).first()
        if duplicate:
            return error_response('Bu IBAN zaten kayıtlı.', 409)
        data['iban'] = iban.sanitized_value

    changed = apply_updates(account, data, ManagedBankAccount.EDITABLE_FIELDS)
    if not changed:
        return error_response('Güncellenecek alan yok.', 400)

    failure = _commit('update bank account')
    if failure:
        return failure

    return jsonify({'success': True, 'account': account.to_dict()})


@admin_bp.route('/banka-hesaplari/<account_id>', methods=['DELETE'])
@admin_required
def delete_bank_account(account_id):
    account = get_or_none(ManagedBankAccount, account_id)
    if account is None:
        return error_response('Hesap bulunamadı.', 404)

    db.session.delete(account)
    failure = _commit('delete bank account')
    if failure:
        return failure

    return jsonify({'success': True})


# Users

@admin_bp.route('/users', methods=['GET'])
@admin_required
def list_users():
    page = max(1, request.args.get('page', 1, type=int))
    limit = max(1, min(request.args.get('limit', 15, type=int), 100))

    query = Profile.query
    search = sanitize_input(request.args.get('searchTerm', ''), 100)
    if search:
        like = f'%{search}%'
        query = query.filter(db.or_(
            Profile.email.ilike(like),
            Profile.first_name.ilike(like),
            Profile.last_name.ilike(like),
        ))
    role = request.args.get('roleFilter')
    if role:
        query = query.filter(Profile.role == role)

    users, total = paginate_query(query.order_by(Profile.created_at.desc()), limit, (page - 1) * limit)

    return jsonify({
        'users': [u.to_dict() for u in users],
        'totalPages': (total + limit - 1) // limit,
        'currentPage': page,
        'totalUsers': total,
    })


@admin_bp.route('/update-user-role', methods=['POST'])
@admin_required
def update_user_role():
    ok, data, err = request_validator.validate_json_request()
    if not ok:
        return jsonify(err), 400

    if request_validator.require_fields(data, ('userId', 'role')):
        return error_response('userId and role are required', 400)

    if data['role'] not in ROLES:
        return error_response(f"Role must be one of: {', '.join(ROLES)}", 400)

    profile = get_or_none(Profile, data['userId'])
    if profile is None:
        return error_response('User not found', 404)

    previous = profile.role
    profile.role = data['role']
    failure = _commit('update user role')
    if failure:
        return failure

    current_app.logger.info(f"Admin {g.profile.id} changed role of {profile.id}: {previous} -> {profile.role}")
    return jsonify({'success': True, 'user': profile.to_dict()})
