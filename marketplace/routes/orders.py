"""
Order Routes

FLOW OVERVIEW
- /api/orders [GET]
  • Customers see their own orders, sellers their stores' orders (optionally one
    ?store_id they own), admins everything (optional ?user_id / ?store_id).
- /api/orders/<id> [GET]
  • Same visibility rule for a single order: 404 unknown, 403 not visible.
- /api/orders/<id> [PUT]
  • Admin / owning seller update status or payment_status; the buyer may only
    request a cancellation while the order is still open.
- /api/orders/<id> [DELETE]
  • Admin only.
"""

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from ..models import db, Order, Store
from ..models.utils import get_or_none, paginate_query
from ..utils.api_utils import request_validator, error_response
from ..utils.auth_utils import admin_required, login_required

orders_bp = Blueprint('orders', __name__)

CANCELLABLE_STATUSES = ('pending', 'paid', 'processing')
CANCELLATION_STATUSES = ('cancelled', 'cancellation_requested')


def _owned_store_ids(profile):
    return [store.id for store in Store.query.filter_by(user_id=profile.id).all()]


def _can_view(profile, order):
    if profile.has_role('admin'):
        return True
    if profile.has_role('seller') and order.store_id in _owned_store_ids(profile):
        return True
    return order.user_id == profile.id


@orders_bp.route('', methods=['GET'])
@login_required
def list_orders():
    profile = g.profile
    query = Order.query
    store_id = request.args.get('store_id')

    if profile.has_role('admin'):
        if request.args.get('user_id'):
            query = query.filter(Order.user_id == request.args['user_id'])
        if store_id:
            query = query.filter(Order.store_id == store_id)
    elif profile.has_role('seller'):
        store_ids = _owned_store_ids(profile)
        if store_id:
            if store_id not in store_ids:
                return error_response('Store not found or access denied', 404)
            store_ids = [store_id]
        query = query.filter(Order.store_id.in_(store_ids))
    else:
        query = query.filter(Order.user_id == profile.id)

    try:
        orders, total = paginate_query(
            query.order_by(Order.created_at.desc()),
            request.args.get('limit', 10, type=int),
            request.args.get('offset', 0, type=int),
        )
    except SQLAlchemyError as e:
        current_app.logger.error(f"Error fetching orders: {str(e)}", exc_info=True)
        return error_response('Failed to fetch orders', 500)

    return jsonify({'success': True, 'orders': [o.to_dict() for o in orders], 'count': total})


@orders_bp.route('/<order_id>', methods=['GET'])
@login_required
def get_order(order_id):
    order = get_or_none(Order, order_id)
    if order is None:
        return error_response('Order not found', 404)

    if not _can_view(g.profile, order):
        return error_response('Access Denied to this order', 403)

    return jsonify({'success': True, 'order': order.to_dict()})


@orders_bp.route('/<order_id>', methods=['PUT'])
@login_required
def update_order(order_id):
    ok, data, err = request_validator.validate_json_request()
    if not ok:
        return jsonify(err), 400

    updates = {field: data[field] for field in ('status', 'payment_status') if data.get(field)}
    if not updates:
        return error_response('No fields to update', 400)

    order = get_or_none(Order, order_id)
    if order is None:
        return error_response('Order not found', 404)

    profile = g.profile
    can_update = profile.has_role('admin') or (
        profile.has_role('seller') and order.store_id in _owned_store_ids(profile)
    )

    if not can_update and order.user_id == profile.id:
        # Buyers can only ask for a cancellation on an open order
        requested = str(updates.get('status', '')).lower()
        if (set(updates) == {'status'} and requested in CANCELLATION_STATUSES
                and str(order.status or '').lower() in CANCELLABLE_STATUSES):
            updates['status'] = 'cancellation_requested'
            can_update = True

    if not can_update:
        return error_response('You do not have permission to update this order or perform this status change.', 403)

    for field, value in updates.items():
        setattr(order, field, value)

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating order {order_id}: {str(e)}", exc_info=True)
        return error_response('Failed to update order', 500)

    current_app.logger.info(f"Order {order_id} updated by {profile.id}: {updates}")
    return jsonify({'success': True, 'order': order.to_dict()})


@orders_bp.route('/<order_id>', methods=['DELETE'])
@admin_required
def delete_order(order_id):
    order = get_or_none(Order, order_id)
    if order is None:
        return error_response('Order not found', 404)

    try:
        db.session.delete(order)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting order {order_id}: {str(e)}", exc_info=True)
        return error_response('Failed to delete order', 500)

    return jsonify({'success': True, 'message': f'Order {order_id} and its items deleted successfully'})
