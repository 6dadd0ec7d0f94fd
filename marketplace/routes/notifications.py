"""
Notification Routes

- /api/notifications [GET]: the caller's notifications, newest first (?unread=1).
- /api/notifications/<id>/read [PATCH]: mark one of the caller's notifications read.
- /api/notifications/create [POST]: admin/system accounts notify any profile.
"""

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from ..models import db, Notification, Profile
from ..models.utils import get_or_none, paginate_query
from ..utils.api_utils import request_validator, error_response
from ..utils.auth_utils import login_required, role_required
from ..utils.validators import sanitize_input

notifications_bp = Blueprint('notifications', __name__)


@notifications_bp.route('', methods=['GET'])
@login_required
def list_notifications():
    query = Notification.query.filter_by(user_id=g.profile.id)
    if request.args.get('unread') in ('1', 'true'):
        query = query.filter_by(is_read=False)

    notifications, total = paginate_query(
        query.order_by(Notification.created_at.desc()),
        request.args.get('limit', 20, type=int),
        request.args.get('offset', 0, type=int),
    )
    unread = Notification.query.filter_by(user_id=g.profile.id, is_read=False).count()

    return jsonify({
        'success': True,
        'notifications': [n.to_dict() for n in notifications],
        'total': total,
        'unreadCount': unread,
    })


@notifications_bp.route('/<notification_id>/read', methods=['PATCH'])
@login_required
def mark_read(notification_id):
    notification = get_or_none(Notification, notification_id, user_id=g.profile.id)
    if notification is None:
        return error_response('Bildirim bulunamadı', 404)

    notification.is_read = True
    db.session.commit()
    return jsonify({'success': True, 'notification': notification.to_dict()})


@notifications_bp.route('/create', methods=['POST'])
@role_required('admin', 'system')
def create_notification():
    ok, data, err = request_validator.validate_json_request()
    if not ok:
        return jsonify(err), 400

    if request_validator.require_fields(data, ('userId', 'title', 'message', 'type')):
        return error_response('userId, title, message ve type alanları zorunludur', 400)

    if db.session.get(Profile, str(data['userId'])) is None:
        return error_response('Kullanıcı bulunamadı', 404)

    try:
        notification = Notification.create(
            user_id=str(data['userId']),
            title=sanitize_input(data['title'], 255),
            content=sanitize_input(data['message'], 2000),
            type=sanitize_input(data['type'], 50),
            reference_id=data.get('referenceId'),
            action_url=data.get('actionUrl'),
        )
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Bildirim oluşturma hatası: {str(e)}", exc_info=True)
        return error_response('Bildirim oluşturulamadı', 500)

    return jsonify({'success': True, 'notificationId': notification.id}), 201
