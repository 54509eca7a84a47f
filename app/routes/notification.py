# app/routes/notification.py
from flask import Blueprint, request

from app.db.session import get_session
from app.routes.common import ok, parse_body, require_login
from app.schemas.notification import NotificationActionRequest, NotificationDTO, NotificationReadRequest
from app.services.notification_service import NotificationService

notification_bp = Blueprint('notification', __name__, url_prefix='/notifications')


@notification_bp.route('', methods=['GET'])
def list_notifications():
    """The caller's own notifications, newest first, with the unread count."""
    db = get_session()
    try:
        user = require_login(db)
        service = NotificationService(db)
        notifications = service.list_for_user(
            user.id,
            unread_only=request.args.get('unreadOnly') == 'true',
        )
        return ok(
            [NotificationDTO.from_orm_model(n).to_json() for n in notifications],
            unreadCount=service.unread_count(user.id),
        )
    finally:
        db.close()


@notification_bp.route('', methods=['PATCH'])
def mark_notification():
    db = get_session()
    try:
        user = require_login(db)
        payload = parse_body(NotificationReadRequest)

        notification = NotificationService(db).mark_read(user.id, payload.notification_id, payload.read)
        db.commit()
        return ok(NotificationDTO.from_orm_model(notification).to_json())
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@notification_bp.route('', methods=['POST'])
def notification_action():
    db = get_session()
    try:
        user = require_login(db)
        parse_body(NotificationActionRequest)  # only markAllRead exists

        updated = NotificationService(db).mark_all_read(user.id)
        db.commit()
        return ok(message='All notifications marked as read', updated=updated)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@notification_bp.route('', methods=['DELETE'])
def delete_notifications():
    """``?id=`` deletes one notification, no id clears every read one."""
    db = get_session()
    try:
        user = require_login(db)
        service = NotificationService(db)
        notification_id = (request.args.get('id') or '').strip()
        if notification_id:
            service.delete(user.id, notification_id)
            message = 'Notification deleted'
        else:
            service.clear_read(user.id)
            message = 'All read notifications cleared'
        db.commit()
        return ok(message=message)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
