"""
Notifications blueprint.

GET  /api/notifications              – unread count + latest 20 notifications
POST /api/notifications/<id>/read    – mark one as read
POST /api/notifications/mark-read    – mark all as read (history kept)
"""
from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from cheapbite.utils import fanout
from cheapbite.utils.helpers import relative_time

notif_bp = Blueprint("notifications", __name__)


@notif_bp.route("/api/notifications")
@login_required
def get_notifications():
    limit  = min(100, max(1, request.args.get("limit", 20, type=int)))
    notifs = fanout.list_notifications(current_user.id, limit=limit)
    return jsonify({
        "unread": fanout.unread_count(current_user.id),
        "notifications": [
            dict(n.to_dict(), relativeTime=relative_time(n.created_at))
            for n in notifs
        ],
    })


@notif_bp.route("/api/notifications/<notification_id>/read", methods=["POST"])
@login_required
def mark_one(notification_id):
    notif = fanout.mark_one_read(current_user.id, notification_id)
    return jsonify(success=True, notification=notif.to_dict())


@notif_bp.route("/api/notifications/mark-read", methods=["POST"])
@login_required
def mark_read():
    changed = fanout.mark_all_read(current_user.id)
    return jsonify(success=True, updated=changed)
