"""
Notification fan-out.

Likes, comments and follows are announced here *after* their own commit.
The reaction runs on the background scheduler inside its own app context
(or inline when NOTIFICATION_FANOUT_INLINE is set) and writes at most one
Notification per event:

    like     on post P   → P.author   (skipped when the liker is the author)
    comment  on post P   → P.author   (skipped when the commenter is the author)
    follow   A → B       → B

Notification ids are derived from the event, so running the same fan-out
twice leaves one row.  The sender's name and photo are copied at fan-out
time and are not updated afterwards.  A failed fan-out is logged and
dropped; it never reaches the action that triggered it.
"""
import hashlib
import logging

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from cheapbite.errors import NotFound, store_transaction
from cheapbite.extensions import db, scheduler
from cheapbite.models.feed import Post
from cheapbite.models.notification import Notification
from cheapbite.models.user import PublicProfile
from cheapbite.utils.helpers import new_id, snippet

log = logging.getLogger(__name__)

SNIPPET_LENGTH = 50


# ── Dispatch ──────────────────────────────────────────────────────────────────

def dispatch(kind: str, **payload) -> None:
    """Queue the reaction to a committed like / comment / follow."""
    app = current_app._get_current_object()
    if app.config.get("NOTIFICATION_FANOUT_INLINE") or not scheduler.running:
        _fan_out_safely(kind, payload)
        return
    scheduler.add_job(run_fanout, args=[app, kind, payload], id=f"fanout-{kind}-{new_id()}")


def run_fanout(app, kind: str, payload: dict) -> None:
    """Scheduler entry point; pushes an app context for the job thread."""
    with app.app_context():
        _fan_out_safely(kind, payload)


def _fan_out_safely(kind: str, payload: dict) -> Notification | None:
    try:
        return _HANDLERS[kind](**payload)
    except Exception:
        db.session.rollback()
        log.exception("Notification fan-out failed for %s %r", kind, payload)
        return None


# ── Handlers ──────────────────────────────────────────────────────────────────

def on_like(post_id: str, user_id: str) -> Notification | None:
    post = db.session.get(Post, post_id)
    if post is None:
        return None
    return create_notification(
        recipient_id=post.author_id,
        sender_id=user_id,
        notif_type="like",
        post_id=post_id,
        post_content=snippet(post.content, SNIPPET_LENGTH),
    )


def on_comment(post_id: str, comment_id: str, author_id: str, text: str) -> Notification | None:
    post = db.session.get(Post, post_id)
    if post is None:
        return None
    return create_notification(
        recipient_id=post.author_id,
        sender_id=author_id,
        notif_type="comment",
        post_id=post_id,
        post_content=snippet(post.content, SNIPPET_LENGTH),
        comment_text=snippet(text, SNIPPET_LENGTH),
        source_id=comment_id,
    )


def on_follow(follower_id: str, followee_id: str) -> Notification | None:
    return create_notification(
        recipient_id=followee_id,
        sender_id=follower_id,
        notif_type="follow",
    )


_HANDLERS = {
    "like":    on_like,
    "comment": on_comment,
    "follow":  on_follow,
}


# ── Writing ───────────────────────────────────────────────────────────────────

def notification_id(recipient_id: str, notif_type: str, sender_id: str,
                    post_id: str = None, source_id: str = None) -> str:
    key = "|".join([recipient_id, notif_type, sender_id, post_id or "", source_id or ""])
    return hashlib.sha1(key.encode("utf-8")).hexdigest()


def sender_snapshot(sender_id: str) -> dict:
    profile = db.session.get(PublicProfile, sender_id)
    if profile is None:
        return {"displayName": "Someone", "photoURL": None}
    return {
        "displayName": profile.display_name or "Someone",
        "photoURL":    profile.photo_url or None,
    }


def create_notification(recipient_id: str, sender_id: str, notif_type: str,
                        post_id: str = None, post_content: str = None,
                        comment_text: str = None, source_id: str = None) -> Notification | None:
    """Write one notification unless it is self-addressed or already exists."""
    if recipient_id == sender_id:
        log.debug("Skipping %s notification for user's own action (%s)", notif_type, sender_id)
        return None

    nid = notification_id(recipient_id, notif_type, sender_id, post_id, source_id)
    existing = db.session.get(Notification, nid)
    if existing is not None:
        return existing

    sender = sender_snapshot(sender_id)
    notif  = Notification(
        id=nid,
        recipient_id=recipient_id,
        type=notif_type,
        sender_id=sender_id,
        sender_display_name=sender["displayName"],
        sender_photo_url=sender["photoURL"],
        post_id=post_id,
        post_content=post_content,
        comment_text=comment_text,
        read=False,
    )
    db.session.add(notif)
    try:
        db.session.commit()
    except IntegrityError:
        # Another run of the same fan-out got there first.
        db.session.rollback()
        return db.session.get(Notification, nid)
    return notif


# ── Read state ────────────────────────────────────────────────────────────────

def list_notifications(recipient_id: str, limit: int = 20) -> list[Notification]:
    return (
        Notification.query
        .filter_by(recipient_id=recipient_id)
        .order_by(Notification.created_at.desc())
        .limit(limit)
        .all()
    )


def unread_count(recipient_id: str) -> int:
    return Notification.query.filter_by(recipient_id=recipient_id, read=False).count()


def mark_one_read(recipient_id: str, notification_id_: str) -> Notification:
    notif = db.session.get(Notification, notification_id_)
    if notif is None or notif.recipient_id != recipient_id:
        raise NotFound("Notification not found")
    with store_transaction(f"users/{recipient_id}/notifications/{notif.id}", "update", {"read": True}):
        notif.read = True
    return notif


def mark_all_read(recipient_id: str) -> int:
    """Mark every unread notification read in one statement."""
    with store_transaction(f"users/{recipient_id}/notifications", "update", {"read": True}):
        changed = db.session.execute(
            update(Notification)
            .where(Notification.recipient_id == recipient_id, Notification.read.is_(False))
            .values(read=True)
            .execution_options(synchronize_session=False)
        ).rowcount
    return changed
