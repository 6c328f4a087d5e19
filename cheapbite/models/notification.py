"""
Notification model.

One row per like / comment / follow event aimed at another user.  The id is
derived from the event (see utils/fanout.py) so a re-run fan-out finds the
existing row instead of adding a second one.  Rows are owned by the
recipient; only ``read`` changes after creation.
"""
from cheapbite.extensions import db
from cheapbite.utils.helpers import utcnow

NOTIFICATION_TYPES = ("like", "comment", "follow")


class Notification(db.Model):
    __tablename__ = "notifications"
    __table_args__ = (
        db.CheckConstraint("recipient_id <> sender_id", name="ck_notifications_not_self"),
        db.CheckConstraint(
            "type IN (" + ", ".join(f"'{t}'" for t in NOTIFICATION_TYPES) + ")",
            name="ck_notifications_type",
        ),
        db.Index("ix_notifications_recipient_created", "recipient_id", "created_at"),
    )

    id                  = db.Column(db.String(64), primary_key=True)
    recipient_id        = db.Column(db.String(64), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type                = db.Column(db.String(20), nullable=False)
    sender_id           = db.Column(db.String(64), nullable=False)
    sender_display_name = db.Column(db.String(100), nullable=True)
    sender_photo_url    = db.Column(db.String(500), nullable=True)
    post_id             = db.Column(db.String(64), nullable=True)
    post_content        = db.Column(db.String(50), nullable=True)
    comment_text        = db.Column(db.String(50), nullable=True)
    read                = db.Column(db.Boolean, default=False, nullable=False)
    created_at          = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self) -> dict:
        data = {
            "id":          self.id,
            "type":        self.type,
            "recipientId": self.recipient_id,
            "senderId":    self.sender_id,
            "sender": {
                "displayName": self.sender_display_name,
                "photoURL":    self.sender_photo_url,
            },
            "read":      self.read,
            "createdAt": self.created_at.isoformat(),
        }
        if self.post_id:
            data["postId"] = self.post_id
        if self.post_content is not None:
            data["postContent"] = self.post_content
        if self.comment_text is not None:
            data["commentText"] = self.comment_text
        return data
