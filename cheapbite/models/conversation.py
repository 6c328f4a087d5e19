"""Direct messaging: per-owner conversation summaries and thread messages."""
from cheapbite.extensions import db
from cheapbite.utils.helpers import new_id, utcnow


class Conversation(db.Model):
    """One participant's view of a chat; each chat has two of these."""
    __tablename__ = "conversations"

    owner_id          = db.Column(db.String(64), db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    peer_id           = db.Column(db.String(64), primary_key=True)
    peer_display_name = db.Column(db.String(100), nullable=True)
    peer_photo_url    = db.Column(db.String(500), nullable=True)
    last_message      = db.Column(db.String(1000), nullable=False, default="")
    last_updated_at   = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id":     self.peer_id,
            "peerId": self.peer_id,
            "peerData": {
                "displayName": self.peer_display_name,
                "photoURL":    self.peer_photo_url,
            },
            "lastMessage":   self.last_message,
            "lastUpdatedAt": self.last_updated_at.isoformat(),
        }


class Message(db.Model):
    """``seq`` follows insert order; stream readers resume after the last one they saw."""
    __tablename__ = "messages"
    __table_args__ = (db.Index("ix_messages_thread_created", "thread_id", "created_at"),)

    seq        = db.Column(db.Integer, primary_key=True, autoincrement=True)
    id         = db.Column(db.String(64), unique=True, nullable=False, default=new_id)
    thread_id  = db.Column(db.String(130), nullable=False)
    sender_id  = db.Column(db.String(64), nullable=False)
    text       = db.Column(db.String(1000), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    read       = db.Column(db.Boolean, default=False, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id":        self.id,
            "seq":       self.seq,
            "threadId":  self.thread_id,
            "senderId":  self.sender_id,
            "text":      self.text,
            "createdAt": self.created_at.isoformat(),
            "read":      self.read,
        }
