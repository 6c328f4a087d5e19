"""
Direct messages.

A chat between A and B lives under ``thread_id(A, B)`` (sorted ids joined by
'-'), so either side finds it without a lookup table.  Each side also keeps a
Conversation summary row for the inbox list.  Sending one message is three
writes in one commit: the Message, the sender's summary (peer = recipient)
and the recipient's summary (peer = sender).  Either all three land or the
caller gets a StoreWriteError.
"""
import logging
import time

from sqlalchemy import update

from cheapbite.errors import NotFound, PermissionDenied, ValidationError, store_transaction
from cheapbite.extensions import db
from cheapbite.models.conversation import Conversation, Message
from cheapbite.utils.accounts import require_profile
from cheapbite.utils.helpers import thread_id, utcnow

log = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH   = 1000
NEW_CONVERSATION_MSG = "Start a new conversation!"


def participants(thread: str) -> tuple[str, str]:
    a, sep, b = thread.partition("-")
    if not sep or not a or not b:
        raise NotFound("Conversation not found")
    return a, b


def _upsert_summary(owner_id: str, peer_id: str, peer_snapshot: dict,
                    last_message: str, at) -> Conversation:
    summary = db.session.get(Conversation, (owner_id, peer_id))
    if summary is None:
        summary = Conversation(owner_id=owner_id, peer_id=peer_id)
        db.session.add(summary)
    summary.peer_display_name = peer_snapshot["displayName"]
    summary.peer_photo_url    = peer_snapshot["photoURL"]
    summary.last_message      = last_message
    summary.last_updated_at   = at
    return summary


def send_message(sender_id: str, peer_id: str, text: str, now=None) -> Message:
    text = (text or "").strip()
    if not text:
        raise ValidationError("Message cannot be empty", fields={"text": ["This field is required."]})
    if len(text) > MAX_MESSAGE_LENGTH:
        raise ValidationError("Message is too long",
                              fields={"text": [f"At most {MAX_MESSAGE_LENGTH} characters."]})
    if sender_id == peer_id:
        raise ValidationError("You cannot message yourself", fields={"peerId": ["Cannot message yourself."]})

    sender = require_profile(sender_id)
    peer   = require_profile(peer_id)
    at     = now or utcnow()
    thread = thread_id(sender_id, peer_id)

    message = Message(thread_id=thread, sender_id=sender_id, text=text, created_at=at, read=False)
    with store_transaction(f"messages/{thread}/chat", "create", {"text": text}):
        db.session.add(message)
        _upsert_summary(sender_id, peer_id, peer.snapshot(), text, at)
        _upsert_summary(peer_id, sender_id, sender.snapshot(), text, at)
    return message


def start_conversation(owner_id: str, peer_id: str) -> Conversation:
    """Open an inbox entry for peer without sending anything yet."""
    if owner_id == peer_id:
        raise ValidationError("You cannot message yourself", fields={"peerId": ["Cannot message yourself."]})
    existing = db.session.get(Conversation, (owner_id, peer_id))
    if existing is not None:
        return existing
    peer = require_profile(peer_id)
    with store_transaction(f"users/{owner_id}/conversations/{peer_id}", "create"):
        summary = _upsert_summary(owner_id, peer_id, peer.snapshot(), NEW_CONVERSATION_MSG, utcnow())
    return summary


def list_conversations(owner_id: str) -> list[Conversation]:
    return (
        Conversation.query
        .filter_by(owner_id=owner_id)
        .order_by(Conversation.last_updated_at.desc())
        .all()
    )


def list_messages(thread: str, reader_id: str = None, after=None) -> list[Message]:
    """Messages oldest first; ``after`` keeps only those created at/after it."""
    if reader_id is not None and reader_id not in participants(thread):
        raise PermissionDenied("Not a participant in this conversation")
    query = Message.query.filter_by(thread_id=thread)
    if after is not None:
        query = query.filter(Message.created_at >= after)
    return query.order_by(Message.created_at.asc(), Message.seq.asc()).all()


def messages_after(thread: str, seq: int = 0) -> list[Message]:
    """Messages stored after ``seq``, in insert order."""
    return (
        Message.query
        .filter(Message.thread_id == thread, Message.seq > seq)
        .order_by(Message.seq.asc())
        .all()
    )


def mark_thread_read(thread: str, reader_id: str) -> int:
    """Mark the other participant's messages read."""
    if reader_id not in participants(thread):
        raise PermissionDenied("Not a participant in this conversation")
    with store_transaction(f"messages/{thread}/chat", "update", {"read": True}):
        changed = db.session.execute(
            update(Message)
            .where(Message.thread_id == thread,
                   Message.sender_id != reader_id,
                   Message.read.is_(False))
            .values(read=True)
            .execution_options(synchronize_session=False)
        ).rowcount
    return changed


def watch_messages(thread: str, reader_id: str, poll_seconds: float, max_seconds: float,
                   after_seq: int = 0):
    """Yield messages as they are stored: first the backlog, then new arrivals.

    Polls the store every ``poll_seconds`` until ``max_seconds`` have passed.
    The cursor is the last ``seq`` yielded, not a timestamp: a message stamped
    before one already sent but committed after it is still delivered.  A
    client reconnects with ``after_seq`` to keep watching.
    """
    if reader_id not in participants(thread):
        raise PermissionDenied("Not a participant in this conversation")
    cursor   = after_seq or 0
    deadline = time.monotonic() + max_seconds
    while True:
        for msg in messages_after(thread, cursor):
            cursor = msg.seq
            yield msg
        # Let the next poll see rows committed by other sessions.
        db.session.rollback()
        if time.monotonic() >= deadline:
            return
        time.sleep(poll_seconds)
