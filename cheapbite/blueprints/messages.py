"""
Messages blueprint.

GET  /api/conversations                 – inbox, most recent first
POST /api/conversations/<peer>          – open a conversation with peer
GET  /api/messages/<peer>               – thread with peer, oldest first
POST /api/messages/<peer>               – send a message to peer
POST /api/messages/<peer>/read          – mark peer's messages read
GET  /api/messages/<peer>/stream        – NDJSON: backlog, then new messages as they arrive
                                          (?after=<seq> resumes after the last message seen)
"""
import json
import logging

from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context
from flask_login import current_user, login_required

from cheapbite.forms.base import bind_form
from cheapbite.forms.messages import MessageForm
from cheapbite.utils import conversations
from cheapbite.utils.accounts import require_profile
from cheapbite.utils.helpers import thread_id

log = logging.getLogger(__name__)
messages_bp = Blueprint("messages", __name__)


@messages_bp.route("/api/conversations")
@login_required
def inbox():
    return jsonify(conversations=[c.to_dict() for c in conversations.list_conversations(current_user.id)])


@messages_bp.route("/api/conversations/<peer_id>", methods=["POST"])
@login_required
def start(peer_id):
    summary = conversations.start_conversation(current_user.id, peer_id)
    return jsonify(summary.to_dict()), 201


@messages_bp.route("/api/messages/<peer_id>")
@login_required
def thread(peer_id):
    tid = thread_id(current_user.id, peer_id)
    return jsonify(
        threadId=tid,
        messages=[m.to_dict() for m in conversations.list_messages(tid, reader_id=current_user.id)],
    )


@messages_bp.route("/api/messages/<peer_id>", methods=["POST"])
@login_required
def send(peer_id):
    form    = bind_form(MessageForm)
    message = conversations.send_message(current_user.id, peer_id, form.text.data)
    return jsonify(message.to_dict()), 201


@messages_bp.route("/api/messages/<peer_id>/read", methods=["POST"])
@login_required
def mark_read(peer_id):
    changed = conversations.mark_thread_read(thread_id(current_user.id, peer_id), current_user.id)
    return jsonify(success=True, updated=changed)


@messages_bp.route("/api/messages/<peer_id>/stream")
@login_required
def stream(peer_id):
    require_profile(peer_id)
    tid       = thread_id(current_user.id, peer_id)
    reader_id = current_user.id
    poll      = current_app.config.get("MESSAGE_STREAM_POLL_SECONDS", 1.0)
    max_secs  = current_app.config.get("MESSAGE_STREAM_MAX_SECONDS", 55)
    after_seq = request.args.get("after", 0, type=int)

    def _gen():
        try:
            for msg in conversations.watch_messages(tid, reader_id, poll, max_secs, after_seq=after_seq):
                yield json.dumps({"type": "message", "message": msg.to_dict()}) + "\n"
            yield json.dumps({"type": "end"}) + "\n"
        except Exception as exc:
            log.exception("Message stream for %s failed", tid)
            yield json.dumps({"type": "error", "message": str(exc)}) + "\n"

    resp = Response(stream_with_context(_gen()), content_type="application/x-ndjson")
    resp.headers["X-Accel-Buffering"] = "no"
    return resp
