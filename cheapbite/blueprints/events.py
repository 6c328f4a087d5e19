"""
Events blueprint.

GET  /api/events                  – events I take part in, soonest first
POST /api/events                  – create (body: title, start_time, ..., inviteeIds[])
GET  /api/events/<id>             – one event (participants only)
POST /api/events/<id>/rsvp        – set attending true/false
POST /api/events/<id>/cancel      – creator cancels
"""
from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from cheapbite.errors import PermissionDenied
from cheapbite.forms.base import bind_form, json_body
from cheapbite.forms.events import EventForm, RsvpForm
from cheapbite.utils import events

events_bp = Blueprint("events", __name__)


@events_bp.route("/api/events")
@login_required
def list_events():
    return jsonify(events=[e.to_dict() for e in events.list_events(current_user.id)])


@events_bp.route("/api/events", methods=["POST"])
@login_required
def create_event():
    form     = bind_form(EventForm)
    invitees = json_body().get("inviteeIds") or []
    event = events.create_event(
        creator_id=current_user.id,
        title=form.title.data,
        description=form.description.data,
        start=form.start_time.data,
        end=form.end_time.data,
        location=form.location.data,
        invitee_ids=[str(uid) for uid in invitees],
    )
    return jsonify(event.to_dict()), 201


@events_bp.route("/api/events/<event_id>")
@login_required
def get_event(event_id):
    event = events.require_event(event_id)
    if event.participant(current_user.id) is None:
        raise PermissionDenied("Not invited to this event")
    return jsonify(event.to_dict())


@events_bp.route("/api/events/<event_id>/rsvp", methods=["POST"])
@login_required
def rsvp(event_id):
    form  = bind_form(RsvpForm)
    event = events.rsvp(event_id, current_user.id, form.attending.data)
    return jsonify(event.to_dict())


@events_bp.route("/api/events/<event_id>/cancel", methods=["POST"])
@login_required
def cancel(event_id):
    event = events.cancel_event(event_id, current_user.id)
    return jsonify(event.to_dict())
