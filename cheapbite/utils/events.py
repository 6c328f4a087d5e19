"""
Event scheduling.

Participants are the creator followed by the invitees; the creator starts as
the only attendee.  RSVP only flips the attending flag of an existing
participant row, so attendees can never include an outsider.  Overlapping
events are allowed.
"""
import logging
from datetime import timedelta

from cheapbite.errors import NotFound, PermissionDenied, ValidationError, store_transaction
from cheapbite.extensions import db
from cheapbite.models.event import Event, EventParticipant
from cheapbite.models.user import PublicProfile

log = logging.getLogger(__name__)

DEFAULT_DURATION = timedelta(hours=1)
DEFAULT_LOCATION = "TBD"


def require_event(event_id: str) -> Event:
    event = db.session.get(Event, event_id)
    if event is None:
        raise NotFound("Event not found")
    return event


def create_event(creator_id: str, title: str, description: str, start, end=None,
                 location: str = None, invitee_ids=None) -> Event:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Event title is required", fields={"title": ["This field is required."]})
    if start is None:
        raise ValidationError("Event start is required", fields={"startTime": ["This field is required."]})
    end = end or start + DEFAULT_DURATION
    if end < start:
        raise ValidationError("Event cannot end before it starts",
                              fields={"endTime": ["Must not be before the start time."]})

    invitees = [uid for uid in dict.fromkeys(invitee_ids or []) if uid and uid != creator_id]
    known    = {p.id for p in PublicProfile.query.filter(PublicProfile.id.in_([creator_id, *invitees])).all()}
    if creator_id not in known:
        raise NotFound("Account not found")
    missing = [uid for uid in invitees if uid not in known]
    if missing:
        raise ValidationError("Unknown invitees", fields={"inviteeIds": [f"Unknown user {uid}" for uid in missing]})

    event = Event(
        title=title,
        description=(description or "").strip(),
        created_by=creator_id,
        start_time=start,
        end_time=end,
        location=(location or "").strip() or DEFAULT_LOCATION,
        status="scheduled",
    )
    event.participants.append(EventParticipant(user_id=creator_id, position=0, attending=True))
    for pos, uid in enumerate(invitees, start=1):
        event.participants.append(EventParticipant(user_id=uid, position=pos, attending=False))

    with store_transaction("events", "create", {"title": title, "createdBy": creator_id}):
        db.session.add(event)
    log.info("Event %s created by %s with %d invitees", event.id, creator_id, len(invitees))
    return event


def rsvp(event_id: str, user_id: str, attending: bool) -> Event:
    event = require_event(event_id)
    participant = event.participant(user_id)
    if participant is None or participant.attending == bool(attending):
        return event
    with store_transaction(f"events/{event_id}", "update", {"attending": bool(attending), "user": user_id}):
        participant.attending = bool(attending)
    return event


def cancel_event(event_id: str, requester_id: str) -> Event:
    event = require_event(event_id)
    if event.created_by != requester_id:
        raise PermissionDenied("Only the creator can cancel this event")
    if event.status != "cancelled":
        with store_transaction(f"events/{event_id}", "update", {"status": "cancelled"}):
            event.status = "cancelled"
    return event


def list_events(user_id: str) -> list[Event]:
    return (
        Event.query
        .join(EventParticipant, EventParticipant.event_id == Event.id)
        .filter(EventParticipant.user_id == user_id)
        .order_by(Event.start_time.asc())
        .all()
    )
