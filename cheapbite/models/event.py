from cheapbite.extensions import db
from cheapbite.utils.helpers import new_id, utcnow

EVENT_STATUSES = ("scheduled", "cancelled")


class Event(db.Model):
    """A calendar invitation.

    Participation lives in EventParticipant rows, so ``attendees`` can only
    ever name users that are already participants.
    """
    __tablename__ = "events"
    __table_args__ = (
        db.CheckConstraint(
            "status IN (" + ", ".join(f"'{s}'" for s in EVENT_STATUSES) + ")",
            name="ck_events_status",
        ),
    )

    id          = db.Column(db.String(64), primary_key=True, default=new_id)
    title       = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    created_by  = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False, index=True)
    start_time  = db.Column(db.DateTime, nullable=False)
    end_time    = db.Column(db.DateTime, nullable=False)
    location    = db.Column(db.String(200), nullable=False, default="TBD")
    status      = db.Column(db.String(20), nullable=False, default="scheduled")
    created_at  = db.Column(db.DateTime, default=utcnow, nullable=False)

    participants = db.relationship(
        "EventParticipant",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventParticipant.position",
    )

    @property
    def participant_ids(self) -> list[str]:
        return [p.user_id for p in self.participants]

    @property
    def attendees(self) -> list[str]:
        return [p.user_id for p in self.participants if p.attending]

    def participant(self, user_id: str):
        return next((p for p in self.participants if p.user_id == user_id), None)

    def to_dict(self) -> dict:
        return {
            "id":             self.id,
            "title":          self.title,
            "description":    self.description,
            "createdBy":      self.created_by,
            "startTime":      self.start_time.isoformat(),
            "endTime":        self.end_time.isoformat(),
            "location":       self.location,
            "participantIds": self.participant_ids,
            "attendees":      self.attendees,
            "status":         self.status,
        }


class EventParticipant(db.Model):
    __tablename__ = "event_participants"

    event_id  = db.Column(db.String(64), db.ForeignKey("events.id", ondelete="CASCADE"), primary_key=True)
    user_id   = db.Column(db.String(64), db.ForeignKey("users.id",  ondelete="CASCADE"), primary_key=True, index=True)
    position  = db.Column(db.Integer, nullable=False, default=0)
    attending = db.Column(db.Boolean, nullable=False, default=False)

    event = db.relationship("Event", back_populates="participants")
