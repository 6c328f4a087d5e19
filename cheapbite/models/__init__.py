# Import all models so SQLAlchemy can discover them for db.create_all()
# Order matters: FK targets must be imported before dependents.
from cheapbite.models.user import (
    AuthIdentity, User, PublicProfile, ProfileTerm, UsernameReservation, follows, GENDERS,
)
from cheapbite.models.feed import Post, PostTerm, Like, Comment
from cheapbite.models.notification import Notification, NOTIFICATION_TYPES
from cheapbite.models.conversation import Conversation, Message
from cheapbite.models.event import Event, EventParticipant, EVENT_STATUSES
from cheapbite.models.saved import SavedItem, MealPlanEntry, SAVED_KINDS, WEEK_DAYS, MEAL_SLOTS
from cheapbite.models.volunteer import VolunteerApplication

__all__ = [
    "AuthIdentity", "User", "PublicProfile", "ProfileTerm", "UsernameReservation", "follows", "GENDERS",
    "Post", "PostTerm", "Like", "Comment",
    "Notification", "NOTIFICATION_TYPES",
    "Conversation", "Message",
    "Event", "EventParticipant", "EVENT_STATUSES",
    "SavedItem", "MealPlanEntry", "SAVED_KINDS", "WEEK_DAYS", "MEAL_SLOTS",
    "VolunteerApplication",
]
