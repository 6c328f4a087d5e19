from cheapbite.extensions import db
from cheapbite.utils.helpers import new_id, utcnow


class VolunteerApplication(db.Model):
    """An offer to help, sent from the offer-help page.  Never edited."""
    __tablename__ = "volunteers"

    id         = db.Column(db.String(64), primary_key=True, default=new_id)
    user_id    = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False, index=True)
    name       = db.Column(db.String(100), nullable=False)
    email      = db.Column(db.String(200), nullable=False)
    message    = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id":        self.id,
            "userId":    self.user_id,
            "name":      self.name,
            "email":     self.email,
            "message":   self.message,
            "createdAt": self.created_at.isoformat(),
        }
