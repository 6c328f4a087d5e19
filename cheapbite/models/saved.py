"""Per-user saved generations and the weekly meal plan."""
from cheapbite.extensions import db
from cheapbite.utils.helpers import utcnow

SAVED_KINDS = ("recipe", "beverage_recipe", "grocery_list", "product_label")
WEEK_DAYS   = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
MEAL_SLOTS  = ("breakfast", "lunch", "dinner")


class SavedItem(db.Model):
    __tablename__ = "saved_items"

    owner_id = db.Column(db.String(64), db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    id       = db.Column(db.String(300), primary_key=True)   # slug(title)-<ms>
    kind     = db.Column(db.String(30), nullable=False, index=True)
    title    = db.Column(db.String(200), nullable=False)
    payload  = db.Column(db.JSON, nullable=False)
    saved_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self) -> dict:
        data = dict(self.payload or {})
        data.update({
            "id":      self.id,
            "kind":    self.kind,
            "savedAt": self.saved_at.isoformat(),
        })
        return data


class MealPlanEntry(db.Model):
    __tablename__ = "meal_plan_entries"

    owner_id   = db.Column(db.String(64), db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    day        = db.Column(db.String(10), primary_key=True)
    slot       = db.Column(db.String(10), primary_key=True)
    recipe     = db.Column(db.JSON, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)
