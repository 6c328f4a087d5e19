"""
Saved generations and the weekly meal plan.

Saved items are keyed ``slug(title)-<ms>``: saving the same recipe twice
gives two entries unless both saves land in the same millisecond.
"""
from pydantic import ValidationError as SchemaError

from cheapbite.errors import NotFound, ValidationError, store_transaction
from cheapbite.extensions import db
from cheapbite.models.saved import MEAL_SLOTS, SAVED_KINDS, WEEK_DAYS, MealPlanEntry, SavedItem
from cheapbite.schemas import ATTACHMENT_SCHEMAS, Recipe
from cheapbite.utils.helpers import saved_item_id, utcnow


def _validated(schema, payload: dict) -> dict:
    try:
        return schema.model_validate(payload).to_wire()
    except SchemaError as exc:
        raise ValidationError("Invalid item", fields={"item": [e["msg"] for e in exc.errors()]}) from exc


# ── Saved items ───────────────────────────────────────────────────────────────

def save_item(owner_id: str, kind: str, payload: dict, now=None) -> SavedItem:
    if kind not in SAVED_KINDS:
        raise NotFound("Unknown collection")
    data  = _validated(ATTACHMENT_SCHEMAS[kind], payload)
    title = data.get("title") or data.get("productName") or "untitled"
    at    = now or utcnow()
    item  = SavedItem(
        owner_id=owner_id,
        id=saved_item_id(title, at),
        kind=kind,
        title=title,
        payload=data,
        saved_at=at,
    )
    with store_transaction(f"users/{owner_id}/saved/{item.id}", "create", {"kind": kind, "title": title}):
        db.session.add(item)
    return item


def list_saved(owner_id: str, kind: str) -> list[SavedItem]:
    if kind not in SAVED_KINDS:
        raise NotFound("Unknown collection")
    return (
        SavedItem.query
        .filter_by(owner_id=owner_id, kind=kind)
        .order_by(SavedItem.saved_at.desc())
        .all()
    )


def delete_saved(owner_id: str, item_id: str) -> None:
    item = db.session.get(SavedItem, (owner_id, item_id))
    if item is None:
        raise NotFound("Saved item not found")
    with store_transaction(f"users/{owner_id}/saved/{item_id}", "delete"):
        db.session.delete(item)


# ── Meal plan ─────────────────────────────────────────────────────────────────

def get_meal_plan(owner_id: str) -> dict:
    """{"week": {day: {"breakfast": recipe|None, "lunch": ..., "dinner": ...}}}"""
    week = {day: {slot: None for slot in MEAL_SLOTS} for day in WEEK_DAYS}
    for entry in MealPlanEntry.query.filter_by(owner_id=owner_id).all():
        if entry.day in week and entry.slot in MEAL_SLOTS:
            week[entry.day][entry.slot] = entry.recipe
    return {"week": week}


def set_meal(owner_id: str, day: str, slot: str, recipe: dict | None) -> dict:
    day, slot = (day or "").lower(), (slot or "").lower()
    if day not in WEEK_DAYS:
        raise ValidationError("Unknown day", fields={"day": [f"One of {', '.join(WEEK_DAYS)}."]})
    if slot not in MEAL_SLOTS:
        raise ValidationError("Unknown meal", fields={"slot": [f"One of {', '.join(MEAL_SLOTS)}."]})

    entry = db.session.get(MealPlanEntry, (owner_id, day, slot))
    path  = f"users/{owner_id}/mealPlan/{day}/{slot}"
    if recipe is None:
        if entry is not None:
            with store_transaction(path, "delete"):
                db.session.delete(entry)
        return get_meal_plan(owner_id)

    data = _validated(Recipe, recipe)
    with store_transaction(path, "update", {"title": data.get("title")}):
        if entry is None:
            db.session.add(MealPlanEntry(owner_id=owner_id, day=day, slot=slot, recipe=data))
        else:
            entry.recipe = data
    return get_meal_plan(owner_id)
