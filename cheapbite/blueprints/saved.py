"""
Saved items + meal planner blueprint.

GET    /api/saved/<kind>                – saved recipes / beverage_recipes / grocery_lists / product_labels
POST   /api/saved/<kind>                – save one (body is the item)
DELETE /api/saved/<kind>/<item_id>      – remove one
GET    /api/meal-plan                   – week map day → {breakfast, lunch, dinner}
PUT    /api/meal-plan/<day>/<slot>      – {recipe: {...}} or {recipe: null}
DELETE /api/meal-plan/<day>/<slot>      – clear a slot
"""
from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from cheapbite.forms.base import json_body
from cheapbite.utils import saved

saved_bp = Blueprint("saved", __name__)


@saved_bp.route("/api/saved/<kind>")
@login_required
def list_items(kind):
    return jsonify(items=[i.to_dict() for i in saved.list_saved(current_user.id, kind)])


@saved_bp.route("/api/saved/<kind>", methods=["POST"])
@login_required
def save(kind):
    item = saved.save_item(current_user.id, kind, json_body())
    return jsonify(item.to_dict()), 201


@saved_bp.route("/api/saved/<kind>/<item_id>", methods=["DELETE"])
@login_required
def delete(kind, item_id):
    saved.delete_saved(current_user.id, item_id)
    return jsonify(success=True)


# ── Meal plan ─────────────────────────────────────────────────────────────────

@saved_bp.route("/api/meal-plan")
@login_required
def meal_plan():
    return jsonify(saved.get_meal_plan(current_user.id))


@saved_bp.route("/api/meal-plan/<day>/<slot>", methods=["PUT"])
@login_required
def set_meal(day, slot):
    return jsonify(saved.set_meal(current_user.id, day, slot, json_body().get("recipe")))


@saved_bp.route("/api/meal-plan/<day>/<slot>", methods=["DELETE"])
@login_required
def clear_meal(day, slot):
    return jsonify(saved.set_meal(current_user.id, day, slot, None))
