"""
Generation blueprint: thin JSON front for the content-generation service.

POST   /api/generate/recipes          – {ingredients[], dietaryRestrictions[], cuisine}
POST   /api/generate/beverages        – {ingredients[], preferences[]}
POST   /api/generate/grocery-list     – {list, photoDataUri, region}
POST   /api/generate/product-label    – {productName, ingredientsText, photoDataUri}
POST   /api/generate/meal             – {mealName, preferences[]}
POST   /api/generate/speech           – {text}
POST   /api/generate/image            – {kind, title, description}
POST   /api/generate/post-image       – {photoDataUri} → {category, title, description} for a new post
POST   /api/generate/identify         – {photoDataUri, target: food|beverage} → job (202)
GET    /api/generate/jobs/<id>        – job status / result
DELETE /api/generate/jobs/<id>        – cancel; a late result is discarded

Every route is rate-limited with GENERATION_RATE_LIMIT.
"""
from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required

from cheapbite.errors import ValidationError
from cheapbite.extensions import limiter
from cheapbite.forms.base import json_body
from cheapbite.utils.generation import get_generation_client, get_generation_jobs, require_photo

generation_bp = Blueprint("generation", __name__)


def _generation_limit() -> str:
    return current_app.config.get("GENERATION_RATE_LIMIT", "20 per minute")


@generation_bp.route("/api/generate/recipes", methods=["POST"])
@login_required
@limiter.limit(_generation_limit)
def recipes():
    body = json_body()
    out  = get_generation_client().generate_recipes(
        body.get("ingredients"),
        dietary_restrictions=body.get("dietaryRestrictions"),
        cuisine=body.get("cuisine"),
    )
    return jsonify(out.to_wire())


@generation_bp.route("/api/generate/beverages", methods=["POST"])
@login_required
@limiter.limit(_generation_limit)
def beverages():
    body = json_body()
    out  = get_generation_client().generate_beverage(body.get("ingredients"), body.get("preferences"))
    return jsonify(out.to_wire())


@generation_bp.route("/api/generate/grocery-list", methods=["POST"])
@login_required
@limiter.limit(_generation_limit)
def grocery_list():
    body = json_body()
    out  = get_generation_client().process_grocery_list(
        text=body.get("list"), photo=body.get("photoDataUri"), region=body.get("region"),
    )
    return jsonify(out.to_wire())


@generation_bp.route("/api/generate/product-label", methods=["POST"])
@login_required
@limiter.limit(_generation_limit)
def product_label():
    body = json_body()
    out  = get_generation_client().analyze_product_label(
        product_name=body.get("productName"),
        ingredients_text=body.get("ingredientsText"),
        photo=body.get("photoDataUri"),
    )
    return jsonify(out.to_wire())


@generation_bp.route("/api/generate/meal", methods=["POST"])
@login_required
@limiter.limit(_generation_limit)
def meal():
    body = json_body()
    out  = get_generation_client().generate_for_meal(body.get("mealName"), body.get("preferences"))
    return jsonify(out.to_wire())


@generation_bp.route("/api/generate/speech", methods=["POST"])
@login_required
@limiter.limit(_generation_limit)
def speech():
    out = get_generation_client().text_to_speech(json_body().get("text"))
    return jsonify(out.to_wire())


@generation_bp.route("/api/generate/image", methods=["POST"])
@login_required
@limiter.limit(_generation_limit)
def image():
    body = json_body()
    out  = get_generation_client().generate_image(body.get("kind"), body.get("title"), body.get("description"))
    return jsonify(out.to_wire())


@generation_bp.route("/api/generate/post-image", methods=["POST"])
@login_required
@limiter.limit(_generation_limit)
def post_image():
    out = get_generation_client().analyze_post_image(json_body().get("photoDataUri"))
    return jsonify(out.to_wire())


# ── Cancellable photo identification ─────────────────────────────────────────

@generation_bp.route("/api/generate/identify", methods=["POST"])
@login_required
@limiter.limit(_generation_limit)
def identify():
    body   = json_body()
    photo  = body.get("photoDataUri")
    target = body.get("target", "food")
    client = get_generation_client()
    if target == "food":
        fn = client.identify_from_image
    elif target == "beverage":
        fn = client.identify_beverage_from_image
    else:
        raise ValidationError("Unknown target", fields={"target": ["One of food, beverage."]})
    require_photo(photo)
    job = get_generation_jobs().submit(f"identify-{target}", current_user.id, fn, photo)
    return jsonify(job.to_dict()), 202


@generation_bp.route("/api/generate/jobs/<job_id>")
@login_required
def job_status(job_id):
    return jsonify(get_generation_jobs().get(job_id, current_user.id).to_dict())


@generation_bp.route("/api/generate/jobs/<job_id>", methods=["DELETE"])
@login_required
def cancel_job(job_id):
    return jsonify(get_generation_jobs().cancel(job_id, current_user.id).to_dict())
