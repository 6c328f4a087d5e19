"""
Profiles blueprint.

GET   /api/profiles/search?q=            – find people by name or username
GET   /api/profiles/<uid|username|me>    – public profile
PATCH /api/profiles/me                   – edit own profile
POST  /api/profiles/me/image             – upload photo or cover (kind=photo|cover)
POST  /api/profiles/<uid>/follow         – toggle follow
GET   /api/profiles/<uid>/followers      – who follows uid
GET   /api/profiles/<uid>/following      – who uid follows
GET   /api/profiles/<uid>/posts          – uid's posts, newest first
"""
from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from cheapbite.blueprints.feed import serialize_posts
from cheapbite.errors import NotFound, ValidationError
from cheapbite.forms.base import bind_form, json_body
from cheapbite.forms.profile import ProfileForm
from cheapbite.utils import social_graph
from cheapbite.utils.accounts import (
    PROFILE_FIELDS, get_public_profile, require_profile, search_profiles, update_profile,
)
from cheapbite.utils.content_service import posts_by_author
from cheapbite.utils.media import profile_image_path, upload_image

profiles_bp = Blueprint("profiles", __name__)


def _resolve(identifier: str):
    if identifier == "me":
        identifier = current_user.id
    profile = get_public_profile(identifier)
    if profile is None:
        raise NotFound("Profile not found")
    return profile


def _profile_view(profile) -> dict:
    data = profile.to_dict()
    data["isMe"]        = profile.id == current_user.id
    data["isFollowing"] = (not data["isMe"]) and social_graph.is_following(current_user.id, profile.id)
    return data


@profiles_bp.route("/api/profiles/search")
@login_required
def search():
    hits = search_profiles(request.args.get("q", ""))
    return jsonify(profiles=[p.to_dict() for p in hits])


@profiles_bp.route("/api/profiles/<identifier>")
@login_required
def get_profile(identifier):
    return jsonify(_profile_view(_resolve(identifier)))


@profiles_bp.route("/api/profiles/me", methods=["PATCH"])
@login_required
def edit_profile():
    form      = bind_form(ProfileForm)
    submitted = json_body() if request.is_json else request.form
    fields    = {name: form[name].data for name in PROFILE_FIELDS if name in submitted}
    if not fields:
        raise ValidationError("Nothing to update")
    profile = update_profile(current_user.id, fields)
    return jsonify(_profile_view(profile))


@profiles_bp.route("/api/profiles/me/image", methods=["POST"])
@login_required
def upload_profile_image():
    upload = request.files.get("file")
    if upload is None:
        raise ValidationError("No file", fields={"file": ["Choose an image to upload."]})
    kind = request.form.get("kind", "photo")
    path = profile_image_path(current_user.id, kind, upload.filename)
    url  = upload_image(path, upload.read(), upload.mimetype)
    column  = "photo_url" if kind == "photo" else "cover_photo_url"
    profile = update_profile(current_user.id, {column: url})
    return jsonify(url=url, profile=_profile_view(profile)), 201


# ── Social graph ──────────────────────────────────────────────────────────────

@profiles_bp.route("/api/profiles/<uid>/follow", methods=["POST"])
@login_required
def toggle_follow(uid):
    result = social_graph.toggle_follow(current_user.id, uid)
    return jsonify(success=True, **result)


@profiles_bp.route("/api/profiles/<uid>/followers")
@login_required
def followers(uid):
    require_profile(uid)
    return jsonify(profiles=[p.to_dict() for p in social_graph.list_followers(uid)])


@profiles_bp.route("/api/profiles/<uid>/following")
@login_required
def following(uid):
    require_profile(uid)
    return jsonify(profiles=[p.to_dict() for p in social_graph.list_following(uid)])


@profiles_bp.route("/api/profiles/<uid>/posts")
@login_required
def profile_posts(uid):
    profile = _resolve(uid)
    return jsonify(posts=serialize_posts(posts_by_author(profile.id), current_user.id))
