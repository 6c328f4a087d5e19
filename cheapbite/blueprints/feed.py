"""
Social feed blueprint.

GET    /api/feed?scope=explore|following&page=N  – paginated feed (15 per page)
GET    /api/posts/search?q=                      – search public posts
POST   /api/posts                                – create a post
POST   /api/posts/media                          – upload an image for a post
GET    /api/posts/<id>                           – one post
DELETE /api/posts/<id>                           – delete own post
POST   /api/posts/<id>/like                      – toggle like
GET    /api/posts/<id>/comments                  – comments, oldest first
POST   /api/posts/<id>/comments                  – add a comment
"""
from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from cheapbite.errors import ValidationError
from cheapbite.forms.base import bind_form, json_body
from cheapbite.forms.feed import CommentForm, PostForm
from cheapbite.utils import content_service as posts
from cheapbite.utils.helpers import relative_time
from cheapbite.utils.media import post_media_path, upload_image

feed_bp = Blueprint("feed", __name__)

# ── helpers ───────────────────────────────────────────────────────────────────

def _viewer_id():
    return current_user.id if current_user.is_authenticated else None


def serialize_posts(post_list, viewer_id=None) -> list[dict]:
    liked = posts.liked_post_ids(viewer_id, [p.id for p in post_list])
    out = []
    for p in post_list:
        data = p.to_dict(liked_by_me=p.id in liked)
        data["relativeTime"] = relative_time(p.created_at)
        data["isMine"]       = viewer_id is not None and p.author_id == viewer_id
        out.append(data)
    return out


# ── Feed endpoints ────────────────────────────────────────────────────────────

@feed_bp.route("/api/feed")
@login_required
def get_feed():
    try:
        page = max(1, int(request.args.get("page", 1)))
    except ValueError:
        raise ValidationError("Invalid page", fields={"page": ["Must be a number."]})
    scope    = request.args.get("scope", "explore")
    per_page = current_app.config.get("FEED_PAGE_SIZE", 15)

    if scope == "following":
        post_list, has_more = posts.following_feed(current_user.id, page, per_page)
    elif scope == "explore":
        post_list, has_more = posts.explore_feed(page, per_page)
    else:
        raise ValidationError("Unknown feed", fields={"scope": ["One of explore, following."]})

    return jsonify({
        "posts":    serialize_posts(post_list, current_user.id),
        "has_more": has_more,
        "page":     page,
    })


@feed_bp.route("/api/posts/search")
@login_required
def search():
    hits = posts.search_posts(request.args.get("q", ""))
    return jsonify(posts=serialize_posts(hits, current_user.id))


# ── Post CRUD ─────────────────────────────────────────────────────────────────

@feed_bp.route("/api/posts", methods=["POST"])
@login_required
def create_post():
    form = bind_form(PostForm)
    body = json_body()
    post = posts.create_post(
        author_id=current_user.id,
        content=form.content.data,
        location=form.location.data,
        tags=body.get("tags") if isinstance(body.get("tags"), list) else form.tags.data,
        external_video_url=form.external_video_url.data,
        media_url=form.media_url.data,
        attachment=body.get("attachment"),
    )
    return jsonify(serialize_posts([post], current_user.id)[0]), 201


@feed_bp.route("/api/posts/media", methods=["POST"])
@login_required
def upload_media():
    upload = request.files.get("file")
    if upload is None:
        raise ValidationError("No file", fields={"file": ["Choose an image to upload."]})
    path = post_media_path(current_user.id, upload.filename)
    url  = upload_image(path, upload.read(), upload.mimetype)
    return jsonify(mediaURL=url), 201


@feed_bp.route("/api/posts/<post_id>")
@login_required
def get_post(post_id):
    post = posts.require_post(post_id)
    return jsonify(serialize_posts([post], current_user.id)[0])


@feed_bp.route("/api/posts/<post_id>", methods=["DELETE"])
@login_required
def delete_post(post_id):
    posts.delete_post(post_id, current_user.id)
    return jsonify(success=True)


# ── Like toggle ───────────────────────────────────────────────────────────────

@feed_bp.route("/api/posts/<post_id>/like", methods=["POST"])
@login_required
def toggle_like(post_id):
    result = posts.toggle_like(post_id, current_user.id)
    return jsonify(success=True, liked=result["liked"], like_count=result["like_count"])


# ── Comments ──────────────────────────────────────────────────────────────────

@feed_bp.route("/api/posts/<post_id>/comments")
@login_required
def list_comments(post_id):
    posts.require_post(post_id)
    return jsonify(comments=[
        dict(c.to_dict(viewer_id=current_user.id), relativeTime=relative_time(c.created_at))
        for c in posts.list_comments(post_id)
    ])


@feed_bp.route("/api/posts/<post_id>/comments", methods=["POST"])
@login_required
def add_comment(post_id):
    form    = bind_form(CommentForm)
    comment = posts.add_comment(post_id, current_user.id, form.text.data)
    return jsonify(success=True, comment=comment.to_dict(viewer_id=current_user.id)), 201
