"""
Content service: posts, likes and comments.

All writes go through store_transaction(), and the like / comment counters
on Post move only together with the row that justifies them:

    toggle_like   Like insert  + like_count + 1     (or delete + like_count - 1)
    add_comment   Comment insert + comment_count + 1

Posts copy their author's name and photo when they are created; later
profile edits do not rewrite them.  Deleting a post leaves its likes,
comments and notifications where they are.
"""
import logging

from pydantic import ValidationError as SchemaError
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from cheapbite.errors import (
    NotFound, PermissionDenied, StoreWriteError, ValidationError, store_transaction,
)
from cheapbite.extensions import db
from cheapbite.models.feed import Comment, Like, Post, PostTerm
from cheapbite.models.user import follows
from cheapbite.schemas import Attachment
from cheapbite.utils import fanout
from cheapbite.utils.accounts import require_profile
from cheapbite.utils.counters import bump_counter
from cheapbite.utils.helpers import generate_keywords, utcnow

log = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = 5000
MAX_COMMENT_LENGTH = 500


# ── Helpers ───────────────────────────────────────────────────────────────────

def parse_tags(tags) -> list[str]:
    """Accept 'a, B ,c' or ['a', 'B'] and return lowercase, trimmed, unique tags."""
    if not tags:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    cleaned = [str(t).strip().lower() for t in tags]
    return list(dict.fromkeys(t for t in cleaned if t))


def coerce_attachment(attachment) -> Attachment | None:
    if attachment is None or isinstance(attachment, Attachment):
        return attachment
    try:
        return Attachment.model_validate(attachment)
    except SchemaError as exc:
        raise ValidationError(
            "Invalid attachment",
            fields={"attachment": [e["msg"] for e in exc.errors()]},
        ) from exc


def post_search_terms(content: str, tags: list[str], attachment: Attachment | None) -> list[str]:
    terms = [*generate_keywords(content), *tags]
    if attachment is not None and attachment.kind in ("recipe", "beverage_recipe"):
        terms += generate_keywords(attachment.title)
        for line in attachment.ingredient_lines:
            terms += generate_keywords(line)
    return list(dict.fromkeys(terms))


def get_post(post_id: str) -> Post | None:
    return db.session.get(Post, post_id)


def require_post(post_id: str) -> Post:
    post = db.session.get(Post, post_id)
    if post is None:
        raise NotFound("Post not found")
    return post


# ── Posts ─────────────────────────────────────────────────────────────────────

def create_post(author_id: str, content: str, location: str = None, tags=None,
                external_video_url: str = None, media_url: str = None,
                attachment=None, now=None) -> Post:
    content    = (content or "").strip()
    tags       = parse_tags(tags)
    attachment = coerce_attachment(attachment)

    if len(content) > MAX_CONTENT_LENGTH:
        raise ValidationError("Post is too long",
                              fields={"content": [f"At most {MAX_CONTENT_LENGTH} characters."]})
    if not content and not media_url and attachment is None:
        raise ValidationError("Post cannot be empty", fields={"content": ["This field is required."]})

    author = require_profile(author_id)
    post = Post(
        author_id=author_id,
        author_display_name=author.display_name or "Anonymous",
        author_photo_url=author.photo_url,
        author_username=author.username,
        content=content,
        location=(location or "").strip() or None,
        tags=tags or None,
        external_video_url=(external_video_url or "").strip() or None,
        media_url=media_url or None,
        attachment_kind=attachment.kind if attachment else None,
        attachment=attachment.data if attachment else None,
        like_count=0,
        comment_count=0,
        is_public=True,
        created_at=now or utcnow(),
    )
    post.set_search_terms(post_search_terms(content, tags, attachment))
    with store_transaction("posts", "create", {"authorId": author_id}):
        db.session.add(post)
    log.info("Post %s created by %s", post.id, author_id)
    return post


def delete_post(post_id: str, requester_id: str) -> None:
    post = require_post(post_id)
    if post.author_id != requester_id:
        raise PermissionDenied("Only the author can delete this post")
    with store_transaction(f"posts/{post_id}", "delete"):
        db.session.delete(post)


# ── Likes ─────────────────────────────────────────────────────────────────────

def has_liked(post_id: str, user_id: str) -> bool:
    return db.session.get(Like, (post_id, user_id)) is not None


def toggle_like(post_id: str, user_id: str) -> dict:
    """Like ⇄ unlike.  Returns {"liked", "like_count"} after the write."""
    require_post(post_id)
    existing = db.session.get(Like, (post_id, user_id))
    path     = f"posts/{post_id}/likes/{user_id}"

    if existing is not None:
        with store_transaction(path, "delete", {"likeCount": -1}):
            db.session.delete(existing)
            db.session.flush()
            bump_counter(Post, post_id, "like_count", -1)
        liked = False
    else:
        try:
            with store_transaction(path, "create", {"likeCount": 1}):
                db.session.add(Like(post_id=post_id, user_id=user_id))
                db.session.flush()
                bump_counter(Post, post_id, "like_count", 1)
        except StoreWriteError as exc:
            # A concurrent request already created this like: nothing to add.
            if not isinstance(exc.__cause__, IntegrityError):
                raise
        else:
            fanout.dispatch("like", post_id=post_id, user_id=user_id)
        liked = True

    post = db.session.get(Post, post_id)
    db.session.refresh(post)
    return {"liked": liked, "like_count": post.like_count}


def liked_post_ids(user_id: str, post_ids: list[str]) -> set[str]:
    if not user_id or not post_ids:
        return set()
    rows = Like.query.filter(Like.user_id == user_id, Like.post_id.in_(post_ids)).all()
    return {like.post_id for like in rows}


# ── Comments ──────────────────────────────────────────────────────────────────

def add_comment(post_id: str, author_id: str, text: str, now=None) -> Comment:
    text = (text or "").strip()
    if not text:
        raise ValidationError("Comment cannot be empty", fields={"text": ["This field is required."]})
    if len(text) > MAX_COMMENT_LENGTH:
        raise ValidationError("Comment is too long",
                              fields={"text": [f"At most {MAX_COMMENT_LENGTH} characters."]})

    require_post(post_id)
    author = require_profile(author_id)
    comment = Comment(
        post_id=post_id,
        author_id=author_id,
        author_display_name=author.display_name,
        author_photo_url=author.photo_url,
        author_username=author.username,
        text=text,
        created_at=now or utcnow(),
    )
    with store_transaction(f"posts/{post_id}/comments", "create", {"commentCount": 1}):
        db.session.add(comment)
        db.session.flush()
        bump_counter(Post, post_id, "comment_count", 1)

    fanout.dispatch("comment", post_id=post_id, comment_id=comment.id,
                    author_id=author_id, text=text)
    return comment


def list_comments(post_id: str) -> list[Comment]:
    return (
        Comment.query
        .filter_by(post_id=post_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )


# ── Feed queries ──────────────────────────────────────────────────────────────

def _page(query, page: int, per_page: int) -> tuple[list[Post], bool]:
    page  = max(1, int(page or 1))
    posts = query.offset((page - 1) * per_page).limit(per_page + 1).all()
    return posts[:per_page], len(posts) > per_page


def explore_feed(page: int = 1, per_page: int = 15) -> tuple[list[Post], bool]:
    query = Post.query.filter(Post.is_public.is_(True)).order_by(Post.created_at.desc())
    return _page(query, page, per_page)


def following_feed(user_id: str, page: int = 1, per_page: int = 15) -> tuple[list[Post], bool]:
    followed = db.select(follows.c.followee_id).where(follows.c.follower_id == user_id)
    query = Post.query.filter(Post.author_id.in_(followed)).order_by(Post.created_at.desc())
    return _page(query, page, per_page)


def posts_by_author(author_id: str) -> list[Post]:
    return Post.query.filter_by(author_id=author_id).order_by(Post.created_at.desc()).all()


def search_posts(term: str, limit: int = 50) -> list[Post]:
    """Match a word against content, tags and attachment keywords."""
    words = generate_keywords(term) or [(term or "").strip().lower()]
    words = [w for w in words if w]
    if not words:
        return []
    matches = db.select(PostTerm.post_id).where(
        or_(*[PostTerm.term.startswith(w, autoescape=True) for w in words])
    )
    return (
        Post.query
        .filter(Post.is_public.is_(True), Post.id.in_(matches))
        .order_by(Post.created_at.desc())
        .limit(limit)
        .all()
    )
