"""
Tests for posts, likes, comments and feed queries in cheapbite.utils.content_service.
"""
import threading
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from cheapbite import create_app
from cheapbite.config import TestingConfig
from cheapbite.errors import (
    NotFound, PermissionDenied, StoreWriteError, ValidationError, recent_write_failures,
)
from cheapbite.extensions import db
from cheapbite.models.feed import Comment, Like, Post, PostTerm
from cheapbite.utils import content_service as svc
from cheapbite.utils.accounts import Identity, create_account, update_profile
from cheapbite.utils.social_graph import toggle_follow


def _fresh(post_id) -> Post:
    post = db.session.get(Post, post_id)
    db.session.refresh(post)
    return post


# ── create_post ───────────────────────────────────────────────────────────────

class TestCreatePost:

    def test_snapshot_and_defaults(self, make_user):
        make_user("alice", display_name="Alice")
        post = svc.create_post("alice", "  Rice and beans tonight  ", tags="Dinner, Budget ,dinner")

        assert post.content == "Rice and beans tonight"
        assert post.author_display_name == "Alice"
        assert post.author_username == "alice"
        assert post.tags == ["dinner", "budget"]
        assert post.like_count == 0
        assert post.comment_count == 0
        assert post.is_public is True
        assert "rice" in post.searchable_terms
        assert "beans" in post.searchable_terms
        assert "and" in post.searchable_terms

    def test_empty_post_rejected(self, make_user):
        make_user("alice")
        with pytest.raises(ValidationError):
            svc.create_post("alice", "   ")

    def test_media_only_post_allowed(self, make_user):
        make_user("alice")
        post = svc.create_post("alice", "", media_url="/media/posts/alice/1-pic.png")
        assert post.media_url == "/media/posts/alice/1-pic.png"

    def test_unknown_author(self, app_ctx):
        with pytest.raises(NotFound):
            svc.create_post("ghost", "hello")

    def test_snapshot_not_rewritten_by_profile_edit(self, make_user):
        make_user("alice", display_name="Alice")
        post = svc.create_post("alice", "Soup")
        update_profile("alice", {"display_name": "Alicia"})
        assert _fresh(post.id).author_display_name == "Alice"

    def test_recipe_attachment(self, make_user, sample_recipe):
        make_user("alice")
        post = svc.create_post("alice", "Try this", attachment={"kind": "recipe", "data": sample_recipe})
        post = _fresh(post.id)
        assert post.attachment_kind == "recipe"
        assert post.attachment["title"] == "Cheap Pasta"
        assert "pasta" in post.searchable_terms
        assert "tomatoes" in post.searchable_terms

    def test_invalid_attachment(self, make_user):
        make_user("alice")
        with pytest.raises(ValidationError):
            svc.create_post("alice", "x", attachment={"kind": "recipe", "data": {"title": "No body"}})
        with pytest.raises(ValidationError):
            svc.create_post("alice", "x", attachment={"kind": "video", "data": {}})

    def test_post_without_attachment_has_none(self, make_user):
        make_user("alice")
        post = _fresh(svc.create_post("alice", "plain").id)
        assert post.attachment_kind is None
        assert post.attachment is None


# ── toggle_like ───────────────────────────────────────────────────────────────

class TestToggleLike:

    def test_like_and_unlike(self, make_user):
        make_user("alice")
        make_user("bob")
        post = svc.create_post("alice", "Stew")

        assert svc.toggle_like(post.id, "bob") == {"liked": True, "like_count": 1}
        assert svc.has_liked(post.id, "bob")
        assert svc.toggle_like(post.id, "bob") == {"liked": False, "like_count": 0}
        assert not svc.has_liked(post.id, "bob")

    def test_count_matches_rows(self, make_user):
        for uid in ("alice", "bob", "carol", "dave"):
            make_user(uid)
        post = svc.create_post("alice", "Curry")
        for uid in ("bob", "carol", "dave", "bob", "alice", "carol", "bob"):
            svc.toggle_like(post.id, uid)

        rows = Like.query.filter_by(post_id=post.id).count()
        assert _fresh(post.id).like_count == rows == 3

    def test_missing_post(self, make_user):
        make_user("bob")
        with pytest.raises(NotFound):
            svc.toggle_like("nope", "bob")

    def test_failed_write_changes_nothing_and_is_recorded(self, make_user, monkeypatch):
        make_user("alice")
        make_user("bob")
        post = svc.create_post("alice", "Soup")

        def broken(*args, **kwargs):
            raise OperationalError("UPDATE posts", {}, Exception("disk I/O error"))
        monkeypatch.setattr(svc, "bump_counter", broken)

        with pytest.raises(StoreWriteError):
            svc.toggle_like(post.id, "bob")

        assert _fresh(post.id).like_count == 0
        assert Like.query.filter_by(post_id=post.id).count() == 0
        failure = recent_write_failures()[-1]
        assert failure.path == f"posts/{post.id}/likes/bob"
        assert failure.operation == "create"
        assert failure.payload == {"likeCount": 1}

    def test_liked_post_ids(self, make_user):
        make_user("alice")
        p1 = svc.create_post("alice", "one")
        p2 = svc.create_post("alice", "two")
        svc.toggle_like(p2.id, "alice")
        assert svc.liked_post_ids("alice", [p1.id, p2.id]) == {p2.id}
        assert svc.liked_post_ids(None, [p1.id]) == set()


# ── comments ──────────────────────────────────────────────────────────────────

class TestComments:

    def test_add_comment_increments_count(self, make_user):
        make_user("alice")
        make_user("bob")
        post = svc.create_post("alice", "Bread")
        comment = svc.add_comment(post.id, "bob", "  Looks great  ")

        assert comment.text == "Looks great"
        assert comment.author_display_name == "Bob"
        assert _fresh(post.id).comment_count == 1 == Comment.query.filter_by(post_id=post.id).count()

    def test_empty_comment(self, make_user):
        make_user("alice")
        post = svc.create_post("alice", "Bread")
        with pytest.raises(ValidationError):
            svc.add_comment(post.id, "alice", "   ")
        assert _fresh(post.id).comment_count == 0

    def test_too_long_comment(self, make_user):
        make_user("alice")
        post = svc.create_post("alice", "Bread")
        with pytest.raises(ValidationError):
            svc.add_comment(post.id, "alice", "x" * 501)

    def test_comment_on_missing_post(self, make_user):
        make_user("alice")
        with pytest.raises(NotFound):
            svc.add_comment("nope", "alice", "hello")

    def test_listed_oldest_first(self, make_user):
        make_user("alice")
        post = svc.create_post("alice", "Bread")
        t0 = datetime(2030, 1, 1, 12, 0)
        svc.add_comment(post.id, "alice", "second", now=t0 + timedelta(minutes=5))
        svc.add_comment(post.id, "alice", "first", now=t0)
        assert [c.text for c in svc.list_comments(post.id)] == ["first", "second"]


# ── delete_post ───────────────────────────────────────────────────────────────

class TestDeletePost:

    def test_only_author_can_delete(self, make_user):
        make_user("alice")
        make_user("bob")
        post = svc.create_post("alice", "Mine")
        with pytest.raises(PermissionDenied):
            svc.delete_post(post.id, "bob")
        assert svc.get_post(post.id) is not None

    def test_delete_leaves_likes_and_comments(self, make_user):
        make_user("alice")
        make_user("bob")
        post = svc.create_post("alice", "Short-lived")
        post_id = post.id
        svc.toggle_like(post_id, "bob")
        svc.add_comment(post_id, "bob", "nice")

        svc.delete_post(post_id, "alice")

        assert svc.get_post(post_id) is None
        assert Like.query.filter_by(post_id=post_id).count() == 1
        assert Comment.query.filter_by(post_id=post_id).count() == 1

    def test_deleted_post_leaves_feeds_and_takes_no_comments(self, make_user):
        make_user("alice")
        make_user("bob")
        toggle_follow("bob", "alice")
        kept = svc.create_post("alice", "Still here")
        gone = svc.create_post("alice", "Deleted soon")
        gone_id = gone.id

        svc.delete_post(gone_id, "alice")

        explore, _   = svc.explore_feed()
        following, _ = svc.following_feed("bob")
        assert [p.id for p in explore] == [kept.id]
        assert [p.id for p in following] == [kept.id]
        with pytest.raises(NotFound):
            svc.add_comment(gone_id, "bob", "too late")
        assert Comment.query.filter_by(post_id=gone_id).count() == 0


# ── feeds + search ────────────────────────────────────────────────────────────

class TestFeeds:

    def test_explore_newest_first_with_paging(self, make_user):
        make_user("alice")
        t0 = datetime(2030, 1, 1)
        ids = [svc.create_post("alice", f"post {n}", now=t0 + timedelta(hours=n)).id for n in range(4)]

        page1, more1 = svc.explore_feed(page=1, per_page=3)
        page2, more2 = svc.explore_feed(page=2, per_page=3)
        assert [p.id for p in page1] == ids[::-1][:3]
        assert more1 is True
        assert [p.id for p in page2] == [ids[0]]
        assert more2 is False

    def test_following_feed(self, make_user):
        for uid in ("alice", "bob", "carol"):
            make_user(uid)
        svc.create_post("bob", "from bob")
        svc.create_post("carol", "from carol")
        toggle_follow("alice", "bob")

        posts, _ = svc.following_feed("alice")
        assert [p.author_id for p in posts] == ["bob"]

    def test_posts_by_author(self, make_user):
        make_user("alice")
        make_user("bob")
        svc.create_post("alice", "a1")
        svc.create_post("bob", "b1")
        assert [p.content for p in svc.posts_by_author("alice")] == ["a1"]

    def test_search_matches_content_tags_and_prefix(self, make_user):
        make_user("alice")
        p1 = svc.create_post("alice", "Lentil soup for the week", tags=["vegan"])
        p2 = svc.create_post("alice", "Fried rice")

        assert [p.id for p in svc.search_posts("lentil")] == [p1.id]
        assert [p.id for p in svc.search_posts("VEG")] == [p1.id]
        assert [p.id for p in svc.search_posts("rice")] == [p2.id]
        assert svc.search_posts("pizza") == []

    def test_search_accented_words(self, make_user):
        make_user("alice")
        post = svc.create_post("alice", "Easy crème brûlée tonight")
        assert [p.id for p in svc.search_posts("brûlée")] == [post.id]
        assert [p.id for p in svc.search_posts("crè")] == [post.id]

    def test_search_skips_deleted_post(self, make_user):
        make_user("alice")
        post = svc.create_post("alice", "Lentil soup")
        svc.delete_post(post.id, "alice")
        assert svc.search_posts("lentil") == []
        assert PostTerm.query.filter_by(post_id=post.id).count() == 0


# ── concurrent writers ────────────────────────────────────────────────────────

@pytest.fixture
def file_app(tmp_path, monkeypatch):
    """An app on a SQLite file, so each thread gets its own connection."""
    monkeypatch.setattr(TestingConfig, "SQLALCHEMY_DATABASE_URI", f"sqlite:///{tmp_path / 'cheapbite.db'}")
    app = create_app("testing")
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


class TestConcurrentLikes:

    def test_like_count_matches_rows(self, file_app):
        likers = [f"user{n}" for n in range(8)]
        with file_app.app_context():
            for uid in ["alice", *likers]:
                create_account(Identity(uid=uid, email=f"{uid}@example.com", display_name=uid.title()))
            post_id = svc.create_post("alice", "Big pot of soup").id

        errors  = []
        barrier = threading.Barrier(len(likers))

        def like_three_times(uid):
            with file_app.app_context():
                barrier.wait()
                try:
                    for _ in range(3):
                        svc.toggle_like(post_id, uid)
                except Exception as exc:
                    errors.append(exc)

        threads = [threading.Thread(target=like_three_times, args=(uid,)) for uid in likers]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert errors == []
        with file_app.app_context():
            rows = Like.query.filter_by(post_id=post_id).count()
            assert db.session.get(Post, post_id).like_count == rows == len(likers)
