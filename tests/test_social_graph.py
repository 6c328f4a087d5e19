"""
Tests for follow edges and follower / following counters.
"""
import pytest
from sqlalchemy.exc import OperationalError

from cheapbite.errors import NotFound, StoreWriteError, ValidationError, recent_write_failures
from cheapbite.extensions import db
from cheapbite.models.notification import Notification
from cheapbite.models.user import PublicProfile, follows
from cheapbite.utils import social_graph
from cheapbite.utils.counters import bump_counter
from cheapbite.utils.social_graph import (
    is_following, list_followers, list_following, toggle_follow,
)


def _edges() -> int:
    return db.session.execute(db.select(db.func.count()).select_from(follows)).scalar()


class TestToggleFollow:

    def test_follow_then_unfollow(self, make_user):
        make_user("alice")
        make_user("bob")

        result = toggle_follow("alice", "bob")
        assert result == {"following": True, "follower_count": 1, "following_count": 1}
        assert is_following("alice", "bob")
        assert not is_following("bob", "alice")

        result = toggle_follow("alice", "bob")
        assert result == {"following": False, "follower_count": 0, "following_count": 0}
        assert _edges() == 0

    def test_counters_match_edges(self, make_user):
        for uid in ("alice", "bob", "carol"):
            make_user(uid)
        toggle_follow("alice", "carol")
        toggle_follow("bob", "carol")
        toggle_follow("carol", "alice")
        toggle_follow("bob", "carol")

        carol = db.session.get(PublicProfile, "carol")
        db.session.refresh(carol)
        assert carol.follower_count == len(list_followers("carol")) == 1
        assert carol.following_count == len(list_following("carol")) == 1

    def test_self_follow_rejected(self, make_user):
        make_user("alice")
        with pytest.raises(ValidationError):
            toggle_follow("alice", "alice")

    def test_unknown_account(self, make_user):
        make_user("alice")
        with pytest.raises(NotFound):
            toggle_follow("alice", "ghost")

    def test_follow_notifies_followee_once(self, make_user):
        make_user("alice")
        make_user("bob")
        toggle_follow("alice", "bob")
        toggle_follow("alice", "bob")
        toggle_follow("alice", "bob")

        notifs = Notification.query.filter_by(recipient_id="bob").all()
        assert len(notifs) == 1
        assert notifs[0].type == "follow"
        assert notifs[0].sender_id == "alice"
        assert Notification.query.filter_by(recipient_id="alice").count() == 0

    def test_edge_created_by_another_request_counts_as_followed(self, make_user, monkeypatch):
        make_user("alice")
        make_user("bob")
        toggle_follow("alice", "bob")
        # the second request read the graph before the first one committed
        monkeypatch.setattr(social_graph, "is_following", lambda follower, followee: False)

        result = toggle_follow("alice", "bob")

        assert result == {"following": True, "follower_count": 1, "following_count": 1}
        assert _edges() == 1
        assert Notification.query.filter_by(recipient_id="bob").count() == 1

    def test_failed_write_changes_nothing_and_is_recorded(self, make_user, monkeypatch):
        make_user("alice")
        make_user("bob")

        def broken(*args, **kwargs):
            raise OperationalError("UPDATE public_profiles", {}, Exception("disk I/O error"))
        monkeypatch.setattr(social_graph, "bump_counter", broken)

        with pytest.raises(StoreWriteError):
            toggle_follow("alice", "bob")

        assert _edges() == 0
        for uid in ("alice", "bob"):
            profile = db.session.get(PublicProfile, uid)
            db.session.refresh(profile)
            assert (profile.follower_count, profile.following_count) == (0, 0)
        failure = recent_write_failures()[-1]
        assert (failure.path, failure.operation) == ("publicProfiles/bob", "update")
        assert failure.payload == {"followerCount": 1, "follower": "alice"}
        assert Notification.query.count() == 0


class TestCounterGuard:

    def test_decrement_never_goes_negative(self, make_user):
        make_user("alice")
        changed = bump_counter(PublicProfile, "alice", "follower_count", -1)
        db.session.commit()
        assert changed == 0
        profile = db.session.get(PublicProfile, "alice")
        db.session.refresh(profile)
        assert profile.follower_count == 0
