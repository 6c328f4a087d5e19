"""
Follow graph helpers.

An edge is a row in ``follows``.  Adding or removing it moves the follower's
following_count and the followee's follower_count in the same commit, so the
three never disagree.  A failed commit is reported and raised; the caller
decides how to undo whatever it showed optimistically.
"""
import logging

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError

from cheapbite.errors import StoreWriteError, ValidationError, store_transaction
from cheapbite.extensions import db
from cheapbite.models.user import PublicProfile, follows
from cheapbite.utils import fanout
from cheapbite.utils.accounts import require_profile
from cheapbite.utils.counters import bump_counter
from cheapbite.utils.helpers import utcnow

log = logging.getLogger(__name__)


def is_following(follower_id: str, followee_id: str) -> bool:
    row = db.session.execute(
        select(follows.c.follower_id).where(
            follows.c.follower_id == follower_id,
            follows.c.followee_id == followee_id,
        )
    ).first()
    return row is not None


def toggle_follow(follower_id: str, followee_id: str) -> dict:
    """Flip the follower → followee edge and both counters.

    Returns {"following", "follower_count", "following_count"} where the
    counts are the followee's follower_count and the follower's
    following_count after the write.
    """
    if follower_id == followee_id:
        raise ValidationError("You cannot follow yourself",
                              fields={"uid": ["Cannot follow yourself."]})
    require_profile(follower_id)
    require_profile(followee_id)

    was_following = is_following(follower_id, followee_id)
    path  = f"publicProfiles/{followee_id}"
    delta = -1 if was_following else 1

    try:
        with store_transaction(path, "update", {"followerCount": delta, "follower": follower_id}):
            if was_following:
                removed = db.session.execute(
                    delete(follows).where(
                        follows.c.follower_id == follower_id,
                        follows.c.followee_id == followee_id,
                    )
                ).rowcount
                if removed:
                    bump_counter(PublicProfile, follower_id, "following_count", -1)
                    bump_counter(PublicProfile, followee_id, "follower_count", -1)
            else:
                db.session.execute(
                    insert(follows).values(
                        follower_id=follower_id,
                        followee_id=followee_id,
                        created_at=utcnow(),
                    )
                )
                bump_counter(PublicProfile, follower_id, "following_count", 1)
                bump_counter(PublicProfile, followee_id, "follower_count", 1)
    except StoreWriteError as exc:
        # A concurrent request already created this edge: nothing to add.
        if was_following or not isinstance(exc.__cause__, IntegrityError):
            raise
    else:
        if not was_following:
            fanout.dispatch("follow", follower_id=follower_id, followee_id=followee_id)

    follower = db.session.get(PublicProfile, follower_id)
    followee = db.session.get(PublicProfile, followee_id)
    db.session.refresh(follower)
    db.session.refresh(followee)
    log.info("%s %s %s", follower_id, "unfollowed" if was_following else "followed", followee_id)
    return {
        "following":       not was_following,
        "follower_count":  followee.follower_count,
        "following_count": follower.following_count,
    }


def list_following(user_id: str) -> list[PublicProfile]:
    return (
        PublicProfile.query
        .join(follows, follows.c.followee_id == PublicProfile.id)
        .filter(follows.c.follower_id == user_id)
        .order_by(follows.c.created_at.desc())
        .all()
    )


def list_followers(user_id: str) -> list[PublicProfile]:
    return (
        PublicProfile.query
        .join(follows, follows.c.follower_id == PublicProfile.id)
        .filter(follows.c.followee_id == user_id)
        .order_by(follows.c.created_at.desc())
        .all()
    )
