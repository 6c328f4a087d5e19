"""
Miscellaneous helpers used across services and blueprints.

The ID helpers here are part of the external contract: both participants of a
chat must derive the same thread id, and saved items use a readable
slug-plus-timestamp key.
"""
import re
import uuid
from datetime import datetime, timezone

_SLUG_SPACE_RE = re.compile(r"\s+")


def new_id() -> str:
    """Random document id (32 hex chars, no dashes)."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    """Naive UTC timestamp, which is what the DateTime columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def thread_id(user_a: str, user_b: str) -> str:
    """Order-independent chat thread id: both sides resolve to the same key."""
    return "-".join(sorted([user_a, user_b]))


def slugify(title: str) -> str:
    return _SLUG_SPACE_RE.sub("-", (title or "").strip().lower())


def saved_item_id(title: str, now: datetime = None) -> str:
    """``slug(title)-<epoch ms>``. Saving the same title twice gives two ids."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return f"{slugify(title)}-{int(now.timestamp() * 1000)}"


def generate_keywords(text: str) -> list[str]:
    """Lowercase words longer than two characters, de-duplicated in order."""
    if not text:
        return []
    words = [w for w in text.lower().split() if len(w) > 2]
    return list(dict.fromkeys(words))


MAX_TERM_LENGTH = 200


def normalize_terms(terms) -> list[str]:
    """Non-empty, at most MAX_TERM_LENGTH characters, first occurrence wins."""
    cleaned = (str(t)[:MAX_TERM_LENGTH] for t in terms or [] if t)
    return list(dict.fromkeys(cleaned))


def snippet(text: str, limit: int = 50) -> str:
    return (text or "")[:limit]


def relative_time(dt: datetime) -> str:
    diff = utcnow() - dt
    s    = int(diff.total_seconds())
    if s < 60:      return "just now"
    if s < 3600:    return f"{s // 60}m ago"
    if s < 86400:   return f"{s // 3600}h ago"
    if s < 604800:  return f"{s // 86400}d ago"
    return dt.strftime("%b %d")
