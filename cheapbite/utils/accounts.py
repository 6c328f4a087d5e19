"""
Account service: sign-in identities, account creation, profile edits.

create_account() runs on every sign-in, so it must be a silent no-op for an
account that already exists.  Profile writes always touch the private and
public records together and rebuild the search index in the same commit.
"""
import logging
import random
import re
from dataclasses import dataclass

from flask import current_app
from sqlalchemy import or_

from cheapbite.errors import NotFound, ValidationError, store_transaction
from cheapbite.extensions import db
from cheapbite.models.user import (
    AuthIdentity, GENDERS, ProfileTerm, PublicProfile, User, UsernameReservation,
)
from cheapbite.utils.helpers import utcnow

log = logging.getLogger(__name__)

_USERNAME_STRIP_RE = re.compile(r"[^a-z0-9]")

# Fields the owner may edit; same value lands on both records.
PROFILE_FIELDS = (
    "display_name", "bio", "gender", "tagline", "accent_color",
    "website_link", "social_link", "photo_url", "cover_photo_url",
)


@dataclass
class Identity:
    """What the sign-in provider tells us about a user."""
    uid: str
    email: str | None = None
    display_name: str | None = None
    photo_url: str | None = None

    @classmethod
    def from_auth(cls, auth: AuthIdentity) -> "Identity":
        return cls(uid=auth.uid, email=auth.email,
                   display_name=auth.display_name, photo_url=auth.photo_url)


# ── Sign-in identities ────────────────────────────────────────────────────────

def register_identity(email: str, password: str, display_name: str = None) -> AuthIdentity:
    email = (email or "").strip().lower()
    if AuthIdentity.query.filter_by(email=email).first():
        raise ValidationError("Email already registered", fields={"email": ["Email already registered."]})
    auth = AuthIdentity(email=email, display_name=(display_name or "").strip() or None)
    auth.set_password(password)
    with store_transaction(f"auth_identities/{email}", "create", {"email": email}):
        db.session.add(auth)
    return auth


def authenticate(email: str, password: str) -> AuthIdentity | None:
    auth = AuthIdentity.query.filter_by(email=(email or "").strip().lower()).first()
    if auth is None or not auth.check_password(password):
        return None
    auth.last_login = utcnow()
    db.session.commit()
    return auth


# ── Username + search index ───────────────────────────────────────────────────

def derive_username(email: str | None, uid: str) -> str:
    """Sanitized e-mail local part, or ``user`` + the first 5 chars of the uid."""
    local = (email or "").split("@")[0].lower()
    candidate = _USERNAME_STRIP_RE.sub("", local)
    return candidate or f"user{uid[:5]}"


def _free_username(base: str) -> str:
    name = base
    while db.session.get(UsernameReservation, name) is not None:
        name = f"{base}{random.randint(1000, 9999)}"
    return name


def searchable_terms(display_name: str | None, username: str) -> list[str]:
    words = (display_name or "").lower().split()
    return [t for t in dict.fromkeys([*words, username]) if t]


# ── Account creation ──────────────────────────────────────────────────────────

def create_account(identity: Identity) -> User:
    """Create private record, public record and username reservation once.

    Returns the existing account untouched when one is already there.
    """
    existing = db.session.get(User, identity.uid)
    if existing is not None:
        return existing

    cfg          = current_app.config
    username     = _free_username(derive_username(identity.email, identity.uid))
    display_name = identity.display_name or (identity.email or "").split("@")[0] or "Anonymous User"
    bio          = cfg.get("DEFAULT_BIO", "Just joined!")
    accent       = cfg.get("DEFAULT_ACCENT_COLOR", "#00BFFF")

    user = User(
        id=identity.uid,
        username=username,
        email=identity.email,
        display_name=display_name,
        photo_url=identity.photo_url,
        bio=bio,
        accent_color=accent,
    )
    profile = PublicProfile(
        id=identity.uid,
        username=username,
        display_name=display_name,
        display_name_lowercase=display_name.lower(),
        photo_url=identity.photo_url,
        bio=bio,
        accent_color=accent,
        follower_count=0,
        following_count=0,
    )
    profile.set_search_terms(searchable_terms(display_name, username))
    payload = {"uid": identity.uid, "username": username}
    with store_transaction(f"users/{identity.uid}", "create", payload):
        db.session.add(user)
        db.session.flush()
        db.session.add(profile)
        db.session.add(UsernameReservation(username=username, uid=identity.uid))

    log.info("Created account %s (@%s)", identity.uid, username)
    return user


# ── Profile reads + edits ─────────────────────────────────────────────────────

def get_public_profile(uid_or_username: str) -> PublicProfile | None:
    profile = db.session.get(PublicProfile, uid_or_username)
    if profile is None:
        profile = PublicProfile.query.filter_by(username=uid_or_username.lower()).first()
    return profile


def require_profile(uid: str) -> PublicProfile:
    profile = db.session.get(PublicProfile, uid)
    if profile is None:
        raise NotFound("Account not found")
    return profile


def update_profile(account_id: str, fields: dict) -> PublicProfile:
    user    = db.session.get(User, account_id)
    profile = db.session.get(PublicProfile, account_id)
    if user is None or profile is None:
        raise NotFound("Account not found")

    unknown = set(fields) - set(PROFILE_FIELDS)
    if unknown:
        raise ValidationError("Unknown profile fields",
                              fields={k: ["Not editable."] for k in sorted(unknown)})
    if "gender" in fields and fields["gender"] not in GENDERS:
        raise ValidationError("Invalid gender", fields={"gender": ["Not a valid choice."]})
    if "display_name" in fields and not (fields["display_name"] or "").strip():
        raise ValidationError("Display name required", fields={"display_name": ["This field is required."]})

    with store_transaction(f"users/{account_id}", "update", dict(fields)):
        for name, value in fields.items():
            if isinstance(value, str):
                value = value.strip()
            setattr(user, name, value)
            setattr(profile, name, value)
        profile.display_name_lowercase = (profile.display_name or "").lower()
        profile.set_search_terms(searchable_terms(profile.display_name, profile.username))
    return profile


def search_profiles(term: str, limit: int = 20) -> list[PublicProfile]:
    """Prefix match on the lowercase display name or any search term."""
    term = (term or "").strip().lower()
    if not term:
        return []
    matches = db.select(ProfileTerm.profile_id).where(ProfileTerm.term.startswith(term, autoescape=True))
    return (
        PublicProfile.query
        .filter(or_(
            PublicProfile.display_name_lowercase.startswith(term, autoescape=True),
            PublicProfile.id.in_(matches),
        ))
        .order_by(PublicProfile.display_name_lowercase.asc())
        .limit(limit)
        .all()
    )
