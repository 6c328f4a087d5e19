"""
Identity records.

Each account has two views:
  - User           private record (email, following set, profile fields)
  - PublicProfile  what other users read: profile fields plus the follower /
                   following counters and a lowercase search index

AuthIdentity is the sign-in side (credentials); UsernameReservation holds each
username exactly once so two accounts can never claim the same handle.
"""
from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, InvalidHashError, VerificationError
from flask_login import UserMixin

from cheapbite.extensions import db
from cheapbite.utils.helpers import MAX_TERM_LENGTH, new_id, normalize_terms, utcnow

_ph = PasswordHasher()

GENDERS = ("male", "female", "other", "unspecified")

# Following set: one row per (follower → followee) edge.
follows = db.Table(
    "follows",
    db.Column("follower_id", db.String(64), db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    db.Column("followee_id", db.String(64), db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    db.Column("created_at",  db.DateTime, default=utcnow, nullable=False),
    db.CheckConstraint("follower_id <> followee_id", name="ck_follows_not_self"),
)


class AuthIdentity(db.Model):
    __tablename__ = "auth_identities"

    uid           = db.Column(db.String(64),  primary_key=True, default=new_id)
    email         = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(512), nullable=False)
    display_name  = db.Column(db.String(100), nullable=True)
    photo_url     = db.Column(db.String(500), nullable=True)
    created_at    = db.Column(db.DateTime, default=utcnow, nullable=False)
    last_login    = db.Column(db.DateTime, nullable=True)

    def set_password(self, password: str) -> None:
        self.password_hash = _ph.hash(password)

    def check_password(self, password: str) -> bool:
        try:
            return _ph.verify(self.password_hash, password)
        except (VerifyMismatchError, InvalidHashError, VerificationError):
            return False

    def __repr__(self) -> str:
        return f"<AuthIdentity {self.email}>"


class User(db.Model, UserMixin):
    __tablename__ = "users"

    id              = db.Column(db.String(64),  primary_key=True)
    username        = db.Column(db.String(64),  unique=True, nullable=False, index=True)
    email           = db.Column(db.String(120), nullable=True)
    display_name    = db.Column(db.String(100), nullable=True)
    photo_url       = db.Column(db.String(500), nullable=True)
    bio             = db.Column(db.String(500), nullable=True)
    cover_photo_url = db.Column(db.String(500), nullable=True)
    tagline         = db.Column(db.String(150), nullable=True)
    accent_color    = db.Column(db.String(16),  nullable=True)
    website_link    = db.Column(db.String(300), nullable=True)
    social_link     = db.Column(db.String(300), nullable=True)
    gender          = db.Column(db.String(16),  default="unspecified", nullable=False)
    created_at      = db.Column(db.DateTime, default=utcnow, nullable=False)

    profile = db.relationship("PublicProfile", uselist=False, back_populates="user")

    @property
    def following_ids(self) -> list[str]:
        rows = db.session.execute(
            db.select(follows.c.followee_id).where(follows.c.follower_id == self.id)
        ).scalars().all()
        return list(rows)

    def to_private_dict(self) -> dict:
        return {
            "uid":           self.id,
            "username":      self.username,
            "email":         self.email,
            "displayName":   self.display_name,
            "photoURL":      self.photo_url,
            "bio":           self.bio,
            "coverPhotoUrl": self.cover_photo_url,
            "tagline":       self.tagline,
            "accentColor":   self.accent_color,
            "websiteLink":   self.website_link,
            "socialLink":    self.social_link,
            "gender":        self.gender,
            "following":     self.following_ids,
            "createdAt":     self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<User {self.username}>"


class PublicProfile(db.Model):
    __tablename__ = "public_profiles"
    __table_args__ = (
        db.CheckConstraint("follower_count >= 0",  name="ck_profile_followers_nonneg"),
        db.CheckConstraint("following_count >= 0", name="ck_profile_following_nonneg"),
    )

    id                     = db.Column(db.String(64), db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    username               = db.Column(db.String(64),  nullable=False, index=True)
    display_name           = db.Column(db.String(100), nullable=True)
    display_name_lowercase = db.Column(db.String(100), nullable=True, index=True)
    photo_url              = db.Column(db.String(500), nullable=True)
    bio                    = db.Column(db.String(500), nullable=True)
    cover_photo_url        = db.Column(db.String(500), nullable=True)
    tagline                = db.Column(db.String(150), nullable=True)
    accent_color           = db.Column(db.String(16),  nullable=True)
    website_link           = db.Column(db.String(300), nullable=True)
    social_link            = db.Column(db.String(300), nullable=True)
    gender                 = db.Column(db.String(16),  default="unspecified", nullable=False)
    follower_count         = db.Column(db.Integer, default=0, nullable=False)
    following_count        = db.Column(db.Integer, default=0, nullable=False)
    searchable_terms       = db.Column(db.JSON, default=list, nullable=False)

    user = db.relationship("User", back_populates="profile")
    term_rows = db.relationship("ProfileTerm", cascade="all, delete-orphan")

    def set_search_terms(self, terms) -> None:
        terms = normalize_terms(terms)
        kept  = {row.term: row for row in self.term_rows if row.term in terms}
        self.searchable_terms = terms
        self.term_rows = [kept.get(t) or ProfileTerm(term=t) for t in terms]

    def snapshot(self) -> dict:
        """Point-in-time copy embedded in posts, comments and notifications."""
        return {"displayName": self.display_name, "photoURL": self.photo_url}

    def to_dict(self) -> dict:
        return {
            "uid":            self.id,
            "username":       self.username,
            "displayName":    self.display_name,
            "photoURL":       self.photo_url,
            "bio":            self.bio,
            "coverPhotoUrl":  self.cover_photo_url,
            "tagline":        self.tagline,
            "accentColor":    self.accent_color,
            "websiteLink":    self.website_link,
            "socialLink":     self.social_link,
            "gender":         self.gender,
            "followerCount":  self.follower_count,
            "followingCount": self.following_count,
        }

    def __repr__(self) -> str:
        return f"<PublicProfile {self.username}>"


class ProfileTerm(db.Model):
    """Search index row: one lowercase word of a display name, or the username."""
    __tablename__ = "profile_terms"

    profile_id = db.Column(db.String(64), db.ForeignKey("public_profiles.id", ondelete="CASCADE"), primary_key=True)
    term       = db.Column(db.String(MAX_TERM_LENGTH), primary_key=True, index=True)


class UsernameReservation(db.Model):
    __tablename__ = "usernames"

    username   = db.Column(db.String(64), primary_key=True)
    uid        = db.Column(db.String(64), db.ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
