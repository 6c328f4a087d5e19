"""Social feed models: Post, Like, Comment.

like_count / comment_count on Post are only ever moved by relative SQL
updates issued together with the insert or delete of the matching Like /
Comment row (see utils/content_service.py).

Likes and comments reference their post by id without a foreign key:
deleting a post does not touch them.  Its search terms are deleted with it.
"""
from cheapbite.extensions import db
from cheapbite.utils.helpers import MAX_TERM_LENGTH, new_id, normalize_terms, utcnow


class Post(db.Model):
    __tablename__ = "posts"
    __table_args__ = (
        db.CheckConstraint("like_count >= 0",    name="ck_posts_like_count_nonneg"),
        db.CheckConstraint("comment_count >= 0", name="ck_posts_comment_count_nonneg"),
        db.CheckConstraint(
            "(attachment_kind IS NULL) = (attachment IS NULL)",
            name="ck_posts_attachment_tagged",
        ),
    )

    id                  = db.Column(db.String(64), primary_key=True, default=new_id)
    author_id           = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False, index=True)
    # author snapshot taken at creation time
    author_display_name = db.Column(db.String(100), nullable=True)
    author_photo_url    = db.Column(db.String(500), nullable=True)
    author_username     = db.Column(db.String(64),  nullable=True)
    content             = db.Column(db.Text, nullable=False, default="")
    location            = db.Column(db.String(200), nullable=True)
    tags                = db.Column(db.JSON(none_as_null=True), nullable=True)
    external_video_url  = db.Column(db.String(500), nullable=True)
    media_url           = db.Column(db.String(500), nullable=True)
    attachment_kind     = db.Column(db.String(30), nullable=True)
    attachment          = db.Column(db.JSON(none_as_null=True), nullable=True)
    like_count          = db.Column(db.Integer, default=0, nullable=False)
    comment_count       = db.Column(db.Integer, default=0, nullable=False)
    is_public           = db.Column(db.Boolean, default=True, nullable=False)
    searchable_terms    = db.Column(db.JSON, default=list, nullable=False)
    created_at          = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    term_rows = db.relationship("PostTerm", cascade="all, delete-orphan")

    def to_dict(self, liked_by_me: bool = False) -> dict:
        data = {
            "id":        self.id,
            "authorId":  self.author_id,
            "author": {
                "displayName": self.author_display_name,
                "photoURL":    self.author_photo_url,
                "username":    self.author_username,
            },
            "content":      self.content,
            "createdAt":    self.created_at.isoformat(),
            "likeCount":    self.like_count,
            "commentCount": self.comment_count,
            "isPublic":     self.is_public,
            "likedByMe":    liked_by_me,
        }
        if self.location:
            data["location"] = self.location
        if self.tags:
            data["tags"] = list(self.tags)
        if self.external_video_url:
            data["externalVideoUrl"] = self.external_video_url
        if self.media_url:
            data["mediaURL"] = self.media_url
        if self.attachment_kind:
            data["attachment"] = {"kind": self.attachment_kind, "data": self.attachment}
        return data

    def set_search_terms(self, terms) -> None:
        """Replace the search index; ``searchable_terms`` keeps the ordered list."""
        terms = normalize_terms(terms)
        kept  = {row.term: row for row in self.term_rows if row.term in terms}
        self.searchable_terms = terms
        self.term_rows = [kept.get(t) or PostTerm(term=t) for t in terms]

    def __repr__(self) -> str:
        return f"<Post {self.id} by {self.author_id}>"


class PostTerm(db.Model):
    """One searchable word of a post. Search is a prefix match on ``term``."""
    __tablename__ = "post_terms"

    post_id = db.Column(db.String(64), db.ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True)
    term    = db.Column(db.String(MAX_TERM_LENGTH), primary_key=True, index=True)


class Like(db.Model):
    """The row's existence is the like."""
    __tablename__ = "post_likes"

    post_id    = db.Column(db.String(64), primary_key=True)
    user_id    = db.Column(db.String(64), db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)


class Comment(db.Model):
    __tablename__ = "post_comments"

    id                  = db.Column(db.String(64), primary_key=True, default=new_id)
    post_id             = db.Column(db.String(64), nullable=False, index=True)
    author_id           = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False)
    author_display_name = db.Column(db.String(100), nullable=True)
    author_photo_url    = db.Column(db.String(500), nullable=True)
    author_username     = db.Column(db.String(64),  nullable=True)
    text                = db.Column(db.String(500), nullable=False)
    created_at          = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self, viewer_id: str = None) -> dict:
        return {
            "id":       self.id,
            "postId":   self.post_id,
            "authorId": self.author_id,
            "author": {
                "displayName": self.author_display_name,
                "photoURL":    self.author_photo_url,
                "username":    self.author_username,
            },
            "text":      self.text,
            "createdAt": self.created_at.isoformat(),
            "isMine":    viewer_id is not None and viewer_id == self.author_id,
        }
