from flask_wtf import FlaskForm
from wtforms import StringField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional, URL


class PostForm(FlaskForm):
    content = TextAreaField(
        "What's cooking?",
        validators=[Optional(), Length(0, 5000)],
    )
    location = StringField("Location", validators=[Optional(), Length(0, 200)])
    # Comma-separated; a JSON list is read from the body instead.
    tags = StringField("Tags", validators=[Optional(), Length(0, 500)])
    external_video_url = StringField(
        "Video Link",
        validators=[Optional(), URL(), Length(0, 500)],
    )
    media_url = StringField("Media URL", validators=[Optional(), Length(0, 500)])


class CommentForm(FlaskForm):
    text = TextAreaField(
        "Comment",
        validators=[DataRequired(), Length(1, 500)],
    )
