from flask_wtf import FlaskForm
from wtforms import StringField, TextAreaField
from wtforms.validators import AnyOf, Length, Optional, Regexp, URL

from cheapbite.models.user import GENDERS


class ProfileForm(FlaskForm):
    """Every field is optional: only the keys present in the body are written."""
    display_name = StringField(
        "Display Name",
        validators=[Optional(), Length(1, 100)],
    )
    bio = TextAreaField(
        "Bio",
        validators=[Optional(), Length(0, 300)],
    )
    gender = StringField(
        "Gender",
        validators=[Optional(), AnyOf(GENDERS)],
    )
    tagline = StringField("Tagline", validators=[Optional(), Length(0, 120)])
    accent_color = StringField(
        "Accent Colour",
        validators=[Optional(), Regexp(r"^#[0-9A-Fa-f]{6}$", message="Use a #RRGGBB colour.")],
    )
    website_link    = StringField("Website", validators=[Optional(), URL(), Length(0, 500)])
    social_link     = StringField("Social Link", validators=[Optional(), URL(), Length(0, 500)])
    photo_url       = StringField("Photo URL", validators=[Optional(), Length(0, 500)])
    cover_photo_url = StringField("Cover Photo URL", validators=[Optional(), Length(0, 500)])
