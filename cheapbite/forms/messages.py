from flask_wtf import FlaskForm
from wtforms import TextAreaField
from wtforms.validators import DataRequired, Length


class MessageForm(FlaskForm):
    text = TextAreaField(
        "Message",
        validators=[DataRequired(), Length(1, 1000)],
    )
