from flask_wtf import FlaskForm
from wtforms import BooleanField, DateTimeLocalField, StringField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional

DATETIME_FORMATS = [
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
]


class EventForm(FlaskForm):
    title       = StringField("Title", validators=[DataRequired(), Length(1, 200)])
    description = TextAreaField("Description", validators=[Optional(), Length(0, 2000)])
    start_time  = DateTimeLocalField("Starts", format=DATETIME_FORMATS, validators=[DataRequired()])
    end_time    = DateTimeLocalField("Ends", format=DATETIME_FORMATS, validators=[Optional()])
    location    = StringField("Location", validators=[Optional(), Length(0, 200)])


class RsvpForm(FlaskForm):
    attending = BooleanField("Attending", false_values=(False, "false", "0", ""))
