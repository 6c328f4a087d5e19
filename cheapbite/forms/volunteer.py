from flask_wtf import FlaskForm
from wtforms import StringField, TextAreaField
from wtforms.validators import DataRequired, Email, Length


class VolunteerForm(FlaskForm):
    name    = StringField("Your Name", validators=[DataRequired(), Length(1, 100)])
    email   = StringField("Your Email", validators=[DataRequired(), Email(), Length(1, 200)])
    message = TextAreaField("How would you like to help?", validators=[DataRequired(), Length(1, 5000)])
